"""Terminal dashboard for procpulse."""

from procpulse.tui.app import ProcPulseApp, run_tui

__all__ = ["ProcPulseApp", "run_tui"]
