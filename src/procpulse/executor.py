"""Process termination commands."""

from enum import Enum

import psutil
import structlog

log = structlog.get_logger()


class TerminateOutcome(Enum):
    """What happened when a termination was requested."""

    SIGNALLED = "signalled"
    NOT_FOUND = "not_found"  # Already gone; treated as success
    DENIED = "denied"

    @property
    def ok(self) -> bool:
        """Return True unless the OS refused the signal."""
        return self is not TerminateOutcome.DENIED


class CommandExecutor:
    """Signals processes by id. Never raises to the caller.

    The id is trusted as given; it is not re-checked against a fresh sample.
    """

    def terminate(self, pid: int, force: bool = False) -> TerminateOutcome:
        """Ask the OS to stop a process (SIGTERM, or SIGKILL when force)."""
        try:
            proc = psutil.Process(pid)
            if force:
                proc.kill()
            else:
                proc.terminate()
        except (psutil.NoSuchProcess, ValueError):
            # ValueError: negative pid, which can never name a live process
            log.info("terminate_not_found", pid=pid)
            return TerminateOutcome.NOT_FOUND
        except psutil.AccessDenied:
            log.warning("terminate_denied", pid=pid)
            return TerminateOutcome.DENIED

        log.info("terminate_signalled", pid=pid, force=force)
        return TerminateOutcome.SIGNALLED
