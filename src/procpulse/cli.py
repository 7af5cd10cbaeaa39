"""CLI commands for procpulse."""

import click


def _load_config():
    """Load config, turning validation errors into a clean CLI failure."""
    from procpulse.config import Config

    try:
        return Config.load()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)


def _configure_logging(config) -> None:
    """Send structured events to the log file so stdout carries only command output."""
    from procpulse import logging as console

    console.configure(config, source="cli")


@click.group()
@click.version_option(package_name="procpulse")
def main() -> None:
    """Watch host CPU and memory, rank busy processes, export or kill them."""
    pass


@main.command()
def tui() -> None:
    """Launch interactive dashboard."""
    from procpulse.tui import run_tui

    run_tui(_load_config())


@main.command()
@click.option("--export-every", type=click.IntRange(min=1), help="Export every N ticks")
@click.option("--ticks", "max_ticks", type=click.IntRange(min=1), help="Stop after N ticks")
def watch(export_every: int | None, max_ticks: int | None) -> None:
    """Run the sampling loop headless, logging a periodic heartbeat."""
    import asyncio

    from procpulse.monitor import run_monitor

    asyncio.run(run_monitor(_load_config(), export_every=export_every, max_ticks=max_ticks))


def _sample_ranked(config, settle: float):
    """Sample twice so per-process CPU deltas are meaningful; return the controller."""
    import time

    from procpulse.controller import Tick
    from procpulse.monitor import build_controller

    controller = build_controller(config)
    controller.dispatch(Tick())  # Primes per-process CPU counters
    time.sleep(settle)
    controller.dispatch(Tick())
    return controller


@main.command()
@click.option("--limit", "-n", default=None, type=click.IntRange(min=1), help="Rows to show")
@click.option("--format", "-f", "fmt", type=click.Choice(["table", "csv", "json"]), default="table")
@click.option("--interval", "-i", default=1.0, type=click.FloatRange(min=0.1), help="Settle time")
def top(limit: int | None, fmt: str, interval: float) -> None:
    """Print the busiest processes, CPU normalized across cores."""
    import json

    from procpulse.export import render
    from procpulse.formatting import bytes_to_mb, format_mb, format_percent, truncate

    config = _load_config()
    _configure_logging(config)
    controller = _sample_ranked(config, interval)
    state = controller.state
    ranked = state.top(limit or config.tui.top_count)

    if fmt == "json":
        data = [
            {
                "pid": r.record.process_id,
                "name": r.record.name,
                "cpu_percent": round(r.normalized_cpu_percent, 2),
                "memory_mb": round(bytes_to_mb(r.record.memory_bytes), 2),
            }
            for r in ranked
        ]
        click.echo(json.dumps(data, indent=2))
    elif fmt == "csv":
        click.echo(render(ranked), nl=False)
    else:
        snap = state.snapshot
        click.echo(
            f"CPU: {snap.global_cpu_percent:.2f}%  |  Memory: {format_mb(snap.global_memory_bytes)} MB"
            f"  |  {snap.process_count} processes, {controller.core_count} cores"
        )
        click.echo(f"{'PID':>7}  {'Process':32}  {'CPU %':>7}  {'Memory (MB)':>12}")
        click.echo("-" * 64)
        for r in ranked:
            click.echo(
                f"{r.record.process_id:>7}  {truncate(r.record.name, 32):32}  "
                f"{format_percent(r.normalized_cpu_percent):>7}  "
                f"{format_mb(r.record.memory_bytes):>12}"
            )


@main.command()
@click.option("--path", "-o", type=click.Path(dir_okay=False), help="Override export path")
@click.option("--interval", "-i", default=1.0, type=click.FloatRange(min=0.1), help="Settle time")
def export(path: str | None, interval: float) -> None:
    """Sample once and write the ranked process list to a file."""
    from pathlib import Path

    from procpulse.controller import ExportRequested

    config = _load_config()
    _configure_logging(config)
    controller = _sample_ranked(config, interval)
    result = controller.dispatch(ExportRequested(Path(path) if path else None))

    if not result.ok:
        click.echo(f"Error: {result.error}", err=True)
        raise SystemExit(1)
    click.echo(f"Exported {result.rows} processes to {result.path}")


@main.command()
@click.argument("pid", type=int)
@click.option("--force", is_flag=True, help="Send SIGKILL instead of SIGTERM")
def kill(pid: int, force: bool) -> None:
    """Terminate a process by PID."""
    from procpulse.executor import CommandExecutor, TerminateOutcome

    _configure_logging(_load_config())
    outcome = CommandExecutor().terminate(pid, force=force)

    if outcome is TerminateOutcome.SIGNALLED:
        click.echo(f"Sent {'SIGKILL' if force else 'SIGTERM'} to PID {pid}")
    elif outcome is TerminateOutcome.NOT_FOUND:
        click.echo(f"PID {pid} is not running")
    else:
        click.echo(f"Error: permission denied for PID {pid}", err=True)
        raise SystemExit(1)


@main.group()
def config() -> None:
    """Manage configuration."""
    pass


@config.command("show")
def config_show() -> None:
    """Display current configuration."""
    cfg = _load_config()

    click.echo(f"Config file: {cfg.config_path}")
    click.echo(f"Exists: {cfg.config_path.exists()}")
    click.echo()
    click.echo("[sampling]")
    click.echo(f"  interval = {cfg.sampling.interval}")
    click.echo(f"  history_size = {cfg.sampling.history_size}")
    click.echo(f"  heartbeat_ticks = {cfg.sampling.heartbeat_ticks}")
    click.echo()
    click.echo("[export]")
    click.echo(f"  path = {cfg.export_path}")
    click.echo()
    click.echo("[tui]")
    click.echo(f"  top_count = {cfg.tui.top_count}")
    click.echo(f"  theme = {cfg.tui.theme}")
    click.echo(f"  sparkline_height = {cfg.tui.sparkline_height}")


@config.command("path")
def config_path() -> None:
    """Print the config file location."""
    from procpulse.config import Config

    click.echo(Config().config_path)


@config.command("edit")
def config_edit() -> None:
    """Open config file in editor."""
    import os
    import subprocess

    from procpulse import logging as console

    cfg = _load_config()
    if not cfg.config_path.exists():
        cfg.save()
        console.config_created(str(cfg.config_path))

    editor = os.environ.get("EDITOR", "nano")
    subprocess.run([editor, str(cfg.config_path)], check=False)


@config.command("reset")
@click.confirmation_option(prompt="Reset config to defaults?")
def config_reset() -> None:
    """Overwrite the config file with defaults."""
    from procpulse.config import Config

    cfg = Config()
    cfg.save()
    click.echo(f"Config reset to defaults at {cfg.config_path}")


if __name__ == "__main__":
    main()
