"""CLI commands for memtally."""

import click

from memtally import logging as console


def _parse_pids(ctx: click.Context, param: click.Parameter, value: str | None):
    """Turn "1,2,3" into (1, 2, 3); None when the option was not given."""
    if value is None:
        return None
    pids = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit() or int(part) == 0:
            raise click.BadParameter(f"not a process ID: {part!r}")
        pids.append(int(part))
    if not pids:
        raise click.BadParameter("no process IDs given")
    return tuple(pids)


def _load_config():
    """Load the config file, exiting with status 2 when it is invalid."""
    from memtally.config import Config

    try:
        return Config.load()
    except ValueError as e:
        console.config_invalid(str(e))
        raise SystemExit(2) from e


@click.group()
@click.version_option()
def main() -> None:
    """Report the memory used by running programs, without double counting."""
    pass


@main.command()
@click.option(
    "--pids",
    "-p",
    callback=_parse_pids,
    default=None,
    help="Only show memory usage of these PIDs (comma separated)",
)
@click.option(
    "--split-args/--no-split-args",
    "-s",
    default=None,
    help="Show and separate by all command line arguments",
)
@click.option(
    "--total", "-t", "only_total", is_flag=True, help="Only show the total, in bytes"
)
@click.option("--swap/--no-swap", "-S", default=None, help="Show swap information")
@click.option(
    "--discriminate-by-pid/--no-discriminate-by-pid",
    "-d",
    "by_pid",
    default=None,
    help="Show one row per process, with its PID",
)
@click.option(
    "--watch",
    "-w",
    "watch_seconds",
    type=click.IntRange(min=0),
    default=None,
    help="Repeat the report every N seconds (0 reports once)",
)
def report(
    pids: tuple[int, ...] | None,
    split_args: bool | None,
    only_total: bool,
    swap: bool | None,
    by_pid: bool | None,
    watch_seconds: int | None,
) -> None:
    """Show the RAM used by each program."""
    import asyncio

    from memtally.logging import configure
    from memtally.naming import name_as_full_cmd, name_for
    from memtally.procfs import ProcFS
    from memtally.report import ReportPrinter, TotalUnavailable
    from memtally.sampler import Watcher, report_once
    from memtally.target import TargetError, verify

    config = _load_config()
    configure(config)

    choices = config.choices(
        pids=pids,
        split_args=split_args,
        only_total=only_total,
        show_swap=swap,
        by_pid=by_pid,
        watch_seconds=watch_seconds,
    )
    proc = ProcFS(config.procfs.root)

    try:
        target = verify(choices, proc)
    except TargetError as e:
        console.halted(str(e))
        raise SystemExit(1) from e

    namer = name_as_full_cmd if choices.split_args else name_for
    printer = ReportPrinter(
        target,
        show_swap=choices.show_swap,
        only_total=choices.only_total,
        by_pid=choices.by_pid,
        clear_between=choices.watch_seconds is not None,
    )

    try:
        if choices.watch_seconds is None:
            result = report_once(target, namer, printer, proc, choices.by_pid)
            if not result.totals:
                console.halted("none of the requested processes could be measured")
                raise SystemExit(1)
        else:
            watcher = Watcher(
                target, namer, printer, proc, choices.by_pid, choices.watch_seconds
            )

            async def watch() -> None:
                watcher.install_signal_handlers()
                await watcher.run()

            asyncio.run(watch())
    except TotalUnavailable as e:
        raise SystemExit(1) from e


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
    click.echo("[report]")
    click.echo(f"  show_swap = {cfg.report.show_swap}")
    click.echo(f"  by_pid = {cfg.report.by_pid}")
    click.echo(f"  split_args = {cfg.report.split_args}")
    click.echo(f"  watch_seconds = {cfg.report.watch_seconds}")
    click.echo()
    click.echo("[procfs]")
    click.echo(f"  root = {cfg.procfs.root}")
    click.echo()
    click.echo("[logging]")
    click.echo(f"  file_enabled = {cfg.logging.file_enabled}")
    click.echo(f"  max_bytes = {cfg.logging.max_bytes}")
    click.echo(f"  backup_count = {cfg.logging.backup_count}")


@config.command("edit")
def config_edit() -> None:
    """Open config file in editor."""
    import os
    import subprocess

    cfg = _load_config()

    # Create config if it doesn't exist
    if not cfg.config_path.exists():
        cfg.save()
        console.config_created(str(cfg.config_path))

    editor = os.environ.get("EDITOR", "nano")
    subprocess.run([editor, str(cfg.config_path)])


@config.command("reset")
@click.confirmation_option(prompt="Reset config to defaults?")
def config_reset() -> None:
    """Reset configuration to defaults."""
    from memtally.config import Config

    cfg = Config()
    cfg.save()
    click.echo(f"Config reset to defaults at {cfg.config_path}")
