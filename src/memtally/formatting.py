"""Formatting utilities for the memory report table."""

from typing import Hashable

from memtally.aggregate import CommandTotal

_UNITS = ("KiB", "MiB", "GiB", "TiB")

_COLUMN = 9
_RULE_WIDTH = 33
_RULE_WIDTH_SWAP = 45


def format_kib(kib: float) -> str:
    """Format a KiB amount like `du -h`.

    Args:
        kib: Size in KiB

    Returns:
        One decimal and a binary unit, e.g. "584.0 KiB", "1.6 MiB".
        Values only switch unit at 1000 so the column stays narrow.
    """
    value = float(kib)
    unit = 0
    while value >= 1000 and unit < len(_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.1f} {_UNITS[unit]}"


def cmd_with_count(name: str, count: int) -> str:
    """Append the process count to a program name when there is more than one."""
    return f"{name} ({count})" if count > 1 else name


def display_key(key: Hashable) -> str:
    """Render a totals key: a plain name, or a (pid, name) pair as "name [pid]"."""
    if isinstance(key, tuple):
        pid, name = key
        return f"{name} [{pid}]"
    return str(key)


def format_header(show_swap: bool, by_pid: bool = False) -> str:
    program = "Program [pid]" if by_pid else "Program"
    cols = f"{'Private':>{_COLUMN}} + {'Shared':>{_COLUMN}} = {'RAM used':>{_COLUMN}}"
    if show_swap:
        cols += f"   {'Swap used':>{_COLUMN}}"
    return f"{cols}\t{program}"


def format_cmd_total(show_swap: bool, key: Hashable, total: CommandTotal) -> str:
    """Format one table row.

    Args:
        show_swap: Include the swap column
        key: Program name or (pid, name)
        total: The program's totals

    Returns:
        Row like "  584.0 KiB +    1.2 MiB =    1.8 MiB\tbash (3)"
    """
    cols = (
        f"{format_kib(total.private):>{_COLUMN}} + "
        f"{format_kib(total.shared):>{_COLUMN}} = "
        f"{format_kib(total.ram):>{_COLUMN}}"
    )
    if show_swap:
        cols += f"   {format_kib(total.swap):>{_COLUMN}}"
    return f"{cols}\t{cmd_with_count(display_key(key), total.count)}"


def format_overall(show_swap: bool, ram: int, swap: int) -> str:
    """Format the grand total between two rules."""
    width = _RULE_WIDTH_SWAP if show_swap else _RULE_WIDTH
    line = f"{format_kib(ram):>{_RULE_WIDTH}}"
    if show_swap:
        line += f"   {format_kib(swap):>{_COLUMN}}"
    return "\n".join(("-" * width, line, "=" * width))


def format_bytes_total(kib: int) -> str:
    """Format a KiB amount as a plain byte count for total-only output."""
    return str(kib * 1024)
