"""Report printing: the per-program table, the grand total and flaw warnings."""

from dataclasses import dataclass
from typing import Callable, Hashable, Mapping

import click

from memtally import logging as console
from memtally.aggregate import CommandTotal, overall_totals
from memtally.formatting import (
    format_bytes_total,
    format_cmd_total,
    format_header,
    format_overall,
)
from memtally.target import Target, ram_flaw_text, swap_flaw_text


class TotalUnavailable(Exception):
    """A bare total was requested but this system cannot measure it accurately."""


@dataclass
class ReportPrinter:
    """Prints the totals of one sampling cycle.

    In table mode, every program gets a row, followed by the grand total when
    it is accurate and by any flaw warnings. In total-only mode, only the
    grand total is printed, in bytes, and a flaw makes the total unavailable.
    """

    target: Target
    show_swap: bool = False
    only_total: bool = False
    by_pid: bool = False
    clear_between: bool = False  # Clear the screen before each table
    echo: Callable[[str], None] = click.echo
    report_flaw: Callable[[str, bool], None] = console.flaw_reported

    def __call__(self, totals: Mapping[Hashable, CommandTotal]) -> None:
        if self.only_total:
            self.print_total(totals)
        else:
            self.print_table(totals)

    @property
    def overall_is_accurate(self) -> bool:
        return self.target.has_pss or (self.show_swap and self.target.has_swap_pss)

    def print_table(self, totals: Mapping[Hashable, CommandTotal]) -> None:
        if self.clear_between:
            click.clear()
        self.echo(format_header(self.show_swap, self.by_pid))
        for key, total in totals.items():
            self.echo(format_cmd_total(self.show_swap, key, total))
        if self.overall_is_accurate:
            ram, swap = overall_totals(totals)
            self.echo(format_overall(self.show_swap, ram, swap))
        self.report_flaws()

    def print_total(self, totals: Mapping[Hashable, CommandTotal]) -> None:
        """Print only the grand total in bytes.

        Raises:
            TotalUnavailable: The requested total is affected by a flaw.
        """
        ram, swap = overall_totals(totals)
        if self.show_swap:
            if self.target.has_swap_pss:
                self.echo(format_bytes_total(swap))
            self.report_flaws()
            if self.target.swap_flaw is not None:
                raise TotalUnavailable(swap_flaw_text(self.target.swap_flaw))
        else:
            if self.target.has_pss:
                self.echo(format_bytes_total(ram))
            self.report_flaws()
            if self.target.ram_flaw is not None:
                raise TotalUnavailable(ram_flaw_text(self.target.ram_flaw))

    def report_flaws(self) -> None:
        """Report swap flaws when swap is shown, and RAM flaws unless only a swap total is."""
        as_error = self.only_total
        if self.show_swap and self.target.swap_flaw is not None:
            self.report_flaw(swap_flaw_text(self.target.swap_flaw), as_error)
        if not (self.only_total and self.show_swap) and self.target.ram_flaw is not None:
            self.report_flaw(ram_flaw_text(self.target.ram_flaw), as_error)
