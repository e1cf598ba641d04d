"""Tests for the report printer."""

from unittest.mock import patch

import pytest

from memtally.aggregate import CommandTotal
from memtally.report import ReportPrinter, TotalUnavailable
from memtally.target import RamFlaw, SwapFlaw, ram_flaw_text, swap_flaw_text
from tests.conftest import make_target

TOTALS = {
    "bash": CommandTotal(private=584, shared=212, swap=4, count=3),
    "sshd": CommandTotal(private=100, shared=100, swap=12, count=1),
}


def make_printer(target, **kwargs):
    lines: list[str] = []
    flaws: list[tuple[str, bool]] = []
    printer = ReportPrinter(
        target,
        echo=lines.append,
        report_flaw=lambda text, as_error: flaws.append((text, as_error)),
        **kwargs,
    )
    return printer, lines, flaws


class TestTable:
    def test_rows_and_overall_with_pss(self) -> None:
        printer, lines, flaws = make_printer(make_target())
        printer(TOTALS)
        assert lines[0].endswith("\tProgram")
        assert lines[1].endswith("\tbash (3)")
        assert lines[2].endswith("\tsshd")
        assert "996.0 KiB" in lines[3]
        assert flaws == []

    def test_no_overall_without_pss(self) -> None:
        target = make_target(
            has_pss=False,
            has_swap_pss=False,
            ram_flaw=RamFlaw.EXACT_FOR_ISOLATED_MEM,
            swap_flaw=SwapFlaw.EXACT_FOR_ISOLATED_SWAP,
        )
        printer, lines, flaws = make_printer(target)
        printer(TOTALS)
        assert len(lines) == 3
        assert flaws == [(ram_flaw_text(RamFlaw.EXACT_FOR_ISOLATED_MEM), False)]

    def test_overall_with_swap_pss_only_when_swap_shown(self) -> None:
        target = make_target(has_pss=False, has_swap_pss=True, ram_flaw=RamFlaw.NO_SHARED_MEM)
        printer, lines, flaws = make_printer(target, show_swap=True)
        printer(TOTALS)
        assert len(lines) == 4
        assert "16.0 KiB" in lines[3]
        assert flaws == [(ram_flaw_text(RamFlaw.NO_SHARED_MEM), False)]

    def test_swap_flaw_reported_before_ram_flaw(self) -> None:
        target = make_target(
            has_pss=False,
            has_swap_pss=False,
            ram_flaw=RamFlaw.SOME_SHARED_MEM,
            swap_flaw=SwapFlaw.NO_SWAP,
        )
        printer, _, flaws = make_printer(target, show_swap=True)
        printer(TOTALS)
        assert flaws == [
            (swap_flaw_text(SwapFlaw.NO_SWAP), False),
            (ram_flaw_text(RamFlaw.SOME_SHARED_MEM), False),
        ]

    def test_swap_flaw_hidden_without_swap_column(self) -> None:
        target = make_target(swap_flaw=SwapFlaw.EXACT_FOR_ISOLATED_SWAP)
        printer, _, flaws = make_printer(target)
        printer(TOTALS)
        assert flaws == []

    def test_by_pid_header(self) -> None:
        printer, lines, _ = make_printer(make_target(), by_pid=True)
        printer({(7, "bash"): TOTALS["bash"]})
        assert lines[0].endswith("\tProgram [pid]")
        assert lines[1].endswith("\tbash [7] (3)")

    def test_clear_between(self) -> None:
        printer, _, _ = make_printer(make_target(), clear_between=True)
        with patch("memtally.report.click.clear") as mock_clear:
            printer(TOTALS)
            printer(TOTALS)
        assert mock_clear.call_count == 2


class TestTotalOnly:
    def test_ram_total_in_bytes(self) -> None:
        printer, lines, flaws = make_printer(make_target(), only_total=True)
        printer(TOTALS)
        assert lines == [str(996 * 1024)]
        assert flaws == []

    def test_swap_total_in_bytes(self) -> None:
        printer, lines, _ = make_printer(make_target(), only_total=True, show_swap=True)
        printer(TOTALS)
        assert lines == [str(16 * 1024)]

    def test_ram_flaw_is_an_error(self) -> None:
        target = make_target(has_pss=False, ram_flaw=RamFlaw.EXACT_FOR_ISOLATED_MEM)
        printer, lines, flaws = make_printer(target, only_total=True)
        with pytest.raises(TotalUnavailable):
            printer(TOTALS)
        assert lines == []
        assert flaws == [(ram_flaw_text(RamFlaw.EXACT_FOR_ISOLATED_MEM), True)]

    def test_swap_flaw_is_an_error_and_ram_flaw_skipped(self) -> None:
        target = make_target(
            has_swap_pss=False,
            ram_flaw=RamFlaw.SOME_SHARED_MEM,
            swap_flaw=SwapFlaw.EXACT_FOR_ISOLATED_SWAP,
        )
        printer, lines, flaws = make_printer(target, only_total=True, show_swap=True)
        with pytest.raises(TotalUnavailable):
            printer(TOTALS)
        assert lines == []
        assert flaws == [(swap_flaw_text(SwapFlaw.EXACT_FOR_ISOLATED_SWAP), True)]

    def test_swap_flaw_ignored_for_ram_total(self) -> None:
        target = make_target(swap_flaw=SwapFlaw.EXACT_FOR_ISOLATED_SWAP)
        printer, lines, flaws = make_printer(target, only_total=True)
        printer(TOTALS)
        assert lines == [str(996 * 1024)]
        assert flaws == []
