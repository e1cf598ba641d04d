"""Tests for formatting utilities."""

import pytest

from memtally.aggregate import CommandTotal
from memtally.formatting import (
    cmd_with_count,
    display_key,
    format_bytes_total,
    format_cmd_total,
    format_header,
    format_kib,
    format_overall,
)


class TestFormatKib:
    @pytest.mark.parametrize(
        "kib,expected",
        [
            (0, "0.0 KiB"),
            (584, "584.0 KiB"),
            (999, "999.0 KiB"),
            (1000, "1.0 MiB"),
            (1640, "1.6 MiB"),
            (3 * 1024 * 1024, "3.0 GiB"),
            (2 * 1024**4, "2048.0 TiB"),
        ],
    )
    def test_units(self, kib: int, expected: str) -> None:
        assert format_kib(kib) == expected


def test_cmd_with_count() -> None:
    assert cmd_with_count("bash", 1) == "bash"
    assert cmd_with_count("bash", 3) == "bash (3)"


def test_display_key() -> None:
    assert display_key("sshd") == "sshd"
    assert display_key((812, "sshd")) == "sshd [812]"


class TestFormatHeader:
    def test_plain(self) -> None:
        assert format_header(False) == "  Private +    Shared =  RAM used\tProgram"

    def test_with_swap(self) -> None:
        assert format_header(True) == (
            "  Private +    Shared =  RAM used   Swap used\tProgram"
        )

    def test_by_pid(self) -> None:
        assert format_header(False, by_pid=True).endswith("\tProgram [pid]")


class TestFormatCmdTotal:
    def test_row(self) -> None:
        total = CommandTotal(private=584, shared=212, swap=0, count=3)
        assert format_cmd_total(False, "bash", total) == (
            "584.0 KiB + 212.0 KiB = 796.0 KiB\tbash (3)"
        )

    def test_row_pads_columns(self) -> None:
        total = CommandTotal(private=4, shared=0, swap=0, count=1)
        assert format_cmd_total(False, "x", total) == "  4.0 KiB +   0.0 KiB =   4.0 KiB\tx"

    def test_row_with_swap_and_pid(self) -> None:
        total = CommandTotal(private=4, shared=0, swap=8, count=1)
        row = format_cmd_total(True, (42, "x"), total)
        assert row == "  4.0 KiB +   0.0 KiB =   4.0 KiB     8.0 KiB\tx [42]"


def test_header_lines_up_with_rows() -> None:
    total = CommandTotal(private=4, shared=0, swap=8, count=1)
    header = format_header(True).split("\t")[0]
    row = format_cmd_total(True, "x", total).split("\t")[0]
    assert len(header) == len(row)


class TestFormatOverall:
    def test_ram_only(self) -> None:
        lines = format_overall(False, 3072, 0).splitlines()
        assert lines[0] == "-" * 33
        assert lines[1] == " " * 26 + "3.0 MiB"
        assert lines[2] == "=" * 33

    def test_with_swap(self) -> None:
        lines = format_overall(True, 3072, 16).splitlines()
        assert lines[0] == "-" * 45
        assert lines[1].endswith("3.0 MiB    16.0 KiB")
        assert len(lines[1]) == 45


def test_format_bytes_total() -> None:
    assert format_bytes_total(3) == "3072"
