"""Sampling cycles: name and measure every target pid, then aggregate.

A single-shot report runs one cycle. The Watcher repeats cycles on a fixed
period over the pids of the original target until every one of them is gone.
"""

import asyncio
import signal
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Hashable, Mapping

import structlog

from memtally import logging as console
from memtally.aggregate import CommandTotal, amass
from memtally.lost import LostProcess
from memtally.memory import PerProcessMemory, read_mem_stats
from memtally.naming import Namer
from memtally.procfs import ProcFS
from memtally.target import Target

log = structlog.get_logger()

Printer = Callable[[Mapping[Hashable, CommandTotal]], None]


@dataclass
class CycleResult:
    """Totals for the processes that were sampled, and those that were lost."""

    totals: dict[Hashable, CommandTotal] = field(default_factory=dict)
    lost: list[LostProcess] = field(default_factory=list)

    @property
    def lost_pids(self) -> list[int]:
        return [lp.pid for lp in self.lost]


def read_name_and_stats(
    target: Target, namer: Namer, pid: int, proc: ProcFS
) -> tuple[int, str, PerProcessMemory]:
    """Resolve the display name and memory record of one process.

    Raises:
        LostProcess: The process vanished or its files are unusable.
    """
    name = namer(pid, proc)
    mem = read_mem_stats(target, pid, proc)
    return pid, name, mem


def sample_once(target: Target, namer: Namer, proc: ProcFS, by_pid: bool) -> CycleResult:
    """Run one cycle over every pid of the target.

    Lost processes are collected, never raised.

    Args:
        target: Probed capabilities and the pids to sample
        namer: Turns a pid into a display name
        proc: procfs reader
        by_pid: Key totals by (pid, name) instead of by name
    """
    pairs: list[tuple[Hashable, PerProcessMemory]] = []
    lost: list[LostProcess] = []
    for pid in target.pids:
        try:
            _, name, mem = read_name_and_stats(target, namer, pid, proc)
        except LostProcess as e:
            log.debug("process_lost", pid=e.pid, reason=e.reason.value)
            lost.append(e)
            continue
        pairs.append(((pid, name) if by_pid else name, mem))

    return CycleResult(totals=amass(target.has_pss, pairs), lost=lost)


def report_once(
    target: Target, namer: Namer, printer: Printer, proc: ProcFS, by_pid: bool
) -> CycleResult:
    """Sample once, warn about lost pids and print whatever was measured.

    The printer is skipped when no process could be measured.
    """
    result = sample_once(target, namer, proc, by_pid)
    if result.lost:
        console.processes_stopped(result.lost_pids)
    if result.totals:
        printer(result.totals)
    return result


class SamplingState(Enum):
    SAMPLING = "sampling"
    TERMINATED = "terminated"


class Watcher:
    """Repeats sampling cycles until every target process has stopped.

    Each cycle starts again from the original target pids, so a process that
    was lost in one cycle is tried again in the next.
    """

    def __init__(
        self,
        target: Target,
        namer: Namer,
        printer: Printer,
        proc: ProcFS,
        by_pid: bool,
        period: float,
    ):
        if period <= 0:
            raise ValueError(f"period must be > 0, got {period}")
        self.target = target
        self.namer = namer
        self.printer = printer
        self.proc = proc
        self.by_pid = by_pid
        self.period = period

        self.state = SamplingState.SAMPLING
        self.cycles = 0
        self._stop_event = asyncio.Event()

    def stop(self) -> None:
        """Interrupt the wait between cycles and end the watch."""
        self._stop_event.set()

    def install_signal_handlers(self) -> None:
        """Stop cleanly on SIGINT and SIGTERM."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.stop)

    async def run(self) -> None:
        """Sample, print and wait until all processes are gone or stop() is called."""
        log.info("watch_started", pids=len(self.target.pids), period=self.period)

        while self.state is SamplingState.SAMPLING:
            result = sample_once(self.target, self.namer, self.proc, self.by_pid)
            self.cycles += 1

            if not result.totals:
                console.processes_stopped(result.lost_pids)
                console.all_stopped()
                self.state = SamplingState.TERMINATED
                break

            if result.lost:
                console.processes_stopped(result.lost_pids)
            self.printer(result.totals)

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.period)
                self.state = SamplingState.TERMINATED  # Stop requested during wait
            except asyncio.TimeoutError:
                pass  # Normal timeout, sample again

        log.info("watch_finished", cycles=self.cycles)
