"""Kernel capability probe and the Target descriptor.

A Target is built once per run. It records which pids to report on, what the
kernel exposes (smaps, Pss, SwapPss) and the resulting accuracy flaws, and is
passed explicitly to every later stage.
"""

import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, NamedTuple

import structlog

from memtally.config import ReportChoices
from memtally.procfs import ProcFS, ProcfsError
from memtally.sysinfo import (
    KernelVersion,
    KernelVersionError,
    read_kernel_version,
    shared_unreported,
)

log = structlog.get_logger()

_HAS_PSS = re.compile(r"^Pss:", re.MULTILINE)
_HAS_SWAP_PSS = re.compile(r"^SwapPss:", re.MULTILINE)

LEGACY_MEMINFO = "meminfo"
LEGACY_INACTIVE_FIELD = "Inact_"


class RamFlaw(Enum):
    """Known inaccuracies in the RAM figures."""

    NO_SHARED_MEM = "no_shared_mem"  # Shared memory not reported at all
    SOME_SHARED_MEM = "some_shared_mem"  # Shared memory partly reported
    EXACT_FOR_ISOLATED_MEM = "exact_for_isolated_mem"  # Over-counts across processes


class SwapFlaw(Enum):
    """Known inaccuracies in the swap figures."""

    NO_SWAP = "no_swap"
    EXACT_FOR_ISOLATED_SWAP = "exact_for_isolated_swap"


class TargetError(Exception):
    """The run cannot start: pids unreachable or the kernel cannot be probed."""


@dataclass(frozen=True)
class Target:
    """What to measure and how accurately it can be measured."""

    pids: tuple[int, ...]
    kernel: KernelVersion
    has_pss: bool = False
    has_swap_pss: bool = False
    has_smaps: bool = False
    ram_flaw: RamFlaw | None = None
    swap_flaw: SwapFlaw | None = None

    def __post_init__(self) -> None:
        if not self.pids:
            raise ValueError("Target needs at least one pid")


# ─────────────────────────────────────────────────────────────────────────────
# Flaw classification
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ProbeFacts:
    """Inputs to flaw classification."""

    kernel: KernelVersion
    has_smaps: bool
    has_pss: bool
    has_swap_pss: bool
    meminfo_has_inactive: bool = False  # Only read for 2.4 kernels


class FlawRule(NamedTuple):
    matches: Callable[[ProbeFacts], bool]
    ram: RamFlaw | None
    swap: SwapFlaw | None


def _is_24(f: ProbeFacts) -> bool:
    return f.kernel[:2] == (2, 4)


def _is_26(f: ProbeFacts) -> bool:
    return f.kernel[:2] == (2, 6)


# Evaluated top to bottom; the first matching rule wins.
FLAW_RULES: tuple[FlawRule, ...] = (
    FlawRule(
        lambda f: _is_24(f) and f.meminfo_has_inactive,
        RamFlaw.EXACT_FOR_ISOLATED_MEM,
        SwapFlaw.NO_SWAP,
    ),
    FlawRule(_is_24, RamFlaw.SOME_SHARED_MEM, SwapFlaw.NO_SWAP),
    FlawRule(
        lambda f: _is_26(f) and f.has_smaps and f.has_pss,
        None,
        SwapFlaw.EXACT_FOR_ISOLATED_SWAP,
    ),
    FlawRule(
        lambda f: _is_26(f) and f.has_smaps,
        RamFlaw.EXACT_FOR_ISOLATED_MEM,
        SwapFlaw.EXACT_FOR_ISOLATED_SWAP,
    ),
    FlawRule(
        lambda f: _is_26(f) and shared_unreported(f.kernel),
        RamFlaw.SOME_SHARED_MEM,
        SwapFlaw.NO_SWAP,
    ),
    FlawRule(_is_26, RamFlaw.NO_SHARED_MEM, SwapFlaw.NO_SWAP),
    FlawRule(lambda f: f.kernel[0] > 2 and f.has_smaps and f.has_swap_pss, None, None),
    FlawRule(
        lambda f: f.kernel[0] > 2 and f.has_smaps,
        None,
        SwapFlaw.EXACT_FOR_ISOLATED_SWAP,
    ),
    FlawRule(lambda f: True, RamFlaw.EXACT_FOR_ISOLATED_MEM, SwapFlaw.NO_SWAP),
)


def classify_flaws(facts: ProbeFacts) -> tuple[RamFlaw | None, SwapFlaw | None]:
    """Return the (ram, swap) flaws for the probed kernel capabilities."""
    for rule in FLAW_RULES:
        if rule.matches(facts):
            return rule.ram, rule.swap
    raise AssertionError("FLAW_RULES must end with a catch-all rule")


def _meminfo_has_inactive(proc: ProcFS) -> bool:
    if not proc.global_exists(LEGACY_MEMINFO):
        return False
    try:
        return LEGACY_INACTIVE_FIELD in proc.read_global(LEGACY_MEMINFO)
    except ProcfsError:
        return False


def make_target(pids: list[int] | tuple[int, ...], proc: ProcFS) -> Target:
    """Probe the kernel and the first pid's smaps, and build the Target.

    Raises:
        TargetError: The kernel version or the probe pid's smaps is unreadable.
    """
    if not pids:
        raise TargetError("no process IDs to report on")
    probe_pid = pids[0]

    try:
        kernel = read_kernel_version(proc)
    except KernelVersionError as e:
        raise TargetError(str(e)) from e

    has_smaps = proc.exists(probe_pid, "smaps")
    has_pss = has_swap_pss = False
    if has_smaps:
        try:
            smaps = proc.read_text(probe_pid, "smaps")
        except ProcfsError as e:
            raise TargetError(f"cannot read memory accounting for pid {probe_pid}") from e
        has_pss = bool(_HAS_PSS.search(smaps))
        has_swap_pss = bool(_HAS_SWAP_PSS.search(smaps))

    facts = ProbeFacts(
        kernel=kernel,
        has_smaps=has_smaps,
        has_pss=has_pss,
        has_swap_pss=has_swap_pss,
        meminfo_has_inactive=kernel[:2] == (2, 4) and _meminfo_has_inactive(proc),
    )
    ram_flaw, swap_flaw = classify_flaws(facts)

    target = Target(
        pids=tuple(pids),
        kernel=kernel,
        has_pss=has_pss,
        has_swap_pss=has_swap_pss,
        has_smaps=has_smaps,
        ram_flaw=ram_flaw,
        swap_flaw=swap_flaw,
    )
    log.info(
        "target_built",
        pids=len(target.pids),
        kernel=".".join(map(str, kernel)),
        has_smaps=has_smaps,
        has_pss=has_pss,
        has_swap_pss=has_swap_pss,
        ram_flaw=ram_flaw.value if ram_flaw else None,
        swap_flaw=swap_flaw.value if swap_flaw else None,
    )
    return target


# ─────────────────────────────────────────────────────────────────────────────
# Pid admission
# ─────────────────────────────────────────────────────────────────────────────


def pid_exists(pid: int, proc: ProcFS) -> bool:
    """True if the pid's executable link can be read.

    Missing and inaccessible processes are treated alike.
    """
    try:
        proc.read_link(pid, "exe")
    except ProcfsError:
        return False
    return True


def is_root() -> bool:
    return os.geteuid() == 0


def all_known_pids(proc: ProcFS) -> list[int]:
    """All pids with a readable executable link (skips kernel threads)."""
    return [pid for pid in proc.list_pids() if pid_exists(pid, proc)]


def verify(choices: ReportChoices, proc: ProcFS) -> Target:
    """Check the requested pids and build the Target.

    Raises:
        TargetError: Requested pids are missing, no pid is accessible, or the
            caller is not root and named no pids.
    """
    if choices.pids is not None:
        missing = [pid for pid in choices.pids if not pid_exists(pid, proc)]
        if missing:
            raise TargetError(f"halted: these PIDs cannot be found {missing}")
        return make_target(list(choices.pids), proc)

    if not is_root():
        raise TargetError("run as root if no pids given using -p")
    pids = all_known_pids(proc)
    if not pids:
        raise TargetError("did not find any process IDs")
    return make_target(pids, proc)


# ─────────────────────────────────────────────────────────────────────────────
# Diagnosis text
# ─────────────────────────────────────────────────────────────────────────────

_RAM_FLAW_TEXT = {
    RamFlaw.NO_SHARED_MEM: (
        "shared memory is not reported by this system.\n"
        "Values reported will be too large, and totals are not reported"
    ),
    RamFlaw.SOME_SHARED_MEM: (
        "shared memory is not reported accurately by this system.\n"
        "Values reported could be too large, and totals are not reported"
    ),
    RamFlaw.EXACT_FOR_ISOLATED_MEM: (
        "shared memory is slightly over-estimated by this system\n"
        "for each program, so totals are not reported."
    ),
}

_SWAP_FLAW_TEXT = {
    SwapFlaw.NO_SWAP: "swap is not reported by this system.",
    SwapFlaw.EXACT_FOR_ISOLATED_SWAP: (
        "swap is over-estimated by this system\nfor each program, so totals are not reported."
    ),
}


def ram_flaw_text(flaw: RamFlaw) -> str:
    return _RAM_FLAW_TEXT[flaw]


def swap_flaw_text(flaw: SwapFlaw) -> str:
    return _SWAP_FLAW_TEXT[flaw]
