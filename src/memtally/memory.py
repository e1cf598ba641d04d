"""Per-process memory records parsed from statm or smaps.

Two sources are supported:

- statm: seven space-separated page counts. Cheap, but shared pages are only
  a rough estimate, and meaningless on some 2.6 kernels.
- smaps / smaps_rollup: "Field: value kB" lines, per mapping or pre-summed.
  With Pss present, shared memory is the process's proportional share, so
  summing it across processes does not double count.

All sizes are integer KiB.
"""

import hashlib
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from memtally.lost import LostProcess, LostReason
from memtally.procfs import ProcFS, ProcfsError
from memtally.sysinfo import PAGE_SIZE_KIB, KernelVersion, shared_unreported

if TYPE_CHECKING:
    from memtally.target import Target

log = structlog.get_logger()

STATM_FIELDS = ("size", "resident", "shared", "text", "lib", "data", "dirty")

# smaps fields folded into each PerProcessMemory attribute
_PRIVATE_FIELDS = frozenset({"Private_Clean", "Private_Dirty", "Private_Hugetlb"})
_SHARED_FIELDS = frozenset({"Shared_Clean", "Shared_Dirty"})
_SMAPS_FIELDS = _PRIVATE_FIELDS | _SHARED_FIELDS | {"Shared_Hugetlb", "Swap", "SwapPss", "Pss"}


@dataclass(frozen=True)
class PerProcessMemory:
    """Memory attributed to one process, in KiB."""

    private: int = 0
    shared: int = 0
    shared_huge: int = 0
    swap: int = 0
    fingerprint: int = 0  # Hash of the raw accounting text


def fingerprint(text: str) -> int:
    """Stable 64-bit hash of raw accounting text.

    Two processes with byte-identical smaps share one address space.
    """
    digest = hashlib.blake2b(text.encode("utf-8", errors="surrogateescape"), digest_size=8)
    return int.from_bytes(digest.digest(), "big")


def parse_from_statm(
    text: str,
    kernel: KernelVersion,
    page_size_kib: int = PAGE_SIZE_KIB,
) -> PerProcessMemory | None:
    """Parse the statm format.

    Args:
        text: Contents of /proc/<pid>/statm
        kernel: Running kernel version; decides whether shared is usable
        page_size_kib: System page size in KiB

    Returns:
        PerProcessMemory, or None if the text is malformed.
    """
    parts = text.split()
    if len(parts) < len(STATM_FIELDS):
        return None
    if not all(p.isdigit() for p in parts[: len(STATM_FIELDS)]):
        return None

    resident = int(parts[1]) * page_size_kib
    shared = int(parts[2]) * page_size_kib

    if shared_unreported(kernel):
        # shared here is the file-backed extent, not sharing, and may exceed resident
        return PerProcessMemory(private=resident, fingerprint=fingerprint(text))
    if shared > resident:
        return None
    return PerProcessMemory(
        private=resident - shared,
        shared=shared,
        fingerprint=fingerprint(text),
    )


def parse_from_smaps(text: str) -> PerProcessMemory:
    """Parse the smaps or smaps_rollup format.

    Mapping header lines and fields not used for accounting are skipped.

    Raises:
        ValueError: A used field has a non-numeric value, or no used field is
            present at all.
    """
    totals = dict.fromkeys(_SMAPS_FIELDS, 0)
    seen: set[str] = set()

    for line in text.splitlines():
        key, sep, rest = line.partition(":")
        if not sep or key not in totals:
            continue
        value = rest.split()
        if not value or not value[0].isdigit():
            raise ValueError(f"Bad smaps value for {key}: {rest.strip()!r}")
        totals[key] += int(value[0])
        seen.add(key)

    if not seen:
        raise ValueError("No memory accounting fields found")

    private = sum(totals[k] for k in _PRIVATE_FIELDS)
    shared = sum(totals[k] for k in _SHARED_FIELDS)
    swap = totals["Swap"]

    if "Pss" in seen:
        # Pss counts private pages in full plus a share of each shared page
        # Clamped at 0; Pss may round to just below the private total
        shared = max(0, totals["Pss"] - (private - totals["Private_Hugetlb"]))
    if "SwapPss" in seen:
        swap = totals["SwapPss"]

    return PerProcessMemory(
        private=private,
        shared=shared,
        shared_huge=totals["Shared_Hugetlb"],
        swap=swap,
        fingerprint=fingerprint(text),
    )


def _read_smaps(pid: int, proc: ProcFS) -> str:
    name = "smaps_rollup" if proc.exists(pid, "smaps_rollup") else "smaps"
    try:
        return proc.read_text(pid, name)
    except ProcfsError as e:
        raise LostProcess(pid, LostReason.BAD_SMAPS) from e


def read_mem_stats(target: "Target", pid: int, proc: ProcFS) -> PerProcessMemory:
    """Read and parse the best available memory accounting for a process.

    Prefers smaps_rollup, then smaps when the target kernel has smaps, and
    falls back to statm otherwise.

    Raises:
        LostProcess: The accounting file is missing or malformed.
    """
    if target.has_smaps:
        text = _read_smaps(pid, proc)
        try:
            return parse_from_smaps(text)
        except ValueError as e:
            log.debug("smaps_malformed", pid=pid, error=str(e))
            raise LostProcess(pid, LostReason.BAD_SMAPS) from e

    try:
        text = proc.read_text(pid, "statm")
    except ProcfsError as e:
        raise LostProcess(pid, LostReason.NO_STATM) from e

    stats = parse_from_statm(text, target.kernel)
    if stats is None:
        raise LostProcess(pid, LostReason.BAD_STATM)
    return stats
