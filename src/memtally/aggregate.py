"""Per-program totals from per-process memory records."""

from dataclasses import dataclass, field
from typing import Hashable, Iterable, Mapping, TypeVar

from memtally.memory import PerProcessMemory

K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True)
class CommandTotal:
    """Memory used by all processes grouped under one key, in KiB."""

    private: int
    shared: int
    swap: int
    count: int

    @property
    def ram(self) -> int:
        """Private plus shared: the RAM used by the program."""
        return self.private + self.shared


@dataclass
class _Accumulator:
    has_pss: bool
    private: int = 0
    shared: int = 0
    shared_huge: int = 0
    swap: int = 0
    count: int = 0
    fingerprints: set[int] = field(default_factory=set)

    def add(self, mem: PerProcessMemory) -> None:
        self.private += mem.private
        self.swap += mem.swap
        if self.has_pss:
            # Proportional shares sum without double counting
            self.shared += mem.shared
        else:
            # Processes of one program map the same libraries
            self.shared = max(self.shared, mem.shared)
        # Hugetlb pages are not covered by Pss
        self.shared_huge = max(self.shared_huge, mem.shared_huge)
        self.count += 1
        self.fingerprints.add(mem.fingerprint)

    def total(self) -> CommandTotal:
        private, shared = self.private, self.shared
        if self.count > 1 and len(self.fingerprints) == 1:
            # Identical accounting in every process means one address space
            # cloned with CLONE_VM but not CLONE_THREAD; count it once.
            private //= self.count
            if self.has_pss:
                shared //= self.count
        return CommandTotal(
            private=private,
            shared=shared + self.shared_huge,
            swap=self.swap,
            count=self.count,
        )


def amass(has_pss: bool, pairs: Iterable[tuple[K, PerProcessMemory]]) -> dict[K, CommandTotal]:
    """Group per-process records by key into totals.

    Args:
        has_pss: Whether shared values are proportional (Pss based)
        pairs: (key, record) pairs; the key is a name or a (pid, name) tuple

    Returns:
        Totals keyed in order of first occurrence.
    """
    groups: dict[K, _Accumulator] = {}
    for key, mem in pairs:
        acc = groups.get(key)
        if acc is None:
            acc = groups[key] = _Accumulator(has_pss=has_pss)
        acc.add(mem)
    return {key: acc.total() for key, acc in groups.items()}


def overall_totals(totals: Mapping[object, CommandTotal]) -> tuple[int, int]:
    """Sum (ram, swap) over all programs."""
    ram = sum(t.ram for t in totals.values())
    swap = sum(t.swap for t in totals.values())
    return ram, swap
