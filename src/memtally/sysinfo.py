"""Kernel version and page size detection."""

import os

from memtally.procfs import ProcFS, ProcfsError

KernelVersion = tuple[int, int, int]

OSRELEASE = "sys/kernel/osrelease"

# Kernels 2.6.1 to 2.6.9 report the total file-backed extent as "shared" in statm
SHARED_UNREPORTED_FIRST: KernelVersion = (2, 6, 1)
SHARED_UNREPORTED_LAST: KernelVersion = (2, 6, 9)

PAGE_SIZE_KIB = os.sysconf("SC_PAGE_SIZE") // 1024


class KernelVersionError(Exception):
    """The running kernel's version could not be determined."""


def parse_kernel_version(release: str) -> KernelVersion:
    """Parse a release string such as "6.8.0-45-generic" into (6, 8, 0).

    Suffixes after "-" or "_" are dropped, a missing patch level is 0 and a
    non-numeric minor or patch level is treated as 0.

    Raises:
        ValueError: The major version is not a number.
    """
    parts = release.strip().split(".")[:3]
    while len(parts) < 3:
        parts.append("0")

    numbers = []
    for i, part in enumerate(parts):
        for sep in "-_":
            part = part.split(sep)[0]
        if part.isdigit():
            numbers.append(int(part))
        elif i == 0:
            raise ValueError(f"Unrecognised kernel release: {release!r}")
        else:
            numbers.append(0)
    return numbers[0], numbers[1], numbers[2]


def read_kernel_version(proc: ProcFS) -> KernelVersion:
    """Read the running kernel's version from procfs.

    Raises:
        KernelVersionError: The release file is unreadable or unparsable.
    """
    try:
        release = proc.read_global(OSRELEASE)
    except ProcfsError as e:
        raise KernelVersionError(f"could not read kernel version from {e.path}") from e
    try:
        return parse_kernel_version(release)
    except ValueError as e:
        raise KernelVersionError(str(e)) from e


def shared_unreported(kernel: KernelVersion) -> bool:
    """True for kernels whose statm shared count is not real sharing."""
    return SHARED_UNREPORTED_FIRST <= kernel <= SHARED_UNREPORTED_LAST
