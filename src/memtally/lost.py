"""Reasons a process can drop out of a sampling cycle."""

from enum import Enum


class LostReason(Enum):
    """Why a process could not be named or measured."""

    NO_EXE_FILE = "no_exe_file"
    NO_STATUS_NAME = "no_status_name"
    NO_STATUS_PARENT = "no_status_parent"
    NO_CMDLINE = "no_cmdline"
    BAD_STATM = "bad_statm"
    NO_STATM = "no_statm"
    BAD_SMAPS = "bad_smaps"


class LostProcess(Exception):
    """A process could not be resolved during a cycle.

    Usually the process exited between listing and reading. Raised by the name
    resolver and memory reader, caught per process by the sampler.
    """

    def __init__(self, pid: int, reason: LostReason):
        super().__init__(f"pid {pid}: {reason.value}")
        self.pid = pid
        self.reason = reason

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LostProcess):
            return NotImplemented
        return (self.pid, self.reason) == (other.pid, other.reason)

    def __hash__(self) -> int:
        return hash((self.pid, self.reason))
