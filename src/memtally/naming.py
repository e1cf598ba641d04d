"""Display names for processes.

Processes are grouped under a program name. By default the name is the
file name of the executable without its extension, folded back to the
parent's name for workers whose executable differs from the program that
started them. With split-args naming, the full command line is used instead.
"""

import os
from typing import Callable

from memtally.lost import LostProcess, LostReason
from memtally.parsers import (
    BadStatus,
    BadStatusReason,
    StatusInfo,
    parse_cmdline,
    parse_exe_info,
    parse_status_info,
)
from memtally.procfs import ProcFS, ProcfsError

Namer = Callable[[int, ProcFS], str]

UPDATED_MARK = " [updated]"
DELETED_MARK = " [deleted]"


def base_name(path: str) -> str:
    """Final path component without its extension ("/opt/app/run.sh" -> "run")."""
    return os.path.splitext(os.path.basename(path))[0]


def _cmdline(pid: int, proc: ProcFS) -> list[str]:
    try:
        return parse_cmdline(proc.read_text(pid, "cmdline"))
    except ProcfsError:
        return []


def _name_from_cmdline(pid: int, proc: ProcFS, reason: LostReason) -> str:
    """Name a process after the first argument of its command line.

    The argument may hold the full path of a since-replaced executable (e.g.
    prelinked binaries), so it is marked [updated] when that path exists.
    """
    args = _cmdline(pid, proc)
    if not args:
        raise LostProcess(pid, reason)
    first = args[0]
    mark = UPDATED_MARK if proc.path_exists(first) else DELETED_MARK
    return base_name(first) + mark


def name_from_exe_only(pid: int, proc: ProcFS) -> str:
    """Name a process after its executable.

    Raises:
        LostProcess: Neither the executable link nor the command line is usable.
    """
    try:
        info = parse_exe_info(proc.read_link(pid, "exe"))
    except ProcfsError:
        return _name_from_cmdline(pid, proc, LostReason.NO_EXE_FILE)

    if not info.deleted:
        return base_name(info.original)
    # The executable was removed after the process started; if a file is back
    # at the same path, the program was upgraded in place.
    if proc.path_exists(info.original):
        return base_name(info.original) + UPDATED_MARK
    return _name_from_cmdline(pid, proc, LostReason.NO_CMDLINE)


def status_info(pid: int, proc: ProcFS) -> StatusInfo:
    """Read Name and PPid of a process.

    Raises:
        LostProcess: The status file is missing or lacks Name or PPid.
    """
    try:
        return parse_status_info(proc.read_text(pid, "status"))
    except ProcfsError as e:
        raise LostProcess(pid, LostReason.NO_STATUS_NAME) from e
    except BadStatus as e:
        reason = (
            LostReason.NO_STATUS_NAME
            if e.reason is BadStatusReason.NO_NAME
            else LostReason.NO_STATUS_PARENT
        )
        raise LostProcess(pid, reason) from e


def name_for(pid: int, proc: ProcFS) -> str:
    """Name a process, folding worker processes into their parent's name.

    The status Name is truncated by the kernel, so when it is a prefix of the
    executable name the longer executable name is kept. Otherwise the
    executable name is kept only if the parent runs the same executable, and
    the status Name is used as a last resort.
    """
    candidate = name_from_exe_only(pid, proc)
    status = status_info(pid, proc)
    if candidate.startswith(status.name):
        return candidate

    try:
        parent_name = name_from_exe_only(status.parent, proc)
    except LostProcess:
        return status.name
    return candidate if parent_name == candidate else status.name


def name_as_full_cmd(pid: int, proc: ProcFS) -> str:
    """Name a process after its whole command line."""
    args = _cmdline(pid, proc)
    if not args:
        raise LostProcess(pid, LostReason.NO_CMDLINE)
    return " ".join(args)
