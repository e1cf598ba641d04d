"""Low-level procfs interface for per-process memory accounting.

Reads files below a procfs root (normally /proc) as text. This is the only
module that knows how procfs paths are laid out.

This module provides access to:
- per-pid files: exe, status, cmdline, statm, smaps, smaps_rollup, maps
- global files: meminfo, sys/kernel/osrelease
- the list of numeric pid directories

Absence of an entry is reported as ProcNotFound, lack of permission as
ProcPermissionDenied. Other OSErrors propagate unchanged.
"""

import errno
import os
from pathlib import Path

import structlog

log = structlog.get_logger()

# ─────────────────────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────────────────────

DEFAULT_ROOT = "/proc"

PID_FILES = frozenset(
    {
        "exe",
        "status",
        "cmdline",
        "statm",
        "smaps",
        "smaps_rollup",
        "maps",
    }
)

_NOT_FOUND_ERRNOS = frozenset({errno.ENOENT, errno.ESRCH, errno.ENOTDIR})
_DENIED_ERRNOS = frozenset({errno.EACCES, errno.EPERM})


# ─────────────────────────────────────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────────────────────────────────────


class ProcfsError(Exception):
    """A procfs entry could not be read."""

    def __init__(self, path: Path, pid: int | None = None):
        super().__init__(str(path))
        self.path = path
        self.pid = pid


class ProcNotFound(ProcfsError):
    """The entry does not exist (process gone, kernel thread, old kernel)."""


class ProcPermissionDenied(ProcfsError):
    """The entry exists but may not be read by this user."""


def _translate(e: OSError, path: Path, pid: int | None) -> Exception:
    if e.errno in _NOT_FOUND_ERRNOS:
        return ProcNotFound(path, pid)
    if e.errno in _DENIED_ERRNOS:
        return ProcPermissionDenied(path, pid)
    return e


# ─────────────────────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────────────────────


class ProcFS:
    """Reader for a procfs tree.

    Args:
        root: Mount point of procfs. Tests point this at a fake tree.
    """

    def __init__(self, root: str | Path = DEFAULT_ROOT):
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"ProcFS({str(self.root)!r})"

    def pid_path(self, pid: int, name: str) -> Path:
        if name not in PID_FILES:
            raise ValueError(f"Unknown procfs entry: {name!r}")
        return self.root / str(pid) / name

    def read_text(self, pid: int, name: str) -> str:
        """Read a per-pid file as text.

        Raises:
            ProcNotFound: The file (or the process) does not exist.
            ProcPermissionDenied: The file cannot be read by this user.
        """
        path = self.pid_path(pid, name)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise _translate(e, path, pid) from e
        return data.decode("utf-8", errors="replace")

    def read_link(self, pid: int, name: str) -> str:
        """Read the target of a per-pid symlink (e.g. exe)."""
        path = self.pid_path(pid, name)
        try:
            return os.readlink(path)
        except OSError as e:
            raise _translate(e, path, pid) from e

    def read_global(self, name: str) -> str:
        """Read a process-independent file such as meminfo."""
        path = self.root / name
        try:
            data = path.read_bytes()
        except OSError as e:
            raise _translate(e, path, None) from e
        return data.decode("utf-8", errors="replace")

    def exists(self, pid: int, name: str) -> bool:
        return self.pid_path(pid, name).exists()

    def global_exists(self, name: str) -> bool:
        return (self.root / name).exists()

    def path_exists(self, path: str) -> bool:
        """Check whether an arbitrary filesystem path exists.

        Used for executable paths named by the kernel, which live outside procfs.
        """
        return os.path.lexists(path)

    def list_pids(self) -> list[int]:
        """List numeric entries of the root, sorted ascending."""
        try:
            names = os.listdir(self.root)
        except OSError as e:
            raise _translate(e, self.root, None) from e
        pids = sorted(int(n) for n in names if n.isdigit())
        log.debug("pids_listed", root=str(self.root), count=len(pids))
        return pids
