"""Shared test fixtures for memtally."""

import os
import shutil
from pathlib import Path

import pytest

from memtally.procfs import ProcFS
from memtally.target import Target


class FakeProc:
    """Builds a fake procfs tree under a temporary directory.

    Files are real files and exe entries are real symlinks, so ProcFS reads
    them exactly as it would read /proc.
    """

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    @property
    def proc(self) -> ProcFS:
        return ProcFS(self.root)

    def set_kernel(self, release: str) -> None:
        path = self.root / "sys" / "kernel" / "osrelease"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(release + "\n")

    def set_meminfo(self, text: str) -> None:
        (self.root / "meminfo").write_text(text)

    def add_process(
        self,
        pid: int,
        exe: str | None = None,
        name: str | None = None,
        ppid: int = 1,
        cmdline: list[str] | None = None,
        statm: str | None = None,
        smaps: str | None = None,
        smaps_rollup: str | None = None,
        status: str | None = None,
    ) -> Path:
        """Create /<pid> with the given entries; None leaves an entry out."""
        pid_dir = self.root / str(pid)
        pid_dir.mkdir(parents=True, exist_ok=True)
        if exe is not None:
            os.symlink(exe, pid_dir / "exe")
        if status is not None:
            (pid_dir / "status").write_text(status)
        elif name is not None:
            (pid_dir / "status").write_text(
                f"Name:\t{name}\nUmask:\t0022\nState:\tS (sleeping)\n"
                f"Tgid:\t{pid}\nPid:\t{pid}\nPPid:\t{ppid}\n"
            )
        if cmdline is not None:
            (pid_dir / "cmdline").write_bytes(
                b"".join(arg.encode() + b"\0" for arg in cmdline)
            )
        if statm is not None:
            (pid_dir / "statm").write_text(statm)
        if smaps is not None:
            (pid_dir / "smaps").write_text(smaps)
        if smaps_rollup is not None:
            (pid_dir / "smaps_rollup").write_text(smaps_rollup)
        return pid_dir

    def remove_process(self, pid: int) -> None:
        shutil.rmtree(self.root / str(pid))


def make_smaps(
    private_clean: int = 0,
    private_dirty: int = 0,
    shared_clean: int = 0,
    shared_dirty: int = 0,
    pss: int | None = None,
    swap: int = 0,
    swap_pss: int | None = None,
    private_hugetlb: int = 0,
    shared_hugetlb: int = 0,
) -> str:
    """Render a single-mapping smaps text with the given field values in kB."""
    lines = [
        "00400000-0040b000 r-xp 00000000 08:01 1234 /usr/bin/prog",
        "Size:                 44 kB",
        "Rss:                  40 kB",
    ]
    if pss is not None:
        lines.append(f"Pss:                 {pss} kB")
    lines += [
        f"Shared_Clean:        {shared_clean} kB",
        f"Shared_Dirty:        {shared_dirty} kB",
        f"Private_Clean:       {private_clean} kB",
        f"Private_Dirty:       {private_dirty} kB",
        "Referenced:           40 kB",
        "Anonymous:             0 kB",
        f"Swap:                 {swap} kB",
    ]
    if swap_pss is not None:
        lines.append(f"SwapPss:              {swap_pss} kB")
    lines += [
        f"Shared_Hugetlb:       {shared_hugetlb} kB",
        f"Private_Hugetlb:      {private_hugetlb} kB",
        "VmFlags: rd ex mr mw me dw",
    ]
    return "\n".join(lines) + "\n"


def make_target(pids: tuple[int, ...] = (1,), **kwargs) -> Target:
    """Create a Target for testing; defaults to a modern kernel with Pss."""
    defaults = dict(
        kernel=(6, 8, 0),
        has_pss=True,
        has_swap_pss=True,
        has_smaps=True,
        ram_flaw=None,
        swap_flaw=None,
    )
    defaults.update(kwargs)
    return Target(pids=pids, **defaults)


@pytest.fixture
def fake_proc(tmp_path: Path) -> FakeProc:
    """An empty fake procfs tree with a modern kernel release."""
    fake = FakeProc(tmp_path / "proc")
    fake.set_kernel("6.8.0-45-generic")
    return fake


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    """Directory for fake executables that exe links can point at."""
    path = tmp_path / "bin"
    path.mkdir()
    return path
