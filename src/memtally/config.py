"""Configuration system for memtally."""

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit


@dataclass
class ReportConfig:
    """Defaults for the report command's flags."""

    show_swap: bool = False  # Add a swap column
    by_pid: bool = False  # One row per process instead of per program
    split_args: bool = False  # Name processes by their full command line
    watch_seconds: int = 0  # Repeat every N seconds; 0 reports once


@dataclass
class ProcfsConfig:
    """Where procfs is mounted."""

    root: str = "/proc"


@dataclass
class LoggingConfig:
    """JSON log file settings."""

    file_enabled: bool = False
    max_bytes: int = 5 * 1024 * 1024  # Max log file size (5MB)
    backup_count: int = 3  # Number of backup log files to keep


@dataclass(frozen=True)
class ReportChoices:
    """Everything one report run needs to know, after merging flags and config."""

    pids: tuple[int, ...] | None = None  # None means all accessible processes
    split_args: bool = False
    only_total: bool = False
    show_swap: bool = False
    by_pid: bool = False
    watch_seconds: int | None = None


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    report: ReportConfig = field(default_factory=ReportConfig)
    procfs: ProcfsConfig = field(default_factory=ProcfsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "memtally"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "memtally"

    @property
    def log_path(self) -> Path:
        """JSON log path."""
        return self.state_dir / "memtally.log"

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ("report", "procfs", "logging"):
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        Raises:
            ValueError: The file is not valid TOML or holds invalid values.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            report=_load_report_config(data.get("report", {})),
            procfs=_load_procfs_config(data.get("procfs", {})),
            logging=_load_logging_config(data.get("logging", {})),
        )

    def choices(
        self,
        pids: tuple[int, ...] | None = None,
        split_args: bool | None = None,
        only_total: bool = False,
        show_swap: bool | None = None,
        by_pid: bool | None = None,
        watch_seconds: int | None = None,
    ) -> ReportChoices:
        """Merge command line flags over the configured defaults.

        None means the flag was not given. A watch period of 0 disables watching.
        """
        r = self.report
        watch = watch_seconds if watch_seconds is not None else r.watch_seconds
        return ReportChoices(
            pids=pids,
            split_args=r.split_args if split_args is None else split_args,
            only_total=only_total,
            show_swap=r.show_swap if show_swap is None else show_swap,
            by_pid=r.by_pid if by_pid is None else by_pid,
            watch_seconds=watch or None,
        )


def _load_report_config(data: dict) -> ReportConfig:
    """Load report config from TOML data, using dataclass defaults for missing fields."""
    d = ReportConfig()
    watch_seconds = data.get("watch_seconds", d.watch_seconds)
    if watch_seconds < 0:
        raise ValueError(f"watch_seconds must be >= 0, got {watch_seconds}")
    return ReportConfig(
        show_swap=data.get("show_swap", d.show_swap),
        by_pid=data.get("by_pid", d.by_pid),
        split_args=data.get("split_args", d.split_args),
        watch_seconds=watch_seconds,
    )


def _load_procfs_config(data: dict) -> ProcfsConfig:
    """Load procfs config from TOML data."""
    d = ProcfsConfig()
    return ProcfsConfig(root=str(data.get("root", d.root)))


def _load_logging_config(data: dict) -> LoggingConfig:
    """Load logging config from TOML data."""
    d = LoggingConfig()
    max_bytes = data.get("max_bytes", d.max_bytes)
    backup_count = data.get("backup_count", d.backup_count)
    if max_bytes < 1:
        raise ValueError(f"max_bytes must be >= 1, got {max_bytes}")
    if backup_count < 0:
        raise ValueError(f"backup_count must be >= 0, got {backup_count}")
    return LoggingConfig(
        file_enabled=data.get("file_enabled", d.file_enabled),
        max_bytes=max_bytes,
        backup_count=backup_count,
    )
