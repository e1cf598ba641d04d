"""Parsers for the executable link, status and cmdline of a process."""

import re
from dataclasses import dataclass
from enum import Enum

DELETED_SUFFIX = " (deleted)"

_CMDLINE_SEP = re.compile(r"[\x00\s]+")


@dataclass(frozen=True)
class ExeInfo:
    """Target of a process's executable link."""

    original: str
    deleted: bool = False

    @property
    def target(self) -> str:
        """The link text as the kernel reports it."""
        return self.original + DELETED_SUFFIX if self.deleted else self.original


@dataclass(frozen=True)
class StatusInfo:
    """The fields of a status file needed for naming."""

    name: str
    parent: int


class BadStatusReason(Enum):
    NO_NAME = "no_name"
    NO_PARENT = "no_parent"


class BadStatus(ValueError):
    """A status file lacks a usable Name or PPid."""

    def __init__(self, reason: BadStatusReason):
        super().__init__(f"status has {reason.value.replace('_', ' ')}")
        self.reason = reason


def parse_exe_info(raw: str) -> ExeInfo:
    """Parse an exe link target.

    Some kernels leave a NUL in the target; anything after it is dropped.
    """
    target = raw.split("\0", 1)[0]
    if target.endswith(DELETED_SUFFIX):
        return ExeInfo(original=target[: -len(DELETED_SUFFIX)], deleted=True)
    return ExeInfo(original=target)


def parse_status_info(text: str) -> StatusInfo:
    """Parse Name and PPid from the text of a status file.

    Raises:
        BadStatus: Name is missing or blank, or PPid is missing or not a number.
    """
    fields: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if sep:
            fields[key.strip()] = value.strip()

    name = fields.get("Name", "")
    if not name:
        raise BadStatus(BadStatusReason.NO_NAME)

    ppid = fields.get("PPid", "")
    if not ppid.isdigit():
        raise BadStatus(BadStatusReason.NO_PARENT)

    return StatusInfo(name=name, parent=int(ppid))


def parse_cmdline(text: str) -> list[str]:
    """Split a cmdline file into its arguments.

    Returns an empty list when there is no usable command line (kernel threads,
    zombies).
    """
    return [arg for arg in _CMDLINE_SEP.split(text.rstrip("\0").strip()) if arg]
