"""Dataclasses and flag sets shared across modules."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DETACHED = "(detached)"


def printable(text: str) -> str:
    """Replace bytes git printed outside UTF-8 with U+FFFD so the text can be written anywhere."""
    return text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


class FileStatus(enum.Flag):
    """Per-path working tree state. A path can be index-dirty and worktree-dirty at once."""

    CURRENT = 0
    INDEX_NEW = enum.auto()
    INDEX_MODIFIED = enum.auto()
    INDEX_DELETED = enum.auto()
    INDEX_RENAMED = enum.auto()
    INDEX_TYPECHANGE = enum.auto()
    WT_NEW = enum.auto()
    WT_MODIFIED = enum.auto()
    WT_DELETED = enum.auto()
    WT_TYPECHANGE = enum.auto()
    WT_RENAMED = enum.auto()
    IGNORED = enum.auto()
    CONFLICTED = enum.auto()

    @property
    def labels(self) -> list[str]:
        return [member.name for member in FileStatus if member.value and member in self]

    def describe(self) -> str:
        return " | ".join(self.labels) or "CURRENT"


class CommitDetailOptions(enum.Flag):
    """Which last-commit fields to show in a report."""

    DATE = 1
    HASH = 2
    MESSAGE = 4

    @classmethod
    def none(cls) -> CommitDetailOptions:
        return cls(0)

    @classmethod
    def all(cls) -> CommitDetailOptions:
        return cls.DATE | cls.HASH | cls.MESSAGE

    @classmethod
    def parse(cls, text: str | None) -> CommitDetailOptions:
        """Parse a comma separated list such as ``"date,HASH"``.

        Matching is case-insensitive, surrounding whitespace is ignored and
        ``all`` selects every field. Unknown names are dropped, so parsing
        never fails.
        """

        options = cls.none()
        for token in (text or "").lower().split(","):
            token = token.strip()
            if token == "all":
                options |= cls.all()
            elif token.upper() in cls.__members__:
                options |= cls[token.upper()]
        return options


@dataclass(frozen=True)
class StatusEntry:
    """A single line of working tree status."""

    path: str
    status: FileStatus
    original_path: str | None = None

    @property
    def display_path(self) -> str:
        if self.original_path:
            return f"{self.original_path} -> {self.path}"
        return self.path


@dataclass(frozen=True)
class CommitInfo:
    """Metadata of the commit HEAD points at."""

    hash: str
    timestamp: int
    message: str

    @property
    def summary(self) -> str:
        return self.message.split("\n", 1)[0].rstrip("\r")

    @property
    def date(self) -> datetime | None:
        """Commit time in UTC, or ``None`` when it lies outside what ``datetime`` can hold."""
        try:
            return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None

    @property
    def formatted_date(self) -> str:
        date = self.date
        if date is None:
            return f"@{self.timestamp} (out of range)"
        return date.strftime(DATE_FORMAT)


@dataclass(frozen=True)
class StatusReport:
    """Summary of one watched repository for a single refresh cycle."""

    path: Path
    branch: str | None = None
    entries: tuple[StatusEntry, ...] = ()
    options: CommitDetailOptions = CommitDetailOptions.none()
    commit: CommitInfo | None = None
    resolution_error: str | None = None
    status_error: str | None = None
    commit_error: str | None = None

    @property
    def resolved(self) -> bool:
        return self.resolution_error is None

    @property
    def healthy(self) -> bool:
        return self.resolved and self.status_error is None and self.commit_error is None


__all__ = [
    "DATE_FORMAT",
    "DETACHED",
    "printable",
    "FileStatus",
    "CommitDetailOptions",
    "StatusEntry",
    "CommitInfo",
    "StatusReport",
]
