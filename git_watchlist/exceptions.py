"""Custom error hierarchy for git-watchlist."""

from __future__ import annotations

from pathlib import Path


class WatchlistError(RuntimeError):
    """Base error for the CLI."""


class StoreError(WatchlistError):
    """Raised when the watchlist database cannot be read or written."""


class ConfigError(WatchlistError):
    """Raised when a setting is malformed and cannot be defaulted."""


class ResolutionError(WatchlistError):
    """Raised when a registered path is not a readable git repository."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class InspectionError(WatchlistError):
    """Raised when status or commit lookup fails for a resolved repository."""


class GitCommandError(WatchlistError):
    """Raised when git exits non-zero or cannot be started inside a repository."""

    def __init__(
        self,
        command: list[str],
        returncode: int,
        *,
        cwd: Path | None = None,
        stdout: str | None = None,
        stderr: str | None = None,
    ):
        self.command = command
        self.returncode = returncode
        self.cwd = cwd
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        location = f" in {cwd}" if cwd else ""
        message = f"`{' '.join(command)}` failed{location} (exit {returncode})"
        # stdout of a failed inspection is partial porcelain output, not a diagnostic
        if self.stderr.strip():
            message = f"{message}: {self.stderr.strip()}"
        super().__init__(message)


__all__ = [
    "WatchlistError",
    "StoreError",
    "ConfigError",
    "ResolutionError",
    "InspectionError",
    "GitCommandError",
]
