"""Thin wrappers around git CLI commands used to inspect watched repositories."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Sequence

from .exceptions import GitCommandError
from .models import DETACHED, CommitInfo, FileStatus, StatusEntry

logger = logging.getLogger(__name__)

_INDEX_CODES = {
    "M": FileStatus.INDEX_MODIFIED,
    "T": FileStatus.INDEX_TYPECHANGE,
    "A": FileStatus.INDEX_NEW,
    "D": FileStatus.INDEX_DELETED,
    "R": FileStatus.INDEX_RENAMED,
    "C": FileStatus.INDEX_NEW,
}

_WORKTREE_CODES = {
    "M": FileStatus.WT_MODIFIED,
    "T": FileStatus.WT_TYPECHANGE,
    "A": FileStatus.WT_NEW,
    "D": FileStatus.WT_DELETED,
    "R": FileStatus.WT_RENAMED,
    "C": FileStatus.WT_NEW,
}

_UNMERGED = {"DD", "AU", "UD", "UA", "DU", "AA", "UU"}


def run_git(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run git and decode its output.

    Paths and commit messages are raw bytes to git, so undecodable bytes are
    kept as lone surrogates (like ``os.fsdecode``) instead of failing. Use
    ``models.printable`` before showing such text.
    """

    command = ["git", *args]
    logger.debug("Running command: %s (cwd=%s)", " ".join(command), cwd)
    try:
        result = subprocess.run(
            command,
            cwd=str(cwd) if cwd else None,
            text=True,
            encoding="utf-8",
            errors="surrogateescape",
            capture_output=True,
        )
    except OSError as exc:
        raise GitCommandError(command, 127, cwd=cwd, stderr=str(exc)) from exc
    if check and result.returncode != 0:
        raise GitCommandError(command, result.returncode, cwd=cwd, stdout=result.stdout, stderr=result.stderr)
    return result


def control_directory(path: Path) -> Path:
    proc = run_git(["rev-parse", "--absolute-git-dir"], cwd=path)
    return Path(proc.stdout.strip())


def rev_parse_toplevel(path: Path) -> Path:
    proc = run_git(["rev-parse", "--show-toplevel"], cwd=path)
    return Path(proc.stdout.strip())


def head_branch(path: Path) -> str | None:
    """Return the short branch name, ``DETACHED`` or ``None`` when HEAD is unusable."""

    proc = run_git(["symbolic-ref", "--short", "-q", "HEAD"], cwd=path, check=False)
    if proc.returncode == 0 and proc.stdout.strip():
        return proc.stdout.strip()
    proc = run_git(["rev-parse", "--verify", "-q", "HEAD"], cwd=path, check=False)
    if proc.returncode == 0:
        return DETACHED
    return None


def status(path: Path, include_untracked: bool = True) -> list[StatusEntry]:
    # avoid refreshing the index, which would wake the watcher again
    args = ["--no-optional-locks", "status", "--porcelain=v1", "-z"]
    args.append("--untracked-files=all" if include_untracked else "--untracked-files=no")
    proc = run_git(args, cwd=path)
    return parse_porcelain(proc.stdout)


def parse_porcelain(output: str) -> list[StatusEntry]:
    """Parse ``git status --porcelain=v1 -z`` output, preserving git's order."""

    entries: list[StatusEntry] = []
    fields = output.split("\0")
    index = 0
    while index < len(fields):
        record = fields[index]
        index += 1
        if len(record) < 4:
            continue
        code, path = record[:2], record[3:]
        original = None
        if code[0] in "RC" or code[1] in "RC":
            # renames and copies are followed by the source path
            if index < len(fields):
                original = fields[index] or None
                index += 1
        entries.append(StatusEntry(path=path, status=status_flags(code), original_path=original))
    return entries


def status_flags(code: str) -> FileStatus:
    if code == "??":
        return FileStatus.WT_NEW
    if code == "!!":
        return FileStatus.IGNORED
    if code in _UNMERGED:
        return FileStatus.CONFLICTED
    flags = FileStatus.CURRENT
    flags |= _INDEX_CODES.get(code[0], FileStatus.CURRENT)
    flags |= _WORKTREE_CODES.get(code[1], FileStatus.CURRENT)
    return flags


def last_commit(path: Path) -> CommitInfo | None:
    proc = run_git(["log", "-1", "--format=%H%x00%ct%x00%B"], cwd=path, check=False)
    if proc.returncode != 0:
        # unborn branch or unreadable objects
        logger.debug("No commit at HEAD for %s: %s", path, proc.stderr.strip())
        return None
    commit_hash, _, rest = proc.stdout.partition("\0")
    timestamp, _, message = rest.partition("\0")
    if not commit_hash.strip() or not timestamp.strip():
        return None
    return CommitInfo(hash=commit_hash.strip(), timestamp=int(timestamp), message=message.strip("\n"))


__all__ = [
    "run_git",
    "control_directory",
    "rev_parse_toplevel",
    "head_branch",
    "status",
    "parse_porcelain",
    "status_flags",
    "last_commit",
]
