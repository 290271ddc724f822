"""Fakes and git fixtures shared by the test modules."""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from git_watchlist.exceptions import InspectionError, ResolutionError
from git_watchlist.models import CommitInfo, StatusEntry

GIT_AVAILABLE = shutil.which("git") is not None


@dataclass
class FakeRepository:
    git_dir: Path
    branch: str | None = "main"
    entries: list[StatusEntry] = field(default_factory=list)
    commit: CommitInfo | None = None
    status_error: str | None = None
    commit_error: str | None = None
    status_calls: int = 0

    def head_branch_shorthand(self) -> str | None:
        return self.branch

    def working_tree_status(self, include_untracked: bool = True) -> list[StatusEntry]:
        self.status_calls += 1
        if self.status_error:
            raise InspectionError(self.status_error)
        return list(self.entries)

    def last_commit(self) -> CommitInfo | None:
        if self.commit_error:
            raise InspectionError(self.commit_error)
        return self.commit

    def control_directory(self) -> Path:
        return self.git_dir


class FakeResolver:
    """Resolve paths from a dict; anything missing behaves like a deleted directory."""

    def __init__(self, repositories: dict[Path, FakeRepository]):
        self.repositories = repositories
        self.calls: list[Path] = []

    def __call__(self, path: Path) -> FakeRepository:
        self.calls.append(path)
        try:
            return self.repositories[path]
        except KeyError:
            raise ResolutionError(path, "directory does not exist") from None


def git(cwd: Path, *args: str) -> str:
    proc = subprocess.run(
        [
            "git",
            "-c",
            "user.name=Watchlist Tests",
            "-c",
            "user.email=tests@example.com",
            "-c",
            "commit.gpgsign=false",
            *args,
        ],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=True,
    )
    return proc.stdout


def init_repo(path: Path, branch: str = "main") -> Path:
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "-q")
    git(path, "symbolic-ref", "HEAD", f"refs/heads/{branch}")
    return path


def commit_file(repo: Path, name: str, content: str, message: str) -> None:
    (repo / name).write_text(content)
    git(repo, "add", name)
    git(repo, "commit", "-q", "-m", message)


def write_raw_file(repo: Path, name: bytes, content: str = "x\n") -> Path:
    """Create a file whose name is arbitrary bytes, as git sees it on disk."""
    path = Path(os.fsdecode(os.fsencode(repo) + b"/" + name))
    path.write_text(content)
    return path


def commit_object(repo: Path, *, timestamp: int, message: bytes) -> str:
    """Write a commit with any date and message bytes, then point HEAD at it."""
    tree = git(repo, "write-tree").strip()
    ident = f"Watchlist Tests <tests@example.com> {timestamp} +0000".encode()
    body = b"tree %s\nauthor %s\ncommitter %s\n\n%s\n" % (tree.encode(), ident, ident, message)
    proc = subprocess.run(
        ["git", "hash-object", "-t", "commit", "-w", "--stdin"],
        cwd=str(repo),
        input=body,
        capture_output=True,
        check=True,
    )
    commit = proc.stdout.decode().strip()
    git(repo, "update-ref", "HEAD", commit)
    return commit
