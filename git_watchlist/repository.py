"""Resolve stored paths into repository handles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Protocol

from . import git
from .exceptions import GitCommandError, InspectionError, ResolutionError
from .models import CommitInfo, StatusEntry
from .store import canonical_path

logger = logging.getLogger(__name__)


class RepositoryView(Protocol):
    """What the summarizer needs to know about a repository."""

    def head_branch_shorthand(self) -> str | None:
        """Short name of the checked out branch, or ``None`` when HEAD cannot be resolved."""
        ...

    def working_tree_status(self, include_untracked: bool = True) -> list[StatusEntry]:
        """Status entries in inspector order.

        Raises:
            InspectionError: If the status cannot be computed.
        """
        ...

    def last_commit(self) -> CommitInfo | None:
        """The commit HEAD points at, or ``None`` when there is none."""
        ...

    def control_directory(self) -> Path:
        """The repository's metadata directory (``.git``)."""
        ...


Resolver = Callable[[Path], RepositoryView]


@dataclass(frozen=True)
class GitRepository:
    """A repository inspected through the git CLI."""

    workdir: Path
    git_dir: Path

    def head_branch_shorthand(self) -> str | None:
        try:
            return git.head_branch(self.workdir)
        except (GitCommandError, UnicodeError) as exc:
            logger.debug("HEAD lookup failed for %s: %s", self.workdir, exc)
            return None

    def working_tree_status(self, include_untracked: bool = True) -> list[StatusEntry]:
        try:
            return git.status(self.workdir, include_untracked=include_untracked)
        except GitCommandError as exc:
            raise InspectionError(f"unable to read working tree status: {exc.stderr.strip() or exc}") from exc
        except UnicodeError as exc:
            raise InspectionError(f"unable to decode working tree status: {exc}") from exc

    def last_commit(self) -> CommitInfo | None:
        try:
            return git.last_commit(self.workdir)
        except (GitCommandError, ValueError) as exc:
            raise InspectionError(f"unable to read last commit: {exc}") from exc

    def control_directory(self) -> Path:
        return self.git_dir


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one stored path."""

    path: Path
    repository: RepositoryView | None = None
    error: ResolutionError | None = None


def resolve(path: Path | str) -> GitRepository:
    """Open ``path`` as a git repository or raise ``ResolutionError``."""

    candidate = canonical_path(path)
    if not candidate.exists():
        raise ResolutionError(candidate, "directory does not exist")
    if not candidate.is_dir():
        raise ResolutionError(candidate, "not a directory")
    try:
        git_dir = git.control_directory(candidate)
        workdir = git.rev_parse_toplevel(candidate)
    except GitCommandError as exc:
        raise ResolutionError(candidate, exc.stderr.strip() or "not a git repository") from exc
    logger.debug("Resolved %s (git dir %s)", workdir, git_dir)
    return GitRepository(workdir=workdir, git_dir=git_dir)


def resolve_all(paths: Iterable[Path], resolver: Resolver = resolve) -> list[Resolution]:
    """Resolve every path independently; failures are recorded, not raised."""

    results: list[Resolution] = []
    for path in paths:
        try:
            results.append(Resolution(path=path, repository=resolver(path)))
        except ResolutionError as exc:
            logger.warning("Skipping %s: %s", path, exc.reason)
            results.append(Resolution(path=path, error=exc))
    return results


__all__ = ["RepositoryView", "Resolver", "GitRepository", "Resolution", "resolve", "resolve_all"]
