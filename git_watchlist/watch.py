"""Refresh loop that keeps one rendered section per watched repository."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from rich.console import Console

from .models import CommitDetailOptions
from .repository import Resolution, Resolver, resolve, resolve_all
from .store import canonical_path
from .summary import render_report, summarize_resolution
from .triggers import RefreshEvent, RefreshKind, Trigger, owner_of

logger = logging.getLogger(__name__)


class WatchSession:
    """Summarize a fixed list of repositories and redraw them on every trigger.

    Sections are always rendered in the order of ``paths`` so the output is
    stable between refreshes. Failures of single repositories are rendered in
    place of their section and never stop the loop.
    """

    def __init__(
        self,
        paths: Iterable[Path],
        options: CommitDetailOptions,
        *,
        resolver: Resolver = resolve,
        console: Console | None = None,
    ):
        self.paths = list(dict.fromkeys(paths))
        self.options = options
        self.console = console or Console()
        self._resolver = resolver
        self._resolutions: dict[Path, Resolution] = {}
        self.sections: dict[Path, str] = {}

    def control_directories(self) -> dict[Path, Path]:
        """Map the control directory of every resolved repository to its stored path."""

        roots: dict[Path, Path] = {}
        for path in self.paths:
            resolution = self._resolutions.get(path)
            if resolution is not None and resolution.repository is not None:
                roots[canonical_path(resolution.repository.control_directory())] = path
        return roots

    def refresh_all(self) -> None:
        for resolution in resolve_all(self.paths, self._resolver):
            self._update(resolution)

    def refresh(self, changed: Iterable[Path]) -> list[Path]:
        """Re-summarize only the repositories owning ``changed``; return them in store order."""

        roots = self.control_directories()
        owners: set[Path] = set()
        for path in changed:
            root = owner_of(path, roots)
            if root is None:
                logger.debug("No watched repository owns %s", path)
                continue
            owners.add(roots[root])
        refreshed = [path for path in self.paths if path in owners]
        for resolution in resolve_all(refreshed, self._resolver):
            self._update(resolution)
        return refreshed

    def handle(self, event: RefreshEvent) -> bool:
        """Apply one trigger firing. Returns whether the screen needs redrawing."""

        if event.kind is RefreshKind.RESCAN:
            self.refresh_all()
            return True
        if event.kind is RefreshKind.CHANGED:
            return bool(self.refresh(event.paths))
        logger.warning("Skipping watch error for %s: %s", ", ".join(map(str, event.paths)), event.error)
        return False

    def render(self, *, clear: bool = True) -> None:
        if clear:
            self.console.clear()
        for index, path in enumerate(self.paths):
            if index:
                self.console.print()
            self.console.print(self.sections[path], highlight=False)

    def run(self, trigger: Trigger) -> None:
        """Render, then redraw after every trigger firing until interrupted."""

        if not self.sections:
            self.refresh_all()
        trigger.start()
        try:
            self.render()
            while True:
                event = trigger.wait()
                redraw = self.handle(event)
                if event.kind is RefreshKind.RESCAN:
                    # repositories that came back or resolved late need watching too
                    trigger.watch(self.control_directories())
                if redraw:
                    self.render()
        except KeyboardInterrupt:
            logger.info("Stopping watcher")
        finally:
            trigger.stop()

    def _update(self, resolution: Resolution) -> None:
        self._resolutions[resolution.path] = resolution
        report = summarize_resolution(resolution, self.options)
        self.sections[resolution.path] = render_report(report)


__all__ = ["WatchSession"]
