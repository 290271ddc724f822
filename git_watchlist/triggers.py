"""Decide when watched repositories need to be summarized again."""

from __future__ import annotations

import enum
import logging
import os
import queue
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Mapping, Protocol

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch

from .store import canonical_path

logger = logging.getLogger(__name__)

DEFAULT_DELAY = 5.0
DEFAULT_DEBOUNCE = 3.0

_HANDLED_EVENTS = {
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MOVED,
    EVENT_TYPE_CLOSED,
}


class RefreshKind(enum.Enum):
    CHANGED = "changed"
    RESCAN = "rescan"
    ERROR = "error"


@dataclass(frozen=True)
class RefreshEvent:
    """One trigger firing. ``CHANGED`` events carry the paths that moved."""

    kind: RefreshKind
    paths: tuple[Path, ...] = ()
    error: str | None = None


class Trigger(Protocol):
    def start(self) -> None: ...

    def wait(self) -> RefreshEvent: ...

    def stop(self) -> None: ...

    def watch(self, roots: Iterable[Path]) -> None: ...


class PollingTrigger:
    """Fire unconditionally every ``delay`` seconds."""

    def __init__(self, delay: float = DEFAULT_DELAY, *, sleep: Callable[[float], None] = time.sleep):
        if delay <= 0:
            raise ValueError("delay must be positive")
        self.delay = delay
        self._sleep = sleep

    def start(self) -> None:
        logger.debug("Polling every %.1fs", self.delay)

    def wait(self) -> RefreshEvent:
        self._sleep(self.delay)
        return RefreshEvent(RefreshKind.RESCAN)

    def stop(self) -> None:
        pass

    def watch(self, roots: Iterable[Path]) -> None:
        pass


class Debouncer:
    """Collect paths and emit a single event once ``interval`` passes without new ones."""

    def __init__(self, interval: float, emit: Callable[[RefreshEvent], None]):
        self.interval = interval
        self._emit = emit
        self._lock = threading.Lock()
        self._paths: dict[Path, None] = {}
        self._rescan = False
        self._timer: threading.Timer | None = None

    def add(self, *paths: Path) -> None:
        with self._lock:
            for path in paths:
                self._paths[path] = None
            self._schedule()

    def rescan(self) -> None:
        with self._lock:
            self._rescan = True
            self._schedule()

    def flush(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            paths = tuple(self._paths)
            rescan = self._rescan
            self._paths.clear()
            self._rescan = False
        if rescan:
            self._emit(RefreshEvent(RefreshKind.RESCAN))
        elif paths:
            self._emit(RefreshEvent(RefreshKind.CHANGED, paths))

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._paths.clear()
            self._rescan = False

    def _schedule(self) -> None:
        # caller holds self._lock
        if self._timer is not None:
            self._timer.cancel()
        self._timer = threading.Timer(self.interval, self.flush)
        self._timer.daemon = True
        self._timer.start()


class ControlDirectoryHandler(FileSystemEventHandler):
    """Forward watchdog events under watched control directories to a debouncer."""

    def __init__(self, roots: Iterable[Path], debouncer: Debouncer):
        super().__init__()
        self.roots = {canonical_path(root) for root in roots}
        self.debouncer = debouncer
        self.lost_roots: set[Path] = set()

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in _HANDLED_EVENTS:
            logger.debug("Ignoring %s event for %s", event.event_type, event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        self.debouncer.add(_event_path(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        # covers content writes and permission changes
        self.debouncer.add(_event_path(event.src_path))

    def on_closed(self, event: FileSystemEvent) -> None:
        self.debouncer.add(_event_path(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        path = _event_path(event.src_path)
        if path in self.roots:
            logger.info("Watched directory %s was removed", path)
            self.lost_roots.add(path)
            self.debouncer.rescan()
            return
        self.debouncer.add(path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # a rename is a removal of the source plus a creation of the destination
        source = _event_path(event.src_path)
        destination = _event_path(event.dest_path)
        if source in self.roots:
            logger.info("Watched directory %s was moved to %s", source, destination)
            self.lost_roots.add(source)
            self.debouncer.rescan()
            return
        self.debouncer.add(source, destination)


class EventTrigger:
    """Fire when files under any watched control directory change."""

    def __init__(
        self,
        roots: Iterable[Path],
        debounce: float = DEFAULT_DEBOUNCE,
        *,
        use_polling: bool = False,
        observer: BaseObserver | None = None,
    ):
        if debounce <= 0:
            raise ValueError("debounce must be positive")
        self.roots = [canonical_path(root) for root in roots]
        self.debounce = debounce
        self._events: queue.Queue[RefreshEvent] = queue.Queue()
        self._debouncer = Debouncer(debounce, self._events.put)
        self._handler = ControlDirectoryHandler(self.roots, self._debouncer)
        self._observer = observer or create_observer(use_polling)
        self._watches: dict[Path, ObservedWatch] = {}

    def start(self) -> None:
        for root in self.roots:
            self._schedule(root)
        self._observer.start()
        logger.debug("Watching %d control directories (debounce %.1fs)", len(self._watches), self.debounce)

    def watch(self, roots: Iterable[Path]) -> None:
        """Start watching ``roots`` not watched yet, and re-arm roots that were removed or moved."""

        for root in map(canonical_path, roots):
            if root in self._handler.lost_roots:
                self._handler.lost_roots.discard(root)
                self._unschedule(root)
            if root in self._watches:
                continue
            if root not in self._handler.roots:
                logger.info("Watching new control directory %s", root)
                self.roots.append(root)
                self._handler.roots.add(root)
            self._schedule(root)

    def wait(self) -> RefreshEvent:
        return self._events.get()

    def stop(self) -> None:
        self._debouncer.cancel()
        if self._observer.is_alive():
            self._observer.stop()
            self._observer.join()

    def _schedule(self, root: Path) -> None:
        if not root.is_dir():
            self._report_error(root, "directory does not exist")
            return
        try:
            self._watches[root] = self._observer.schedule(self._handler, str(root), recursive=True)
        except OSError as exc:
            self._report_error(root, str(exc))

    def _unschedule(self, root: Path) -> None:
        watch = self._watches.pop(root, None)
        if watch is None:
            return
        try:
            self._observer.unschedule(watch)
        except KeyError:
            # the emitter already went away with the directory
            logger.debug("Watch for %s was already gone", root)

    def _report_error(self, root: Path, message: str) -> None:
        logger.warning("Unable to watch %s: %s", root, message)
        self._events.put(RefreshEvent(RefreshKind.ERROR, (root,), error=message))


def create_observer(use_polling: bool) -> BaseObserver:
    """Create a watchdog observer, optionally the stat-polling one."""
    if use_polling:
        from watchdog.observers.polling import PollingObserver

        logger.debug("Using polling observer for filesystem events")
        return PollingObserver()
    return Observer()


def owner_of(path: Path, roots: Mapping[Path, Path] | Iterable[Path]) -> Path | None:
    """Return the watched root containing ``path``, preferring the deepest match."""

    candidate = canonical_path(path)
    matches = [root for root in roots if candidate == root or candidate.is_relative_to(root)]
    if not matches:
        return None
    return max(matches, key=lambda root: len(root.parts))


def _event_path(raw: str | bytes) -> Path:
    return canonical_path(os.fsdecode(raw))


__all__ = [
    "DEFAULT_DELAY",
    "DEFAULT_DEBOUNCE",
    "RefreshKind",
    "RefreshEvent",
    "Trigger",
    "PollingTrigger",
    "Debouncer",
    "ControlDirectoryHandler",
    "EventTrigger",
    "create_observer",
    "owner_of",
]
