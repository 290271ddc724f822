"""Persistent watchlist of repositories and the groups they belong to."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Iterator

from .exceptions import StoreError

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS repositories (
        id   INTEGER PRIMARY KEY AUTOINCREMENT,
        path TEXT UNIQUE NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS groups (
        id   INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT UNIQUE NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS repositories_groups (
        repository_id INTEGER REFERENCES repositories (id) ON DELETE CASCADE,
        group_id      INTEGER REFERENCES groups (id)       ON DELETE CASCADE,
        UNIQUE (repository_id, group_id)                   ON CONFLICT IGNORE
    )
    """,
)


def canonical_path(path: Path | str) -> Path:
    return Path(path).expanduser().resolve()


class WatchlistStore:
    """SQLite backed repository/group store.

    Every mutating call commits before returning. The connection is owned by a
    single thread; callers that need concurrent access must serialize it.
    """

    def __init__(self, connection: sqlite3.Connection, location: str):
        self._conn = connection
        self.location = location

    @classmethod
    def open(cls, path: Path | str) -> WatchlistStore:
        location = str(path)
        try:
            if location != ":memory:":
                Path(location).expanduser().parent.mkdir(parents=True, exist_ok=True)
                location = str(Path(location).expanduser())
            conn = sqlite3.connect(location)
            conn.execute("PRAGMA foreign_keys = ON")
            with conn:
                for statement in _SCHEMA:
                    conn.execute(statement)
        except (OSError, sqlite3.Error) as exc:
            raise StoreError(f"Unable to open watchlist database {location}: {exc}") from exc
        logger.debug("Opened watchlist database %s", location)
        return cls(conn, location)

    def __enter__(self) -> WatchlistStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._conn.close()

    def register(self, path: Path | str, group: str | None = None) -> None:
        """Add a repository, optionally into a group. Repeated calls are no-ops."""

        path_str = str(canonical_path(path))
        try:
            with self._conn:
                self._conn.execute("INSERT OR IGNORE INTO repositories (path) VALUES (?)", (path_str,))
                if group is not None:
                    self._add_membership(path_str, group)
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to register {path_str} in {self.location}: {exc}") from exc
        logger.debug("Registered %s (group=%s)", path_str, group)

    def _add_membership(self, path_str: str, group: str) -> None:
        self._conn.execute("INSERT OR IGNORE INTO groups (name) VALUES (?)", (group,))
        (repository_id,) = self._conn.execute("SELECT id FROM repositories WHERE path = ?", (path_str,)).fetchone()
        (group_id,) = self._conn.execute("SELECT id FROM groups WHERE name = ?", (group,)).fetchone()
        # duplicates are dropped by the ON CONFLICT IGNORE clause
        self._conn.execute(
            "INSERT INTO repositories_groups (repository_id, group_id) VALUES (?, ?)",
            (repository_id, group_id),
        )

    def list(self, group: str | None = None) -> list[Path]:
        """Return repository paths in registration order, filtered by group when given."""

        if group is None:
            query = "SELECT path FROM repositories ORDER BY id"
            params: tuple[str, ...] = ()
        else:
            query = (
                "SELECT r.path FROM repositories AS r "
                "JOIN repositories_groups AS rg ON r.id = rg.repository_id "
                "JOIN groups AS g ON rg.group_id = g.id "
                "WHERE g.name = ? ORDER BY r.id"
            )
            params = (group,)
        return [Path(path) for (path,) in self._query(query, params)]

    def remove(self, path: Path | str) -> bool:
        """Delete a repository and its memberships. Returns whether it existed."""

        path_str = str(canonical_path(path))
        try:
            with self._conn:
                cursor = self._conn.execute("DELETE FROM repositories WHERE path = ?", (path_str,))
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to remove {path_str} from {self.location}: {exc}") from exc
        logger.debug("Removed %s (%d rows)", path_str, cursor.rowcount)
        return cursor.rowcount > 0

    def groups(self) -> list[tuple[str, int]]:
        """Return every group with its member count, empty groups included."""

        query = (
            "SELECT g.name, COUNT(rg.repository_id) FROM groups AS g "
            "LEFT JOIN repositories_groups AS rg ON g.id = rg.group_id "
            "GROUP BY g.id ORDER BY g.name"
        )
        return [(name, count) for name, count in self._query(query, ())]

    def memberships(self) -> dict[Path, list[str]]:
        """Map every registered path to the names of its groups."""

        result: dict[Path, list[str]] = {path: [] for path in self.list()}
        query = (
            "SELECT r.path, g.name FROM repositories_groups AS rg "
            "JOIN repositories AS r ON r.id = rg.repository_id "
            "JOIN groups AS g ON g.id = rg.group_id "
            "ORDER BY r.id, g.name"
        )
        for path, name in self._query(query, ()):
            result.setdefault(Path(path), []).append(name)
        return result

    def _query(self, query: str, params: tuple[str, ...]) -> Iterator[tuple]:
        try:
            rows = self._conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to read watchlist database {self.location}: {exc}") from exc
        return iter(rows)


__all__ = ["WatchlistStore", "canonical_path"]
