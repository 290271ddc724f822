"""End-to-end tests for the Typer CLI."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from typer.testing import CliRunner

from git_watchlist.cli import app
from git_watchlist.store import WatchlistStore

from support import GIT_AVAILABLE, commit_file, init_repo


class CliTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.base = Path(self.tmp.name).resolve()
        self.db = self.base / "watchlist.sqlite"
        self.runner = CliRunner()

    def invoke(self, *args: str, env: dict[str, str] | None = None):
        return self.runner.invoke(
            app,
            ["--database", str(self.db), *args],
            env={"COLUMNS": "400", **(env or {})},
        )


class StoreCommandTests(CliTestCase):
    def test_ls_and_groups(self) -> None:
        with WatchlistStore.open(self.db) as store:
            store.register(self.base / "a", "work")
            store.register(self.base / "b")

        listing = self.invoke("ls")
        work = self.invoke("ls", "--group", "work")
        groups = self.invoke("groups")

        self.assertEqual(listing.exit_code, 0, listing.output)
        self.assertIn(str(self.base / "a"), listing.output)
        self.assertIn(str(self.base / "b"), listing.output)
        self.assertNotIn(str(self.base / "b"), work.output)
        self.assertIn("work", groups.output)

    def test_empty_watchlist(self) -> None:
        result = self.invoke("status")

        self.assertEqual(result.exit_code, 0)
        self.assertIn("No repositories registered.", result.output)

    def test_status_reports_missing_repository_inline(self) -> None:
        with WatchlistStore.open(self.db) as store:
            store.register(self.base / "gone")

        result = self.invoke("status")

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("[unresolved]", result.output)
        self.assertIn("directory does not exist", result.output)

    def test_rm_unknown_repository(self) -> None:
        result = self.invoke("rm", "--directory", str(self.base / "nowhere"))

        self.assertEqual(result.exit_code, 1)
        self.assertIn("not on the watchlist", result.output)

    def test_invalid_environment_setting_is_fatal(self) -> None:
        result = self.invoke("status", env={"GIT_WATCHLIST_DELAY": "never"})

        self.assertEqual(result.exit_code, 1)

    def test_unusable_database_is_fatal(self) -> None:
        blocker = self.base / "blocker"
        blocker.write_text("not a directory")

        result = self.runner.invoke(app, ["--database", str(blocker / "watchlist.sqlite"), "ls"])

        self.assertEqual(result.exit_code, 1)

    def test_invalid_delay_flag_is_fatal(self) -> None:
        with WatchlistStore.open(self.db) as store:
            store.register(self.base / "a")

        result = self.invoke("watch", "--delay", "0")

        self.assertEqual(result.exit_code, 1)


@unittest.skipUnless(GIT_AVAILABLE, "git binary not available")
class GitCommandTests(CliTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.repo = init_repo(self.base / "api")
        commit_file(self.repo, "README.md", "hello\n", "Initial import\n\nDetails")

    def test_add_status_and_remove(self) -> None:
        added = self.invoke("add", "--directory", str(self.repo), "--group", "work")
        self.assertEqual(added.exit_code, 0, added.output)

        (self.repo / "README.md").write_text("changed\n")
        status = self.invoke("status", "--group", "work", "--commit", "message")

        self.assertEqual(status.exit_code, 0, status.output)
        self.assertIn("[main]", status.output)
        self.assertIn("File status:", status.output)
        self.assertIn("WT_MODIFIED README.md", status.output)
        self.assertIn("Initial import", status.output)
        self.assertNotIn("Details", status.output)

        removed = self.invoke("rm", "--directory", str(self.repo))
        self.assertEqual(removed.exit_code, 0, removed.output)
        with WatchlistStore.open(self.db) as store:
            self.assertEqual(store.list(), [])
            self.assertEqual(store.groups(), [("work", 0)])

    def test_add_registers_toplevel_once(self) -> None:
        nested = self.repo / "src"
        nested.mkdir()

        self.invoke("add", "--directory", str(self.repo))
        self.invoke("add", "--directory", str(nested))

        with WatchlistStore.open(self.db) as store:
            self.assertEqual(store.list(), [self.repo])

    def test_add_rejects_non_repository(self) -> None:
        result = self.invoke("add", "--directory", str(self.base / "missing"))

        self.assertEqual(result.exit_code, 1)
        with WatchlistStore.open(self.db) as store:
            self.assertEqual(store.list(), [])


if __name__ == "__main__":
    unittest.main()
