"""Tests for settings resolution."""

from __future__ import annotations

import unittest
from pathlib import Path

from git_watchlist.config import default_database_path, load_settings, parse_seconds
from git_watchlist.exceptions import ConfigError
from git_watchlist.models import CommitDetailOptions


class LoadSettingsTests(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = load_settings({})

        self.assertEqual(settings.database, default_database_path())
        self.assertEqual(settings.database.name, "git-watchlist.sqlite")
        self.assertEqual(settings.delay, 5.0)
        self.assertEqual(settings.debounce, 3.0)
        self.assertEqual(settings.commit, CommitDetailOptions.none())

    def test_environment_overrides(self) -> None:
        settings = load_settings(
            {
                "GIT_WATCHLIST_DB": "/tmp/watch.sqlite",
                "GIT_WATCHLIST_DELAY": "1.5",
                "GIT_WATCHLIST_DEBOUNCE": "0.25",
                "GIT_WATCHLIST_COMMIT": "hash, whatever",
            }
        )

        self.assertEqual(settings.database, Path("/tmp/watch.sqlite"))
        self.assertEqual(settings.delay, 1.5)
        self.assertEqual(settings.debounce, 0.25)
        self.assertEqual(settings.commit, CommitDetailOptions.HASH)

    def test_malformed_numbers_raise_config_error(self) -> None:
        for raw in ("soon", "0", "-2", "nan"):
            with self.subTest(raw=raw), self.assertRaises(ConfigError):
                load_settings({"GIT_WATCHLIST_DELAY": raw})

    def test_parse_seconds_blank_uses_default(self) -> None:
        self.assertEqual(parse_seconds("  ", 4.0, name="X"), 4.0)
        self.assertEqual(parse_seconds(None, 4.0, name="X"), 4.0)
        self.assertEqual(parse_seconds(2.0, 4.0, name="X"), 2.0)


if __name__ == "__main__":
    unittest.main()
