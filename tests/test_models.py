"""Tests for commit detail options and status flag helpers."""

from __future__ import annotations

import unittest

from git_watchlist.models import CommitDetailOptions, CommitInfo, FileStatus, StatusEntry, printable


class CommitDetailOptionsParseTests(unittest.TestCase):
    def test_mixed_case_whitespace_and_unknown_tokens(self) -> None:
        options = CommitDetailOptions.parse("date,HASH, bogus")

        self.assertEqual(options, CommitDetailOptions.DATE | CommitDetailOptions.HASH)
        self.assertNotIn(CommitDetailOptions.MESSAGE, options)

    def test_all_selects_every_flag(self) -> None:
        options = CommitDetailOptions.parse("all")

        for member in (CommitDetailOptions.MESSAGE, CommitDetailOptions.DATE, CommitDetailOptions.HASH):
            self.assertIn(member, options)

    def test_empty_and_none_yield_empty_set(self) -> None:
        self.assertFalse(CommitDetailOptions.parse(""))
        self.assertFalse(CommitDetailOptions.parse(None))
        self.assertEqual(CommitDetailOptions.parse(" , ,"), CommitDetailOptions.none())

    def test_all_combines_with_other_tokens(self) -> None:
        self.assertEqual(CommitDetailOptions.parse("Message, ALL, nope"), CommitDetailOptions.all())


class FileStatusTests(unittest.TestCase):
    def test_describe_joins_flags(self) -> None:
        flags = FileStatus.INDEX_MODIFIED | FileStatus.WT_MODIFIED

        self.assertEqual(flags.describe(), "INDEX_MODIFIED | WT_MODIFIED")
        self.assertEqual(FileStatus.CURRENT.describe(), "CURRENT")

    def test_rename_display_path(self) -> None:
        entry = StatusEntry(path="new.txt", status=FileStatus.INDEX_RENAMED, original_path="old.txt")

        self.assertEqual(entry.display_path, "old.txt -> new.txt")


class CommitInfoTests(unittest.TestCase):
    def test_summary_is_first_line_only(self) -> None:
        commit = CommitInfo(hash="abc", timestamp=0, message="Fix parser\n\nLong body\nmore")

        self.assertEqual(commit.summary, "Fix parser")

    def test_formatted_date_is_utc(self) -> None:
        commit = CommitInfo(hash="abc", timestamp=1_600_000_000, message="x")

        self.assertEqual(commit.formatted_date, "2020-09-13 12:26:40")

    def test_summary_splits_on_newline_only(self) -> None:
        commit = CommitInfo(hash="abc", timestamp=0, message="Page\x0cbreak and separator\r\nbody")

        self.assertEqual(commit.summary, "Page\x0cbreak and separator")

    def test_date_past_year_9999_falls_back_to_epoch(self) -> None:
        commit = CommitInfo(hash="abc", timestamp=300_000_000_000, message="x")

        self.assertIsNone(commit.date)
        self.assertEqual(commit.formatted_date, "@300000000000 (out of range)")

    def test_date_far_before_epoch_falls_back_to_epoch(self) -> None:
        commit = CommitInfo(hash="abc", timestamp=-(10**15), message="x")

        self.assertIsNone(commit.date)
        self.assertIn("out of range", commit.formatted_date)


class PrintableTests(unittest.TestCase):
    def test_undecodable_bytes_become_replacement_characters(self) -> None:
        raw = b"caf\xe9.txt".decode("utf-8", "surrogateescape")

        self.assertEqual(printable(raw), "caf\ufffd.txt")

    def test_valid_text_is_unchanged(self) -> None:
        self.assertEqual(printable("café ✓"), "café ✓")


if __name__ == "__main__":
    unittest.main()
