"""Tests for BitKeeper output parsers."""

import logging
from datetime import datetime, timezone

import pytest

from repohist.errors import MalformedOutputError
from repohist.scm.bitkeeper import DATE_PATTERNS
from repohist.scm.bitkeeper_parsers import (
    BitKeeperAnnotationParser,
    BitKeeperHistoryParser,
    BitKeeperTagParser,
)


def feed(parser, text: str):
    for line in text.splitlines():
        parser(line)
    return parser


class TestHistoryParser:
    """Tests for BitKeeperHistoryParser."""

    def test_two_line_comment(self):
        """Test one record with a two-line comment keeps both lines in order."""
        parser = feed(
            BitKeeperHistoryParser(DATE_PATTERNS),
            "D foo.c\t1.1\t2020-05-06 07:08:09 GMT+00:00\talice\n"
            "C first line\n"
            "C second line\n",
        )

        entries = parser.history.entries
        assert len(entries) == 1
        assert entries[0].message == ("first line", "second line")

    def test_empty_comment_line(self):
        """Test blank comment lines are preserved."""
        parser = feed(
            BitKeeperHistoryParser(DATE_PATTERNS),
            "D foo.c\t1.1\t2020-05-06 07:08:09 GMT+00:00\talice\nC summary\nC\nC details\n",
        )

        assert parser.history.entries[0].message == ("summary", "", "details")

    def test_record_without_comments(self):
        """Test a record with no comment lines has an empty message."""
        parser = feed(
            BitKeeperHistoryParser(DATE_PATTERNS),
            "D foo.c\t1.1\t2020-05-06 07:08:09 GMT+00:00\talice\n",
        )

        assert parser.history.entries[0].message == ()

    def test_bad_date_drops_only_that_record(self, caplog):
        """Test a malformed date drops its record with a warning."""
        with caplog.at_level(logging.WARNING):
            parser = feed(
                BitKeeperHistoryParser(DATE_PATTERNS),
                "D foo.c\t1.3\t2020-05-06 07:08:09 GMT+00:00\talice\n"
                "C kept\n"
                "D foo.c\t1.2\tyesterday\tbob\n"
                "C lost\n"
                "D foo.c\t1.1\t2020-05-01 07:08:09 GMT+00:00\talice\n"
                "C also kept\n",
            )

        history = parser.history
        assert history.revisions == ["1.3", "1.1"]
        assert history.entries[0].message == ("kept",)
        assert history.entries[1].message == ("also kept",)
        assert "bad date" in caplog.text

    def test_short_header_dropped(self):
        """Test a header with too few fields is dropped."""
        parser = feed(BitKeeperHistoryParser(DATE_PATTERNS), "D foo.c\t1.1\n")

        assert len(parser.history) == 0

    def test_comments_before_any_header_ignored(self):
        """Test stray comment lines do not create entries."""
        parser = feed(BitKeeperHistoryParser(DATE_PATTERNS), "C orphan\n")

        assert len(parser.history) == 0

    def test_duplicate_revision_dropped(self):
        """Test revisions are unique within one history."""
        parser = feed(
            BitKeeperHistoryParser(DATE_PATTERNS),
            "D foo.c\t1.1\t2020-05-06 07:08:09 GMT+00:00\talice\n"
            "D foo.c\t1.1\t2020-05-06 07:08:09 GMT+00:00\talice\n",
        )

        assert parser.history.revisions == ["1.1"]

    def test_timezone_normalized_to_utc(self):
        """Test dates are converted to UTC."""
        parser = feed(
            BitKeeperHistoryParser(DATE_PATTERNS),
            "D foo.c\t1.1\t2020-05-06 07:08:09 GMT+05:30\talice\n",
        )

        assert parser.history.entries[0].date == datetime(
            2020, 5, 6, 1, 38, 9, tzinfo=timezone.utc
        )

    def test_since_revision_skipped(self):
        """Test the lower-bound revision is excluded."""
        parser = feed(
            BitKeeperHistoryParser(DATE_PATTERNS, since_revision="1.1"),
            "D foo.c\t1.2\t2020-05-07 07:08:09 GMT+00:00\talice\n"
            "D foo.c\t1.1\t2020-05-06 07:08:09 GMT+00:00\talice\n",
        )

        assert parser.history.revisions == ["1.2"]

    def test_changeset_and_rename_fields(self):
        """Test the changeset field precedes the renamed-from path."""
        parser = feed(
            BitKeeperHistoryParser(DATE_PATTERNS),
            "D new.c\t1.2\t2020-05-07 07:08:09 GMT+00:00\talice\t1.9\told.c\n"
            "D old.c\t1.1\t2020-05-06 07:08:09 GMT+00:00\talice\t\n",
        )

        renamed, pending = parser.history.entries
        assert (renamed.changeset, renamed.renamed_from) == ("1.9", "old.c")
        assert (pending.changeset, pending.renamed_from) == (None, None)

    def test_history_is_stable(self):
        """Test reading history twice gives the same result."""
        parser = feed(
            BitKeeperHistoryParser(DATE_PATTERNS),
            "D foo.c\t1.1\t2020-05-06 07:08:09 GMT+00:00\talice\n",
        )

        assert parser.history == parser.history


class TestAnnotationParser:
    """Tests for BitKeeperAnnotationParser."""

    def test_fields_in_tool_order(self):
        """Test user, revision and text are read in bk's order."""
        parser = feed(BitKeeperAnnotationParser("foo.c"), "alice\t1.4\tx = 1;\n")

        line = parser.annotation.lines[0]
        assert (line.line_number, line.author, line.revision, line.text) == (
            1,
            "alice",
            "1.4",
            "x = 1;",
        )

    def test_empty_output(self):
        """Test an empty file gives an empty annotation."""
        assert len(BitKeeperAnnotationParser("foo.c").annotation) == 0

    @pytest.mark.parametrize("line", ["", "alice", "alice\t1.4", "\t1.4\ttext"])
    def test_malformed_lines(self, line):
        """Test lines without three fields are rejected."""
        with pytest.raises(MalformedOutputError):
            BitKeeperAnnotationParser("foo.c")(line)


class TestTagParser:
    """Tests for BitKeeperTagParser."""

    TAGS = (
        "D 1.5\t2021-02-03 04:05:06 GMT+00:00\n"
        "T v1.0\n"
        "T latest\n"
        "D 1.2\t2020-02-03 04:05:06 GMT+00:00\n"
        "T v0.9\n"
    )

    def test_multiple_tags_per_changeset(self):
        """Test tag lines attach to the most recent header."""
        entries = feed(BitKeeperTagParser(DATE_PATTERNS), self.TAGS).entries

        assert [(e.revision, e.names) for e in entries] == [
            ("1.2", ("v0.9",)),
            ("1.5", ("v1.0", "latest")),
        ]

    def test_equal_for_identical_output(self):
        """Test parsing identical output twice gives equal tag lists."""
        first = feed(BitKeeperTagParser(DATE_PATTERNS), self.TAGS).entries
        second = feed(BitKeeperTagParser(DATE_PATTERNS), self.TAGS).entries

        assert first == second

    def test_untagged_repository(self):
        """Test no output gives no tags."""
        assert feed(BitKeeperTagParser(DATE_PATTERNS), "").entries == []

    def test_header_without_tags_dropped(self):
        """Test a changeset with no tag lines produces no entry."""
        entries = feed(
            BitKeeperTagParser(DATE_PATTERNS), "D 1.1\t2020-02-03 04:05:06 GMT+00:00\n"
        ).entries

        assert entries == []

    def test_bad_date_drops_record(self):
        """Test tag lines after a bad header are ignored."""
        entries = feed(
            BitKeeperTagParser(DATE_PATTERNS),
            "D 1.1\tnot a date\nT lost\n" + self.TAGS,
        ).entries

        assert [e.revision for e in entries] == ["1.2", "1.5"]
