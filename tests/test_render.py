"""Tests for text and JSON renderers."""

import json
from datetime import datetime, timezone

from repohist.render.json import (
    JSON_VERSION,
    render_annotation_json,
    render_history_json,
    render_tags_json,
)
from repohist.render.text import (
    format_datetime,
    render_annotation,
    render_history,
    render_tag_table,
)
from repohist.scm.models import Annotation, AnnotationLine, History, HistoryEntry, TagEntry

WHEN = datetime(2026, 1, 22, 10, 41, 12, tzinfo=timezone.utc)

HISTORY = History(
    entries=[
        HistoryEntry(
            revision="1.2",
            author="bob",
            date=WHEN,
            message=("Rename", "details"),
            path="new.c",
            renamed_from="old.c",
            tags=("v1",),
        ),
        HistoryEntry(revision="1.1", author="alice", date=WHEN, message=("Initial",)),
    ]
)

ANNOTATION = Annotation(
    filename="new.c",
    lines=(
        AnnotationLine(1, "1.1", "alice", "int a;"),
        AnnotationLine(2, "1.2", "bob", "int b;"),
    ),
)

TAGS = [TagEntry(date=WHEN, revision="1.2", names=("v1", "stable"))]


class TestTextRender:
    """Tests for text renderers."""

    def test_format_datetime(self):
        """Test datetimes render with zone name."""
        assert format_datetime(WHEN) == "2026-01-22 10:41:12 UTC"

    def test_history(self):
        """Test history renders newest first with tags and renames."""
        output = render_history(HISTORY)

        assert output.index("revision 1.2 (v1)") < output.index("revision 1.1")
        assert "Renamed from: old.c" in output
        assert "    Rename\n    details" in output

    def test_empty_history(self):
        """Test empty history has a placeholder."""
        assert render_history(History()) == "No history found"

    def test_annotation(self):
        """Test annotation renders one row per line."""
        output = render_annotation(ANNOTATION)

        assert output.splitlines() == ["1 1.1 alice int a;", "2 1.2 bob   int b;"]

    def test_empty_annotation(self):
        """Test empty annotation has a placeholder."""
        assert render_annotation(Annotation(filename="x")) == "No lines"

    def test_tag_table(self):
        """Test tags render as a table with headers."""
        lines = render_tag_table(TAGS).splitlines()

        assert lines[0].split() == ["REVISION", "DATE", "TAGS"]
        assert "v1, stable" in lines[1]

    def test_no_tags(self):
        """Test empty tag list has a placeholder."""
        assert render_tag_table([]) == "No tags found"


class TestJsonRender:
    """Tests for JSON renderers."""

    def test_history(self):
        """Test history JSON schema."""
        data = json.loads(render_history_json(HISTORY, "new.c"))

        assert data["command"] == "history"
        assert data["version"] == JSON_VERSION
        assert data["file"] == "new.c"
        assert [e["revision"] for e in data["entries"]] == ["1.2", "1.1"]
        assert data["entries"][0]["date"] == "2026-01-22T10:41:12+00:00"
        assert data["entries"][0]["message"] == ["Rename", "details"]
        assert data["entries"][0]["renamed_from"] == "old.c"
        assert data["entries"][0]["tags"] == ["v1"]
        assert data["entries"][0]["changeset"] is None

    def test_annotation(self):
        """Test annotation JSON schema."""
        data = json.loads(render_annotation_json(ANNOTATION))

        assert data["command"] == "annotate"
        assert data["lines"][1] == {"line": 2, "revision": "1.2", "author": "bob", "text": "int b;"}

    def test_tags(self):
        """Test tags JSON schema."""
        data = json.loads(render_tags_json(TAGS, "/repo"))

        assert data["root"] == "/repo"
        assert data["tags"][0]["names"] == ["v1", "stable"]
