"""JSON renderer with stable schema and versioning."""

import json

from repohist.scm.models import Annotation, History, TagEntry

JSON_VERSION = 1


def render_history_json(history: History, file: str) -> str:
    """
    Render a file history as JSON.

    Schema version 1:
      {
        "command": "history",
        "version": 1,
        "file": "...",
        "entries": [ ... ]
      }

    Args:
        history: History to render
        file: File the history belongs to

    Returns:
        JSON string with stable key ordering
    """
    output = {
        "command": "history",
        "version": JSON_VERSION,
        "file": file,
        "entries": [
            {
                "revision": e.revision,
                "author": e.author,
                "changeset": e.changeset,
                "date": e.date.isoformat(),
                "message": list(e.message),
                "path": e.path,
                "renamed_from": e.renamed_from,
                "tags": list(e.tags),
            }
            for e in history.entries
        ],
    }
    return json.dumps(output, indent=2, sort_keys=True)


def render_annotation_json(annotation: Annotation) -> str:
    """Render an annotation as JSON (schema version 1)."""
    output = {
        "command": "annotate",
        "version": JSON_VERSION,
        "file": annotation.filename,
        "lines": [
            {
                "line": line.line_number,
                "revision": line.revision,
                "author": line.author,
                "text": line.text,
            }
            for line in annotation.lines
        ],
    }
    return json.dumps(output, indent=2, sort_keys=True)


def render_tags_json(tags: list[TagEntry], root: str) -> str:
    """Render a tag list as JSON (schema version 1)."""
    output = {
        "command": "tags",
        "version": JSON_VERSION,
        "root": root,
        "tags": [
            {
                "revision": t.revision,
                "date": t.date.isoformat(),
                "names": list(t.names),
            }
            for t in tags
        ],
    }
    return json.dumps(output, indent=2, sort_keys=True)
