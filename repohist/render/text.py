"""Text renderers for history output."""

from datetime import datetime

from repohist.scm.models import Annotation, History, TagEntry


def format_datetime(value: datetime) -> str:
    """
    Format a datetime for human-readable output.

    Returns:
        Formatted datetime string (e.g., "2026-01-22 10:41:12 UTC")
    """
    return value.strftime("%Y-%m-%d %H:%M:%S %Z")


def render_history(history: History) -> str:
    """
    Render a history as log-style text, newest first.

    Args:
        history: History to render

    Returns:
        Formatted text
    """
    if not history.entries:
        return "No history found"

    blocks = []
    for entry in history.entries:
        lines = [f"revision {entry.revision}"]
        if entry.tags:
            lines[0] += f" ({', '.join(entry.tags)})"
        lines.append(f"Author: {entry.author}")
        lines.append(f"Date:   {format_datetime(entry.date)}")
        if entry.renamed_from:
            lines.append(f"Renamed from: {entry.renamed_from}")
        lines.append("")
        lines.extend(f"    {text}" for text in entry.message)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def render_annotation(annotation: Annotation) -> str:
    """
    Render an annotation as aligned columns: LINE, REVISION, AUTHOR, TEXT.
    """
    if not annotation.lines:
        return "No lines"

    rev_width = max(len(line.revision) for line in annotation.lines)
    author_width = max(len(line.author) for line in annotation.lines)
    number_width = len(str(len(annotation.lines)))

    return "\n".join(
        f"{line.line_number:>{number_width}} "
        f"{line.revision:<{rev_width}} "
        f"{line.author:<{author_width}} "
        f"{line.text}"
        for line in annotation.lines
    )


def render_tag_table(tags: list[TagEntry]) -> str:
    """
    Render tags as a table.

    Columns: REVISION, DATE, TAGS
    """
    if not tags:
        return "No tags found"

    headers = ["REVISION", "DATE", "TAGS"]
    rows = [[t.revision, format_datetime(t.date), ", ".join(t.names)] for t in tags]

    col_widths = [max(len(str(row[i])) for row in [headers] + rows) for i in range(len(headers))]

    lines = ["  ".join(h.ljust(w) for h, w in zip(headers, col_widths)).rstrip()]
    for row in rows:
        lines.append("  ".join(str(c).ljust(w) for c, w in zip(row, col_widths)).rstrip())
    return "\n".join(lines)
