"""Parsers for BitKeeper dspec-formatted output."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from repohist.errors import MalformedOutputError
from repohist.scm.models import Annotation, AnnotationLine, History, HistoryEntry, TagEntry
from repohist.scm.utils import parse_date

logger = logging.getLogger(__name__)

RECORD_PREFIX = "D "
COMMENT_PREFIX = "C "
TAG_PREFIX = "T "


def _prefixed(line: str, prefix: str) -> Optional[str]:
    """Return the text after prefix, or None if line is not of that kind."""
    if line.startswith(prefix):
        return line[len(prefix) :]
    if line == prefix.rstrip():
        return ""
    return None


@dataclass
class _PendingEntry:
    path: str
    revision: str
    date: datetime
    author: str
    changeset: Optional[str] = None
    renamed_from: Optional[str] = None
    comments: list[str] = field(default_factory=list)

    def freeze(self) -> HistoryEntry:
        return HistoryEntry(
            revision=self.revision,
            author=self.author,
            date=self.date,
            message=tuple(self.comments),
            path=self.path,
            renamed_from=self.renamed_from,
            changeset=self.changeset,
        )


class BitKeeperHistoryParser:
    """
    Parses `bk log` output produced with the history dspec.

    Record header:
    ``D <path>\\t<rev>\\t<date>\\t<user>[\\t<changeset>[\\t<renamed-from>]]``
    followed by zero or more ``C <comment>`` lines. The changeset field is
    empty for deltas not yet committed.

    Feed lines by calling the parser, then read ``history``.
    """

    def __init__(self, date_patterns: Sequence[str], since_revision: Optional[str] = None):
        self.date_patterns = date_patterns
        self.since_revision = since_revision
        self._entries: list[HistoryEntry] = []
        self._seen: set[str] = set()
        self._current: Optional[_PendingEntry] = None
        self._finished = False

    def __call__(self, line: str) -> None:
        header = _prefixed(line, RECORD_PREFIX)
        if header is not None:
            self._flush()
            self._current = self._parse_header(header)
            return

        comment = _prefixed(line, COMMENT_PREFIX)
        if comment is not None:
            if self._current is not None:
                self._current.comments.append(comment)
            return

        if line:
            logger.debug(f"Ignoring unexpected bk log line: {line!r}")

    def _parse_header(self, header: str) -> Optional[_PendingEntry]:
        fields = header.split("\t")
        if len(fields) < 4:
            logger.warning(f"Dropping malformed bk log record: {header!r}")
            return None

        path, revision, date_text, author = fields[:4]
        try:
            date = parse_date(date_text, self.date_patterns)
        except ValueError:
            logger.warning(f"Dropping bk log record {revision} with bad date: {date_text!r}")
            return None

        changeset = fields[4] if len(fields) > 4 and fields[4] else None
        renamed_from = fields[5] if len(fields) > 5 and fields[5] else None
        return _PendingEntry(
            path=path,
            revision=revision,
            date=date,
            author=author,
            changeset=changeset,
            renamed_from=renamed_from,
        )

    def _flush(self) -> None:
        current, self._current = self._current, None
        if current is None:
            return
        if current.revision == self.since_revision:
            return
        if current.revision in self._seen:
            logger.warning(f"Dropping duplicate bk log record for revision {current.revision}")
            return
        self._seen.add(current.revision)
        self._entries.append(current.freeze())

    @property
    def history(self) -> History:
        if not self._finished:
            self._flush()
            self._finished = True
        return History(entries=list(self._entries))


class BitKeeperAnnotationParser:
    """
    Parses `bk annotate -aur` output.

    Each line is ``<user>\\t<rev>\\t<text>``. Any other shape fails the
    whole annotation.
    """

    def __init__(self, filename: str):
        self.filename = filename
        self._lines: list[AnnotationLine] = []

    def __call__(self, line: str) -> None:
        fields = line.split("\t", 2)
        if len(fields) != 3 or not fields[0] or not fields[1]:
            raise MalformedOutputError(
                f"Malformed annotation line {len(self._lines) + 1} for {self.filename}: {line!r}"
            )
        author, revision, text = fields
        self._lines.append(
            AnnotationLine(
                line_number=len(self._lines) + 1,
                revision=revision,
                author=author,
                text=text,
            )
        )

    @property
    def annotation(self) -> Annotation:
        return Annotation(filename=self.filename, lines=tuple(self._lines))


class BitKeeperTagParser:
    """
    Parses `bk tags` output produced with a tag dspec.

    Record header: ``D <rev>\\t<date>`` followed by one ``T <tag>`` line per
    tag on that changeset.
    """

    def __init__(self, date_patterns: Sequence[str]):
        self.date_patterns = date_patterns
        self._entries: set[TagEntry] = set()
        self._revision: Optional[str] = None
        self._date: Optional[datetime] = None
        self._names: list[str] = []

    def __call__(self, line: str) -> None:
        header = _prefixed(line, RECORD_PREFIX)
        if header is not None:
            self._flush()
            self._start(header)
            return

        name = _prefixed(line, TAG_PREFIX)
        if name is not None:
            if self._revision is not None and name:
                self._names.append(name)
            return

        if line:
            logger.debug(f"Ignoring unexpected bk tags line: {line!r}")

    def _start(self, header: str) -> None:
        fields = header.split("\t")
        if len(fields) < 2:
            logger.warning(f"Dropping malformed bk tags record: {header!r}")
            return
        try:
            self._date = parse_date(fields[1], self.date_patterns)
        except ValueError:
            logger.warning(f"Dropping bk tags record {fields[0]} with bad date: {fields[1]!r}")
            return
        self._revision = fields[0]

    def _flush(self) -> None:
        if self._revision is not None and self._date is not None and self._names:
            self._entries.add(
                TagEntry(date=self._date, revision=self._revision, names=tuple(self._names))
            )
        self._revision = None
        self._date = None
        self._names = []

    @property
    def entries(self) -> list[TagEntry]:
        self._flush()
        return sorted(self._entries)
