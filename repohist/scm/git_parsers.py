"""Parsers for git log, blame and for-each-ref output."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from repohist.errors import MalformedOutputError
from repohist.scm.models import Annotation, AnnotationLine, History, HistoryEntry, TagEntry
from repohist.scm.utils import parse_date

logger = logging.getLogger(__name__)

RECORD_MARKER = "\x1e"
BODY_END_MARKER = "\x1f"

# Header, raw message, then end marker; --name-status lines follow.
LOG_FORMAT = "%x1e%H%x09%aI%x09%an <%ae>%n%B%x1f"

BLAME_HEADER = re.compile(r"^([0-9a-f]{40}|[0-9a-f]{64}) (\d+) (\d+)(?: \d+)?$")
RENAME_STATUS = re.compile(r"^[RC]\d*\t(.+)\t(.+)$")
CHANGE_STATUS = re.compile(r"^[AMDTUX]\t(.+)$")


@dataclass
class _PendingCommit:
    revision: str
    date: datetime
    author: str
    message: list[str] = field(default_factory=list)
    path: Optional[str] = None
    renamed_from: Optional[str] = None

    def freeze(self) -> HistoryEntry:
        message = list(self.message)
        while message and not message[-1].strip():
            message.pop()
        return HistoryEntry(
            revision=self.revision,
            author=self.author,
            date=self.date,
            message=tuple(message),
            path=self.path,
            renamed_from=self.renamed_from,
        )


class GitHistoryParser:
    """
    Parses `git log --name-status` output produced with LOG_FORMAT.

    Each record is a header line, the commit message, an end-of-message
    marker and the name-status lines for the followed file.
    """

    def __init__(self, date_patterns: Sequence[str], since_revision: Optional[str] = None):
        self.date_patterns = date_patterns
        self.since_revision = since_revision
        self._entries: list[HistoryEntry] = []
        self._seen: set[str] = set()
        self._current: Optional[_PendingCommit] = None
        self._in_message = False
        self._finished = False

    def __call__(self, line: str) -> None:
        if line.startswith(RECORD_MARKER):
            self._flush()
            self._current = self._parse_header(line[len(RECORD_MARKER) :])
            self._in_message = True
            return

        if self._current is None:
            return

        if self._in_message:
            if line.endswith(BODY_END_MARKER):
                text = line[: -len(BODY_END_MARKER)]
                if text:
                    self._current.message.append(text)
                self._in_message = False
            else:
                self._current.message.append(line)
            return

        rename = RENAME_STATUS.match(line)
        if rename:
            self._current.renamed_from = rename.group(1)
            self._current.path = rename.group(2)
            return
        change = CHANGE_STATUS.match(line)
        if change:
            self._current.path = change.group(1)

    def _parse_header(self, header: str) -> Optional[_PendingCommit]:
        fields = header.split("\t", 2)
        if len(fields) != 3:
            logger.warning(f"Dropping malformed git log record: {header!r}")
            return None
        revision, date_text, author = fields
        try:
            date = parse_date(date_text, self.date_patterns)
        except ValueError:
            logger.warning(f"Dropping git log record {revision} with bad date: {date_text!r}")
            return None
        return _PendingCommit(revision=revision, date=date, author=author)

    def _flush(self) -> None:
        current, self._current = self._current, None
        if current is None:
            return
        if self.since_revision and current.revision.startswith(self.since_revision):
            return
        if current.revision in self._seen:
            logger.warning(f"Dropping duplicate git log record for {current.revision}")
            return
        self._seen.add(current.revision)
        self._entries.append(current.freeze())

    @property
    def history(self) -> History:
        if not self._finished:
            self._flush()
            self._finished = True
        return History(entries=list(self._entries))


class GitBlameParser:
    """
    Parses `git blame --line-porcelain` output.

    Every file line produces a header, a block of key/value lines and the
    tab-prefixed content. Any deviation fails the whole annotation.
    """

    def __init__(self, filename: str):
        self.filename = filename
        self._lines: list[AnnotationLine] = []
        self._revision: Optional[str] = None
        self._author = ""

    def __call__(self, line: str) -> None:
        if self._revision is None:
            match = BLAME_HEADER.match(line)
            if not match:
                raise MalformedOutputError(
                    f"Malformed blame header for {self.filename}: {line!r}"
                )
            if int(match.group(3)) != len(self._lines) + 1:
                raise MalformedOutputError(
                    f"Out of order blame line {match.group(3)} for {self.filename}"
                )
            self._revision = match.group(1)
            self._author = ""
            return

        if line.startswith("\t"):
            self._lines.append(
                AnnotationLine(
                    line_number=len(self._lines) + 1,
                    revision=self._revision,
                    author=self._author,
                    text=line[1:],
                )
            )
            self._revision = None
        elif line.startswith("author "):
            self._author = line[len("author ") :]

    @property
    def annotation(self) -> Annotation:
        if self._revision is not None:
            raise MalformedOutputError(f"Truncated blame output for {self.filename}")
        return Annotation(filename=self.filename, lines=tuple(self._lines))


class GitTagParser:
    """
    Parses `git for-each-ref refs/tags` output.

    Each line is ``<object>\\t<peeled object>\\t<date>\\t<tag name>``; the
    peeled object is set for annotated tags and names the tagged commit.
    """

    def __init__(self, date_patterns: Sequence[str]):
        self.date_patterns = date_patterns
        self._names: dict[str, list[str]] = {}
        self._dates: dict[str, datetime] = {}

    def __call__(self, line: str) -> None:
        if not line:
            return
        fields = line.split("\t", 3)
        if len(fields) != 4:
            logger.warning(f"Dropping malformed git tag line: {line!r}")
            return
        obj, peeled, date_text, name = fields
        revision = peeled or obj
        try:
            date = parse_date(date_text, self.date_patterns)
        except ValueError:
            logger.warning(f"Dropping git tag {name} with bad date: {date_text!r}")
            return
        self._names.setdefault(revision, []).append(name)
        if revision not in self._dates or date > self._dates[revision]:
            self._dates[revision] = date

    @property
    def entries(self) -> list[TagEntry]:
        return sorted(
            TagEntry(date=self._dates[revision], revision=revision, names=tuple(sorted(names)))
            for revision, names in self._names.items()
        )
