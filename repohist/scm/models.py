"""Normalized history model shared by all backends."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterator, Optional


@dataclass(frozen=True)
class RepositoryCapabilities:
    """Static facts about a backend kind."""

    has_directory_history: bool
    tags_are_file_based: bool
    supports_branches: bool


@dataclass(frozen=True)
class HistoryEntry:
    """One revision of a file."""

    revision: str
    author: str
    date: datetime
    message: tuple[str, ...] = ()
    path: Optional[str] = None
    renamed_from: Optional[str] = None
    tags: tuple[str, ...] = ()
    # Commit the revision belongs to, for backends that number file
    # revisions apart from commits. None when they are the same.
    changeset: Optional[str] = None

    @property
    def tag_revision(self) -> str:
        """Revision tags are looked up under."""
        return self.changeset or self.revision

    @property
    def message_text(self) -> str:
        return "\n".join(self.message)

    def with_tags(self, tags: tuple[str, ...]) -> "HistoryEntry":
        """Return a copy of this entry carrying tag names."""
        return replace(self, tags=tags)


@dataclass
class History:
    """Revisions of one file, newest first."""

    entries: list[HistoryEntry] = field(default_factory=list)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def revisions(self) -> list[str]:
        return [entry.revision for entry in self.entries]


@dataclass(frozen=True)
class AnnotationLine:
    """Attribution of one line of a file."""

    line_number: int
    revision: str
    author: str
    text: str = ""


@dataclass(frozen=True)
class Annotation:
    """Per-line attribution for one file at one revision."""

    filename: str
    lines: tuple[AnnotationLine, ...] = ()

    def __len__(self) -> int:
        return len(self.lines)

    def revision_for(self, line_number: int) -> str:
        """Revision that last changed a 1-indexed line."""
        return self.lines[line_number - 1].revision

    def author_for(self, line_number: int) -> str:
        """Author that last changed a 1-indexed line."""
        return self.lines[line_number - 1].author


@dataclass(frozen=True, order=True)
class TagEntry:
    """
    A revision carrying one or more tag names.

    Ordered by date, then revision.
    """

    date: datetime
    revision: str
    names: tuple[str, ...] = ()
