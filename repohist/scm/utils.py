"""Common helpers for history backends."""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Generic, Iterable, Optional, Sequence, TypeVar

from repohist.errors import RetrievalError
from repohist.probes.tools import CommandResult
from repohist.scm.models import History, TagEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Memo(Generic[T]):
    """
    Value computed at most once, on first use.

    Concurrent first callers block until the single computation finishes.
    """

    def __init__(self, compute: Callable[[], T]):
        self._compute = compute
        self._lock = threading.Lock()
        self._computed = False
        self._value: Optional[T] = None

    @property
    def computed(self) -> bool:
        return self._computed

    def get(self) -> T:
        if not self._computed:
            with self._lock:
                if not self._computed:
                    self._value = self._compute()
                    self._computed = True
        return self._value  # type: ignore[return-value]


class TagCache:
    """
    Repository-wide tag list, built once per session.

    Rebuilding only happens through rebuild().
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Optional[list[TagEntry]] = None

    @property
    def built(self) -> bool:
        return self._entries is not None

    def get(self, builder: Callable[[], list[TagEntry]]) -> list[TagEntry]:
        """
        Get the tag list, building it on first use.

        Args:
            builder: Produces the tag list; called at most once
        """
        if self._entries is None:
            with self._lock:
                if self._entries is None:
                    self._entries = builder()
        return list(self._entries)

    def rebuild(self, builder: Callable[[], list[TagEntry]]) -> None:
        """Replace the tag list with a freshly built one."""
        with self._lock:
            self._entries = builder()


def parse_date(text: str, patterns: Sequence[str]) -> datetime:
    """
    Parse a backend date and normalize it to UTC.

    Args:
        text: Date as emitted by the backend
        patterns: strptime patterns the backend is declared to use

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        ValueError: If no pattern matches
    """
    for pattern in patterns:
        try:
            parsed = datetime.strptime(text.strip(), pattern)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    raise ValueError(f"Unparseable date: {text!r}")


def assign_tags(history: History, tags: Iterable[TagEntry]) -> History:
    """
    Attach tag names to the entries whose commit carries them.

    Entries are matched on their changeset revision when they have one,
    since tags name commits rather than file revisions.

    Args:
        history: History to annotate
        tags: Repository-wide tag list

    Returns:
        New History with tagged entries
    """
    names_by_revision: dict[str, list[str]] = {}
    for tag in tags:
        names_by_revision.setdefault(tag.revision, []).extend(tag.names)

    if not names_by_revision:
        return history

    entries = []
    for entry in history.entries:
        names = names_by_revision.get(entry.tag_revision)
        entries.append(entry.with_tags(tuple(names)) if names else entry)
    return History(entries=entries)


def retrieval_error(action: str, cmd: Sequence[str], result: CommandResult) -> RetrievalError:
    """Build a RetrievalError for a failed tool invocation."""
    stderr = result.stderr.strip()
    message = f"Failed to {action}: {' '.join(cmd)} exited with {result.returncode}"
    if stderr:
        message += f"\n{stderr}"
    return RetrievalError(message, stderr=result.stderr)
