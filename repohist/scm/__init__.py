"""Version control history abstraction layer."""

from repohist.scm.bitkeeper import BitKeeperRepository
from repohist.scm.git import GitRepository
from repohist.scm.models import (
    Annotation,
    AnnotationLine,
    History,
    HistoryEntry,
    RepositoryCapabilities,
    TagEntry,
)
from repohist.scm.protocol import HistoryRepository
from repohist.scm.registry import (
    discover_repositories,
    find_repository,
    register_backend,
    registered_kinds,
    repository_for,
)
from repohist.scm.version import Version, VersionGate

__all__ = [
    "Annotation",
    "AnnotationLine",
    "BitKeeperRepository",
    "GitRepository",
    "History",
    "HistoryEntry",
    "HistoryRepository",
    "RepositoryCapabilities",
    "TagEntry",
    "Version",
    "VersionGate",
    "discover_repositories",
    "find_repository",
    "register_backend",
    "registered_kinds",
    "repository_for",
]
