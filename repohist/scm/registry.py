"""Registry of history backends and repository discovery."""

import logging
import os
from pathlib import Path
from typing import Callable, Optional, Protocol

from repohist.config import Config
from repohist.scm.bitkeeper import BitKeeperRepository
from repohist.scm.git import GitRepository
from repohist.scm.protocol import HistoryRepository

logger = logging.getLogger(__name__)


class RepositoryFactory(Protocol):
    """Constructor of a backend adapter, with its root-marker check."""

    def __call__(self, root: Path, config: Optional[Config] = None) -> HistoryRepository: ...

    def is_repository_root(self, path: Path) -> bool: ...


# Probed in registration order.
_FACTORIES: dict[str, RepositoryFactory] = {}

# Marker directories never hold nested repositories.
SKIP_DIRS = frozenset({".git", ".bk", ".hg", ".svn"})


def register_backend(kind: str, factory: RepositoryFactory) -> None:
    """
    Register a backend adapter constructor.

    Args:
        kind: Backend kind (e.g., "git")
        factory: Adapter class or callable with an is_repository_root check
    """
    _FACTORIES[kind] = factory
    logger.debug(f"Registered history backend: {kind}")


def unregister_backend(kind: str) -> None:
    """Remove a backend from the registry."""
    _FACTORIES.pop(kind, None)


def registered_kinds() -> list[str]:
    """Backend kinds in probing order."""
    return list(_FACTORIES)


def get_factory(kind: str) -> RepositoryFactory:
    """
    Get the constructor registered for a kind.

    Raises:
        KeyError: If no backend of that kind is registered
    """
    return _FACTORIES[kind]


def repository_for(path: Path, config: Optional[Config] = None) -> Optional[HistoryRepository]:
    """
    Get an adapter for a repository root.

    Args:
        path: Directory to probe
        config: Configuration passed to the adapter

    Returns:
        Adapter of the first backend whose marker is present, or None
    """
    for kind, factory in _FACTORIES.items():
        if factory.is_repository_root(path):
            logger.debug(f"{path} is a {kind} repository")
            return factory(Path(path), config)
    return None


def find_repository(file: Path, config: Optional[Config] = None) -> Optional[HistoryRepository]:
    """
    Get the adapter for the innermost repository containing a file.

    Args:
        file: File or directory inside a repository
        config: Configuration passed to the adapter

    Returns:
        Adapter for the containing repository, or None
    """
    start = Path(file).absolute()
    candidates = [start] if start.is_dir() else []
    candidates.extend(start.parents)
    for candidate in candidates:
        repository = repository_for(candidate, config)
        if repository is not None:
            return repository
    return None


def discover_repositories(
    root: Path,
    config: Optional[Config] = None,
    on_found: Optional[Callable[[HistoryRepository], None]] = None,
) -> list[HistoryRepository]:
    """
    Walk a source tree and collect every repository root, nested ones included.

    Only filesystem markers are checked; no backend tool is run.

    Args:
        root: Top of the source tree
        config: Configuration passed to each adapter
        on_found: Called for each repository as it is found

    Returns:
        Adapters in walk order (parents before nested repositories)
    """
    repositories: list[HistoryRepository] = []
    for dirpath, dirnames, _filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
        repository = repository_for(Path(dirpath), config)
        if repository is None:
            continue
        repositories.append(repository)
        if on_found is not None:
            on_found(repository)

    logger.debug(f"Discovered {len(repositories)} repositories under {root}")
    return repositories


register_backend(BitKeeperRepository.kind, BitKeeperRepository)
register_backend(GitRepository.kind, GitRepository)
