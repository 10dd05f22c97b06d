"""History retrieval abstraction over version control backends."""

from pathlib import Path
from typing import Optional, Protocol

from repohist.scm.models import Annotation, History, RepositoryCapabilities, TagEntry
from repohist.scm.version import Version


class HistoryRepository(Protocol):
    """Version control history protocol used by the indexer.

    One instance is bound to one repository root. Lazily computed state
    (tool availability, detected version, tag list) is memoized for the
    lifetime of the instance and safe under concurrent first use.
    """

    kind: str
    root: Path
    capabilities: RepositoryCapabilities

    def is_repository_root(self, path: Path) -> bool:
        """
        Check for the backend's marker in a directory.

        Pure filesystem check, never runs the backend tool.

        Args:
            path: Directory to check

        Returns:
            True if path is a repository root for this backend
        """

    def is_available(self) -> bool:
        """
        Check whether the backend tool is installed and working.

        Memoized. Never raises.

        Returns:
            True if the tool ran successfully
        """

    def get_version(self) -> Version:
        """Detected tool version, or the oldest known version if unparseable."""

    def determine_branch(self, path: Optional[Path] = None) -> Optional[str]:
        """
        Get the current branch.

        Returns:
            Branch name, or None if the backend has no branches

        Raises:
            RetrievalError: If the tool invocation fails
        """

    def determine_parent(self, path: Optional[Path] = None) -> Optional[str]:
        """
        Get the upstream repository this one pulls from.

        Returns:
            Parent location, or None if no parent is configured

        Raises:
            RetrievalError: If the tool invocation fails for another reason
        """

    def has_history_for_directories(self) -> bool:
        """Whether directories have their own history."""

    def has_file_based_tags(self) -> bool:
        """Whether the tag list is built up front rather than queried per file."""

    def file_has_history(self, file: Path) -> bool:
        """
        Check whether a file is tracked.

        Logs and returns False on tool failure.
        """

    def get_history(self, file: Path, since_revision: Optional[str] = None) -> History:
        """
        Get the history of a file, newest first.

        Args:
            file: File in the repository
            since_revision: Only return revisions after this one (exclusive)

        Returns:
            History of the file

        Raises:
            RetrievalError: If the tool invocation fails
        """

    def get_file_content(
        self, directory: Path, basename: str, revision: Optional[str] = None
    ) -> Optional[bytes]:
        """
        Get file content at a revision.

        Args:
            directory: Directory containing the file
            basename: File name
            revision: Revision, or None for latest

        Returns:
            Content bytes, or None on tool failure
        """

    def file_has_annotation(self, file: Path) -> bool:
        """Check whether a file can be annotated."""

    def annotate(self, file: Path, revision: Optional[str] = None) -> Annotation:
        """
        Attribute each line of a file to a revision and author.

        Raises:
            RetrievalError: If the tool invocation fails
            MalformedOutputError: If any output line is malformed
        """

    def build_tag_list(self, directory: Optional[Path] = None) -> None:
        """
        Build (or rebuild) the cached tag list.

        Logs failures and leaves the tag list empty.
        """

    def get_tag_list(self) -> list[TagEntry]:
        """Get the tag list, building it on first use."""

    def update(self) -> None:
        """
        Pull changes into the working copy.

        Raises:
            UnsupportedOperation: If the backend cannot update
            RetrievalError: If the update fails
        """
