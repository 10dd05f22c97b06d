"""BitKeeper history backend implementation.

BitKeeper keeps independent revisions for each file, and groups file deltas
into changesets with their own revision numbers. History is reported per
file revision along with the changeset that revision belongs to. Tags
attach to changesets, so the tag list is built once per repository up
front and matched on each entry's changeset.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from repohist.config import Config, get_config
from repohist.errors import RetrievalError, UnsupportedOperation
from repohist.probes.tools import SubprocessError, run_command
from repohist.scm.bitkeeper_parsers import (
    BitKeeperAnnotationParser,
    BitKeeperHistoryParser,
    BitKeeperTagParser,
)
from repohist.scm.models import Annotation, History, RepositoryCapabilities, TagEntry
from repohist.scm.utils import Memo, TagCache, assign_tags, retrieval_error
from repohist.scm.version import Version, VersionGate

logger = logging.getLogger(__name__)

CMD_FALLBACK = "bk"
MARKER_DIR = ".bk"

# A dspec keeps parsing independent of any system-wide default dspec.
LOG_DSPEC = (
    r"D :DPN:\t:REV:\t:D_: :T: GMT:TZ:\t:USER:\t:CSETREV:$if(:RENAME:){\t:DPN|PARENT:}\n"
    r"$each(:C:){C (:C:)\n}"
)
TAG_DSPEC = r"D :REV:\t:D_: :T: GMT:TZ:\n$each(:TAGS:){T (:TAGS:)\n}"
TAG_DSPEC_OLD = r"D :REV:\t:D_: :T: GMT:TZ:\n$each(:TAG:){T (:TAG:)\n}"
NEW_DSPEC_VERSION = Version((7, 3))

VERSION_PATTERN = re.compile(r"version is .*-(\d+(?:\.\d+)*)")
DATE_PATTERNS = ("%Y-%m-%d %H:%M:%S GMT%z",)
NO_PARENT_MESSAGE = "This repository has no pull parent."


class BitKeeperRepository:
    """BitKeeper implementation of the history protocol."""

    kind = "bitkeeper"
    capabilities = RepositoryCapabilities(
        has_directory_history=False,
        tags_are_file_based=True,
        supports_branches=False,
    )
    date_patterns = DATE_PATTERNS

    def __init__(self, root: Path, config: Optional[Config] = None):
        self.root = Path(root)
        self.config = config if config is not None else get_config()
        self._command: Memo[str] = Memo(
            lambda: self.config.command_for(self.kind, CMD_FALLBACK)
        )
        self._gate = VersionGate(self._version_output, VERSION_PATTERN, NEW_DSPEC_VERSION)
        self._tags = TagCache()

    @property
    def command(self) -> str:
        return self._command.get()

    def _run(self, argv: list[str], cwd: Optional[Path] = None, line_handler=None):
        return run_command(
            [self.command, *argv],
            cwd=cwd,
            timeout=self.config.command_timeout,
            line_handler=line_handler,
        )

    def _version_output(self) -> Optional[str]:
        try:
            result = self._run(["--version"])
        except SubprocessError as e:
            logger.debug(f"BitKeeper not available: {e}")
            return None
        if result.returncode != 0:
            logger.debug(f"bk --version exited with {result.returncode}")
            return None
        return result.output_text

    @staticmethod
    def is_repository_root(path: Path) -> bool:
        """A BitKeeper repository has a .bk directory at its root."""
        return (Path(path) / MARKER_DIR).is_dir()

    def is_available(self) -> bool:
        return self._gate.working

    def get_version(self) -> Version:
        """Version of the bk executable, or the oldest version if unknown."""
        return self._gate.version

    def determine_branch(self, path: Optional[Path] = None) -> Optional[str]:
        """BitKeeper has no branches as such."""
        return None

    def determine_parent(self, path: Optional[Path] = None) -> Optional[str]:
        """
        Get the first pull parent of the repository.

        A repository may have several push and pull parents; only the first
        pull parent is reported.
        """
        argv = ["parent", "-1il"]
        try:
            result = self._run(argv, cwd=Path(path) if path else self.root)
        except SubprocessError as e:
            raise RetrievalError(f"Failed to determine parent: {e}") from e

        output = result.output_text.strip()
        if result.returncode == 0:
            return output or None
        if NO_PARENT_MESSAGE in (output, result.stderr.strip()):
            return None
        raise retrieval_error("determine parent", [self.command, *argv], result)

    def has_history_for_directories(self) -> bool:
        return self.capabilities.has_directory_history

    def has_file_based_tags(self) -> bool:
        return self.capabilities.tags_are_file_based

    def file_has_history(self, file: Path) -> bool:
        absolute = Path(file).absolute()
        basename = absolute.name
        try:
            result = self._run(["files", basename], cwd=absolute.parent)
        except SubprocessError as e:
            logger.error(f"Failed to check file {absolute}: {e}")
            return False

        if result.returncode != 0:
            logger.error(f"Failed to check file {absolute}: {result.stderr.strip()}")
            return False

        return result.output_text.strip() == basename

    def get_history(self, file: Path, since_revision: Optional[str] = None) -> History:
        absolute = Path(file).absolute()

        argv = ["log"]
        if since_revision is not None:
            argv.append(f"-r{since_revision}..")
        argv.append(f"-d{LOG_DSPEC}")
        argv.append(absolute.name)

        parser = BitKeeperHistoryParser(self.date_patterns, since_revision=since_revision)
        try:
            result = self._run(argv, cwd=absolute.parent, line_handler=parser)
        except SubprocessError as e:
            raise RetrievalError(f"Failed to get history for {absolute}: {e}") from e
        if result.returncode != 0:
            raise retrieval_error("get history", [self.command, *argv], result)

        history = parser.history
        logger.debug(f"Parsed {len(history)} bk log entries for {absolute}")

        if self.config.tags_enabled and self.has_file_based_tags():
            history = assign_tags(history, self.get_tag_list())

        return history

    def get_file_content(
        self, directory: Path, basename: str, revision: Optional[str] = None
    ) -> Optional[bytes]:
        argv = ["get", "-p"]
        if revision is not None:
            argv.append(f"-r{revision}")
        argv.append(basename)

        try:
            result = self._run(argv, cwd=Path(directory).absolute())
        except SubprocessError as e:
            logger.error(f"Failed to get {basename}@{revision}: {e}")
            return None

        if result.returncode != 0:
            logger.error(f"Failed to get {basename}@{revision}: {result.stderr.strip()}")
            return None

        return result.stdout

    def file_has_annotation(self, file: Path) -> bool:
        return self.file_has_history(file)

    def annotate(self, file: Path, revision: Optional[str] = None) -> Annotation:
        """
        Annotate a file.

        `bk annotate -aur` prints the last user to edit each line, the
        revision it was edited in, then the line itself, tab separated.
        """
        absolute = Path(file).resolve()

        argv = ["annotate", "-aur"]
        if revision is not None:
            argv.append(f"-r{revision}")
        argv.append(absolute.name)

        parser = BitKeeperAnnotationParser(absolute.name)
        try:
            result = self._run(argv, cwd=absolute.parent, line_handler=parser)
        except SubprocessError as e:
            raise RetrievalError(f"Failed to annotate {absolute}: {e}") from e
        if result.returncode != 0:
            raise retrieval_error("annotate", [self.command, *argv], result)

        return parser.annotation

    def _tag_dspec(self) -> str:
        return self._gate.select(TAG_DSPEC, TAG_DSPEC_OLD)

    def _read_tags(self, directory: Path) -> list[TagEntry]:
        argv = ["tags", f"-d{self._tag_dspec()}"]
        parser = BitKeeperTagParser(self.date_patterns)
        try:
            result = self._run(argv, cwd=directory, line_handler=parser)
        except SubprocessError as e:
            logger.error(f"Failed to list tags in {directory}: {e}")
            return []
        if result.returncode != 0:
            logger.error(f"Failed to list tags in {directory}: {result.stderr.strip()}")
            return []

        entries = parser.entries
        logger.debug(f"Found {len(entries)} tagged changesets in {directory}")
        return entries

    def build_tag_list(self, directory: Optional[Path] = None) -> None:
        self._tags.rebuild(lambda: self._read_tags(Path(directory) if directory else self.root))

    def get_tag_list(self) -> list[TagEntry]:
        return self._tags.get(lambda: self._read_tags(self.root))

    def update(self) -> None:
        raise UnsupportedOperation("BitKeeper repositories cannot be updated")
