"""Git history backend implementation."""

import logging
import re
from pathlib import Path
from typing import Optional

from repohist.config import Config, get_config
from repohist.errors import RetrievalError
from repohist.probes.tools import SubprocessError, run_command
from repohist.scm.git_parsers import LOG_FORMAT, GitBlameParser, GitHistoryParser, GitTagParser
from repohist.scm.models import Annotation, History, RepositoryCapabilities, TagEntry
from repohist.scm.utils import Memo, TagCache, assign_tags, retrieval_error
from repohist.scm.version import Version, VersionGate

logger = logging.getLogger(__name__)

CMD_FALLBACK = "git"
MARKER = ".git"

TAG_FORMAT = "%(objectname)%09%(*objectname)%09%(creatordate:iso-strict)%09%(refname:short)"
TAG_FORMAT_OLD = "%(objectname)%09%(*objectname)%09%(creatordate:iso)%09%(refname:short)"
STRICT_DATE_VERSION = Version((2, 2))

VERSION_PATTERN = re.compile(r"git version (\d+(?:\.\d+)*)")
DATE_PATTERNS = ("%Y-%m-%dT%H:%M:%S%z", "%Y-%m-%d %H:%M:%S %z")
UNTRACKED_MESSAGE = "did not match any file(s) known to git"


class GitRepository:
    """Git implementation of the history protocol."""

    kind = "git"
    capabilities = RepositoryCapabilities(
        has_directory_history=True,
        tags_are_file_based=True,
        supports_branches=True,
    )
    date_patterns = DATE_PATTERNS

    def __init__(self, root: Path, config: Optional[Config] = None):
        self.root = Path(root)
        self.config = config if config is not None else get_config()
        self._command: Memo[str] = Memo(
            lambda: self.config.command_for(self.kind, CMD_FALLBACK)
        )
        self._gate = VersionGate(self._version_output, VERSION_PATTERN, STRICT_DATE_VERSION)
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
            logger.debug(f"Git not available: {e}")
            return None
        if result.returncode != 0:
            logger.debug(f"git --version exited with {result.returncode}")
            return None
        return result.output_text

    @staticmethod
    def is_repository_root(path: Path) -> bool:
        """A Git repository has a .git directory (or worktree file) at its root."""
        return (Path(path) / MARKER).exists()

    def is_available(self) -> bool:
        return self._gate.working

    def get_version(self) -> Version:
        return self._gate.version

    def determine_branch(self, path: Optional[Path] = None) -> Optional[str]:
        """
        Get the checked out branch.

        Returns:
            Branch name, or None for a detached HEAD
        """
        argv = ["rev-parse", "--abbrev-ref", "HEAD"]
        try:
            result = self._run(argv, cwd=Path(path) if path else self.root)
        except SubprocessError as e:
            raise RetrievalError(f"Failed to determine branch: {e}") from e
        if result.returncode != 0:
            raise retrieval_error("determine branch", [self.command, *argv], result)

        branch = result.output_text.strip()
        return None if branch == "HEAD" else branch

    def determine_parent(self, path: Optional[Path] = None) -> Optional[str]:
        """
        Get the URL of the origin remote.

        `git config --get` exits with 1 and prints nothing when the key is
        unset; any other failure is an error.
        """
        argv = ["config", "--get", "remote.origin.url"]
        try:
            result = self._run(argv, cwd=Path(path) if path else self.root)
        except SubprocessError as e:
            raise RetrievalError(f"Failed to determine parent: {e}") from e

        if result.returncode == 0:
            return result.output_text.strip() or None
        if result.returncode == 1 and not result.stderr.strip():
            return None
        raise retrieval_error("determine parent", [self.command, *argv], result)

    def has_history_for_directories(self) -> bool:
        return self.capabilities.has_directory_history

    def has_file_based_tags(self) -> bool:
        return self.capabilities.tags_are_file_based

    def file_has_history(self, file: Path) -> bool:
        absolute = Path(file).absolute()
        argv = ["ls-files", "--error-unmatch", "--", absolute.name]
        try:
            result = self._run(argv, cwd=absolute.parent)
        except SubprocessError as e:
            logger.error(f"Failed to check file {absolute}: {e}")
            return False

        if result.returncode == 0:
            return True
        if UNTRACKED_MESSAGE in result.stderr:
            logger.debug(f"Not tracked by git: {absolute}")
        else:
            logger.error(f"Failed to check file {absolute}: {result.stderr.strip()}")
        return False

    def get_history(self, file: Path, since_revision: Optional[str] = None) -> History:
        absolute = Path(file).absolute()

        argv = ["log", "--follow", "--name-status", f"--pretty=format:{LOG_FORMAT}"]
        if since_revision is not None:
            argv.append(f"{since_revision}..HEAD")
        argv.extend(["--", absolute.name])

        parser = GitHistoryParser(self.date_patterns, since_revision=since_revision)
        try:
            result = self._run(argv, cwd=absolute.parent, line_handler=parser)
        except SubprocessError as e:
            raise RetrievalError(f"Failed to get history for {absolute}: {e}") from e
        if result.returncode != 0:
            raise retrieval_error("get history", [self.command, *argv], result)

        history = parser.history
        logger.debug(f"Parsed {len(history)} git log entries for {absolute}")

        if self.config.tags_enabled and self.has_file_based_tags():
            history = assign_tags(history, self.get_tag_list())

        return history

    def get_file_content(
        self, directory: Path, basename: str, revision: Optional[str] = None
    ) -> Optional[bytes]:
        # The object name always needs a revision; HEAD is the latest commit.
        argv = ["show", f"{revision or 'HEAD'}:./{basename}"]
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
        absolute = Path(file).resolve()

        argv = ["blame", "--line-porcelain"]
        if revision is not None:
            argv.append(revision)
        argv.extend(["--", absolute.name])

        parser = GitBlameParser(absolute.name)
        try:
            result = self._run(argv, cwd=absolute.parent, line_handler=parser)
        except SubprocessError as e:
            raise RetrievalError(f"Failed to annotate {absolute}: {e}") from e
        if result.returncode != 0:
            raise retrieval_error("annotate", [self.command, *argv], result)

        return parser.annotation

    def _read_tags(self, directory: Path) -> list[TagEntry]:
        tag_format = self._gate.select(TAG_FORMAT, TAG_FORMAT_OLD)
        argv = ["for-each-ref", f"--format={tag_format}", "refs/tags"]
        parser = GitTagParser(self.date_patterns)
        try:
            result = self._run(argv, cwd=directory, line_handler=parser)
        except SubprocessError as e:
            logger.error(f"Failed to list tags in {directory}: {e}")
            return []
        if result.returncode != 0:
            logger.error(f"Failed to list tags in {directory}: {result.stderr.strip()}")
            return []

        entries = parser.entries
        logger.debug(f"Found {len(entries)} tagged commits in {directory}")
        return entries

    def build_tag_list(self, directory: Optional[Path] = None) -> None:
        self._tags.rebuild(lambda: self._read_tags(Path(directory) if directory else self.root))

    def get_tag_list(self) -> list[TagEntry]:
        return self._tags.get(lambda: self._read_tags(self.root))

    def update(self) -> None:
        """Fast-forward the working copy from its upstream."""
        argv = ["pull", "--ff-only"]
        try:
            result = self._run(argv, cwd=self.root)
        except SubprocessError as e:
            raise RetrievalError(f"Failed to update {self.root}: {e}") from e
        if result.returncode != 0:
            raise retrieval_error("update", [self.command, *argv], result)
        logger.debug(f"Updated {self.root}")
