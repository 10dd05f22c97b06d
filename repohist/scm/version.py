"""Tool version detection for backends whose output syntax changed over time."""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional, Pattern

from repohist.scm.utils import Memo

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class Version:
    """Dotted numeric version. Trailing zero components are insignificant."""

    parts: tuple[int, ...]

    def __post_init__(self) -> None:
        parts = self.parts
        while len(parts) > 1 and parts[-1] == 0:
            parts = parts[:-1]
        object.__setattr__(self, "parts", parts)

    @classmethod
    def parse(cls, text: str) -> "Version":
        """
        Parse a dotted version number such as "7.3.1".

        Raises:
            ValueError: If text is not a dotted number
        """
        if not re.fullmatch(r"\d+(\.\d+)*", text.strip()):
            raise ValueError(f"Invalid version number: {text!r}")
        return cls(tuple(int(p) for p in text.strip().split(".")))

    def __str__(self) -> str:
        return ".".join(str(p) for p in self.parts)


OLDEST_VERSION = Version((0,))


def parse_version(text: str, pattern: Pattern[str]) -> Version:
    """
    Extract a version number from free-form version output.

    Args:
        text: Output of the tool's version command
        pattern: Regex whose first group captures the dotted version

    Returns:
        Parsed version, or OLDEST_VERSION if none could be found
    """
    match = pattern.search(text)
    if match:
        try:
            return Version.parse(match.group(1))
        except ValueError:
            pass
    logger.debug(f"No version number in {text!r}, assuming {OLDEST_VERSION}")
    return OLDEST_VERSION


@dataclass(frozen=True)
class ToolStatus:
    """Outcome of the one-time version probe."""

    working: bool
    version: Version


class VersionGate:
    """
    Detects the installed tool version once and picks between format variants.

    Args:
        probe: Runs the tool's version command; returns its output, or None
            if the tool is missing or failed
        pattern: Regex extracting the version from the probe output
        threshold: First version supporting the new format
    """

    def __init__(
        self,
        probe: Callable[[], Optional[str]],
        pattern: Pattern[str],
        threshold: Version,
    ):
        self._probe = probe
        self._pattern = pattern
        self.threshold = threshold
        self._status: Memo[ToolStatus] = Memo(self._detect)

    def _detect(self) -> ToolStatus:
        text = self._probe()
        if text is None:
            return ToolStatus(working=False, version=OLDEST_VERSION)
        return ToolStatus(working=True, version=parse_version(text, self._pattern))

    @property
    def working(self) -> bool:
        return self._status.get().working

    @property
    def version(self) -> Version:
        return self._status.get().version

    def supports_new_format(self) -> bool:
        """Whether the detected version is at or above the threshold."""
        return self.version >= self.threshold

    def select(self, new_format: str, old_format: str) -> str:
        """Pick the format string matching the detected version."""
        return new_format if self.supports_new_format() else old_format
