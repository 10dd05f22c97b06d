"""Configuration loader."""

import configparser
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from repohist.errors import ConfigError

DEFAULT_COMMAND_TIMEOUT = 600
DEFAULT_CONFIG_PATH = Path("~/.config/repohist/config")

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Repohist configuration."""

    commands: dict[str, str] = field(default_factory=dict)
    tags_enabled: bool = False
    command_timeout: Optional[int] = DEFAULT_COMMAND_TIMEOUT
    config_path: Optional[Path] = None

    def command_for(self, kind: str, fallback: str) -> str:
        """
        Resolve the executable for a backend.

        Args:
            kind: Backend kind (e.g., "bitkeeper")
            fallback: Command name used when nothing is configured

        Returns:
            Configured executable path, or the fallback
        """
        env_value = os.environ.get(f"REPOHIST_{kind.upper()}_CMD")
        if env_value:
            return env_value
        return self.commands.get(kind) or fallback


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_config_file(config_path: Path) -> dict[str, str]:
    """
    Parse INI-style config file.

    Returns:
        Dict of config values (flattened: section.key -> value)
    """
    if not config_path.exists():
        return {}

    parser = configparser.ConfigParser()
    try:
        parser.read(config_path)
    except configparser.Error as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e

    config = {}

    # Parse DEFAULT section (values without [DEFAULT] prefix)
    for key, value in parser.defaults().items():
        config[key.upper()] = value

    # Parse other sections
    for section in parser.sections():
        for key, value in parser.items(section, raw=True):
            if key in parser.defaults():
                continue
            config[f"{section}.{key}"] = value

    return config


def get_config(config_path: Optional[Path] = None) -> Config:
    """
    Get current configuration.

    Resolves from:
    1. Environment variables
    2. Config file ($REPOHIST_CONFIG or ~/.config/repohist/config)
    3. Defaults

    Args:
        config_path: Explicit config file (optional)

    Returns:
        Config object

    Raises:
        ConfigError: If the config file cannot be parsed
    """
    if config_path is None:
        config_path = Path(
            os.environ.get("REPOHIST_CONFIG", str(DEFAULT_CONFIG_PATH))
        ).expanduser()

    file_config = _parse_config_file(config_path)

    tags_str = os.environ.get("REPOHIST_TAGS") or file_config.get("TAGS_ENABLED")
    tags_enabled = _parse_bool(tags_str) if tags_str else False

    timeout_str = os.environ.get("REPOHIST_COMMAND_TIMEOUT") or file_config.get(
        "COMMAND_TIMEOUT"
    )
    command_timeout: Optional[int] = DEFAULT_COMMAND_TIMEOUT
    if timeout_str:
        try:
            command_timeout = int(timeout_str)
            if command_timeout < 0:
                logger.warning(
                    f"COMMAND_TIMEOUT must be >=0, using default: {DEFAULT_COMMAND_TIMEOUT}"
                )
                command_timeout = DEFAULT_COMMAND_TIMEOUT
            elif command_timeout == 0:
                command_timeout = None
        except ValueError:
            logger.warning(
                f"Invalid COMMAND_TIMEOUT value, using default: {DEFAULT_COMMAND_TIMEOUT}"
            )

    commands: dict[str, str] = {}
    for key, value in file_config.items():
        # ConfigParser normalizes keys to lowercase
        if key.lower().startswith("commands.") and value:
            commands[key.split(".", 1)[1].lower()] = value

    logger.debug(f"Config file: {config_path}")
    logger.debug(f"Tags enabled: {tags_enabled}")
    logger.debug(f"Command timeout: {command_timeout}")
    logger.debug(f"Command overrides: {commands}")

    return Config(
        commands=commands,
        tags_enabled=tags_enabled,
        command_timeout=command_timeout,
        config_path=config_path,
    )
