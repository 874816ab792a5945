"""
================================================================================
Configuration Loader
================================================================================

Process-wide settings read from config/config.yaml, with every dotted key
overridable from the environment.

    api.base_url        <- API_BASE_URL
    retry.max_attempts  <- RETRY_MAX_ATTEMPTS
    poll.timeout        <- POLL_TIMEOUT

The file itself can be swapped with AUTOTEST_CONFIG=/path/to/other.yaml.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from loguru import logger


REPO_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_PATH = REPO_ROOT / "config" / "config.yaml"
CONFIG_PATH_ENV = "AUTOTEST_CONFIG"

_TRUTHY = frozenset({"true", "1", "yes", "on"})


class ConfigurationError(Exception):
    """Unreadable config file or an environment value of the wrong type."""


def env_name(key: str) -> str:
    """'retry.max_attempts' -> 'RETRY_MAX_ATTEMPTS'"""
    return key.replace(".", "_").upper()


def _dig(tree: Mapping[str, Any], key: str) -> Any:
    node: Any = tree
    for part in key.split("."):
        if not isinstance(node, Mapping):
            return None
        node = node.get(part)
        if node is None:
            return None
    return node


def _coerce(raw: str, like: Any) -> Any:
    """Parse an environment string into the type of `like`."""
    # bool before int: bool is an int subclass
    if isinstance(like, bool):
        return raw.strip().lower() in _TRUTHY
    for kind, label in ((int, "an integer"), (float, "a number")):
        if isinstance(like, kind):
            try:
                return kind(raw)
            except ValueError:
                raise ConfigurationError(f"Expected {label}, got {raw!r}") from None
    return raw


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning(f"No config file at {path}; relying on defaults and environment")
        return {}

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"{path} is not valid YAML: {e}") from e

    data = {} if data is None else data
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"{path}: top level must be a mapping, not {type(data).__name__}"
        )
    logger.debug(f"Config loaded: {path}")
    return data


class ConfigLoader:
    """
    Shared settings object; every ConfigLoader() returns the same instance
    until reset() is called.

    Lookup order for get(key, default): environment variable, YAML value,
    then default. The default also decides how an environment string is
    parsed (bool, int, float or left as str).

        >>> ConfigLoader().get("retry.max_attempts", 3)
        3
    """

    _instance: Optional["ConfigLoader"] = None

    def __new__(cls, config_path: Optional[Path] = None) -> "ConfigLoader":
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._path = Path(
                config_path or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH
            )
            instance._data = _read_yaml(instance._path)
            cls._instance = instance
        return cls._instance

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        override = os.environ.get(env_name(key))
        if override is not None:
            return override if default is None else _coerce(override, default)

        value = _dig(self._data, key)
        return default if value is None else value

    def get_section(self, section: str) -> Dict[str, Any]:
        """A copy of the mapping at `section`; {} when absent or not a mapping."""
        value = self.get(section)
        return dict(value) if isinstance(value, Mapping) else {}

    def reload(self) -> None:
        self._data = _read_yaml(self._path)
        logger.info(f"Config reloaded: {self._path}")

    @classmethod
    def reset(cls) -> None:
        """Forget the shared instance; the next ConfigLoader() reads from disk."""
        cls._instance = None


__all__ = [
    "CONFIG_PATH_ENV",
    "ConfigLoader",
    "ConfigurationError",
    "env_name",
]
