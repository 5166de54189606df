"""Configuration management for ai-git-wizard."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .exceptions import ConfigError, GitError
from .models import RepoInfo

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".ai-git-wizard"
CONFIG_FILE_NAME = "config.json"
CONFIG_HOME_ENV = "AI_GIT_WIZARD_CONFIG_HOME"

DEFAULT_MODEL = "google/gemini-flash-1.5"
DEFAULT_MAX_CONCURRENCY = 3
MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 10

_GITHUB_REMOTE = re.compile(r"github\.com[:/]([^/]+)/(.+?)(?:\.git)?/?$")


class ConfigKey(str, Enum):
    """Closed set of persisted keys, valued by their JSON name."""

    OPEN_ROUTER_API_KEY = "openRouterApiKey"
    GITHUB_TOKEN = "githubToken"
    DEFAULT_MODEL = "defaultModel"
    MAX_CONCURRENCY = "maxConcurrency"

    @classmethod
    def parse(cls, name: str) -> "ConfigKey":
        for key in cls:
            if name in (key.value, key.attr):
                return key
        valid = ", ".join(k.value for k in cls)
        raise ConfigError(f"Unknown configuration key: {name} (valid: {valid})")

    @property
    def attr(self) -> str:
        return _ATTRS[self]

    @property
    def is_secret(self) -> bool:
        lowered = self.value.lower()
        return "token" in lowered or "key" in lowered


_ATTRS = {
    ConfigKey.OPEN_ROUTER_API_KEY: "open_router_api_key",
    ConfigKey.GITHUB_TOKEN: "github_token",
    ConfigKey.DEFAULT_MODEL: "default_model",
    ConfigKey.MAX_CONCURRENCY: "max_concurrency",
}

REQUIRED_KEYS = (ConfigKey.OPEN_ROUTER_API_KEY, ConfigKey.GITHUB_TOKEN)

# Environment fallbacks consulted when the file leaves a key unset.
ENV_FALLBACKS = {
    ConfigKey.OPEN_ROUTER_API_KEY: "OPENROUTER_API_KEY",
    ConfigKey.GITHUB_TOKEN: "GITHUB_TOKEN",
    ConfigKey.DEFAULT_MODEL: "AI_GIT_WIZARD_MODEL",
}


@dataclass
class Config:
    """Credentials and preferences, as stored or as effective for a run."""

    open_router_api_key: Optional[str] = None
    github_token: Optional[str] = None
    default_model: Optional[str] = None
    max_concurrency: Optional[int] = None
    # Keys this version does not know about; written back untouched.
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def model(self) -> str:
        return self.default_model or DEFAULT_MODEL

    @property
    def concurrency(self) -> int:
        return self.max_concurrency or DEFAULT_MAX_CONCURRENCY

    def get(self, key: ConfigKey) -> Union[str, int, None]:
        return getattr(self, key.attr)

    def set(self, key: ConfigKey, value: Union[str, int, None]) -> None:
        setattr(self, key.attr, value)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to the flat camelCase JSON layout."""
        data: Dict[str, Any] = dict(self.extras)
        for key in ConfigKey:
            value = self.get(key)
            if value is not None:
                data[key.value] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        remaining = dict(data)
        config = cls()
        for key in ConfigKey:
            if key.value not in remaining:
                continue
            raw = remaining.pop(key.value)
            if key is ConfigKey.MAX_CONCURRENCY and raw is not None:
                try:
                    raw = int(raw)
                except (TypeError, ValueError):
                    logger.warning("Ignoring non-numeric maxConcurrency: %r", raw)
                    raw = None
            config.set(key, raw)
        config.extras = remaining
        return config


@dataclass
class WorkingConfig:
    """Everything a command needs, computed once per invocation."""

    config: Config
    repo: Optional[RepoInfo]
    is_valid: bool
    missing: List[str]


def parse_concurrency(value: Union[str, int]) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(
            f"maxConcurrency must be a number between {MIN_CONCURRENCY} "
            f"and {MAX_CONCURRENCY}"
        ) from exc
    if not MIN_CONCURRENCY <= number <= MAX_CONCURRENCY:
        raise ConfigError(
            f"maxConcurrency must be a number between {MIN_CONCURRENCY} "
            f"and {MAX_CONCURRENCY}"
        )
    return number


def mask_value(key: Union[ConfigKey, str], value: Any) -> str:
    """Render ``value`` for display, hiding the middle of secrets."""
    name = key.value if isinstance(key, ConfigKey) else str(key)
    lowered = name.lower()
    if "token" in lowered or "key" in lowered:
        if isinstance(value, str) and len(value) > 8:
            return f"{value[:4]}...{value[-4:]}"
        return "[SET]"
    return str(value)


def parse_remote_url(remote_url: str) -> Optional[RepoInfo]:
    """Parse a GitHub HTTPS or SSH remote URL into a ``RepoInfo``."""
    match = _GITHUB_REMOTE.search(remote_url.strip())
    if not match:
        return None
    return RepoInfo(owner=match.group(1), name=match.group(2), remote_url=remote_url)


def default_config_dir() -> Path:
    override = os.environ.get(CONFIG_HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_DIR_NAME


class ConfigStore:
    """Reads and writes the per-user JSON configuration file."""

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.config_file = self.config_dir / CONFIG_FILE_NAME

    def _ensure_dir(self) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def load(self) -> Config:
        """Return the stored configuration (empty if absent or unreadable)."""
        if not self.config_file.exists():
            return Config()
        try:
            data = json.loads(self.config_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning(
                "Could not parse config file %s, using defaults: %s",
                self.config_file,
                exc,
            )
            return Config()
        if not isinstance(data, dict):
            logger.warning("Config file %s is not a JSON object", self.config_file)
            return Config()
        return Config.from_dict(data)

    def save(self, config: Config) -> None:
        self._ensure_dir()
        self.config_file.write_text(
            json.dumps(config.to_dict(), indent=2), encoding="utf-8"
        )

    def set_value(
        self, key: Union[ConfigKey, str], value: Union[str, int]
    ) -> Union[str, int]:
        """Persist one key and return the value as stored."""
        config_key = key if isinstance(key, ConfigKey) else ConfigKey.parse(key)
        if config_key is ConfigKey.MAX_CONCURRENCY:
            stored: Union[str, int] = parse_concurrency(value)
        else:
            stored = str(value)
            if not stored.strip():
                raise ConfigError(f"Value for {config_key.value} cannot be empty")
        config = self.load()
        config.set(config_key, stored)
        self.save(config)
        logger.debug("config.set %s=%s", config_key.value, mask_value(config_key, stored))
        return stored

    def get_value(self, key: Union[ConfigKey, str]) -> Union[str, int, None]:
        config_key = key if isinstance(key, ConfigKey) else ConfigKey.parse(key)
        return self.load().get(config_key)

    def list_values(self) -> Dict[str, str]:
        """Stored keys mapped to their masked display strings."""
        data = self.load().to_dict()
        return {name: mask_value(name, value) for name, value in data.items()}

    @staticmethod
    def validate(config: Config) -> Tuple[bool, List[str]]:
        """Check that the required secrets are present (no format checks)."""
        missing = [key.value for key in REQUIRED_KEYS if not config.get(key)]
        return not missing, missing

    @staticmethod
    def detect_repository(path: Optional[str] = None) -> Optional[RepoInfo]:
        """Derive owner/name from the ``origin`` remote of the repo at ``path``."""
        from .git import GitRepo, is_git_repository

        if not is_git_repository(path):
            return None
        try:
            remote_url = GitRepo(path).get_remote_url("origin")
        except GitError:
            return None
        if not remote_url:
            return None
        repo = parse_remote_url(remote_url)
        if repo is None:
            logger.warning(
                "Repository detected but remote URL format not recognized: %s",
                remote_url,
            )
        return repo

    def effective_config(self, env: Optional[Dict[str, str]] = None) -> Config:
        """Stored config layered over environment fallbacks and defaults."""
        env_map = os.environ if env is None else env
        config = self.load()
        for key, env_name in ENV_FALLBACKS.items():
            if not config.get(key) and env_map.get(env_name):
                config.set(key, env_map[env_name])
        if not config.default_model:
            config.default_model = DEFAULT_MODEL
        if not config.max_concurrency:
            config.max_concurrency = DEFAULT_MAX_CONCURRENCY
        return config

    def get_working_config(self, path: Optional[str] = None) -> WorkingConfig:
        config = self.effective_config()
        is_valid, missing = self.validate(config)
        return WorkingConfig(
            config=config,
            repo=self.detect_repository(path),
            is_valid=is_valid,
            missing=missing,
        )
