"""
Configuration management for myprs.

Loads the user's global config file (default: ~/.xbar-github.json):

    {"token": "ghp_...", "username": "octocat"}

A .json file is read with the json module; any other file (e.g. .yml)
is read with PyYAML. Optional keys tune the search and the snapshot
location; see MyPrsConfig.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .store import DEFAULT_SNAPSHOT_PATH


CONFIG_FILE_PATH = "~/.xbar-github.json"
CONFIG_ENV_VAR = "MYPRS_CONFIG"


class ConfigError(Exception):
    """The global config file is missing or incomplete."""


@dataclass
class MyPrsConfig:
    """Complete myprs configuration."""
    token: str
    username: str
    org: str | None = None  # Limit search to an org
    repo: str | None = None  # Limit search to "owner/name"
    timeout: float = 5.0  # Seconds allowed for the search request
    max_days_ago: int = 30  # Ignore PRs not updated within this window
    recently_closed_seconds: int = 5 * 60
    snapshot_path: str = DEFAULT_SNAPSHOT_PATH

    @property
    def max_seconds_ago(self) -> int:
        return self.max_days_ago * 24 * 60 * 60

    @classmethod
    def load(cls, path: str | Path | None = None) -> "MyPrsConfig":
        """Load configuration from the global config file.

        Raises:
            ConfigError: if the file does not exist or lacks a required key
        """
        display_path = str(path or os.environ.get(CONFIG_ENV_VAR) or CONFIG_FILE_PATH)
        config_path = Path(display_path).expanduser()

        if not config_path.exists():
            raise ConfigError(f"Global config file not found: {display_path}")

        text = config_path.read_text()
        if config_path.suffix == ".json":
            data = json.loads(text) if text.strip() else {}
        else:
            data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"The file {display_path} does not contain a mapping.")

        return cls._parse(data, display_path)

    @classmethod
    def _parse(cls, data: dict[str, Any], display_path: str) -> "MyPrsConfig":
        token = data.get("token")
        username = data.get("username")

        if not token:
            raise ConfigError(f'The file {display_path} is missing the key "token".')
        if not username:
            raise ConfigError(f'The file {display_path} is missing the key "username".')

        return cls(
            token=str(token),
            username=str(username),
            org=data.get("org"),
            repo=data.get("repo"),
            timeout=float(data.get("timeout", 5.0)),
            max_days_ago=int(data.get("max_days_ago", 30)),
            recently_closed_seconds=int(data.get("recently_closed_seconds", 5 * 60)),
            snapshot_path=data.get("snapshot_path", DEFAULT_SNAPSHOT_PATH),
        )
