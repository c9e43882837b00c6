from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from claude_insight.storage.models import ClaudeInsightConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"

DEFAULT_CONFIG = """# claude-insight configuration

claude_dir: ~/.claude

extraction:
  include_effort: true

scan:
  all_projects: false
  limit: 20

export:
  format: plain
  include_metadata: true
  group_by_type: true

theme:
  name: dark+
"""


class ConfigError(Exception):
    """Raised when config.yaml cannot be read or fails validation."""


def default_home() -> Path:
    override = os.environ.get("CLAUDE_INSIGHT_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".claude-insight"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Could not read {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def load_config(home: Path | None = None) -> ClaudeInsightConfig:
    """Load and resolve config.yaml with optional extends."""
    home = home or default_home()
    main_path = home / CONFIG_FILENAME
    data = _load_yaml(main_path)

    extends = data.get("extends") or []
    merged: dict[str, Any] = {}

    for extend_path in extends:
        path = Path(extend_path).expanduser()
        if not path.is_absolute():
            path = (home / path).resolve()
        merged = _deep_merge(merged, _load_yaml(path))

    merged = _deep_merge(merged, data)
    try:
        config = ClaudeInsightConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {main_path}: {exc}") from exc

    if main_path.exists():
        logger.debug("Loaded config from %s", main_path)
    return config


def write_default_config(home: Path | None = None, force: bool = False) -> Path:
    home = home or default_home()
    home.mkdir(parents=True, exist_ok=True)
    path = home / CONFIG_FILENAME
    if path.exists() and not force:
        return path
    path.write_text(DEFAULT_CONFIG)
    return path


def update_config(updates: dict[str, Any], home: Path | None = None) -> ClaudeInsightConfig:
    """Merge updates into config.yaml and return the validated result."""
    home = home or default_home()
    path = home / CONFIG_FILENAME
    data = _deep_merge(_load_yaml(path), updates)
    try:
        config = ClaudeInsightConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration update: {exc}") from exc
    home.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))
    return config
