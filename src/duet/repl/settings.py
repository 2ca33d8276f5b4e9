"""Layered settings for the interactive prompt loop.

Precedence, lowest to highest: built-in defaults, global
``<config dir>/settings.json``, project ``<cwd>/.duet/settings.json``,
command-line overrides. Settings are read once at startup.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".duet"
CONFIG_DIR_ENV = "DUET_CONFIG_DIR"


@dataclass
class ReplSettings:
    """Resolved settings consumed by the prompt loop."""

    prompt: str = "ai> "
    continuation_prompt: str = "... "
    max_history: int = 500


def _settings_defaults() -> dict[str, Any]:
    defaults = ReplSettings()
    return {
        "prompt": defaults.prompt,
        "continuationPrompt": defaults.continuation_prompt,
        "maxHistory": defaults.max_history,
    }


def deep_merge_settings(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge overrides into base settings.

    Nested dicts merge key by key; anything else in *overrides* replaces
    the base value. ``None`` never overrides.
    """
    result = dict(base)
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge_settings(result[key], value)
        else:
            result[key] = value
    return result


def default_config_dir() -> str:
    return os.environ.get(CONFIG_DIR_ENV) or str(Path.home() / CONFIG_DIR_NAME)


def _load_from_file(path: str) -> tuple[dict[str, Any], Exception | None]:
    """Read a JSON object from *path*.

    A missing file is an empty layer. A broken one is also an empty layer,
    with the error returned alongside.
    """
    if not os.path.exists(path):
        return {}, None
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable settings file %s: %s", path, e)
        return {}, e
    if not isinstance(data, dict):
        error = ValueError(f"{path}: expected a JSON object")
        logger.warning("Ignoring settings file %s: %s", path, error)
        return {}, error
    return data, None


class SettingsManager:
    """Merges the settings layers and exposes the result.

    Use :meth:`create` or :meth:`in_memory` rather than the constructor.
    """

    def __init__(
        self,
        *,
        settings_path: str | None,
        project_settings_path: str | None,
        initial_settings: dict[str, Any],
        load_error: Exception | None = None,
    ) -> None:
        self._settings_path = settings_path
        self._project_settings_path = project_settings_path
        self._load_error = load_error

        project: dict[str, Any] = {}
        if project_settings_path:
            project, project_error = _load_from_file(project_settings_path)
            self._load_error = self._load_error or project_error

        merged = deep_merge_settings(_settings_defaults(), initial_settings)
        self._settings = deep_merge_settings(merged, project)

    @classmethod
    def create(cls, cwd: str, config_dir: str | None = None) -> SettingsManager:
        """Load global and project settings files."""
        settings_path = os.path.join(config_dir or default_config_dir(), "settings.json")
        project_settings_path = os.path.join(cwd, CONFIG_DIR_NAME, "settings.json")
        settings, error = _load_from_file(settings_path)
        return cls(
            settings_path=settings_path,
            project_settings_path=project_settings_path,
            initial_settings=settings,
            load_error=error,
        )

    @classmethod
    def in_memory(cls, settings: dict[str, Any] | None = None) -> SettingsManager:
        """Create a manager that reads no files, for tests and embedding."""
        return cls(
            settings_path=None,
            project_settings_path=None,
            initial_settings=settings or {},
        )

    def apply_overrides(self, overrides: dict[str, Any]) -> None:
        """Apply command-line overrides on top of merged settings."""
        self._settings = deep_merge_settings(self._settings, overrides)

    @property
    def settings(self) -> dict[str, Any]:
        return self._settings

    @property
    def settings_path(self) -> str | None:
        return self._settings_path

    @property
    def project_settings_path(self) -> str | None:
        return self._project_settings_path

    @property
    def load_error(self) -> Exception | None:
        return self._load_error

    # --- Getters ---

    def get_prompt(self) -> str:
        return self._get_typed("prompt", str)

    def get_continuation_prompt(self) -> str:
        return self._get_typed("continuationPrompt", str)

    def get_max_history(self) -> int:
        value = self._get_typed("maxHistory", int)
        return max(value, 0)

    def resolve(self) -> ReplSettings:
        return ReplSettings(
            prompt=self.get_prompt(),
            continuation_prompt=self.get_continuation_prompt(),
            max_history=self.get_max_history(),
        )

    def _get_typed(self, key: str, kind: type) -> Any:
        value = self._settings.get(key)
        if isinstance(value, kind) and not isinstance(value, bool):
            return value
        default = _settings_defaults()[key]
        if value is not None:
            logger.warning("Setting %r has invalid value %r, using %r", key, value, default)
        return default
