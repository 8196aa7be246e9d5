"""Loading agent settings from YAML."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from streamagent.sdk.errors import SettingsValidationError
from streamagent.sdk.models import AgentSettings


class SettingsLoader:
    """Load and validate a settings YAML file into :class:`AgentSettings`."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> AgentSettings:
        """Read the file, expand environment variables and validate.

        ``${VAR}`` and ``$VAR`` references are expanded with
        :func:`os.path.expandvars` before YAML parsing, so API keys can stay
        out of the file.

        Raises:
            SettingsValidationError: On read, YAML or schema errors.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SettingsValidationError(f"Cannot read {self._path}: {exc}") from exc
        return self.parse(raw)

    @staticmethod
    def parse(text: str) -> AgentSettings:
        try:
            data: Any = yaml.safe_load(os.path.expandvars(text))
        except yaml.YAMLError as exc:
            raise SettingsValidationError(f"YAML parse error: {exc}") from exc

        if not isinstance(data, dict):
            raise SettingsValidationError("Settings YAML must be a mapping")

        try:
            return AgentSettings.model_validate(data)
        except ValidationError as exc:
            raise SettingsValidationError(str(exc)) from exc
