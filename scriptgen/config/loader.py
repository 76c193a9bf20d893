from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from scriptgen.config.credentials import CredentialStore
from scriptgen.config.schema import AISettings, GeneratorConfig
from scriptgen.core.exceptions import ConfigurationError


def credential_key(provider: str) -> str:
    return f"{provider}.api_key"


class ConfigLoader:
    """Loads and validates the JSON generator configuration."""

    @staticmethod
    def load(path: str | Path) -> GeneratorConfig:
        config_path = Path(path)
        try:
            with config_path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except FileNotFoundError as exc:
            raise ConfigurationError(f"Configuration file not found: {config_path}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Configuration file is not valid JSON: {config_path}: {exc}") from exc
        try:
            return GeneratorConfig.model_validate(payload)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration in {config_path}: {exc}") from exc

    @staticmethod
    def resolve_api_key(settings: AISettings, credential_store: CredentialStore | None) -> AISettings:
        if settings.api_key or credential_store is None:
            return settings
        stored = credential_store.get(credential_key(settings.provider))
        if not stored:
            return settings
        return settings.model_copy(update={"api_key": stored})
