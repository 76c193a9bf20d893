from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path

from scriptgen.core.exceptions import ConfigurationError


class CredentialStore(ABC):
    """Key/value secret storage owned by the surrounding application."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        return self.get(key) is not None


def default_credentials_root() -> Path:
    base = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "scriptgen"


class FileCredentialStore(CredentialStore):
    """Stores credentials as a JSON map readable only by the current user."""

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root) if root is not None else default_credentials_root()
        self.path = self.root / "credentials.json"

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        payload = self._read()
        payload[key] = value
        self._write(payload)

    def delete(self, key: str) -> None:
        payload = self._read()
        if payload.pop(key, None) is not None:
            self._write(payload)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ConfigurationError(f"Credential store {self.path} is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigurationError(f"Credential store {self.path} must contain a JSON object")
        return payload

    def _write(self, payload: dict[str, str]) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".json.tmp")
        fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, sort_keys=True)
        os.chmod(temp_path, 0o600)
        os.replace(temp_path, self.path)
