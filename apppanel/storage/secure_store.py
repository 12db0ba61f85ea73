"""Secure key-value stores for small SDK strings."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Protocol

from loguru import logger


class SecureStore(Protocol):
    """Durable key -> string storage supplied by the host (keychain, keystore, ...)."""

    def get(self, key: str) -> str | None:
        """Return the stored value or None."""

    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""

    def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""


class MemorySecureStore:
    """Process-local store, used by tests and ephemeral hosts."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._lock = threading.Lock()
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        with self._lock:
            return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self.data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self.data.pop(key, None)


class FileSecureStore:
    """JSON file store. Every write replaces the file atomically."""

    def __init__(self, workspace: Path, service: str = "io.apppanel.sdk") -> None:
        self._lock = threading.Lock()
        self.file_path = workspace / "state" / "apppanel" / f"{service}.v1.json"
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        self.data = self._load()

    def get(self, key: str) -> str | None:
        with self._lock:
            value = self.data.get(key)
            return str(value) if value is not None else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self.data[key] = value
            self._save()

    def delete(self, key: str) -> None:
        with self._lock:
            if self.data.pop(key, None) is not None:
                self._save()

    def _load(self) -> dict[str, str]:
        if not self.file_path.exists():
            return {}
        try:
            with self.file_path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Secure store unreadable, starting empty path={self.file_path}: {e}")
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(k): str(v) for k, v in raw.items() if isinstance(v, str)}

    def _save(self) -> None:
        temp = self.file_path.with_suffix(".tmp")
        with temp.open("w", encoding="utf-8") as f:
            json.dump(self.data, f, ensure_ascii=False, indent=2)
        temp.replace(self.file_path)
