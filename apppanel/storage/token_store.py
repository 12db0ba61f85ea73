"""Platform-token -> backend-token cache on top of a secure store."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass

from loguru import logger

from apppanel.storage.secure_store import SecureStore

CURRENT_BACKEND_TOKEN_KEY = "current_backend_token"
LAST_PLATFORM_TOKEN_KEY = "last_platform_token"
TOKEN_MAPPING_KEY = "token_mapping"


@dataclass(frozen=True)
class TokenChange:
    previous: str | None
    changed: bool


class TokenStore:
    """Single writer of the token mapping and the last-observed platform token.

    The mapping is persisted as one JSON string. ``record_mapping`` writes the
    mapping before the pointers, so an interrupted write can leave the pointer
    stale but never pointing at a missing entry.
    """

    def __init__(self, store: SecureStore) -> None:
        self.store = store
        self._lock = threading.RLock()
        self._mapping = self._load_mapping()

    def get_last_platform_token(self) -> str | None:
        return self.store.get(LAST_PLATFORM_TOKEN_KEY)

    def get_backend_token(self, platform_token: str) -> str | None:
        with self._lock:
            return self._mapping.get(platform_token)

    def get_current_backend_token(self) -> str | None:
        return self.store.get(CURRENT_BACKEND_TOKEN_KEY)

    def mapping(self) -> dict[str, str]:
        with self._lock:
            return dict(self._mapping)

    def is_changed(self, platform_token: str) -> bool:
        last = self.get_last_platform_token()
        return last is None or last != platform_token

    def observe(self, platform_token: str) -> TokenChange:
        """Compare against the last token and evict the previous entry if it changed."""
        with self._lock:
            previous = self.get_last_platform_token()
            changed = previous is None or previous != platform_token
            if changed and previous is not None:
                self.clear_mapping(previous)
            return TokenChange(previous=previous, changed=changed)

    def record_mapping(self, platform_token: str, backend_token: str) -> None:
        with self._lock:
            updated = {**self._mapping, platform_token: backend_token}
            self._save_mapping(updated)
            self._mapping = updated
            self.store.set(CURRENT_BACKEND_TOKEN_KEY, backend_token)
            self.store.set(LAST_PLATFORM_TOKEN_KEY, platform_token)

    def clear_mapping(self, platform_token: str) -> None:
        with self._lock:
            removed = self._mapping.get(platform_token)
            if removed is None:
                return
            updated = {k: v for k, v in self._mapping.items() if k != platform_token}
            self._save_mapping(updated)
            self._mapping = updated
            if self.get_current_backend_token() == removed:
                self.store.delete(CURRENT_BACKEND_TOKEN_KEY)

    def clear_backend_token(self, backend_token: str) -> None:
        """Forget every local trace of one backend registration."""
        with self._lock:
            updated = {k: v for k, v in self._mapping.items() if v != backend_token}
            if len(updated) != len(self._mapping):
                self._save_mapping(updated)
                self._mapping = updated
            self.store.delete(CURRENT_BACKEND_TOKEN_KEY)
            self.store.delete(LAST_PLATFORM_TOKEN_KEY)

    def delete_all(self) -> None:
        with self._lock:
            self.store.delete(LAST_PLATFORM_TOKEN_KEY)
            self.store.delete(CURRENT_BACKEND_TOKEN_KEY)
            self.store.delete(TOKEN_MAPPING_KEY)
            self._mapping = {}

    def _load_mapping(self) -> dict[str, str]:
        raw = self.store.get(TOKEN_MAPPING_KEY)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to load token mapping: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error("Failed to load token mapping: not a JSON object")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _save_mapping(self, mapping: dict[str, str]) -> None:
        self.store.set(TOKEN_MAPPING_KEY, json.dumps(mapping, ensure_ascii=False))
