"""Persistent device identity and host-supplied device metadata."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from loguru import logger

from apppanel.storage.secure_store import SecureStore

DEVICE_ID_KEY = "device_id"


@dataclass(frozen=True)
class DeviceMetadata:
    """Installation facts the host reads from platform APIs."""

    platform: str
    app_version: str
    bundle_id: str
    timezone: str
    locale: str
    os_version: str | None = None
    device_model: str | None = None


def _new_device_id() -> str:
    return str(uuid.uuid4()).lower()


class DeviceIdentity:
    """Get-or-create access to the device id kept in the secure store."""

    def __init__(self, store: SecureStore) -> None:
        self.store = store
        self._cached: str | None = None

    def get_device_id(self) -> str:
        if self._cached:
            return self._cached
        existing = self.store.get(DEVICE_ID_KEY)
        if existing:
            self._cached = existing
            return existing
        return self._save(_new_device_id())

    def regenerate_device_id(self) -> str:
        new_id = self._save(_new_device_id())
        logger.info(f"Regenerated device ID: {new_id}")
        return new_id

    def _save(self, device_id: str) -> str:
        self.store.set(DEVICE_ID_KEY, device_id)
        self._cached = device_id
        return device_id
