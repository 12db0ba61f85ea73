"""Persistent SDK state."""

from apppanel.storage.device import DeviceIdentity, DeviceMetadata
from apppanel.storage.secure_store import FileSecureStore, MemorySecureStore, SecureStore
from apppanel.storage.token_store import TokenChange, TokenStore

__all__ = [
    "DeviceIdentity",
    "DeviceMetadata",
    "FileSecureStore",
    "MemorySecureStore",
    "SecureStore",
    "TokenChange",
    "TokenStore",
]
