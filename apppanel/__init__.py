"""
apppanel - client SDK for AppPanel push token registration.
"""

__version__ = "1.0.0"

from apppanel.client import AppPanel
from apppanel.config import Configuration, Environment, load_config
from apppanel.errors import AppPanelError
from apppanel.push import Notification, PushManager, PushObserver, TokenRegistrationCoordinator
from apppanel.storage import DeviceMetadata, FileSecureStore, MemorySecureStore, SecureStore, TokenStore

__all__ = [
    "AppPanel",
    "AppPanelError",
    "Configuration",
    "DeviceMetadata",
    "Environment",
    "FileSecureStore",
    "MemorySecureStore",
    "Notification",
    "PushManager",
    "PushObserver",
    "SecureStore",
    "TokenRegistrationCoordinator",
    "TokenStore",
    "load_config",
]
