"""Push token lifecycle and notification handling."""

from apppanel.push.coordinator import (
    Failed,
    Pending,
    Registered,
    RegistrationState,
    TokenRegistrationCoordinator,
    Unregistered,
)
from apppanel.push.manager import PushManager
from apppanel.push.notification import Notification
from apppanel.push.observers import ObserverRegistry, PushObserver

__all__ = [
    "Failed",
    "Notification",
    "ObserverRegistry",
    "Pending",
    "PushManager",
    "PushObserver",
    "Registered",
    "RegistrationState",
    "TokenRegistrationCoordinator",
    "Unregistered",
]
