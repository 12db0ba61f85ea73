"""Observer hooks for push events."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from apppanel.errors import AppPanelError
    from apppanel.push.notification import Notification


class PushObserver:
    """Subclass and override the hooks you care about. All hooks are optional."""

    def on_registration_token(self, token: str) -> None:
        pass

    def on_registration_failed(self, error: AppPanelError) -> None:
        pass

    def on_notification(self, notification: Notification) -> None:
        pass

    def on_notification_response(self, notification: Notification, action_identifier: str) -> None:
        pass


class ObserverRegistry:
    """Strongly-held observers, notified in registration order."""

    def __init__(self) -> None:
        self._observers: list[PushObserver] = []

    def add(self, observer: PushObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def remove(self, observer: PushObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def clear(self) -> None:
        self._observers.clear()

    def __len__(self) -> int:
        return len(self._observers)

    def registration_token(self, token: str) -> None:
        self._dispatch("on_registration_token", token)

    def registration_failed(self, error: AppPanelError) -> None:
        self._dispatch("on_registration_failed", error)

    def notification(self, notification: Notification) -> None:
        self._dispatch("on_notification", notification)

    def notification_response(self, notification: Notification, action_identifier: str) -> None:
        self._dispatch("on_notification_response", notification, action_identifier)

    def _dispatch(self, hook: str, *args: object) -> None:
        for observer in list(self._observers):
            try:
                getattr(observer, hook)(*args)
            except Exception:
                logger.exception(f"Push observer {type(observer).__name__}.{hook} raised")
