"""Host-facing push API."""

from __future__ import annotations

from typing import Any

from loguru import logger

from apppanel.errors import AppPanelError, TokenNotAvailable
from apppanel.push.coordinator import TokenRegistrationCoordinator, mask_token
from apppanel.push.notification import Notification
from apppanel.push.observers import PushObserver


class PushManager:
    """Forward platform tokens and incoming notifications into the SDK."""

    def __init__(self, coordinator: TokenRegistrationCoordinator) -> None:
        self.coordinator = coordinator
        self.platform_token: str | None = None
        self.push_token: str | None = None
        self.is_initialized = False

    def add_observer(self, observer: PushObserver) -> None:
        self.coordinator.add_observer(observer)

    def remove_observer(self, observer: PushObserver) -> None:
        self.coordinator.remove_observer(observer)

    def initialize(self) -> None:
        """Deliver any cached backend token. Does not request OS permissions."""
        if self.is_initialized:
            logger.warning("Push notifications already initialized")
            return
        logger.info("Initializing AppPanel push notifications")
        self.is_initialized = True

        cached = self.coordinator.get_cached_token()
        if cached:
            self.push_token = cached
            self.coordinator.observers.registration_token(cached)

    async def set_platform_token(self, token: str) -> tuple[str | None, AppPanelError | None]:
        self.platform_token = token.strip() or None
        logger.debug(f"Platform token received: {mask_token(token)}")
        backend_token, error = await self.coordinator.set_platform_token(token)
        if backend_token:
            self.push_token = backend_token
        return backend_token, error

    def get_cached_token(self) -> str | None:
        return self.push_token

    async def get_token(self) -> tuple[str | None, AppPanelError | None]:
        if self.push_token:
            return self.push_token, None
        if self.platform_token:
            return await self.set_platform_token(self.platform_token)
        return None, TokenNotAvailable()

    async def delete_token(self) -> tuple[bool, AppPanelError | None]:
        token = self.push_token or self.coordinator.get_cached_token()
        if not token:
            return True, None
        ok, error = await self.coordinator.delete_token(token)
        if ok:
            self.push_token = None
            self.platform_token = None
        return ok, error

    async def subscribe_to_topic(self, topic: str) -> tuple[bool, AppPanelError | None]:
        return await self.coordinator.subscribe_to_topic(topic)

    async def unsubscribe_from_topic(self, topic: str) -> tuple[bool, AppPanelError | None]:
        return await self.coordinator.unsubscribe_from_topic(topic)

    def handle_notification(self, user_info: dict[str, Any]) -> Notification:
        notification = Notification.from_payload(user_info)
        logger.debug(f"Handling notification id={notification.id or '-'} campaign={notification.campaign_id or '-'}")
        self.coordinator.observers.notification(notification)
        self.coordinator.track_event_later("notification_received", notification.tracking_properties())
        return notification

    def handle_notification_response(self, user_info: dict[str, Any], action_identifier: str) -> Notification:
        logger.debug(f"Handling notification response action={action_identifier}")
        notification = Notification.from_payload(user_info)
        self.coordinator.track_event_later("notification_opened", notification.tracking_properties())
        self.coordinator.observers.notification_response(notification, action_identifier)
        return notification

    async def on_app_active(self) -> None:
        """Retry registration when a platform token is known but unregistered."""
        if self.is_initialized and self.push_token is None and self.platform_token:
            await self.set_platform_token(self.platform_token)
