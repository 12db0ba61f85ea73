"""AppPanel SDK context: owns configuration and component lifecycle."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from apppanel.config.schema import Configuration
from apppanel.errors import AppPanelError, InvalidConfiguration, NotConfigured
from apppanel.net.client import NetworkClient, Sleep
from apppanel.net.schemas import DeviceRegenerateRequest, UserSessionRequest
from apppanel.push.coordinator import TokenRegistrationCoordinator
from apppanel.push.manager import PushManager
from apppanel.storage.device import DeviceIdentity, DeviceMetadata
from apppanel.storage.secure_store import SecureStore
from apppanel.storage.token_store import TokenStore


class AppPanel:
    """
    Explicit owner of one SDK session.

    It:
    1. Validates and freezes the configuration
    2. Wires the network client, token store and registration coordinator
    3. Exposes push, user and device operations
    4. Tears everything down on reset (the device id survives)
    """

    def __init__(
        self,
        *,
        secure_store: SecureStore,
        device: DeviceMetadata,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self.secure_store = secure_store
        self.device = device
        self.device_identity = DeviceIdentity(secure_store)
        self.config: Configuration | None = None
        self.push: PushManager | None = None
        self.device_id: str | None = None
        self.current_user_id: str | None = None
        self._transport = transport
        self._sleep = sleep
        self._api: NetworkClient | None = None

    @property
    def is_configured(self) -> bool:
        return self.config is not None

    @property
    def is_logged_in(self) -> bool:
        return self.current_user_id is not None

    def configure(self, api_key: str, **options: Any) -> bool:
        try:
            config = Configuration(api_key=api_key, **options)
        except ValueError as e:
            logger.error(f"Invalid AppPanel configuration: {e}")
            return False
        return self.configure_with(config)

    def configure_with(self, config: Configuration) -> bool:
        if self.config is not None:
            logger.warning("AppPanel already configured; call reset() before configuring again")
            return False

        self.config = config
        self.device_id = self.device_identity.get_device_id()
        logger.info(f"Device ID: {self.device_id}")

        self._api = NetworkClient(
            config,
            platform=self.device.platform,
            transport=self._transport,
            sleep=self._sleep,
        )
        coordinator = TokenRegistrationCoordinator(
            token_store=TokenStore(self.secure_store),
            api_client=self._api,
            device_identity=self.device_identity,
            device=self.device,
        )
        self.push = PushManager(coordinator)
        logger.bind(environment=config.environment.value, base_url=config.base_url).info(
            "AppPanel SDK configured successfully"
        )

        if config.auto_initialize_push:
            self.push.initialize()
        return True

    async def reset(self) -> None:
        """Drop configuration and components. In-flight registrations are ignored."""
        if self.push is not None:
            self.push.coordinator.reset()
        if self._api is not None:
            await self._api.aclose()
        self.config = None
        self.push = None
        self.current_user_id = None
        self._api = None

    async def login(self, user_id: str) -> tuple[bool, AppPanelError | None]:
        if self._api is None:
            return False, NotConfigured()
        if not user_id.strip():
            return False, InvalidConfiguration("User ID cannot be empty")
        device_id = self.device_identity.get_device_id()

        logger.info(f"Logging in user: {user_id}")
        try:
            await self._api.send("/v1/users/login", payload=UserSessionRequest(user_id=user_id, device_id=device_id))
        except AppPanelError as e:
            logger.error(f"Failed to login user: {e}")
            return False, e
        self.current_user_id = user_id
        logger.info(f"User logged in successfully: {user_id}")
        return True, None

    async def logout(self) -> tuple[bool, AppPanelError | None]:
        if self._api is None:
            return False, NotConfigured()
        user_id = self.current_user_id
        if user_id is None:
            logger.warning("No user logged in")
            return True, None

        logger.info(f"Logging out user: {user_id}")
        payload = UserSessionRequest(user_id=user_id, device_id=self.device_identity.get_device_id())
        try:
            await self._api.send("/v1/users/logout", payload=payload)
        except AppPanelError as e:
            logger.error(f"Failed to logout user: {e}")
            return False, e
        self.current_user_id = None
        logger.info("User logged out successfully")
        return True, None

    async def regenerate_device_id(self) -> tuple[str | None, AppPanelError | None]:
        """Issue a new device id. Breaks every association with the old one."""
        if self._api is None:
            return None, NotConfigured()

        old_id = self.device_id
        new_id = self.device_identity.regenerate_device_id()
        self.device_id = new_id
        logger.info(f"Regenerated device ID from {old_id or 'nil'} to {new_id}")

        payload = DeviceRegenerateRequest(old_device_id=old_id or "", new_device_id=new_id)
        try:
            await self._api.send("/v1/devices/regenerate", payload=payload)
        except AppPanelError as e:
            # The new id is already stored locally.
            logger.error(f"Failed to sync device ID regeneration: {e}")
            return new_id, e
        logger.info("Device ID regeneration synced with backend")
        return new_id, None
