"""Token registration lifecycle: decide, register, persist, notify."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from functools import partial
from typing import Any, Protocol

from loguru import logger
from pydantic import BaseModel

from apppanel.errors import AppPanelError, InvalidConfiguration, TokenNotAvailable
from apppanel.net.schemas import (
    EmptyResponse,
    RegisterRequest,
    RegisterResponse,
    TopicRequest,
    TrackEventRequest,
    UnregisterRequest,
)
from apppanel.push.observers import ObserverRegistry, PushObserver
from apppanel.storage.device import DeviceIdentity, DeviceMetadata
from apppanel.storage.token_store import TokenStore

REGISTER_ENDPOINT = "/v1/push/register"
UNREGISTER_ENDPOINT = "/v1/push/unregister"
SUBSCRIBE_ENDPOINT = "/v1/push/topics/subscribe"
UNSUBSCRIBE_ENDPOINT = "/v1/push/topics/unsubscribe"
TRACK_ENDPOINT = "/v1/analytics/track"

RegistrationResult = tuple[str | None, AppPanelError | None]


class APIClientLike(Protocol):
    async def send(
        self,
        endpoint: str,
        method: str = "POST",
        payload: BaseModel | None = None,
        response_model: Any = EmptyResponse,
    ) -> Any:
        """Send one logical request, raising AppPanelError on failure."""


@dataclass(frozen=True)
class Unregistered:
    pass


@dataclass(frozen=True)
class Pending:
    platform_token: str


@dataclass(frozen=True)
class Registered:
    token: str


@dataclass(frozen=True)
class Failed:
    error: AppPanelError


RegistrationState = Unregistered | Pending | Registered | Failed


def mask_token(token: str) -> str:
    if len(token) <= 14:
        return f"{token[:4]}..."
    return f"{token[:8]}...{token[-6:]}"


class TokenRegistrationCoordinator:
    """Keep the backend registration in step with the platform push token.

    Calls for the same platform token share one in-flight task, so a token
    delivered twice in quick succession produces a single network request.
    """

    def __init__(
        self,
        *,
        token_store: TokenStore,
        api_client: APIClientLike,
        device_identity: DeviceIdentity,
        device: DeviceMetadata,
        observers: ObserverRegistry | None = None,
    ) -> None:
        self.token_store = token_store
        self.api_client = api_client
        self.device_identity = device_identity
        self.device = device
        self.observers = observers if observers is not None else ObserverRegistry()
        self._inflight: dict[str, asyncio.Task[RegistrationResult]] = {}
        self._background: set[asyncio.Task[None]] = set()
        self._generation = 0
        cached = token_store.get_current_backend_token()
        self._state: RegistrationState = Registered(cached) if cached else Unregistered()

    @property
    def state(self) -> RegistrationState:
        return self._state

    def add_observer(self, observer: PushObserver) -> None:
        self.observers.add(observer)

    def remove_observer(self, observer: PushObserver) -> None:
        self.observers.remove(observer)

    def get_cached_token(self) -> str | None:
        return self.token_store.get_current_backend_token()

    async def set_platform_token(self, token: str) -> RegistrationResult:
        token = token.strip()
        if not token:
            return None, InvalidConfiguration("platform token cannot be empty")

        task = self._inflight.get(token)
        if task is None:
            task = asyncio.create_task(self._register(token, self._generation))
            self._inflight[token] = task
            task.add_done_callback(partial(self._forget_inflight, token))
        else:
            logger.debug(f"Registration for {mask_token(token)} already in flight, awaiting it")
        return await asyncio.shield(task)

    async def delete_token(self, backend_token: str) -> tuple[bool, AppPanelError | None]:
        if not backend_token.strip():
            return False, TokenNotAvailable()

        logger.debug(f"Deleting backend token {mask_token(backend_token)}")
        try:
            await self.api_client.send(UNREGISTER_ENDPOINT, payload=UnregisterRequest(token=backend_token))
        except AppPanelError as e:
            logger.error(f"Failed to delete backend token {mask_token(backend_token)}: {e}")
            return False, e

        self.token_store.clear_backend_token(backend_token)
        self._state = Unregistered()
        logger.info(f"Backend token {mask_token(backend_token)} deleted")
        return True, None

    async def subscribe_to_topic(self, topic: str) -> tuple[bool, AppPanelError | None]:
        return await self._topic_request(SUBSCRIBE_ENDPOINT, topic, "subscribed to")

    async def unsubscribe_from_topic(self, topic: str) -> tuple[bool, AppPanelError | None]:
        return await self._topic_request(UNSUBSCRIBE_ENDPOINT, topic, "unsubscribed from")

    async def track_event(self, event: str, properties: dict[str, Any] | None = None) -> None:
        """Report an analytics event. Failures are logged and never raised."""
        try:
            payload = TrackEventRequest(event=event, properties=properties, token=self.get_cached_token())
            await self.api_client.send(TRACK_ENDPOINT, payload=payload)
        except (AppPanelError, ValueError) as e:
            logger.error(f"Failed to track event: {event}: {e}")

    def track_event_later(self, event: str, properties: dict[str, Any] | None = None) -> asyncio.Task[None]:
        task = asyncio.create_task(self.track_event(event, properties))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def flush(self) -> None:
        """Wait for scheduled analytics events to finish."""
        if self._background:
            await asyncio.gather(*list(self._background))

    def reset(self) -> None:
        """Forget in-flight work. Results of earlier calls are no longer persisted."""
        self._generation += 1
        self._inflight.clear()
        self._state = Unregistered()
        logger.info("Token coordinator reset")

    async def _register(self, token: str, generation: int) -> RegistrationResult:
        change = self.token_store.observe(token)
        if change.changed:
            logger.info(f"Platform token changed, registering {mask_token(token)}")
        else:
            cached = self.token_store.get_backend_token(token)
            if cached:
                logger.debug("Using cached backend token (platform token unchanged)")
                self._state = Registered(cached)
                return cached, None

        self._state = Pending(token)
        try:
            request = RegisterRequest(
                apns_token=token,
                device_id=self.device_identity.get_device_id(),
                platform=self.device.platform,
                app_version=self.device.app_version,
                bundle_id=self.device.bundle_id,
                timezone=self.device.timezone,
                locale=self.device.locale,
                is_token_update=change.changed and change.previous is not None,
                os_version=self.device.os_version,
                device_model=self.device.device_model,
            )
        except ValueError as e:
            return self._fail(InvalidConfiguration(str(e)), generation)

        try:
            response = await self.api_client.send(REGISTER_ENDPOINT, payload=request, response_model=RegisterResponse)
        except AppPanelError as e:
            return self._fail(e, generation)

        if generation != self._generation:
            logger.warning(f"Registration for {mask_token(token)} finished after reset, result not stored")
            return response.token, None

        try:
            self.token_store.record_mapping(token, response.token)
        except OSError as e:
            return self._fail(AppPanelError(f"Failed to store backend token: {e}"), generation)
        self._state = Registered(response.token)
        logger.info(f"Platform token {mask_token(token)} registered as {mask_token(response.token)}")
        self.observers.registration_token(response.token)
        return response.token, None

    def _fail(self, error: AppPanelError, generation: int) -> RegistrationResult:
        if generation != self._generation:
            logger.warning(f"Registration failed after reset: {error}")
            return None, error
        logger.error(f"Failed to register token: {error}")
        self._state = Failed(error)
        self.observers.registration_failed(error)
        return None, error

    async def _topic_request(self, endpoint: str, topic: str, verb: str) -> tuple[bool, AppPanelError | None]:
        token = self.get_cached_token()
        if not token:
            return False, TokenNotAvailable()
        try:
            await self.api_client.send(endpoint, payload=TopicRequest(token=token, topic=topic))
        except ValueError as e:
            return False, InvalidConfiguration(str(e))
        except AppPanelError as e:
            logger.error(f"Failed to update topic {topic}: {e}")
            return False, e
        logger.info(f"Successfully {verb} topic: {topic}")
        return True, None

    def _forget_inflight(self, token: str, task: asyncio.Task[RegistrationResult]) -> None:
        if self._inflight.get(token) is task:
            del self._inflight[token]
