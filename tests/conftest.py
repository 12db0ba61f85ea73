from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from apppanel.config.schema import Configuration
from apppanel.net.client import NetworkClient
from apppanel.push.coordinator import TokenRegistrationCoordinator
from apppanel.storage.device import DeviceIdentity, DeviceMetadata
from apppanel.storage.secure_store import MemorySecureStore
from apppanel.storage.token_store import TokenStore

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeBackend:
    """Scripted AppPanel API that records every request it receives."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, list[httpx.Response | Exception]] = {}
        self.next_token = 1

    def queue(self, path: str, *responses: httpx.Response | Exception) -> None:
        self.routes.setdefault(path, []).extend(responses)

    def calls(self, path: str) -> list[dict]:
        return [json.loads(r.content or b"null") for r in self.requests if r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        scripted = self.routes.get(request.url.path)
        if scripted:
            item = scripted.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        if request.url.path == "/v1/push/register":
            token = f"bt-{self.next_token}"
            self.next_token += 1
            return httpx.Response(200, json={"token": token})
        return httpx.Response(200)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def config() -> Configuration:
    return Configuration(api_key="test-api-key", max_retry_attempts=3)


@pytest.fixture
def device() -> DeviceMetadata:
    return DeviceMetadata(
        platform="ios",
        app_version="2.4.0",
        bundle_id="com.example.app",
        timezone="Europe/Berlin",
        locale="de_DE",
        os_version="17.2",
    )


@pytest.fixture
def secure_store() -> MemorySecureStore:
    return MemorySecureStore()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def api_client(config, backend, sleep) -> NetworkClient:
    return NetworkClient(config, platform="ios", transport=backend.transport, sleep=sleep)


@pytest.fixture
def token_store(secure_store) -> TokenStore:
    return TokenStore(secure_store)


@pytest.fixture
def coordinator(token_store, api_client, secure_store, device) -> TokenRegistrationCoordinator:
    return TokenRegistrationCoordinator(
        token_store=token_store,
        api_client=api_client,
        device_identity=DeviceIdentity(secure_store),
        device=device,
    )
