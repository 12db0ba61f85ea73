import asyncio

import httpx

from apppanel.errors import AppPanelError, InvalidCredentials, ServerError, TokenNotAvailable
from apppanel.push.coordinator import Failed, Registered, TokenRegistrationCoordinator, Unregistered
from apppanel.push.observers import PushObserver
from apppanel.storage.device import DeviceIdentity
from apppanel.storage.secure_store import MemorySecureStore
from apppanel.storage.token_store import TokenStore

REGISTER = "/v1/push/register"


class RecordingObserver(PushObserver):
    def __init__(self) -> None:
        self.tokens: list[str] = []
        self.errors: list[Exception] = []

    def on_registration_token(self, token: str) -> None:
        self.tokens.append(token)

    def on_registration_failed(self, error) -> None:
        self.errors.append(error)


async def test_first_registration_is_cached(coordinator, backend) -> None:
    token, error = await coordinator.set_platform_token("tok-a")

    assert (token, error) == ("bt-1", None)
    assert coordinator.get_cached_token() == "bt-1"
    assert coordinator.state == Registered("bt-1")
    body = backend.calls(REGISTER)[0]
    assert body["apns_token"] == "tok-a"
    assert body["platform"] == "ios"
    assert body["is_token_update"] is False
    assert body["device_id"]
    assert "device_model" not in body


async def test_same_token_twice_makes_one_call(coordinator, backend) -> None:
    first = await coordinator.set_platform_token("tok-a")
    second = await coordinator.set_platform_token("tok-a")

    assert first == second == ("bt-1", None)
    assert len(backend.calls(REGISTER)) == 1


async def test_token_change_evicts_old_mapping(coordinator, backend, token_store: TokenStore) -> None:
    await coordinator.set_platform_token("tok-1")
    token, _ = await coordinator.set_platform_token("tok-2")

    assert token == "bt-2"
    assert token_store.get_backend_token("tok-1") is None
    assert token_store.get_last_platform_token() == "tok-2"
    assert backend.calls(REGISTER)[1]["is_token_update"] is True


async def test_concurrent_same_token_is_coalesced(coordinator, backend) -> None:
    results = await asyncio.gather(*(coordinator.set_platform_token("tok-a") for _ in range(3)))

    assert results == [("bt-1", None)] * 3
    assert len(backend.calls(REGISTER)) == 1


async def test_failure_leaves_state_untouched(coordinator, backend, token_store: TokenStore) -> None:
    observer = RecordingObserver()
    coordinator.add_observer(observer)
    backend.queue(REGISTER, httpx.Response(401))

    token, error = await coordinator.set_platform_token("tok-a")

    assert token is None
    assert isinstance(error, InvalidCredentials)
    assert token_store.mapping() == {}
    assert token_store.get_last_platform_token() is None
    assert coordinator.state == Failed(error)
    assert observer.errors == [error]
    assert observer.tokens == []


async def test_observers_receive_new_token(coordinator) -> None:
    observer = RecordingObserver()
    coordinator.add_observer(observer)

    await coordinator.set_platform_token("tok-a")
    await coordinator.set_platform_token("tok-a")

    assert observer.tokens == ["bt-1"]


async def test_raising_observer_does_not_break_others(coordinator) -> None:
    class Broken(PushObserver):
        def on_registration_token(self, token: str) -> None:
            raise RuntimeError("observer bug")

    observer = RecordingObserver()
    coordinator.add_observer(Broken())
    coordinator.add_observer(observer)

    token, error = await coordinator.set_platform_token("tok-a")

    assert (token, error) == ("bt-1", None)
    assert observer.tokens == ["bt-1"]


async def test_delete_token_clears_cache(coordinator, backend) -> None:
    await coordinator.set_platform_token("tok-a")

    ok, error = await coordinator.delete_token("bt-1")

    assert (ok, error) == (True, None)
    assert coordinator.get_cached_token() is None
    assert coordinator.state == Unregistered()
    assert backend.calls("/v1/push/unregister") == [{"token": "bt-1"}]

    await coordinator.set_platform_token("tok-a")
    assert len(backend.calls(REGISTER)) == 2


async def test_delete_failure_keeps_local_state(coordinator, backend) -> None:
    await coordinator.set_platform_token("tok-a")
    backend.queue("/v1/push/unregister", httpx.Response(400, json={"message": "nope"}))

    ok, error = await coordinator.delete_token("bt-1")

    assert ok is False
    assert isinstance(error, ServerError)
    assert coordinator.get_cached_token() == "bt-1"


async def test_topics_require_token(coordinator, backend) -> None:
    ok, error = await coordinator.subscribe_to_topic("news")
    assert ok is False
    assert isinstance(error, TokenNotAvailable)
    assert backend.requests == []

    await coordinator.set_platform_token("tok-a")
    assert await coordinator.subscribe_to_topic("news") == (True, None)
    assert await coordinator.unsubscribe_from_topic("news") == (True, None)
    assert backend.calls("/v1/push/topics/subscribe") == [{"token": "bt-1", "topic": "news"}]
    assert backend.calls("/v1/push/topics/unsubscribe") == [{"token": "bt-1", "topic": "news"}]


async def test_track_event_swallows_failures(coordinator, backend, sleep) -> None:
    backend.queue("/v1/analytics/track", *[httpx.Response(500) for _ in range(4)])

    await coordinator.track_event("notification_received", {"campaign_id": "c1"})
    await coordinator.track_event("app_open")

    bodies = backend.calls("/v1/analytics/track")
    assert bodies[-1] == {"event": "app_open"}
    assert bodies[0] == {"event": "notification_received", "properties": {"campaign_id": "c1"}}


async def test_reset_discards_inflight_result(token_store, secure_store, device, config, sleep) -> None:
    from apppanel.net.client import NetworkClient
    from apppanel.storage.device import DeviceIdentity

    entered = asyncio.Event()
    release = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        entered.set()
        await release.wait()
        return httpx.Response(200, json={"token": "bt-late"})

    observer = RecordingObserver()
    coordinator = TokenRegistrationCoordinator(
        token_store=token_store,
        api_client=NetworkClient(config, transport=httpx.MockTransport(handler), sleep=sleep),
        device_identity=DeviceIdentity(secure_store),
        device=device,
    )
    coordinator.add_observer(observer)

    pending = asyncio.create_task(coordinator.set_platform_token("tok-a"))
    await entered.wait()
    coordinator.reset()
    release.set()
    await pending

    assert token_store.mapping() == {}
    assert token_store.get_last_platform_token() is None
    assert observer.tokens == []
    assert coordinator.state == Unregistered()


async def test_empty_platform_token_is_rejected(coordinator, backend) -> None:
    token, error = await coordinator.set_platform_token("  ")

    assert token is None
    assert error is not None
    assert backend.requests == []


async def test_undecodable_error_body_is_returned_not_raised(coordinator, backend, token_store: TokenStore) -> None:
    backend.queue(REGISTER, httpx.Response(400, content=b'{"message": "\xff\xfe"}'))

    token, error = await coordinator.set_platform_token("tok-a")

    assert token is None
    assert isinstance(error, ServerError)
    assert error.status_code == 400
    assert token_store.mapping() == {}


async def test_store_write_failure_is_returned_not_raised(backend, api_client, device) -> None:
    class FailingStore(MemorySecureStore):
        def set(self, key: str, value: str) -> None:
            if key == "token_mapping":
                raise OSError("disk full")
            super().set(key, value)

    store = FailingStore()
    coordinator = TokenRegistrationCoordinator(
        token_store=TokenStore(store),
        api_client=api_client,
        device_identity=DeviceIdentity(store),
        device=device,
    )

    token, error = await coordinator.set_platform_token("tok-a")

    assert token is None
    assert isinstance(error, AppPanelError)
    assert isinstance(coordinator.state, Failed)
    assert coordinator.token_store.get_backend_token("tok-a") is None
    assert coordinator.token_store.get_last_platform_token() is None
