from __future__ import annotations

import asyncio
import logging
import threading
from types import SimpleNamespace
from typing import Any

import pytest

from trafficview.exceptions import FeedSubscriptionError, FeedUnavailableError
from trafficview.feed.mqtt import MqttFeed, decode_traffic_payload


class _FakeClient:
    """Records the paho calls the feed makes."""

    def __init__(self, client_id: str, *, refuse: bool = False) -> None:
        self.client_id = client_id
        self.refuse = refuse
        self.calls: list[tuple[Any, ...]] = []
        self.on_connect: Any = None
        self.on_message: Any = None
        self.on_disconnect: Any = None

    def enable_logger(self, logger: logging.Logger) -> None:
        self.calls.append(("enable_logger",))

    def tls_set(self) -> None:
        self.calls.append(("tls_set",))

    def reconnect_delay_set(self, min_delay: int, max_delay: int) -> None:
        self.calls.append(("reconnect_delay_set", min_delay, max_delay))

    def connect(self, host: str, port: int, keepalive: int) -> None:
        if self.refuse:
            raise ConnectionRefusedError("connection refused")
        self.calls.append(("connect", host, port, keepalive))

    def loop_start(self) -> None:
        self.calls.append(("loop_start",))

    def loop_stop(self) -> None:
        self.calls.append(("loop_stop",))

    def disconnect(self) -> None:
        self.calls.append(("disconnect",))

    def subscribe(self, topic: str, qos: int) -> None:
        self.calls.append(("subscribe", topic, qos))

    def unsubscribe(self, topic: str) -> None:
        self.calls.append(("unsubscribe", topic))


def _ok() -> SimpleNamespace:
    return SimpleNamespace(value=0)


def _message(topic: str, payload: bytes) -> SimpleNamespace:
    return SimpleNamespace(topic=topic, payload=payload)


def _make_feed(loop: asyncio.AbstractEventLoop, **kwargs: Any) -> tuple[MqttFeed, list[_FakeClient]]:
    clients: list[_FakeClient] = []
    refuse = kwargs.pop("refuse", False)

    def _factory(client_id: str) -> Any:
        client = _FakeClient(client_id, refuse=refuse)
        clients.append(client)
        return client

    feed = MqttFeed(loop=loop, host="broker.local", client_factory=_factory, **kwargs)
    return feed, clients


# ------------------------------------------------------------------
# Payload decoding
# ------------------------------------------------------------------


def test_decode_json_object() -> None:
    assert decode_traffic_payload(b'{"vehicle_count": 3}') == {"vehicle_count": 3}


@pytest.mark.parametrize("payload", [b"", b"   ", b"null"])
def test_decode_empty_or_null_payload(payload: bytes) -> None:
    assert decode_traffic_payload(payload) is None


@pytest.mark.parametrize("payload", [b"{not json", b"\xff\xfe"])
def test_decode_rejects_garbage(payload: bytes) -> None:
    with pytest.raises(ValueError):
        decode_traffic_payload(payload)


# ------------------------------------------------------------------
# Runtime
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_first_subscription_starts_client_and_subscribes_on_connect() -> None:
    feed, clients = _make_feed(asyncio.get_running_loop(), topic_prefix="city/", tls=True, reconnect_delay=7.0)
    feed.subscribe("traffic", lambda _p: None, lambda _e: None)

    (client,) = clients
    names = [call[0] for call in client.calls]
    assert names == ["enable_logger", "tls_set", "reconnect_delay_set", "connect", "loop_start"]
    assert ("reconnect_delay_set", 1, 7) in client.calls
    assert ("connect", "broker.local", 1883, 60) in client.calls
    assert feed.is_running

    client.on_connect(client, None, None, _ok(), None)
    assert ("subscribe", "city/traffic", 1) in client.calls

    # A second channel after connect subscribes straight away on the same client.
    feed.subscribe("junction-b", lambda _p: None, lambda _e: None)
    assert len(clients) == 1
    assert ("subscribe", "city/junction-b", 1) in client.calls
    feed.close()


@pytest.mark.asyncio
async def test_messages_are_delivered_on_the_loop() -> None:
    feed, clients = _make_feed(asyncio.get_running_loop(), topic_prefix="city/")
    received: list[Any] = []
    feed.subscribe("traffic", received.append, lambda _e: None)
    client = clients[0]
    client.on_connect(client, None, None, _ok(), None)

    client.on_message(client, None, _message("city/traffic", b'{"vehicle_count": 4}'))
    client.on_message(client, None, _message("city/traffic", b""))
    client.on_message(client, None, _message("elsewhere/traffic", b'{"vehicle_count": 9}'))
    assert received == []

    await asyncio.sleep(0)
    assert received == [{"vehicle_count": 4}, None]
    feed.close()


@pytest.mark.asyncio
async def test_undecodable_message_is_dropped(caplog: pytest.LogCaptureFixture) -> None:
    feed, clients = _make_feed(asyncio.get_running_loop())
    received: list[Any] = []
    feed.subscribe("traffic", received.append, lambda _e: None)
    client = clients[0]

    client.on_message(client, None, _message("traffic", b"{broken"))
    await asyncio.sleep(0)

    assert received == []
    assert "undecodable" in caplog.text
    feed.close()


@pytest.mark.asyncio
async def test_disconnect_and_refused_connect_report_errors() -> None:
    feed, clients = _make_feed(asyncio.get_running_loop())
    errors: list[BaseException | None] = []
    feed.subscribe("traffic", lambda _p: None, errors.append)
    client = clients[0]

    client.on_connect(client, None, None, SimpleNamespace(value=135), None)
    client.on_disconnect(client, None, None, SimpleNamespace(value=7), None)
    await asyncio.sleep(0)

    assert len(errors) == 2
    assert all(isinstance(error, FeedUnavailableError) for error in errors)
    assert all(error is not None and error.channel == "traffic" for error in errors)  # type: ignore[union-attr]
    feed.close()


@pytest.mark.asyncio
async def test_connect_failure_raises_subscription_error() -> None:
    feed, _clients = _make_feed(asyncio.get_running_loop(), refuse=True)

    with pytest.raises(FeedSubscriptionError) as excinfo:
        feed.subscribe("traffic", lambda _p: None, lambda _e: None)

    assert isinstance(excinfo.value.__cause__, ConnectionRefusedError)
    assert excinfo.value.channel == "traffic"
    assert feed.is_running is False


@pytest.mark.asyncio
async def test_last_unsubscribe_stops_client() -> None:
    feed, clients = _make_feed(asyncio.get_running_loop())
    first = feed.subscribe("traffic", lambda _p: None, lambda _e: None)
    second = feed.subscribe("traffic", lambda _p: None, lambda _e: None)
    client = clients[0]
    client.on_connect(client, None, None, _ok(), None)

    feed.unsubscribe(first)
    assert ("unsubscribe", "traffic") not in client.calls
    assert feed.is_running

    feed.unsubscribe(second)
    feed.unsubscribe(second)
    assert ("unsubscribe", "traffic") in client.calls
    assert client.calls[-2:] == [("disconnect",), ("loop_stop",)]
    assert feed.is_running is False

    # Late disconnect callback after close must not report anything.
    client.on_disconnect(client, None, None, SimpleNamespace(value=0), None)
    await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_network_thread_reads_topics_under_lock() -> None:
    feed, clients = _make_feed(asyncio.get_running_loop())
    feed.subscribe("traffic", lambda _p: None, lambda _e: None)
    client = clients[0]

    connect_thread = threading.Thread(target=client.on_connect, args=(client, None, None, _ok(), None))
    with feed._topics_lock:  # noqa: SLF001
        connect_thread.start()
        connect_thread.join(timeout=0.2)
        # Blocked while the loop thread owns the topic set.
        assert connect_thread.is_alive()
        assert ("subscribe", "traffic", 1) not in client.calls
    connect_thread.join(timeout=5)

    assert not connect_thread.is_alive()
    assert ("subscribe", "traffic", 1) in client.calls
    feed.close()
