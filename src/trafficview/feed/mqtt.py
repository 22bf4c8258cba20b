"""MQTT feed backend.

Each channel maps to one topic carrying JSON snapshots, typically published
with the retain flag so a new subscriber gets the current state at once.
An empty payload (or JSON ``null``) means the channel has no data.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
import uuid
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from trafficview.config import TrafficViewConfig
from trafficview.exceptions import FeedSubscriptionError, FeedUnavailableError
from trafficview.feed.base import ErrorHandler, MessageHandler, SubscriberRegistry, Subscription


def decode_traffic_payload(payload: bytes) -> Any:
    """Decode an MQTT payload into a JSON value; ``None`` for an empty payload.

    Raises :class:`ValueError` (``UnicodeDecodeError`` or
    ``json.JSONDecodeError``) when the payload is not JSON text.
    """
    text = payload.decode("utf-8").strip()
    if not text:
        return None
    return json.loads(text)


def _default_client(client_id: str) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
        client_id=client_id,
        protocol=mqtt.MQTTv5,
    )


class MqttFeed:
    """Threaded paho-mqtt feed that delivers messages onto an asyncio loop.

    The network loop runs on paho's own thread; every handler call is
    marshalled back with ``loop.call_soon_threadsafe`` so subscribers only
    ever run on the loop thread, one message at a time.  Reconnection after
    a dropped connection is left to paho.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        host: str,
        port: int = 1883,
        topic_prefix: str = "",
        keepalive: int = 60,
        tls: bool = False,
        reconnect_delay: float = 5.0,
        client_id: str | None = None,
        client_factory: Callable[[str], mqtt.Client] = _default_client,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._host = host
        self._port = port
        self._topic_prefix = topic_prefix
        self._keepalive = keepalive
        self._tls = tls
        self._reconnect_delay = reconnect_delay
        self._client_id = client_id or f"trafficview-{uuid.uuid4().hex[:12]}"
        self._client_factory = client_factory
        self._logger = logger or logging.getLogger(__name__)
        self._registry = SubscriberRegistry()
        self._client: mqtt.Client | None = None
        self._running = False
        self._connected = False
        # Read from paho's network thread, written from the loop thread.
        self._topics: set[str] = set()
        self._topics_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: TrafficViewConfig, loop: asyncio.AbstractEventLoop) -> MqttFeed:
        return cls(
            loop=loop,
            host=config.mqtt_host,
            port=config.mqtt_port,
            topic_prefix=config.mqtt_topic_prefix,
            keepalive=config.mqtt_keepalive,
            tls=config.mqtt_tls,
            reconnect_delay=config.reconnect_delay,
        )

    @property
    def is_running(self) -> bool:
        return self._running

    def topic_for(self, channel: str) -> str:
        return f"{self._topic_prefix}{channel}"

    def _channel_for(self, topic: str) -> str | None:
        if not topic.startswith(self._topic_prefix):
            return None
        return topic[len(self._topic_prefix) :]

    # ------------------------------------------------------------------
    # Feed interface
    # ------------------------------------------------------------------

    def subscribe(self, channel: str, on_message: MessageHandler, on_error: ErrorHandler) -> Subscription:
        subscription = self._registry.add(channel, on_message, on_error)
        topic = self.topic_for(channel)
        with self._topics_lock:
            self._topics.add(topic)
        if self._client is None:
            try:
                self._start()
            except (OSError, ValueError) as exc:
                self._registry.remove(subscription)
                with self._topics_lock:
                    self._topics.discard(topic)
                raise FeedSubscriptionError(
                    f"Could not connect to MQTT broker {self._host}:{self._port}: {exc}",
                    channel=channel,
                ) from exc
        elif self._connected:
            self._logger.debug("MQTT subscribing topic=%s", topic)
            self._client.subscribe(topic, qos=1)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if not self._registry.remove(subscription):
            return
        channel = subscription.channel
        if self._registry.count(channel) == 0:
            topic = self.topic_for(channel)
            with self._topics_lock:
                self._topics.discard(topic)
            if self._client is not None and self._connected:
                self._logger.debug("MQTT unsubscribing topic=%s", topic)
                self._client.unsubscribe(topic)
        if len(self._registry) == 0:
            self.close()

    # ------------------------------------------------------------------
    # paho runtime
    # ------------------------------------------------------------------

    def _start(self) -> None:
        self._logger.debug(
            "MQTT feed start requested host=%s port=%s client_id=%s",
            self._host,
            self._port,
            self._client_id,
        )
        client = self._client_factory(self._client_id)
        client.enable_logger(self._logger)
        if self._tls:
            client.tls_set()
        client.reconnect_delay_set(min_delay=1, max_delay=max(1, int(self._reconnect_delay)))

        client.on_connect = self._on_connect
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect

        client.connect(self._host, self._port, keepalive=self._keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def close(self) -> None:
        """Stop and disconnect the client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._connected = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def _on_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.value != 0:
            self._logger.warning("MQTT connect failed: %s", reason_code)
            self._signal_unavailable(f"MQTT connect refused: {reason_code}")
            return
        self._logger.debug("MQTT connected reason=%s", reason_code)
        self._connected = True
        for topic in self._topic_snapshot():
            self._logger.debug("MQTT subscribing topic=%s", topic)
            client.subscribe(topic, qos=1)

    def _on_message(self, _client: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        channel = self._channel_for(msg.topic)
        if channel is None:
            return
        try:
            payload = decode_traffic_payload(msg.payload)
        except ValueError:
            self._logger.warning("Dropping undecodable MQTT payload topic=%s", msg.topic, exc_info=True)
            return
        self._logger.debug("MQTT message topic=%s payload=%s", msg.topic, payload)
        self._loop.call_soon_threadsafe(self._registry.dispatch_message, channel, payload)

    def _on_disconnect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        self._connected = False
        if self._running:
            self._logger.debug("MQTT disconnected: %s", reason_code)
            self._signal_unavailable(f"MQTT connection lost: {reason_code}")

    def _topic_snapshot(self) -> tuple[str, ...]:
        with self._topics_lock:
            return tuple(self._topics)

    def _signal_unavailable(self, message: str) -> None:
        for topic in self._topic_snapshot():
            channel = self._channel_for(topic)
            if channel is None:
                continue
            error = FeedUnavailableError(message, channel=channel)
            self._loop.call_soon_threadsafe(self._registry.dispatch_error, channel, error)

    async def aclose(self) -> None:
        """Run :meth:`close` off the loop; paho joins its network thread."""
        await self._loop.run_in_executor(None, self.close)
