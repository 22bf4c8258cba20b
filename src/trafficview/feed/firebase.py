"""Firebase Realtime Database feed backend.

Uses the REST streaming protocol: ``GET <database>/<channel>.json`` with
``Accept: text/event-stream``.  The server first sends a ``put`` at path
``/`` with the whole value and then incremental ``put``/``patch`` events
for sub-paths.  This feed keeps a local copy of the channel value and hands
the *whole* value to subscribers after every change, so consumers only
ever see complete snapshots.
"""

from __future__ import annotations

import asyncio
import contextlib
import copy
import json
import logging
from collections.abc import Mapping
from typing import Any

import aiohttp

from trafficview.config import TrafficViewConfig
from trafficview.exceptions import FeedSubscriptionError, FeedUnavailableError
from trafficview.feed.base import ErrorHandler, MessageHandler, SubscriberRegistry, Subscription

_logger = logging.getLogger(__name__)

# Firebase sends keep-alive events every ~30 s.
DEFAULT_READ_TIMEOUT = 90.0


def _path_parts(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def _as_object(node: Any) -> dict[str, Any]:
    if isinstance(node, dict):
        return dict(node)
    if isinstance(node, list):
        return {str(index): item for index, item in enumerate(node) if item is not None}
    return {}


def _prune(node: Any) -> Any:
    """Drop null children and empty objects; the database stores neither."""
    if isinstance(node, dict):
        pruned = {key: _prune(value) for key, value in node.items()}
        pruned = {key: value for key, value in pruned.items() if value is not None}
        return pruned or None
    return node


def apply_put(tree: Any, path: str, data: Any) -> Any:
    """Return *tree* with the node at *path* replaced by *data*.

    ``None`` data deletes the node.  The input tree is not modified.
    """
    parts = _path_parts(path)
    if not parts:
        return _prune(copy.deepcopy(data))

    root = _as_object(tree)
    node = root
    for part in parts[:-1]:
        child = _as_object(node.get(part))
        node[part] = child
        node = child
    node[parts[-1]] = copy.deepcopy(data)
    return _prune(root)


def apply_patch(tree: Any, path: str, data: Mapping[str, Any]) -> Any:
    """Return *tree* with each key of *data* written below *path*."""
    prefix = "/".join(_path_parts(path))
    for key, value in data.items():
        tree = apply_put(tree, f"{prefix}/{key}", value)
    return tree


class ServerSentEventParser:
    """Incremental ``text/event-stream`` line parser."""

    def __init__(self) -> None:
        self._event: str | None = None
        self._data: list[str] = []

    def feed_line(self, line: str) -> tuple[str, str] | None:
        """Consume one line; return ``(event, data)`` when an event completes."""
        line = line.rstrip("\r\n")
        if not line:
            event, data = self._event, self._data
            self._event, self._data = None, []
            if event is None:
                return None
            return event, "\n".join(data)
        if line.startswith(":"):
            return None
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        return None


class _ChannelStream:
    """Local copy of one channel's value, updated from stream events."""

    def __init__(self, channel: str) -> None:
        self.channel = channel
        self.value: Any = None

    def apply(self, event: str, raw_data: str) -> bool:
        """Apply one stream event; ``True`` when the value changed."""
        if event == "keep-alive":
            return False
        if event in ("cancel", "auth_revoked"):
            raise FeedUnavailableError(f"Stream for {self.channel!r} closed by server: {event}", channel=self.channel)
        if event not in ("put", "patch"):
            _logger.debug("Ignoring stream event=%s channel=%s", event, self.channel)
            return False

        try:
            message = json.loads(raw_data)
        except json.JSONDecodeError:
            _logger.warning("Dropping undecodable %s event channel=%s", event, self.channel, exc_info=True)
            return False
        if not isinstance(message, dict) or "path" not in message:
            _logger.warning("Dropping %s event without path channel=%s", event, self.channel)
            return False

        path = str(message["path"])
        data = message.get("data")
        if event == "put":
            self.value = apply_put(self.value, path, data)
        elif isinstance(data, Mapping):
            self.value = apply_patch(self.value, path, data)
        else:
            return False
        return True


class FirebaseFeed:
    """Streaming feed over the Realtime Database REST API.

    Each subscription runs its own stream task on the running loop.  When a
    stream drops, subscribers get ``on_error`` and the stream is reopened
    after ``reconnect_delay`` seconds until the subscription is released.
    """

    def __init__(
        self,
        *,
        database_url: str,
        session: aiohttp.ClientSession | None = None,
        reconnect_delay: float = 5.0,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ) -> None:
        self._base_url = database_url.rstrip("/")
        self._external_session = session is not None
        self._http = session
        self._reconnect_delay = reconnect_delay
        self._read_timeout = read_timeout
        self._registry = SubscriberRegistry()
        self._tasks: dict[int, asyncio.Task[None]] = {}

    @classmethod
    def from_config(cls, config: TrafficViewConfig) -> FirebaseFeed:
        if not config.firebase_url:
            raise FeedSubscriptionError("firebase_url is not configured")
        return cls(database_url=config.firebase_url, reconnect_delay=config.reconnect_delay)

    def url_for(self, channel: str) -> str:
        return f"{self._base_url}/{channel.strip('/')}.json"

    def subscribe(self, channel: str, on_message: MessageHandler, on_error: ErrorHandler) -> Subscription:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise FeedSubscriptionError("FirebaseFeed.subscribe requires a running event loop", channel=channel) from exc
        if self._http is None:
            self._http = aiohttp.ClientSession()

        subscription = self._registry.add(channel, on_message, on_error)
        self._tasks[subscription.token] = loop.create_task(self._run(subscription))
        _logger.debug("Firebase subscribe channel=%s token=%s", channel, subscription.token)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._registry.remove(subscription)
        task = self._tasks.pop(subscription.token, None)
        if task is not None:
            task.cancel()

    async def aclose(self) -> None:
        """Cancel every stream and close the HTTP session if owned."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if not self._external_session and self._http is not None:
            await self._http.close()
            self._http = None

    async def _run(self, subscription: Subscription) -> None:
        while subscription in self._registry:
            try:
                await self._stream(subscription)
            except FeedUnavailableError as exc:
                _logger.debug("Firebase stream unavailable channel=%s: %s", subscription.channel, exc)
                self._registry.dispatch_error_to(subscription, exc)
            except (aiohttp.ClientError, TimeoutError) as exc:
                _logger.debug("Firebase stream failed channel=%s", subscription.channel, exc_info=True)
                error = FeedUnavailableError(
                    f"Stream for {subscription.channel!r} failed: {exc}",
                    channel=subscription.channel,
                )
                error.__cause__ = exc
                self._registry.dispatch_error_to(subscription, error)
            except Exception as exc:
                _logger.warning("Firebase stream crashed channel=%s", subscription.channel, exc_info=True)
                error = FeedUnavailableError(
                    f"Stream for {subscription.channel!r} crashed: {exc}",
                    channel=subscription.channel,
                )
                error.__cause__ = exc
                self._registry.dispatch_error_to(subscription, error)
            await asyncio.sleep(self._reconnect_delay)

    async def _stream(self, subscription: Subscription) -> None:
        assert self._http is not None
        channel = subscription.channel
        url = self.url_for(channel)
        state = _ChannelStream(channel)
        parser = ServerSentEventParser()
        timeout = aiohttp.ClientTimeout(total=None, sock_read=self._read_timeout)

        _logger.debug("GET %s (stream)", url)
        async with self._http.get(url, headers={"Accept": "text/event-stream"}, timeout=timeout) as resp:
            if resp.status != 200:
                text = await resp.text()
                raise FeedUnavailableError(f"HTTP {resp.status} from {url}: {text[:200]}", channel=channel)
            async for raw_line in resp.content:
                parsed = parser.feed_line(raw_line.decode("utf-8", errors="replace"))
                if parsed is None:
                    continue
                event, data = parsed
                if state.apply(event, data):
                    self._registry.dispatch_message_to(subscription, copy.deepcopy(state.value))
        raise FeedUnavailableError(f"Stream for {channel!r} ended", channel=channel)
