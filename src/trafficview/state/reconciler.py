"""Snapshot reconciler.

This is the only component that holds traffic state.  It observes one feed
channel and keeps the last good snapshot plus a connectivity flag:

- a non-empty payload replaces the snapshot wholesale and marks the feed
  connected;
- an empty payload or a feed error marks the feed disconnected but keeps
  the last snapshot on display.

The reconciler never retries; reconnecting is the feed's job.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from trafficview.exceptions import FeedSubscriptionError, MalformedSnapshotError
from trafficview.feed.base import Subscription, TrafficFeed
from trafficview.models.snapshot import TrafficSnapshot

_logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "traffic"

StateListener = Callable[["ReconcilerState"], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class ReconcilerState:
    """Immutable view of the reconciler: snapshot and connectivity together.

    Compared by value but not hashable; the snapshot holds a plain dict.
    """

    snapshot: TrafficSnapshot
    connected: bool
    updated_at: datetime | None = None

    __hash__ = None  # type: ignore[assignment]


class SnapshotReconciler:
    """Passive observer of a traffic feed channel.

    Usage::

        with SnapshotReconciler(feed) as reconciler:
            ...
            scene = build_scene(reconciler.snapshot)
    """

    def __init__(
        self,
        feed: TrafficFeed,
        *,
        channel: str = DEFAULT_CHANNEL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._feed = feed
        self._channel = channel
        self._clock = clock
        self._state = ReconcilerState(snapshot=TrafficSnapshot(), connected=False)
        self._subscription: Subscription | None = None
        self._active = False
        self._listeners: list[StateListener] = []

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def channel(self) -> str:
        return self._channel

    @property
    def is_running(self) -> bool:
        return self._active

    @property
    def state(self) -> ReconcilerState:
        return self._state

    @property
    def snapshot(self) -> TrafficSnapshot:
        """Deep copy of the current snapshot."""
        return self._state.snapshot.model_copy(deep=True)

    @property
    def connected(self) -> bool:
        return self._state.connected

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """Call *listener* whenever the snapshot or connectivity changes.

        Returns a callable that removes the listener again.
        """
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Subscribe to the feed channel.

        Calling ``start()`` again while running is logged and ignored.
        Raises :class:`FeedSubscriptionError` when the feed refuses the
        subscription; the reconciler then stays in its initial state.
        """
        if self._active:
            _logger.warning("Reconciler for channel=%s already started; ignoring start()", self._channel)
            return

        # Feeds may deliver a retained value from inside subscribe().
        self._active = True
        try:
            self._subscription = self._feed.subscribe(self._channel, self._on_message, self._on_error)
        except Exception as exc:
            self._active = False
            _logger.error("Subscription to channel=%s failed: %s", self._channel, exc)
            if isinstance(exc, FeedSubscriptionError):
                raise
            raise FeedSubscriptionError(
                f"Could not subscribe to {self._channel!r}: {exc}",
                channel=self._channel,
            ) from exc
        _logger.debug("Reconciler subscribed channel=%s", self._channel)

    def stop(self) -> None:
        """Release the subscription.  Safe to call more than once."""
        subscription = self._subscription
        self._subscription = None
        self._active = False
        if subscription is None:
            return
        self._feed.unsubscribe(subscription)
        _logger.debug("Reconciler unsubscribed channel=%s", self._channel)

    def __enter__(self) -> SnapshotReconciler:
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Feed callbacks
    # ------------------------------------------------------------------

    def _on_message(self, payload: Any) -> None:
        if not self._active:
            return
        try:
            snapshot = TrafficSnapshot.from_feed(payload)
        except MalformedSnapshotError as exc:
            _logger.warning("Rejected payload on channel=%s: %s", self._channel, exc)
            return

        if snapshot is None:
            _logger.debug("Empty payload on channel=%s; marking disconnected", self._channel)
            self._transition(self._state.snapshot, connected=False)
            return

        _logger.debug(
            "Snapshot on channel=%s vehicles=%s emergency=%s",
            self._channel,
            snapshot.vehicle_count,
            sorted(snapshot.emergency_lane),
        )
        self._transition(snapshot, connected=True)

    def _on_error(self, error: BaseException | None) -> None:
        if not self._active:
            return
        _logger.debug("Feed error on channel=%s: %s", self._channel, error)
        self._transition(self._state.snapshot, connected=False)

    def _transition(self, snapshot: TrafficSnapshot, *, connected: bool) -> None:
        previous = self._state
        if previous.snapshot == snapshot and previous.connected == connected:
            return
        # Swap the whole state at once so readers never see a half update.
        self._state = ReconcilerState(snapshot=snapshot, connected=connected, updated_at=self._clock())
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                _logger.exception("Reconciler listener failed channel=%s", self._channel)
