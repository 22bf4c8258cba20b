"""Intersection monitor: feed -> reconciler -> scene."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from trafficview.feed.base import TrafficFeed
from trafficview.models.lanes import LANE_CONFIG, LaneConfig
from trafficview.models.scene import CanvasSize, Scene
from trafficview.models.snapshot import TrafficSnapshot
from trafficview.render.builder import build_scene
from trafficview.render.summary import TrafficSummary, summarize
from trafficview.state.reconciler import DEFAULT_CHANNEL, ReconcilerState, SnapshotReconciler

_logger = logging.getLogger(__name__)


class IntersectionMonitor:
    """Keeps a scene in step with a live traffic feed.

    The scene is rebuilt lazily: snapshots that arrive faster than anyone
    reads :attr:`scene` are coalesced and only the latest one is laid out.
    When ``on_scene`` is given, it is called with a fresh scene (and the
    current connectivity) on every state change instead.

    Usage::

        with IntersectionMonitor(feed, canvas=CanvasSize(760, 760)) as monitor:
            svg = render_svg(monitor.scene)
    """

    def __init__(
        self,
        feed: TrafficFeed,
        *,
        canvas: CanvasSize | None = None,
        channel: str = DEFAULT_CHANNEL,
        lanes: Sequence[LaneConfig] = LANE_CONFIG,
        on_scene: Callable[[Scene, bool], None] | None = None,
        source: str | None = None,
    ) -> None:
        self._canvas = canvas or CanvasSize()
        self._lanes = tuple(lanes)
        self._on_scene = on_scene
        self._source = source
        self._reconciler = SnapshotReconciler(feed, channel=channel)
        self._remove_listener = self._reconciler.add_listener(self._on_state)
        self._scene: Scene | None = None
        self._scene_source: TrafficSnapshot | None = None

    @property
    def reconciler(self) -> SnapshotReconciler:
        return self._reconciler

    @property
    def canvas(self) -> CanvasSize:
        return self._canvas

    @property
    def connected(self) -> bool:
        return self._reconciler.connected

    @property
    def snapshot(self) -> TrafficSnapshot:
        return self._reconciler.snapshot

    @property
    def scene(self) -> Scene:
        """Scene for the current snapshot, rebuilt only when it changed."""
        snapshot = self._reconciler.state.snapshot
        if self._scene is None or self._scene_source is not snapshot:
            self._scene = build_scene(snapshot, self._lanes, self._canvas)
            self._scene_source = snapshot
        return self._scene

    @property
    def summary(self) -> TrafficSummary:
        state = self._reconciler.state
        return summarize(state.snapshot, connected=state.connected, lanes=self._lanes, source=self._source)

    def start(self) -> None:
        self._reconciler.start()

    def stop(self) -> None:
        self._reconciler.stop()

    def close(self) -> None:
        """Stop and detach from the reconciler for good."""
        self.stop()
        self._remove_listener()

    def __enter__(self) -> IntersectionMonitor:
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()

    def _on_state(self, state: ReconcilerState) -> None:
        if self._on_scene is None:
            return
        _logger.debug("Pushing scene connected=%s", state.connected)
        self._on_scene(self.scene, state.connected)
