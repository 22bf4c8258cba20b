"""Textual traffic summary shown next to the intersection drawing."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from trafficview.models.lanes import LANE_CONFIG, Lane, LaneConfig
from trafficview.models.snapshot import TrafficSnapshot


@dataclass(frozen=True, slots=True)
class LaneSummary:
    lane: Lane
    label: str
    color: str
    count: int
    emergency: bool


@dataclass(frozen=True, slots=True)
class TrafficSummary:
    connected: bool
    total_vehicles: int
    emergency_lanes: tuple[Lane, ...]
    lanes: tuple[LaneSummary, ...]
    source: str | None = None

    @property
    def status_text(self) -> str:
        if not self.connected:
            return "Disconnected"
        return f"Connected to {self.source}" if self.source else "Connected"

    @property
    def emergency_text(self) -> str:
        if not self.emergency_lanes:
            return "None"
        return ", ".join(str(lane.value) for lane in self.emergency_lanes)


def summarize(
    snapshot: TrafficSnapshot,
    *,
    connected: bool,
    lanes: Sequence[LaneConfig] = LANE_CONFIG,
    source: str | None = None,
) -> TrafficSummary:
    """Summarise *snapshot* for display.

    ``total_vehicles`` is the feed's own ``vehicle_count``, not the sum of
    the lane counts.  *source* names the feed backend in the status text,
    e.g. ``"Connected to Firebase"``.
    """
    known = {config.lane for config in lanes}
    return TrafficSummary(
        connected=connected,
        source=source,
        total_vehicles=snapshot.vehicle_count,
        emergency_lanes=tuple(sorted(Lane(lane) for lane in snapshot.emergency_lane if lane in known)),
        lanes=tuple(
            LaneSummary(
                lane=config.lane,
                label=config.label,
                color=config.color,
                count=snapshot.count_for(config.lane),
                emergency=snapshot.is_emergency(config.lane),
            )
            for config in lanes
        ),
    )
