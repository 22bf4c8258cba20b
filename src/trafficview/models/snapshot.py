"""Traffic snapshot model.

A snapshot is one complete reading delivered by the feed.  It is always
replaced as a whole; there is no field-level merge between snapshots.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import Field, field_validator

from trafficview.exceptions import MalformedSnapshotError
from trafficview.models._base import FeedModel, non_negative_or_none, safe_int
from trafficview.models.lanes import Lane


def _zero_counts() -> dict[str, int]:
    return {lane.key: 0 for lane in Lane}


class TrafficSnapshot(FeedModel):
    """One traffic-state reading.

    ``vehicle_count`` is informational and supplied independently of the
    per-lane counts; no relation between the two is enforced.
    """

    vehicle_count: int = 0
    emergency_lane: frozenset[int] = Field(default_factory=frozenset)
    lane_vehicle_counts: dict[str, int] = Field(default_factory=_zero_counts)

    @field_validator("vehicle_count", mode="before")
    @classmethod
    def _clamp_vehicle_count(cls, value: Any) -> int:
        parsed = non_negative_or_none(value)
        return 0 if parsed is None else parsed

    @field_validator("emergency_lane", mode="before")
    @classmethod
    def _normalize_emergency_lane(cls, value: Any) -> frozenset[int]:
        # Realtime databases may store sparse arrays as {"0": 2, "3": 4}.
        if isinstance(value, Mapping):
            items: Any = list(value.values())
        elif isinstance(value, (list, tuple, set, frozenset)):
            items = value
        else:
            items = [value]
        lanes: set[int] = set()
        for item in items:
            parsed = safe_int(item)
            if parsed is not None:
                lanes.add(parsed)
        return frozenset(lanes)

    @field_validator("lane_vehicle_counts", mode="before")
    @classmethod
    def _normalize_lane_counts(cls, value: Any) -> dict[str, int]:
        # A {"1": .., "4": ..} object comes back from some stores as
        # [null, c1, c2, c3, c4]; read it positionally.
        if isinstance(value, (list, tuple)):
            pairs: Any = ((str(index), item) for index, item in enumerate(value))
        elif isinstance(value, Mapping):
            pairs = ((str(key).strip(), item) for key, item in value.items())
        else:
            return {}
        counts: dict[str, int] = {}
        for key, item in pairs:
            parsed = non_negative_or_none(item)
            if parsed is not None:
                counts[key] = parsed
        return counts

    @classmethod
    def from_feed(cls, payload: Any) -> TrafficSnapshot | None:
        """Parse a feed payload.

        Returns ``None`` when the payload signals "no data" (``None`` or an
        empty object).  Raises :class:`MalformedSnapshotError` when the
        payload is not an object at all.
        """
        if payload is None:
            return None
        if not isinstance(payload, Mapping):
            raise MalformedSnapshotError(f"snapshot payload must be an object, got {type(payload).__name__}")
        if not payload:
            return None
        return cls.model_validate(dict(payload))

    def count_for(self, lane: int) -> int:
        """Vehicle count for *lane*; ``0`` when absent."""
        return max(0, self.lane_vehicle_counts.get(str(int(lane)), 0))

    def is_emergency(self, lane: int) -> bool:
        return int(lane) in self.emergency_lane
