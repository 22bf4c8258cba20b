"""Static lane table for the four intersection approaches."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Lane(enum.IntEnum):
    """Approach lane identifier as carried by the feed."""

    NORTH = 1
    EAST = 2
    SOUTH = 3
    WEST = 4

    @property
    def key(self) -> str:
        """Key used for this lane in ``lane_vehicle_counts``."""
        return str(self.value)


class Orientation(enum.StrEnum):
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


class Side(enum.StrEnum):
    """Side of the canvas the lane approaches the intersection from."""

    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"


@dataclass(frozen=True, slots=True)
class LaneConfig:
    lane: Lane
    name: str
    label: str
    color: str
    orientation: Orientation
    side: Side

    def __post_init__(self) -> None:
        vertical = self.side in (Side.TOP, Side.BOTTOM)
        if vertical != (self.orientation == Orientation.VERTICAL):
            raise ValueError(f"lane {self.lane} approaching from {self.side} cannot be {self.orientation}")


LANE_CONFIG: tuple[LaneConfig, ...] = (
    LaneConfig(Lane.NORTH, "North", "Road-1", "#6366f1", Orientation.VERTICAL, Side.TOP),
    LaneConfig(Lane.EAST, "East", "Road-2", "#a855f7", Orientation.HORIZONTAL, Side.RIGHT),
    LaneConfig(Lane.SOUTH, "South", "Road-3", "#f59e0b", Orientation.VERTICAL, Side.BOTTOM),
    LaneConfig(Lane.WEST, "West", "Road-4", "#10b981", Orientation.HORIZONTAL, Side.LEFT),
)

_BY_LANE: dict[int, LaneConfig] = {cfg.lane.value: cfg for cfg in LANE_CONFIG}


def lane_config(lane: int) -> LaneConfig:
    """Return the configuration for *lane*.

    Raises :class:`KeyError` for identifiers outside 1-4.
    """
    try:
        return _BY_LANE[int(lane)]
    except KeyError:
        raise KeyError(f"unknown lane {lane!r}, expected one of {sorted(_BY_LANE)}") from None
