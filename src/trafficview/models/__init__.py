"""Data models for traffic snapshots, lanes and scenes."""

from trafficview.models._base import FeedModel, non_negative_or_none, safe_int
from trafficview.models.lanes import LANE_CONFIG, Lane, LaneConfig, Orientation, Side, lane_config
from trafficview.models.scene import (
    CanvasSize,
    Glow,
    LaneScene,
    RectShape,
    Scene,
    TextLabel,
    VehicleMarker,
)
from trafficview.models.snapshot import TrafficSnapshot

__all__ = [
    "CanvasSize",
    "FeedModel",
    "Glow",
    "LANE_CONFIG",
    "Lane",
    "LaneConfig",
    "LaneScene",
    "Orientation",
    "RectShape",
    "Scene",
    "Side",
    "TextLabel",
    "TrafficSnapshot",
    "VehicleMarker",
    "lane_config",
    "non_negative_or_none",
    "safe_int",
]
