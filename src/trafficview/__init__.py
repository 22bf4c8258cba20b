"""trafficview - live four-way intersection rendering from a traffic feed."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("trafficview")
except PackageNotFoundError:
    __version__ = "0+local"
from trafficview.config import TrafficViewConfig
from trafficview.exceptions import (
    FeedError,
    FeedSubscriptionError,
    FeedUnavailableError,
    MalformedSnapshotError,
    TrafficViewConfigError,
    TrafficViewError,
)
from trafficview.feed import InMemoryFeed, Subscription, TrafficFeed
from trafficview.models import (
    LANE_CONFIG,
    CanvasSize,
    Lane,
    LaneConfig,
    LaneScene,
    Orientation,
    Scene,
    Side,
    TrafficSnapshot,
    VehicleMarker,
)
from trafficview.monitor import IntersectionMonitor
from trafficview.render import TrafficSummary, build_scene, render_svg, summarize
from trafficview.state import ReconcilerState, SnapshotReconciler

__all__ = [
    "__version__",
    "CanvasSize",
    "FeedError",
    "FeedSubscriptionError",
    "FeedUnavailableError",
    "InMemoryFeed",
    "IntersectionMonitor",
    "LANE_CONFIG",
    "Lane",
    "LaneConfig",
    "LaneScene",
    "MalformedSnapshotError",
    "Orientation",
    "ReconcilerState",
    "Scene",
    "Side",
    "SnapshotReconciler",
    "Subscription",
    "TrafficFeed",
    "TrafficSnapshot",
    "TrafficSummary",
    "TrafficViewConfig",
    "TrafficViewConfigError",
    "TrafficViewError",
    "VehicleMarker",
    "build_scene",
    "render_svg",
    "summarize",
]
