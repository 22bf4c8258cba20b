"""Layout metrics for the intersection drawing.

All lengths are measured on a 380x380 reference canvas and scaled
uniformly by the shorter side of the target canvas.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

from trafficview.models.scene import CanvasSize

REFERENCE_SIZE = 380.0

ROAD_COLOR = "#1e293b"
INTERSECTION_COLOR = "#222"
DIVIDER_COLOR = "#64748b"

EMERGENCY_FILL = "#ef4444"
EMERGENCY_STROKE = "#dc2626"
EMERGENCY_STROKE_WIDTH = 2.0
EMERGENCY_RADIUS_BOOST = 1.0
EMERGENCY_GLOW_BLUR = 8.0
NORMAL_GLOW_BLUR = 4.0


@dataclass(frozen=True, slots=True)
class LayoutMetrics:
    road_width: float = 38.0
    intersection_size: float = 50.0
    lane_width: float = 16.0
    queue_gap: float = 10.0
    marker_spacing: float = 10.0
    marker_radius: float = 3.0
    divider_width: float = 2.0
    road_corner: float = 3.0
    intersection_corner: float = 7.0
    label_font_size: float = 11.0
    # label offsets, (dx, dy) from the reference point named in the field
    north_label_from_center_top: tuple[float, float] = (-60.0, 28.0)
    east_label_from_right_center: tuple[float, float] = (-45.0, -20.0)
    south_label_from_center_bottom: tuple[float, float] = (23.0, -10.0)
    west_label_from_left_center: tuple[float, float] = (15.0, 29.0)

    def scaled(self, factor: float) -> LayoutMetrics:
        changes: dict[str, object] = {}
        for field in dataclasses.fields(self):
            value = getattr(self, field.name)
            if isinstance(value, tuple):
                changes[field.name] = (value[0] * factor, value[1] * factor)
            else:
                changes[field.name] = value * factor
        return dataclasses.replace(self, **changes)


DEFAULT_METRICS = LayoutMetrics()


def metrics_for(canvas: CanvasSize, base: LayoutMetrics = DEFAULT_METRICS) -> LayoutMetrics:
    factor = min(canvas.width, canvas.height) / REFERENCE_SIZE
    if factor == 1.0:
        return base
    return base.scaled(factor)
