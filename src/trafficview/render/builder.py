"""Snapshot to scene geometry.

:func:`build_scene` is a pure function: the same snapshot, lane table and
canvas always produce an equal :class:`~trafficview.models.scene.Scene`.
"""

from __future__ import annotations

from collections.abc import Sequence

from trafficview.models.lanes import LANE_CONFIG, LaneConfig, Orientation, Side
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
from trafficview.render.layout import (
    DIVIDER_COLOR,
    EMERGENCY_FILL,
    EMERGENCY_GLOW_BLUR,
    EMERGENCY_RADIUS_BOOST,
    EMERGENCY_STROKE,
    EMERGENCY_STROKE_WIDTH,
    INTERSECTION_COLOR,
    NORMAL_GLOW_BLUR,
    ROAD_COLOR,
    LayoutMetrics,
    metrics_for,
)

# Unit step pointing away from the intersection centre, per approach side.
_OUTWARD: dict[Side, tuple[int, int]] = {
    Side.TOP: (0, -1),
    Side.RIGHT: (1, 0),
    Side.BOTTOM: (0, 1),
    Side.LEFT: (-1, 0),
}


def build_road_geometry(
    canvas: CanvasSize,
    metrics: LayoutMetrics,
) -> tuple[tuple[RectShape, ...], RectShape, tuple[RectShape, ...]]:
    """Return ``(roads, intersection, dividers)`` for *canvas*.

    Depends on the canvas only, never on traffic state.
    """
    width, height = canvas.width, canvas.height
    cx, cy = canvas.center
    half_road = metrics.road_width / 2
    half_box = metrics.intersection_size / 2
    half_divider = metrics.divider_width / 2

    roads = (
        RectShape(cx - half_road, 0.0, metrics.road_width, height, ROAD_COLOR, metrics.road_corner),
        RectShape(0.0, cy - half_road, width, metrics.road_width, ROAD_COLOR, metrics.road_corner),
    )
    intersection = RectShape(
        cx - half_box,
        cy - half_box,
        metrics.intersection_size,
        metrics.intersection_size,
        INTERSECTION_COLOR,
        metrics.intersection_corner,
    )
    dividers = (
        RectShape(cx - half_divider, 0.0, metrics.divider_width, cy - half_box, DIVIDER_COLOR),
        RectShape(cx - half_divider, cy + half_box, metrics.divider_width, height - cy - half_box, DIVIDER_COLOR),
        RectShape(0.0, cy - half_divider, cx - half_box, metrics.divider_width, DIVIDER_COLOR),
        RectShape(cx + half_box, cy - half_divider, width - cx - half_box, metrics.divider_width, DIVIDER_COLOR),
    )
    return roads, intersection, dividers


def lane_anchor(config: LaneConfig, canvas: CanvasSize, metrics: LayoutMetrics) -> tuple[float, float]:
    """Position of marker 0: just outside the intersection on the lane's side."""
    cx, cy = canvas.center
    offset = metrics.lane_width / 2
    reach = metrics.intersection_size / 2 + metrics.queue_gap
    if config.side == Side.TOP:
        return cx - offset, cy - reach
    if config.side == Side.RIGHT:
        return cx + reach, cy - offset
    if config.side == Side.BOTTOM:
        return cx + offset, cy + reach
    return cx - reach, cy + offset


def lane_label(config: LaneConfig, canvas: CanvasSize, metrics: LayoutMetrics) -> TextLabel:
    cx, cy = canvas.center
    if config.side == Side.TOP:
        (dx, dy), (x0, y0) = metrics.north_label_from_center_top, (cx, 0.0)
    elif config.side == Side.RIGHT:
        (dx, dy), (x0, y0) = metrics.east_label_from_right_center, (canvas.width, cy)
    elif config.side == Side.BOTTOM:
        (dx, dy), (x0, y0) = metrics.south_label_from_center_bottom, (cx, canvas.height)
    else:
        (dx, dy), (x0, y0) = metrics.west_label_from_left_center, (0.0, cy)
    return TextLabel(
        x=x0 + dx,
        y=y0 + dy,
        text=config.label,
        fill=config.color,
        font_size=metrics.label_font_size,
    )


def _marker(
    config: LaneConfig,
    index: int,
    anchor: tuple[float, float],
    metrics: LayoutMetrics,
    *,
    emergency: bool,
) -> VehicleMarker:
    step_x, step_y = _OUTWARD[config.side]
    distance = index * metrics.marker_spacing
    # Only the coordinate along the lane's axis moves.
    if config.orientation == Orientation.VERTICAL:
        cx, cy = anchor[0], anchor[1] + step_y * distance
    else:
        cx, cy = anchor[0] + step_x * distance, anchor[1]

    if emergency:
        return VehicleMarker(
            key=f"{config.lane.value}-{index}",
            lane=config.lane,
            index=index,
            cx=cx,
            cy=cy,
            radius=metrics.marker_radius + EMERGENCY_RADIUS_BOOST,
            fill=EMERGENCY_FILL,
            stroke=EMERGENCY_STROKE,
            stroke_width=EMERGENCY_STROKE_WIDTH,
            glow=Glow(blur=EMERGENCY_GLOW_BLUR, color=EMERGENCY_FILL),
            emergency=True,
            pulse=True,
        )
    return VehicleMarker(
        key=f"{config.lane.value}-{index}",
        lane=config.lane,
        index=index,
        cx=cx,
        cy=cy,
        radius=metrics.marker_radius,
        fill=config.color,
        stroke=None,
        stroke_width=0.0,
        glow=Glow(blur=NORMAL_GLOW_BLUR, color=config.color),
        emergency=False,
        pulse=False,
    )


def build_lane(
    config: LaneConfig,
    snapshot: TrafficSnapshot,
    canvas: CanvasSize,
    metrics: LayoutMetrics,
) -> LaneScene:
    count = snapshot.count_for(config.lane)
    in_emergency = snapshot.is_emergency(config.lane)
    anchor = lane_anchor(config, canvas, metrics)
    # The lead vehicle of an emergency lane is the priority vehicle.
    markers = tuple(
        _marker(config, index, anchor, metrics, emergency=in_emergency and index == 0) for index in range(count)
    )
    return LaneScene(
        lane=config.lane,
        markers=markers,
        label=lane_label(config, canvas, metrics),
        emergency=in_emergency,
    )


def build_scene(
    snapshot: TrafficSnapshot,
    lanes: Sequence[LaneConfig] = LANE_CONFIG,
    canvas: CanvasSize | None = None,
) -> Scene:
    """Compute the full scene for *snapshot* on *canvas*.

    Lane identifiers in the snapshot that are not part of *lanes* are
    ignored; negative or missing counts yield no markers.
    """
    canvas = canvas or CanvasSize()
    metrics = metrics_for(canvas)
    roads, intersection, dividers = build_road_geometry(canvas, metrics)
    return Scene(
        canvas=canvas,
        roads=roads,
        intersection=intersection,
        dividers=dividers,
        lanes=tuple(build_lane(config, snapshot, canvas, metrics) for config in lanes),
    )
