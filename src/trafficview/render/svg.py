"""SVG rendering surface for scenes."""

from __future__ import annotations

from xml.sax.saxutils import escape, quoteattr

from trafficview.models.scene import RectShape, Scene, TextLabel, VehicleMarker

BACKGROUND = "#000"


def _num(value: float) -> str:
    """Format a coordinate without trailing zeros (``12.0`` -> ``12``)."""
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def _rect(shape: RectShape) -> str:
    parts = [
        f'x="{_num(shape.x)}"',
        f'y="{_num(shape.y)}"',
        f'width="{_num(shape.width)}"',
        f'height="{_num(shape.height)}"',
        f"fill={quoteattr(shape.fill)}",
    ]
    if shape.corner_radius:
        parts.append(f'rx="{_num(shape.corner_radius)}"')
    return f"<rect {' '.join(parts)}/>"


def _circle(marker: VehicleMarker) -> str:
    style = f"filter: drop-shadow(0 0 {_num(marker.glow.blur)}px {marker.glow.color})"
    parts = [
        f"data-key={quoteattr(marker.key)}",
        f'cx="{_num(marker.cx)}"',
        f'cy="{_num(marker.cy)}"',
        f'r="{_num(marker.radius)}"',
        f"fill={quoteattr(marker.fill)}",
        f"stroke={quoteattr(marker.stroke or 'none')}",
        f'stroke-width="{_num(marker.stroke_width)}"',
    ]
    if marker.pulse:
        parts.append('class="animate-pulse"')
    parts.append(f"style={quoteattr(style)}")
    return f"<circle {' '.join(parts)}/>"


def _text(label: TextLabel) -> str:
    return (
        f'<text x="{_num(label.x)}" y="{_num(label.y)}" font-size="{_num(label.font_size)}" '
        f"fill={quoteattr(label.fill)} font-weight={quoteattr(label.font_weight)}>{escape(label.text)}</text>"
    )


def render_svg(scene: Scene) -> str:
    """Render *scene* as a standalone SVG document.

    Draw order is roads, intersection, dividers, markers, labels.
    """
    width, height = _num(scene.canvas.width), _num(scene.canvas.height)
    lines = [
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {width} {height}" width="{width}" height="{height}">',
        f'<rect x="0" y="0" width="{width}" height="{height}" fill="{BACKGROUND}"/>',
    ]
    lines.extend(_rect(road) for road in scene.roads)
    lines.append(_rect(scene.intersection))
    lines.extend(_rect(divider) for divider in scene.dividers)
    lines.extend(_circle(marker) for marker in scene.markers)
    lines.extend(_text(label) for label in scene.labels)
    lines.append("</svg>")
    return "\n".join(lines) + "\n"
