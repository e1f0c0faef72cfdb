"""Rendering hints attached to a Layer.

The core never interprets these values; renderers read them. Colours are
"#rrggbb" strings.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class PointShape(Enum):
    CIRCLE = "circle"
    SQUARE = "square"
    TRIANGLE = "triangle"
    DIAMOND = "diamond"
    CROSS = "cross"
    STAR = "star"


class LineStyle(Enum):
    SOLID = "solid"
    DASHED = "dashed"
    DOTTED = "dotted"
    DASH_DOT = "dash_dot"
    DASH_DOT_DOT = "dash_dot_dot"


class FillPattern(Enum):
    SOLID = "solid"
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    DIAGONAL = "diagonal"
    CROSS_HATCH = "cross_hatch"
    DIAGONAL_CROSS_HATCH = "diagonal_cross_hatch"
    NONE = "none"


class LabelPosition(Enum):
    CENTER = "center"
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"
    TOP_LEFT = "top_left"
    TOP_RIGHT = "top_right"
    BOTTOM_LEFT = "bottom_left"
    BOTTOM_RIGHT = "bottom_right"


@dataclass
class LayerStyle:
    """Visual style of a layer.

    Attributes:
        color: Main colour (point/line colour, polygon fill).
        outline_color: Outline colour for points, polygons and circles.
        outline_width: Outline width in pixels.
        opacity: 0.0 to 1.0.
        point_shape: Marker shape for point layers.
        point_size: Marker size in pixels.
        line_style: Dash pattern for line layers.
        line_width: Line width in pixels.
        fill_pattern: Fill for polygon/circle layers.
        show_fill: Whether polygons/circles are filled.
        show_labels: Whether labels are drawn.
        label_field: Attribute column used for label text.
    """

    color: str = "#0000ff"
    outline_color: str = "#000000"
    outline_width: float = 1.0
    opacity: float = 1.0
    point_shape: PointShape = PointShape.CIRCLE
    point_size: float = 6.0
    line_style: LineStyle = LineStyle.SOLID
    line_width: float = 1.0
    fill_pattern: FillPattern = FillPattern.SOLID
    show_fill: bool = True
    show_labels: bool = False
    label_field: str = "Name"
    label_color: str = "#000000"
    label_font_size: float = 8.0
    label_offset: float = 2.0
    label_position: LabelPosition = LabelPosition.CENTER
    label_halo: bool = False
    label_halo_color: str = "#ffffff"
    label_background: bool = True
    label_background_color: str = "#ffffffb4"

    def configure_labels(
        self,
        show_labels: bool,
        label_field: str,
        color: str = "#000000",
        font_size: float = 8.0,
    ) -> None:
        self.show_labels = show_labels
        self.label_field = label_field
        self.label_color = color
        self.label_font_size = font_size

    def copy(self) -> LayerStyle:
        return replace(self)


def _darken(color: str, amount: int = 50) -> str:
    """Subtract ``amount`` from each RGB channel, clamped at 0."""
    value = color.lstrip("#")[:6]
    r, g, b = (int(value[i:i + 2], 16) for i in (0, 2, 4))
    return "#{:02x}{:02x}{:02x}".format(
        max(0, r - amount), max(0, g - amount), max(0, b - amount)
    )


def point_style(
    color: str = "#0000ff", size: float = 6.0, shape: PointShape = PointShape.CIRCLE
) -> LayerStyle:
    return LayerStyle(
        color=color, point_size=size, point_shape=shape, outline_color=_darken(color)
    )


def line_style(
    color: str = "#ff0000", width: float = 1.5, style: LineStyle = LineStyle.SOLID
) -> LayerStyle:
    return LayerStyle(color=color, line_width=width, line_style=style)


def polygon_style(
    fill_color: str = "#008000",
    outline_color: str = "#000000",
    fill_pattern: FillPattern = FillPattern.SOLID,
    opacity: float = 0.7,
) -> LayerStyle:
    return LayerStyle(
        color=fill_color,
        outline_color=outline_color,
        outline_width=1.5,
        fill_pattern=fill_pattern,
        opacity=opacity,
        show_fill=True,
    )


def circle_style(
    fill_color: str = "#800080",
    outline_color: str = "#000000",
    fill_pattern: FillPattern = FillPattern.SOLID,
    opacity: float = 0.6,
) -> LayerStyle:
    return polygon_style(fill_color, outline_color, fill_pattern, opacity)
