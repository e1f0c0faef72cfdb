"""Layer — a homogeneous collection of one geometry kind.

Feature ids are always dense: after any add or remove, ``features[i].id == i``.
The id doubles as the key of ``attribute_map`` (geometry index -> attribute
row index), so removals shift both ids and map keys down to close the gap.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Union

from shapelayer.attributes import AttributeTable
from shapelayer.geometry import BoundingBox, Circle, Point, Polygon, Polyline
from shapelayer.style import LayerStyle, circle_style, line_style, point_style, polygon_style

Geometry = Union[Point, Polyline, Polygon, Circle]


class GeometryKind(Enum):
    """The single geometry family a Layer holds."""
    POINT = "Point"
    LINE = "Line"
    POLYGON = "Polygon"
    CIRCLE = "Circle"

    @property
    def geometry_class(self) -> type:
        return _GEOMETRY_CLASSES[self]


_GEOMETRY_CLASSES: dict[GeometryKind, type] = {
    GeometryKind.POINT: Point,
    GeometryKind.LINE: Polyline,
    GeometryKind.POLYGON: Polygon,
    GeometryKind.CIRCLE: Circle,
}


def default_style(kind: GeometryKind) -> LayerStyle:
    """Per-kind default style for new layers."""
    if kind is GeometryKind.POINT:
        return point_style("#0000ff", 6.0)
    if kind is GeometryKind.LINE:
        return line_style("#ff0000", 1.5)
    if kind is GeometryKind.POLYGON:
        return polygon_style("#008000", "#000000", opacity=0.7)
    return circle_style("#800080", "#000000", opacity=0.6)


class Layer:
    """A named collection of geometries of one kind.

    Attributes:
        name: Display name, unique within a LayerManager.
        kind: GeometryKind fixed for the layer's lifetime.
        visible: Whether the layer is currently rendered.
        style: LayerStyle rendering hints.
        attribute_table: Optional AttributeTable correlated to features.
        attribute_map: Geometry index -> attribute row index.
    """

    def __init__(
        self,
        name: str,
        kind: GeometryKind,
        style: LayerStyle | None = None,
    ) -> None:
        self.name = name
        self._kind = kind
        self.visible = True
        self.style = style if style is not None else default_style(kind)
        self.attribute_table: AttributeTable | None = None
        self.attribute_map: dict[int, int] = {}
        self._features: list[Geometry] = []

    @property
    def kind(self) -> GeometryKind:
        return self._kind

    @property
    def features(self) -> tuple[Geometry, ...]:
        return tuple(self._features)

    @property
    def count(self) -> int:
        return len(self._features)

    def __len__(self) -> int:
        return len(self._features)

    def accepts(self, geometry: object) -> bool:
        return isinstance(geometry, self._kind.geometry_class)

    # -- mutation --

    def _is_free(self, geometry: Geometry) -> bool:
        return self.accepts(geometry) and geometry.layer is None

    def add_feature(self, geometry: Geometry) -> bool:
        """Append ``geometry`` and set its id to its position.

        A geometry is a feature of at most one layer at a time; add a
        ``copy()`` to place it in a second layer.

        Returns:
            False (layer unchanged) if the geometry is the wrong kind or
            already belongs to a layer, this one included.
        """
        if not self._is_free(geometry):
            return False
        geometry.id = len(self._features)
        geometry.layer = self
        self._features.append(geometry)
        return True

    def add_features(self, geometries: Iterable[Geometry]) -> bool:
        """Append several geometries with sequential ids.

        All geometries are checked first; one mismatch, one geometry already
        held by a layer, or the same object twice in the batch rejects the
        whole batch and leaves the layer unchanged.
        """
        batch = list(geometries)
        if not all(self._is_free(g) for g in batch):
            return False
        if len({id(g) for g in batch}) != len(batch):
            return False
        start = len(self._features)
        for offset, geometry in enumerate(batch):
            geometry.id = start + offset
            geometry.layer = self
        self._features.extend(batch)
        return True

    def remove_feature_at(self, index: int) -> bool:
        """Remove the feature at ``index`` and close the id gap.

        Later features are renumbered to their new positions, the
        correlation entry for ``index`` is dropped, and every correlation
        key above ``index`` moves down by one with its value unchanged.
        The removed geometry is released (``id`` -1, ``layer`` None).
        """
        if not 0 <= index < len(self._features):
            return False
        removed = self._features.pop(index)
        removed.id = -1
        removed.layer = None
        for position in range(index, len(self._features)):
            self._features[position].id = position
        self.attribute_map = {
            (key - 1 if key > index else key): row
            for key, row in self.attribute_map.items()
            if key != index
        }
        return True

    def get_feature_at(self, index: int) -> Geometry | None:
        if 0 <= index < len(self._features):
            return self._features[index]
        return None

    def clear(self) -> None:
        """Drop every feature and the correlation map."""
        for geometry in self._features:
            geometry.id = -1
            geometry.layer = None
        self._features.clear()
        self.attribute_map.clear()

    # -- kind-specific views used by renderers and editors --

    def _typed(self, kind: GeometryKind) -> tuple | None:
        return tuple(self._features) if self._kind is kind else None

    def get_points(self) -> tuple[Point, ...] | None:
        return self._typed(GeometryKind.POINT)

    def get_lines(self) -> tuple[Polyline, ...] | None:
        return self._typed(GeometryKind.LINE)

    def get_polygons(self) -> tuple[Polygon, ...] | None:
        return self._typed(GeometryKind.POLYGON)

    def get_circles(self) -> tuple[Circle, ...] | None:
        return self._typed(GeometryKind.CIRCLE)

    def add_point(self, point: Point) -> bool:
        return self.add_feature(point)

    def add_points(self, points: Iterable[Point]) -> bool:
        return self.add_features(points)

    def remove_point_at(self, index: int) -> bool:
        return self._kind is GeometryKind.POINT and self.remove_feature_at(index)

    def add_line(self, line: Polyline) -> bool:
        return self.add_feature(line)

    def add_lines(self, lines: Iterable[Polyline]) -> bool:
        return self.add_features(lines)

    def remove_line_at(self, index: int) -> bool:
        return self._kind is GeometryKind.LINE and self.remove_feature_at(index)

    def add_polygon(self, polygon: Polygon) -> bool:
        return self.add_feature(polygon)

    def add_polygons(self, polygons: Iterable[Polygon]) -> bool:
        return self.add_features(polygons)

    def remove_polygon_at(self, index: int) -> bool:
        return self._kind is GeometryKind.POLYGON and self.remove_feature_at(index)

    def add_circle(self, circle: Circle) -> bool:
        return self.add_feature(circle)

    def add_circles(self, circles: Iterable[Circle]) -> bool:
        return self.add_features(circles)

    def remove_circle_at(self, index: int) -> bool:
        return self._kind is GeometryKind.CIRCLE and self.remove_feature_at(index)

    # -- attributes --

    def get_label_text(self, geometry_index: int) -> str:
        """Label for a feature from the style's label field; never raises.

        Returns an empty string when there is no table, no label field, no
        correlation entry, or the row/column is missing.
        """
        table = self.attribute_table
        field = self.style.label_field if self.style is not None else None
        if table is None or not field:
            return ""
        row = self.attribute_map.get(geometry_index)
        if row is None or not 0 <= row < table.row_count:
            return ""
        if not table.has_column(field):
            return ""
        value = table.get_value(row, field)
        return "" if value is None else str(value)

    def get_attributes(self, geometry_index: int) -> dict | None:
        """Full attribute row correlated with a feature, if any."""
        row = self.attribute_map.get(geometry_index)
        if self.attribute_table is None or row is None:
            return None
        if not 0 <= row < self.attribute_table.row_count:
            return None
        return self.attribute_table.get_row(row)

    # -- measures --

    def calculate_total_length(self) -> float:
        """Line length, polygon perimeter, or circle circumference summed."""
        if self._kind is GeometryKind.LINE:
            return sum(line.length() for line in self._features)
        if self._kind is GeometryKind.POLYGON:
            return sum(poly.perimeter() for poly in self._features)
        if self._kind is GeometryKind.CIRCLE:
            return sum(circle.circumference() for circle in self._features)
        return 0.0

    def calculate_total_area(self) -> float:
        if self._kind in (GeometryKind.POLYGON, GeometryKind.CIRCLE):
            return sum(g.area() for g in self._features)
        return 0.0

    def calculate_bounds(self) -> BoundingBox | None:
        """Union of feature bounding boxes; None for an empty layer."""
        box = BoundingBox()
        for geometry in self._features:
            box.expand_to_include(geometry.bounding_box)
        return None if box.is_empty else box

    def summary(self) -> str:
        lines = [
            f"Layer: {self.name} ({self._kind.value})",
            f"Visible: {self.visible}",
            f"{self._kind.value} Count: {len(self._features)}",
        ]
        if self._kind is GeometryKind.LINE:
            lines.append(f"Total Length: {self.calculate_total_length():.2f}")
        elif self._kind is GeometryKind.POLYGON:
            lines.append(f"Total Area: {self.calculate_total_area():.2f}")
            lines.append(f"Total Perimeter: {self.calculate_total_length():.2f}")
        elif self._kind is GeometryKind.CIRCLE:
            lines.append(f"Total Area: {self.calculate_total_area():.2f}")
            lines.append(f"Total Circumference: {self.calculate_total_length():.2f}")
        if self.attribute_table is not None:
            lines.append(f"Attribute Rows: {self.attribute_table.row_count}")
            lines.append(
                f"Attribute Columns: {', '.join(self.attribute_table.column_names)}"
            )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"Layer(name={self.name!r}, kind={self._kind.value}, count={len(self._features)})"
