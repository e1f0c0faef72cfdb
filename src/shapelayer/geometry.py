"""Planar geometry primitives: BoundingBox, Point, Polyline, Polygon, Circle.

All coordinates are plain (x, y) doubles. No projection or antimeridian
handling is done; distance, area and perimeter use Euclidean formulas.

Every geometry carries an integer ``id`` (-1 until a Layer assigns one) and a
``selected`` flag used by editing front-ends. ``layer`` is the Layer currently
holding the geometry as a feature, or None; copies start out free. Bounding
boxes are kept
consistent with coordinates: Polyline/Polygon expand incrementally on single
appends and recompute fully on anything else, Point/Circle derive theirs on
read.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from shapelayer.config import settings


class CollinearPointsError(ValueError):
    """Three points are (nearly) collinear and define no unique circle."""


class BoundingBox:
    """Axis-aligned rectangle with closed-interval contains/intersects.

    A box created without arguments is empty (min = +inf, max = -inf) and
    becomes valid after the first ``expand_to_include``.
    """

    __slots__ = ("min_x", "min_y", "max_x", "max_y")

    def __init__(
        self,
        min_x: float = math.inf,
        min_y: float = math.inf,
        max_x: float = -math.inf,
        max_y: float = -math.inf,
    ) -> None:
        self.min_x = min_x
        self.min_y = min_y
        self.max_x = max_x
        self.max_y = max_y

    @classmethod
    def from_points(cls, points: Iterable[Point]) -> BoundingBox:
        """Build the tightest box around ``points`` (empty if none)."""
        box = cls()
        for point in points:
            box.expand_to_include(point)
        return box

    @property
    def is_empty(self) -> bool:
        return self.min_x > self.max_x or self.min_y > self.max_y

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center_x(self) -> float:
        return self.min_x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.min_y + self.height / 2

    def expand_to_include(
        self, target: float | Point | BoundingBox | None, y: float | None = None
    ) -> None:
        """Grow the box to cover a coordinate pair, a Point, or another box.

        Args:
            target: x coordinate (with ``y``), a Point, or a BoundingBox.
                ``None`` is ignored.
            y: y coordinate when ``target`` is a number.
        """
        if target is None:
            return
        if isinstance(target, BoundingBox):
            if target.is_empty:
                return
            self.min_x = min(self.min_x, target.min_x)
            self.min_y = min(self.min_y, target.min_y)
            self.max_x = max(self.max_x, target.max_x)
            self.max_y = max(self.max_y, target.max_y)
            return
        if isinstance(target, Point):
            x, y = target.x, target.y
        else:
            if y is None:
                raise TypeError("expand_to_include(x, y) needs both coordinates")
            x = target
        self.min_x = min(self.min_x, x)
        self.min_y = min(self.min_y, y)
        self.max_x = max(self.max_x, x)
        self.max_y = max(self.max_y, y)

    def intersects(self, other: BoundingBox | None) -> bool:
        """True when the boxes overlap or touch."""
        if other is None:
            return False
        return (
            self.min_x <= other.max_x
            and self.max_x >= other.min_x
            and self.min_y <= other.max_y
            and self.max_y >= other.min_y
        )

    def contains(self, other: Point | BoundingBox | None) -> bool:
        """True when a point lies in the box, or a box lies wholly inside it.

        Boundaries count as inside.
        """
        if other is None:
            return False
        if isinstance(other, BoundingBox):
            return (
                self.min_x <= other.min_x
                and self.max_x >= other.max_x
                and self.min_y <= other.min_y
                and self.max_y >= other.max_y
            )
        return (
            self.min_x <= other.x <= self.max_x
            and self.min_y <= other.y <= self.max_y
        )

    def copy(self) -> BoundingBox:
        return BoundingBox(self.min_x, self.min_y, self.max_x, self.max_y)

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BoundingBox):
            return NotImplemented
        return self.as_tuple() == other.as_tuple()

    def __repr__(self) -> str:
        return (
            f"BoundingBox(min_x={self.min_x:.2f}, min_y={self.min_y:.2f}, "
            f"max_x={self.max_x:.2f}, max_y={self.max_y:.2f})"
        )


class Point:
    """A single (x, y) location."""

    __slots__ = ("x", "y", "id", "selected", "layer")

    def __init__(self, x: float, y: float, id: int = -1, selected: bool = False) -> None:
        self.x = float(x)
        self.y = float(y)
        self.id = id
        self.selected = selected
        self.layer = None

    @property
    def bounding_box(self) -> BoundingBox:
        return BoundingBox(self.x, self.y, self.x, self.y)

    def distance_to(self, other: Point) -> float:
        return math.hypot(other.x - self.x, other.y - self.y)

    def copy(self) -> Point:
        return Point(self.x, self.y)

    def __repr__(self) -> str:
        flag = " selected" if self.selected else ""
        return f"Point({self.x:.2f}, {self.y:.2f}, id={self.id}{flag})"


class _PointSequence:
    """Ordered vertex storage shared by Polyline and Polygon."""

    def __init__(self, points: Iterable[Point] | None = None) -> None:
        self._points: list[Point] = list(points) if points is not None else []
        self.id = -1
        self.selected = False
        self.layer = None
        self._bbox = BoundingBox.from_points(self._points)

    @property
    def bounding_box(self) -> BoundingBox:
        return self._bbox

    def update_bounding_box(self) -> None:
        """Recompute the box after coordinates were edited in place."""
        self._bbox = BoundingBox.from_points(self._points)

    def _append(self, point: Point) -> None:
        self._points.append(point)
        self._bbox.expand_to_include(point)

    def _extend(self, points: Iterable[Point]) -> None:
        self._points.extend(points)
        self.update_bounding_box()

    def _remove_at(self, index: int) -> bool:
        if not 0 <= index < len(self._points):
            return False
        del self._points[index]
        self.update_bounding_box()
        return True

    def _get_at(self, index: int) -> Point | None:
        if 0 <= index < len(self._points):
            return self._points[index]
        return None

    def _set_at(self, index: int, x: float, y: float) -> bool:
        point = self._get_at(index)
        if point is None:
            return False
        point.x = float(x)
        point.y = float(y)
        self.update_bounding_box()
        return True

    def _copied_points(self) -> list[Point]:
        return [p.copy() for p in self._points]

    def __len__(self) -> int:
        return len(self._points)


class Polyline(_PointSequence):
    """An open chain of points. Insertion order is drawing order."""

    @property
    def points(self) -> tuple[Point, ...]:
        return tuple(self._points)

    @property
    def point_count(self) -> int:
        return len(self._points)

    def add_point(self, point: Point) -> None:
        self._append(point)

    def add_points(self, points: Iterable[Point]) -> None:
        self._extend(points)

    def remove_point_at(self, index: int) -> bool:
        return self._remove_at(index)

    def get_point_at(self, index: int) -> Point | None:
        return self._get_at(index)

    def set_point_at(self, index: int, x: float, y: float) -> bool:
        """Move the point at ``index``; False if the index is out of range."""
        return self._set_at(index, x, y)

    def length(self) -> float:
        """Sum of segment lengths; 0 for fewer than two points."""
        pts = self._points
        return sum(pts[i].distance_to(pts[i + 1]) for i in range(len(pts) - 1))

    def copy(self) -> Polyline:
        return Polyline(self._copied_points())

    def __repr__(self) -> str:
        return f"Polyline({len(self._points)} points, id={self.id})"


class Polygon(_PointSequence):
    """A closed ring; the last vertex implicitly connects to the first."""

    @property
    def vertices(self) -> tuple[Point, ...]:
        return tuple(self._points)

    @property
    def vertex_count(self) -> int:
        return len(self._points)

    def add_vertex(self, vertex: Point) -> None:
        self._append(vertex)

    def add_vertices(self, vertices: Iterable[Point]) -> None:
        self._extend(vertices)

    def remove_vertex_at(self, index: int) -> bool:
        return self._remove_at(index)

    def get_vertex_at(self, index: int) -> Point | None:
        return self._get_at(index)

    def set_vertex_at(self, index: int, x: float, y: float) -> bool:
        return self._set_at(index, x, y)

    def signed_area(self) -> float:
        """Shoelace area, positive for counter-clockwise rings."""
        pts = self._points
        n = len(pts)
        if n < 3:
            return 0.0
        total = 0.0
        for i in range(n):
            j = (i + 1) % n
            total += pts[i].x * pts[j].y - pts[j].x * pts[i].y
        return total / 2

    def area(self) -> float:
        return abs(self.signed_area())

    def perimeter(self) -> float:
        """Ring length including the closing edge; 0 below three vertices."""
        pts = self._points
        n = len(pts)
        if n < 3:
            return 0.0
        return sum(pts[i].distance_to(pts[(i + 1) % n]) for i in range(n))

    def contains_point(self, point: Point | None) -> bool:
        """Ray-casting parity test after a bounding-box rejection.

        Casts a horizontal ray from the point towards +x and counts edge
        crossings. Odd count = inside.
        """
        pts = self._points
        n = len(pts)
        if point is None or n < 3:
            return False
        if not self._bbox.contains(point):
            return False
        px, py = point.x, point.y
        inside = False
        j = n - 1
        for i in range(n):
            xi, yi = pts[i].x, pts[i].y
            xj, yj = pts[j].x, pts[j].y
            if ((yi > py) != (yj > py)) and (
                px < (xj - xi) * (py - yi) / (yj - yi) + xi
            ):
                inside = not inside
            j = i
        return inside

    def copy(self) -> Polygon:
        return Polygon(self._copied_points())

    def __repr__(self) -> str:
        return f"Polygon({len(self._points)} vertices, id={self.id})"


def _default_control_points(center: Point, radius: float) -> list[Point]:
    # 0, 120 and 240 degrees on the boundary
    return [
        Point(
            center.x + radius * math.cos(math.radians(angle)),
            center.y + radius * math.sin(math.radians(angle)),
        )
        for angle in (0.0, 120.0, 240.0)
    ]


class Circle:
    """A circle with an elevation attribute and editable control points.

    ``user_defined_points`` are the points an editor lets the user drag to
    re-derive the circle. They do not take part in the bounding box and only
    lie on the boundary right after construction.
    """

    def __init__(
        self,
        center: Point | None = None,
        radius: float = 1.0,
        elevation: float = 0.0,
        user_defined_points: Iterable[Point] | None = None,
    ) -> None:
        self.center = center if center is not None else Point(0.0, 0.0)
        self.radius = radius
        self.elevation = float(elevation)
        self.id = -1
        self.selected = False
        self.layer = None
        if user_defined_points is None:
            self._user_points = _default_control_points(self.center, self.radius)
        else:
            self._user_points = list(user_defined_points)

    @classmethod
    def from_three_points(
        cls,
        p1: Point,
        p2: Point,
        p3: Point,
        elevation: float = 0.0,
        tolerance: float | None = None,
    ) -> Circle:
        """Build the circumscribed circle of three boundary points.

        The collinearity test is relative: ``|d|`` is compared with
        ``2 * |p2 - p1| * |p3 - p1|``, so it bounds the sine of the angle at
        ``p1`` and behaves the same at any coordinate scale.

        Raises:
            CollinearPointsError: if that sine is at or below ``tolerance``
                (``settings.collinear_tolerance`` when omitted), including
                when two of the points coincide.
        """
        if tolerance is None:
            tolerance = settings.collinear_tolerance
        d = 2 * (
            p1.x * (p2.y - p3.y)
            + p2.x * (p3.y - p1.y)
            + p3.x * (p1.y - p2.y)
        )
        if abs(d) <= tolerance * 2 * p1.distance_to(p2) * p1.distance_to(p3):
            raise CollinearPointsError(
                f"Points ({p1.x}, {p1.y}), ({p2.x}, {p2.y}), ({p3.x}, {p3.y}) "
                f"are collinear and define no unique circle"
            )
        s1 = p1.x * p1.x + p1.y * p1.y
        s2 = p2.x * p2.x + p2.y * p2.y
        s3 = p3.x * p3.x + p3.y * p3.y
        cx = (s1 * (p2.y - p3.y) + s2 * (p3.y - p1.y) + s3 * (p1.y - p2.y)) / d
        cy = (s1 * (p3.x - p2.x) + s2 * (p1.x - p3.x) + s3 * (p2.x - p1.x)) / d
        center = Point(cx, cy)
        return cls(center, center.distance_to(p1), elevation, [p1, p2, p3])

    @property
    def radius(self) -> float:
        return self._radius

    @radius.setter
    def radius(self, value: float) -> None:
        self._radius = max(0.0, float(value))

    @property
    def bounding_box(self) -> BoundingBox:
        r = self.radius
        return BoundingBox(
            self.center.x - r, self.center.y - r, self.center.x + r, self.center.y + r
        )

    @property
    def user_defined_points(self) -> tuple[Point, ...]:
        return tuple(self._user_points)

    @property
    def user_defined_point_count(self) -> int:
        return len(self._user_points)

    def add_user_defined_point(self, point: Point | None) -> None:
        if point is not None:
            self._user_points.append(point)

    def add_user_defined_points(self, points: Iterable[Point] | None) -> None:
        if points is not None:
            self._user_points.extend(points)

    def remove_user_defined_point_at(self, index: int) -> bool:
        if 0 <= index < len(self._user_points):
            del self._user_points[index]
            return True
        return False

    def get_user_defined_point_at(self, index: int) -> Point | None:
        if 0 <= index < len(self._user_points):
            return self._user_points[index]
        return None

    def clear_user_defined_points(self) -> None:
        self._user_points.clear()

    def area(self) -> float:
        return math.pi * self.radius * self.radius

    def circumference(self) -> float:
        return 2 * math.pi * self.radius

    def contains_point(self, point: Point | None) -> bool:
        if point is None:
            return False
        if not self.bounding_box.contains(point):
            return False
        return self.center.distance_to(point) <= self.radius

    def approximation_points(self, segments: int | None = None) -> list[Point]:
        """Evenly spaced boundary points approximating the circle (>= 8)."""
        if segments is None:
            segments = settings.circle_segments
        segments = max(8, segments)
        step = 2 * math.pi / segments
        return [
            Point(
                self.center.x + self.radius * math.cos(i * step),
                self.center.y + self.radius * math.sin(i * step),
            )
            for i in range(segments)
        ]

    def copy(self) -> Circle:
        return Circle(
            self.center.copy(),
            self.radius,
            self.elevation,
            [p.copy() for p in self._user_points],
        )

    def __repr__(self) -> str:
        return (
            f"Circle(center=({self.center.x:.2f}, {self.center.y:.2f}), "
            f"radius={self.radius:.2f}, elevation={self.elevation:.2f}, id={self.id})"
        )
