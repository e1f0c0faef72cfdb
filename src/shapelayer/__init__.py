"""Shapefile layers — in-memory vector layers decoded from .shp/.dbf pairs.

Geometry primitives, attribute tables, homogeneous layers with
geometry -> attribute-row correlation, a z-ordered layer registry, and the
binary codecs that feed them.
"""

from shapelayer.attributes import AttributeTable, Column, ColumnType
from shapelayer.geometry import (
    BoundingBox,
    Circle,
    CollinearPointsError,
    Point,
    Polygon,
    Polyline,
)
from shapelayer.importer import UnsupportedShapeTypeError, import_directory, import_shapefile
from shapelayer.layer import GeometryKind, Layer
from shapelayer.manager import LayerManager
from shapelayer.style import LayerStyle

__all__ = [
    "AttributeTable",
    "BoundingBox",
    "Circle",
    "CollinearPointsError",
    "Column",
    "ColumnType",
    "GeometryKind",
    "Layer",
    "LayerManager",
    "LayerStyle",
    "Point",
    "Polygon",
    "Polyline",
    "UnsupportedShapeTypeError",
    "import_directory",
    "import_shapefile",
]
