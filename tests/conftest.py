"""Shared fixtures for shapelayer tests."""

from __future__ import annotations

import pytest

from shapelayer import GeometryKind, LayerManager, Point, Polygon
from shapefile_builders import (
    build_dbf,
    build_shp,
    multipoint_content,
    null_content,
    point_content,
    poly_content,
    write_pair,
)

CITY_FIELDS = [
    ("NAME", "C", 20, 0),
    ("POP", "N", 10, 0),
    ("AREA_KM2", "N", 10, 2),
]

CITY_ROWS = [
    ["Alpha", "1200", "12.50"],
    ["Bravo", "3400", "7.25"],
    ["Charlie", "560", "3.00"],
]


@pytest.fixture
def manager():
    return LayerManager()


@pytest.fixture
def unit_square():
    return Polygon([Point(0, 0), Point(1, 0), Point(1, 1), Point(0, 1)])


@pytest.fixture
def point_layer(manager):
    layer = manager.create_layer("points", GeometryKind.POINT)
    layer.add_features([Point(0, 0), Point(1, 1), Point(2, 2), Point(3, 3)])
    return layer


@pytest.fixture
def city_shapefile(tmp_path):
    """Three point records with a matching three-row attribute file."""
    shp = build_shp(1, [point_content(1.0, 2.0), point_content(3.0, 4.0), point_content(5.0, 6.0)])
    dbf = build_dbf(CITY_FIELDS, CITY_ROWS)
    return write_pair(tmp_path, "cities", shp, dbf)


@pytest.fixture
def parcel_shapefile(tmp_path):
    """Polygon file: a two-ring record, a null record, and a closed triangle."""
    square = [(0.0, 0.0), (0.0, 2.0), (2.0, 2.0), (2.0, 0.0), (0.0, 0.0)]
    hole = [(0.5, 0.5), (1.5, 0.5), (1.5, 1.5), (0.5, 1.5), (0.5, 0.5)]
    triangle = [(5.0, 5.0), (8.0, 5.0), (5.0, 9.0), (5.0, 5.0)]
    shp = build_shp(5, [poly_content([square, hole]), null_content(), poly_content([triangle])])
    dbf = build_dbf(
        [("PARCEL_ID", "N", 6, 0), ("OWNER", "C", 16, 0)],
        [["101", "Smith"], ["102", "Jones"], ["103", "Garcia"]],
    )
    return write_pair(tmp_path, "parcels", shp, dbf)


@pytest.fixture
def multipoint_shapefile(tmp_path):
    """Five records; record 5 is a three-point MultiPoint."""
    contents = [point_content(float(i), float(i)) for i in range(4)]
    contents.append(multipoint_content([(10.0, 10.0), (11.0, 11.0), (12.0, 12.0)]))
    shp = build_shp(8, contents)
    dbf = build_dbf([("LABEL", "C", 8, 0)], [[f"r{i}"] for i in range(5)])
    return write_pair(tmp_path, "sensors", shp, dbf)
