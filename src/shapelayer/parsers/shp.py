"""Decode ESRI shapefile geometry (.shp) into Points, Polylines and Polygons.

Layout (all offsets in bytes):
    header, 100 bytes:
        0   file code (big-endian int32, 9994) + 5 unused words
        24  file length in 16-bit words (big-endian int32)
        28  version (little-endian int32)
        32  shape type (little-endian int32)
        36  xmin, ymin, xmax, ymax (4 little-endian doubles)
        68  z/m ranges (ignored)
    records, repeated until end of data:
        record number (big-endian int32, 1-based)
        content length in 16-bit words (big-endian int32)
        shape type (little-endian int32) + shape payload (little-endian)

Z and M variants share the 2D prefix of their base type; the trailing Z/M
arrays are skipped by seeking to the end of the record. Each polygon ring
becomes its own Polygon (no shell/hole assembly) and keeps its explicit
closing vertex.

Correlation: every geometry produced by a non-null record is mapped to the
candidate attribute row ``record_number - 1``.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path

import numpy as np
from loguru import logger

from shapelayer.geometry import BoundingBox, Point, Polygon, Polyline

HEADER_SIZE = 100
RECORD_HEADER_SIZE = 8
FILE_CODE = 9994

_HEADER_BE = struct.Struct(">7i")
_HEADER_LE = struct.Struct("<2i4d")
_RECORD_HEADER = struct.Struct(">2i")
_INT32 = struct.Struct("<i")
_TWO_INT32 = struct.Struct("<2i")
_POINT = struct.Struct("<2d")

_BBOX_SIZE = 32
_MIN_POLYGON_RING = 3


class ShapefileError(ValueError):
    """The geometry file is unreadable at file level (e.g. short header)."""


class ShapeType(IntEnum):
    NULL = 0
    POINT = 1
    POLYLINE = 3
    POLYGON = 5
    MULTIPOINT = 8
    POINT_Z = 11
    POLYLINE_Z = 13
    POLYGON_Z = 15
    MULTIPOINT_Z = 18
    POINT_M = 21
    POLYLINE_M = 23
    POLYGON_M = 25
    MULTIPOINT_M = 28
    MULTIPATCH = 31


class ShapeFamily(IntEnum):
    """2D family a shape type decodes to."""
    POINT = 1
    MULTIPOINT = 8
    POLYLINE = 3
    POLYGON = 5


_FAMILIES: dict[int, ShapeFamily] = {
    ShapeType.POINT: ShapeFamily.POINT,
    ShapeType.POINT_Z: ShapeFamily.POINT,
    ShapeType.POINT_M: ShapeFamily.POINT,
    ShapeType.MULTIPOINT: ShapeFamily.MULTIPOINT,
    ShapeType.MULTIPOINT_Z: ShapeFamily.MULTIPOINT,
    ShapeType.MULTIPOINT_M: ShapeFamily.MULTIPOINT,
    ShapeType.POLYLINE: ShapeFamily.POLYLINE,
    ShapeType.POLYLINE_Z: ShapeFamily.POLYLINE,
    ShapeType.POLYLINE_M: ShapeFamily.POLYLINE,
    ShapeType.POLYGON: ShapeFamily.POLYGON,
    ShapeType.POLYGON_Z: ShapeFamily.POLYGON,
    ShapeType.POLYGON_M: ShapeFamily.POLYGON,
}


def shape_family(shape_type: int) -> ShapeFamily | None:
    """Map a shape-type code to its 2D family; None if unsupported."""
    return _FAMILIES.get(shape_type)


def shape_type_name(shape_type: int) -> str:
    try:
        return ShapeType(shape_type).name
    except ValueError:
        return f"UNKNOWN({shape_type})"


@dataclass
class ShapefileHeader:
    file_code: int
    file_length: int  # bytes
    version: int
    shape_type: int
    bbox: BoundingBox


@dataclass
class ShapefileData:
    """Everything decoded from one geometry file.

    Points cover both Point and MultiPoint records. Each ``*_rows`` dict maps
    the geometry's index in its list to the candidate attribute row.
    """

    header: ShapefileHeader
    points: list[Point] = field(default_factory=list)
    lines: list[Polyline] = field(default_factory=list)
    polygons: list[Polygon] = field(default_factory=list)
    point_rows: dict[int, int] = field(default_factory=dict)
    line_rows: dict[int, int] = field(default_factory=dict)
    polygon_rows: dict[int, int] = field(default_factory=dict)
    record_count: int = 0
    null_records: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def shape_type(self) -> int:
        return self.header.shape_type

    def geometries_for(self, family: ShapeFamily) -> list:
        if family in (ShapeFamily.POINT, ShapeFamily.MULTIPOINT):
            return self.points
        if family is ShapeFamily.POLYLINE:
            return self.lines
        return self.polygons

    def rows_for(self, family: ShapeFamily) -> dict[int, int]:
        if family in (ShapeFamily.POINT, ShapeFamily.MULTIPOINT):
            return self.point_rows
        if family is ShapeFamily.POLYLINE:
            return self.line_rows
        return self.polygon_rows


def parse_header(buf: bytes) -> ShapefileHeader:
    """Decode the fixed 100-byte file header.

    Raises:
        ShapefileError: if fewer than 100 bytes are available.
    """
    if len(buf) < HEADER_SIZE:
        raise ShapefileError(
            f"Shapefile header truncated: {len(buf)} bytes, need {HEADER_SIZE}"
        )
    be = _HEADER_BE.unpack_from(buf, 0)
    version, shape_type, xmin, ymin, xmax, ymax = _HEADER_LE.unpack_from(buf, 28)
    return ShapefileHeader(
        file_code=be[0],
        file_length=be[6] * 2,
        version=version,
        shape_type=shape_type,
        bbox=BoundingBox(xmin, ymin, xmax, ymax),
    )


def _read_xy(buf: bytes, offset: int, count: int) -> np.ndarray:
    """``count`` little-endian (x, y) double pairs as an (n, 2) array."""
    if count == 0:
        return np.empty((0, 2), dtype="<f8")
    return np.frombuffer(buf, dtype="<f8", count=count * 2, offset=offset).reshape(count, 2)


def _split_parts(buf: bytes, offset: int, end: int) -> list[np.ndarray]:
    """Decode the bbox/parts/points layout shared by PolyLine and Polygon.

    Returns one coordinate array per part using consecutive start offsets;
    the last part runs to the total point count.
    """
    offset += _BBOX_SIZE
    if offset + _TWO_INT32.size > end:
        raise struct.error("part/point counts overrun the record")
    num_parts, num_points = _TWO_INT32.unpack_from(buf, offset)
    offset += _TWO_INT32.size
    if num_parts < 0 or num_points < 0:
        raise struct.error(f"negative part/point count ({num_parts}, {num_points})")
    if offset + 4 * num_parts + 16 * num_points > end:
        raise struct.error("part/point arrays overrun the record")
    if num_parts == 0:
        return []
    starts = np.frombuffer(buf, dtype="<i4", count=num_parts, offset=offset)
    offset += 4 * num_parts
    coords = _read_xy(buf, offset, num_points)
    parts = []
    for i in range(num_parts):
        start = int(starts[i])
        stop = int(starts[i + 1]) if i < num_parts - 1 else num_points
        parts.append(coords[max(0, start):max(start, min(stop, num_points))])
    return parts


def _points_from(coords: np.ndarray) -> list[Point]:
    return [Point(x, y) for x, y in coords.tolist()]


def _decode_record(
    data: ShapefileData, buf: bytes, offset: int, end: int, family: ShapeFamily
) -> tuple[str, int, int]:
    """Append the geometries of one record.

    Returns:
        (list name, first new index, number of geometries added)
    """
    if family is ShapeFamily.POINT:
        if offset + _POINT.size > end:
            raise struct.error("point coordinates overrun the record")
        x, y = _POINT.unpack_from(buf, offset)
        data.points.append(Point(x, y))
        return "points", len(data.points) - 1, 1

    if family is ShapeFamily.MULTIPOINT:
        if offset + _BBOX_SIZE + _INT32.size > end:
            raise struct.error("multipoint count overruns the record")
        (count,) = _INT32.unpack_from(buf, offset + _BBOX_SIZE)
        if count < 0 or offset + _BBOX_SIZE + 4 + 16 * count > end:
            raise struct.error("multipoint array overruns the record")
        first = len(data.points)
        data.points.extend(_points_from(_read_xy(buf, offset + _BBOX_SIZE + 4, count)))
        return "points", first, count

    parts = _split_parts(buf, offset, end)
    if family is ShapeFamily.POLYLINE:
        first = len(data.lines)
        data.lines.extend(Polyline(_points_from(part)) for part in parts)
        return "lines", first, len(parts)

    first = len(data.polygons)
    rings = [Polygon(_points_from(part)) for part in parts if len(part) >= _MIN_POLYGON_RING]
    data.polygons.extend(rings)
    return "polygons", first, len(rings)


def _warn(data: ShapefileData, message: str) -> None:
    logger.warning(message)
    data.warnings.append(message)


def parse_shp(buf: bytes) -> ShapefileData:
    """Decode a complete geometry file held in memory.

    Null records are skipped without correlation. Records whose type differs
    from the header are decoded anyway with a warning. A truncated trailing
    record stops decoding with a warning; geometries decoded before it are
    kept.

    Raises:
        ShapefileError: if the 100-byte header is incomplete.
    """
    header = parse_header(buf)
    data = ShapefileData(header=header)
    if header.file_code != FILE_CODE:
        _warn(data, f"Unexpected shapefile file code {header.file_code} (expected {FILE_CODE})")

    row_maps = {"points": data.point_rows, "lines": data.line_rows, "polygons": data.polygon_rows}
    size = len(buf)
    pos = HEADER_SIZE
    while pos < size:
        if pos + RECORD_HEADER_SIZE > size:
            _warn(data, f"Truncated record header at byte {pos}; stopping")
            break
        record_number, content_words = _RECORD_HEADER.unpack_from(buf, pos)
        start = pos + RECORD_HEADER_SIZE
        end = start + content_words * 2
        pos = end
        if content_words < 2 or end > size:
            _warn(data, f"Record {record_number} truncated or empty at byte {start}; stopping")
            break

        data.record_count += 1
        (record_type,) = _INT32.unpack_from(buf, start)
        if record_type == ShapeType.NULL:
            data.null_records += 1
            continue
        if record_type != header.shape_type:
            _warn(
                data,
                f"Shape type mismatch in record {record_number}: expected "
                f"{shape_type_name(header.shape_type)}, got {shape_type_name(record_type)}",
            )
        family = shape_family(record_type)
        if family is None:
            _warn(data, f"Skipping record {record_number} with unsupported {shape_type_name(record_type)}")
            continue

        try:
            target, first, added = _decode_record(data, buf, start + 4, end, family)
        except (struct.error, ValueError) as e:
            _warn(data, f"Record {record_number} payload is malformed ({e}); skipped")
            continue

        row = record_number - 1
        for index in range(first, first + added):
            row_maps[target][index] = row
        logger.debug(f"Record {record_number}: {added} {target} -> row {row}")

    return data


def read_shp(path: str | Path) -> ShapefileData:
    """Read and decode a .shp file."""
    with open(path, "rb") as f:
        buf = f.read()
    return parse_shp(buf)


def read_shape_type(path: str | Path) -> int:
    """Peek the header shape-type code; 0 (null) if the file is unreadable."""
    try:
        with open(path, "rb") as f:
            f.seek(32)
            raw = f.read(4)
    except OSError:
        return 0
    if len(raw) < 4:
        return 0
    return _INT32.unpack(raw)[0]
