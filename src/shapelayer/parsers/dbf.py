"""Decode dBASE III attribute files (.dbf) into an AttributeTable.

Layout:
    header, 32 bytes:
        0   version byte
        1   last update (YY MM DD, 3 bytes)
        4   record count (little-endian int32)
        8   header size (little-endian int16)
        10  record size (little-endian int16)
        12  20 reserved bytes
    (header_size - 32) // 32 field descriptors of 32 bytes each:
        11-byte NUL-padded name, 1-byte type, 4-byte address (skipped),
        1-byte length, 1-byte decimal count, 14 reserved bytes
    0x0D terminator
    record_count fixed-width records, each led by a deletion flag byte
    ('*' = deleted).

Decoding is permissive at value level (bad numbers/dates become None) and
all-or-nothing at file level: any structural problem yields an empty table.
Deleted rows are dropped, so row indices follow the produced table, not file
order.
"""

from __future__ import annotations

import datetime as dt
import re
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from shapelayer.attributes import AttributeTable, Column, ColumnType
from shapelayer.config import settings

HEADER_TERMINATOR = 0x0D
DELETED_FLAG = 0x2A

_HEADER = struct.Struct("<B3BiHH20x")
_FIELD = struct.Struct("<11sc4xBB14x")

# Plain decimal tokens only; int()/float() would also take "1_000", "nan", "inf"
_INT_TOKEN = re.compile(r"[+-]?[0-9]+")
_FLOAT_TOKEN = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")

_TRUE_CHARS = "YyTt1"
_FALSE_CHARS = "NnFf0"


class DbfFormatError(ValueError):
    """Structural problem in an attribute file."""


@dataclass(frozen=True)
class DbfField:
    name: str
    type: str
    length: int
    decimal_count: int

    @property
    def column_type(self) -> ColumnType:
        if self.type == "N":
            return ColumnType.FLOAT if self.decimal_count > 0 else ColumnType.INT
        if self.type == "F":
            return ColumnType.FLOAT
        if self.type == "D":
            return ColumnType.DATE
        if self.type == "L":
            return ColumnType.BOOL
        return ColumnType.TEXT


@dataclass(frozen=True)
class DbfHeader:
    version: int
    last_update: tuple[int, int, int]
    record_count: int
    header_size: int
    record_size: int
    fields: tuple[DbfField, ...]


def _parse_int(text: str) -> int | None:
    if not _INT_TOKEN.fullmatch(text):
        return None
    return int(text)


def _parse_float(text: str) -> float | None:
    if not _FLOAT_TOKEN.fullmatch(text):
        return None
    return float(text)


def _parse_date(text: str) -> dt.date | None:
    if len(text) != 8 or not text.isdigit():
        return None
    try:
        return dt.date(int(text[:4]), int(text[4:6]), int(text[6:]))
    except ValueError:
        return None


def _parse_logical(text: str) -> bool | None:
    first = text[0]
    if first in _TRUE_CHARS:
        return True
    if first in _FALSE_CHARS:
        return False
    return None


def coerce_value(field: DbfField, text: str) -> Any:
    """Convert a trimmed field token to the field's Python type.

    Blank tokens are None for every type; unparseable numbers, dates and
    logicals are None as well.
    """
    if not text or text.isspace():
        return None
    kind = field.column_type
    if kind is ColumnType.INT:
        return _parse_int(text)
    if kind is ColumnType.FLOAT:
        return _parse_float(text)
    if kind is ColumnType.DATE:
        return _parse_date(text)
    if kind is ColumnType.BOOL:
        return _parse_logical(text)
    return text


def parse_header(buf: bytes, encoding: str | None = None) -> DbfHeader:
    """Decode the file header and field descriptors.

    Raises:
        DbfFormatError: on a truncated header/descriptor or a missing
            0x0D terminator.
    """
    encoding = encoding or settings.dbf_encoding
    if len(buf) < _HEADER.size:
        raise DbfFormatError(f"DBF header truncated: {len(buf)} bytes")
    version, yy, mm, dd, record_count, header_size, record_size = _HEADER.unpack_from(buf, 0)
    if record_count < 0:
        raise DbfFormatError(f"Negative record count {record_count}")

    num_fields = (header_size - 32) // 32
    fields: list[DbfField] = []
    offset = _HEADER.size
    for i in range(num_fields):
        if offset + _FIELD.size > len(buf):
            raise DbfFormatError(f"Field descriptor {i} truncated at byte {offset}")
        raw_name, raw_type, length, decimals = _FIELD.unpack_from(buf, offset)
        offset += _FIELD.size
        name = raw_name.split(b"\x00", 1)[0].decode(encoding, errors="replace").strip()
        if not name:
            name = f"Column{i + 1}"
        fields.append(DbfField(name, raw_type.decode("ascii", errors="replace"), length, decimals))

    if offset >= len(buf) or buf[offset] != HEADER_TERMINATOR:
        raise DbfFormatError("Invalid DBF format: header terminator not found")

    return DbfHeader(
        version=version,
        last_update=(yy, mm, dd),
        record_count=record_count,
        header_size=header_size,
        record_size=record_size,
        fields=tuple(fields),
    )


def _decode(buf: bytes, encoding: str) -> AttributeTable:
    header = parse_header(buf, encoding)
    table = AttributeTable()
    for f in header.fields:
        try:
            table.add_column(Column(f.name, f.column_type))
        except ValueError as e:
            raise DbfFormatError(str(e)) from e

    data_width = 1 + sum(f.length for f in header.fields)
    stride = max(header.record_size, data_width)
    # Records start right after the terminator, or at header_size if that lies further on
    offset = max(_HEADER.size + _FIELD.size * len(header.fields) + 1, header.header_size)

    for i in range(header.record_count):
        if offset + data_width > len(buf):
            raise DbfFormatError(
                f"Record {i} truncated: need {data_width} bytes at {offset}, "
                f"file has {len(buf)}"
            )
        if buf[offset] == DELETED_FLAG:
            offset += stride
            continue
        pos = offset + 1
        values = []
        for f in header.fields:
            text = buf[pos:pos + f.length].decode(encoding, errors="replace")
            text = text.replace("\x00", " ").strip()
            values.append(coerce_value(f, text))
            pos += f.length
        table.add_row(values)
        offset += stride
    return table


def parse_dbf(buf: bytes, encoding: str | None = None, strict: bool = False) -> AttributeTable:
    """Decode a complete attribute file held in memory.

    Args:
        buf: Raw file bytes.
        encoding: Text codec for names and values (default from settings).
        strict: Raise DbfFormatError instead of returning an empty table.

    Returns:
        The decoded table, or an empty table on a format violation.
    """
    try:
        return _decode(buf, encoding or settings.dbf_encoding)
    except DbfFormatError as e:
        if strict:
            raise
        logger.error(f"Error reading DBF data: {e}")
        return AttributeTable()


def read_dbf(path: str | Path, encoding: str | None = None) -> AttributeTable:
    """Read and decode a .dbf file; empty table on a format violation."""
    with open(path, "rb") as f:
        buf = f.read()
    return parse_dbf(buf, encoding)
