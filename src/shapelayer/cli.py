"""Command-line entry point.

Usage:
    python -m shapelayer summary roads.shp parcels.shp
    python -m shapelayer inspect parcels.shp --rows 5
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger

from shapelayer.config import settings
from shapelayer.importer import import_shapefile
from shapelayer.manager import LayerManager
from shapelayer.parsers.dbf import read_dbf
from shapelayer.parsers.shp import read_shp, shape_type_name


def _configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def cmd_summary(args: argparse.Namespace) -> int:
    manager = LayerManager()
    failures = 0
    for path in args.files:
        try:
            import_shapefile(path, manager)
        except (OSError, ValueError) as e:
            logger.error(f"{path}: {e}")
            failures += 1
    print(manager.summary())
    return 1 if failures else 0


def cmd_inspect(args: argparse.Namespace) -> int:
    shp_path = Path(args.file).with_suffix(".shp")
    data = read_shp(shp_path)
    header = data.header
    box = header.bbox
    print(f"File: {shp_path}")
    print(f"Shape type: {shape_type_name(header.shape_type)} ({header.shape_type})")
    print(f"Declared length: {header.file_length} bytes")
    print(f"Bounds: {box.min_x}, {box.min_y} .. {box.max_x}, {box.max_y}")
    print(
        f"Records: {data.record_count} ({data.null_records} null) -> "
        f"{len(data.points)} points, {len(data.lines)} lines, {len(data.polygons)} polygons"
    )
    for warning in data.warnings:
        print(f"  warning: {warning}")

    dbf_path = shp_path.with_suffix(".dbf")
    if not dbf_path.is_file():
        print("No attribute file")
        return 0
    table = read_dbf(dbf_path)
    print(f"Attributes: {table.row_count} rows")
    for column in table.columns:
        print(f"  {column.name}: {column.type.value}")
    for index, row in enumerate(table.iter_rows()):
        if index >= args.rows:
            break
        print(f"  [{index}] {row}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="shapelayer", description="Inspect and summarise ESRI shapefiles"
    )
    parser.add_argument(
        "--log-level", default=settings.log_level,
        help="Log level for stderr output",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_summary = sub.add_parser("summary", help="Import files and print a layer summary")
    p_summary.add_argument("files", nargs="+", help=".shp files")
    p_summary.set_defaults(func=cmd_summary)

    p_inspect = sub.add_parser("inspect", help="Print header, schema and first rows")
    p_inspect.add_argument("file", help=".shp file")
    p_inspect.add_argument("--rows", type=int, default=5, help="Attribute rows to show")
    p_inspect.set_defaults(func=cmd_inspect)

    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    try:
        return args.func(args)
    except (OSError, ValueError) as e:
        logger.error(str(e))
        return 1
