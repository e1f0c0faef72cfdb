"""Import pipeline — shapefile pair (.shp + .dbf) into a registered Layer.

Reads both files, picks the layer kind from the header shape type, fills the
layer, attaches the attribute table with the geometry -> row correlation, and
chooses a default label field. Nothing is registered in the manager unless
the whole import succeeds.
"""

from __future__ import annotations

import random
from pathlib import Path

from loguru import logger

from shapelayer.attributes import AttributeTable, ColumnType
from shapelayer.config import settings
from shapelayer.layer import GeometryKind, Layer
from shapelayer.manager import LayerManager
from shapelayer.parsers.dbf import read_dbf
from shapelayer.parsers.shp import (
    ShapeFamily,
    read_shape_type,
    read_shp,
    shape_family,
    shape_type_name,
)
from shapelayer.style import LayerStyle, line_style, point_style, polygon_style


class UnsupportedShapeTypeError(ValueError):
    """The file's declared shape type has no matching layer kind."""


_KINDS: dict[ShapeFamily, GeometryKind] = {
    ShapeFamily.POINT: GeometryKind.POINT,
    ShapeFamily.MULTIPOINT: GeometryKind.POINT,
    ShapeFamily.POLYLINE: GeometryKind.LINE,
    ShapeFamily.POLYGON: GeometryKind.POLYGON,
}


def layer_kind_for(shape_type: int) -> GeometryKind | None:
    """Layer kind for a shapefile shape-type code, None if unsupported."""
    family = shape_family(shape_type)
    return _KINDS.get(family) if family is not None else None


def find_label_field(
    table: AttributeTable | None, patterns: list[str] | None = None
) -> str | None:
    """Pick a column to label features with.

    Tries each pattern in order as a case-insensitive substring of the
    column names, then the first text column, then the first column.
    """
    if table is None or table.column_count == 0:
        return None
    patterns = patterns if patterns is not None else settings.label_field_patterns
    names = table.column_names
    for pattern in patterns:
        needle = pattern.lower()
        for name in names:
            if needle in name.lower():
                return name
    for column in table.columns:
        if column.type is ColumnType.TEXT:
            return column.name
    return names[0]


def style_for_shape_type(shape_type: int, color: str, enable_labels: bool = True) -> LayerStyle:
    """Default style matching a shape-type code."""
    kind = layer_kind_for(shape_type)
    if kind is GeometryKind.POINT:
        style = point_style(color, 6.0)
    elif kind is GeometryKind.LINE:
        style = line_style(color, 1.5)
    elif kind is GeometryKind.POLYGON:
        style = polygon_style(color, "#000000", opacity=0.5)
    else:
        style = LayerStyle(color=color)
    style.show_labels = enable_labels
    return style


def _companion_paths(path: str | Path) -> tuple[Path, Path, Path]:
    base = Path(path)
    if base.suffix.lower() in (".shp", ".dbf", ".shx"):
        base = base.with_suffix("")
    return (
        base.with_name(base.name + ".shp"),
        base.with_name(base.name + ".dbf"),
        base.with_name(base.name + ".shx"),
    )


def import_shapefile(
    path: str | Path,
    manager: LayerManager,
    layer_name: str | None = None,
    *,
    style: LayerStyle | None = None,
    label_field: str | None = None,
    enable_labels: bool = True,
) -> Layer | None:
    """Import a shapefile pair into a new layer registered in ``manager``.

    Args:
        path: Path to the .shp file (the extension may be omitted).
        manager: Registry the new layer is added to.
        layer_name: Layer name; defaults to the file stem.
        style: Style to use instead of the kind default.
        label_field: Label column, applied only if the table has it.
        enable_labels: Turn labels on when attributes are attached.

    Returns:
        The registered Layer, or None if ``layer_name`` is already taken.

    Raises:
        FileNotFoundError: if the .shp or .dbf file (or, when
            ``settings.require_index_file`` is set, the .shx) is missing.
        UnsupportedShapeTypeError: if the header shape type is not a
            point, multipoint, polyline or polygon variant.
        ShapefileError: if the geometry header is unreadable.
    """
    shp_path, dbf_path, shx_path = _companion_paths(path)
    if not shp_path.is_file():
        raise FileNotFoundError(f"Shape file not found: {shp_path}")
    if not dbf_path.is_file():
        raise FileNotFoundError(f"DBF file not found: {dbf_path}")
    if settings.require_index_file and not shx_path.is_file():
        raise FileNotFoundError(f"SHX file not found: {shx_path}")

    name = layer_name or shp_path.stem
    if name in manager:
        logger.warning(f"Layer {name} already exists; import of {shp_path} skipped")
        return None

    table = read_dbf(dbf_path)
    data = read_shp(shp_path)

    family = shape_family(data.shape_type)
    kind = layer_kind_for(data.shape_type)
    if family is None or kind is None:
        raise UnsupportedShapeTypeError(
            f"Shape type {shape_type_name(data.shape_type)} is not supported"
        )

    layer = Layer(name, kind, style)
    layer.add_features(data.geometries_for(family))

    if table.row_count > 0:
        layer.attribute_table = table
        layer.attribute_map = {
            geometry: row
            for geometry, row in data.rows_for(family).items()
            if 0 <= row < table.row_count
        }
        if label_field and table.has_column(label_field):
            layer.style.label_field = label_field
        else:
            default_field = find_label_field(table)
            if default_field:
                layer.style.label_field = default_field
        layer.style.show_labels = enable_labels

    manager.add_layer(layer)
    logger.info(
        f"Imported layer {name}: {layer.count} {kind.value.lower()} features, "
        f"{table.row_count} attribute rows"
    )
    return layer


def import_directory(
    manager: LayerManager,
    directory: str | Path,
    pattern: str = "*.shp",
    recursive: bool = False,
    enable_labels: bool = True,
) -> int:
    """Import every shapefile in ``directory`` matching ``pattern``.

    Each layer is named after its file and gets a colour derived from that
    name. Files that fail are logged and skipped.

    Returns:
        Number of layers imported.
    """
    root = Path(directory)
    files = sorted(root.rglob(pattern) if recursive else root.glob(pattern))
    imported = 0
    for shp_file in files:
        name = shp_file.stem
        rng = random.Random(name)
        color = "#{:02x}{:02x}{:02x}".format(
            rng.randint(50, 199), rng.randint(50, 199), rng.randint(50, 199)
        )
        style = style_for_shape_type(read_shape_type(shp_file), color, enable_labels)
        try:
            layer = import_shapefile(
                shp_file, manager, name, style=style, enable_labels=enable_labels
            )
        except (OSError, ValueError) as e:
            logger.warning(f"Error importing shapefile {shp_file}: {e}")
            continue
        if layer is not None:
            imported += 1
    return imported
