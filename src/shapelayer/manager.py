"""LayerManager — ordered registry of named layers.

Layer order is z-order: index 0 is drawn first. Names are unique and the
name -> position index is rebuilt after every structural change. Failed
operations return False/None and leave the registry untouched.
"""

from __future__ import annotations

from typing import Callable, Iterable

from loguru import logger

from shapelayer.attributes import AttributeTable
from shapelayer.geometry import BoundingBox
from shapelayer.layer import GeometryKind, Layer
from shapelayer.style import LayerStyle


class LayerManager:
    """Registry of map layers in drawing order."""

    def __init__(self) -> None:
        self._layers: list[Layer] = []
        self._indices: dict[str, int] = {}

    def _reindex(self) -> None:
        self._indices = {layer.name: i for i, layer in enumerate(self._layers)}

    # -- registration --

    def add_layer(self, layer: Layer) -> bool:
        """Register a layer on top of the stack.

        Returns:
            False if a layer with the same name is already registered.
        """
        if layer.name in self._indices:
            return False
        self._layers.append(layer)
        self._indices[layer.name] = len(self._layers) - 1
        return True

    def create_layer(
        self, name: str, kind: GeometryKind, style: LayerStyle | None = None
    ) -> Layer | None:
        """Create and register an empty layer; None on a name collision."""
        layer = Layer(name, kind, style)
        return layer if self.add_layer(layer) else None

    def create_circle_layer(self, name: str, style: LayerStyle | None = None) -> Layer | None:
        return self.create_layer(name, GeometryKind.CIRCLE, style)

    def remove_layer(self, name: str) -> bool:
        index = self._indices.get(name)
        if index is None:
            return False
        del self._layers[index]
        self._reindex()
        return True

    def remove_layers(self, names: Iterable[str]) -> int:
        """Remove each named layer; returns how many were removed."""
        return sum(1 for name in list(names) if self.remove_layer(name))

    def remove_layers_where(self, predicate: Callable[[Layer], bool]) -> int:
        doomed = [layer.name for layer in self._layers if predicate(layer)]
        return self.remove_layers(doomed)

    def remove_all_layers(self) -> None:
        self._layers.clear()
        self._indices.clear()

    # -- lookup --

    def get_layer(self, name: str) -> Layer | None:
        index = self._indices.get(name)
        return self._layers[index] if index is not None else None

    def get_layer_at(self, index: int) -> Layer | None:
        if 0 <= index < len(self._layers):
            return self._layers[index]
        return None

    def index_of(self, name: str) -> int:
        """Stack position of ``name``, or -1."""
        return self._indices.get(name, -1)

    def list_layers(self) -> list[Layer]:
        """All layers in drawing order."""
        return list(self._layers)

    def get_layers_by_name_pattern(self, pattern: str, ignore_case: bool = True) -> list[Layer]:
        if ignore_case:
            needle = pattern.casefold()
            return [l for l in self._layers if needle in l.name.casefold()]
        return [l for l in self._layers if pattern in l.name]

    def get_layers_by_type(self, kind: GeometryKind) -> list[Layer]:
        return [l for l in self._layers if l.kind is kind]

    @property
    def layer_count(self) -> int:
        return len(self._layers)

    def __len__(self) -> int:
        return len(self._layers)

    def __contains__(self, name: object) -> bool:
        return name in self._indices

    def __iter__(self):
        return iter(list(self._layers))

    # -- z-order --

    def move_layer_up(self, name: str) -> bool:
        """Swap the layer with the one below it in the stack (index - 1)."""
        index = self._indices.get(name)
        if index is None or index <= 0:
            return False
        self._layers[index - 1], self._layers[index] = self._layers[index], self._layers[index - 1]
        self._reindex()
        return True

    def move_layer_down(self, name: str) -> bool:
        """Swap the layer with the one above it in the stack (index + 1)."""
        index = self._indices.get(name)
        if index is None or index >= len(self._layers) - 1:
            return False
        self._layers[index + 1], self._layers[index] = self._layers[index], self._layers[index + 1]
        self._reindex()
        return True

    def move_layer_to_position(self, name: str, position: int) -> bool:
        index = self._indices.get(name)
        if index is None or not 0 <= position < len(self._layers):
            return False
        if index == position:
            return True
        layer = self._layers.pop(index)
        self._layers.insert(position, layer)
        self._reindex()
        return True

    # -- visibility --

    def set_layer_visibility(self, name: str, visible: bool) -> bool:
        layer = self.get_layer(name)
        if layer is None:
            return False
        layer.visible = visible
        return True

    def set_all_layers_visibility(self, visible: bool) -> None:
        for layer in self._layers:
            layer.visible = visible

    def set_layer_visibility_by_type(self, kind: GeometryKind, visible: bool) -> int:
        changed = 0
        for layer in self._layers:
            if layer.kind is kind:
                layer.visible = visible
                changed += 1
        return changed

    # -- style --

    def set_layer_style(self, name: str, style: LayerStyle) -> bool:
        layer = self.get_layer(name)
        if layer is None:
            return False
        layer.style = style
        return True

    def get_layer_style(self, name: str) -> LayerStyle | None:
        layer = self.get_layer(name)
        return layer.style if layer is not None else None

    def set_layer_labels_visible(
        self, name: str, visible: bool, label_field: str | None = None
    ) -> bool:
        layer = self.get_layer(name)
        if layer is None or layer.style is None:
            return False
        layer.style.show_labels = visible
        if label_field is not None:
            layer.style.label_field = label_field
        return True

    def update_layer_opacity(self, name: str, opacity: float) -> bool:
        layer = self.get_layer(name)
        if layer is None or layer.style is None:
            return False
        layer.style.opacity = max(0.0, min(1.0, opacity))
        return True

    # -- derivation --

    def clone_layer(self, source_name: str, new_name: str) -> Layer | None:
        """Register a deep copy of a layer under a new name.

        Geometries, style, attribute table and correlation map are all
        copied; the clone shares nothing with its source.
        """
        source = self.get_layer(source_name)
        if source is None or new_name in self._indices:
            return None
        clone = Layer(new_name, source.kind, source.style.copy())
        clone.visible = source.visible
        clone.add_features(g.copy() for g in source.features)
        if source.attribute_table is not None:
            clone.attribute_table = source.attribute_table.copy()
            clone.attribute_map = dict(source.attribute_map)
        self.add_layer(clone)
        logger.debug(f"Cloned layer {source_name} -> {new_name} ({clone.count} features)")
        return clone

    def merge_layers(self, names: Iterable[str], new_name: str) -> Layer | None:
        """Concatenate same-kind layers into a new registered layer.

        Features keep source-list order and get ids 0..n-1. The merged
        attribute table takes its schema from the first source that has
        one; each correlated feature contributes one row with the columns
        its own table shares with that schema. Unknown names are skipped.

        Returns:
            None if ``new_name`` is taken, no source exists, or the sources
            mix geometry kinds.
        """
        if new_name in self._indices:
            return None
        sources = [layer for layer in (self.get_layer(n) for n in names) if layer is not None]
        if not sources:
            return None
        kind = sources[0].kind
        if any(layer.kind is not kind for layer in sources):
            logger.warning(f"Cannot merge into {new_name}: source layers mix geometry kinds")
            return None

        merged = Layer(new_name, kind, sources[0].style.copy())
        table: AttributeTable | None = None
        for layer in sources:
            if layer.attribute_table is not None:
                table = layer.attribute_table.copy_schema()
                break

        mapping: dict[int, int] = {}
        features = []
        for layer in sources:
            for position, geometry in enumerate(layer.features):
                src_row = layer.attribute_map.get(position)
                if (
                    table is not None
                    and layer.attribute_table is not None
                    and src_row is not None
                    and 0 <= src_row < layer.attribute_table.row_count
                ):
                    mapping[len(features)] = table.add_row(layer.attribute_table.get_row(src_row))
                features.append(geometry.copy())

        merged.add_features(features)
        if table is not None and mapping:
            merged.attribute_table = table
            merged.attribute_map = mapping
        self.add_layer(merged)
        logger.debug(f"Merged {len(sources)} layers into {new_name} ({merged.count} features)")
        return merged

    # -- aggregates --

    def count_total_features(self) -> int:
        return sum(layer.count for layer in self._layers)

    def count_features_by_type(self, kind: GeometryKind) -> int:
        return sum(layer.count for layer in self._layers if layer.kind is kind)

    def calculate_visible_bounds(self) -> BoundingBox | None:
        """Union of the bounds of every visible, non-empty layer."""
        box = BoundingBox()
        for layer in self._layers:
            if layer.visible:
                box.expand_to_include(layer.calculate_bounds())
        return None if box.is_empty else box

    def summary(self) -> str:
        lines = [f"Layer Manager - {len(self._layers)} layers"]
        for layer in self._layers:
            lines.append(
                f"- {layer.name} ({layer.kind.value}): {layer.count} features, "
                f"Visible: {layer.visible}"
            )
            if layer.kind is GeometryKind.LINE:
                lines.append(f"  Total Length: {layer.calculate_total_length():.2f}")
            elif layer.kind in (GeometryKind.POLYGON, GeometryKind.CIRCLE):
                lines.append(f"  Total Area: {layer.calculate_total_area():.2f}")
            if layer.attribute_table is not None:
                table = layer.attribute_table
                lines.append(
                    f"  Attributes: {table.column_count} columns, {table.row_count} rows"
                )
        return "\n".join(lines)
