"""Tests for LayerManager — registry, z-order, cloning, merging."""

import pytest

from shapelayer.attributes import AttributeTable, Column
from shapelayer.geometry import Point, Polyline
from shapelayer.layer import GeometryKind, Layer
from shapelayer.manager import LayerManager
from shapelayer.style import LayerStyle

pytestmark = pytest.mark.unit


def _stack(*names):
    manager = LayerManager()
    for name in names:
        manager.create_layer(name, GeometryKind.POINT)
    return manager


def _names(manager):
    return [layer.name for layer in manager.list_layers()]


def _point_layer(name, coords, labels=None, columns=("NAME",)):
    layer = Layer(name, GeometryKind.POINT)
    layer.add_features([Point(x, y) for x, y in coords])
    if labels is not None:
        table = AttributeTable([Column(c) for c in columns])
        for label in labels:
            table.add_row([label])
        layer.attribute_table = table
        layer.attribute_map = {i: i for i in range(len(labels))}
    return layer


class TestRegistration:
    """Names are unique and the index follows the list."""

    def test_duplicate_name_rejected(self):
        manager = LayerManager()
        assert manager.add_layer(Layer("roads", GeometryKind.LINE))
        assert manager.add_layer(Layer("roads", GeometryKind.POINT)) is False
        assert manager.layer_count == 1
        assert manager.get_layer("roads").kind is GeometryKind.LINE

    def test_create_layer_collision_returns_none(self):
        manager = _stack("a")
        assert manager.create_layer("a", GeometryKind.LINE) is None
        circle = manager.create_circle_layer("zones")
        assert circle.kind is GeometryKind.CIRCLE

    def test_remove_reindexes(self):
        manager = _stack("a", "b", "c")
        assert manager.remove_layer("a")
        assert manager.index_of("b") == 0
        assert manager.index_of("c") == 1
        assert manager.index_of("a") == -1
        assert manager.remove_layer("a") is False

    def test_remove_many(self):
        manager = _stack("a", "b", "c", "d")
        assert manager.remove_layers(["a", "x", "c"]) == 2
        assert _names(manager) == ["b", "d"]
        manager.get_layer("d").visible = False
        assert manager.remove_layers_where(lambda layer: not layer.visible) == 1
        assert _names(manager) == ["b"]
        manager.remove_all_layers()
        assert len(manager) == 0
        assert "b" not in manager

    def test_lookup(self):
        manager = _stack("Roads", "rivers", "Towns")
        manager.create_layer("roads_lines", GeometryKind.LINE)
        assert manager.get_layer_at(1).name == "rivers"
        assert manager.get_layer_at(9) is None
        assert [l.name for l in manager.get_layers_by_name_pattern("ROAD")] == [
            "Roads", "roads_lines",
        ]
        assert manager.get_layers_by_name_pattern("ROAD", ignore_case=False) == []
        assert [l.name for l in manager.get_layers_by_type(GeometryKind.LINE)] == ["roads_lines"]
        assert [l.name for l in manager] == _names(manager)


class TestZOrder:

    def test_move_up_swaps_with_lower_index(self):
        manager = _stack("a", "b", "c")
        assert manager.move_layer_up("c")
        assert _names(manager) == ["a", "c", "b"]
        assert manager.index_of("c") == 1

    def test_move_up_at_bottom_fails(self):
        manager = _stack("a", "b")
        assert manager.move_layer_up("a") is False
        assert manager.move_layer_up("missing") is False
        assert _names(manager) == ["a", "b"]

    def test_move_down(self):
        manager = _stack("a", "b", "c")
        assert manager.move_layer_down("a")
        assert _names(manager) == ["b", "a", "c"]
        assert manager.move_layer_down("c") is False

    def test_move_to_position(self):
        manager = _stack("a", "b", "c", "d")
        assert manager.move_layer_to_position("d", 0)
        assert _names(manager) == ["d", "a", "b", "c"]
        assert manager.index_of("c") == 3
        assert manager.move_layer_to_position("a", 4) is False
        assert manager.move_layer_to_position("b", 2)
        assert _names(manager) == ["d", "a", "b", "c"]


class TestVisibilityAndStyle:

    def test_visibility(self):
        manager = _stack("a", "b")
        manager.create_layer("l", GeometryKind.LINE)
        assert manager.set_layer_visibility("a", False)
        assert manager.set_layer_visibility("zz", False) is False
        assert manager.set_layer_visibility_by_type(GeometryKind.POINT, False) == 2
        assert manager.get_layer("l").visible
        manager.set_all_layers_visibility(True)
        assert all(layer.visible for layer in manager)

    def test_style_updates(self):
        manager = _stack("a")
        style = LayerStyle(color="#123456")
        assert manager.set_layer_style("a", style)
        assert manager.get_layer_style("a") is style
        assert manager.get_layer_style("zz") is None
        assert manager.set_layer_labels_visible("a", True, "NAME")
        assert style.show_labels and style.label_field == "NAME"
        assert manager.update_layer_opacity("a", 1.7)
        assert style.opacity == 1.0
        manager.update_layer_opacity("a", -0.2)
        assert style.opacity == 0.0


class TestClone:

    def test_clone_is_deep(self):
        """Editing the clone leaves the source untouched."""
        manager = LayerManager()
        manager.add_layer(_point_layer("src", [(0, 0), (1, 1)], labels=["A", "B"]))
        clone = manager.clone_layer("src", "copy")
        assert manager.index_of("copy") == 1
        assert [p.id for p in clone.features] == [0, 1]

        clone.get_feature_at(0).x = 50
        clone.attribute_table.set_value(0, "NAME", "Z")
        clone.attribute_map[1] = 0
        clone.style.color = "#ffffff"

        source = manager.get_layer("src")
        assert source.get_feature_at(0).x == 0.0
        assert source.attribute_table.get_value(0, "NAME") == "A"
        assert source.attribute_map == {0: 0, 1: 1}
        assert source.style.color != "#ffffff"

    def test_clone_failures(self):
        manager = _stack("a", "b")
        assert manager.clone_layer("missing", "c") is None
        assert manager.clone_layer("a", "b") is None
        assert manager.layer_count == 2


class TestMerge:
    """Merging same-kind layers into a new registered layer."""

    def test_merge_points_dense_ids(self):
        """Layers of 3 and 2 points merge into ids 0..4 in source order."""
        manager = LayerManager()
        manager.add_layer(_point_layer("a", [(0, 0), (1, 1), (2, 2)]))
        manager.add_layer(_point_layer("b", [(10, 10), (11, 11)]))
        merged = manager.merge_layers(["a", "b"], "ab")
        assert merged is not None
        assert [p.id for p in merged.features] == [0, 1, 2, 3, 4]
        assert [p.x for p in merged.features] == [0, 1, 2, 10, 11]
        assert merged.attribute_table is None
        assert manager.index_of("ab") == 2

    def test_merge_copies_geometry(self):
        manager = LayerManager()
        manager.add_layer(_point_layer("a", [(0, 0)]))
        merged = manager.merge_layers(["a"], "m")
        merged.get_feature_at(0).x = 9
        assert manager.get_layer("a").get_feature_at(0).x == 0.0

    def test_merge_attributes_follow_features(self):
        """Correlated features bring their rows; uncorrelated ones do not."""
        manager = LayerManager()
        a = _point_layer("a", [(0, 0), (1, 1)], labels=["A0", "A1"])
        a.attribute_map = {1: 1}
        manager.add_layer(a)
        manager.add_layer(_point_layer("b", [(5, 5)], labels=["B0"]))
        merged = manager.merge_layers(["a", "b"], "m")
        assert merged.attribute_map == {1: 0, 2: 1}
        assert merged.get_label_text(1) == ""  # label_field defaults to "Name"
        merged.style.label_field = "NAME"
        assert merged.get_label_text(1) == "A1"
        assert merged.get_label_text(2) == "B0"
        assert merged.get_label_text(0) == ""

    def test_merge_keeps_labels_after_rejected_cross_add(self):
        """A feature of one layer cannot be pushed into another."""
        manager = LayerManager()
        a = _point_layer("a", [(0, 0), (1, 1)], labels=["A0", "A1"])
        b = _point_layer("b", [(5, 5)], labels=["B0"])
        manager.add_layer(a)
        manager.add_layer(b)
        assert b.add_feature(a.get_feature_at(0)) is False
        assert [p.id for p in a.features] == [0, 1]

        merged = manager.merge_layers(["a", "b"], "m")
        merged.style.label_field = "NAME"
        assert [merged.get_label_text(i) for i in range(3)] == ["A0", "A1", "B0"]

    def test_merge_correlates_by_position(self):
        """A hand-edited feature id does not move attribute rows."""
        manager = LayerManager()
        a = _point_layer("a", [(0, 0), (1, 1)], labels=["A0", "A1"])
        a.get_feature_at(0).id = 99
        manager.add_layer(a)
        merged = manager.merge_layers(["a"], "m")
        assert merged.attribute_map == {0: 0, 1: 1}
        merged.style.label_field = "NAME"
        assert merged.get_label_text(0) == "A0"
        assert merged.get_label_text(1) == "A1"

    def test_merge_schema_from_first_table(self):
        """Columns missing from the first schema are dropped."""
        manager = LayerManager()
        manager.add_layer(_point_layer("plain", [(0, 0)]))
        manager.add_layer(_point_layer("a", [(1, 1)], labels=["A"]))
        b = _point_layer("b", [(2, 2)], labels=["B"], columns=("OTHER",))
        manager.add_layer(b)
        merged = manager.merge_layers(["plain", "a", "b"], "m")
        assert merged.attribute_table.column_names == ["NAME"]
        assert merged.attribute_table.get_row(1) == {"NAME": None}
        assert merged.attribute_map == {1: 0, 2: 1}

    def test_merge_rejects_mixed_kinds(self):
        manager = LayerManager()
        manager.add_layer(_point_layer("pts", [(0, 0)]))
        lines = manager.create_layer("lines", GeometryKind.LINE)
        lines.add_line(Polyline([Point(0, 0), Point(1, 1)]))
        assert manager.merge_layers(["pts", "lines"], "m") is None
        assert "m" not in manager

    def test_merge_failures(self):
        manager = _stack("a", "b")
        assert manager.merge_layers(["a"], "b") is None
        assert manager.merge_layers(["x", "y"], "m") is None

    def test_merge_skips_unknown_names(self):
        manager = LayerManager()
        manager.add_layer(_point_layer("a", [(0, 0), (1, 1)]))
        merged = manager.merge_layers(["a", "missing"], "m")
        assert merged.count == 2


class TestAggregates:

    def test_counts_and_bounds(self, manager, point_layer):
        lines = manager.create_layer("lines", GeometryKind.LINE)
        lines.add_line(Polyline([Point(-5, -5), Point(0, 1)]))
        assert manager.count_total_features() == 5
        assert manager.count_features_by_type(GeometryKind.POINT) == 4
        assert manager.calculate_visible_bounds().as_tuple() == (-5, -5, 3, 3)
        manager.set_layer_visibility("lines", False)
        assert manager.calculate_visible_bounds().as_tuple() == (0, 0, 3, 3)
        manager.set_all_layers_visibility(False)
        assert manager.calculate_visible_bounds() is None

    def test_summary(self, manager, point_layer):
        text = manager.summary()
        assert text.startswith("Layer Manager - 1 layers")
        assert "- points (Point): 4 features, Visible: True" in text
