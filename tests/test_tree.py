"""Tests for projecting a flat prefab graph into a node tree."""

import pytest

from prefab_migrate.diagnostics import DiagnosticKind, Diagnostics, MalformedGraph, RootNotFound
from prefab_migrate.graph import PrefabGraph
from prefab_migrate.tree import (
    RefValue,
    TreeProjector,
    component_kind,
    contains_reference,
    project_tree,
    to_raw,
)
from prefab_factory import PrefabBuilder, ref


@pytest.fixture
def button_prefab():
    b = PrefabBuilder()
    root = b.node("Root", _lpos={"__type__": "cc.Vec3", "x": 1, "y": 2, "z": 0})
    b.component(root, "cc.UITransform", _contentSize={"width": 200, "height": 80})
    button = b.node("Button", parent=root, _active=False)
    label = b.node("Label", parent=button)
    b.component(label, "cc.Label", _string="OK", _fontSize=20)
    b.component(button, "cc.Button", _target=ref(button), clickEvents=[])
    return b.build()


class TestComponentKind:
    def test_engine_prefix_stripped(self):
        assert component_kind("cc.Sprite") == "Sprite"

    def test_script_id_unchanged(self):
        assert component_kind("25f8fxwtsZCT7yF0lzyt5zU") == "25f8fxwtsZCT7yF0lzyt5zU"


class TestProjection:
    def test_root(self, button_prefab):
        tree = project_tree(button_prefab)
        assert list(tree) == ["Root"]
        root = tree["Root"]
        assert root.slot == 1
        assert root.position == {"x": 1, "y": 2, "z": 0}

    def test_children_and_components(self, button_prefab):
        root = project_tree(button_prefab)["Root"]
        assert list(root.components) == ["UITransform"]
        assert root.components["UITransform"].slot == 2
        button = root.children["Button"]
        assert button.slot == 3
        assert button.active is False
        label = button.children["Label"]
        assert label.components["Label"].fields["_string"] == "OK"
        assert label.components["Label"].type_name == "cc.Label"

    def test_reference_fields_flattened(self, button_prefab):
        button = project_tree(button_prefab)["Root"].children["Button"]
        fields = button.components["Button"].fields
        assert fields["_target"] == RefValue(kind="cc.Node", slot=3)
        assert fields["node"] == RefValue(kind="cc.Node", slot=3)
        assert fields["clickEvents"] == []

    def test_reference_list_flattened(self):
        b = PrefabBuilder()
        root = b.node("Root")
        event = b.add({"__type__": "cc.ClickEvent", "handler": "onClick"})
        b.component(root, "cc.Button", clickEvents=[ref(event)])
        fields = project_tree(b.build())["Root"].components["Button"].fields
        assert fields["clickEvents"] == [RefValue(kind="cc.ClickEvent", slot=event)]

    def test_idempotent(self, button_prefab):
        assert project_tree(button_prefab) == project_tree(button_prefab)

    def test_does_not_modify_records(self, button_prefab):
        before = repr(button_prefab)
        project_tree(button_prefab)
        assert repr(button_prefab) == before

    def test_missing_names(self):
        b = PrefabBuilder()
        root = b.node(None)
        b.node("", parent=root)
        tree = project_tree(b.build())
        assert list(tree) == ["Root"]
        assert list(tree["Root"].children) == ["Node_2"]

    def test_transform_defaults(self):
        b = PrefabBuilder()
        b.node("Root", _lrot={"x": None, "y": 0, "z": 0}, _lscale={"x": 2, "y": 2})
        root = project_tree(b.build())["Root"]
        assert root.rotation == {"x": 0, "y": 0, "z": 0, "w": 1}
        assert root.scale == {"x": 2, "y": 2, "z": 0}
        assert root.euler is None

    def test_to_dict(self, button_prefab):
        data = project_tree(button_prefab)["Root"].children["Button"].to_dict()
        assert data["slot"] == 3
        assert data["active"] is False
        assert data["components"]["Button"]["fields"]["_target"] == {"kind": "cc.Node", "slot": 3}
        assert "Label" in data["children"]


class TestProjectionErrors:
    def test_not_a_list(self):
        with pytest.raises(MalformedGraph):
            project_tree({"data": []})

    def test_no_nodes(self):
        with pytest.raises(RootNotFound):
            project_tree([{"__type__": "cc.Prefab"}])

    def test_every_node_has_a_parent(self):
        records = [
            {"__type__": "cc.Node", "_name": "A", "_parent": ref(1), "_children": [ref(1)]},
            {"__type__": "cc.Node", "_name": "B", "_parent": ref(0), "_children": [ref(0)]},
        ]
        with pytest.raises(RootNotFound):
            project_tree(records)

    def test_unresolved_parent_makes_root(self):
        records = [
            {"__type__": "cc.Node", "_name": "Orphan", "_parent": ref(9)},
        ]
        assert list(project_tree(records)) == ["Orphan"]


class TestDiagnostics:
    def test_missing_component_skipped(self):
        b = PrefabBuilder()
        root = b.node("Root")
        b.records[root]["_components"].append(ref(42))
        diagnostics = Diagnostics()
        tree = project_tree(b.build(), diagnostics)
        assert tree["Root"].components == {}
        assert diagnostics.count(DiagnosticKind.UNRESOLVED_REFERENCE) == 1

    def test_missing_child_skipped(self):
        b = PrefabBuilder()
        root = b.node("Root")
        b.records[root]["_children"].append(ref(42))
        diagnostics = Diagnostics()
        tree = project_tree(b.build(), diagnostics)
        assert tree["Root"].children == {}
        assert diagnostics.count(DiagnosticKind.UNRESOLVED_REFERENCE) == 1

    def test_dangling_field_reference(self):
        b = PrefabBuilder()
        root = b.node("Root")
        b.component(root, "cc.Button", _target=ref(50))
        diagnostics = Diagnostics()
        fields = project_tree(b.build(), diagnostics)["Root"].components["Button"].fields
        assert fields["_target"] == RefValue(kind=None, slot=50)
        assert diagnostics.count(DiagnosticKind.UNRESOLVED_REFERENCE) == 1

    def test_child_cycle_is_cut(self):
        b = PrefabBuilder()
        root = b.node("Root")
        child = b.node("Child", parent=root)
        b.records[child]["_children"].append(ref(root))
        diagnostics = Diagnostics()
        tree = project_tree(b.build(), diagnostics)
        assert tree["Root"].children["Child"].children == {}
        assert diagnostics.count(DiagnosticKind.UNRESOLVED_REFERENCE) == 1

    def test_ambiguous_root_first_wins(self):
        b = PrefabBuilder()
        b.node("First")
        b.node("Second")
        diagnostics = Diagnostics()
        tree = TreeProjector(PrefabGraph.from_records(b.build()), diagnostics).project()
        assert list(tree) == ["First"]
        assert diagnostics.count(DiagnosticKind.AMBIGUOUS_ROOT) == 1

    def test_duplicate_sibling_names_last_wins(self):
        # Sibling names are not disambiguated: the later node shadows the earlier one
        b = PrefabBuilder()
        root = b.node("Root")
        b.node("Item", parent=root)
        second = b.node("Item", parent=root)
        diagnostics = Diagnostics()
        tree = project_tree(b.build(), diagnostics)
        assert list(tree["Root"].children) == ["Item"]
        assert tree["Root"].children["Item"].slot == second
        assert diagnostics.count(DiagnosticKind.DUPLICATE_SIBLING) == 1


class TestReferenceHelpers:
    def test_contains_reference(self):
        assert contains_reference(RefValue("cc.Node", 1))
        assert contains_reference([1, RefValue(None, 2)])
        assert contains_reference({"nested": {"__id__": 3}})
        assert not contains_reference({"r": 255, "g": 0, "b": 0, "a": 255})
        assert not contains_reference("text")

    def test_to_raw(self):
        assert to_raw(RefValue("cc.Node", 4)) == {"__id__": 4}
        assert to_raw([RefValue(None, 1), 5]) == [{"__id__": 1}, 5]
        assert to_raw(7) == 7
