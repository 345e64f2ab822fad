"""Tests for applying migration instructions to a graph."""

import re

import pytest

from prefab_migrate.applier import ApplyResult, InstructionApplier
from prefab_migrate.diagnostics import DiagnosticKind, Diagnostics
from prefab_migrate.graph import PrefabGraph
from prefab_migrate.instructions import (
    CopyFieldsToComponent,
    RedirectFieldToComponent,
    RedirectFieldToNode,
    RemoveComponent,
    ReplaceComponentType,
    ReplaceStringGlobally,
)
from prefab_factory import PrefabBuilder


@pytest.fixture
def graph():
    b = PrefabBuilder()
    root = b.node("Root")                                   # 1
    b.component(root, "cc.UITransform", _anchorPoint=0.5)   # 2
    b.component(root, "cc.Sprite", _type=0)                 # 3
    b.component(root, "cc.UIOpacity", _opacity=255)         # 4
    return PrefabGraph.from_records(b.build())


@pytest.fixture
def applier():
    return InstructionApplier(Diagnostics())


class TestApply:
    def test_redirect_to_node(self, graph, applier):
        result = applier.apply(graph, [RedirectFieldToNode(1, "_opacity", 200, "UIOpacity._opacity")])
        assert result == ApplyResult(applied=1, skipped=0)
        assert graph.get(1)["_opacity"] == 200

    def test_redirect_to_node_requires_node(self, graph, applier):
        result = applier.apply(graph, [RedirectFieldToNode(3, "_opacity", 200, "UIOpacity._opacity")])
        assert result == ApplyResult(applied=0, skipped=1)
        assert "_opacity" not in graph.get(3)

    def test_redirect_to_component(self, graph, applier):
        applier.apply(graph, [RedirectFieldToComponent(3, "_N$type", 1, "Sprite._type", "Sprite")])
        assert graph.get(3)["_N$type"] == 1

    def test_copy_fields(self, graph, applier):
        applier.apply(graph, [CopyFieldsToComponent(3, "Sprite", (("_type", 2), ("_sizeMode", 1)))])
        assert graph.get(3)["_type"] == 2
        assert graph.get(3)["_sizeMode"] == 1

    def test_missing_slot_is_noop(self, graph, applier):
        graph.delete(3)
        result = applier.apply(graph, [
            RedirectFieldToComponent(3, "_type", 1, "Sprite._type"),
            CopyFieldsToComponent(99, "Sprite", (("_type", 2),)),
            RedirectFieldToNode(42, "_opacity", 1, "UIOpacity._opacity"),
        ])
        assert result == ApplyResult(applied=0, skipped=3)

    def test_values_are_copied(self, graph, applier):
        color = {"r": 255, "g": 0, "b": 0, "a": 255}
        applier.apply(graph, [
            RedirectFieldToNode(1, "_color", color, "Sprite._color"),
            RedirectFieldToComponent(3, "_color", color, "Sprite._color"),
        ])
        graph.get(1)["_color"]["r"] = 0
        assert graph.get(3)["_color"]["r"] == 255
        assert color["r"] == 255

    def test_other_instructions_rejected(self, graph, applier):
        with pytest.raises(ValueError, match="dedicated pass"):
            applier.apply(graph, [ReplaceStringGlobally("a", "b")])

    def test_unknown_instruction(self, graph, applier):
        with pytest.raises(ValueError, match="Unknown instruction type"):
            applier.apply(graph, ["not an instruction"])

    def test_result_addition(self):
        assert ApplyResult(1, 2) + ApplyResult(3, 4) == ApplyResult(4, 6)


class TestTypeReplacement:
    def test_replace(self, graph, applier):
        instruction = ReplaceComponentType(1, 3, "Sprite", "8bab74MA4BJHLZvsr73VlfC", {"_mode": 3}, "Root")
        result = applier.apply_type_replacements(graph, [instruction])
        assert result.applied == 1
        assert graph.get(3)["__type__"] == "8bab74MA4BJHLZvsr73VlfC"
        assert graph.get(3)["_mode"] == 3
        assert graph.get(3)["_type"] == 0

    def test_missing_component(self, graph):
        diagnostics = Diagnostics()
        applier = InstructionApplier(diagnostics)
        graph.delete(3)
        result = applier.apply_type_replacements(
            graph, [ReplaceComponentType(1, 3, "Sprite", "X", {}, "Root")]
        )
        assert result == ApplyResult(applied=0, skipped=1)
        assert diagnostics.count(DiagnosticKind.SKIPPED_INSTRUCTION) == 1


class TestRemovals:
    def test_remove_by_descending_position(self, graph, applier):
        removals = [
            RemoveComponent(1, 2, "UITransform", position=0, path="Root"),
            RemoveComponent(1, 4, "UIOpacity", position=2, path="Root"),
        ]
        result = applier.apply_removals(graph, removals)
        assert result.applied == 2
        assert graph.get(1)["_components"] == [{"__id__": 3}]
        assert not graph.is_live(2)
        assert not graph.is_live(4)
        assert graph.is_live(3)

    def test_stale_position_falls_back_to_search(self, graph, applier):
        result = applier.apply_removals(graph, [RemoveComponent(1, 4, "UIOpacity", position=0, path="Root")])
        assert result.applied == 1
        assert graph.get(1)["_components"] == [{"__id__": 2}, {"__id__": 3}]

    def test_node_missing(self, graph):
        diagnostics = Diagnostics()
        applier = InstructionApplier(diagnostics)
        result = applier.apply_removals(graph, [RemoveComponent(9, 4, "UIOpacity", position=0)])
        assert result.skipped == 1
        assert graph.is_live(4)
        assert diagnostics.count(DiagnosticKind.SKIPPED_INSTRUCTION) == 1

    def test_already_removed(self, graph, applier):
        removal = RemoveComponent(1, 4, "UIOpacity", position=2, path="Root")
        applier.apply_removals(graph, [removal])
        result = applier.apply_removals(graph, [removal])
        assert result == ApplyResult(applied=0, skipped=1)


class TestDescribe:
    def test_describe_strings(self):
        assert RedirectFieldToNode(1, "_opacity", 1, "UIOpacity._opacity").describe() == (
            "UIOpacity._opacity -> Node[1]._opacity"
        )
        assert ReplaceStringGlobally(re.compile("a+"), "b").describe() == "/a+/ -> 'b'"
        assert ReplaceStringGlobally(re.compile("a+"), "b").is_pattern
        assert not ReplaceStringGlobally("a", "b").is_pattern
