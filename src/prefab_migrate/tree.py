"""Projection of a flat prefab graph into a name-keyed node tree."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prefab_migrate.diagnostics import DiagnosticKind, Diagnostics, RootNotFound
from prefab_migrate.graph import (
    ID_KEY,
    TYPE_KEY,
    PrefabGraph,
    is_reference,
    make_reference,
)

logger = logging.getLogger(__name__)

ENGINE_TYPE_PREFIX = "cc."


@dataclass(frozen=True)
class RefValue:
    """A reference-valued field, kept as (kind of target, target slot)."""

    kind: str | None
    slot: int

    def to_reference(self) -> dict[str, int]:
        return make_reference(self.slot)


@dataclass
class ComponentInfo:
    """A component record as seen from the tree."""

    slot: int
    type_name: str
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> str:
        return component_kind(self.type_name)


@dataclass
class NodeInfo:
    """A node and its subtree; slots refer to the graph it was projected from."""

    slot: int
    name: str
    components: dict[str, ComponentInfo] = field(default_factory=dict)
    children: dict[str, NodeInfo] = field(default_factory=dict)
    active: bool | None = None
    position: dict[str, float] | None = None
    rotation: dict[str, float] | None = None
    euler: dict[str, float] | None = None
    scale: dict[str, float] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form used by the dump tool."""
        result: dict[str, Any] = {
            "slot": self.slot,
            "components": {
                kind: {"slot": comp.slot, "type": comp.type_name, "fields": _plain(comp.fields)}
                for kind, comp in self.components.items()
            },
            "children": {name: child.to_dict() for name, child in self.children.items()},
        }
        for key in ("active", "position", "rotation", "euler", "scale"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result


def _plain(value: Any) -> Any:
    if isinstance(value, RefValue):
        return {"kind": value.kind, "slot": value.slot}
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def component_kind(type_name: str) -> str:
    """Strip the engine prefix: ``cc.Sprite`` -> ``Sprite``; script ids pass through."""
    if type_name.startswith(ENGINE_TYPE_PREFIX):
        return type_name[len(ENGINE_TYPE_PREFIX):]
    return type_name


def _vector3(data: Any) -> dict[str, float] | None:
    if not isinstance(data, dict):
        return None
    return {
        "x": data.get("x") or 0,
        "y": data.get("y") or 0,
        "z": data.get("z") or 0,
    }


def _quaternion(data: Any) -> dict[str, float] | None:
    if not isinstance(data, dict):
        return None
    return {
        "x": data.get("x") or 0,
        "y": data.get("y") or 0,
        "z": data.get("z") or 0,
        "w": data["w"] if data.get("w") is not None else 1,
    }


class TreeProjector:
    """Builds a :class:`NodeInfo` tree from a :class:`PrefabGraph`."""

    def __init__(self, graph: PrefabGraph, diagnostics: Diagnostics | None = None) -> None:
        self.graph = graph
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self._nodes: dict[int, dict[str, Any]] = {}

    def project(self) -> dict[str, NodeInfo]:
        """Return ``{root_name: NodeInfo}``.

        Raises:
            RootNotFound: If every node has a resolvable parent.
        """
        self._build_tables()
        root_slot = self._find_root()
        root = self._nodes[root_slot]
        root_info = self._parse_node(root_slot, root, root.get("_name") or "Root", frozenset())
        return {root_info.name: root_info}

    def _build_tables(self) -> None:
        self._nodes = dict(self.graph.nodes())

    def _has_resolvable_parent(self, node: dict[str, Any]) -> bool:
        parent = node.get("_parent")
        return is_reference(parent) and parent[ID_KEY] in self._nodes

    def _find_root(self) -> int:
        candidates = [
            slot for slot, node in self._nodes.items()
            if not self._has_resolvable_parent(node)
        ]
        if not candidates:
            raise RootNotFound("Root node not found: every node has a resolvable parent")
        if len(candidates) > 1:
            self.diagnostics.add(
                DiagnosticKind.AMBIGUOUS_ROOT,
                f"{len(candidates)} nodes lack a parent (slots {candidates}); using slot {candidates[0]}",
            )
        return candidates[0]

    def _parse_node(
        self, slot: int, node: dict[str, Any], name: str, ancestors: frozenset[int]
    ) -> NodeInfo:
        info = NodeInfo(slot=slot, name=name)
        ancestors = ancestors | {slot}

        for comp_ref in node.get("_components") or []:
            if not is_reference(comp_ref):
                continue
            comp_slot = comp_ref[ID_KEY]
            component = self.graph.get(comp_slot)
            if not isinstance(component, dict) or not isinstance(component.get(TYPE_KEY), str):
                self.diagnostics.add(
                    DiagnosticKind.UNRESOLVED_REFERENCE,
                    f"component reference to slot {comp_slot} does not resolve",
                    path=name,
                )
                continue
            comp_info = self._parse_component(comp_slot, component)
            if comp_info.kind in info.components:
                logger.debug("Node %s has several %s components; keeping slot %d",
                             name, comp_info.kind, comp_slot)
            info.components[comp_info.kind] = comp_info

        for child_ref in node.get("_children") or []:
            if not is_reference(child_ref):
                continue
            child_slot = child_ref[ID_KEY]
            child = self._nodes.get(child_slot)
            if child is None or child_slot in ancestors:
                self.diagnostics.add(
                    DiagnosticKind.UNRESOLVED_REFERENCE,
                    f"child reference to slot {child_slot} does not resolve to a node",
                    path=name,
                )
                continue
            child_name = child.get("_name") or f"Node_{child_slot}"
            if child_name in info.children:
                self.diagnostics.add(
                    DiagnosticKind.DUPLICATE_SIBLING,
                    f"child name {child_name!r} repeats (slots {info.children[child_name].slot} "
                    f"and {child_slot}); the later one is kept",
                    path=name,
                )
            info.children[child_name] = self._parse_node(child_slot, child, child_name, ancestors)

        if "_active" in node:
            info.active = node["_active"]
        info.position = _vector3(node.get("_lpos"))
        info.rotation = _quaternion(node.get("_lrot"))
        info.euler = _vector3(node.get("_euler"))
        info.scale = _vector3(node.get("_lscale"))
        return info

    def _parse_component(self, slot: int, component: dict[str, Any]) -> ComponentInfo:
        fields: dict[str, Any] = {}
        for key, value in component.items():
            if key == TYPE_KEY:
                continue
            fields[key] = self._flatten(value)
        return ComponentInfo(slot=slot, type_name=component[TYPE_KEY], fields=fields)

    def _flatten(self, value: Any) -> Any:
        if is_reference(value):
            return self._resolve_reference(value[ID_KEY])
        if isinstance(value, list):
            return [self._resolve_reference(v[ID_KEY]) if is_reference(v) else v for v in value]
        return value

    def _resolve_reference(self, slot: int) -> RefValue:
        target = self.graph.get(slot)
        if target is None:
            self.diagnostics.add(
                DiagnosticKind.UNRESOLVED_REFERENCE,
                f"field reference to slot {slot} does not resolve",
            )
            return RefValue(kind=None, slot=slot)
        type_name = target.get(TYPE_KEY) if isinstance(target, dict) else None
        return RefValue(kind=type_name, slot=slot)


def project_tree(data: Any, diagnostics: Diagnostics | None = None) -> dict[str, NodeInfo]:
    """Project a parsed prefab array (or graph) into a tree.

    Raises:
        MalformedGraph: If *data* is not an array.
        RootNotFound: If no root node exists.
    """
    graph = PrefabGraph.from_records(data)
    return TreeProjector(graph, diagnostics).project()


def contains_reference(value: Any) -> bool:
    """True if *value* holds a reference at any depth, flattened or raw."""
    if isinstance(value, RefValue) or is_reference(value):
        return True
    if isinstance(value, dict):
        return any(contains_reference(v) for v in value.values())
    if isinstance(value, list):
        return any(contains_reference(v) for v in value)
    return False


def to_raw(value: Any) -> Any:
    """Turn flattened references back into ``{"__id__": slot}`` values."""
    if isinstance(value, RefValue):
        return value.to_reference()
    if isinstance(value, list):
        return [v.to_reference() if isinstance(v, RefValue) else v for v in value]
    return value
