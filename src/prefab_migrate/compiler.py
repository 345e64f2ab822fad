"""Migration compiler: turns matched source/target trees into instructions.

Planning never touches a graph record. Every method returns a list of
instruction values that :class:`prefab_migrate.applier.InstructionApplier`
executes later, so a plan can be printed or inspected before it is applied.
"""

from __future__ import annotations

import logging
from typing import Any

from prefab_migrate.config import MigrationConfig, TransformRule
from prefab_migrate.diagnostics import DiagnosticKind, Diagnostics, RootNotFound
from prefab_migrate.graph import ID_KEY, PrefabGraph, is_reference
from prefab_migrate.instructions import (
    CopyFieldsToComponent,
    FieldInstruction,
    RedirectFieldToComponent,
    RedirectFieldToNode,
    RemoveComponent,
    ReplaceComponentType,
)
from prefab_migrate.paths import build_path_map, matched_paths
from prefab_migrate.tree import ComponentInfo, NodeInfo, TreeProjector, component_kind, contains_reference, to_raw

logger = logging.getLogger(__name__)


def _present(value: Any) -> bool:
    return value is not None


class MigrationCompiler:
    """Plans field, script-type and removal instructions for one document pair."""

    def __init__(self, config: MigrationConfig, diagnostics: Diagnostics | None = None) -> None:
        self.config = config.normalized()
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    # --- Field transforms and generic migration ---

    def compile(
        self,
        source_paths: dict[str, NodeInfo],
        target_paths: dict[str, NodeInfo],
    ) -> list[FieldInstruction]:
        """Plan rule-based redirects and generic field copies for every matched path."""
        instructions: list[FieldInstruction] = []

        for path in source_paths:
            if path not in target_paths:
                self.diagnostics.add(
                    DiagnosticKind.NO_STRUCTURAL_MATCH,
                    "node has no counterpart in the target graph",
                    path=path,
                )

        for path, source_node, target_node in matched_paths(source_paths, target_paths):
            logger.info("Matched %s: node %d -> %d", path, source_node.slot, target_node.slot)
            for kind, source_comp in source_node.components.items():
                for rule in self.config.transform_rules.get(kind, ()):
                    instructions.extend(
                        self._compile_rule(path, kind, source_comp, rule, target_node)
                    )
                copy = self._compile_generic(path, kind, source_comp, target_node)
                if copy is not None:
                    instructions.append(copy)

        return instructions

    def _compile_rule(
        self,
        path: str,
        kind: str,
        source_comp: ComponentInfo,
        rule: TransformRule,
        target_node: NodeInfo,
    ) -> list[FieldInstruction]:
        result: list[FieldInstruction] = []

        if rule.targets_node:
            for source_field, destinations in rule.field_map.items():
                value = source_comp.fields.get(source_field)
                if not _present(value):
                    continue
                for destination in destinations:
                    result.append(RedirectFieldToNode(
                        node_slot=target_node.slot,
                        field=destination,
                        value=to_raw(value),
                        source=f"{kind}.{source_field}",
                    ))
            return result

        target_comp = target_node.components.get(rule.target)
        if target_comp is None:
            logger.debug("%s: no %s on target for %s rule", path, rule.target, kind)
            return result

        for source_field, destinations in rule.field_map.items():
            value = source_comp.fields.get(source_field)
            if not _present(value):
                continue
            for destination in destinations:
                result.append(RedirectFieldToComponent(
                    component_slot=target_comp.slot,
                    field=destination,
                    value=to_raw(value),
                    source=f"{kind}.{source_field}",
                    target_kind=rule.target,
                ))
        return result

    def _compile_generic(
        self,
        path: str,
        kind: str,
        source_comp: ComponentInfo,
        target_node: NodeInfo,
    ) -> CopyFieldsToComponent | None:
        target_comp = target_node.components.get(kind)
        if target_comp is None:
            logger.info("%s: skipping %s, not present on target", path, kind)
            return None

        fields: list[tuple[str, Any]] = []
        for field_name, value in source_comp.fields.items():
            if not _present(value) or field_name not in target_comp.fields:
                continue
            # Slot numbers differ between graph versions
            if contains_reference(value):
                continue
            if self.config.should_migrate_field(kind, field_name):
                fields.append((field_name, value))

        if not fields:
            return None
        return CopyFieldsToComponent(
            component_slot=target_comp.slot,
            component_kind=kind,
            fields=tuple(fields),
        )

    # --- Script type replacement ---

    def compile_script_replacements(
        self,
        source_paths: dict[str, NodeInfo],
        target_paths: dict[str, NodeInfo],
    ) -> list[ReplaceComponentType]:
        """Plan type-id swaps for script components listed in the script map."""
        instructions: list[ReplaceComponentType] = []

        for path, source_node, target_node in matched_paths(source_paths, target_paths):
            for kind, source_comp in source_node.components.items():
                remap = self.config.script_rule_for(kind)
                if remap is None:
                    continue

                target_comp = target_node.components.get(kind)
                if target_comp is None:
                    self.diagnostics.add(
                        DiagnosticKind.NO_STRUCTURAL_MATCH,
                        f"script component {kind} to replace is missing on the target",
                        path=path,
                    )
                    continue

                fields: dict[str, Any] = {}
                if remap.field_map is not None:
                    for source_field, target_field in remap.field_map.items():
                        value = source_comp.fields.get(source_field)
                        if _present(value) and not contains_reference(value):
                            fields[target_field] = value
                else:
                    for field_name, value in source_comp.fields.items():
                        if not _present(value) or contains_reference(value):
                            continue
                        if self.config.should_migrate_field(kind, field_name):
                            fields[field_name] = value

                logger.info("%s: %s => %s (%d field(s))", path, kind, remap.target, len(fields))
                instructions.append(ReplaceComponentType(
                    node_slot=target_node.slot,
                    component_slot=target_comp.slot,
                    old_kind=kind,
                    new_kind=remap.target,
                    fields=fields,
                    path=path,
                ))

        return instructions

    # --- Removal ---

    def plan_removals(self, target_graph: PrefabGraph) -> list[RemoveComponent]:
        """Plan removal of every component whose kind is in the removal list.

        Works on the graph as it is now (after field and type instructions
        were applied). Every live node is scanned in slot order, including
        nodes the tree does not reach, such as the earlier of two same-named
        siblings or a second parentless node. The tree only labels paths.
        """
        instructions: list[RemoveComponent] = []
        if not self.config.remove_components:
            return instructions

        labels = self._path_labels(target_graph)
        for node_slot, node in target_graph.nodes():
            path = labels.get(node_slot, f"Node_{node_slot}")
            for position, comp_ref in enumerate(node.get("_components") or []):
                if not is_reference(comp_ref):
                    continue
                comp_slot = comp_ref[ID_KEY]
                component = target_graph.get(comp_slot)
                if not isinstance(component, dict) or not isinstance(component.get("__type__"), str):
                    continue
                kind = component_kind(component["__type__"])
                if kind in self.config.remove_components:
                    logger.info("%s: marking %s[%d] for removal", path, kind, comp_slot)
                    instructions.append(RemoveComponent(
                        node_slot=node_slot,
                        component_slot=comp_slot,
                        component_kind=kind,
                        position=position,
                        path=path,
                    ))
        return instructions

    def _path_labels(self, graph: PrefabGraph) -> dict[int, str]:
        # Projection problems of the target were already recorded on the first pass
        projector = TreeProjector(graph, Diagnostics(echo=False))
        try:
            tree = projector.project()
        except RootNotFound:
            return {}
        return {node_info.slot: path for path, node_info in build_path_map(tree).items()}
