"""Executes migration instructions against a target graph."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass

from prefab_migrate.diagnostics import DiagnosticKind, Diagnostics
from prefab_migrate.graph import ID_KEY, TYPE_KEY, PrefabGraph, RecordKind, is_reference
from prefab_migrate.instructions import (
    CopyFieldsToComponent,
    Instruction,
    RedirectFieldToComponent,
    RedirectFieldToNode,
    RemoveComponent,
    ReplaceComponentType,
    ReplaceStringGlobally,
)

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """Counts from one application pass."""

    applied: int = 0
    skipped: int = 0

    def __add__(self, other: ApplyResult) -> ApplyResult:
        return ApplyResult(self.applied + other.applied, self.skipped + other.skipped)


class InstructionApplier:
    """Mutates graph records in place, addressing them by slot."""

    def __init__(self, diagnostics: Diagnostics | None = None) -> None:
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    def apply(self, graph: PrefabGraph, instructions: list[Instruction]) -> ApplyResult:
        """Apply field redirects and copies.

        An instruction whose slot no longer holds a matching record is a
        no-op: it counts as skipped, never as applied.
        """
        result = ApplyResult()
        for instruction in instructions:
            if isinstance(instruction, RedirectFieldToNode):
                ok = self._redirect_to_node(graph, instruction)
            elif isinstance(instruction, RedirectFieldToComponent):
                ok = self._redirect_to_component(graph, instruction)
            elif isinstance(instruction, CopyFieldsToComponent):
                ok = self._copy_fields(graph, instruction)
            elif isinstance(instruction, (ReplaceComponentType, RemoveComponent, ReplaceStringGlobally)):
                raise ValueError(f"{type(instruction).__name__} is applied by a dedicated pass")
            else:
                raise ValueError(f"Unknown instruction type: {type(instruction)}")

            if ok:
                result.applied += 1
            else:
                result.skipped += 1
                logger.debug("Skipped %s", instruction.describe())

        logger.info("Applied %d instruction(s), skipped %d", result.applied, result.skipped)
        return result

    def _redirect_to_node(self, graph: PrefabGraph, instruction: RedirectFieldToNode) -> bool:
        if graph.kind(instruction.node_slot) is not RecordKind.NODE:
            return False
        graph.get(instruction.node_slot)[instruction.field] = copy.deepcopy(instruction.value)
        logger.debug("  %s", instruction.describe())
        return True

    def _redirect_to_component(self, graph: PrefabGraph, instruction: RedirectFieldToComponent) -> bool:
        component = graph.get(instruction.component_slot)
        if not isinstance(component, dict):
            return False
        component[instruction.field] = copy.deepcopy(instruction.value)
        logger.debug("  %s", instruction.describe())
        return True

    def _copy_fields(self, graph: PrefabGraph, instruction: CopyFieldsToComponent) -> bool:
        component = graph.get(instruction.component_slot)
        if not isinstance(component, dict):
            return False
        for name, value in instruction.fields:
            component[name] = copy.deepcopy(value)
        logger.debug("  %s", instruction.describe())
        return True

    def apply_type_replacements(
        self, graph: PrefabGraph, instructions: list[ReplaceComponentType]
    ) -> ApplyResult:
        """Swap component type ids and assign their mapped fields."""
        result = ApplyResult()
        for instruction in instructions:
            node = graph.get(instruction.node_slot)
            component = graph.get(instruction.component_slot)
            if not isinstance(node, dict) or not isinstance(component, dict):
                self.diagnostics.add(
                    DiagnosticKind.SKIPPED_INSTRUCTION,
                    f"node or component missing for {instruction.old_kind} replacement",
                    path=instruction.path,
                )
                result.skipped += 1
                continue

            if TYPE_KEY in component:
                logger.debug("  %s: __type__ %s -> %s", instruction.path, component[TYPE_KEY], instruction.new_kind)
                component[TYPE_KEY] = instruction.new_kind
            for name, value in instruction.fields.items():
                component[name] = copy.deepcopy(value)
            logger.info("  %s", instruction.describe())
            result.applied += 1
        return result

    def apply_removals(self, graph: PrefabGraph, instructions: list[RemoveComponent]) -> ApplyResult:
        """Detach components from their nodes and tombstone their slots.

        Positions are processed from the highest down so earlier removals do
        not shift the positions of later ones on the same node. The graph
        needs compaction afterwards.
        """
        result = ApplyResult()
        for instruction in sorted(instructions, key=lambda i: i.position, reverse=True):
            node = graph.get(instruction.node_slot)
            components = node.get("_components") if isinstance(node, dict) else None
            if not isinstance(components, list):
                self.diagnostics.add(
                    DiagnosticKind.SKIPPED_INSTRUCTION,
                    f"cannot remove {instruction.component_kind}[{instruction.component_slot}]: node missing",
                    path=instruction.path,
                )
                result.skipped += 1
                continue

            position = instruction.position
            if not (0 <= position < len(components)
                    and is_reference(components[position])
                    and components[position][ID_KEY] == instruction.component_slot):
                position = next(
                    (i for i, ref in enumerate(components)
                     if is_reference(ref) and ref[ID_KEY] == instruction.component_slot),
                    -1,
                )
            if position >= 0:
                del components[position]
                logger.debug("  %s: detached %s at position %d", instruction.path, instruction.component_kind, position)

            if graph.is_live(instruction.component_slot):
                graph.delete(instruction.component_slot)
                logger.info("  %s", instruction.describe())
                result.applied += 1
            else:
                result.skipped += 1
        return result
