"""Compaction: drop tombstones and renumber every reference."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prefab_migrate.diagnostics import DiagnosticKind, Diagnostics
from prefab_migrate.graph import ID_KEY, PrefabGraph, is_reference

logger = logging.getLogger(__name__)


@dataclass
class CompactResult:
    """Result of compacting a graph."""

    graph: PrefabGraph
    records_before: int = 0
    records_after: int = 0
    references_rewritten: int = 0
    dangling: list[int] = field(default_factory=list)  # Old target slots that were tombstones

    @property
    def message(self) -> str:
        return f"Compacted {self.records_before} -> {self.records_after} records"


def build_index_map(graph: PrefabGraph) -> dict[int, int]:
    """Assign each live slot its position in the compacted array, keeping order."""
    old_to_new: dict[int, int] = {}
    new_idx = 0
    for old_idx in range(len(graph)):
        if graph.is_live(old_idx):
            old_to_new[old_idx] = new_idx
            new_idx += 1
    return old_to_new


def compact(graph: PrefabGraph, diagnostics: Diagnostics | None = None) -> CompactResult:
    """Return a new graph without tombstones, every reference renumbered.

    A reference whose target was a tombstone cannot be renumbered; it is
    replaced by ``None`` and reported as a dangling reference.
    """
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    old_to_new = build_index_map(graph)
    result = CompactResult(
        graph=graph,
        records_before=len(graph),
        records_after=len(old_to_new),
    )

    def remap(value: Any, slot: int) -> Any:
        if is_reference(value):
            old_idx = value[ID_KEY]
            new_idx = old_to_new.get(old_idx)
            if new_idx is None:
                result.dangling.append(old_idx)
                diagnostics.add(
                    DiagnosticKind.DANGLING_REFERENCE,
                    f"record {slot} references removed slot {old_idx}",
                )
                return None
            value[ID_KEY] = new_idx
            result.references_rewritten += 1
            return value
        if isinstance(value, dict):
            for key, item in value.items():
                value[key] = remap(item, slot)
            return value
        if isinstance(value, list):
            for i, item in enumerate(value):
                value[i] = remap(item, slot)
            return value
        return value

    records: dict[int, Any] = {}
    for old_idx, new_idx in old_to_new.items():
        records[new_idx] = remap(graph.get(old_idx), old_idx)

    result.graph = PrefabGraph(records, len(records))
    logger.info("%s (%d references rewritten)", result.message, result.references_rewritten)
    return result
