"""Global string substitution over every live record of a graph."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from prefab_migrate.graph import PrefabGraph
from prefab_migrate.instructions import ReplaceStringGlobally

logger = logging.getLogger(__name__)

# Asset sub-id suffix rewritten after every mapped identifier
FALLBACK_SUBSTITUTION = ("@f9941", "@6c48a")

QUALIFIER = "@"


def plan_substitutions(
    mapping: Mapping[str, str] | Iterable[tuple[str, str]],
    extra: Iterable[tuple[str, str]] = (),
    fallback: tuple[str, str] | None = FALLBACK_SUBSTITUTION,
) -> list[ReplaceStringGlobally]:
    """Order substitutions so qualified identifiers are rewritten first.

    A "from" containing ``@`` (``abc@v1``) must run before a bare one
    (``abc``) or the bare rewrite would break the qualified occurrence.
    The sort is stable, so entries otherwise keep their given order.
    *extra* pairs follow the mapping and *fallback* always comes last.
    """
    pairs = list(mapping.items()) if isinstance(mapping, Mapping) else list(mapping)
    pairs.sort(key=lambda pair: QUALIFIER not in pair[0])

    instructions = [ReplaceStringGlobally(from_, to) for from_, to in pairs]
    instructions.extend(ReplaceStringGlobally(from_, to) for from_, to in extra)
    if fallback is not None:
        instructions.append(ReplaceStringGlobally(*fallback))
    return instructions


def replace_in_string(text: str, instruction: ReplaceStringGlobally) -> str:
    """Replace every non-overlapping occurrence, left to right."""
    if isinstance(instruction.from_, re.Pattern):
        return instruction.from_.sub(instruction.to, text)
    if not instruction.from_ or instruction.from_ not in text:
        return text
    return text.replace(instruction.from_, instruction.to)


def apply_substitutions(graph: PrefabGraph, instructions: Iterable[ReplaceStringGlobally]) -> int:
    """Apply each instruction to every string value in the graph, in order.

    Records are visited in slot order, dict fields in insertion order and
    lists by index. Dict keys are never rewritten.

    Returns:
        The number of string values changed, summed over all instructions.
    """
    changed = 0

    def traverse(value: Any, instruction: ReplaceStringGlobally) -> Any:
        nonlocal changed
        if isinstance(value, str):
            replaced = replace_in_string(value, instruction)
            if replaced != value:
                changed += 1
            return replaced
        if isinstance(value, dict):
            for key, item in value.items():
                value[key] = traverse(item, instruction)
        elif isinstance(value, list):
            for i, item in enumerate(value):
                value[i] = traverse(item, instruction)
        return value

    for instruction in instructions:
        before = changed
        for slot, record in list(graph.items()):
            result = traverse(record, instruction)
            if result is not record:
                graph.set(slot, result)
        if changed != before:
            logger.debug("  %s (%d string(s))", instruction.describe(), changed - before)

    logger.info("Substitution changed %d string value(s)", changed)
    return changed
