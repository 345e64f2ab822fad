"""Migration instructions: planned graph mutations, applied in a separate pass."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RedirectFieldToNode:
    """Assign ``field`` on the node at ``node_slot``."""

    node_slot: int
    field: str
    value: Any
    source: str  # "Component.field" the value came from

    def describe(self) -> str:
        return f"{self.source} -> Node[{self.node_slot}].{self.field}"


@dataclass(frozen=True)
class RedirectFieldToComponent:
    """Assign ``field`` on the component at ``component_slot``."""

    component_slot: int
    field: str
    value: Any
    source: str
    target_kind: str = ""

    def describe(self) -> str:
        return f"{self.source} -> {self.target_kind or 'Component'}[{self.component_slot}].{self.field}"


@dataclass(frozen=True)
class CopyFieldsToComponent:
    """Assign every ``(field, value)`` pair on one component."""

    component_slot: int
    component_kind: str
    fields: tuple[tuple[str, Any], ...] = ()

    def describe(self) -> str:
        names = ", ".join(name for name, _ in self.fields)
        return f"{self.component_kind}[{self.component_slot}] <- {len(self.fields)} field(s): {names}"


@dataclass(frozen=True)
class ReplaceComponentType:
    """Overwrite the discriminator of a component and assign mapped fields."""

    node_slot: int
    component_slot: int
    old_kind: str
    new_kind: str
    fields: dict[str, Any] = field(default_factory=dict)
    path: str = ""

    def describe(self) -> str:
        return (
            f"{self.path}: {self.old_kind}[{self.component_slot}] => {self.new_kind} "
            f"({len(self.fields)} field(s))"
        )


@dataclass(frozen=True)
class RemoveComponent:
    """Detach a component from its node and tombstone its slot."""

    node_slot: int
    component_slot: int
    component_kind: str
    position: int  # Index within the node's _components list
    path: str = ""

    def describe(self) -> str:
        return f"{self.path} -> remove {self.component_kind}[{self.component_slot}] (position {self.position})"


@dataclass(frozen=True)
class ReplaceStringGlobally:
    """Replace ``from_`` with ``to`` in every string value of the graph."""

    from_: str | re.Pattern[str]
    to: str

    @property
    def is_pattern(self) -> bool:
        return isinstance(self.from_, re.Pattern)

    def describe(self) -> str:
        source = f"/{self.from_.pattern}/" if isinstance(self.from_, re.Pattern) else repr(self.from_)
        return f"{source} -> {self.to!r}"


FieldInstruction = RedirectFieldToNode | RedirectFieldToComponent | CopyFieldsToComponent

Instruction = (
    RedirectFieldToNode
    | RedirectFieldToComponent
    | CopyFieldsToComponent
    | ReplaceComponentType
    | RemoveComponent
    | ReplaceStringGlobally
)
