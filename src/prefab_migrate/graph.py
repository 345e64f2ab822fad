"""Flat record graph for prefab documents."""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterator

from prefab_migrate.diagnostics import MalformedGraph

NODE_TYPE = "cc.Node"
TYPE_KEY = "__type__"
ID_KEY = "__id__"


class RecordKind(Enum):
    """Discriminated kinds of slot contents."""

    TOMBSTONE = "tombstone"
    NODE = "node"
    COMPONENT = "component"
    VALUE = "value"


def is_reference(value: Any) -> bool:
    """Return True for ``{"__id__": <int>}`` and nothing else."""
    return (
        isinstance(value, dict)
        and len(value) == 1
        and isinstance(value.get(ID_KEY), int)
        and not isinstance(value.get(ID_KEY), bool)
    )


def make_reference(slot: int) -> dict[str, int]:
    return {ID_KEY: slot}


def classify(record: Any) -> RecordKind:
    """Classify a record by its discriminator.

    Nodes carry ``__type__ == "cc.Node"``. Components are any other typed
    record attached to a node through a ``node`` reference. Everything else
    (prefab info, click events, plain data) is a value.
    """
    if record is None:
        return RecordKind.TOMBSTONE
    if not isinstance(record, dict):
        return RecordKind.VALUE
    type_name = record.get(TYPE_KEY)
    if type_name == NODE_TYPE:
        return RecordKind.NODE
    if isinstance(type_name, str) and is_reference(record.get("node")):
        return RecordKind.COMPONENT
    return RecordKind.VALUE


class PrefabGraph:
    """Arena of records addressed by integer slot, plus a liveness set.

    Slots never move until :func:`prefab_migrate.compactor.compact` builds a
    new graph; deleting a slot only removes it from the live set.
    """

    def __init__(self, records: dict[int, Any], size: int, live: set[int] | None = None) -> None:
        self._records = records
        self._size = size
        self._live = set(records) if live is None else live

    @classmethod
    def from_records(cls, data: Any) -> PrefabGraph:
        """Build a graph from a parsed JSON document.

        Raises:
            MalformedGraph: If *data* is not a list.
        """
        if isinstance(data, PrefabGraph):
            return data
        if not isinstance(data, list):
            raise MalformedGraph(
                f"Expected a JSON array of records, got {type(data).__name__}"
            )
        records = {slot: item for slot, item in enumerate(data) if item is not None}
        return cls(records, len(data))

    def __len__(self) -> int:
        return self._size

    @property
    def live_count(self) -> int:
        return len(self._live)

    def get(self, slot: int) -> Any:
        """Return the record at *slot*, or None for tombstones and bad slots."""
        if slot in self._live:
            return self._records[slot]
        return None

    def kind(self, slot: int) -> RecordKind:
        return classify(self.get(slot))

    def is_live(self, slot: int) -> bool:
        return slot in self._live

    def is_deleted(self, slot: int) -> bool:
        return 0 <= slot < self._size and slot not in self._live

    def delete(self, slot: int) -> None:
        """Tombstone *slot*. References to it dangle until compaction."""
        if not 0 <= slot < self._size:
            raise IndexError(f"Slot {slot} out of range (size {self._size})")
        self._live.discard(slot)

    def set(self, slot: int, record: Any) -> None:
        """Replace the record at a live *slot*."""
        if slot not in self._live:
            raise KeyError(f"Slot {slot} is not live")
        self._records[slot] = record

    def live_slots(self) -> list[int]:
        return sorted(self._live)

    def items(self) -> Iterator[tuple[int, Any]]:
        """Iterate ``(slot, record)`` pairs over live slots in slot order."""
        for slot in self.live_slots():
            yield slot, self._records[slot]

    def nodes(self) -> Iterator[tuple[int, dict[str, Any]]]:
        for slot, record in self.items():
            if classify(record) is RecordKind.NODE:
                yield slot, record

    def to_records(self) -> list[Any]:
        """Return the JSON-compatible array, with None for tombstones."""
        return [self.get(slot) for slot in range(self._size)]

    def __repr__(self) -> str:
        return f"PrefabGraph(size={self._size}, live={self.live_count})"
