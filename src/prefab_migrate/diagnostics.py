"""Errors and recoverable diagnostics raised while migrating a prefab."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class PrefabError(ValueError):
    """Base class for conditions that abort processing of one document."""


class MalformedGraph(PrefabError):
    """The input document is not a flat array of records."""


class RootNotFound(PrefabError):
    """No node without a resolvable parent reference exists."""


class DiagnosticKind(Enum):
    UNRESOLVED_REFERENCE = "unresolved_reference"
    NO_STRUCTURAL_MATCH = "no_structural_match"
    DANGLING_REFERENCE = "dangling_reference"
    DUPLICATE_SIBLING = "duplicate_sibling"
    AMBIGUOUS_ROOT = "ambiguous_root"
    SKIPPED_INSTRUCTION = "skipped_instruction"


@dataclass
class Diagnostic:
    """A recoverable condition: the unit of work was skipped, processing went on."""

    kind: DiagnosticKind
    message: str
    path: str | None = None  # Node path, when the condition belongs to one

    def __str__(self) -> str:
        if self.path:
            return f"[{self.kind.value}] {self.path}: {self.message}"
        return f"[{self.kind.value}] {self.message}"


@dataclass
class Diagnostics:
    """Collects diagnostics for one document and mirrors them to the log.

    With ``echo`` off, entries are collected without logging.
    """

    entries: list[Diagnostic] = field(default_factory=list)
    echo: bool = True

    def add(self, kind: DiagnosticKind, message: str, path: str | None = None) -> Diagnostic:
        diagnostic = Diagnostic(kind=kind, message=message, path=path)
        self.entries.append(diagnostic)
        if self.echo:
            logger.warning("%s", diagnostic)
        return diagnostic

    def count(self, kind: DiagnosticKind | None = None) -> int:
        if kind is None:
            return len(self.entries)
        return sum(1 for d in self.entries if d.kind is kind)

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.entries if d.kind is kind]

    def summary(self) -> dict[str, int]:
        """Counts per diagnostic kind, for reports."""
        counts = Counter(d.kind.value for d in self.entries)
        return dict(sorted(counts.items()))

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)
