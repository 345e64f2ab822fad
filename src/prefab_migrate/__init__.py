"""Prefab Migrate - Rule-driven migration of prefab scene graphs between editor versions."""

from prefab_migrate.compactor import CompactResult, compact
from prefab_migrate.config import DEFAULT_CONFIG, MigrationConfig, ScriptRemap, TransformRule, load_config
from prefab_migrate.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    Diagnostics,
    MalformedGraph,
    PrefabError,
    RootNotFound,
)
from prefab_migrate.graph import PrefabGraph, RecordKind
from prefab_migrate.migrate import MigrationPlan, MigrationResult, migrate_prefab, plan_migration
from prefab_migrate.tree import ComponentInfo, NodeInfo, RefValue, TreeProjector, project_tree
from prefab_migrate.uuid_codec import lengthen, shorten

__all__ = [
    # Main API
    "migrate_prefab",
    "plan_migration",
    "MigrationPlan",
    "MigrationResult",
    # Configuration
    "DEFAULT_CONFIG",
    "MigrationConfig",
    "ScriptRemap",
    "TransformRule",
    "load_config",
    # Graph model
    "PrefabGraph",
    "RecordKind",
    "TreeProjector",
    "project_tree",
    "NodeInfo",
    "ComponentInfo",
    "RefValue",
    "compact",
    "CompactResult",
    # Errors
    "PrefabError",
    "MalformedGraph",
    "RootNotFound",
    "Diagnostic",
    "DiagnosticKind",
    "Diagnostics",
    # Identifiers
    "shorten",
    "lengthen",
]

__version__ = "0.1.0"
