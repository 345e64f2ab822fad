"""Migration pipeline and batch driver.

A source prefab (newer editor) is matched against a target prefab (older
editor) by node path, and the target is rewritten in place with the source's
data:

    compile -> apply fields -> replace script types -> compact
            -> plan removals -> apply removals -> compact -> substitute

Usage:
    prefab-migrate --source ui/Shop.prefab --target old/ui/Shop.prefab
    prefab-migrate --source assets/ --target old_assets/ --recursive --overwrite
"""

from __future__ import annotations

import argparse
import copy
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from prefab_migrate.applier import InstructionApplier
from prefab_migrate.asset_map import generate_uuid_mapping, load_asset_tables
from prefab_migrate.compactor import compact
from prefab_migrate.compiler import MigrationCompiler
from prefab_migrate.config import DEFAULT_CONFIG, MigrationConfig, load_config
from prefab_migrate.diagnostics import Diagnostics, PrefabError
from prefab_migrate.graph import PrefabGraph
from prefab_migrate.instructions import (
    FieldInstruction,
    RemoveComponent,
    ReplaceComponentType,
    ReplaceStringGlobally,
)
from prefab_migrate.paths import build_path_map
from prefab_migrate.substitution import apply_substitutions, plan_substitutions
from prefab_migrate.tree import NodeInfo, TreeProjector

logger = logging.getLogger(__name__)

PREFAB_SUFFIX = ".prefab"
MIGRATED_PREFIX = "migrated_"
MIGRATED_DIR = "migrated"


@dataclass
class MigrationPlan:
    """Everything a migration would do, computed without touching the target."""

    field_instructions: list[FieldInstruction] = field(default_factory=list)
    script_instructions: list[ReplaceComponentType] = field(default_factory=list)
    removal_instructions: list[RemoveComponent] = field(default_factory=list)
    substitution_instructions: list[ReplaceStringGlobally] = field(default_factory=list)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    def describe(self) -> list[str]:
        lines: list[str] = []
        sections = [
            ("Field instructions", self.field_instructions),
            ("Script replacements", self.script_instructions),
            ("Removals", self.removal_instructions),
            ("Substitutions", self.substitution_instructions),
        ]
        for title, instructions in sections:
            lines.append(f"{title} ({len(instructions)}):")
            lines.extend(f"  {instruction.describe()}" for instruction in instructions)
        return lines


@dataclass
class MigrationResult:
    """Result of migrating one document pair."""

    records: list[Any]
    plan: MigrationPlan
    applied: int = 0
    skipped: int = 0
    removed: int = 0
    substituted: int = 0

    @property
    def diagnostics(self) -> Diagnostics:
        return self.plan.diagnostics

    @property
    def message(self) -> str:
        return (
            f"{self.applied} applied, {self.skipped} skipped, {self.removed} removed, "
            f"{self.substituted} string(s) substituted, {len(self.diagnostics)} diagnostic(s)"
        )


@dataclass
class BatchResult:
    """Outcome of a directory migration. Failures never abort the batch."""

    succeeded: list[Path] = field(default_factory=list)
    failed: list[tuple[Path, str]] = field(default_factory=list)  # (source file, reason)

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def message(self) -> str:
        return f"Succeeded: {self.success_count} file(s), failed: {self.failure_count} file(s)"


def _project_paths(graph: PrefabGraph, diagnostics: Diagnostics) -> dict[str, NodeInfo]:
    return build_path_map(TreeProjector(graph, diagnostics).project())


def _default_substitutions(config: MigrationConfig) -> list[ReplaceStringGlobally]:
    return plan_substitutions({}, extra=config.extra_substitutions)


def plan_migration(
    source_records: Any,
    target_records: Any,
    config: MigrationConfig = DEFAULT_CONFIG,
    substitutions: list[ReplaceStringGlobally] | None = None,
) -> MigrationPlan:
    """Compute the full plan for a document pair without mutating either.

    Removals are planned against the target as it is now. Field and type
    instructions never add or remove components, so the result matches what
    :func:`migrate_prefab` removes.

    Raises:
        MalformedGraph: If either document is not an array of records.
        RootNotFound: If either document has no root node.
    """
    diagnostics = Diagnostics()
    source = PrefabGraph.from_records(source_records)
    target = PrefabGraph.from_records(target_records)
    source_paths = _project_paths(source, diagnostics)
    target_paths = _project_paths(target, diagnostics)

    compiler = MigrationCompiler(config, diagnostics)
    return MigrationPlan(
        field_instructions=compiler.compile(source_paths, target_paths),
        script_instructions=compiler.compile_script_replacements(source_paths, target_paths),
        removal_instructions=compiler.plan_removals(target),
        substitution_instructions=substitutions if substitutions is not None else _default_substitutions(config),
        diagnostics=diagnostics,
    )


def migrate_prefab(
    source_records: Any,
    target_records: Any,
    config: MigrationConfig = DEFAULT_CONFIG,
    substitutions: list[ReplaceStringGlobally] | None = None,
) -> MigrationResult:
    """Migrate *source_records* onto a copy of *target_records*.

    Neither input is modified. The returned records are compacted: contiguous
    slots with every reference renumbered.

    Raises:
        MalformedGraph: If either document is not an array of records.
        RootNotFound: If either document has no root node.
    """
    diagnostics = Diagnostics()
    source = PrefabGraph.from_records(source_records)
    target = PrefabGraph.from_records(copy.deepcopy(target_records))

    source_paths = _project_paths(source, diagnostics)
    target_paths = _project_paths(target, diagnostics)
    logger.info("Projected %d source path(s), %d target path(s)", len(source_paths), len(target_paths))

    compiler = MigrationCompiler(config, diagnostics)
    applier = InstructionApplier(diagnostics)
    plan = MigrationPlan(diagnostics=diagnostics)

    # Field transforms and generic copies
    plan.field_instructions = compiler.compile(source_paths, target_paths)
    plan.script_instructions = compiler.compile_script_replacements(source_paths, target_paths)
    logger.info(
        "Planned %d field instruction(s), %d script replacement(s)",
        len(plan.field_instructions), len(plan.script_instructions),
    )
    applied = applier.apply(target, plan.field_instructions)

    # Script type replacement, then reindex
    applied += applier.apply_type_replacements(target, plan.script_instructions)
    target = compact(target, diagnostics).graph

    # Removal runs on the mutated graph
    plan.removal_instructions = compiler.plan_removals(target)
    removals = applier.apply_removals(target, plan.removal_instructions)
    target = compact(target, diagnostics).graph

    plan.substitution_instructions = (
        substitutions if substitutions is not None else _default_substitutions(config)
    )
    substituted = apply_substitutions(target, plan.substitution_instructions)

    result = MigrationResult(
        records=target.to_records(),
        plan=plan,
        applied=applied.applied,
        skipped=applied.skipped + removals.skipped,
        removed=removals.applied,
        substituted=substituted,
    )
    logger.info("Migration finished: %s", result.message)
    return result


def read_prefab(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def write_prefab(path: Path, records: list[Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(json.dumps(records, indent=2, ensure_ascii=False))


def migrate_file(
    source_path: Path,
    target_path: Path,
    output_path: Path,
    config: MigrationConfig = DEFAULT_CONFIG,
    substitutions: list[ReplaceStringGlobally] | None = None,
) -> MigrationResult:
    """Read a document pair, migrate it and write the result to *output_path*.

    Raises:
        OSError: If a file cannot be read or written.
        json.JSONDecodeError: If an input is not valid JSON.
        PrefabError: If an input is not a usable prefab graph.
    """
    logger.info("Processing %s", source_path.name)
    result = migrate_prefab(read_prefab(source_path), read_prefab(target_path), config, substitutions)
    write_prefab(output_path, result.records)
    logger.info("Wrote %s", output_path)
    return result


def find_prefab_files(directory: Path, recursive: bool = False) -> list[Path]:
    """Return ``*.prefab`` files under *directory*, sorted."""
    pattern = f"*{PREFAB_SUFFIX}"
    files = directory.rglob(pattern) if recursive else directory.glob(pattern)
    return sorted(path for path in files if path.is_file())


def migrate_directory(
    source_dir: Path,
    target_dir: Path,
    output_dir: Path,
    config: MigrationConfig = DEFAULT_CONFIG,
    substitutions: list[ReplaceStringGlobally] | None = None,
    overwrite: bool = False,
    recursive: bool = False,
) -> BatchResult:
    """Migrate every source prefab onto the target prefab at the same relative path.

    A source file without a target counterpart, or one that fails to
    migrate, is recorded as a failure and the batch continues.
    """
    batch = BatchResult()
    source_files = find_prefab_files(source_dir, recursive)
    logger.info("Found %d prefab file(s) in %s", len(source_files), source_dir)

    for source_file in source_files:
        relative = source_file.relative_to(source_dir)
        target_file = target_dir / relative
        if not target_file.is_file():
            logger.warning("Skipping %s: no target file", relative)
            batch.failed.append((source_file, "target file does not exist"))
            continue

        output_file = target_file if overwrite else output_dir / relative
        try:
            migrate_file(source_file, target_file, output_file, config, substitutions)
        except (PrefabError, OSError, json.JSONDecodeError) as e:
            logger.error("Failed to migrate %s: %s", relative, e)
            batch.failed.append((source_file, str(e)))
            continue
        batch.succeeded.append(source_file)

    logger.info(batch.message)
    return batch


def _load_substitutions(
    config: MigrationConfig, source_assets: Path | None, target_assets: Path | None
) -> list[ReplaceStringGlobally]:
    if source_assets is None and target_assets is None:
        return _default_substitutions(config)
    if source_assets is None or target_assets is None:
        raise ValueError("--source-assets and --target-assets must be given together")
    source_table, target_table = load_asset_tables(source_assets, target_assets)
    mapping = generate_uuid_mapping(source_table, target_table)
    return plan_substitutions(mapping.pairs(), extra=config.extra_substitutions)


def _print_summary(diagnostics: Diagnostics) -> None:
    for kind, count in diagnostics.summary().items():
        print(f"  {kind}: {count}")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Migrate prefab data onto the matching prefab of another editor version"
    )
    parser.add_argument("--source", type=Path, required=True, help="Source prefab file or directory")
    parser.add_argument("--target", type=Path, required=True, help="Target prefab file or directory")
    parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Output file or directory (default: migrated_<name> or <target parent>/migrated)",
    )
    parser.add_argument("--overwrite", action="store_true", help="Overwrite the target file(s)")
    parser.add_argument("-r", "--recursive", action="store_true", help="Recurse into subdirectories")
    parser.add_argument("-c", "--config", type=Path, default=None, help="Rules file (.pmr)")
    parser.add_argument("--source-assets", type=Path, default=None, help="Source asset table (JSON)")
    parser.add_argument("--target-assets", type=Path, default=None, help="Target asset table (JSON)")
    parser.add_argument("--plan", action="store_true", help="Print the migration plan and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every instruction")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    for label, path in (("Source", args.source), ("Target", args.target)):
        if not path.exists():
            print(f"Error: {label} not found: {path}", file=sys.stderr)
            return 1
    if args.source.is_dir() != args.target.is_dir():
        print("Error: --source and --target must both be files or both be directories", file=sys.stderr)
        return 1

    try:
        config = load_config(args.config) if args.config else DEFAULT_CONFIG
        substitutions = _load_substitutions(config, args.source_assets, args.target_assets)
    except (OSError, ValueError, SyntaxError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.source.is_dir():
        if args.plan:
            print("Error: --plan requires file inputs", file=sys.stderr)
            return 1
        output_dir = args.out or args.target.parent / MIGRATED_DIR
        batch = migrate_directory(
            args.source, args.target, output_dir, config, substitutions,
            overwrite=args.overwrite, recursive=args.recursive,
        )
        print(batch.message)
        for source_file, reason in batch.failed:
            print(f"  failed: {source_file}: {reason}", file=sys.stderr)
        return 1 if batch.failed else 0

    try:
        if args.plan:
            plan = plan_migration(
                read_prefab(args.source), read_prefab(args.target), config, substitutions
            )
            print("\n".join(plan.describe()))
            _print_summary(plan.diagnostics)
            return 0

        output = args.target if args.overwrite else (
            args.out or args.target.parent / f"{MIGRATED_PREFIX}{args.target.name}"
        )
        result = migrate_file(args.source, args.target, output, config, substitutions)
    except (PrefabError, OSError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"{args.source.name}: {result.message}")
    _print_summary(result.diagnostics)
    print(f"Wrote {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
