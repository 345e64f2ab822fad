"""Tool for dumping prefab contents to the console."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from prefab_migrate.diagnostics import Diagnostics, PrefabError
from prefab_migrate.graph import PrefabGraph, classify
from prefab_migrate.paths import build_path_map
from prefab_migrate.tree import NodeInfo, TreeProjector


def format_tree(tree: dict[str, NodeInfo], limit: int | None = None) -> list[str]:
    """Indented tree lines: one per node, components listed beneath it."""
    lines: list[str] = []

    def walk(name: str, node: NodeInfo, depth: int) -> None:
        if limit is not None and len(lines) >= limit:
            return
        indent = "  " * depth
        active = "" if node.active is not False else " (inactive)"
        lines.append(f"{indent}{name} [{node.slot}]{active}")
        for kind, component in node.components.items():
            lines.append(f"{indent}  + {kind} [{component.slot}]")
        for child_name, child in node.children.items():
            walk(child_name, child, depth + 1)

    for root_name, root in tree.items():
        walk(root_name, root, 0)
    return lines if limit is None else lines[:limit]


def format_paths(tree: dict[str, NodeInfo], limit: int | None = None) -> list[str]:
    """One line per path with the node slot and component slots."""
    lines = []
    for path, node in build_path_map(tree).items():
        components = ", ".join(f"{kind}[{comp.slot}]" for kind, comp in node.components.items())
        lines.append(f"{path}  node[{node.slot}]  {components}".rstrip())
        if limit is not None and len(lines) >= limit:
            break
    return lines


def format_raw(graph: PrefabGraph, limit: int | None = None) -> list[str]:
    """Live records with their slot and record kind."""
    lines = []
    for slot, record in graph.items():
        lines.append(f"[{slot}] {classify(record).value}: {json.dumps(record, ensure_ascii=False)}")
        if limit is not None and len(lines) >= limit:
            break
    return lines


def load_graph(path: Path) -> PrefabGraph:
    with open(path, encoding="utf-8") as f:
        return PrefabGraph.from_records(json.load(f))


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Dump a prefab's node tree, paths or records to the console"
    )
    parser.add_argument("prefab", type=Path, help="Path to the .prefab file")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "-p", "--paths",
        action="store_true",
        help="List node paths with node and component slots",
    )
    mode.add_argument(
        "-j", "--json",
        action="store_true",
        help="Output the projected tree as JSON",
    )
    mode.add_argument(
        "-r", "--raw",
        action="store_true",
        help="Show raw live records with their slots",
    )
    parser.add_argument(
        "-n", "--limit",
        type=int,
        default=None,
        help="Limit number of lines to display",
    )

    args = parser.parse_args(argv)

    if not args.prefab.exists():
        print(f"Error: Prefab not found: {args.prefab}", file=sys.stderr)
        return 1

    try:
        graph = load_graph(args.prefab)
        if args.raw:
            print("\n".join(format_raw(graph, args.limit)))
            return 0

        diagnostics = Diagnostics()
        tree = TreeProjector(graph, diagnostics).project()
    except (PrefabError, OSError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        output: Any = {name: node.to_dict() for name, node in tree.items()}
        print(json.dumps(output, indent=2, ensure_ascii=False))
    elif args.paths:
        print("\n".join(format_paths(tree, args.limit)))
    else:
        print("\n".join(format_tree(tree, args.limit)))

    for diagnostic in diagnostics:
        print(f"warning: {diagnostic}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
