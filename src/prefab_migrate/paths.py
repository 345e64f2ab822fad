"""Root-relative path index over a projected tree."""

from __future__ import annotations

from prefab_migrate.tree import NodeInfo

PATH_SEPARATOR = "/"


def build_path_map(tree: dict[str, NodeInfo]) -> dict[str, NodeInfo]:
    """Map ``"Root/Child/Grandchild"`` paths to nodes, depth-first.

    Names are joined as-is: a node name containing ``/`` produces a path
    that collides with a deeper node's path.
    """
    path_map: dict[str, NodeInfo] = {}

    def walk(node: NodeInfo, path: str) -> None:
        path_map[path] = node
        for child_name, child in node.children.items():
            walk(child, f"{path}{PATH_SEPARATOR}{child_name}" if path else child_name)

    for root_name, root in tree.items():
        walk(root, root_name)
    return path_map


def matched_paths(
    source_paths: dict[str, NodeInfo], target_paths: dict[str, NodeInfo]
) -> list[tuple[str, NodeInfo, NodeInfo]]:
    """Return ``(path, source_node, target_node)`` for paths present in both, in source order."""
    return [
        (path, source_node, target_paths[path])
        for path, source_node in source_paths.items()
        if path in target_paths
    ]
