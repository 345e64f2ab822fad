"""Tests for path maps and path matching."""

from prefab_migrate.paths import build_path_map, matched_paths
from prefab_migrate.tree import project_tree
from prefab_factory import PrefabBuilder


def _shop_prefab(extra_child: str | None = None):
    b = PrefabBuilder()
    root = b.node("Shop")
    panel = b.node("Panel", parent=root)
    b.node("Title", parent=panel)
    b.node("Close", parent=root)
    if extra_child:
        b.node(extra_child, parent=panel)
    return b.build()


class TestBuildPathMap:
    def test_paths_depth_first(self):
        paths = build_path_map(project_tree(_shop_prefab()))
        assert list(paths) == ["Shop", "Shop/Panel", "Shop/Panel/Title", "Shop/Close"]

    def test_slots_kept(self):
        paths = build_path_map(project_tree(_shop_prefab()))
        assert paths["Shop"].slot == 1
        assert paths["Shop/Panel/Title"].slot == 3

    def test_slash_in_name_not_escaped(self):
        b = PrefabBuilder()
        root = b.node("Root")
        b.node("a/b", parent=root)
        paths = build_path_map(project_tree(b.build()))
        assert "Root/a/b" in paths


class TestMatchedPaths:
    def test_common_paths_in_source_order(self):
        source = build_path_map(project_tree(_shop_prefab(extra_child="Badge")))
        target = build_path_map(project_tree(_shop_prefab()))
        matched = matched_paths(source, target)
        assert [path for path, _, _ in matched] == [
            "Shop", "Shop/Panel", "Shop/Panel/Title", "Shop/Close",
        ]

    def test_pairs_carry_both_nodes(self):
        source = build_path_map(project_tree(_shop_prefab()))
        target = build_path_map(project_tree(_shop_prefab(extra_child="Badge")))
        for path, source_node, target_node in matched_paths(source, target):
            assert source_node.name == target_node.name
            assert path.endswith(source_node.name)

    def test_target_only_paths_ignored(self):
        source = build_path_map(project_tree(_shop_prefab()))
        target = build_path_map(project_tree(_shop_prefab(extra_child="Badge")))
        assert "Shop/Panel/Badge" not in [path for path, _, _ in matched_paths(source, target)]
