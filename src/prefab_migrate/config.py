"""Migration configuration: transform rules, removals, whitelist, script remaps."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path

from prefab_migrate.uuid_codec import canonical_short

# Rule target naming the matched node itself rather than one of its components
SELF_TARGET = "self"
_NODE_TARGETS = frozenset({SELF_TARGET, "Node"})

# Fields never carried over by generic migration
RESERVED_FIELDS = frozenset({"node", "__type__", "__id__"})


@dataclass(frozen=True)
class TransformRule:
    """Redirect fields of one component kind onto the node or another component.

    ``field_map`` maps a source field to one or more destination field names.
    """

    target: str
    field_map: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def targets_node(self) -> bool:
        return self.target in _NODE_TARGETS

    @classmethod
    def of(cls, target: str, field_map: dict[str, str | list[str] | tuple[str, ...]]) -> TransformRule:
        """Build a rule, accepting a single destination name or a list of them."""
        normalized = {
            src: (dst,) if isinstance(dst, str) else tuple(dst)
            for src, dst in field_map.items()
        }
        return cls(target=target, field_map=normalized)


@dataclass(frozen=True)
class ScriptRemap:
    """Replacement type id for a script component, with optional field renames."""

    target: str
    field_map: dict[str, str] | None = None


@dataclass(frozen=True)
class MigrationConfig:
    """Immutable configuration threaded through planning.

    Attributes:
        transform_rules: Component kind -> rules applied when that kind is on a source node.
        remove_components: Component kinds deleted from the migrated graph.
        field_whitelist: Component kind -> only these fields take part in generic migration.
        script_map: Script type id (any identifier form) -> replacement.
        extra_substitutions: Literal (from, to) pairs appended after the asset mapping.
    """

    transform_rules: dict[str, tuple[TransformRule, ...]] = field(default_factory=dict)
    remove_components: frozenset[str] = frozenset()
    field_whitelist: dict[str, frozenset[str]] = field(default_factory=dict)
    script_map: dict[str, ScriptRemap] = field(default_factory=dict)
    extra_substitutions: tuple[tuple[str, str], ...] = ()

    def normalized(self) -> MigrationConfig:
        """Return a copy whose script ids are all in the 23-character compact form."""
        script_map = {
            canonical_short(source): ScriptRemap(
                target=canonical_short(remap.target),
                field_map=remap.field_map,
            )
            for source, remap in self.script_map.items()
        }
        return replace(self, script_map=script_map)

    def script_rule_for(self, kind: str) -> ScriptRemap | None:
        """Look up a script remap by type id, whichever form *kind* uses."""
        rule = self.script_map.get(kind)
        if rule is None:
            rule = self.script_map.get(canonical_short(kind))
        return rule

    def should_migrate_field(self, kind: str, field_name: str) -> bool:
        if field_name in RESERVED_FIELDS:
            return False
        allowed = self.field_whitelist.get(kind)
        if allowed is not None:
            return field_name in allowed
        return True


DEFAULT_CONFIG = MigrationConfig(
    transform_rules={
        "UIOpacity": (
            TransformRule.of(SELF_TARGET, {"_opacity": "_opacity"}),
        ),
        "UITransform": (
            TransformRule.of(SELF_TARGET, {
                "_anchorPoint": "_anchorPoint",
                "_contentSize": "_contentSize",
            }),
        ),
        "Label": (
            TransformRule.of(SELF_TARGET, {"_color": "_color"}),
            TransformRule.of("Label", {
                "_verticalAlign": "_N$verticalAlign",
                "_horizontalAlign": "_N$horizontalAlign",
                "_fontFamily": "_N$fontFamily",
                "_overflow": "_N$overflow",
                "_cacheMode": "_N$cacheMode",
                "_string": "_N$string",
                "_font": "_N$file",
            }),
        ),
        "Sprite": (
            TransformRule.of(SELF_TARGET, {"_color": "_color"}),
        ),
        "Button": (
            TransformRule.of("Button", {
                "_transition": ["_N$transition", "transition"],
                "_interactable": "_N$interactable",
                "_normalColor": "_N$normalColor",
                "_target": "_N$target",
                "_duration": "duration",
                "_zoomScale": "zoomScale",
                "_hoverColor": ["_N$hoverColor", "hoverColor"],
                "_pressedColor": ["_N$pressedColor", "pressedColor"],
                "_disabledColor": ["_N$disabledColor", "disabledColor"],
                "_normalSprite": ["_N$normalSprite", "normalSprite"],
                "_hoverSprite": ["_N$hoverSprite", "hoverSprite"],
                "_pressedSprite": ["_N$pressedSprite", "pressedSprite"],
                "_disabledSprite": ["_N$disabledSprite", "disabledSprite"],
            }),
        ),
    },
    remove_components=frozenset({"UIOpacity", "UITransform"}),
    script_map={
        # bordergraphic
        "25f8fxwtsZCT7yF0lzyt5zU": ScriptRemap("8bab7e0c-0380-491c-b66f-b2bef75657c2"),
        # i8ntext
        "08e1e8nYqFCd7dX6KiiPt2N": ScriptRemap("0657750f-91c5-4c19-9bfb-6c10d21f4687"),
        # CountDownButton
        "7d729a50-deea-4c4b-8e3a-d1159eb9a33a": ScriptRemap("a42b0a21-b23f-45bf-87b2-92143c8781da"),
    },
)


def load_config(path: Path) -> MigrationConfig:
    """Load a ``.pmr`` rules file into a :class:`MigrationConfig`.

    Raises:
        SyntaxError: If the file does not parse.
    """
    from prefab_migrate.parsing.rules_parser import RulesParser

    parser = RulesParser()
    rules = parser.parse(Path(path).read_text(encoding="utf-8"))
    return rules.to_config()
