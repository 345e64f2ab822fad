"""Parser for prefab migration rules (.pmr) files."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

import ply.yacc as yacc

from prefab_migrate.config import SELF_TARGET, MigrationConfig, ScriptRemap, TransformRule
from prefab_migrate.parsing.rules_lexer import RulesLexer

_PARSER_DIR = os.path.dirname(os.path.abspath(__file__))


@dataclass
class RulesFile:
    """Parsed contents of a .pmr file."""
    transforms: dict[str, list[TransformRule]] = field(default_factory=dict)  # kind → rules
    removals: list[str] = field(default_factory=list)
    whitelist: dict[str, list[str]] = field(default_factory=dict)             # kind → fields
    scripts: dict[str, ScriptRemap] = field(default_factory=dict)             # type id → remap
    substitutions: list[tuple[str, str]] = field(default_factory=list)

    def to_config(self) -> MigrationConfig:
        return MigrationConfig(
            transform_rules={kind: tuple(rules) for kind, rules in self.transforms.items()},
            remove_components=frozenset(self.removals),
            field_whitelist={kind: frozenset(names) for kind, names in self.whitelist.items()},
            script_map=dict(self.scripts),
            extra_substitutions=tuple(self.substitutions),
        )


class RulesParser:
    """Parser for .pmr rules files."""

    tokens = RulesLexer.tokens

    def __init__(self) -> None:
        self._lexer = RulesLexer()
        self._parser: yacc.LRParser | None = None
        self._rules: RulesFile | None = None

    def build(self, **kwargs) -> None:  # type: ignore
        self._lexer.build(debug=False, errorlog=yacc.NullLogger())
        kwargs.setdefault("debug", False)
        kwargs.setdefault("write_tables", True)
        kwargs.setdefault("outputdir", _PARSER_DIR)
        kwargs.setdefault("tabmodule", "prefab_migrate.parsing._rules_parsetab")
        kwargs.setdefault("errorlog", yacc.NullLogger())
        self._parser = yacc.yacc(module=self, **kwargs)

    def parse(self, text: str) -> RulesFile:
        if self._parser is None:
            self.build()
        self._rules = RulesFile()
        self._lexer.lexer.lineno = 1
        self._parser.parse(text, lexer=self._lexer.lexer)
        return self._rules

    # ---- Grammar rules ----

    def p_rules_file(self, p: yacc.YaccProduction) -> None:
        """rules_file : sections"""
        pass

    def p_sections_empty(self, p: yacc.YaccProduction) -> None:
        """sections : """
        pass

    def p_sections_multi(self, p: yacc.YaccProduction) -> None:
        """sections : sections section"""
        pass

    # ---- transform Kind { target { src: dst, src: [dst, dst] } } ----

    def p_section_transform(self, p: yacc.YaccProduction) -> None:
        """section : TRANSFORM name LBRACE transform_targets RBRACE"""
        self._rules.transforms.setdefault(p[2], []).extend(p[4])

    def p_transform_targets_empty(self, p: yacc.YaccProduction) -> None:
        """transform_targets : """
        p[0] = []

    def p_transform_targets_multi(self, p: yacc.YaccProduction) -> None:
        """transform_targets : transform_targets transform_target"""
        p[0] = p[1] + [p[2]]

    def p_transform_target(self, p: yacc.YaccProduction) -> None:
        """transform_target : target_name LBRACE field_entries RBRACE opt_comma"""
        p[0] = TransformRule(target=p[1], field_map=dict(p[3]))

    def p_target_name_self(self, p: yacc.YaccProduction) -> None:
        """target_name : SELF"""
        p[0] = SELF_TARGET

    def p_target_name(self, p: yacc.YaccProduction) -> None:
        """target_name : name"""
        p[0] = p[1]

    def p_field_entries_empty(self, p: yacc.YaccProduction) -> None:
        """field_entries : """
        p[0] = []

    def p_field_entries_multi(self, p: yacc.YaccProduction) -> None:
        """field_entries : field_entries field_entry"""
        p[0] = p[1] + [p[2]]

    def p_field_entry_single(self, p: yacc.YaccProduction) -> None:
        """field_entry : IDENTIFIER COLON IDENTIFIER opt_comma"""
        p[0] = (p[1], (p[3],))

    def p_field_entry_list(self, p: yacc.YaccProduction) -> None:
        """field_entry : IDENTIFIER COLON LBRACKET ident_list RBRACKET opt_comma"""
        p[0] = (p[1], tuple(p[4]))

    # ---- remove [Kind, ...] ----

    def p_section_remove(self, p: yacc.YaccProduction) -> None:
        """section : REMOVE LBRACKET name_list RBRACKET"""
        for kind in p[3]:
            if kind not in self._rules.removals:
                self._rules.removals.append(kind)

    # ---- whitelist { Kind: [field, ...] } ----

    def p_section_whitelist(self, p: yacc.YaccProduction) -> None:
        """section : WHITELIST LBRACE whitelist_entries RBRACE"""
        pass

    def p_whitelist_entries_empty(self, p: yacc.YaccProduction) -> None:
        """whitelist_entries : """
        pass

    def p_whitelist_entries_multi(self, p: yacc.YaccProduction) -> None:
        """whitelist_entries : whitelist_entries whitelist_entry"""
        pass

    def p_whitelist_entry(self, p: yacc.YaccProduction) -> None:
        """whitelist_entry : name COLON LBRACKET ident_list RBRACKET opt_comma"""
        self._rules.whitelist[p[1]] = p[4]

    # ---- script { "from-id": "to-id" { src: dst } } ----

    def p_section_script(self, p: yacc.YaccProduction) -> None:
        """section : SCRIPT LBRACE script_entries RBRACE"""
        pass

    def p_script_entries_empty(self, p: yacc.YaccProduction) -> None:
        """script_entries : """
        pass

    def p_script_entries_multi(self, p: yacc.YaccProduction) -> None:
        """script_entries : script_entries script_entry"""
        pass

    def p_script_entry_plain(self, p: yacc.YaccProduction) -> None:
        """script_entry : STRING COLON STRING opt_comma"""
        self._rules.scripts[p[1]] = ScriptRemap(target=p[3])

    def p_script_entry_mapped(self, p: yacc.YaccProduction) -> None:
        """script_entry : STRING COLON STRING LBRACE rename_entries RBRACE opt_comma"""
        self._rules.scripts[p[1]] = ScriptRemap(target=p[3], field_map=dict(p[5]))

    def p_rename_entries_empty(self, p: yacc.YaccProduction) -> None:
        """rename_entries : """
        p[0] = []

    def p_rename_entries_multi(self, p: yacc.YaccProduction) -> None:
        """rename_entries : rename_entries rename_entry"""
        p[0] = p[1] + [p[2]]

    def p_rename_entry(self, p: yacc.YaccProduction) -> None:
        """rename_entry : IDENTIFIER COLON IDENTIFIER opt_comma"""
        p[0] = (p[1], p[3])

    # ---- substitute { "from": "to" } ----

    def p_section_substitute(self, p: yacc.YaccProduction) -> None:
        """section : SUBSTITUTE LBRACE substitute_entries RBRACE"""
        pass

    def p_substitute_entries_empty(self, p: yacc.YaccProduction) -> None:
        """substitute_entries : """
        pass

    def p_substitute_entries_multi(self, p: yacc.YaccProduction) -> None:
        """substitute_entries : substitute_entries substitute_entry"""
        pass

    def p_substitute_entry(self, p: yacc.YaccProduction) -> None:
        """substitute_entry : STRING COLON STRING opt_comma"""
        self._rules.substitutions.append((p[1], p[3]))

    # ---- Shared rules ----

    def p_name_identifier(self, p: yacc.YaccProduction) -> None:
        """name : IDENTIFIER"""
        p[0] = p[1]

    def p_name_string(self, p: yacc.YaccProduction) -> None:
        """name : STRING"""
        p[0] = p[1]

    def p_name_list_single(self, p: yacc.YaccProduction) -> None:
        """name_list : name"""
        p[0] = [p[1]]

    def p_name_list_multi(self, p: yacc.YaccProduction) -> None:
        """name_list : name_list COMMA name"""
        p[0] = p[1] + [p[3]]

    def p_ident_list_single(self, p: yacc.YaccProduction) -> None:
        """ident_list : IDENTIFIER"""
        p[0] = [p[1]]

    def p_ident_list_multi(self, p: yacc.YaccProduction) -> None:
        """ident_list : ident_list COMMA IDENTIFIER"""
        p[0] = p[1] + [p[3]]

    def p_opt_comma_yes(self, p: yacc.YaccProduction) -> None:
        """opt_comma : COMMA"""
        pass

    def p_opt_comma_no(self, p: yacc.YaccProduction) -> None:
        """opt_comma : """
        pass

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Rules: Syntax error at '{p.value}' (line {p.lineno})")
        raise SyntaxError("Rules: Unexpected end of input")
