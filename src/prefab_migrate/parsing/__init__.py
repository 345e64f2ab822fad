"""Parsing module for the migration rules DSL."""

from prefab_migrate.parsing.rules_lexer import RulesLexer
from prefab_migrate.parsing.rules_parser import RulesFile, RulesParser

__all__ = [
    "RulesFile",
    "RulesLexer",
    "RulesParser",
]
