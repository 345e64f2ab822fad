"""Rules (.pmr) Language Server: diagnostics, completion, hover via pygls."""

from __future__ import annotations

import re

from lsprotocol import types
from pygls.lsp.server import LanguageServer

from prefab_migrate.config import DEFAULT_CONFIG, SELF_TARGET
from prefab_migrate.parsing.rules_parser import RulesParser

# ---------------------------------------------------------------------------
# Static data
# ---------------------------------------------------------------------------

KEYWORDS: dict[str, str] = {
    "transform": "Redirect fields of a component kind: transform Kind { target { src: dst } }",
    "remove": "Component kinds deleted from the migrated prefab: remove [Kind, ...]",
    "whitelist": "Limit generic field copies per kind: whitelist { Kind: [field, ...] }",
    "script": "Replace script component type ids: script { \"from\": \"to\" { src: dst } }",
    "substitute": "Extra global string substitutions: substitute { \"from\": \"to\" }",
    SELF_TARGET: "Rule target naming the matched node itself",
}

# Section keywords that start a top-level block
SECTION_KEYWORDS = ("transform", "remove", "whitelist", "script", "substitute")

# Regex to extract the line number from RulesParser error messages
_LINE_RE = re.compile(r"(?:at line|\(line) (\d+)")

# Regex to extract the offending token from RulesParser error messages
_TOKEN_RE = re.compile(r"(?:error at|character) '([^']*)'")

# Regex to find component kinds named in source
_KIND_RE = re.compile(r"\btransform\s+(\"[^\"]+\"|[A-Za-z_$][\w$]*)")

# ---------------------------------------------------------------------------
# Helpers (module-level so they are easy to unit-test)
# ---------------------------------------------------------------------------


def _extract_line_from_error(message: str) -> int | None:
    """Return the 1-based line number embedded in a SyntaxError message, or None."""
    m = _LINE_RE.search(message)
    return int(m.group(1)) if m else None


def error_range(source: str, message: str) -> types.Range:
    """LSP range for a rules syntax error: the offending token, else its whole line."""
    lines = source.split("\n")
    line_no = _extract_line_from_error(message)
    if line_no is None:
        # Fallback: end of document
        line = max(len(lines) - 1, 0)
    else:
        line = min(max(line_no - 1, 0), max(len(lines) - 1, 0))
    line_text = lines[line] if lines else ""

    start_char, end_char = 0, max(len(line_text), 1)
    m = _TOKEN_RE.search(message)
    if m and m.group(1):
        found = line_text.find(m.group(1))
        if found >= 0:
            start_char, end_char = found, found + len(m.group(1))
    return types.Range(
        start=types.Position(line=line, character=start_char),
        end=types.Position(line=line, character=end_char),
    )


def _known_kinds(source: str) -> list[str]:
    """Component kinds from the built-in rules plus those named in *source*."""
    kinds = set(DEFAULT_CONFIG.transform_rules) | set(DEFAULT_CONFIG.remove_components)
    kinds.update(m.group(1).strip('"') for m in _KIND_RE.finditer(source))
    return sorted(kinds)


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


def _word_at_position(line_text: str, character: int) -> str:
    """Return the contiguous identifier-like word surrounding *character*."""
    if character < 0 or character >= len(line_text):
        return ""
    if not _is_word_char(line_text[character]):
        return ""
    # Scan left
    left = character
    while left > 0 and _is_word_char(line_text[left - 1]):
        left -= 1
    # Scan right
    right = character
    while right < len(line_text) and _is_word_char(line_text[right]):
        right += 1
    return line_text[left:right]


def completion_items(source: str, prefix: str) -> list[types.CompletionItem]:
    """Completion candidates for the text before the cursor on its line."""
    stripped = prefix.rstrip()
    items: list[types.CompletionItem] = []

    if stripped.endswith(("transform", "[", ",")):
        # Component kind context
        for kind in _known_kinds(source):
            items.append(
                types.CompletionItem(
                    label=kind,
                    kind=types.CompletionItemKind.Class,
                    detail="Component kind",
                )
            )
    elif not stripped:
        for keyword in SECTION_KEYWORDS:
            items.append(
                types.CompletionItem(
                    label=keyword,
                    kind=types.CompletionItemKind.Keyword,
                    detail=KEYWORDS[keyword],
                )
            )
    return items


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

server = LanguageServer("pmr-language-server", "0.1.0")
_parser = RulesParser()


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: types.DidOpenTextDocumentParams) -> None:
    _validate_document(params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: types.DidChangeTextDocumentParams) -> None:
    _validate_document(params.text_document.uri)


def _validate_document(uri: str) -> None:
    doc = server.workspace.get_text_document(uri)
    source = doc.source
    diagnostics: list[types.Diagnostic] = []
    try:
        _parser.parse(source)
    except SyntaxError as exc:
        msg = str(exc)
        diagnostics.append(
            types.Diagnostic(
                range=error_range(source, msg),
                severity=types.DiagnosticSeverity.Error,
                source="pmr",
                message=msg,
            )
        )
    server.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


@server.feature(
    types.TEXT_DOCUMENT_COMPLETION,
    types.CompletionOptions(trigger_characters=["[", ",", " "]),
)
def completions(params: types.CompletionParams) -> types.CompletionList:
    doc = server.workspace.get_text_document(params.text_document.uri)
    line_text = doc.lines[params.position.line] if params.position.line < len(doc.lines) else ""
    prefix = line_text[: params.position.character]
    return types.CompletionList(is_incomplete=False, items=completion_items(doc.source, prefix))


@server.feature(types.TEXT_DOCUMENT_HOVER)
def hover(params: types.HoverParams) -> types.Hover | None:
    doc = server.workspace.get_text_document(params.text_document.uri)
    if params.position.line >= len(doc.lines):
        return None
    line_text = doc.lines[params.position.line]
    word = _word_at_position(line_text, params.position.character)
    if word not in KEYWORDS:
        return None
    return types.Hover(
        contents=types.MarkupContent(
            kind=types.MarkupKind.Markdown,
            value=f"**{word}**: {KEYWORDS[word]}",
        )
    )


def main() -> None:
    server.start_io()


if __name__ == "__main__":
    main()
