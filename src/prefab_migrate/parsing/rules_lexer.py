"""Lexer for prefab migration rules (.pmr) files."""

import ply.lex as lex


class RulesLexer:
    """Lexer for tokenizing .pmr rules files."""

    reserved = {
        "transform": "TRANSFORM",
        "remove": "REMOVE",
        "whitelist": "WHITELIST",
        "script": "SCRIPT",
        "substitute": "SUBSTITUTE",
        "self": "SELF",
    }

    tokens = [
        "IDENTIFIER",
        "STRING",
        "COLON",
        "COMMA",
        "LBRACE",
        "RBRACE",
        "LBRACKET",
        "RBRACKET",
    ] + list(reserved.values())

    t_COLON = r":"
    t_COMMA = r","
    t_LBRACE = r"\{"
    t_RBRACE = r"\}"
    t_LBRACKET = r"\["
    t_RBRACKET = r"\]"
    t_ignore = " \t\r"

    def __init__(self) -> None:
        self.lexer: lex.LexToken = None  # type: ignore

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r'"([^"\\\n]|\\.)*"'
        t.value = t.value[1:-1]
        return t

    # Field names such as _N$string carry a '$'
    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"[a-zA-Z_$][a-zA-Z0-9_$]*"
        t.type = self.reserved.get(t.value, "IDENTIFIER")
        return t

    def t_NEWLINE(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += len(t.value)

    def t_COMMENT(self, t: lex.LexToken) -> None:
        r"--[^\n]*"
        pass

    def t_error(self, t: lex.LexToken) -> None:
        raise SyntaxError(f"Rules: Illegal character '{t.value[0]}' at line {t.lexer.lineno}")

    def build(self, **kwargs) -> None:  # type: ignore
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        self.lexer.lineno = 1
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens
