"""Lexer for row filter conditions such as ``age>=18 and name like "%ann%"``."""

import ply.lex as lex

from dtable_query.errors import LexError


class ConditionLexer:
    """Lexer for tokenizing filter conditions."""

    # Reserved keywords, matched case-insensitively
    reserved = {
        "and": "AND",
        "or": "OR",
        "like": "LIKE",
    }

    # Comparison operators; any other run of ! = < > lexes as a plain STRING
    operators = {
        "=": "EQ",
        "!=": "NEQ",
        "<>": "NEQ",
        ">=": "GTE",
        ">": "GT",
        "<=": "LTE",
        "<": "LT",
    }

    tokens = [
        "STRING",
        "QUOTED_STRING",
        "EQ",
        "NEQ",
        "GTE",
        "GT",
        "LTE",
        "LT",
    ] + list(reserved.values())

    t_ignore = " \t\r\n\f\v"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    def t_QUOTED_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r'"[^"]*"'
        t.value = t.value[1:-1]
        return t

    def t_OPERATOR(self, t: lex.LexToken) -> lex.LexToken:
        r"[!=<>]+"
        t.type = self.operators.get(t.value, "STRING")
        return t

    def t_WORD(self, t: lex.LexToken) -> lex.LexToken:
        r'[^\s=<>!"][^\s=<>!]*'
        t.type = self.reserved.get(t.value.lower(), "STRING")
        return t

    def t_error(self, t: lex.LexToken) -> None:
        if t.value[0] == '"':
            raise LexError(f"Unterminated quoted string at position {t.lexpos}", t.lexpos)
        raise LexError(f"Illegal character {t.value[0]!r} at position {t.lexpos}", t.lexpos)

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        kwargs.setdefault("errorlog", lex.NullLogger())
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        if self.lexer is None:
            self.build()
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens
