"""Parser for row filter conditions.

Grammar (no parentheses, no precedence)::

    expression : term
               | expression AND term
               | expression OR term
    term       : column operator literal

Connectors bind strictly left to right, so ``a or b and c`` parses as
``(a or b) and c``.
"""

from __future__ import annotations

from dataclasses import dataclass

from ply.lex import LexToken

from dtable_query.errors import ParseError
from dtable_query.parsing.condition_lexer import ConditionLexer

# Token type -> canonical operator
COMPARISON_TOKENS = {
    "EQ": "=",
    "NEQ": "!=",
    "GTE": ">=",
    "GT": ">",
    "LTE": "<=",
    "LT": "<",
    "LIKE": "like",
}

CONNECTOR_TOKENS = {"AND": "and", "OR": "or"}

LITERAL_TOKENS = ("STRING", "QUOTED_STRING")


@dataclass
class Condition:
    """A single ``column operator literal`` term."""

    column: str
    operator: str  # =, !=, >, >=, <, <=, like
    value: str
    quoted: bool = False


@dataclass
class CompoundCondition:
    """Two conditions joined by a connector."""

    left: Condition | CompoundCondition
    operator: str  # and, or
    right: Condition


Expression = Condition | CompoundCondition


def iter_terms(expression: Expression) -> list[tuple[str | None, Condition]]:
    """Flatten an expression into ``(connector, term)`` pairs in source order.

    The first pair has no connector.
    """
    pairs: list[tuple[str | None, Condition]] = []
    node: Expression = expression
    while isinstance(node, CompoundCondition):
        pairs.append((node.operator, node.right))
        node = node.left
    pairs.append((None, node))
    pairs.reverse()
    return pairs


class ConditionParser:
    """Recursive-descent parser over the condition token stream."""

    def __init__(self) -> None:
        self.lexer = ConditionLexer()
        self.lexer.build()
        self._tokens: list[LexToken] = []
        self._pos = 0

    def parse(self, data: str) -> Expression | None:
        """Parse a condition string.

        Returns None for a blank condition.

        Raises:
            LexError: On an unterminated quoted literal.
            ParseError: If the tokens do not form an expression.
        """
        self._tokens = self.lexer.tokenize(data)
        self._pos = 0
        if not self._tokens:
            return None

        expression = self._parse_expression()
        if self._pos < len(self._tokens):
            self._error(self._tokens[self._pos])
        return expression

    def _parse_expression(self) -> Expression:
        node: Expression = self._parse_term()
        while True:
            tok = self._peek()
            if tok is None or tok.type not in CONNECTOR_TOKENS:
                return node
            self._pos += 1
            right = self._parse_term()
            node = CompoundCondition(left=node, operator=CONNECTOR_TOKENS[tok.type], right=right)

    def _parse_term(self) -> Condition:
        column = self._expect(LITERAL_TOKENS)
        op = self._expect(tuple(COMPARISON_TOKENS))
        value = self._expect(LITERAL_TOKENS)
        return Condition(
            column=column.value,
            operator=COMPARISON_TOKENS[op.type],
            value=value.value,
            quoted=value.type == "QUOTED_STRING",
        )

    def _peek(self) -> LexToken | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _expect(self, types: tuple[str, ...]) -> LexToken:
        tok = self._peek()
        if tok is None or tok.type not in types:
            self._error(tok)
        self._pos += 1
        return tok  # type: ignore[return-value]

    def _error(self, tok: LexToken | None) -> None:
        if tok is None:
            raise ParseError("Syntax error at end of input")
        raise ParseError(f"Syntax error at '{tok.value}' (position {tok.lexpos})", tok.lexpos)
