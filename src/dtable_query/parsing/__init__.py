"""Parsing module for the row filter condition language."""

from dtable_query.parsing.condition_lexer import ConditionLexer
from dtable_query.parsing.condition_parser import (
    CompoundCondition,
    Condition,
    ConditionParser,
    Expression,
    iter_terms,
)

__all__ = [
    "CompoundCondition",
    "Condition",
    "ConditionLexer",
    "ConditionParser",
    "Expression",
    "iter_terms",
]
