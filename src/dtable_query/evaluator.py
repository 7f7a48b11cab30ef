"""Evaluate parsed conditions against a snapshot of rows."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from dtable_query.columns import DEFAULT_REGISTRY, ColumnRegistry
from dtable_query.errors import ShapeError
from dtable_query.parsing import Condition, ConditionParser, Expression, iter_terms

log = logging.getLogger(__name__)

Row = dict[str, Any]


def row_identity(row: Mapping[str, Any]) -> Any:
    """Return the ``_id`` of a row."""
    try:
        return row["_id"]
    except KeyError:
        raise ShapeError(f"row has no '_id' field: {row!r}") from None


def check_rows(rows: Any) -> list[Row]:
    """Check that the store handed over a list of row mappings."""
    if not isinstance(rows, Sequence) or isinstance(rows, (str, bytes)):
        raise ShapeError(f"rows must be a list, got {type(rows).__name__}")
    for row in rows:
        if not isinstance(row, Mapping):
            raise ShapeError(f"row must be a mapping, got {type(row).__name__}")
    return list(rows)


def check_columns(columns: Any) -> list[dict[str, Any]]:
    """Check that the store handed over a list of ``{name, type, key}`` mappings."""
    if not isinstance(columns, Sequence) or isinstance(columns, (str, bytes)):
        raise ShapeError(f"columns must be a list, got {type(columns).__name__}")
    for column in columns:
        if not isinstance(column, Mapping):
            raise ShapeError(f"column must be a mapping, got {type(column).__name__}")
        if not isinstance(column.get("name"), str) or not isinstance(column.get("type"), str):
            raise ShapeError(f"column needs string 'name' and 'type': {column!r}")
    return list(columns)


def merge_rows(left: list[Row], connector: str, right: list[Row]) -> list[Row]:
    """Merge two row subsets by identity.

    ``and`` keeps the rows of ``left`` that are also in ``right``; ``or``
    appends the rows of ``right`` not already in ``left``. The order of
    ``left`` is kept in both cases.
    """
    if connector == "and":
        right_ids = {row_identity(row) for row in right}
        return [row for row in left if row_identity(row) in right_ids]
    elif connector == "or":
        left_ids = {row_identity(row) for row in left}
        return left + [row for row in right if row_identity(row) not in left_ids]
    raise ValueError(f"Unknown connector '{connector}'")


class ConditionEvaluator:
    """Filters a fixed row snapshot with parsed conditions."""

    def __init__(
        self,
        rows: Sequence[Row],
        columns: Sequence[Mapping[str, Any]],
        registry: ColumnRegistry | None = None,
    ) -> None:
        self.rows = check_rows(rows)
        self.columns = {c["name"]: c for c in check_columns(columns)}
        self.registry = registry or DEFAULT_REGISTRY

    def evaluate(self, expression: Expression) -> list[Row]:
        """Evaluate an expression as a left fold over its terms.

        Every term is matched against the full snapshot, then merged into
        the running result.
        """
        result: list[Row] = []
        for connector, term in iter_terms(expression):
            matched = self.filter_rows(term)
            if connector is None:
                result = matched
            else:
                result = merge_rows(result, connector, matched)
        return result

    def filter_rows(self, term: Condition) -> list[Row]:
        """Return the snapshot rows matching a single term, in snapshot order."""
        schema = self.columns.get(term.column)
        if schema is None:
            log.debug("unknown column %r, term matches no rows", term.column)
            return []

        column = self.registry.get(schema["type"])
        literal = column.validate(term.operator, term.value)

        matched = []
        for row in self.rows:
            # Stores omit empty cells, such rows never match
            if term.column not in row:
                continue
            if column.wrap(row[term.column]).compare(term.operator, literal):
                matched.append(row)

        log.debug(
            "term %s %s %r matched %d of %d rows",
            term.column, term.operator, term.value, len(matched), len(self.rows),
        )
        return matched


def filter_rows(
    rows: Sequence[Row],
    columns: Sequence[Mapping[str, Any]],
    conditions: str,
    registry: ColumnRegistry | None = None,
) -> list[Row]:
    """Parse ``conditions`` and return the matching rows.

    A blank condition matches every row.
    """
    evaluator = ConditionEvaluator(rows, columns, registry)
    expression = ConditionParser().parse(conditions)
    if expression is None:
        return list(evaluator.rows)
    return evaluator.evaluate(expression)
