"""QuerySet: fetch a table once, filter it many times."""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterator, Mapping
from typing import Any

from dtable_query.columns import ColumnRegistry
from dtable_query.errors import ShapeError
from dtable_query.evaluator import Row, check_columns, check_rows, filter_rows
from dtable_query.store import RowStore

log = logging.getLogger(__name__)


class QuerySet:
    """A snapshot of one table plus the rows selected from it.

    ``raw_rows``/``raw_columns`` hold the snapshot fetched from the store;
    ``rows`` holds the materialized selection, or None before the first
    ``filter``/``all``. Filtering never mutates a QuerySet, it returns a new
    one owning a private copy of the snapshot.
    """

    def __init__(
        self,
        store: RowStore,
        table_name: str,
        view_name: str | None = None,
        registry: ColumnRegistry | None = None,
    ) -> None:
        self.store = store
        self.table_name = table_name
        self.view_name = view_name
        self.registry = registry
        self.raw_rows: list[Row] | None = None
        self.raw_columns: list[dict[str, Any]] | None = None
        self.conditions = ""
        self.rows: list[Row] | None = None

    def __repr__(self) -> str:
        return (
            f"<QuerySet table={self.table_name!r} conditions={self.conditions!r} "
            f"rows={None if self.rows is None else len(self.rows)}>"
        )

    @property
    def is_loaded(self) -> bool:
        return self.raw_rows is not None and self.raw_columns is not None

    def load(self) -> QuerySet:
        """Fetch rows and columns from the store, once."""
        if not self.is_loaded:
            rows = self.store.list_rows(self.table_name, self.view_name)
            columns = self.store.list_columns(self.table_name, self.view_name)
            self.raw_rows = check_rows(rows)
            self.raw_columns = check_columns(columns)
            log.debug(
                "loaded %d rows and %d columns from %s",
                len(self.raw_rows), len(self.raw_columns), self.table_name,
            )
        return self

    def clone(self) -> QuerySet:
        """Return a QuerySet with its own copy of the snapshot and selection."""
        self.load()
        other = QuerySet(self.store, self.table_name, self.view_name, self.registry)
        other.conditions = self.conditions
        other.raw_columns = [copy.deepcopy(column) for column in self.raw_columns]  # type: ignore[union-attr]

        # Copy each row once so the selection keeps pointing into the snapshot
        copies: dict[int, Row] = {}
        other.raw_rows = []
        for row in self.raw_rows:  # type: ignore[union-attr]
            row_copy = copy.deepcopy(row)
            copies[id(row)] = row_copy
            other.raw_rows.append(row_copy)
        if self.rows is not None:
            other.rows = [
                copies[id(row)] if id(row) in copies else copy.deepcopy(row) for row in self.rows
            ]
        return other

    def execute_conditions(self) -> None:
        """Materialize ``rows`` from the stored condition.

        A QuerySet that was already filtered narrows its current selection;
        otherwise the whole snapshot is filtered.
        """
        self.load()
        source = self.rows if self.rows is not None else self.raw_rows
        if self.conditions:
            self.rows = filter_rows(source, self.raw_columns, self.conditions, self.registry)  # type: ignore[arg-type]
        else:
            self.rows = list(source)  # type: ignore[arg-type]

    def filter(self, conditions: str) -> QuerySet:
        """Return a new QuerySet holding the rows matching ``conditions``.

        Raises:
            LexError, ParseError: If the condition is malformed.
            UnsupportedOperation: If an operator does not apply to a column.
            InvalidLiteral: If a literal cannot be parsed for its column.
        """
        other = self.clone()
        other.conditions = conditions
        other.execute_conditions()
        return other

    def all(self) -> QuerySet:
        """Return a new QuerySet selecting every row of the snapshot.

        Any selection made by an earlier ``filter`` is dropped.
        """
        other = self.clone()
        other.conditions = ""
        other.rows = list(other.raw_rows)  # type: ignore[arg-type]
        return other

    def get(self) -> Row | None:
        """Return the first matching row, evaluating the condition if needed."""
        if self.rows is not None:
            return self.rows[0] if self.rows else None
        other = self.clone()
        other.execute_conditions()
        return other.rows[0] if other.rows else None

    def first(self) -> Row | None:
        if not self.rows:
            return None
        return self.rows[0]

    def last(self) -> Row | None:
        if not self.rows:
            return None
        return self.rows[-1]

    def count(self) -> int:
        if self.rows is None:
            return 0
        return len(self.rows)

    def exists(self) -> bool:
        return bool(self.rows)

    def update(self, row_data: Mapping[str, Any]) -> list[Row]:
        """Send ``row_data`` to the store for every selected row, in order.

        Each row is updated with its own request and patched locally once
        the request succeeds. The first failing request aborts the loop;
        rows updated before it stay updated.

        Raises:
            RemoteRequestError: If the store rejects an update.
        """
        if not isinstance(row_data, Mapping):
            raise ShapeError(f"row data must be a mapping, got {type(row_data).__name__}")
        rows = self.rows or []
        for row in rows:
            row_id = row.get("_id")
            if row_id is None:
                raise ShapeError(f"failed to read row id from {row!r}")
            self.store.update_row(self.table_name, row_id, row_data)
            row.update(copy.deepcopy(dict(row_data)))
        log.debug("updated %d rows in %s", len(rows), self.table_name)
        return rows

    def delete(self) -> int:
        """Delete every selected row with one batched request.

        Returns the number of rows requested for deletion.

        Raises:
            RemoteRequestError: If the store rejects the request.
        """
        row_ids = []
        for row in self.rows or []:
            row_id = row.get("_id")
            if row_id is None:
                raise ShapeError(f"failed to read row id from {row!r}")
            row_ids.append(row_id)
        if not row_ids:
            return 0
        self.store.batch_delete_rows(self.table_name, row_ids)
        log.debug("deleted %d rows from %s", len(row_ids), self.table_name)
        return len(row_ids)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows or [])

    def __len__(self) -> int:
        return self.count()

    def __bool__(self) -> bool:
        return self.exists()


def new_queryset(store: RowStore, table_name: str, view_name: str | None = None) -> QuerySet:
    """Create an unfiltered QuerySet; the table is fetched on first use."""
    return QuerySet(store, table_name, view_name)


def filter_table(
    store: RowStore, table_name: str, conditions: str, view_name: str | None = None
) -> QuerySet:
    """Fetch a table and filter it in one call."""
    return new_queryset(store, table_name, view_name).filter(conditions)
