"""Row stores: where a QuerySet fetches rows and sends mutations."""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from dtable_query.errors import RemoteRequestError

log = logging.getLogger(__name__)


class RowStore:
    """Interface of the store holding the authoritative rows and columns.

    Implementations raise RemoteRequestError when a request fails.
    """

    def list_rows(self, table_name: str, view_name: str | None = None) -> list[dict[str, Any]]:
        """Return the rows of a table (optionally restricted to a view)."""
        raise NotImplementedError

    def list_columns(self, table_name: str, view_name: str | None = None) -> list[dict[str, Any]]:
        """Return the ``{name, type, key}`` column schema of a table."""
        raise NotImplementedError

    def update_row(
        self, table_name: str, row_id: str, row_data: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Apply ``row_data`` to the row ``row_id``."""
        raise NotImplementedError

    def batch_delete_rows(self, table_name: str, row_ids: Sequence[str]) -> dict[str, Any]:
        """Delete several rows in one request."""
        raise NotImplementedError


class InMemoryRowStore(RowStore):
    """A row store kept in a dict, for offline use and tests.

    ``tables`` maps a table name to ``{"rows": [...], "columns": [...]}``.
    Views are not modelled; every view sees the whole table.
    """

    def __init__(self, tables: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._tables: dict[str, dict[str, list[dict[str, Any]]]] = {}
        for name, table in (tables or {}).items():
            self.add_table(name, table.get("columns", []), table.get("rows", []))

    def add_table(
        self,
        table_name: str,
        columns: Sequence[Mapping[str, Any]],
        rows: Sequence[Mapping[str, Any]] = (),
    ) -> None:
        """Create or replace a table."""
        self._tables[table_name] = {
            "columns": [dict(c) for c in columns],
            "rows": [copy.deepcopy(dict(r)) for r in rows],
        }

    def _table(self, table_name: str) -> dict[str, list[dict[str, Any]]]:
        table = self._tables.get(table_name)
        if table is None:
            raise RemoteRequestError(f"table '{table_name}' not found", status_code=404)
        return table

    def list_rows(self, table_name: str, view_name: str | None = None) -> list[dict[str, Any]]:
        return copy.deepcopy(self._table(table_name)["rows"])

    def list_columns(self, table_name: str, view_name: str | None = None) -> list[dict[str, Any]]:
        return copy.deepcopy(self._table(table_name)["columns"])

    def update_row(
        self, table_name: str, row_id: str, row_data: Mapping[str, Any]
    ) -> dict[str, Any]:
        for row in self._table(table_name)["rows"]:
            if row.get("_id") == row_id:
                row.update(copy.deepcopy(dict(row_data)))
                log.debug("updated row %s in %s", row_id, table_name)
                return {"success": True}
        raise RemoteRequestError(f"row '{row_id}' not found in '{table_name}'", status_code=404)

    def batch_delete_rows(self, table_name: str, row_ids: Sequence[str]) -> dict[str, Any]:
        table = self._table(table_name)
        wanted = set(row_ids)
        before = len(table["rows"])
        table["rows"] = [row for row in table["rows"] if row.get("_id") not in wanted]
        deleted = before - len(table["rows"])
        log.debug("deleted %d rows from %s", deleted, table_name)
        return {"deleted_rows": deleted}
