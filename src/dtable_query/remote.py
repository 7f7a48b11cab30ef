"""Row store backed by the dtable server HTTP API."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import requests

from dtable_query.config import StoreConfig
from dtable_query.errors import RemoteRequestError, ShapeError
from dtable_query.store import RowStore

log = logging.getLogger(__name__)


class RemoteRowStore(RowStore):
    """Fetches rows and columns and sends row mutations over HTTP.

    Every call blocks for at most ``config.timeout`` seconds and is not
    retried.
    """

    def __init__(self, config: StoreConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self.session = session or requests.Session()
        self.headers = {
            "Authorization": f"Token {config.api_token}",
            "Content-Type": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        params: Mapping[str, str] | None = None,
        json: Any = None,
    ) -> dict[str, Any]:
        url = f"{self.config.base_url}/{path}/"
        log.debug("%s %s", method, url)
        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=self.headers,
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            raise RemoteRequestError(f"failed to request url: {url}: {e}", url=url) from e

        if resp.status_code >= 400:
            raise RemoteRequestError(
                f"bad response for {method}: {resp.status_code}",
                status_code=resp.status_code,
                url=url,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise RemoteRequestError(f"failed to parse response: {e}", url=url) from e
        if not isinstance(data, dict):
            raise ShapeError(f"expected a JSON object from {url}, got {type(data).__name__}")
        return data

    @staticmethod
    def _table_params(table_name: str, view_name: str | None) -> dict[str, str]:
        params = {"table_name": table_name}
        if view_name:
            params["view_name"] = view_name
        return params

    def list_rows(self, table_name: str, view_name: str | None = None) -> list[dict[str, Any]]:
        data = self._request("GET", "rows", params=self._table_params(table_name, view_name))
        rows = data.get("rows")
        if not isinstance(rows, list):
            raise ShapeError("response has no 'rows' list")
        return rows

    def list_columns(self, table_name: str, view_name: str | None = None) -> list[dict[str, Any]]:
        data = self._request("GET", "columns", params=self._table_params(table_name, view_name))
        columns = data.get("columns")
        if not isinstance(columns, list):
            raise ShapeError("response has no 'columns' list")
        return columns

    def update_row(
        self, table_name: str, row_id: str, row_data: Mapping[str, Any]
    ) -> dict[str, Any]:
        return self._request(
            "PUT",
            "rows",
            json={"table_name": table_name, "row_id": row_id, "row": dict(row_data)},
        )

    def batch_delete_rows(self, table_name: str, row_ids: Sequence[str]) -> dict[str, Any]:
        return self._request(
            "DELETE",
            "batch-delete-rows",
            json={"table_name": table_name, "row_ids": list(row_ids)},
        )
