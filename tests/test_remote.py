"""Tests for the HTTP row store and its configuration."""

from __future__ import annotations

from typing import Any

import pytest
import requests

from dtable_query.config import StoreConfig
from dtable_query.errors import RemoteRequestError, ShapeError
from dtable_query.queryset import new_queryset
from dtable_query.remote import RemoteRowStore


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, raw: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self._raw = raw

    def json(self) -> Any:
        if self._raw is not None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    """Stands in for requests.Session, replaying queued responses."""

    def __init__(self, *responses: FakeResponse | Exception) -> None:
        self.responses = list(responses)
        self.requests: list[dict[str, Any]] = []

    def request(self, method, url, **kwargs):
        self.requests.append({"method": method, "url": url, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def config():
    return StoreConfig(
        server_url="https://dtable.example.com/dtable-server/",
        api_token="secret",
        dtable_uuid="abc123",
        timeout=5,
    )


class TestStoreConfig:
    """Tests for StoreConfig."""

    def test_strips_trailing_slash(self, config):
        """Test server URL normalisation and the base URL."""
        assert config.server_url == "https://dtable.example.com/dtable-server"
        assert config.base_url == "https://dtable.example.com/dtable-server/api/v1/dtables/abc123"

    def test_from_env(self):
        """Test reading every setting from the environment."""
        config = StoreConfig.from_env(
            {
                "DTABLE_SERVER_URL": "https://x.example.com",
                "DTABLE_API_TOKEN": "tok",
                "DTABLE_UUID": "u1",
                "DTABLE_TIMEOUT": "2.5",
            }
        )
        assert config.server_url == "https://x.example.com"
        assert config.api_token == "tok"
        assert config.dtable_uuid == "u1"
        assert config.timeout == 2.5

    def test_from_env_fallback_names(self):
        """Test the lower-case variable names and the default timeout."""
        config = StoreConfig.from_env(
            {"dtable_web_url": "https://y.example.com/", "api_token": "tok", "dtable_uuid": "u2"}
        )
        assert config.server_url == "https://y.example.com"
        assert config.timeout == 30

    def test_from_env_missing(self):
        """Test that every missing variable is named."""
        with pytest.raises(ValueError, match="DTABLE_API_TOKEN, DTABLE_UUID"):
            StoreConfig.from_env({"DTABLE_SERVER_URL": "https://x.example.com"})

    def test_from_env_bad_timeout(self):
        """Test that a non-numeric timeout is rejected."""
        with pytest.raises(ValueError, match="DTABLE_TIMEOUT"):
            StoreConfig.from_env(
                {
                    "DTABLE_SERVER_URL": "https://x.example.com",
                    "DTABLE_API_TOKEN": "tok",
                    "DTABLE_UUID": "u1",
                    "DTABLE_TIMEOUT": "soon",
                }
            )

    def test_timeout_must_be_positive(self):
        """Test that a zero timeout is rejected."""
        with pytest.raises(ValueError):
            StoreConfig(server_url="https://x", api_token="t", dtable_uuid="u", timeout=0)


class TestRemoteRowStore:
    """Tests for RemoteRowStore."""

    def test_list_rows(self, config):
        """Test the rows request: URL, params, token and timeout."""
        session = FakeSession(FakeResponse(payload={"rows": [{"_id": "r1"}]}))
        store = RemoteRowStore(config, session=session)

        assert store.list_rows("people", "adults") == [{"_id": "r1"}]

        sent = session.requests[0]
        assert sent["method"] == "GET"
        assert sent["url"] == config.base_url + "/rows/"
        assert sent["params"] == {"table_name": "people", "view_name": "adults"}
        assert sent["headers"]["Authorization"] == "Token secret"
        assert sent["timeout"] == 5

    def test_list_columns(self, config):
        """Test the columns request."""
        session = FakeSession(FakeResponse(payload={"columns": [{"name": "age", "type": "number"}]}))
        store = RemoteRowStore(config, session=session)

        assert store.list_columns("people") == [{"name": "age", "type": "number"}]
        assert session.requests[0]["params"] == {"table_name": "people"}
        assert session.requests[0]["url"].endswith("/columns/")

    def test_update_row(self, config):
        """Test the update request body."""
        session = FakeSession(FakeResponse(payload={"success": True}))
        store = RemoteRowStore(config, session=session)

        store.update_row("people", "r1", {"age": 3})

        sent = session.requests[0]
        assert sent["method"] == "PUT"
        assert sent["json"] == {"table_name": "people", "row_id": "r1", "row": {"age": 3}}

    def test_batch_delete_rows(self, config):
        """Test the batch delete request body."""
        session = FakeSession(FakeResponse(payload={"deleted_rows": 2}))
        store = RemoteRowStore(config, session=session)

        assert store.batch_delete_rows("people", ("r1", "r2")) == {"deleted_rows": 2}

        sent = session.requests[0]
        assert sent["method"] == "DELETE"
        assert sent["url"].endswith("/batch-delete-rows/")
        assert sent["json"] == {"table_name": "people", "row_ids": ["r1", "r2"]}

    def test_bad_status(self, config):
        """Test that an error status carries its code and URL."""
        store = RemoteRowStore(config, session=FakeSession(FakeResponse(status_code=403)))
        with pytest.raises(RemoteRequestError) as exc_info:
            store.list_rows("people")
        assert exc_info.value.status_code == 403
        assert exc_info.value.url.endswith("/rows/")

    def test_transport_failure(self, config):
        """Test that transport errors are wrapped."""
        store = RemoteRowStore(config, session=FakeSession(requests.Timeout("timed out")))
        with pytest.raises(RemoteRequestError, match="timed out"):
            store.list_rows("people")

    def test_invalid_json(self, config):
        """Test that a body that is not JSON is reported."""
        store = RemoteRowStore(config, session=FakeSession(FakeResponse(raw="<html>")))
        with pytest.raises(RemoteRequestError, match="failed to parse response"):
            store.list_rows("people")

    def test_unexpected_shape(self, config):
        """Test that bodies of the wrong shape are rejected."""
        store = RemoteRowStore(config, session=FakeSession(FakeResponse(payload=[1, 2])))
        with pytest.raises(ShapeError):
            store.list_rows("people")
        store = RemoteRowStore(config, session=FakeSession(FakeResponse(payload={"rows": None})))
        with pytest.raises(ShapeError):
            store.list_rows("people")

    def test_queryset_over_http(self, config):
        """Test a filter and update round through the HTTP store."""
        session = FakeSession(
            FakeResponse(payload={"rows": [{"_id": "r1", "age": 10}, {"_id": "r2", "age": 40}]}),
            FakeResponse(payload={"columns": [{"name": "age", "type": "number", "key": "a"}]}),
            FakeResponse(payload={"success": True}),
        )
        store = RemoteRowStore(config, session=session)

        qs = new_queryset(store, "people").filter("age>18")
        rows = qs.update({"age": 41})

        assert rows == [{"_id": "r2", "age": 41}]
        assert session.requests[-1]["json"]["row_id"] == "r2"
