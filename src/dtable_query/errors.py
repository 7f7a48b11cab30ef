"""Exceptions raised while filtering and mutating rows."""

from __future__ import annotations

from typing import Any


class QueryError(Exception):
    """Base class for every error raised by dtable_query."""


class LexError(QueryError, SyntaxError):
    """The condition string could not be tokenized."""

    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__(message)
        self.position = position


class ParseError(QueryError, SyntaxError):
    """The token stream does not form a valid condition expression."""

    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__(message)
        self.position = position


class UnsupportedOperation(QueryError, TypeError):
    """A column type does not support the requested comparison."""

    def __init__(self, column_type: str, operator: str, message: str | None = None) -> None:
        if message is None:
            message = f"{column_type} type column does not support the query method '{operator}'"
        super().__init__(message)
        self.column_type = column_type
        self.operator = operator


class InvalidLiteral(QueryError, ValueError):
    """A literal in the condition cannot be parsed for its column type."""

    def __init__(self, column_type: str, value: Any, message: str | None = None) -> None:
        if message is None:
            message = f"{column_type} type column does not support the query string {value!r}"
        super().__init__(message)
        self.column_type = column_type
        self.value = value


class ShapeError(QueryError, TypeError):
    """Row or column data handed over by the store is not in the expected form."""


class RemoteRequestError(QueryError, RuntimeError):
    """A request to the row store failed."""

    def __init__(
        self, message: str, status_code: int | None = None, url: str | None = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url
