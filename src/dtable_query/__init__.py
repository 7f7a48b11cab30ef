"""dtable_query - filter rows of a remote table with a small condition language."""

from dtable_query.columns import (
    Column,
    ColumnRegistry,
    ColumnType,
    ColumnValue,
    ValueKind,
)
from dtable_query.config import StoreConfig
from dtable_query.errors import (
    InvalidLiteral,
    LexError,
    ParseError,
    QueryError,
    RemoteRequestError,
    ShapeError,
    UnsupportedOperation,
)
from dtable_query.evaluator import ConditionEvaluator, filter_rows
from dtable_query.parsing import ConditionLexer, ConditionParser
from dtable_query.queryset import QuerySet, filter_table, new_queryset
from dtable_query.remote import RemoteRowStore
from dtable_query.store import InMemoryRowStore, RowStore

__all__ = [
    # Main API
    "QuerySet",
    "new_queryset",
    "filter_table",
    "filter_rows",
    # Stores
    "RowStore",
    "InMemoryRowStore",
    "RemoteRowStore",
    "StoreConfig",
    # Conditions
    "ConditionLexer",
    "ConditionParser",
    "ConditionEvaluator",
    # Column model
    "Column",
    "ColumnRegistry",
    "ColumnType",
    "ColumnValue",
    "ValueKind",
    # Errors
    "QueryError",
    "LexError",
    "ParseError",
    "UnsupportedOperation",
    "InvalidLiteral",
    "ShapeError",
    "RemoteRequestError",
]

__version__ = "0.1.0"
