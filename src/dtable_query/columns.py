"""Column types and the typed cell values used to evaluate conditions."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from dtable_query.errors import InvalidLiteral, ShapeError, UnsupportedOperation


class ColumnType(Enum):
    """Column kinds a table schema can declare."""

    NUMBER = "number"
    TEXT = "text"
    CHECKBOX = "checkbox"
    DATE = "date"
    SINGLE_SELECT = "single-select"
    LONG_TEXT = "long-text"
    IMAGE = "image"
    FILE = "file"
    MULTIPLE_SELECT = "multiple-select"
    COLLABORATOR = "collaborator"
    LINK = "link"
    FORMULA = "formula"
    CREATOR = "creator"
    CTIME = "ctime"
    LAST_MODIFIER = "last-modifier"
    MTIME = "mtime"
    GEOLOCATION = "geolocation"
    AUTO_NUMBER = "auto-number"
    URL = "url"

    @property
    def kind(self) -> ValueKind:
        """Return the value variant used to compare cells of this type."""
        return _TYPE_KINDS.get(self, ValueKind.TEXT)

    @property
    def is_utc_timestamp(self) -> bool:
        """Return whether stored cells are UTC timestamps (row create/modify time)."""
        return self in (ColumnType.CTIME, ColumnType.MTIME)


class ValueKind(Enum):
    """Variants of a ColumnValue."""

    NUMBER = "number"
    TIMESTAMP = "timestamp"
    BOOL = "bool"
    TEXT = "text"
    LIST = "list"


_TYPE_KINDS: dict[ColumnType, ValueKind] = {
    ColumnType.NUMBER: ValueKind.NUMBER,
    ColumnType.DATE: ValueKind.TIMESTAMP,
    ColumnType.CTIME: ValueKind.TIMESTAMP,
    ColumnType.MTIME: ValueKind.TIMESTAMP,
    ColumnType.CHECKBOX: ValueKind.BOOL,
    ColumnType.TEXT: ValueKind.TEXT,
    ColumnType.LONG_TEXT: ValueKind.TEXT,
    ColumnType.MULTIPLE_SELECT: ValueKind.LIST,
}

# Mapping from schema type names to ColumnType enum values
COLUMN_TYPE_NAMES: dict[str, ColumnType] = {ct.value: ct for ct in ColumnType}

# Comparison operators accepted in a condition term
OPERATORS: frozenset[str] = frozenset({"=", "!=", "<>", ">", ">=", "<", "<=", "like"})

ORDERING_OPERATORS: frozenset[str] = frozenset({">", ">=", "<", "<="})

# Literal formats: "2021-3-9", "2021-3-9 14", "2021-3-9 14:05", "2021-3-9 14:05:30"
_LITERAL_DATETIME_RE = re.compile(
    r"^(\d{4})-(\d{1,2})-(\d{1,2})(?: (\d{1,2})(?::(\d{1,2})(?::(\d{1,2}))?)?)?$"
)

# Stored cells additionally use an ISO "T" separator, fractional seconds and a UTC offset
_STORED_DATETIME_RE = re.compile(
    r"^(\d{4})-(\d{1,2})-(\d{1,2})"
    r"(?:[ T](\d{1,2})(?::(\d{1,2})(?::(\d{1,2})(?:\.(\d+))?)?)?)?"
    r"(Z|([+-])(\d{2}):?(\d{2}))?$"
)


def parse_datetime(text: str, stored: bool = False) -> datetime:
    """Parse a date literal with hour, minute and second granularity.

    Args:
        text: Date string such as ``2021-3-9 14:05``.
        stored: Accept the wider format of stored cells (``T`` separator,
            fractional seconds, trailing UTC offset).

    Returns:
        A naive datetime, or an aware one when a stored cell carries an
        offset.

    Raises:
        ValueError: If the text is not a supported date.
    """
    pattern = _STORED_DATETIME_RE if stored else _LITERAL_DATETIME_RE
    m = pattern.match(text.strip())
    if m is None:
        raise ValueError(f"Invalid date '{text}'")
    parts = [int(g) if g is not None else 0 for g in m.groups()[:6]]
    if not stored:
        return datetime(*parts)

    microsecond = 0
    if m.group(7):
        # Only microsecond precision is kept
        microsecond = int(m.group(7)[:6].ljust(6, "0"))
    tzinfo = None
    if m.group(8) == "Z":
        tzinfo = timezone.utc
    elif m.group(8):
        hours, minutes = int(m.group(10)), int(m.group(11))
        if hours > 23 or minutes > 59:
            raise ValueError(f"Invalid UTC offset in '{text}'")
        offset = timedelta(hours=hours, minutes=minutes)
        tzinfo = timezone(-offset if m.group(9) == "-" else offset)
    return datetime(*parts, microsecond=microsecond, tzinfo=tzinfo)


def utc_to_local(value: datetime) -> datetime:
    """Convert a UTC datetime to naive local wall-clock time.

    Naive values are taken to be in UTC; aware values are converted from
    their own offset.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone().replace(tzinfo=None)


@dataclass(frozen=True)
class ColumnValue:
    """A typed cell value, or a typed condition literal.

    ``value`` is None when the cell (or literal) holds no value. For the
    LIST kind a stored cell holds a tuple of option names and a literal
    holds a single option name.
    """

    kind: ValueKind
    column_type: str
    value: Any = None

    @property
    def is_empty(self) -> bool:
        return self.value is None

    def _check_operand(self, other: ColumnValue, operator: str) -> None:
        if other.kind is not self.kind:
            raise UnsupportedOperation(
                self.column_type,
                operator,
                f"cannot compare {self.kind.value} value with {other.kind.value} value",
            )

    def _unsupported(self, operator: str) -> UnsupportedOperation:
        return UnsupportedOperation(self.column_type, operator)

    def equal(self, other: ColumnValue) -> bool:
        self._check_operand(other, "=")
        if self.kind is ValueKind.LIST:
            if other.value is None:
                return not self.value
            return self.value is not None and other.value in self.value
        if self.kind is ValueKind.TEXT and other.value is not None:
            return isinstance(self.value, str) and self.value == other.value
        return self.value == other.value

    def not_equal(self, other: ColumnValue) -> bool:
        return not self.equal(other)

    def like(self, other: ColumnValue) -> bool:
        """Match a ``%`` pattern against a text value."""
        if self.kind is not ValueKind.TEXT:
            raise self._unsupported("like")
        self._check_operand(other, "like")
        pattern = other.value or ""
        if "%" not in pattern:
            raise InvalidLiteral(
                self.column_type, pattern, 'There is no patterns found in "like" phrases'
            )
        if not isinstance(self.value, str):
            return False
        data = self.value
        starts = pattern.startswith("%")
        ends = pattern.endswith("%")
        if not starts and ends:
            return data.startswith(pattern[:-1])
        if starts and not ends:
            return data.endswith(pattern[1:])
        if starts and ends:
            return pattern[1:-1] in data
        segments = pattern.split("%")
        return data.startswith(segments[0]) and data.endswith(segments[-1])

    def _ordered(self, other: ColumnValue, operator: str) -> tuple[Any, Any] | None:
        if self.kind not in (ValueKind.NUMBER, ValueKind.TIMESTAMP):
            raise self._unsupported(operator)
        self._check_operand(other, operator)
        if other.value is None:
            raise UnsupportedOperation(
                self.column_type,
                operator,
                "The token >, >=, <, <= does not support the null query string",
            )
        if self.value is None:
            return None
        return self.value, other.value

    def greater_than(self, other: ColumnValue) -> bool:
        pair = self._ordered(other, ">")
        return pair is not None and pair[0] > pair[1]

    def greater_equal(self, other: ColumnValue) -> bool:
        pair = self._ordered(other, ">=")
        return pair is not None and pair[0] >= pair[1]

    def less_than(self, other: ColumnValue) -> bool:
        pair = self._ordered(other, "<")
        return pair is not None and pair[0] < pair[1]

    def less_equal(self, other: ColumnValue) -> bool:
        pair = self._ordered(other, "<=")
        return pair is not None and pair[0] <= pair[1]

    def compare(self, operator: str, other: ColumnValue) -> bool:
        """Apply a condition operator with this value on the left-hand side."""
        op = operator.lower()
        if op == "=":
            return self.equal(other)
        elif op in ("!=", "<>"):
            return self.not_equal(other)
        elif op == "like":
            return self.like(other)
        elif op == ">":
            return self.greater_than(other)
        elif op == ">=":
            return self.greater_equal(other)
        elif op == "<":
            return self.less_than(other)
        elif op == "<=":
            return self.less_equal(other)
        raise self._unsupported(operator)


@dataclass(frozen=True)
class Column:
    """Parsing behaviour for one declared column type.

    ``type_name`` is the name as declared by the schema; ``column_type`` is
    None for names this package does not know, which compare like text.
    """

    type_name: str
    column_type: ColumnType | None = None

    @property
    def kind(self) -> ValueKind:
        if self.column_type is None:
            return ValueKind.TEXT
        return self.column_type.kind

    def supports(self, operator: str) -> bool:
        """Return whether cells of this column can be compared with ``operator``."""
        op = operator.lower()
        if op == "like":
            return self.kind is ValueKind.TEXT
        if op in ORDERING_OPERATORS:
            return self.kind in (ValueKind.NUMBER, ValueKind.TIMESTAMP)
        return op in OPERATORS

    def validate(self, operator: str, text: str) -> ColumnValue:
        """Parse the literal of a term, rejecting the term before any row is compared.

        Returns the parsed literal.

        Raises:
            UnsupportedOperation: If the operator does not apply to this
                column type, or an ordering is requested against no value.
            InvalidLiteral: If the literal cannot be parsed, or a like
                pattern has no ``%``.
        """
        if not self.supports(operator):
            raise UnsupportedOperation(self.type_name, operator)
        literal = self.parse_literal(text)
        op = operator.lower()
        if op in ORDERING_OPERATORS and literal.is_empty:
            raise UnsupportedOperation(
                self.type_name,
                operator,
                "The token >, >=, <, <= does not support the null query string",
            )
        if op == "like" and "%" not in (literal.value or ""):
            raise InvalidLiteral(
                self.type_name, literal.value, 'There is no patterns found in "like" phrases'
            )
        return literal

    def parse_literal(self, text: str) -> ColumnValue:
        """Parse a literal from a condition into a typed value."""
        kind = self.kind
        if kind is ValueKind.NUMBER:
            if text == "":
                return ColumnValue(kind, self.type_name)
            # float() would also take "1_000" and " 5"
            if "_" in text or text != text.strip():
                raise InvalidLiteral(self.type_name, text)
            try:
                number = float(text)
            except ValueError:
                raise InvalidLiteral(self.type_name, text) from None
            return ColumnValue(kind, self.type_name, number)
        elif kind is ValueKind.TIMESTAMP:
            if text == "":
                return ColumnValue(kind, self.type_name)
            try:
                moment = parse_datetime(text)
            except ValueError:
                raise InvalidLiteral(
                    self.type_name,
                    text,
                    f"{self.type_name} type column does not support the query string "
                    f"{text!r}, expected 'YYYY-M-D[ H[:M[:S]]]'",
                ) from None
            return ColumnValue(kind, self.type_name, moment)
        elif kind is ValueKind.BOOL:
            lowered = text.lower()
            if lowered in ("", "false"):
                return ColumnValue(kind, self.type_name, False)
            if lowered == "true":
                return ColumnValue(kind, self.type_name, True)
            raise InvalidLiteral(
                self.type_name,
                text,
                f"{self.type_name} type column does not support the query string as "
                f'"{text}", the supported query string pattern like: "true" or "false", '
                "case insensitive",
            )
        # Text and list literals pass through; "" means "no value"
        return ColumnValue(kind, self.type_name, text if text != "" else None)

    def wrap(self, raw: Any) -> ColumnValue:
        """Wrap a raw cell value handed over by the row store."""
        kind = self.kind
        if kind is ValueKind.NUMBER:
            if raw is None:
                return ColumnValue(kind, self.type_name)
            if isinstance(raw, bool) or not isinstance(raw, (int, float)):
                raise ShapeError(f"{self.type_name} cell holds non-numeric value {raw!r}")
            return ColumnValue(kind, self.type_name, float(raw))
        elif kind is ValueKind.TIMESTAMP:
            if raw is None or raw == "":
                return ColumnValue(kind, self.type_name)
            if not isinstance(raw, str):
                raise ShapeError(f"{self.type_name} cell holds non-string value {raw!r}")
            try:
                moment = parse_datetime(raw, stored=True)
            except ValueError:
                raise ShapeError(f"{self.type_name} cell holds invalid date {raw!r}") from None
            # Cells carrying an offset, and ctime/mtime cells, are instants shown in local time
            if moment.tzinfo is not None or (
                self.column_type is not None and self.column_type.is_utc_timestamp
            ):
                moment = utc_to_local(moment)
            return ColumnValue(kind, self.type_name, moment)
        elif kind is ValueKind.BOOL:
            if raw is None:
                return ColumnValue(kind, self.type_name, False)
            if not isinstance(raw, bool):
                raise ShapeError(f"{self.type_name} cell holds non-boolean value {raw!r}")
            return ColumnValue(kind, self.type_name, raw)
        elif kind is ValueKind.LIST:
            if raw is None:
                return ColumnValue(kind, self.type_name)
            if not isinstance(raw, (list, tuple)):
                raise ShapeError(f"{self.type_name} cell holds non-list value {raw!r}")
            return ColumnValue(kind, self.type_name, tuple(raw))
        if self.column_type is ColumnType.LONG_TEXT and isinstance(raw, str):
            raw = raw.strip("\n")
        return ColumnValue(kind, self.type_name, raw)


class ColumnRegistry:
    """Registry mapping schema type names to column behaviour."""

    def __init__(self) -> None:
        self._columns: dict[str, Column] = {}
        self._register_builtins()

    def _register_builtins(self) -> None:
        """Register every known column type."""
        for ct in ColumnType:
            self._columns[ct.value] = Column(type_name=ct.value, column_type=ct)

    def get(self, type_name: str) -> Column:
        """Get the column behaviour for a type name.

        Unknown type names fall back to text comparison.
        """
        column = self._columns.get(type_name)
        if column is None:
            column = Column(type_name=type_name)
        return column

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._columns


# Shared default registry; Column objects are immutable
DEFAULT_REGISTRY = ColumnRegistry()
