"""Shared utility functions."""
from typing import Any

from sqlalchemy import Boolean, Integer, BigInteger
from sqlalchemy.inspection import inspect as sa_inspect

from quickhost_api.logging_config import get_logger
logger = get_logger(__name__)

# Only equality filters are supported: ?column=eq.value
FILTER_OPERATORS = {"eq"}


def row_to_dict(obj: Any) -> dict:
    """Serialize an ORM row to a plain dict of its column values."""
    mapper = sa_inspect(obj).mapper
    return {attr.key: getattr(obj, attr.key) for attr in mapper.column_attrs}


def parse_filter(expr: str) -> tuple[str, str]:
    """Parse 'eq.value' into (operator, value).

    Raises ValueError for unknown operators.
    """
    op, sep, value = expr.partition(".")
    if not sep or op not in FILTER_OPERATORS:
        raise ValueError(f"Unsupported filter expression: {expr}")
    return op, value


def parse_column_filter(expr: str) -> tuple[str, str]:
    """Parse 'column=eq.value' (the realtime filter form) into (column, value)."""
    column, sep, rest = expr.partition("=")
    if not sep or not column:
        raise ValueError(f"Unsupported filter expression: {expr}")
    _, value = parse_filter(rest)
    return column, value


def coerce_value(column, raw: str) -> Any:
    """Convert a query-string value to the python type of a mapped column."""
    col_type = column.type
    if isinstance(col_type, Boolean):
        lowered = raw.lower()
        if lowered not in ("true", "false"):
            raise ValueError(f"Expected true/false, got {raw!r}")
        return lowered == "true"
    if isinstance(col_type, (Integer, BigInteger)):
        return int(raw)
    return raw


def value_matches(actual: Any, raw: str) -> bool:
    """Compare a record value against a string filter value."""
    if isinstance(actual, bool):
        return str(actual).lower() == raw.lower()
    if actual is None:
        return raw == "null"
    return str(actual) == raw
