"""
Option handling for protocol operations.

This module turns caller-facing option values into what the command layouts
expect, before any command is built:
- Option mappings are checked for unknown keys, with suggestions
- Symbolic query classes become the single-character codes the server takes
- A bare string passed to create_database is read as the storage type

Invariants:
    - Normalisation happens at the operation boundary; layouts never see
      caller shorthands
    - Unknown option keys are errors, never silently dropped
"""

from __future__ import annotations

from collections.abc import Mapping
from difflib import get_close_matches
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Union

from .constants import (
    DEFAULT_DATABASE_TYPE,
    LEGACY_QUERY_CLASS,
    QUERY_CLASS_COMMAND,
    QUERY_CLASS_QUERY,
)
from .errors import InvalidOptionError, UnknownOptionError

OPEN_OPTIONS: FrozenSet[str] = frozenset({"database_type", "user", "password", "client_id"})
CONNECT_OPTIONS: FrozenSet[str] = frozenset({"client_id"})
CREATE_DATABASE_OPTIONS: FrozenSet[str] = frozenset({"database_type", "storage_type"})
LOAD_OPTIONS: FrozenSet[str] = frozenset({"fetch_plan"})
COMMAND_OPTIONS: FrozenSet[str] = frozenset({"query_class_name", "fetch_plan", "non_text_limit"})


class QueryClass(Enum):
    """Symbolic query classes."""

    QUERY = "query"
    COMMAND = "command"


_QUERY_CLASS_CODES = {
    QueryClass.QUERY: QUERY_CLASS_QUERY,
    QueryClass.COMMAND: QUERY_CLASS_COMMAND,
}


def validate_options(
    operation: str,
    options: Optional[Mapping[str, Any]],
    known: FrozenSet[str],
) -> Dict[str, Any]:
    """Check an options mapping and return a private copy.

    Args:
        operation: Operation name, used in error messages
        options: Caller options, None meaning no options
        known: Option names the operation accepts

    Returns:
        A new dict with the caller's options

    Raises:
        InvalidOptionError: If options is not a mapping
        UnknownOptionError: If a key is not in known
    """
    if options is None:
        return {}

    if not isinstance(options, Mapping):
        raise InvalidOptionError(
            f"Options for '{operation}' must be a mapping, got {type(options).__name__}"
        )

    unknown = sorted(set(options) - known)
    if unknown:
        name = unknown[0]
        suggestions = get_close_matches(str(name), sorted(known), n=3)
        raise UnknownOptionError(str(name), operation, suggestions)

    return dict(options)


def normalize_query_class_name(value: Union[QueryClass, str, None]) -> str:
    """Map a query class option to the code sent on the wire.

    QueryClass.QUERY (or "query") gives 'q', QueryClass.COMMAND (or
    "command") gives 'c'. None and the legacy fully qualified class name
    both give 'q'. Any other string is passed through unchanged.
    """
    if isinstance(value, str) and not isinstance(value, Enum):
        try:
            value = QueryClass(value)
        except ValueError:
            pass

    if isinstance(value, QueryClass):
        return _QUERY_CLASS_CODES[value]

    if value is None or value == LEGACY_QUERY_CLASS:
        return QUERY_CLASS_QUERY

    if not isinstance(value, str):
        raise InvalidOptionError(
            f"query_class_name must be a QueryClass or string, got {type(value).__name__}",
            option="query_class_name",
        )
    return value


def normalize_create_options(
    options: Union[Mapping[str, Any], str, None],
) -> Dict[str, Any]:
    """Expand create_database options.

    A bare string is shorthand for the storage type. The database type
    defaults to "document" unless the caller sets it.

    Example:
        >>> normalize_create_options("plain")
        {'database_type': 'document', 'storage_type': 'plain'}
    """
    if isinstance(options, str):
        options = {"storage_type": options}

    options = validate_options("create_database", options, CREATE_DATABASE_OPTIONS)

    merged: Dict[str, Any] = {"database_type": DEFAULT_DATABASE_TYPE}
    merged.update(options)
    if merged["database_type"] is not None:
        merged["database_type"] = _enum_value(merged["database_type"])
    return merged


def _enum_value(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def legacy_query_class_name(value: Union[QueryClass, str, None]) -> str:
    """Query class as revision 7 sends it: a fully qualified class name.

    None gives the synchronous SQL query class. Symbolic query classes only
    exist from revision 15 on.

    Raises:
        InvalidOptionError: For a QueryClass or a non-string value
    """
    if value is None:
        return LEGACY_QUERY_CLASS
    if isinstance(value, QueryClass):
        raise InvalidOptionError(
            f"query_class_name {value.value!r} needs protocol revision 15 or later; "
            f"pass a fully qualified class name",
            option="query_class_name",
        )
    if not isinstance(value, str):
        raise InvalidOptionError(
            f"query_class_name must be a string, got {type(value).__name__}",
            option="query_class_name",
        )
    return value
