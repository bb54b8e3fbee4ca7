"""
Command layouts for the OrientDB binary protocol.

This module provides the declarative description of every request:
- FieldKind: Wire type of a single field
- FieldDef: One field of a layout, optionally with a fixed value
- CommandDef: Ordered field list of one command
- Command: A built command, ready to be encoded

A layout is a plain tuple of fields; encoding walks it front to back and
decoding walks it the same way, so both directions always agree.

Invariants:
    - Fixed fields are emitted with their fixed value, whatever the caller passes
    - Building a command never touches a transport
    - Values for names the layout does not carry are ignored, so a newer
      revision can replace a layout without changing the operation that fills it

Example:
    >>> ConfigGet = CommandDef(
    ...     name="config_get",
    ...     fields=(
    ...         field("operation", "i8", value=Operation.CONFIG_GET),
    ...         field("session", "i32"),
    ...         field("config_name", "string"),
    ...     ),
    ... )
    >>> ConfigGet.encode(session=42, config_name="db.pool.max")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Callable

from . import codec
from .errors import ProtocolError

logger = logging.getLogger(__name__)


class FieldKind(Enum):
    """Supported wire types."""

    I8 = "i8"
    I16 = "i16"
    I32 = "i32"
    I64 = "i64"
    STRING = "string"
    BYTES = "bytes"

    @classmethod
    def from_str(cls, value: str) -> FieldKind:
        """Convert string to FieldKind."""
        for kind in cls:
            if kind.value == value:
                return kind
        raise ValueError(f"Invalid field kind: {value}")

    @property
    def is_integer(self) -> bool:
        return self not in (FieldKind.STRING, FieldKind.BYTES)


_WRITERS: dict[FieldKind, Callable[[Any, bytearray], None]] = {
    FieldKind.I8: codec.write_i8,
    FieldKind.I16: codec.write_i16,
    FieldKind.I32: codec.write_i32,
    FieldKind.I64: codec.write_i64,
    FieldKind.STRING: codec.write_string,
    FieldKind.BYTES: codec.write_bytes,
}

_READERS: dict[FieldKind, Callable[[codec.Reader], Any]] = {
    FieldKind.I8: codec.read_i8,
    FieldKind.I16: codec.read_i16,
    FieldKind.I32: codec.read_i32,
    FieldKind.I64: codec.read_i64,
    FieldKind.STRING: codec.read_string,
    FieldKind.BYTES: codec.read_bytes,
}


class _Unset:
    def __repr__(self) -> str:
        return "<unset>"


UNSET: Any = _Unset()


@dataclass(frozen=True)
class FieldDef:
    """Field definition within a command layout.

    Attributes:
        name: Field name, also the keyword used when building
        kind: Wire type
        value: Fixed wire value; callers cannot override it
        default: Value used when the caller omits the field
        description: Documentation
    """

    name: str
    kind: FieldKind
    value: Any = UNSET
    default: Any = UNSET
    description: str = ""

    def __post_init__(self) -> None:
        """Validate field definition."""
        if not self.name:
            raise ValueError("Field name cannot be empty")
        if self.value is not UNSET and self.default is not UNSET:
            raise ValueError(f"Field '{self.name}' cannot be both fixed and defaulted")

    @property
    def fixed(self) -> bool:
        """Whether the wire value is fixed by the protocol."""
        return self.value is not UNSET

    def resolve(self, values: dict[str, Any]) -> Any:
        """Pick the value to encode for this field."""
        if self.fixed:
            supplied = values.get(self.name, UNSET)
            if supplied is not UNSET and supplied != self.value:
                logger.debug(
                    f"Ignoring caller value {supplied!r} for fixed field '{self.name}'"
                )
            return self.value

        value = values.get(self.name, self.default)
        if value is UNSET:
            if self.kind.is_integer:
                raise ValueError(f"Missing value for field '{self.name}'")
            return None
        return self._coerce(value)

    def _coerce(self, value: Any) -> Any:
        if value is None:
            if self.kind.is_integer:
                raise ValueError(f"Field '{self.name}' cannot be None")
            return None
        if self.kind.is_integer:
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(
                    f"Field '{self.name}' must be an integer, got {type(value).__name__}"
                )
            return int(value)
        if self.kind == FieldKind.STRING:
            if isinstance(value, (bytes, bytearray)):
                return bytes(value).decode("utf-8")
            if not isinstance(value, str):
                raise TypeError(
                    f"Field '{self.name}' must be a string, got {type(value).__name__}"
                )
            return value
        if isinstance(value, str):
            return value.encode("utf-8")
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"Field '{self.name}' must be bytes, got {type(value).__name__}")
        return bytes(value)

    def write(self, value: Any, out: bytearray) -> None:
        _WRITERS[self.kind](value, out)

    def read(self, reader: codec.Reader) -> Any:
        value = _READERS[self.kind](reader)
        if self.fixed and value != self.value:
            raise ProtocolError(
                f"Field '{self.name}' must be {self.value!r}, got {value!r}",
                details={"field": self.name, "expected": self.value, "actual": value},
            )
        return value

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {"name": self.name, "kind": self.kind.value}
        if self.fixed:
            result["value"] = self.value
        if self.default is not UNSET:
            result["default"] = self.default
        if self.description:
            result["description"] = self.description
        return result


def field(
    name: str,
    kind: str | FieldKind,
    *,
    value: Any = UNSET,
    default: Any = UNSET,
    description: str = "",
) -> FieldDef:
    """Convenience function to create a FieldDef.

    Example:
        >>> op = field("operation", "i8", value=Operation.DB_OPEN)
        >>> limit = field("non_text_limit", "i32", default=-1)
    """
    if isinstance(kind, str):
        kind = FieldKind.from_str(kind)
    return FieldDef(name=name, kind=kind, value=value, default=default, description=description)


@dataclass(frozen=True)
class CommandDef:
    """Ordered field layout of one command.

    Attributes:
        name: Name the revision tables use for this layout
        fields: Fields in wire order
        description: Documentation
    """

    name: str
    fields: tuple[FieldDef, ...] = dataclass_field(default_factory=tuple)
    description: str = ""

    def __post_init__(self) -> None:
        """Validate command definition."""
        if not self.name:
            raise ValueError("Command name cannot be empty")

        names = [f.name for f in self.fields]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate field name in command '{self.name}'")

    @property
    def operation(self) -> int | None:
        """Fixed operation code, or None for nested payload layouts."""
        op = self.get_field("operation")
        if op is None or not op.fixed:
            return None
        return int(op.value)

    def get_field(self, name: str) -> FieldDef | None:
        """Get field by name."""
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def get_field_names(self) -> list[str]:
        """Get list of field names in wire order."""
        return [f.name for f in self.fields]

    def build(self, **values: Any) -> Command:
        """Resolve every field and return the command value object.

        Raises:
            ValueError: If an integer field has neither a value nor a default
            TypeError: If a value has the wrong type for its field
        """
        resolved = {f.name: f.resolve(values) for f in self.fields}
        return Command(definition=self, values=resolved)

    def encode(self, **values: Any) -> bytes:
        """Build and encode in one step."""
        return self.build(**values).encode()

    def read(self, reader: codec.Reader) -> Command:
        """Read one command of this layout from a reader."""
        values = {f.name: f.read(reader) for f in self.fields}
        return Command(definition=self, values=values)

    def decode(self, data: bytes) -> Command:
        """Decode a complete byte string produced by encode().

        Raises:
            ProtocolError: If fixed fields differ or bytes are left over
            ShortReadError: If the data is truncated
        """
        reader = codec.BytesReader(data)
        command = self.read(reader)
        if reader.remaining:
            raise ProtocolError(
                f"{reader.remaining} trailing bytes after '{self.name}'",
                details={"command": self.name, "trailing": reader.remaining},
            )
        return command

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "fields": [f.to_dict() for f in self.fields],
            "description": self.description,
        }


@dataclass(frozen=True)
class Command:
    """One built command: a layout plus a value for each of its fields."""

    definition: CommandDef
    values: dict[str, Any]

    def __getitem__(self, name: str) -> Any:
        return self.values[name]

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def session(self) -> int | None:
        return self.values.get("session")

    def encode(self) -> bytes:
        """Encode to the exact bytes the server expects."""
        out = bytearray()
        for f in self.definition.fields:
            f.write(self.values[f.name], out)
        return bytes(out)
