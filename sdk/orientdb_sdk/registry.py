"""
Protocol revision registry for the OrientDB SDK.

A ProtocolVersion is a table of overrides layered on its parent:
- commands: command layouts by name
- operations: orchestrator operations and response parsers by name

An operation entry is either a plain function, which replaces whatever the
parent had, or a wrap() around a function, which receives the parent's
implementation as its first argument and may pre- or post-process around
it. Anything a revision does not name is inherited from its parent.

Tables are resolved once per revision and cached, so a call never walks the
ancestry chain. A fix to a shared command reaches every revision that does
not override it.

Example:
    >>> PROTOCOL_15 = ProtocolVersion(
    ...     tag=15,
    ...     parent=PROTOCOL_7,
    ...     commands={"config_get": CONFIG_GET},
    ...     operations={"create_database": wrap(create_database)},
    ... )
    >>> registry = VersionRegistry()
    >>> registry.register(PROTOCOL_7)
    >>> registry.register(PROTOCOL_15)
    >>> registry.negotiate(server_version=19).tag
    15
"""

from __future__ import annotations

import functools
import logging
import threading
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from types import MappingProxyType
from typing import Any, Callable

from .errors import ProtocolVersionError
from .schema import CommandDef

logger = logging.getLogger(__name__)

OperationFn = Callable[..., Any]

# Global registry
_global_registry: VersionRegistry | None = None
_registry_lock = threading.Lock()


class RegistryFrozenError(Exception):
    """Registry is frozen and cannot be modified."""

    pass


class DuplicateRegistrationError(Exception):
    """A revision with this tag is already registered."""

    pass


@dataclass(frozen=True)
class Wrap:
    """Operation override that receives the parent's implementation."""

    func: OperationFn


def wrap(func: OperationFn) -> Wrap:
    """Mark func as wrapping the parent's operation of the same name.

    The wrapper is called as ``func(inner, protocol, *args, **kwargs)``.
    """
    return Wrap(func)


@dataclass(frozen=True, eq=False)
class ProtocolVersion:
    """One protocol revision.

    Attributes:
        tag: Revision number advertised in the handshake
        parent: Older revision this one inherits from
        commands: Layouts this revision adds or replaces
        operations: Operations this revision adds, replaces or wraps
        description: Documentation
    """

    tag: int
    parent: ProtocolVersion | None = None
    commands: Mapping[str, CommandDef] = dataclass_field(default_factory=dict)
    operations: Mapping[str, OperationFn | Wrap] = dataclass_field(default_factory=dict)
    description: str = ""

    def __post_init__(self) -> None:
        """Validate revision definition."""
        if self.tag <= 0:
            raise ValueError(f"tag must be positive, got {self.tag}")
        if self.parent is not None and self.parent.tag >= self.tag:
            raise ValueError(
                f"Revision {self.tag} must be newer than its parent {self.parent.tag}"
            )
        for name, definition in self.commands.items():
            if definition.name != name:
                raise ValueError(
                    f"Command registered as '{name}' is named '{definition.name}'"
                )

    def ancestry(self) -> list[ProtocolVersion]:
        """This revision followed by its parents, newest first."""
        chain = []
        version: ProtocolVersion | None = self
        while version is not None:
            chain.append(version)
            version = version.parent
        return chain

    def command_owner(self, name: str) -> ProtocolVersion | None:
        """Nearest revision in the ancestry that defines the named layout."""
        for version in self.ancestry():
            if name in version.commands:
                return version
        return None

    def operation_owner(self, name: str) -> ProtocolVersion | None:
        """Nearest revision in the ancestry that defines or wraps the operation."""
        for version in self.ancestry():
            if name in version.operations:
                return version
        return None

    @functools.cached_property
    def command_table(self) -> Mapping[str, CommandDef]:
        """Effective layouts: own overrides merged over the parent's."""
        resolved = dict(self.parent.command_table) if self.parent else {}
        resolved.update(self.commands)
        return MappingProxyType(resolved)

    @functools.cached_property
    def operation_table(self) -> Mapping[str, OperationFn]:
        """Effective operations with every wrap bound to its parent.

        Raises:
            ValueError: If a wrap has no parent operation to wrap
        """
        resolved = dict(self.parent.operation_table) if self.parent else {}

        for name, op in self.operations.items():
            if isinstance(op, Wrap):
                inner = resolved.get(name)
                if inner is None:
                    raise ValueError(
                        f"Revision {self.tag} wraps '{name}' but no ancestor defines it"
                    )
                resolved[name] = functools.partial(op.func, inner)
            else:
                resolved[name] = op

        return MappingProxyType(resolved)

    def __repr__(self) -> str:
        parent = self.parent.tag if self.parent else None
        return f"ProtocolVersion(tag={self.tag}, parent={parent})"


class VersionRegistry:
    """Registry of known protocol revisions.

    Revisions are resolved when the registry is frozen, so a broken override
    table fails at startup instead of on first use.

    Example:
        >>> registry = VersionRegistry()
        >>> registry.register(PROTOCOL_7)
        >>> registry.freeze()
    """

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._versions: dict[int, ProtocolVersion] = {}
        self._frozen = False
        self._lock = threading.Lock()

    @property
    def frozen(self) -> bool:
        """Whether registry is frozen."""
        return self._frozen

    def register(self, version: ProtocolVersion) -> None:
        """Register a revision.

        Raises:
            RegistryFrozenError: If registry is frozen
            DuplicateRegistrationError: If the tag is already registered
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError("Cannot register: registry is frozen")

            if version.tag in self._versions:
                raise DuplicateRegistrationError(
                    f"protocol revision {version.tag} already registered"
                )

            self._versions[version.tag] = version

    def get(self, tag: int) -> ProtocolVersion:
        """Get a revision by tag.

        Raises:
            ProtocolVersionError: If the tag is not registered
        """
        version = self._versions.get(tag)
        if version is None:
            raise ProtocolVersionError(
                f"Protocol revision {tag} is not supported "
                f"(known: {', '.join(str(t) for t in self.tags())})",
                version=tag,
            )
        return version

    def tags(self) -> list[int]:
        """Registered tags, oldest first."""
        return sorted(self._versions)

    def versions(self) -> Iterator[ProtocolVersion]:
        """Iterate over registered revisions, oldest first."""
        for tag in self.tags():
            yield self._versions[tag]

    @property
    def latest(self) -> ProtocolVersion:
        """Newest registered revision."""
        if not self._versions:
            raise ProtocolVersionError("No protocol revisions registered")
        return self._versions[max(self._versions)]

    def negotiate(self, server_version: int) -> ProtocolVersion:
        """Pick the newest registered revision the server understands.

        Raises:
            ProtocolVersionError: If every registered revision is newer
                than the server
        """
        usable = [tag for tag in self._versions if tag <= server_version]
        if not usable:
            raise ProtocolVersionError(
                f"Server speaks protocol revision {server_version}, "
                f"oldest supported is {min(self._versions, default=None)}",
                version=server_version,
            )

        version = self._versions[max(usable)]
        logger.info(
            f"Negotiated protocol revision {version.tag} (server revision {server_version})"
        )
        return version

    def freeze(self) -> list[int]:
        """Freeze registry and resolve every revision's tables.

        Returns:
            Registered tags, oldest first

        Raises:
            RegistryFrozenError: If already frozen
            ValueError: If a revision's override table cannot be resolved
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError("Registry is already frozen")

            for version in self._versions.values():
                version.command_table
                version.operation_table

            self._frozen = True
            return sorted(self._versions)


def get_registry() -> VersionRegistry:
    """Get the global registry holding every built-in revision."""
    global _global_registry
    with _registry_lock:
        if _global_registry is None:
            from .protocol_v7 import PROTOCOL_7
            from .protocol_v15 import PROTOCOL_15

            registry = VersionRegistry()
            registry.register(PROTOCOL_7)
            registry.register(PROTOCOL_15)
            registry.freeze()
            _global_registry = registry
        return _global_registry


def reset_registry() -> None:
    """Reset the global registry (for testing only)."""
    global _global_registry
    with _registry_lock:
        _global_registry = None
