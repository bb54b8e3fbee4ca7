"""
Unit tests for the protocol revision registry.

Tests cover:
- Override resolution and wraps
- Inherited layouts staying byte-identical
- Registry freezing and duplicates
- Revision negotiation
"""

import pytest

from sdk.orientdb_sdk.constants import Operation
from sdk.orientdb_sdk.errors import ProtocolVersionError
from sdk.orientdb_sdk.protocol_v7 import PROTOCOL_7
from sdk.orientdb_sdk.protocol_v15 import PROTOCOL_15
from sdk.orientdb_sdk.registry import (
    DuplicateRegistrationError,
    ProtocolVersion,
    RegistryFrozenError,
    VersionRegistry,
    get_registry,
    wrap,
)
from sdk.orientdb_sdk.schema import CommandDef, field

# Values that satisfy every built-in layout.
SAMPLE_VALUES = dict(
    session=42,
    protocol_version=15,
    client_id="cid",
    user_name="admin",
    user_password="admin",
    database_name="test",
    database_type="document",
    database="test",
    storage_type="local",
    cluster_id=0,
    cluster_position=10,
    fetch_plan="*:-1",
    record_content=b'{"name":"foo"}',
    record_version=3,
    payload=b"\x00\x01",
    query_class_name="q",
    text="SELECT FROM V",
    config_name="db.pool.max",
)


class TestProtocolVersion:
    """Tests for ProtocolVersion."""

    def test_tag_must_be_positive(self):
        """Tags start at 1."""
        with pytest.raises(ValueError, match="tag must be positive"):
            ProtocolVersion(tag=0)

    def test_parent_must_be_older(self):
        """A revision cannot inherit from a newer one."""
        with pytest.raises(ValueError, match="must be newer than its parent"):
            ProtocolVersion(tag=5, parent=PROTOCOL_7)

    def test_command_key_must_match_name(self):
        """Layouts are registered under their own name."""
        layout = CommandDef(name="a", fields=(field("x", "i8"),))

        with pytest.raises(ValueError, match="registered as 'b' is named 'a'"):
            ProtocolVersion(tag=1, commands={"b": layout})

    def test_ancestry(self):
        """Ancestry lists the revision and its parents, newest first."""
        assert PROTOCOL_15.ancestry() == [PROTOCOL_15, PROTOCOL_7]

    def test_owners(self):
        """Owners point at the revision that last defined a name."""
        assert PROTOCOL_15.command_owner("db_open") is PROTOCOL_15
        assert PROTOCOL_15.command_owner("db_close") is PROTOCOL_7
        assert PROTOCOL_15.command_owner("nope") is None
        assert PROTOCOL_15.operation_owner("command") is PROTOCOL_15
        assert PROTOCOL_15.operation_owner("size") is PROTOCOL_7

    def test_new_command_only_in_child(self):
        """config_get exists from revision 15 only."""
        assert "config_get" in PROTOCOL_15.command_table
        assert "config_get" not in PROTOCOL_7.command_table
        assert "get_config" not in PROTOCOL_7.operation_table

    def test_replaced_layouts(self):
        """Overridden layouts come from the child."""
        for name in ("db_open", "db_create", "record_load", "record_create"):
            assert PROTOCOL_15.command_table[name] is not PROTOCOL_7.command_table[name]

    def test_inherited_layouts_are_byte_identical(self):
        """Every layout the child does not override encodes exactly like the parent's."""
        for tag in get_registry().tags():
            version = get_registry().get(tag)
            for name, layout in version.command_table.items():
                owner = version.command_owner(name)
                if owner is version or version.parent is None:
                    continue
                parent_layout = version.parent.command_table[name]
                assert layout.encode(**SAMPLE_VALUES) == parent_layout.encode(**SAMPLE_VALUES)

    def test_tables_are_read_only(self):
        """Resolved tables cannot be mutated."""
        with pytest.raises(TypeError):
            PROTOCOL_15.command_table["x"] = None

    def test_wrap_receives_parent(self):
        """A wrap is called with the parent implementation first."""
        calls = []

        def base(proto, value):
            calls.append(("base", value))
            return value * 2

        def around(inner, proto, value):
            calls.append(("around", value))
            return inner(proto, value + 1) + 1

        parent = ProtocolVersion(tag=1, operations={"op": base})
        child = ProtocolVersion(tag=2, parent=parent, operations={"op": wrap(around)})

        assert child.operation_table["op"](None, 3) == 9
        assert calls == [("around", 3), ("base", 4)]
        assert parent.operation_table["op"](None, 3) == 6

    def test_wrap_without_parent_operation(self):
        """Wrapping a name no ancestor defines fails at resolution."""
        version = ProtocolVersion(tag=1, operations={"op": wrap(lambda inner, proto: None)})

        with pytest.raises(ValueError, match="no ancestor defines it"):
            version.operation_table

    def test_replacement_does_not_leak_to_parent(self):
        """Child overrides never change the parent's table."""
        assert PROTOCOL_7.operation_table["read_cluster"] is not (
            PROTOCOL_15.operation_table["read_cluster"]
        )
        assert PROTOCOL_7.command_table["db_open"].operation == Operation.DB_OPEN


class TestVersionRegistry:
    """Tests for VersionRegistry."""

    @pytest.fixture
    def registry(self):
        registry = VersionRegistry()
        registry.register(PROTOCOL_7)
        registry.register(PROTOCOL_15)
        return registry

    def test_get(self, registry):
        """Revisions are looked up by tag."""
        assert registry.get(15) is PROTOCOL_15

    def test_get_unknown(self, registry):
        """Unknown tags raise ProtocolVersionError."""
        with pytest.raises(ProtocolVersionError, match="revision 9 is not supported"):
            registry.get(9)

    def test_duplicate_tag(self, registry):
        """A tag can only be registered once."""
        with pytest.raises(DuplicateRegistrationError, match="revision 7 already registered"):
            registry.register(PROTOCOL_7)

    def test_latest(self, registry):
        assert registry.latest is PROTOCOL_15

    def test_latest_empty(self):
        with pytest.raises(ProtocolVersionError):
            VersionRegistry().latest

    @pytest.mark.parametrize(
        "server_version,expected",
        [(7, 7), (12, 7), (15, 15), (19, 15), (36, 15)],
    )
    def test_negotiate(self, registry, server_version, expected):
        """The newest revision not newer than the server's is picked."""
        assert registry.negotiate(server_version).tag == expected

    def test_negotiate_server_too_old(self, registry):
        """A server older than every revision cannot be used."""
        with pytest.raises(ProtocolVersionError, match="oldest supported is 7"):
            registry.negotiate(5)

    def test_freeze(self, registry):
        """Frozen registries reject new revisions."""
        assert registry.freeze() == [7, 15]
        assert registry.frozen

        with pytest.raises(RegistryFrozenError):
            registry.register(ProtocolVersion(tag=20, parent=PROTOCOL_15))

        with pytest.raises(RegistryFrozenError, match="already frozen"):
            registry.freeze()

    def test_freeze_resolves_broken_tables(self):
        """A broken override table fails at freeze time."""
        registry = VersionRegistry()
        registry.register(ProtocolVersion(tag=1, operations={"x": wrap(lambda i, p: None)}))

        with pytest.raises(ValueError):
            registry.freeze()

    def test_global_registry(self):
        """The global registry holds the built-in revisions, frozen."""
        registry = get_registry()

        assert registry.tags() == [7, 15]
        assert registry.frozen
        assert get_registry() is registry
