"""
Unit tests for command layouts.

Tests cover:
- Field definition and validation
- Fixed fields and defaults
- Encoding and decoding of whole commands
- Revision layouts on the wire
"""

import pytest

from sdk.orientdb_sdk.constants import NEW_SESSION, Operation, RecordType
from sdk.orientdb_sdk.errors import ProtocolError, ShortReadError
from sdk.orientdb_sdk.protocol_v7 import COMMAND, DB_CLOSE, QUERY, RECORD_DELETE
from sdk.orientdb_sdk.protocol_v7 import DB_OPEN as DB_OPEN_7
from sdk.orientdb_sdk.protocol_v15 import CONFIG_GET, DB_OPEN, RECORD_CREATE, RECORD_LOAD
from sdk.orientdb_sdk.registry import get_registry
from sdk.orientdb_sdk.schema import CommandDef, FieldDef, FieldKind, field


class TestFieldDef:
    """Tests for FieldDef."""

    def test_field_helper(self):
        """field() parses the kind string."""
        f = field("cluster_id", "i16")

        assert f.name == "cluster_id"
        assert f.kind == FieldKind.I16
        assert not f.fixed

    def test_invalid_kind(self):
        """Unknown kind strings are rejected."""
        with pytest.raises(ValueError, match="Invalid field kind: float"):
            field("x", "float")

    def test_empty_name(self):
        """Field names cannot be empty."""
        with pytest.raises(ValueError, match="Field name cannot be empty"):
            FieldDef(name="", kind=FieldKind.I8)

    def test_fixed_and_default_conflict(self):
        """A field cannot be both fixed and defaulted."""
        with pytest.raises(ValueError, match="cannot be both fixed and defaulted"):
            field("mode", "i8", value=0, default=1)

    def test_to_dict(self):
        """Fields serialize to dict."""
        f = field("non_text_limit", "i32", default=-1, description="Row limit")

        assert f.to_dict() == {
            "name": "non_text_limit",
            "kind": "i32",
            "default": -1,
            "description": "Row limit",
        }


class TestCommandDef:
    """Tests for CommandDef."""

    @pytest.fixture
    def sample(self):
        """A small layout with one of each kind of field."""
        return CommandDef(
            name="sample",
            fields=(
                field("operation", "i8", value=99),
                field("session", "i32"),
                field("name", "string"),
                field("limit", "i32", default=-1),
                field("content", "bytes"),
            ),
        )

    def test_duplicate_field_name(self):
        """Duplicate field names are rejected."""
        with pytest.raises(ValueError, match="Duplicate field name"):
            CommandDef(name="bad", fields=(field("a", "i8"), field("a", "i16")))

    def test_operation_property(self, sample):
        """The fixed operation byte is exposed."""
        assert sample.operation == 99
        assert QUERY.operation is None

    def test_encode_wire_order(self, sample):
        """Fields are encoded in declaration order."""
        data = sample.encode(session=7, name="ab", content=b"\x01")

        assert data == (
            b"\x63"
            b"\x00\x00\x00\x07"
            b"\x00\x00\x00\x02ab"
            b"\xff\xff\xff\xff"
            b"\x00\x00\x00\x01\x01"
        )

    def test_fixed_value_wins(self, sample):
        """Caller values for fixed fields are ignored."""
        command = sample.build(operation=1, session=7)

        assert command["operation"] == 99

    def test_missing_integer_raises(self, sample):
        """Integer fields without a value or default are an error."""
        with pytest.raises(ValueError, match="Missing value for field 'session'"):
            sample.build(name="x")

    def test_missing_string_is_absent(self, sample):
        """Missing string fields are sent as absent."""
        command = sample.build(session=1)

        assert command["name"] is None
        assert command["content"] is None

    def test_wrong_type_raises(self, sample):
        """Values of the wrong type are rejected."""
        with pytest.raises(TypeError, match="must be an integer"):
            sample.build(session="1")

        with pytest.raises(TypeError, match="must be a string"):
            sample.build(session=1, name=5)

    def test_unknown_values_ignored(self, sample):
        """Values for names the layout does not carry are ignored."""
        assert sample.encode(session=1, database_type="graph") == sample.encode(session=1)

    def test_decode_round_trip(self, sample):
        """decode() reads back what encode() wrote, including absent and empty."""
        for name in (None, "", "orient"):
            data = sample.encode(session=5, name=name, content=b"")
            command = sample.decode(data)

            assert command["name"] == name
            assert command["content"] == b""
            assert command["limit"] == -1
            assert command.session == 5

    def test_decode_fixed_mismatch(self, sample):
        """Decoding fails when a fixed field has another value."""
        data = bytearray(sample.encode(session=1))
        data[0] = 1

        with pytest.raises(ProtocolError, match="Field 'operation' must be 99"):
            sample.decode(bytes(data))

    def test_decode_trailing_bytes(self, sample):
        """Leftover bytes after the last field are an error."""
        with pytest.raises(ProtocolError, match="2 trailing bytes"):
            sample.decode(sample.encode(session=1) + b"\x00\x00")

    def test_decode_truncated(self, sample):
        """Truncated input raises ShortReadError."""
        with pytest.raises(ShortReadError):
            sample.decode(sample.encode(session=1)[:-2])


class TestRevisionLayouts:
    """Wire layouts of concrete commands."""

    def test_db_close_is_operation_and_session(self):
        """DB_CLOSE carries nothing but its header."""
        assert DB_CLOSE.encode(session=42) == b"\x05\x00\x00\x00\x2a"

    def test_config_get(self):
        """CONFIG_GET is operation, session, name."""
        data = CONFIG_GET.encode(session=42, config_name="a")

        assert data == b"\x46" + b"\x00\x00\x00\x2a" + b"\x00\x00\x00\x01a"

    def test_db_open_session_is_new(self):
        """DB_OPEN always goes out with the new-session sentinel."""
        command = DB_OPEN.build(session=42, protocol_version=15, database_name="test")

        assert command.session == NEW_SESSION
        assert command["operation"] == Operation.DB_OPEN

    def test_db_open_15_adds_database_type(self):
        """Revision 15 DB_OPEN carries database_type after the name."""
        assert "database_type" not in DB_OPEN_7.get_field_names()
        names = DB_OPEN.get_field_names()

        assert names.index("database_type") == names.index("database_name") + 1

    def test_record_load_15_ignore_cache(self):
        """Revision 15 RECORD_LOAD ends with ignore_cache fixed to 1."""
        data = RECORD_LOAD.encode(session=1, cluster_id=0, cluster_position=10)

        assert data[-1:] == b"\x01"
        assert RECORD_LOAD.decode(data)["fetch_plan"] == ""

    def test_record_create_15_datasegment(self):
        """Revision 15 RECORD_CREATE has datasegment -1 before the cluster id."""
        data = RECORD_CREATE.encode(session=1, cluster_id=3, record_content=b"{}")

        assert data[5:9] == b"\xff\xff\xff\xff"
        assert data[9:11] == b"\x00\x03"
        command = RECORD_CREATE.decode(data)
        assert command["record_type"] == RecordType.DOCUMENT

    def test_record_delete_layout(self):
        """RECORD_DELETE carries id, version and sync mode."""
        command = RECORD_DELETE.decode(
            RECORD_DELETE.encode(session=1, cluster_id=2, cluster_position=9, record_version=4)
        )

        assert command["cluster_position"] == 9
        assert command["record_version"] == 4
        assert command["mode"] == 0

    def test_command_payload_nests_query(self):
        """COMMAND carries an encoded QUERY as its payload."""
        payload = QUERY.encode(query_class_name="q", text="SELECT FROM V")
        command = COMMAND.decode(COMMAND.encode(session=3, payload=payload))

        assert command["mode"] == ord("s")
        query = QUERY.decode(command["payload"])
        assert query["text"] == "SELECT FROM V"
        assert query["non_text_limit"] == -1
        assert query["serialized_params"] == b""


INTEGER_SAMPLES = {FieldKind.I8: 1, FieldKind.I16: 300, FieldKind.I32: 70000, FieldKind.I64: 2**40}


def every_layout():
    registry = get_registry()
    for tag in registry.tags():
        for name, layout in registry.get(tag).command_table.items():
            yield pytest.param(layout, id=f"{tag}-{name}")


class TestEveryLayoutRoundTrip:
    """decode(encode(command)) == command for every layout of every revision."""

    def values_for(self, layout, text):
        values = {}
        for f in layout.fields:
            if f.kind.is_integer:
                values[f.name] = INTEGER_SAMPLES[f.kind]
            elif f.kind == FieldKind.BYTES:
                values[f.name] = text.encode() if text is not None else None
            else:
                values[f.name] = text
        return values

    @pytest.mark.parametrize("text", [None, "", "orient"])
    @pytest.mark.parametrize("layout", list(every_layout()))
    def test_round_trip(self, layout, text):
        """Absent, empty and non-empty values all survive the wire."""
        command = layout.build(**self.values_for(layout, text))

        assert layout.decode(command.encode()) == command
