"""
Scripted server replies for tests.

Example:
    >>> data = Reply().ok(session=42).i64(1024).build()
    >>> transport = InMemoryTransport(data)
"""

from sdk.orientdb_sdk import codec


class Reply:
    """Builds server bytes with the same codec the client reads with."""

    def __init__(self) -> None:
        self.out = bytearray()

    def i8(self, value: int) -> "Reply":
        codec.write_i8(value, self.out)
        return self

    def i16(self, value: int) -> "Reply":
        codec.write_i16(value, self.out)
        return self

    def i32(self, value: int) -> "Reply":
        codec.write_i32(value, self.out)
        return self

    def i64(self, value: int) -> "Reply":
        codec.write_i64(value, self.out)
        return self

    def string(self, value) -> "Reply":
        codec.write_string(value, self.out)
        return self

    def blob(self, value) -> "Reply":
        codec.write_bytes(value, self.out)
        return self

    def ok(self, session: int) -> "Reply":
        """Success preamble."""
        return self.i8(0).i32(session)

    def error(self, session: int, *exceptions: tuple) -> "Reply":
        """Error preamble followed by an exception chain."""
        self.i8(1).i32(session)
        for exception_class, message in exceptions:
            self.i8(1).string(exception_class).string(message)
        return self.i8(0)

    def build(self) -> bytes:
        return bytes(self.out)
