"""Reading and writing the Borsh binary encoding."""

from __future__ import annotations

import struct
from typing import Callable, Optional, TypeVar

from .runtime import PUBKEY_BYTES, Pubkey

T = TypeVar("T")


class BorshError(ValueError):
    """Raised when bytes cannot be encoded or decoded."""


class BorshReader:
    """Decodes values one after another from a byte string."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    def read_bytes(self, size: int) -> bytes:
        end = self._pos + size
        if size < 0 or end > len(self._data):
            raise BorshError("unexpected end of input")
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def _unpack(self, fmt: str) -> int:
        return struct.unpack(fmt, self.read_bytes(struct.calcsize(fmt)))[0]

    def read_u8(self) -> int:
        return self._unpack("<B")

    def read_u32(self) -> int:
        return self._unpack("<I")

    def read_u64(self) -> int:
        return self._unpack("<Q")

    def read_i64(self) -> int:
        return self._unpack("<q")

    def read_bool(self) -> bool:
        byte = self.read_u8()
        if byte > 1:
            raise BorshError(f"invalid bool value {byte}")
        return byte == 1

    def read_string(self) -> str:
        raw = self.read_bytes(self.read_u32())
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise BorshError("string is not valid UTF-8") from exc

    def read_pubkey(self) -> Pubkey:
        return Pubkey(self.read_bytes(PUBKEY_BYTES))

    def read_option(self, read: Callable[[], T]) -> Optional[T]:
        tag = self.read_u8()
        if tag == 0:
            return None
        if tag == 1:
            return read()
        raise BorshError(f"invalid option tag {tag}")

    def finish(self) -> None:
        """Raise unless every byte has been read."""
        if self._pos != len(self._data):
            raise BorshError("not all bytes read")


class BorshWriter:
    """Encodes values into a growing byte string."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def _pack(self, fmt: str, value: int) -> None:
        try:
            self._buffer += struct.pack(fmt, value)
        except struct.error as exc:
            raise BorshError(f"value {value!r} out of range") from exc

    def write_u8(self, value: int) -> None:
        self._pack("<B", value)

    def write_u32(self, value: int) -> None:
        self._pack("<I", value)

    def write_u64(self, value: int) -> None:
        self._pack("<Q", value)

    def write_i64(self, value: int) -> None:
        self._pack("<q", value)

    def write_bool(self, value: bool) -> None:
        self._buffer.append(1 if value else 0)

    def write_bytes(self, value: bytes) -> None:
        self._buffer += value

    def write_string(self, value: str) -> None:
        raw = value.encode("utf-8")
        self.write_u32(len(raw))
        self._buffer += raw

    def write_pubkey(self, value: Pubkey) -> None:
        self._buffer += bytes(value)

    def write_option(self, value: Optional[T], write: Callable[[T], None]) -> None:
        if value is None:
            self.write_u8(0)
        else:
            self.write_u8(1)
            write(value)

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


def store(data: bytearray, payload: bytes) -> None:
    """Write an encoded value at the start of an account's data."""
    if len(payload) > len(data):
        raise BorshError("failed to write whole buffer")
    data[: len(payload)] = payload