"""
Canonical tagged binary encoding for transaction payloads.

Every value has exactly one encoding: integers use the shortest magnitude,
map entries are ordered by their encoded key bytes, and the decoder rejects
anything that would not re-encode to the same bytes.

Layout::

    0x00                nil
    0x01 / 0x02         true / false
    0x03 H M...         integer, H = sign bit (0x80) | magnitude length,
                        M = big-endian magnitude (zero has length 0)
    0x05 L bytes        byte string, L = unsigned LEB128 length
    0x06 N items        list of N values
    0x07 N (k v)...     map of N entries, keys strictly ascending by encoding
"""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

TAG_NIL = 0x00
TAG_TRUE = 0x01
TAG_FALSE = 0x02
TAG_INT = 0x03
TAG_BYTES = 0x05
TAG_LIST = 0x06
TAG_MAP = 0x07

MAX_INT_BYTES = 0x7F
MAX_DEPTH = 32


class CodecError(ValueError):
    """Raised for values that cannot be encoded or bytes that are not canonical."""


def _write_varint(value: int, out: bytearray) -> None:
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return


def _encode_int(value: int, out: bytearray) -> None:
    magnitude = abs(value)
    length = (magnitude.bit_length() + 7) // 8
    if length > MAX_INT_BYTES:
        raise CodecError("integer too large")
    header = length | (0x80 if value < 0 else 0)
    out.append(TAG_INT)
    out.append(header)
    out.extend(magnitude.to_bytes(length, "big"))


def _encode_into(value: Any, out: bytearray, depth: int) -> None:
    if depth > MAX_DEPTH:
        raise CodecError("value nested too deeply")
    if value is None:
        out.append(TAG_NIL)
    elif value is True:
        out.append(TAG_TRUE)
    elif value is False:
        out.append(TAG_FALSE)
    elif isinstance(value, int):
        _encode_int(value, out)
    elif isinstance(value, (bytes, bytearray, str)):
        data = value.encode("utf-8") if isinstance(value, str) else bytes(value)
        out.append(TAG_BYTES)
        _write_varint(len(data), out)
        out.extend(data)
    elif isinstance(value, (list, tuple)):
        out.append(TAG_LIST)
        _write_varint(len(value), out)
        for item in value:
            _encode_into(item, out, depth + 1)
    elif isinstance(value, dict):
        entries: List[Tuple[bytes, bytes]] = []
        for key, item in value.items():
            entries.append((encode(key), encode(item)))
        entries.sort(key=lambda entry: entry[0])
        for previous, current in zip(entries, entries[1:]):
            if previous[0] == current[0]:
                raise CodecError("duplicate map key")
        out.append(TAG_MAP)
        _write_varint(len(entries), out)
        for key_bytes, value_bytes in entries:
            out.extend(key_bytes)
            out.extend(value_bytes)
    else:
        raise CodecError(f"unsupported type: {type(value).__name__}")


def encode(value: Any) -> bytes:
    """Encode ``value`` (nil/bool/int/bytes/str/list/dict) canonically. Strings become bytes."""
    out = bytearray()
    _encode_into(value, out, 0)
    return bytes(out)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def take(self, count: int) -> bytes:
        end = self.pos + count
        if end > len(self.data):
            raise CodecError("unexpected end of data")
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def byte(self) -> int:
        return self.take(1)[0]

    def varint(self) -> int:
        result = 0
        shift = 0
        while True:
            byte = self.byte()
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                if byte == 0 and shift:
                    raise CodecError("non-minimal length")
                return result
            shift += 7
            if shift > 63:
                raise CodecError("length overflow")


def _decode_value(reader: _Reader, depth: int) -> Any:
    if depth > MAX_DEPTH:
        raise CodecError("value nested too deeply")
    tag = reader.byte()
    if tag == TAG_NIL:
        return None
    if tag == TAG_TRUE:
        return True
    if tag == TAG_FALSE:
        return False
    if tag == TAG_INT:
        header = reader.byte()
        length = header & 0x7F
        negative = bool(header & 0x80)
        magnitude_bytes = reader.take(length)
        if length and magnitude_bytes[0] == 0:
            raise CodecError("non-minimal integer")
        if negative and not length:
            raise CodecError("negative zero")
        magnitude = int.from_bytes(magnitude_bytes, "big")
        return -magnitude if negative else magnitude
    if tag == TAG_BYTES:
        return reader.take(reader.varint())
    if tag == TAG_LIST:
        return [_decode_value(reader, depth + 1) for _ in range(reader.varint())]
    if tag == TAG_MAP:
        count = reader.varint()
        result: Dict[Any, Any] = {}
        previous_key: bytes | None = None
        for _ in range(count):
            start = reader.pos
            key = _decode_value(reader, depth + 1)
            key_bytes = reader.data[start:reader.pos]
            if previous_key is not None and key_bytes <= previous_key:
                raise CodecError("map keys not in canonical order")
            if isinstance(key, (list, dict)):
                raise CodecError("unhashable map key")
            previous_key = key_bytes
            result[key] = _decode_value(reader, depth + 1)
        return result
    raise CodecError(f"unknown tag 0x{tag:02x}")


def decode(data: bytes) -> Any:
    """Decode a canonical byte string. Byte strings come back as ``bytes``."""
    reader = _Reader(bytes(data))
    value = _decode_value(reader, 0)
    if reader.pos != len(reader.data):
        raise CodecError("trailing bytes after value")
    return value
