"""
Fixed Binary Layouts

On-chain accounts and instruction payloads are plain byte arrays with a
fixed field order, little-endian integers and no self-description. This
module describes such layouts declaratively:

    POOL = Struct([u64("pool_index"), public_key("owner"), COption(u8("bonus"))])
    POOL.decode(data)  ->  {"pool_index": 7, "owner": "...", "bonus": None}

Amounts are Python ints, so u64 and u128 values never lose precision;
encoding checks the range instead of silently truncating.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..errors import LayoutError
from .keys import PUBKEY_LENGTH, b58encode, pubkey_to_bytes


class Field:
    """A named, fixed-size slot in a layout."""

    size: int = 0

    def __init__(self, name: str):
        self.name = name

    def encode(self, value: Any) -> bytes:
        raise NotImplementedError

    def decode(self, data: bytes) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class UInt(Field):
    """Unsigned little-endian integer of a fixed byte width."""

    def __init__(self, name: str, size: int):
        super().__init__(name)
        self.size = size
        self.max_value = (1 << (8 * size)) - 1

    def encode(self, value: int) -> bytes:
        if not isinstance(value, int) or isinstance(value, bool):
            raise LayoutError(f"{self.name}: expected int, got {type(value).__name__}")
        if not 0 <= value <= self.max_value:
            raise LayoutError(f"{self.name}: {value} out of range for u{8 * self.size}")
        return value.to_bytes(self.size, "little")

    def decode(self, data: bytes) -> int:
        return int.from_bytes(data, "little")


def u8(name: str) -> UInt:
    return UInt(name, 1)


def u32(name: str) -> UInt:
    return UInt(name, 4)


def u64(name: str) -> UInt:
    return UInt(name, 8)


def u128(name: str) -> UInt:
    return UInt(name, 16)


class PublicKeyField(Field):
    """32-byte address, exposed as a base58 string."""

    size = PUBKEY_LENGTH

    def encode(self, value) -> bytes:
        try:
            return pubkey_to_bytes(value)
        except ValueError as e:
            raise LayoutError(f"{self.name}: {e}") from e

    def decode(self, data: bytes) -> str:
        return b58encode(data)


def public_key(name: str) -> PublicKeyField:
    return PublicKeyField(name)


class Blob(Field):
    """Raw bytes of a fixed length."""

    def __init__(self, name: str, size: int):
        super().__init__(name)
        self.size = size

    def encode(self, value: bytes) -> bytes:
        if len(value) != self.size:
            raise LayoutError(f"{self.name}: expected {self.size} bytes, got {len(value)}")
        return bytes(value)

    def decode(self, data: bytes) -> bytes:
        return bytes(data)


def blob(name: str, size: int) -> Blob:
    return Blob(name, size)


class COption(Field):
    """
    Solana's C-compatible option: a 4-byte tag followed by the value.

    The body is always reserved, so the field has a fixed size whether or
    not it holds a value. Tag [0,0,0,0] is None, [1,0,0,0] is Some.
    """

    TAG_SIZE = 4

    def __init__(self, inner: Field):
        super().__init__(inner.name)
        self.inner = inner
        self.size = self.TAG_SIZE + inner.size

    def encode(self, value: Optional[Any]) -> bytes:
        if value is None:
            return bytes(self.size)
        return (1).to_bytes(self.TAG_SIZE, "little") + self.inner.encode(value)

    def decode(self, data: bytes) -> Optional[Any]:
        tag = int.from_bytes(data[:self.TAG_SIZE], "little")
        if tag == 0:
            return None
        if tag == 1:
            return self.inner.decode(data[self.TAG_SIZE:])
        raise LayoutError(f"{self.name}: invalid COption tag {data[:self.TAG_SIZE].hex()}")


@dataclass
class Struct:
    """
    An ordered sequence of fields packed back to back.

    Args:
        fields: Field descriptors in wire order
        span: Total size when the account reserves more bytes than the
              fields use; encoding zero-pads up to it
    """
    fields: Sequence[Field]
    span: Optional[int] = None

    def __post_init__(self):
        names = [f.name for f in self.fields]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate field names in layout: {names}")
        if self.span is not None and self.span < self.packed_size:
            raise ValueError(f"span {self.span} smaller than packed size {self.packed_size}")

    @property
    def packed_size(self) -> int:
        return sum(f.size for f in self.fields)

    @property
    def size(self) -> int:
        return self.span if self.span is not None else self.packed_size

    def offsets(self) -> Dict[str, int]:
        """Byte offset of each field, useful for getProgramAccounts memcmp filters."""
        result, offset = {}, 0
        for f in self.fields:
            result[f.name] = offset
            offset += f.size
        return result

    def encode(self, values: Dict[str, Any]) -> bytes:
        missing = [f.name for f in self.fields if f.name not in values]
        if missing:
            raise LayoutError(f"Missing values for fields: {missing}")
        packed = b"".join(f.encode(values[f.name]) for f in self.fields)
        return packed + bytes(self.size - len(packed))

    def decode(self, data: bytes) -> Dict[str, Any]:
        if len(data) < self.packed_size:
            raise LayoutError(f"Need at least {self.packed_size} bytes, got {len(data)}")
        values, offset = {}, 0
        for f in self.fields:
            values[f.name] = f.decode(data[offset:offset + f.size])
            offset += f.size
        return values

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]
