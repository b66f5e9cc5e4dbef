"""
Bounded byte encodings for values kept in stable structures.

A codec turns a value into bytes and back and declares how large the
encoding may get (``max_size``) and whether every encoding has exactly
that size (``is_fixed_size``).  Stable structures reserve space from
these declarations without looking at the values themselves.

Two codecs cover everything the store persists:

* ``U64Codec`` for unsigned 64-bit integers (the id counter);
* ``ModelCodec`` for pydantic models, encoded as compact JSON.
"""

from __future__ import annotations

import struct
from typing import Generic, Type, TypeVar

from pydantic import BaseModel

from .errors import ValueTooLargeError


T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

U64_MAX = 2**64 - 1
DEFAULT_MAX_RECORD_SIZE = 1024


class RecordCodec(Generic[T]):
    """Encoding contract consumed by ``StableCell`` and ``StableBTreeMap``."""

    max_size: int
    is_fixed_size: bool

    def to_bytes(self, value: T) -> bytes:
        raise NotImplementedError

    def from_bytes(self, data: bytes) -> T:
        raise NotImplementedError

    def encode(self, value: T) -> bytes:
        """Encode ``value`` and enforce the declared bound."""
        data = self.to_bytes(value)
        if len(data) > self.max_size:
            raise ValueTooLargeError(len(data), self.max_size)
        if self.is_fixed_size and len(data) != self.max_size:
            raise ValueError(f"Fixed-size codec produced {len(data)} bytes instead of {self.max_size}")
        return data

    def decode(self, data: bytes) -> T:
        return self.from_bytes(data)


class U64Codec(RecordCodec[int]):
    max_size = 8
    is_fixed_size = True

    _struct = struct.Struct("<Q")

    def to_bytes(self, value: int) -> bytes:
        if not 0 <= value <= U64_MAX:
            raise OverflowError(f"{value} does not fit in an unsigned 64-bit integer")
        return self._struct.pack(value)

    def from_bytes(self, data: bytes) -> int:
        return self._struct.unpack(data)[0]


class ModelCodec(RecordCodec[M]):
    """Encode pydantic models as compact JSON documents.

    Field names are part of the encoding, so adding an optional field
    to a model keeps previously stored records readable.
    """

    is_fixed_size = False

    def __init__(self, model: Type[M], max_size: int = DEFAULT_MAX_RECORD_SIZE) -> None:
        self.model = model
        self.max_size = max_size

    def to_bytes(self, value: M) -> bytes:
        return value.model_dump_json().encode("utf-8")

    def from_bytes(self, data: bytes) -> M:
        return self.model.model_validate_json(data)

    def fits(self, value: M) -> bool:
        """Return ``True`` if ``value`` encodes within ``max_size``."""
        return len(self.to_bytes(value)) <= self.max_size

    def __repr__(self) -> str:
        return f"ModelCodec({self.model.__name__}, max_size={self.max_size})"
