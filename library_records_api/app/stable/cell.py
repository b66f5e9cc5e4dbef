"""
A single value persisted in its own memory region.

Layout::

    [0..3)   magic b"SCL"
    [3]      layout version
    [4..8)   length of the encoded value (u32)
    [8..)    encoded value
"""

from __future__ import annotations

import logging
import struct
from typing import Generic, TypeVar

from .errors import CorruptedStoreError, GrowFailedError
from .memory import WASM_PAGE_SIZE, Memory
from .storable import RecordCodec


MAGIC = b"SCL"
LAYOUT_VERSION = 1

_HEADER = struct.Struct("<3sBI")

T = TypeVar("T")

logger = logging.getLogger(__name__)


class StableCell(Generic[T]):
    """Durable holder of one value.

    When the region is empty the cell is initialised with ``default``;
    otherwise the value persisted by a previous run is loaded.
    """

    def __init__(self, memory: Memory, codec: RecordCodec[T], default: T) -> None:
        self.memory = memory
        self.codec = codec
        if memory.size() == 0:
            self._value = default
            self._write(default)
        else:
            self._value = self._read()

    def _read(self) -> T:
        magic, version, length = _HEADER.unpack(self.memory.read(0, _HEADER.size))
        if magic != MAGIC:
            raise CorruptedStoreError(f"Bad cell magic: {magic!r}")
        if version != LAYOUT_VERSION:
            raise CorruptedStoreError(f"Unsupported cell layout version: {version}")
        return self.codec.decode(self.memory.read(_HEADER.size, length))

    def _write(self, value: T) -> None:
        data = self.codec.encode(value)
        required = _HEADER.size + len(data)
        capacity = self.memory.size() * WASM_PAGE_SIZE
        if required > capacity:
            pages = -(-(required - capacity) // WASM_PAGE_SIZE)
            if self.memory.grow(pages) == -1:
                raise GrowFailedError(self.memory.size(), pages)
        self.memory.write(0, _HEADER.pack(MAGIC, LAYOUT_VERSION, len(data)) + data)

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> T:
        """Persist ``value`` and return the value it replaced."""
        self._write(value)
        old, self._value = self._value, value
        return old
