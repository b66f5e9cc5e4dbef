"""
Stable storage structures.

Everything the service persists lives in one growable memory.  The
``MemoryManager`` splits it into regions; each region holds either a
``StableCell`` or a ``StableBTreeMap`` whose values are encoded by a
``RecordCodec``.
"""

from .btreemap import StableBTreeMap
from .cell import StableCell
from .errors import (
    BoundsError,
    CorruptedStoreError,
    GrowFailedError,
    ReadOnlyMemoryError,
    StorageError,
    ValueTooLargeError,
)
from .memory import WASM_PAGE_SIZE, FileMemory, Memory, VectorMemory
from .memory_manager import MemoryManager, VirtualMemory
from .storable import U64_MAX, ModelCodec, RecordCodec, U64Codec

__all__ = [
    "StableBTreeMap",
    "StableCell",
    "BoundsError",
    "CorruptedStoreError",
    "GrowFailedError",
    "ReadOnlyMemoryError",
    "StorageError",
    "ValueTooLargeError",
    "WASM_PAGE_SIZE",
    "FileMemory",
    "Memory",
    "VectorMemory",
    "MemoryManager",
    "VirtualMemory",
    "U64_MAX",
    "ModelCodec",
    "RecordCodec",
    "U64Codec",
]
