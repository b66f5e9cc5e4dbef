"""
Region allocator on top of a single growable memory.

The memory manager splits one ``Memory`` into up to 255 independent
logical regions.  Each region is addressed by a small integer handle
and presented to its owner as a private growable memory
(``VirtualMemory``).  Space is handed out in fixed-size buckets; a
region is the ordered list of buckets it owns.

Layout of the underlying memory (all integers little endian)::

    page 0:
      [0..3)        magic b"MGR"
      [3]           layout version
      [4..6)        number of allocated buckets (u16)
      [6..8)        bucket size in pages (u16)
      [8..40)       reserved
      [40..2080)    region sizes in pages, 255 x u64
      [2080..34848) bucket table, one byte per bucket naming its owner
    page 1..:
      bucket data

The header is append-only: buckets are only ever added, and a bucket
never changes owner.  Reloading the header after a restart therefore
reconstructs exactly the same handle-to-region mapping.
"""

from __future__ import annotations

import logging
import struct
from typing import Dict, List

from .errors import BoundsError, CorruptedStoreError, GrowFailedError
from .memory import WASM_PAGE_SIZE, Memory


MAGIC = b"MGR"
LAYOUT_VERSION = 1

MAX_NUM_MEMORIES = 255
MAX_NUM_BUCKETS = 32768
UNALLOCATED_BUCKET_MARKER = 0xFF
DEFAULT_BUCKET_SIZE_IN_PAGES = 16

_HEADER = struct.Struct("<3sBHH32x")
MEMORY_SIZES_OFFSET = _HEADER.size
BUCKET_TABLE_OFFSET = MEMORY_SIZES_OFFSET + MAX_NUM_MEMORIES * 8
BUCKETS_OFFSET_IN_PAGES = 1

logger = logging.getLogger(__name__)


class MemoryManager:
    """Hands out ``VirtualMemory`` regions backed by one memory.

    Use :meth:`init` rather than the constructor: it formats an empty
    memory or loads the header of a previously formatted one.
    """

    def __init__(self, memory: Memory, bucket_size_in_pages: int) -> None:
        self.memory = memory
        self.bucket_size_in_pages = bucket_size_in_pages
        self.num_allocated_buckets = 0
        self.memory_sizes_in_pages: List[int] = [0] * MAX_NUM_MEMORIES
        self.memory_buckets: Dict[int, List[int]] = {}

    @classmethod
    def init(cls, memory: Memory, bucket_size_in_pages: int = DEFAULT_BUCKET_SIZE_IN_PAGES) -> "MemoryManager":
        """Return a manager for ``memory``, formatting it when empty."""
        if memory.size() == 0:
            return cls._format(memory, bucket_size_in_pages)
        return cls._load(memory, bucket_size_in_pages)

    @classmethod
    def _format(cls, memory: Memory, bucket_size_in_pages: int) -> "MemoryManager":
        if not 0 < bucket_size_in_pages <= 0xFFFF:
            raise ValueError(f"Invalid bucket size: {bucket_size_in_pages} pages")
        if memory.grow(BUCKETS_OFFSET_IN_PAGES) == -1:
            raise GrowFailedError(memory.size(), BUCKETS_OFFSET_IN_PAGES)
        manager = cls(memory, bucket_size_in_pages)
        memory.write(BUCKET_TABLE_OFFSET, bytes([UNALLOCATED_BUCKET_MARKER]) * MAX_NUM_BUCKETS)
        memory.write(MEMORY_SIZES_OFFSET, bytes(MAX_NUM_MEMORIES * 8))
        manager._save_header()
        logger.info("Formatted new memory with %d page(s) per bucket", bucket_size_in_pages)
        return manager

    @classmethod
    def _load(cls, memory: Memory, bucket_size_in_pages: int) -> "MemoryManager":
        magic, version, num_buckets, stored_bucket_size = _HEADER.unpack(memory.read(0, _HEADER.size))
        if magic != MAGIC:
            raise CorruptedStoreError(f"Bad memory manager magic: {magic!r}")
        if version != LAYOUT_VERSION:
            raise CorruptedStoreError(f"Unsupported memory manager layout version: {version}")
        if stored_bucket_size != bucket_size_in_pages:
            logger.warning(
                "Ignoring configured bucket size %d; the store was formatted with %d",
                bucket_size_in_pages,
                stored_bucket_size,
            )
        manager = cls(memory, stored_bucket_size)
        manager.num_allocated_buckets = num_buckets
        manager.memory_sizes_in_pages = list(
            struct.unpack(f"<{MAX_NUM_MEMORIES}Q", memory.read(MEMORY_SIZES_OFFSET, MAX_NUM_MEMORIES * 8))
        )
        table = memory.read(BUCKET_TABLE_OFFSET, num_buckets)
        for bucket_id, owner in enumerate(table):
            if owner == UNALLOCATED_BUCKET_MARKER:
                raise CorruptedStoreError(f"Bucket {bucket_id} is counted as allocated but has no owner")
            manager.memory_buckets.setdefault(owner, []).append(bucket_id)
        for memory_id, size in enumerate(manager.memory_sizes_in_pages):
            owned = len(manager.memory_buckets.get(memory_id, ()))
            if size > owned * stored_bucket_size:
                raise CorruptedStoreError(
                    f"Region {memory_id} claims {size} page(s) but owns only {owned} bucket(s)"
                )
        logger.info(
            "Loaded memory manager: %d bucket(s) allocated, %d page(s) per bucket",
            num_buckets,
            stored_bucket_size,
        )
        return manager

    def _save_header(self) -> None:
        self.memory.write(
            0,
            _HEADER.pack(MAGIC, LAYOUT_VERSION, self.num_allocated_buckets, self.bucket_size_in_pages),
        )

    @property
    def bucket_size_in_bytes(self) -> int:
        return self.bucket_size_in_pages * WASM_PAGE_SIZE

    def get(self, memory_id: int) -> "VirtualMemory":
        """Return the region identified by ``memory_id``."""
        if not 0 <= memory_id < MAX_NUM_MEMORIES:
            raise ValueError(f"Memory id must be in [0, {MAX_NUM_MEMORIES}), got {memory_id}")
        return VirtualMemory(self, memory_id)

    def memory_size(self, memory_id: int) -> int:
        return self.memory_sizes_in_pages[memory_id]

    def grow(self, memory_id: int, pages: int) -> int:
        """Grow a region by ``pages``; return its previous size or -1."""
        old_size = self.memory_sizes_in_pages[memory_id]
        if pages == 0:
            return old_size
        new_size = old_size + pages
        owned = self.memory_buckets.setdefault(memory_id, [])
        required = -(-new_size // self.bucket_size_in_pages) - len(owned)
        if required > 0:
            if self.num_allocated_buckets + required > MAX_NUM_BUCKETS:
                logger.error("Bucket table exhausted while growing region %d", memory_id)
                return -1
            needed_pages = (
                BUCKETS_OFFSET_IN_PAGES
                + (self.num_allocated_buckets + required) * self.bucket_size_in_pages
            )
            deficit = needed_pages - self.memory.size()
            if deficit > 0 and self.memory.grow(deficit) == -1:
                logger.error("Backing memory refused to grow by %d page(s)", deficit)
                return -1
            new_buckets = list(range(self.num_allocated_buckets, self.num_allocated_buckets + required))
            self.memory.write(BUCKET_TABLE_OFFSET + new_buckets[0], bytes([memory_id]) * required)
            owned.extend(new_buckets)
            self.num_allocated_buckets += required
            # The header must count the new buckets before the region size
            # claims them, or a crash in between leaves an unloadable store.
            self._save_header()
            logger.debug("Allocated bucket(s) %s to region %d", new_buckets, memory_id)
        self.memory_sizes_in_pages[memory_id] = new_size
        self.memory.write(MEMORY_SIZES_OFFSET + memory_id * 8, struct.pack("<Q", new_size))
        return old_size

    def _segments(self, memory_id: int, offset: int, length: int):
        """Yield ``(real_offset, start, end)`` pieces of a virtual range."""
        limit = self.memory_sizes_in_pages[memory_id] * WASM_PAGE_SIZE
        if offset < 0 or length < 0 or offset + length > limit:
            raise BoundsError(offset, length, limit)
        bucket_bytes = self.bucket_size_in_bytes
        buckets = self.memory_buckets.get(memory_id, [])
        position = 0
        while position < length:
            virtual = offset + position
            index, within = divmod(virtual, bucket_bytes)
            take = min(bucket_bytes - within, length - position)
            real = (BUCKETS_OFFSET_IN_PAGES * WASM_PAGE_SIZE) + buckets[index] * bucket_bytes + within
            yield real, position, position + take
            position += take

    def read(self, memory_id: int, offset: int, length: int) -> bytes:
        return b"".join(
            self.memory.read(real, end - start)
            for real, start, end in self._segments(memory_id, offset, length)
        )

    def write(self, memory_id: int, offset: int, data: bytes) -> None:
        view = memoryview(data)
        for real, start, end in self._segments(memory_id, offset, len(data)):
            self.memory.write(real, bytes(view[start:end]))

    def regions(self) -> Dict[int, int]:
        """Return ``{memory_id: size_in_pages}`` for every region in use."""
        return {
            memory_id: size
            for memory_id, size in enumerate(self.memory_sizes_in_pages)
            if size or self.memory_buckets.get(memory_id)
        }


class VirtualMemory:
    """A region of a ``MemoryManager`` that behaves like a ``Memory``."""

    def __init__(self, manager: MemoryManager, memory_id: int) -> None:
        self.manager = manager
        self.memory_id = memory_id

    def size(self) -> int:
        return self.manager.memory_size(self.memory_id)

    def grow(self, pages: int) -> int:
        if pages < 0:
            return -1
        return self.manager.grow(self.memory_id, pages)

    def read(self, offset: int, length: int) -> bytes:
        return self.manager.read(self.memory_id, offset, length)

    def write(self, offset: int, data: bytes) -> None:
        self.manager.write(self.memory_id, offset, data)

    def __repr__(self) -> str:
        return f"VirtualMemory(memory_id={self.memory_id}, pages={self.size()})"
