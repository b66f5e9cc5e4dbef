"""
Growable byte address spaces.

A memory is a flat, byte addressable space measured in 64 KiB pages.
It starts empty and only ever grows.  Two implementations are provided:

* ``VectorMemory`` keeps the bytes in a ``bytearray``.  It is used by
  the test-suite and for volatile ``:memory:`` stores.
* ``FileMemory`` keeps the bytes in a single file on disk.  Every write
  goes straight to the file (optionally followed by ``fsync``), so a
  process restart that reopens the same path observes exactly the state
  of the last completed write.

Both implementations optionally enforce a page limit; ``grow`` returns
``-1`` instead of raising when the limit would be exceeded so that the
caller decides how to report the failure.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Protocol

from .errors import BoundsError, ReadOnlyMemoryError


WASM_PAGE_SIZE = 65536

logger = logging.getLogger(__name__)


class Memory(Protocol):
    """Interface shared by every address space used by the store."""

    def size(self) -> int:
        """Return the current size in pages."""

    def grow(self, pages: int) -> int:
        """Grow by ``pages`` and return the previous size, or -1 on failure."""

    def read(self, offset: int, length: int) -> bytes:
        """Return ``length`` bytes starting at ``offset``."""

    def write(self, offset: int, data: bytes) -> None:
        """Write ``data`` starting at ``offset``."""


def _check_bounds(offset: int, length: int, size_in_pages: int) -> None:
    limit = size_in_pages * WASM_PAGE_SIZE
    if offset < 0 or length < 0 or offset + length > limit:
        raise BoundsError(offset, length, limit)


class VectorMemory:
    """In-process memory backed by a ``bytearray``."""

    def __init__(self, max_pages: Optional[int] = None) -> None:
        self._buffer = bytearray()
        self.max_pages = max_pages

    def size(self) -> int:
        return len(self._buffer) // WASM_PAGE_SIZE

    def grow(self, pages: int) -> int:
        previous = self.size()
        if pages < 0:
            return -1
        if self.max_pages is not None and previous + pages > self.max_pages:
            return -1
        self._buffer.extend(bytes(pages * WASM_PAGE_SIZE))
        return previous

    def read(self, offset: int, length: int) -> bytes:
        _check_bounds(offset, length, self.size())
        return bytes(self._buffer[offset:offset + length])

    def write(self, offset: int, data: bytes) -> None:
        _check_bounds(offset, len(data), self.size())
        self._buffer[offset:offset + len(data)] = data


class FileMemory:
    """Memory persisted in a single file.

    The file length is kept a whole number of pages (a read-only memory
    ignores a partial trailing page instead of removing it).  Growing the
    memory extends the file with zero bytes; on file systems that
    support it the new region is sparse.

    Parameters
    ----------
    path : str | Path
        Location of the backing file.  It is created if missing, unless
        the memory is read only.
    max_pages : Optional[int]
        Upper bound on the memory size.  ``None`` means unlimited.
    fsync : bool
        Whether to ``fsync`` after every write and growth.  Disabling it
        trades durability against power loss for speed.
    read_only : bool
        Open an existing file without ever changing it.  ``grow`` and
        ``write`` raise ``ReadOnlyMemoryError`` and a partial trailing
        page is ignored instead of truncated.
    """

    def __init__(
        self,
        path: str | Path,
        max_pages: Optional[int] = None,
        fsync: bool = True,
        read_only: bool = False,
    ) -> None:
        self.path = Path(path)
        self.max_pages = max_pages
        self.fsync = fsync and not read_only
        self.read_only = read_only
        if read_only:
            flags = os.O_RDONLY
        else:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            flags = os.O_RDWR | os.O_CREAT
        # Windows opens files in text mode unless told otherwise
        flags |= getattr(os, "O_BINARY", 0)
        self._fd: Optional[int] = os.open(self.path, flags, 0o644)
        length = os.fstat(self._fd).st_size
        if length % WASM_PAGE_SIZE and not read_only:
            # A torn growth leaves a partial page behind; round it away.
            logger.warning(
                "Memory file %s has a partial trailing page (%d bytes); truncating",
                self.path,
                length % WASM_PAGE_SIZE,
            )
            os.ftruncate(self._fd, length - length % WASM_PAGE_SIZE)
            length = os.fstat(self._fd).st_size
        self._pages = length // WASM_PAGE_SIZE

    def _require_open(self) -> int:
        if self._fd is None:
            raise ValueError(f"Memory file {self.path} is closed")
        return self._fd

    def _require_writable(self) -> int:
        fd = self._require_open()
        if self.read_only:
            raise ReadOnlyMemoryError(f"Memory file {self.path} is open read only")
        return fd

    def size(self) -> int:
        return self._pages

    def grow(self, pages: int) -> int:
        fd = self._require_writable()
        previous = self._pages
        if pages < 0:
            return -1
        if self.max_pages is not None and previous + pages > self.max_pages:
            return -1
        try:
            os.ftruncate(fd, (previous + pages) * WASM_PAGE_SIZE)
        except OSError as exc:
            logger.error("Cannot grow memory file %s: %s", self.path, exc)
            return -1
        if self.fsync:
            os.fsync(fd)
        self._pages = previous + pages
        return previous

    def read(self, offset: int, length: int) -> bytes:
        fd = self._require_open()
        _check_bounds(offset, length, self._pages)
        chunks = []
        remaining = length
        while remaining:
            chunk = os.pread(fd, remaining, offset)
            if not chunk:
                break
            chunks.append(chunk)
            offset += len(chunk)
            remaining -= len(chunk)
        data = b"".join(chunks)
        # Bytes inside the file length but never written read back as zeros
        return data + bytes(length - len(data))

    def write(self, offset: int, data: bytes) -> None:
        fd = self._require_writable()
        _check_bounds(offset, len(data), self._pages)
        view = memoryview(data)
        while view:
            written = os.pwrite(fd, view, offset)
            offset += written
            view = view[written:]
        if self.fsync:
            os.fsync(fd)

    def close(self) -> None:
        if self._fd is not None:
            if not self.read_only:
                os.fsync(self._fd)
            os.close(self._fd)
            self._fd = None

    def __enter__(self) -> "FileMemory":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
