"""
Exception hierarchy for the stable storage layer.

Every error raised here means the durability substrate itself is in a
bad state (the backing memory cannot grow, a header is unreadable, a
record does not fit its declared bound).  Callers are expected to let
these propagate and abort the current operation rather than retry.
"""


class StorageError(Exception):
    """Base class for all storage errors."""


class GrowFailedError(StorageError):
    """Raised when a memory cannot be grown to the requested size."""

    def __init__(self, current_pages: int, requested_pages: int) -> None:
        self.current_pages = current_pages
        self.requested_pages = requested_pages
        super().__init__(
            f"Failed to grow memory from {current_pages} by {requested_pages} page(s)"
        )


class BoundsError(StorageError):
    """Raised when accessing memory outside the allocated address space."""

    def __init__(self, offset: int, length: int, limit: int) -> None:
        self.offset = offset
        self.length = length
        self.limit = limit
        super().__init__(
            f"Access of {length} byte(s) at offset {offset} exceeds memory size {limit}"
        )


class CorruptedStoreError(StorageError):
    """Raised when a magic number or layout version does not match."""


class ValueTooLargeError(StorageError):
    """Raised when an encoded value exceeds the declared maximum size."""

    def __init__(self, size: int, max_size: int) -> None:
        self.size = size
        self.max_size = max_size
        super().__init__(f"Encoded value of {size} bytes exceeds the maximum of {max_size} bytes")


class ReadOnlyMemoryError(StorageError):
    """Raised when a memory opened read only is asked to change."""
