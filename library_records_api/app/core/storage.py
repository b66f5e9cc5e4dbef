"""
Persistent storage of the library records.

``LibraryStorage`` owns everything the service persists: one backing
memory split by a ``MemoryManager`` into five regions.

======  ===============================  =========================
Handle  Content                          Structure
======  ===============================  =========================
0       next identifier                  ``StableCell[int]``
1       books                            ``StableBTreeMap[Book]``
2       members                          ``StableBTreeMap[Member]``
3       loans                            ``StableBTreeMap[Loan]``
4       reservations                     ``StableBTreeMap[Reservation]``
======  ===============================  =========================

The storage is built once at start-up (``open_storage``) and handed to
the API layer; nothing else creates regions.  Any failure while opening
it is fatal and aborts start-up.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from library_records_api.app.core.config import Settings
from library_records_api.app.schemas.book import Book
from library_records_api.app.schemas.loan import Loan
from library_records_api.app.schemas.member import Member
from library_records_api.app.schemas.reservation import Reservation
from library_records_api.app.stable import (
    FileMemory,
    Memory,
    MemoryManager,
    ModelCodec,
    StableBTreeMap,
    StableCell,
    StorageError,
    U64Codec,
    VectorMemory,
)
from library_records_api.app.stable.memory_manager import DEFAULT_BUCKET_SIZE_IN_PAGES


ID_COUNTER_MEMORY_ID = 0
BOOK_MEMORY_ID = 1
MEMBER_MEMORY_ID = 2
LOAN_MEMORY_ID = 3
RESERVATION_MEMORY_ID = 4

IN_MEMORY_PATH = ":memory:"

MAX_RECORD_SIZE = 1024

logger = logging.getLogger(__name__)


class LibraryStorage:
    """The id counter and the four record maps over one memory.

    Parameters
    ----------
    memory : Memory
        Backing address space.  An empty memory is formatted; a
        non-empty one is loaded as left by a previous run.
    bucket_size_in_pages : int
        Region growth granularity for newly formatted memories.
    """

    def __init__(
        self,
        memory: Memory,
        bucket_size_in_pages: int = DEFAULT_BUCKET_SIZE_IN_PAGES,
        path: str = IN_MEMORY_PATH,
    ) -> None:
        self.memory = memory
        self.path = path
        self.memory_manager = MemoryManager.init(memory, bucket_size_in_pages)
        self.id_counter: StableCell[int] = StableCell(
            self.memory_manager.get(ID_COUNTER_MEMORY_ID), U64Codec(), 0
        )
        self.book_codec = ModelCodec(Book, MAX_RECORD_SIZE)
        self.member_codec = ModelCodec(Member, MAX_RECORD_SIZE)
        self.loan_codec = ModelCodec(Loan, MAX_RECORD_SIZE)
        self.reservation_codec = ModelCodec(Reservation, MAX_RECORD_SIZE)
        self.books: StableBTreeMap[Book] = StableBTreeMap(
            self.memory_manager.get(BOOK_MEMORY_ID), self.book_codec
        )
        self.members: StableBTreeMap[Member] = StableBTreeMap(
            self.memory_manager.get(MEMBER_MEMORY_ID), self.member_codec
        )
        self.loans: StableBTreeMap[Loan] = StableBTreeMap(
            self.memory_manager.get(LOAN_MEMORY_ID), self.loan_codec
        )
        self.reservations: StableBTreeMap[Reservation] = StableBTreeMap(
            self.memory_manager.get(RESERVATION_MEMORY_ID), self.reservation_codec
        )
        # Serialises read-modify-write sequences when the storage is
        # shared with threads (sync callers, the inspection script).
        self.lock = threading.RLock()

    def close(self) -> None:
        close = getattr(self.memory, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> "LibraryStorage":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def open_storage(settings: Settings, path: Optional[str] = None, read_only: bool = False) -> LibraryStorage:
    """Open (or create) the store described by ``settings``.

    With ``read_only`` an existing store file is opened without write
    access; anything that would change it raises ``ReadOnlyMemoryError``.
    """
    storage_path = path or settings.storage_path
    max_pages = settings.storage_max_pages or None
    if storage_path == IN_MEMORY_PATH:
        memory: Memory = VectorMemory(max_pages=max_pages)
        logger.warning("Using a volatile in-memory store; nothing will survive a restart")
    else:
        memory = FileMemory(
            storage_path, max_pages=max_pages, fsync=settings.storage_fsync, read_only=read_only
        )
    try:
        storage = LibraryStorage(memory, settings.storage_bucket_size, path=storage_path)
    except StorageError:
        logger.critical("Cannot open the store at %s", storage_path, exc_info=True)
        if isinstance(memory, FileMemory):
            memory.close()
        raise
    logger.info(
        "Opened store %s: %d book(s), %d member(s), %d loan(s), %d reservation(s)",
        storage_path,
        len(storage.books),
        len(storage.members),
        len(storage.loans),
        len(storage.reservations),
    )
    return storage
