"""
Shared plumbing of the record services.

Each concrete service owns one stable map of the storage.  This base
class implements the parts that are identical for every entity kind:
listing, lookup by id, deletion, id allocation and the record size
check performed before anything is written.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Generic, List, Optional, TypeVar

from pydantic import BaseModel

from library_records_api.app.core.errors import InvalidPayloadError, NotFoundError
from library_records_api.app.core.storage import LibraryStorage
from library_records_api.app.schemas.message import Message
from library_records_api.app.services.id_service import IdAllocator
from library_records_api.app.stable import U64_MAX, ModelCodec, StableBTreeMap


E = TypeVar("E", bound=BaseModel)

Clock = Callable[[], int]

logger = logging.getLogger(__name__)


class RecordService(Generic[E]):
    """Common operations over one map of entities.

    Parameters
    ----------
    storage : LibraryStorage
        The storage container built at start-up.
    clock : Callable[[], int]
        Source of creation timestamps (nanoseconds since the epoch).
    empty_list_is_error : bool
        Whether listing an empty collection fails with ``NotFound``
        (the default) or returns an empty list.
    """

    #: Singular name used in messages, e.g. ``"Book"``.
    kind: str = ""
    #: Plural name used in messages, e.g. ``"books"``.
    plural: str = ""

    def __init__(
        self,
        storage: LibraryStorage,
        clock: Optional[Clock] = None,
        empty_list_is_error: bool = True,
    ) -> None:
        self.storage = storage
        self.clock: Clock = clock or time.time_ns
        self.empty_list_is_error = empty_list_is_error
        self.ids = IdAllocator(storage)

    @property
    def records(self) -> StableBTreeMap[E]:
        raise NotImplementedError

    @property
    def codec(self) -> ModelCodec[E]:
        return self.records.codec  # type: ignore[return-value]

    def _not_found(self) -> NotFoundError:
        return NotFoundError(f"{self.kind} not found")

    def _ensure_fits(self, record: E) -> None:
        """Reject records whose encoding would not fit the map.

        The check uses the largest possible id so that a record accepted
        here still fits once its real id is assigned.
        """
        probe = record.model_copy(update={"id": U64_MAX})
        if not self.codec.fits(probe):
            raise InvalidPayloadError(
                f"{self.kind} exceeds the maximum encoded size of {self.codec.max_size} bytes"
            )

    def _insert_new(self, build: Callable[[int], E]) -> E:
        """Allocate an id, build the record with it and store it."""
        with self.storage.lock:
            self._ensure_fits(build(0))
            record = build(self.ids.next_id())
            self.records.insert(record.id, record)
        logger.info("Created %s %s", self.kind.lower(), record.id)
        return record

    def _list(self) -> List[E]:
        records = self.records.values()
        if not records and self.empty_list_is_error:
            raise NotFoundError(f"No {self.plural} found")
        return records

    def _get(self, record_id: int) -> E:
        record = self.records.get(record_id)
        if record is None:
            raise self._not_found()
        return record

    def _replace(self, record_id: int, fields: dict) -> E:
        """Overwrite ``fields`` of an existing record, keeping id and creation time."""
        with self.storage.lock:
            current = self._get(record_id)
            updated = current.model_copy(update=fields)
            self._ensure_fits(updated)
            self.records.insert(record_id, updated)
        logger.info("Updated %s %s", self.kind.lower(), record_id)
        return updated

    def _delete(self, record_id: int) -> Message:
        with self.storage.lock:
            removed = self.records.remove(record_id)
        if removed is None:
            raise self._not_found()
        logger.info("Deleted %s %s", self.kind.lower(), record_id)
        return Message.success(f"{self.kind} deleted successfully")

    def _require_book_and_member(self, book_id: int, member_id: int) -> None:
        """Check that the referenced book and member exist right now."""
        if self.storage.books.get(book_id) is None:
            raise NotFoundError("Book not found")
        if self.storage.members.get(member_id) is None:
            raise NotFoundError("Member not found")
