"""
Service for managing books.

Books are stored in their own stable map keyed by id.  A book is
created with the next id from the shared counter and the current time
as ``created_at``; updates replace every client-controlled field and
keep both.  Deleting a book does not touch loans or reservations that
refer to it.
"""

from __future__ import annotations

from typing import List

from library_records_api.app.core.errors import InvalidPayloadError
from library_records_api.app.schemas.book import Book, BookPayload
from library_records_api.app.schemas.message import Message
from library_records_api.app.services.base import RecordService
from library_records_api.app.stable import StableBTreeMap


class BookService(RecordService[Book]):
    """Create, list, fetch, replace and delete books."""

    kind = "Book"
    plural = "books"

    @property
    def records(self) -> StableBTreeMap[Book]:
        return self.storage.books

    @staticmethod
    def _validate(payload: BookPayload) -> None:
        if not payload.title or not payload.author or not payload.isbn:
            raise InvalidPayloadError("Ensure 'title', 'author', and 'isbn' are provided.")

    async def create_book(self, payload: BookPayload) -> Book:
        """Validate ``payload`` and store it as a new book."""
        self._validate(payload)
        fields = payload.model_dump()
        created_at = self.clock()
        return self._insert_new(lambda book_id: Book(id=book_id, created_at=created_at, **fields))

    async def get_books(self) -> List[Book]:
        """Return every book in ascending id order."""
        return self._list()

    async def get_book_by_id(self, book_id: int) -> Book:
        return self._get(book_id)

    async def update_book(self, book_id: int, payload: BookPayload) -> Book:
        """Replace all client-controlled fields of a book."""
        self._validate(payload)
        return self._replace(book_id, payload.model_dump())

    async def delete_book(self, book_id: int) -> Message:
        return self._delete(book_id)
