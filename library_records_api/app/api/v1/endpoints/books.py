"""
Book endpoints for API v1.

Handlers delegate to ``BookService``.  Failures raised by the service
(``NotFoundError``, ``InvalidPayloadError``) are turned into message
envelopes by the exception handlers registered in ``main``.
"""

from typing import Dict, List

from fastapi import APIRouter, Depends, Path, status

from library_records_api.app.api.deps import get_book_service
from library_records_api.app.schemas.book import Book, BookPayload
from library_records_api.app.services import BookService
from library_records_api.app.stable import U64_MAX


router = APIRouter()


@router.post("", response_model=Book, status_code=status.HTTP_201_CREATED)
async def create_book(
    payload: BookPayload,
    service: BookService = Depends(get_book_service),
) -> Book:
    """Create a book.

    ``title``, ``author`` and ``isbn`` must be non-empty.  The response
    carries the allocated ``id`` and the ``created_at`` timestamp.
    """
    return await service.create_book(payload)


@router.get("", response_model=List[Book])
async def get_books(service: BookService = Depends(get_book_service)) -> List[Book]:
    """List all books by ascending id.  Answers 404 when there are none."""
    return await service.get_books()


@router.get("/{book_id}", response_model=Book)
async def get_book_by_id(
    book_id: int = Path(..., ge=0, le=U64_MAX),
    service: BookService = Depends(get_book_service),
) -> Book:
    return await service.get_book_by_id(book_id)


@router.put("/{book_id}", response_model=Book)
async def update_book(
    payload: BookPayload,
    book_id: int = Path(..., ge=0, le=U64_MAX),
    service: BookService = Depends(get_book_service),
) -> Book:
    """Replace every field of a book except ``id`` and ``created_at``."""
    return await service.update_book(book_id, payload)


@router.delete("/{book_id}", response_model=Dict[str, str])
async def delete_book(
    book_id: int = Path(..., ge=0, le=U64_MAX),
    service: BookService = Depends(get_book_service),
) -> Dict[str, str]:
    """Delete a book.  Loans and reservations referring to it are kept."""
    message = await service.delete_book(book_id)
    return message.envelope()
