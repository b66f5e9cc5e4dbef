"""
Pydantic models for books.

``BookBase`` holds the fields a client controls; ``BookPayload`` is the
request body of create and update calls and ``Book`` is the stored
record, extended with the allocator-assigned ``id`` and the creation
timestamp.
"""

from pydantic import BaseModel, Field

from .common import I32, U64


class BookBase(BaseModel):
    title: str = Field("", examples=["Dune"])
    author: str = Field("", examples=["Frank Herbert"])
    genre: str = Field("", examples=["Science fiction"])
    publication_year: I32 = Field(0, examples=[1965])
    isbn: str = Field("", examples=["9780441172719"])
    location: str = Field("", examples=["Shelf B3"])
    available: bool = Field(True, examples=[True])


class BookPayload(BookBase):
    """Schema for creating or replacing a book."""
    pass


class Book(BookBase):
    """A book as stored and returned by the API."""

    id: U64
    created_at: U64 = 0

    model_config = {
        "from_attributes": True,
    }
