"""Pydantic models for reservations."""

from pydantic import BaseModel, Field

from .common import U64


class ReservationBase(BaseModel):
    book_id: U64 = Field(0, examples=[1])
    member_id: U64 = Field(0, examples=[2])


class ReservationPayload(ReservationBase):
    pass


class Reservation(ReservationBase):
    id: U64
    reservation_date: U64 = 0

    model_config = {
        "from_attributes": True,
    }
