"""Service for managing reservations of books by members."""

from __future__ import annotations

from typing import List

from library_records_api.app.core.errors import InvalidPayloadError
from library_records_api.app.schemas.message import Message
from library_records_api.app.schemas.reservation import Reservation, ReservationPayload
from library_records_api.app.services.base import RecordService
from library_records_api.app.stable import StableBTreeMap


class ReservationService(RecordService[Reservation]):
    kind = "Reservation"
    plural = "reservations"

    @property
    def records(self) -> StableBTreeMap[Reservation]:
        return self.storage.reservations

    @staticmethod
    def _validate(payload: ReservationPayload) -> None:
        if payload.book_id == 0 or payload.member_id == 0:
            raise InvalidPayloadError("Ensure 'book_id' and 'member_id' are provided.")

    async def create_reservation(self, payload: ReservationPayload) -> Reservation:
        """Reserve an existing book for an existing member."""
        self._validate(payload)
        fields = payload.model_dump()
        with self.storage.lock:
            self._require_book_and_member(payload.book_id, payload.member_id)
            reservation_date = self.clock()
            return self._insert_new(
                lambda reservation_id: Reservation(
                    id=reservation_id, reservation_date=reservation_date, **fields
                )
            )

    async def get_reservations(self) -> List[Reservation]:
        return self._list()

    async def get_reservation_by_id(self, reservation_id: int) -> Reservation:
        return self._get(reservation_id)

    async def update_reservation(self, reservation_id: int, payload: ReservationPayload) -> Reservation:
        # References are not re-checked on update
        self._validate(payload)
        return self._replace(reservation_id, payload.model_dump())

    async def delete_reservation(self, reservation_id: int) -> Message:
        return self._delete(reservation_id)
