"""Reservation endpoints for API v1."""

from typing import Dict, List

from fastapi import APIRouter, Depends, Path, status

from library_records_api.app.api.deps import get_reservation_service
from library_records_api.app.schemas.reservation import Reservation, ReservationPayload
from library_records_api.app.services import ReservationService
from library_records_api.app.stable import U64_MAX


router = APIRouter()


@router.post("", response_model=Reservation, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationPayload,
    service: ReservationService = Depends(get_reservation_service),
) -> Reservation:
    """Reserve a book.  Both ``book_id`` and ``member_id`` must be non-zero and exist."""
    return await service.create_reservation(payload)


@router.get("", response_model=List[Reservation])
async def get_reservations(
    service: ReservationService = Depends(get_reservation_service),
) -> List[Reservation]:
    return await service.get_reservations()


@router.get("/{reservation_id}", response_model=Reservation)
async def get_reservation_by_id(
    reservation_id: int = Path(..., ge=0, le=U64_MAX),
    service: ReservationService = Depends(get_reservation_service),
) -> Reservation:
    return await service.get_reservation_by_id(reservation_id)


@router.put("/{reservation_id}", response_model=Reservation)
async def update_reservation(
    payload: ReservationPayload,
    reservation_id: int = Path(..., ge=0, le=U64_MAX),
    service: ReservationService = Depends(get_reservation_service),
) -> Reservation:
    return await service.update_reservation(reservation_id, payload)


@router.delete("/{reservation_id}", response_model=Dict[str, str])
async def delete_reservation(
    reservation_id: int = Path(..., ge=0, le=U64_MAX),
    service: ReservationService = Depends(get_reservation_service),
) -> Dict[str, str]:
    message = await service.delete_reservation(reservation_id)
    return message.envelope()
