"""
FastAPI dependencies.

The storage container, the clock and the settings are created once by
``create_app`` and kept on ``app.state``; these helpers read them back
for each request and build the services around them.  Services are
cheap to build because all their state lives in the storage.
"""

from fastapi import Depends, Request

from library_records_api.app.core.config import Settings
from library_records_api.app.core.storage import LibraryStorage
from library_records_api.app.services import (
    BookService,
    LoanService,
    MemberService,
    ReservationService,
)


def get_storage(request: Request) -> LibraryStorage:
    return request.app.state.storage


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _service_options(request: Request) -> dict:
    return {
        "clock": request.app.state.clock,
        "empty_list_is_error": request.app.state.settings.empty_list_is_error,
    }


def get_book_service(request: Request, storage: LibraryStorage = Depends(get_storage)) -> BookService:
    return BookService(storage, **_service_options(request))


def get_member_service(request: Request, storage: LibraryStorage = Depends(get_storage)) -> MemberService:
    return MemberService(storage, **_service_options(request))


def get_loan_service(request: Request, storage: LibraryStorage = Depends(get_storage)) -> LoanService:
    return LoanService(storage, **_service_options(request))


def get_reservation_service(
    request: Request, storage: LibraryStorage = Depends(get_storage)
) -> ReservationService:
    return ReservationService(storage, **_service_options(request))
