"""
Service layer package.

Services implement the record operations on top of the storage
container; the API layer only translates HTTP requests into service
calls.
"""

from .book_service import BookService
from .id_service import IdAllocator
from .loan_service import LoanService
from .member_service import MemberService
from .reservation_service import ReservationService

__all__ = [
    "BookService",
    "IdAllocator",
    "LoanService",
    "MemberService",
    "ReservationService",
]
