"""
Top-level router for version 1 of the API.

Aggregates the per-entity routers under their resource prefixes.
"""

from fastapi import APIRouter

from .endpoints import books, info, loans, members, reservations

router = APIRouter()

router.include_router(books.router, prefix="/books", tags=["books"])
router.include_router(members.router, prefix="/members", tags=["members"])
router.include_router(loans.router, prefix="/loans", tags=["loans"])
router.include_router(reservations.router, prefix="/reservations", tags=["reservations"])
router.include_router(info.router, prefix="/info", tags=["info"])
