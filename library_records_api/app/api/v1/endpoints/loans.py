"""
Loan endpoints for API v1.

Creating a loan requires the referenced book and member to exist;
updates and deletions never look at them again.
"""

from typing import Dict, List

from fastapi import APIRouter, Depends, Path, status

from library_records_api.app.api.deps import get_loan_service
from library_records_api.app.schemas.loan import Loan, LoanPayload
from library_records_api.app.services import LoanService
from library_records_api.app.stable import U64_MAX


router = APIRouter()


@router.post("", response_model=Loan, status_code=status.HTTP_201_CREATED)
async def create_loan(
    payload: LoanPayload,
    service: LoanService = Depends(get_loan_service),
) -> Loan:
    """Lend a book to a member.

    ``due_date`` must be non-zero.  Answers 404 with ``Book not found``
    or ``Member not found`` when a reference does not resolve.
    """
    return await service.create_loan(payload)


@router.get("", response_model=List[Loan])
async def get_book_loans(service: LoanService = Depends(get_loan_service)) -> List[Loan]:
    return await service.get_book_loans()


@router.get("/{loan_id}", response_model=Loan)
async def get_book_loan_by_id(
    loan_id: int = Path(..., ge=0, le=U64_MAX),
    service: LoanService = Depends(get_loan_service),
) -> Loan:
    return await service.get_book_loan_by_id(loan_id)


@router.put("/{loan_id}", response_model=Loan)
async def update_loan(
    payload: LoanPayload,
    loan_id: int = Path(..., ge=0, le=U64_MAX),
    service: LoanService = Depends(get_loan_service),
) -> Loan:
    return await service.update_loan(loan_id, payload)


@router.delete("/{loan_id}", response_model=Dict[str, str])
async def delete_loan(
    loan_id: int = Path(..., ge=0, le=U64_MAX),
    service: LoanService = Depends(get_loan_service),
) -> Dict[str, str]:
    message = await service.delete_loan(loan_id)
    return message.envelope()
