"""
Service for managing loans.

A loan references a book and a member by id.  Both must exist when
the loan is created; afterwards the references are plain values.
Updating a loan may point it at other ids without any check, and
deleting the book or member leaves the loan untouched.
"""

from __future__ import annotations

from typing import List

from library_records_api.app.core.errors import InvalidPayloadError
from library_records_api.app.schemas.loan import Loan, LoanPayload
from library_records_api.app.schemas.message import Message
from library_records_api.app.services.base import RecordService
from library_records_api.app.stable import StableBTreeMap


class LoanService(RecordService[Loan]):
    """Create, list, fetch, replace and delete loans."""

    kind = "Loan"
    plural = "loans"

    @property
    def records(self) -> StableBTreeMap[Loan]:
        return self.storage.loans

    @staticmethod
    def _validate(payload: LoanPayload) -> None:
        if payload.due_date == 0:
            raise InvalidPayloadError("Ensure 'due_date' is provided.")

    async def create_loan(self, payload: LoanPayload) -> Loan:
        """Create a loan of an existing book to an existing member.

        ``loan_date`` is set to the current time; ``return_date`` and
        ``fine`` are taken from the payload as given.
        """
        self._validate(payload)
        fields = payload.model_dump()
        with self.storage.lock:
            self._require_book_and_member(payload.book_id, payload.member_id)
            loan_date = self.clock()
            return self._insert_new(lambda loan_id: Loan(id=loan_id, loan_date=loan_date, **fields))

    async def get_book_loans(self) -> List[Loan]:
        return self._list()

    async def get_book_loan_by_id(self, loan_id: int) -> Loan:
        return self._get(loan_id)

    async def update_loan(self, loan_id: int, payload: LoanPayload) -> Loan:
        """Replace book, member, due date, return date and fine of a loan."""
        self._validate(payload)
        return self._replace(loan_id, payload.model_dump())

    async def delete_loan(self, loan_id: int) -> Message:
        return self._delete(loan_id)
