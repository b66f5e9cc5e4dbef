"""
Pydantic models for loans.

A loan points at one book and one member by id.  ``loan_date`` is
stamped by the service when the loan is created and never changes;
``due_date`` and ``return_date`` are timestamps supplied by the client
in the same unit (nanoseconds since the Unix epoch).
"""

from typing import Optional

from pydantic import BaseModel, Field

from .common import U64


class LoanBase(BaseModel):
    book_id: U64 = Field(0, examples=[1])
    member_id: U64 = Field(0, examples=[2])
    due_date: U64 = Field(0, examples=[1_767_225_600_000_000_000])
    return_date: Optional[U64] = Field(None, examples=[None])
    fine: float = Field(0.0, allow_inf_nan=False, examples=[0.0])


class LoanPayload(LoanBase):
    """Schema for creating or replacing a loan."""
    pass


class Loan(LoanBase):
    id: U64
    loan_date: U64 = 0

    model_config = {
        "from_attributes": True,
    }
