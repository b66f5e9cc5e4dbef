"""Pydantic models for library members."""

from pydantic import BaseModel, Field

from .common import U64


class MemberBase(BaseModel):
    username: str = Field("", examples=["alice"])
    phone_number: str = Field("", examples=["+1 555 0100"])
    address: str = Field("", examples=["12 Baker Street"])


class MemberPayload(MemberBase):
    pass


class Member(MemberBase):
    id: U64
    created_at: U64 = 0

    model_config = {
        "from_attributes": True,
    }
