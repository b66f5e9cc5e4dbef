"""Service for managing library members."""

from __future__ import annotations

from typing import List

from library_records_api.app.core.errors import InvalidPayloadError
from library_records_api.app.schemas.member import Member, MemberPayload
from library_records_api.app.schemas.message import Message
from library_records_api.app.services.base import RecordService
from library_records_api.app.stable import StableBTreeMap


class MemberService(RecordService[Member]):
    kind = "Member"
    plural = "members"

    @property
    def records(self) -> StableBTreeMap[Member]:
        return self.storage.members

    @staticmethod
    def _validate(payload: MemberPayload) -> None:
        if not payload.username or not payload.phone_number or not payload.address:
            raise InvalidPayloadError(
                "Ensure 'username', 'phone_number', and 'address' are provided."
            )

    async def create_member(self, payload: MemberPayload) -> Member:
        self._validate(payload)
        fields = payload.model_dump()
        created_at = self.clock()
        return self._insert_new(lambda member_id: Member(id=member_id, created_at=created_at, **fields))

    async def get_members(self) -> List[Member]:
        return self._list()

    async def get_member_by_id(self, member_id: int) -> Member:
        return self._get(member_id)

    async def update_member(self, member_id: int, payload: MemberPayload) -> Member:
        self._validate(payload)
        return self._replace(member_id, payload.model_dump())

    async def delete_member(self, member_id: int) -> Message:
        return self._delete(member_id)
