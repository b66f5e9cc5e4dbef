"""Member endpoints for API v1."""

from typing import Dict, List

from fastapi import APIRouter, Depends, Path, status

from library_records_api.app.api.deps import get_member_service
from library_records_api.app.schemas.member import Member, MemberPayload
from library_records_api.app.services import MemberService
from library_records_api.app.stable import U64_MAX


router = APIRouter()


@router.post("", response_model=Member, status_code=status.HTTP_201_CREATED)
async def create_member(
    payload: MemberPayload,
    service: MemberService = Depends(get_member_service),
) -> Member:
    """Register a member.  ``username``, ``phone_number`` and ``address`` are required."""
    return await service.create_member(payload)


@router.get("", response_model=List[Member])
async def get_members(service: MemberService = Depends(get_member_service)) -> List[Member]:
    return await service.get_members()


@router.get("/{member_id}", response_model=Member)
async def get_member_by_id(
    member_id: int = Path(..., ge=0, le=U64_MAX),
    service: MemberService = Depends(get_member_service),
) -> Member:
    return await service.get_member_by_id(member_id)


@router.put("/{member_id}", response_model=Member)
async def update_member(
    payload: MemberPayload,
    member_id: int = Path(..., ge=0, le=U64_MAX),
    service: MemberService = Depends(get_member_service),
) -> Member:
    return await service.update_member(member_id, payload)


@router.delete("/{member_id}", response_model=Dict[str, str])
async def delete_member(
    member_id: int = Path(..., ge=0, le=U64_MAX),
    service: MemberService = Depends(get_member_service),
) -> Dict[str, str]:
    message = await service.delete_member(member_id)
    return message.envelope()
