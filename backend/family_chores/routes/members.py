from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from family_chores.auth import get_current_member
from family_chores.crud import get_member, get_members_by_family
from family_chores.database import get_session
from family_chores.models import FamilyMember
from family_chores.schemas import MemberRead

router = APIRouter(tags=["members"])


@router.get("/members/me", response_model=MemberRead)
async def read_me(current: FamilyMember = Depends(get_current_member)):
    return current


@router.get("/members/{member_id}", response_model=MemberRead)
async def read_member(
    member_id: int,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    member = await get_member(db, member_id)
    if not member or member.family_id != current.family_id:
        raise HTTPException(status_code=404, detail="Member not found")
    return member


@router.get("/families/{family_id}/members", response_model=List[MemberRead])
async def list_family_members(
    family_id: int,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    if family_id != current.family_id:
        raise HTTPException(status_code=404, detail="Family not found")
    return await get_members_by_family(db, family_id)
