import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from family_chores import acl, chores, expiry, registry
from family_chores.auth import get_current_member
from family_chores.database import get_session
from family_chores.models import ChoreStatus, FamilyMember, to_naive_utc
from family_chores.schemas import (
    ChoreCreate,
    ChoreDuplicate,
    ChoreRead,
    ChoreReview,
    ChoreSubmit,
    ChoreUpdate,
    ExpiredCount,
    SweepResult,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chores", tags=["chores"])


@router.post("/", response_model=ChoreRead)
async def add_chore(
    data: ChoreCreate,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    chore = await chores.create_chore(
        db,
        current,
        title=data.title,
        points=data.points,
        assigned_to_ids=data.assigned_to_ids,
        expires_at=to_naive_utc(data.expires_at),
        template_id=data.template_id,
        description=data.description,
        audio_description_url=data.audio_description_url,
        audio_description_duration=data.audio_description_duration,
    )
    return registry.chore_view(chore)


@router.get("/", response_model=List[ChoreRead])
async def list_chores(
    status_filter: Optional[ChoreStatus] = Query(None, alias="status"),
    member_id: Optional[int] = None,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    return await registry.list_chores(
        db, current.family_id, status=status_filter, member_id=member_id
    )


@router.post("/sweep", response_model=SweepResult)
async def sweep_expired(
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    acl.require(current.role, acl.OP_EXPIRE_CHORES)
    expired_ids = await expiry.sweep(db, family_id=current.family_id)
    return SweepResult(expired_ids=expired_ids)


@router.get("/history/expired", response_model=List[ExpiredCount])
async def expired_history(
    period: str = "day",
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    return await expiry.expired_counts(
        db, current.family_id, period, to_naive_utc(start), to_naive_utc(end)
    )


@router.get("/{chore_id}", response_model=ChoreRead)
async def read_chore(
    chore_id: int,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    return await registry.get_chore(db, chore_id, current)


@router.put("/{chore_id}", response_model=ChoreRead)
async def update_chore(
    chore_id: int,
    data: ChoreUpdate,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    fields = data.model_dump(exclude_unset=True)
    if "expires_at" in fields:
        fields["expires_at"] = to_naive_utc(fields["expires_at"])
    chore = await registry.update_chore(db, chore_id, current, fields)
    return registry.chore_view(chore)


@router.delete("/{chore_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_chore(
    chore_id: int,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    await registry.delete_chore(db, chore_id, current)


@router.post("/{chore_id}/duplicate", response_model=ChoreRead)
async def duplicate_chore(
    chore_id: int,
    data: ChoreDuplicate,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    chore = await registry.duplicate_chore(
        db, chore_id, current, expires_at=to_naive_utc(data.expires_at)
    )
    return registry.chore_view(chore)


@router.post("/{chore_id}/submit", response_model=ChoreRead)
async def submit_chore(
    chore_id: int,
    data: ChoreSubmit,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    chore = await chores.submit_chore(
        db, chore_id, current, data.doer_ids, data.proofs, data.proof_note
    )
    return registry.chore_view(chore)


@router.post("/{chore_id}/approve", response_model=ChoreRead)
async def approve_chore(
    chore_id: int,
    data: ChoreReview,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    chore = await chores.approve_chore(
        db, chore_id, current, data.expected_status, data.notes
    )
    return registry.chore_view(chore)


@router.post("/{chore_id}/reject", response_model=ChoreRead)
async def reject_chore(
    chore_id: int,
    data: ChoreReview,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    chore = await chores.reject_chore(
        db, chore_id, current, data.expected_status, data.notes
    )
    return registry.chore_view(chore)


@router.post("/{chore_id}/expire", response_model=ChoreRead)
async def expire_chore(
    chore_id: int,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    chore = await chores.expire_chore(db, chore_id, current)
    return registry.chore_view(chore)
