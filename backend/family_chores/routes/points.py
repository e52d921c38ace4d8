"""Endpoints for points balances, history and corrections."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from family_chores import acl, ledger
from family_chores.auth import get_current_member
from family_chores.crud import get_member
from family_chores.database import get_session
from family_chores.models import FamilyMember, to_naive_utc, utcnow
from family_chores.schemas import (
    LedgerEntryRead,
    PointsAdjust,
    PointsHistory,
    PointsSummary,
    ReconcileResult,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["points"])


@router.get("/members/{member_id}/points/history", response_model=PointsHistory)
async def points_history(
    member_id: int,
    limit: int = Query(ledger.DEFAULT_HISTORY_LIMIT, ge=1, le=500),
    since: Optional[datetime] = None,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    member = await get_member(db, member_id)
    if not member or member.family_id != current.family_id:
        raise HTTPException(status_code=404, detail="Member not found")
    entries = await ledger.history(
        db, member.family_id, member.id, limit=limit, since=to_naive_utc(since)
    )
    return PointsHistory(
        balance=member.points,
        entries=[LedgerEntryRead.model_validate(e) for e in entries],
    )


@router.get("/members/{member_id}/points/summary", response_model=PointsSummary)
async def points_summary(
    member_id: int,
    week_offset: int = Query(0, le=0),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    """Earned and spent points for a week, or for an explicit window."""
    member = await get_member(db, member_id)
    if not member or member.family_id != current.family_id:
        raise HTTPException(status_code=404, detail="Member not found")
    week_start, week_end = ledger.week_bounds(week_offset)
    if start is not None:
        week_start = to_naive_utc(start)
        week_end = to_naive_utc(end) if end is not None else utcnow()
    return await ledger.summary(db, member.family_id, member.id, week_start, week_end)


@router.post("/members/{member_id}/points/adjust", response_model=LedgerEntryRead)
async def adjust_points(
    member_id: int,
    data: PointsAdjust,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    entry = await ledger.adjust(db, member_id, current, data.delta, data.reason)
    logger.info("Member %s adjusted points of member %s by %+d", current.id, member_id, data.delta)
    return entry


@router.post("/families/{family_id}/points/reconcile", response_model=ReconcileResult)
async def reconcile_points(
    family_id: int,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    if family_id != current.family_id:
        raise HTTPException(status_code=404, detail="Family not found")
    acl.require(current.role, acl.OP_RECONCILE_POINTS)
    checked = await ledger.reconcile(db, family_id)
    return ReconcileResult(members_checked=checked)
