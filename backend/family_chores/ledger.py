"""Append-only points ledger with a materialized per-member balance.

A ledger write inserts one :class:`PointsLedgerEntry` and bumps
``FamilyMember.points`` with a single ``UPDATE ... SET points = points +
delta`` in the same transaction.  The increment is evaluated by the
database, so two concurrent credits for the same member are both
reflected instead of one overwriting the other.  Entries are never
edited or removed; corrections are new ``manual_adjust`` rows.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from family_chores import acl
from family_chores.crud import get_member
from family_chores.errors import InvalidInput, LedgerInconsistency, NotFound
from family_chores.events import emit
from family_chores.models import FamilyMember, LedgerKind, PointsLedgerEntry, utcnow

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10


async def credit(
    db: AsyncSession,
    member: FamilyMember,
    delta: int,
    reason: str | None,
    kind: LedgerKind,
    approver_id: int | None = None,
    chore_id: int | None = None,
    wishlist_item_id: int | None = None,
    commit: bool = True,
) -> PointsLedgerEntry:
    """Write one ledger entry and adjust the member's cached balance.

    With ``commit=False`` the writes join the caller's open transaction
    and the caller is responsible for committing (and for calling
    :func:`announce` afterwards).
    """
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise InvalidInput(f"Ledger delta must be an integer, got {delta!r}")
    if delta == 0:
        raise InvalidInput("Ledger delta must not be zero")

    entry = PointsLedgerEntry(
        family_id=member.family_id,
        member_id=member.id,
        delta=delta,
        reason=reason,
        kind=kind,
        approved_by_member_id=approver_id,
        chore_id=chore_id,
        wishlist_item_id=wishlist_item_id,
    )
    db.add(entry)
    # autoflush inserts the entry before the increment runs
    await db.execute(
        update(FamilyMember)
        .where(FamilyMember.id == member.id)
        .values(points=FamilyMember.points + delta)
        .execution_options(synchronize_session=False)
    )
    if not commit:
        return entry
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(entry)
    await db.refresh(member)
    announce([entry])
    return entry


def announce(entries: list[PointsLedgerEntry]) -> None:
    """Log and publish committed ledger entries."""
    for entry in entries:
        logger.info(
            "Ledger entry %s: member %s %+d (%s, %s)",
            entry.id,
            entry.member_id,
            entry.delta,
            entry.kind.value if isinstance(entry.kind, LedgerKind) else entry.kind,
            entry.reason,
        )
        emit(entry.family_id, "ledger", entry.id, "created")
        emit(entry.family_id, "member", entry.member_id, "points_changed")


async def adjust(
    db: AsyncSession,
    member_id: int,
    actor: FamilyMember,
    delta: int,
    reason: str,
) -> PointsLedgerEntry:
    """Parent-issued correction entry."""
    acl.require(actor.role, acl.OP_ADJUST_POINTS)
    member = await get_member(db, member_id)
    if not member or member.family_id != actor.family_id:
        raise NotFound("Member not found")
    if not reason or not reason.strip():
        raise InvalidInput("A reason is required for manual adjustments")
    return await credit(
        db,
        member,
        delta,
        reason.strip(),
        LedgerKind.MANUAL_ADJUST,
        approver_id=actor.id,
    )


async def history(
    db: AsyncSession,
    family_id: int,
    member_id: int,
    limit: int = DEFAULT_HISTORY_LIMIT,
    since: datetime | None = None,
) -> list[PointsLedgerEntry]:
    """Return a member's entries newest first, optionally windowed."""
    if limit < 1:
        raise InvalidInput("limit must be at least 1")
    query = select(PointsLedgerEntry).where(
        PointsLedgerEntry.family_id == family_id,
        PointsLedgerEntry.member_id == member_id,
    )
    if since is not None:
        query = query.where(PointsLedgerEntry.created_at >= since)
    result = await db.execute(
        query.order_by(
            PointsLedgerEntry.created_at.desc(), PointsLedgerEntry.id.desc()
        ).limit(limit)
    )
    return result.scalars().all()


async def balance_from_ledger(db: AsyncSession, member_id: int) -> int:
    """Sum of every ledger delta for a member."""
    result = await db.execute(
        select(func.coalesce(func.sum(PointsLedgerEntry.delta), 0)).where(
            PointsLedgerEntry.member_id == member_id
        )
    )
    return int(result.scalar_one())


def week_bounds(
    week_offset: int = 0, now: datetime | None = None
) -> tuple[datetime, datetime]:
    """Start and end of a Sunday-to-Saturday week, ``week_offset`` weeks from now."""
    now = now or utcnow()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start = midnight - timedelta(days=(midnight.weekday() + 1) % 7)
    start += timedelta(weeks=week_offset)
    return start, start + timedelta(days=7)


async def summary(
    db: AsyncSession,
    family_id: int,
    member_id: int,
    start: datetime,
    end: datetime,
) -> dict:
    """Points earned and spent by a member in ``[start, end)``.

    Earned sums the positive deltas and spent the magnitude of the
    negative ones, overall and per UTC day.  Days without entries are
    omitted.
    """
    if end <= start:
        raise InvalidInput("end must be after start")
    result = await db.execute(
        select(PointsLedgerEntry.created_at, PointsLedgerEntry.delta)
        .where(
            PointsLedgerEntry.family_id == family_id,
            PointsLedgerEntry.member_id == member_id,
            PointsLedgerEntry.created_at >= start,
            PointsLedgerEntry.created_at < end,
        )
        .order_by(PointsLedgerEntry.created_at)
    )
    days = {}
    earned = spent = 0
    for created_at, delta in result.all():
        bucket = days.setdefault(
            created_at.date(), {"day": created_at.date(), "earned": 0, "spent": 0}
        )
        if delta > 0:
            earned += delta
            bucket["earned"] += delta
        else:
            spent -= delta
            bucket["spent"] -= delta
    return {
        "member_id": member_id,
        "start": start,
        "end": end,
        "earned": earned,
        "spent": spent,
        "net": earned - spent,
        "days": list(days.values()),
    }


async def reconcile(db: AsyncSession, family_id: int | None = None) -> int:
    """Verify cached balances against the ledger.

    Returns the number of members checked.  Mismatches are logged at
    CRITICAL and raised as :class:`LedgerInconsistency`; they are never
    corrected here.
    """
    totals = (
        select(
            PointsLedgerEntry.member_id,
            func.sum(PointsLedgerEntry.delta).label("total"),
        )
        .group_by(PointsLedgerEntry.member_id)
        .subquery()
    )
    query = select(
        FamilyMember.id,
        FamilyMember.family_id,
        FamilyMember.points,
        func.coalesce(totals.c.total, 0),
    ).outerjoin(totals, totals.c.member_id == FamilyMember.id)
    if family_id is not None:
        query = query.where(FamilyMember.family_id == family_id)
    rows = (await db.execute(query)).all()

    mismatches = []
    for member_id, fam_id, cached, ledger_total in rows:
        if int(cached) != int(ledger_total):
            mismatches.append(
                {
                    "member_id": member_id,
                    "family_id": fam_id,
                    "cached": int(cached),
                    "ledger": int(ledger_total),
                }
            )
            logger.critical(
                "Ledger inconsistency for member %s in family %s: "
                "cached balance %s, ledger sum %s",
                member_id,
                fam_id,
                cached,
                ledger_total,
            )
    if mismatches:
        raise LedgerInconsistency(mismatches)
    return len(rows)
