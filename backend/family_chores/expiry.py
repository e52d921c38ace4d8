"""Deadline handling for chores.

Reads surface an overdue OPEN chore as EXPIRED straight away
(:func:`effective_status`); :func:`sweep` later persists the transition
so expired-chore history can be counted from stored rows.  Persisting is
a compare-and-set on ``status = OPEN`` and therefore idempotent.
"""

import logging
from collections import Counter
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from family_chores.errors import InvalidInput
from family_chores.events import emit
from family_chores.models import Chore, ChoreStatus, utcnow

logger = logging.getLogger(__name__)

PERIOD_FORMATS = {"day": "%Y-%m-%d", "month": "%Y-%m"}


def is_overdue(chore: Chore, now: datetime | None = None) -> bool:
    now = now or utcnow()
    return (
        chore.status == ChoreStatus.OPEN
        and chore.expires_at is not None
        and chore.expires_at < now
    )


def effective_status(chore: Chore, now: datetime | None = None) -> ChoreStatus:
    """Status a caller should see, without writing anything."""
    if is_overdue(chore, now):
        return ChoreStatus.EXPIRED
    return ChoreStatus(chore.status)


async def mark_expired(db: AsyncSession, chore_id: int, now: datetime) -> bool:
    """Compare-and-set OPEN -> EXPIRED for one overdue chore.

    Does not commit.  Returns ``False`` when another writer got there
    first or the chore is not overdue.
    """
    result = await db.execute(
        update(Chore)
        .where(
            Chore.id == chore_id,
            Chore.status == ChoreStatus.OPEN,
            Chore.expires_at.is_not(None),
            Chore.expires_at < now,
        )
        .values(
            status=ChoreStatus.EXPIRED,
            expired_at=Chore.expires_at,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def sweep(
    db: AsyncSession,
    now: datetime | None = None,
    family_id: int | None = None,
) -> list[int]:
    """Persist EXPIRED for every overdue OPEN chore; returns their ids."""
    now = now or utcnow()
    query = select(Chore.id, Chore.family_id).where(
        Chore.status == ChoreStatus.OPEN,
        Chore.expires_at.is_not(None),
        Chore.expires_at < now,
    )
    if family_id is not None:
        query = query.where(Chore.family_id == family_id)
    candidates = (await db.execute(query)).all()

    expired = []
    try:
        for chore_id, fam_id in candidates:
            if await mark_expired(db, chore_id, now):
                expired.append((chore_id, fam_id))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    for chore_id, fam_id in expired:
        emit(fam_id, "chore", chore_id, "expired")
    if expired:
        logger.info("Expiry sweep persisted %s chore(s)", len(expired))
    return [chore_id for chore_id, _ in expired]


async def expired_counts(
    db: AsyncSession,
    family_id: int,
    period: str = "day",
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[dict]:
    """Count persisted EXPIRED chores per day or month of their deadline."""
    fmt = PERIOD_FORMATS.get(period)
    if fmt is None:
        raise InvalidInput(f"period must be one of {sorted(PERIOD_FORMATS)}")
    query = select(Chore.expired_at).where(
        Chore.family_id == family_id,
        Chore.status == ChoreStatus.EXPIRED,
        Chore.expired_at.is_not(None),
    )
    if start is not None:
        query = query.where(Chore.expired_at >= start)
    if end is not None:
        query = query.where(Chore.expired_at < end)
    stamps = (await db.execute(query)).scalars().all()
    counts = Counter(stamp.strftime(fmt) for stamp in stamps)
    return [{"period": key, "count": counts[key]} for key in sorted(counts)]
