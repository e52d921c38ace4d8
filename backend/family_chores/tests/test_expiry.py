"""Tests for deadline handling and the expiry sweep."""

import asyncio
import pathlib
import sys
from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from family_chores import chores, expiry
from family_chores.crud import create_family, create_member, get_chore
from family_chores.errors import InvalidInput
from family_chores.events import bus
from family_chores.models import Chore, ChoreStatus, Family, FamilyMember, Role, utcnow

PHOTO = [{"uri": "proof.jpg", "kind": "image"}]
CREATED = datetime(2024, 1, 1, 8, 0)


async def _setup_family():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    TestSession = async_sessionmaker(engine, expire_on_commit=False)

    async with TestSession() as session:
        family = await create_family(session, Family(name="Rivera"))
        mom = await create_member(
            session, FamilyMember(family_id=family.id, name="Mom", role=Role.MOM)
        )
        kid = await create_member(
            session, FamilyMember(family_id=family.id, name="Kid", role=Role.CHILD)
        )
    return TestSession, family, mom, kid


def test_effective_status_only_expires_open_chores():
    now = datetime(2024, 3, 1, 12, 0)
    past = now - timedelta(minutes=1)
    assert expiry.effective_status(
        Chore(family_id=1, title="a", points=1, expires_at=past), now
    ) == ChoreStatus.EXPIRED
    assert expiry.effective_status(
        Chore(family_id=1, title="a", points=1, expires_at=now + timedelta(minutes=1)), now
    ) == ChoreStatus.OPEN
    assert expiry.effective_status(
        Chore(family_id=1, title="a", points=1), now
    ) == ChoreStatus.OPEN
    submitted = Chore(
        family_id=1,
        title="a",
        points=1,
        expires_at=past,
        status=ChoreStatus.SUBMITTED,
    )
    assert expiry.effective_status(submitted, now) == ChoreStatus.SUBMITTED


def test_sweep_persists_expiry_once():
    async def run():
        TestSession, family, mom, kid = await _setup_family()
        async with TestSession() as session:
            jan = await chores.create_chore(
                session, mom, "Jan", 1, expires_at=datetime(2024, 1, 5, 10), now=CREATED
            )
            feb = await chores.create_chore(
                session, mom, "Feb", 1, expires_at=datetime(2024, 2, 3, 9), now=CREATED
            )
            submitted = await chores.create_chore(
                session, mom, "Sent", 1, expires_at=datetime(2024, 1, 9), now=CREATED
            )
            await chores.submit_chore(
                session, submitted.id, kid, [kid.id], PHOTO, now=CREATED
            )
            future = await chores.create_chore(
                session, mom, "Later", 1, expires_at=utcnow() + timedelta(days=30)
            )

            queue = bus.subscribe(family.id)
            try:
                expired_ids = await expiry.sweep(session)
                assert sorted(expired_ids) == sorted([jan.id, feb.id])
                events = [queue.get_nowait() for _ in range(queue.qsize())]
                assert {(e.entity, e.entity_id, e.action) for e in events} == {
                    ("chore", jan.id, "expired"),
                    ("chore", feb.id, "expired"),
                }
            finally:
                bus.unsubscribe(family.id, queue)

            assert await expiry.sweep(session) == []

            stored = await get_chore(session, jan.id)
            await session.refresh(stored)
            assert stored.status == ChoreStatus.EXPIRED
            assert stored.expired_at == datetime(2024, 1, 5, 10)
            for chore_id, status in (
                (submitted.id, ChoreStatus.SUBMITTED),
                (future.id, ChoreStatus.OPEN),
            ):
                chore = await get_chore(session, chore_id)
                await session.refresh(chore)
                assert chore.status == status

    asyncio.run(run())


def test_expired_counts_by_day_and_month():
    async def run():
        TestSession, family, mom, _ = await _setup_family()
        async with TestSession() as session:
            for deadline in (
                datetime(2024, 1, 5, 10),
                datetime(2024, 1, 5, 18),
                datetime(2024, 1, 20, 7),
                datetime(2024, 2, 3, 9),
            ):
                await chores.create_chore(
                    session, mom, "Chore", 1, expires_at=deadline, now=CREATED
                )
            await expiry.sweep(session, family_id=family.id)

            assert await expiry.expired_counts(session, family.id) == [
                {"period": "2024-01-05", "count": 2},
                {"period": "2024-01-20", "count": 1},
                {"period": "2024-02-03", "count": 1},
            ]
            assert await expiry.expired_counts(session, family.id, "month") == [
                {"period": "2024-01", "count": 3},
                {"period": "2024-02", "count": 1},
            ]
            assert await expiry.expired_counts(
                session, family.id, "month", start=datetime(2024, 1, 10)
            ) == [
                {"period": "2024-01", "count": 1},
                {"period": "2024-02", "count": 1},
            ]
            with pytest.raises(InvalidInput):
                await expiry.expired_counts(session, family.id, "week")

    asyncio.run(run())
