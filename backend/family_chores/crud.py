"""Asynchronous CRUD helpers for the application's data models.

Each function in this module encapsulates a single database operation
using SQLModel and SQLAlchemy.  Business rules live in the engine
modules (``chores``, ``ledger``, ``wishlist``, ``expiry``); this module
only loads and stores rows.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from family_chores.models import (
    Family,
    FamilyMember,
    Chore,
    ChoreTemplate,
    WishlistItem,
    WishlistSettings,
    WishlistStatus,
    utcnow,
)


async def save(db: AsyncSession, obj):
    """Persist a new or changed row and return it refreshed."""

    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    return obj


# --- Directory helpers --------------------------------------------------


async def create_family(db: AsyncSession, family: Family) -> Family:
    return await save(db, family)


async def get_family(db: AsyncSession, family_id: int) -> Family | None:
    result = await db.execute(select(Family).where(Family.id == family_id))
    return result.scalar_one_or_none()


async def create_member(db: AsyncSession, member: FamilyMember) -> FamilyMember:
    """Register a directory entry.  Balances always start at zero."""

    member.points = 0
    return await save(db, member)


async def get_member(db: AsyncSession, member_id: int) -> FamilyMember | None:
    result = await db.execute(
        select(FamilyMember).where(FamilyMember.id == member_id)
    )
    return result.scalar_one_or_none()


async def get_members_by_family(
    db: AsyncSession, family_id: int
) -> list[FamilyMember]:
    result = await db.execute(
        select(FamilyMember)
        .where(FamilyMember.family_id == family_id)
        .order_by(FamilyMember.id)
    )
    return result.scalars().all()


async def get_member_ids_by_family(db: AsyncSession, family_id: int) -> set[int]:
    result = await db.execute(
        select(FamilyMember.id).where(FamilyMember.family_id == family_id)
    )
    return set(result.scalars().all())


# --- Chore helpers ------------------------------------------------------


async def get_chore(db: AsyncSession, chore_id: int) -> Chore | None:
    result = await db.execute(select(Chore).where(Chore.id == chore_id))
    return result.scalar_one_or_none()


async def get_chores_by_family(db: AsyncSession, family_id: int) -> list[Chore]:
    """Return a family's chores, newest first."""

    result = await db.execute(
        select(Chore)
        .where(Chore.family_id == family_id)
        .order_by(Chore.created_at.desc(), Chore.id.desc())
    )
    return result.scalars().all()


async def get_template(db: AsyncSession, template_id: int) -> ChoreTemplate | None:
    result = await db.execute(
        select(ChoreTemplate).where(ChoreTemplate.id == template_id)
    )
    return result.scalar_one_or_none()


async def get_templates_by_family(
    db: AsyncSession, family_id: int, include_archived: bool = False
) -> list[ChoreTemplate]:
    """Return templates ordered by title, hiding archived ones by default."""

    query = select(ChoreTemplate).where(ChoreTemplate.family_id == family_id)
    if not include_archived:
        query = query.where(ChoreTemplate.is_archived == False)  # noqa: E712
    result = await db.execute(query.order_by(ChoreTemplate.title))
    return result.scalars().all()


async def save_template(db: AsyncSession, template: ChoreTemplate) -> ChoreTemplate:
    template.updated_at = utcnow()
    return await save(db, template)


# --- Wishlist helpers ---------------------------------------------------


async def get_wishlist_item(db: AsyncSession, item_id: int) -> WishlistItem | None:
    result = await db.execute(select(WishlistItem).where(WishlistItem.id == item_id))
    return result.scalar_one_or_none()


async def get_wishlist_items(
    db: AsyncSession,
    family_id: int,
    member_id: int | None = None,
    status: WishlistStatus | None = None,
) -> list[WishlistItem]:
    query = select(WishlistItem).where(WishlistItem.family_id == family_id)
    if member_id is not None:
        query = query.where(WishlistItem.member_id == member_id)
    if status is not None:
        query = query.where(WishlistItem.status == status)
    result = await db.execute(
        query.order_by(WishlistItem.created_at.desc(), WishlistItem.id.desc())
    )
    return result.scalars().all()


async def save_wishlist_item(db: AsyncSession, item: WishlistItem) -> WishlistItem:
    item.updated_at = utcnow()
    return await save(db, item)


async def get_wishlist_settings(
    db: AsyncSession, family_id: int
) -> WishlistSettings:
    """Fetch a family's wishlist settings, creating defaults if necessary."""

    result = await db.execute(
        select(WishlistSettings).where(WishlistSettings.family_id == family_id)
    )
    settings = result.scalar_one_or_none()
    if not settings:
        settings = await save(db, WishlistSettings(family_id=family_id))
    return settings


async def save_wishlist_settings(
    db: AsyncSession, settings: WishlistSettings
) -> WishlistSettings:
    settings.updated_at = utcnow()
    return await save(db, settings)
