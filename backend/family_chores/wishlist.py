"""Wishlist items, family conversion settings and fulfillment.

Fulfilling an item spends the owner's points: the open -> fulfilled
status change is a compare-and-set and commits together with the
ledger debit, so two concurrent attempts cannot both debit.  Settings
are read at fulfillment time, never captured when the item was made.
"""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from family_chores import acl, ledger
from family_chores.conversion import (
    format_price,
    price_to_points_preview,
    to_points,
    validate_price,
    validate_rate,
)
from family_chores.crud import (
    get_member,
    get_wishlist_item,
    get_wishlist_settings,
    save_wishlist_item,
    save_wishlist_settings,
)
from family_chores.errors import (
    AlreadyFulfilled,
    InvalidInput,
    InvalidTransition,
    NotFound,
    OverSelfFulfillLimit,
)
from family_chores.events import emit
from family_chores.models import (
    FamilyMember,
    FulfillmentMode,
    LedgerKind,
    WishlistItem,
    WishlistSettings,
    WishlistStatus,
    utcnow,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {
    "title",
    "price",
    "link",
    "note",
    "image_url",
    "fulfillment_mode",
    "payment_method",
}


def _clean_price(price) -> float | None:
    if price is None:
        return None
    return float(validate_price(price))


def _parse_mode(value) -> FulfillmentMode:
    try:
        return FulfillmentMode(value)
    except ValueError:
        raise InvalidInput(f"Unknown fulfillment mode: {value!r}")


def _parse_status(value) -> WishlistStatus:
    try:
        return WishlistStatus(value)
    except ValueError:
        raise InvalidInput(f"Unknown wishlist status: {value!r}")


async def load_item(db: AsyncSession, item_id: int, actor: FamilyMember) -> WishlistItem:
    item = await get_wishlist_item(db, item_id)
    if not item or item.family_id != actor.family_id:
        raise NotFound("Wishlist item not found")
    return item


def _require_owner_or_parent(item: WishlistItem, actor: FamilyMember) -> None:
    if item.member_id == actor.id:
        acl.require(actor.role, acl.OP_MANAGE_OWN_WISHLIST)
    else:
        acl.require(actor.role, acl.OP_MANAGE_ANY_WISHLIST)


def quote(item: WishlistItem, settings: WishlistSettings) -> dict:
    """Points preview for an item at the family's current rate."""
    points = price_to_points_preview(item.price, settings.points_per_currency)
    return {
        "points": points,
        "currency": settings.currency,
        "display_price": (
            None
            if points is None
            else f"{Decimal(str(item.price)).quantize(Decimal('0.01')):.2f}"
        ),
    }


async def get_settings(db: AsyncSession, family_id: int) -> WishlistSettings:
    return await get_wishlist_settings(db, family_id)


async def update_settings(
    db: AsyncSession, actor: FamilyMember, fields: dict
) -> WishlistSettings:
    """Parent-only change of currency, rate or self-fulfillment ceiling."""
    acl.require(actor.role, acl.OP_MANAGE_WISHLIST_SETTINGS)
    settings = await get_wishlist_settings(db, actor.family_id)
    changes = {}
    for field, value in fields.items():
        if field == "currency":
            if not value or not str(value).strip():
                raise InvalidInput("Currency is required")
            value = str(value).strip().upper()
        elif field == "points_per_currency":
            value = float(validate_rate(value))
        elif field == "self_fulfill_max_price":
            value = _clean_price(value)
        else:
            raise InvalidInput(f"Unknown setting: {field}")
        changes[field] = value
    for field, value in changes.items():
        setattr(settings, field, value)
    settings = await save_wishlist_settings(db, settings)
    logger.info("Wishlist settings for family %s updated by member %s", actor.family_id, actor.id)
    emit(actor.family_id, "wishlist_settings", actor.family_id, "updated")
    return settings


async def add_item(
    db: AsyncSession,
    actor: FamilyMember,
    title: str,
    price=None,
    link: str | None = None,
    note: str | None = None,
    image_url: str | None = None,
    fulfillment_mode=FulfillmentMode.PARENTS,
    payment_method: str | None = None,
    member_id: int | None = None,
) -> WishlistItem:
    owner_id = actor.id if member_id is None else member_id
    if owner_id == actor.id:
        acl.require(actor.role, acl.OP_MANAGE_OWN_WISHLIST)
    else:
        acl.require(actor.role, acl.OP_MANAGE_ANY_WISHLIST)
        owner = await get_member(db, owner_id)
        if not owner or owner.family_id != actor.family_id:
            raise NotFound("Member not found")
    if not title or not title.strip():
        raise InvalidInput("Title is required")
    mode = _parse_mode(fulfillment_mode)
    item = WishlistItem(
        family_id=actor.family_id,
        member_id=owner_id,
        title=title.strip(),
        price=_clean_price(price),
        link=link,
        note=note,
        image_url=image_url,
        fulfillment_mode=mode,
        payment_method=(payment_method or None) if mode == FulfillmentMode.SELF else None,
    )
    item = await save_wishlist_item(db, item)
    logger.info("Wishlist item %s added for member %s", item.id, owner_id)
    emit(item.family_id, "wishlist_item", item.id, "created")
    return item


async def update_item(
    db: AsyncSession, item_id: int, actor: FamilyMember, fields: dict
) -> WishlistItem:
    """Edit an open wish; the write loses to a concurrent fulfillment."""
    item = await load_item(db, item_id, actor)
    _require_owner_or_parent(item, actor)
    if item.status != WishlistStatus.OPEN:
        raise InvalidTransition("Fulfilled wishes cannot be edited")
    changes = {}
    for field, value in fields.items():
        if field not in EDITABLE_FIELDS:
            raise InvalidInput(f"Field {field} cannot be edited")
        if field == "title":
            if not value or not value.strip():
                raise InvalidInput("Title is required")
            value = value.strip()
        elif field == "price":
            value = _clean_price(value)
        elif field == "fulfillment_mode":
            value = _parse_mode(value)
        changes[field] = value
    if changes.get("fulfillment_mode", item.fulfillment_mode) != FulfillmentMode.SELF:
        changes["payment_method"] = None
    result = await db.execute(
        update(WishlistItem)
        .where(WishlistItem.id == item.id, WishlistItem.status == WishlistStatus.OPEN)
        .values(**changes, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise InvalidTransition("Fulfilled wishes cannot be edited")
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(item)
    logger.info("Wishlist item %s updated by member %s", item.id, actor.id)
    emit(item.family_id, "wishlist_item", item.id, "updated")
    return item


async def delete_item(db: AsyncSession, item_id: int, actor: FamilyMember) -> None:
    item = await load_item(db, item_id, actor)
    _require_owner_or_parent(item, actor)
    if item.status != WishlistStatus.OPEN:
        raise InvalidTransition("Fulfilled wishes cannot be deleted")
    family_id = item.family_id
    result = await db.execute(
        delete(WishlistItem)
        .where(WishlistItem.id == item.id, WishlistItem.status == WishlistStatus.OPEN)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise InvalidTransition("Fulfilled wishes cannot be deleted")
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    db.expunge(item)
    logger.info("Wishlist item %s deleted by member %s", item_id, actor.id)
    emit(family_id, "wishlist_item", item_id, "deleted")


async def fulfill_item(
    db: AsyncSession,
    item_id: int,
    actor: FamilyMember,
    expected_status=WishlistStatus.OPEN,
    now: datetime | None = None,
) -> WishlistItem:
    """Mark an item fulfilled and debit its owner's points."""
    now = now or utcnow()
    item = await load_item(db, item_id, actor)
    settings = await get_wishlist_settings(db, item.family_id)

    # parents may always buy a wish for its owner; the ceiling only binds the owner
    if item.fulfillment_mode == FulfillmentMode.SELF and actor.id == item.member_id:
        ceiling = settings.self_fulfill_max_price
        if ceiling is not None and (
            item.price is None or validate_price(item.price) > validate_price(ceiling)
        ):
            raise OverSelfFulfillLimit(
                f"Price is above the self-fulfillment limit of {ceiling:.2f} {settings.currency}"
            )
    else:
        acl.require(actor.role, acl.OP_FULFILL_FOR_MEMBER)

    expected = _parse_status(expected_status)
    if item.status != WishlistStatus.OPEN or expected != WishlistStatus.OPEN:
        raise AlreadyFulfilled()

    cost = 0 if item.price is None else to_points(item.price, settings.points_per_currency)
    owner = await get_member(db, item.member_id)
    if not owner:
        raise NotFound("Wish owner not found")

    entry = None
    try:
        result = await db.execute(
            update(WishlistItem)
            .where(
                WishlistItem.id == item.id,
                WishlistItem.status == WishlistStatus.OPEN,
            )
            .values(
                status=WishlistStatus.FULFILLED,
                fulfilled_by=actor.id,
                fulfilled_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.rollback()
            raise AlreadyFulfilled()
        if cost:
            entry = await ledger.credit(
                db,
                owner,
                -cost,
                f"wishlist:{item.id}",
                LedgerKind.WISHLIST_FULFILLMENT,
                approver_id=actor.id,
                wishlist_item_id=item.id,
                commit=False,
            )
        await db.commit()
    except AlreadyFulfilled:
        raise
    except Exception:
        await db.rollback()
        raise

    await db.refresh(item)
    await db.refresh(owner)
    logger.info(
        "Wishlist item %s fulfilled by member %s for %s point(s) (%s %s)",
        item.id,
        actor.id,
        cost,
        format_price(cost, settings.points_per_currency),
        settings.currency,
    )
    if entry is not None:
        await db.refresh(entry)
        ledger.announce([entry])
    emit(item.family_id, "wishlist_item", item.id, "fulfilled")
    return item
