"""Wishlist endpoints.

Settings and conversion routes are declared before ``/{item_id}`` so
their paths are not captured by the item routes.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from family_chores import registry, wishlist
from family_chores.auth import get_current_member
from family_chores.conversion import format_price, to_points
from family_chores.database import get_session
from family_chores.errors import InvalidInput
from family_chores.models import FamilyMember, WishlistItem, WishlistStatus
from family_chores.schemas import (
    ConversionRead,
    FulfillRequest,
    WishlistItemCreate,
    WishlistItemRead,
    WishlistItemUpdate,
    WishlistSettingsRead,
    WishlistSettingsUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wishlist", tags=["wishlist"])


async def _item_view(db: AsyncSession, item: WishlistItem) -> dict:
    settings = await wishlist.get_settings(db, item.family_id)
    data = item.model_dump()
    preview = wishlist.quote(item, settings)
    data["points_cost"] = preview["points"]
    data["currency"] = preview["currency"]
    return data


@router.get("/settings", response_model=WishlistSettingsRead)
async def read_settings(
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    return await wishlist.get_settings(db, current.family_id)


@router.put("/settings", response_model=WishlistSettingsRead)
async def update_settings(
    data: WishlistSettingsUpdate,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    return await wishlist.update_settings(
        db, current, data.model_dump(exclude_unset=True)
    )


@router.get("/convert", response_model=ConversionRead)
async def convert(
    price: Optional[float] = None,
    points: Optional[int] = None,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    """Convert a price to points, or points to a display price."""
    if (price is None) == (points is None):
        raise InvalidInput("Pass exactly one of price or points")
    settings = await wishlist.get_settings(db, current.family_id)
    rate = settings.points_per_currency
    if price is not None:
        points = to_points(price, rate)
    return ConversionRead(
        currency=settings.currency,
        points_per_currency=rate,
        points=points,
        price=format_price(points, rate),
    )


@router.post("/", response_model=WishlistItemRead)
async def add_item(
    data: WishlistItemCreate,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    item = await wishlist.add_item(
        db,
        current,
        data.title,
        price=data.price,
        link=data.link,
        note=data.note,
        image_url=data.image_url,
        fulfillment_mode=data.fulfillment_mode,
        payment_method=data.payment_method,
        member_id=data.member_id,
    )
    return await _item_view(db, item)


@router.get("/", response_model=List[WishlistItemRead])
async def list_items(
    member_id: Optional[int] = None,
    status_filter: Optional[WishlistStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    return await registry.list_wishlist(
        db, current.family_id, member_id=member_id, status=status_filter
    )


@router.put("/{item_id}", response_model=WishlistItemRead)
async def update_item(
    item_id: int,
    data: WishlistItemUpdate,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    item = await wishlist.update_item(
        db, item_id, current, data.model_dump(exclude_unset=True)
    )
    return await _item_view(db, item)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: int,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    await wishlist.delete_item(db, item_id, current)


@router.post("/{item_id}/fulfill", response_model=WishlistItemRead)
async def fulfill_item(
    item_id: int,
    data: FulfillRequest,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    item = await wishlist.fulfill_item(db, item_id, current, data.expected_status)
    return await _item_view(db, item)
