"""Wishlist item and fulfillment models."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from family_chores.models import FulfillmentMode, WishlistStatus


class WishlistItemCreate(BaseModel):
    title: str
    price: Optional[float] = None
    link: Optional[str] = None
    note: Optional[str] = None
    image_url: Optional[str] = None
    fulfillment_mode: FulfillmentMode = FulfillmentMode.PARENTS
    payment_method: Optional[str] = None
    member_id: Optional[int] = None


class WishlistItemUpdate(BaseModel):
    title: Optional[str] = None
    price: Optional[float] = None
    link: Optional[str] = None
    note: Optional[str] = None
    image_url: Optional[str] = None
    fulfillment_mode: Optional[FulfillmentMode] = None
    payment_method: Optional[str] = None


class WishlistItemRead(BaseModel):
    id: int
    family_id: int
    member_id: int
    title: str
    price: Optional[float] = None
    link: Optional[str] = None
    note: Optional[str] = None
    image_url: Optional[str] = None
    status: WishlistStatus
    fulfillment_mode: FulfillmentMode
    payment_method: Optional[str] = None
    fulfilled_by: Optional[int] = None
    fulfilled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    points_cost: Optional[int] = None
    currency: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class FulfillRequest(BaseModel):
    expected_status: WishlistStatus


class ConversionRead(BaseModel):
    currency: str
    points_per_currency: float
    points: int
    price: str
