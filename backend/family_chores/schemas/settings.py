"""Pydantic models for per-family wishlist settings."""

from datetime import datetime
from pydantic import BaseModel, ConfigDict


class WishlistSettingsRead(BaseModel):
    family_id: int
    currency: str
    points_per_currency: float
    self_fulfill_max_price: float | None = None
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WishlistSettingsUpdate(BaseModel):
    currency: str | None = None
    points_per_currency: float | None = None
    self_fulfill_max_price: float | None = None
