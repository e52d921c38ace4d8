"""Points ledger request and response models."""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from family_chores.models import LedgerKind


class LedgerEntryRead(BaseModel):
    id: int
    family_id: int
    member_id: int
    delta: int
    reason: Optional[str] = None
    kind: LedgerKind
    chore_id: Optional[int] = None
    wishlist_item_id: Optional[int] = None
    approved_by_member_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PointsHistory(BaseModel):
    balance: int
    entries: list[LedgerEntryRead]


class PointsAdjust(BaseModel):
    delta: int
    reason: str


class ReconcileResult(BaseModel):
    members_checked: int


class PointsDay(BaseModel):
    day: date
    earned: int
    spent: int


class PointsSummary(BaseModel):
    member_id: int
    start: datetime
    end: datetime
    earned: int
    spent: int
    net: int
    days: list[PointsDay]
