"""Database models used by the Family Chores service.

The models are defined with SQLModel (built on SQLAlchemy and Pydantic)
and represent families, members, chores, the points ledger and the
wishlist.  Status and role columns use ``str`` enums so every value a
row can hold is listed in one place.
"""

from enum import Enum
from typing import Optional, List
from datetime import datetime, timezone
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how SQLite hands datetimes back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class Role(str, Enum):
    MOM = "MOM"
    DAD = "DAD"
    ADULT = "ADULT"
    TEEN = "TEEN"
    CHILD = "CHILD"


class ChoreStatus(str, Enum):
    OPEN = "OPEN"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    EXPIRED = "EXPIRED"


TERMINAL_CHORE_STATUSES = frozenset({ChoreStatus.APPROVED, ChoreStatus.EXPIRED})


class LedgerKind(str, Enum):
    CHORE_APPROVAL = "chore_approval"
    WISHLIST_FULFILLMENT = "wishlist_fulfillment"
    MANUAL_ADJUST = "manual_adjust"


class WishlistStatus(str, Enum):
    OPEN = "open"
    FULFILLED = "fulfilled"


class FulfillmentMode(str, Enum):
    PARENTS = "parents"
    SELF = "self"


class Family(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    created_at: datetime = Field(default_factory=utcnow)


class FamilyMember(SQLModel, table=True):
    """Directory entry for a family member.

    ``points`` is a materialized view of the ledger and is only ever
    changed by :mod:`family_chores.ledger` in the same transaction as the
    ledger insert.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    family_id: int = Field(foreign_key="family.id", index=True)
    name: str
    role: Role
    points: int = 0
    created_at: datetime = Field(default_factory=utcnow)


class ChoreTemplate(SQLModel, table=True):
    """Preset used when creating chores."""

    id: Optional[int] = Field(default=None, primary_key=True)
    family_id: int = Field(foreign_key="family.id", index=True)
    title: str
    default_points: int
    created_by_id: Optional[int] = Field(default=None, foreign_key="familymember.id")
    is_archived: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Chore(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    family_id: int = Field(foreign_key="family.id", index=True)
    title: str
    description: Optional[str] = None
    points: int
    status: ChoreStatus = Field(default=ChoreStatus.OPEN, index=True)
    assigned_to_ids: List[int] = Field(sa_column=Column(JSON), default_factory=list)
    done_by_ids: List[int] = Field(sa_column=Column(JSON), default_factory=list)
    # each proof is {"uri": ..., "kind": "image"|"video", "type": "BEFORE"|"AFTER"}
    proofs: List[dict] = Field(sa_column=Column(JSON), default_factory=list)
    proof_note: Optional[str] = None
    expires_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    done_at: Optional[datetime] = None
    approved_by_id: Optional[int] = Field(default=None, foreign_key="familymember.id")
    approved_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_by_member_id: Optional[int] = Field(
        default=None, foreign_key="familymember.id"
    )
    template_id: Optional[int] = Field(default=None, foreign_key="choretemplate.id")
    audio_description_url: Optional[str] = None
    audio_description_duration: Optional[int] = None  # seconds
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class PointsLedgerEntry(SQLModel, table=True):
    """Immutable signed points movement for one member.

    Rows are never updated or deleted; corrections are new
    ``manual_adjust`` entries.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    family_id: int = Field(foreign_key="family.id", index=True)
    member_id: int = Field(foreign_key="familymember.id", index=True)
    delta: int
    reason: Optional[str] = None
    kind: LedgerKind
    chore_id: Optional[int] = Field(default=None, foreign_key="chore.id")
    wishlist_item_id: Optional[int] = Field(
        default=None, foreign_key="wishlistitem.id"
    )
    approved_by_member_id: Optional[int] = Field(
        default=None, foreign_key="familymember.id"
    )
    created_at: datetime = Field(default_factory=utcnow, index=True)


class WishlistItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    family_id: int = Field(foreign_key="family.id", index=True)
    member_id: int = Field(foreign_key="familymember.id", index=True)
    title: str
    price: Optional[float] = None
    link: Optional[str] = None
    note: Optional[str] = None
    image_url: Optional[str] = None
    status: WishlistStatus = Field(default=WishlistStatus.OPEN)
    fulfillment_mode: FulfillmentMode = Field(default=FulfillmentMode.PARENTS)
    payment_method: Optional[str] = None  # only kept for self fulfillment
    fulfilled_by: Optional[int] = Field(default=None, foreign_key="familymember.id")
    fulfilled_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class WishlistSettings(SQLModel, table=True):
    """Per-family conversion rate and self-fulfillment ceiling."""

    family_id: int = Field(foreign_key="family.id", primary_key=True)
    currency: str = "CAD"
    points_per_currency: float = 10.0
    self_fulfill_max_price: Optional[float] = None  # None means no limit
    updated_at: datetime = Field(default_factory=utcnow)
