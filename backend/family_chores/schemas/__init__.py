"""Convenience imports for all schema classes used by the API."""

from .member import MemberRead
from .ledger import (
    LedgerEntryRead,
    PointsHistory,
    PointsAdjust,
    ReconcileResult,
    PointsDay,
    PointsSummary,
)
from .chore import (
    Proof,
    ChoreCreate,
    ChoreUpdate,
    ChoreSubmit,
    ChoreReview,
    ChoreDuplicate,
    ChoreRead,
    SweepResult,
    ExpiredCount,
)
from .template import ChoreTemplateCreate, ChoreTemplateRead
from .wishlist import (
    WishlistItemCreate,
    WishlistItemUpdate,
    WishlistItemRead,
    FulfillRequest,
    ConversionRead,
)
from .settings import WishlistSettingsRead, WishlistSettingsUpdate

__all__ = [
    "MemberRead",
    "LedgerEntryRead",
    "PointsHistory",
    "PointsAdjust",
    "ReconcileResult",
    "PointsDay",
    "PointsSummary",
    "Proof",
    "ChoreCreate",
    "ChoreUpdate",
    "ChoreSubmit",
    "ChoreReview",
    "ChoreDuplicate",
    "ChoreRead",
    "SweepResult",
    "ExpiredCount",
    "ChoreTemplateCreate",
    "ChoreTemplateRead",
    "WishlistItemCreate",
    "WishlistItemUpdate",
    "WishlistItemRead",
    "FulfillRequest",
    "ConversionRead",
    "WishlistSettingsRead",
    "WishlistSettingsUpdate",
]
