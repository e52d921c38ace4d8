"""Aggregate import for all API route modules."""

from . import (
    members,
    points,
    chores,
    templates,
    wishlist,
    changes,
)

__all__ = [
    "members",
    "points",
    "chores",
    "templates",
    "wishlist",
    "changes",
]
