"""Family chores service: chore lifecycle, points ledger and wishlist."""
