"""Domain error kinds raised by the chore and points engines.

Every error carries a stable ``code`` and the HTTP status the API
answers with, so routes can simply let them propagate and the handler
registered in :mod:`family_chores.main` renders them.
"""


class FamilyChoresError(Exception):
    """Base class for recoverable domain errors."""

    code = "error"
    status_code = 400

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


class InvalidInput(FamilyChoresError):
    """Request values failed validation."""

    code = "invalid_input"
    status_code = 400


class MissingProof(FamilyChoresError):
    """A chore cannot be submitted without proof."""

    code = "missing_proof"
    status_code = 400


class InvalidRate(FamilyChoresError):
    """Conversion rate must be greater than zero."""

    code = "invalid_rate"
    status_code = 400


class Unauthorized(FamilyChoresError):
    """Member role does not allow this operation."""

    code = "unauthorized"
    status_code = 403


class OverSelfFulfillLimit(FamilyChoresError):
    """Item price is above the self-fulfillment ceiling."""

    code = "over_self_fulfill_limit"
    status_code = 403


class NotFound(FamilyChoresError):
    """Requested record does not exist."""

    code = "not_found"
    status_code = 404


class InvalidTransition(FamilyChoresError):
    """Operation is not allowed from the current status."""

    code = "invalid_transition"
    status_code = 409


class Expired(InvalidTransition):
    """Chore deadline has passed."""

    code = "chore_expired"


class StaleState(FamilyChoresError):
    """Record changed since the caller last read it."""

    code = "stale_state"
    status_code = 409


class AlreadyFulfilled(FamilyChoresError):
    """Wishlist item has already been fulfilled."""

    code = "already_fulfilled"
    status_code = 409


class LedgerInconsistency(FamilyChoresError):
    """Cached balances diverge from the points ledger.

    Not recoverable by the caller; raised after the mismatches have been
    logged for an operator.
    """

    code = "ledger_inconsistency"
    status_code = 500

    def __init__(self, mismatches: list[dict]) -> None:
        self.mismatches = mismatches
        super().__init__(
            f"{len(mismatches)} member balance(s) differ from the ledger"
        )
