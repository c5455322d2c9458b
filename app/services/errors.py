"""
Errors raised by the scoring, ranking and pick services.

A calculation either commits completely or raises one of these after rolling
back. Having no picks or no final games is not an error.
"""


class ScoringError(Exception):
    """Base class for scoring failures surfaced to callers"""


class NotFoundError(ScoringError):
    """The referenced competition, league or user does not exist"""


class InconsistentStateError(ScoringError):
    """Stored data violates an integrity rule the calculation depends on"""


class CalculationInProgressError(ScoringError):
    """Another calculation for the same scope holds the lock"""


class InvalidTransitionError(ScoringError):
    """A competition status change outside the allowed lifecycle"""


class StorageFailureError(ScoringError):
    """The database failed mid-calculation; the transaction was rolled back"""


class ValidationError(ScoringError):
    """Submitted pick data is missing or out of range"""


class PicksLockedError(ScoringError):
    """The competition no longer accepts new or changed picks"""


class DuplicatePickError(ScoringError):
    """The user already has a pick for this game"""
