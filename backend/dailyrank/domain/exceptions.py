"""Rating engine errors.

Route handlers translate these to HTTP responses (see ``dailyrank.main``).
"""
from datetime import date
from typing import Optional


class RatingError(Exception):
    """Base class for rating engine failures."""


class UserNotFoundError(RatingError):
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class InconsistentLedgerError(RatingError):
    """The ledger or the user's day pointer contradicts itself.

    Never repaired automatically: the request fails and the state is left as is.
    """

    def __init__(self, user_id: int, message: str, day: Optional[date] = None):
        self.user_id = user_id
        self.day = day
        super().__init__(message)


class FinalizationConflictError(RatingError):
    """Another request closed the same day first. The caller should retry."""

    def __init__(self, user_id: int, day: date):
        self.user_id = user_id
        self.day = day
        super().__init__(f"Day {day.isoformat()} for user {user_id} was finalized concurrently")
