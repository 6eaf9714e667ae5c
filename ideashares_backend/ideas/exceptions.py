"""Errors raised by the funding engine, the record store and the idea feed.

Ledger failures live in ``blockchain.exceptions`` and propagate through the
engine untouched.
"""


class FundingError(Exception):
    """Base class for funding lifecycle errors."""


class ValidationError(FundingError):
    """Rejected before any side effect; the caller can correct the input."""


class InvalidAmount(ValidationError):
    pass


class InvalidIdea(ValidationError):
    pass


class IdeaNotOpen(ValidationError):
    def __init__(self, idea_id, status):
        super().__init__(f"Idea {idea_id} is {status}, not open for investment")
        self.idea_id = idea_id
        self.status = status


class IdeaNotFound(FundingError):
    def __init__(self, idea_id):
        super().__init__(f"Idea {idea_id} does not exist")
        self.idea_id = idea_id


class FetchError(FundingError):
    """The record store could not be read."""


class StoreUnavailable(FundingError):
    """The record store failed before any payment was submitted.

    Nothing moved on the ledger; the original store error is chained as
    ``__cause__`` and the attempt can simply be repeated.
    """


class PersistenceError(FundingError):
    """A write to the record store failed.

    When raised from ``FundingEngine.invest`` the payment has already been
    confirmed on the ledger. ``pending`` then holds everything needed to
    re-insert the record with ``FundingEngine.repair``; paying again is never
    the fix.
    """

    INVESTMENT = "investment"
    STATUS = "status"

    def __init__(self, message, pending=None, stage=None):
        super().__init__(message)
        self.pending = pending
        self.stage = stage
