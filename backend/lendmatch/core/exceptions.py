"""Exceptions raised by the matching service layer.

All of them are ``ValueError`` subclasses: they describe problems with the
caller's input or with the state the caller expected, never infrastructure
failures, which propagate as-is.
"""

from typing import Optional
from uuid import UUID


class MatchingError(ValueError):
    """Base class for input and state errors in the matching engine."""


class LoanNotFoundError(MatchingError):
    def __init__(self, loan_id: UUID):
        super().__init__(f"Loan request with ID {loan_id} not found")
        self.loan_id = loan_id


class MatchRecordNotFoundError(MatchingError):
    def __init__(self, match_id: UUID):
        super().__init__(f"Match with ID {match_id} not found")
        self.match_id = match_id


class LoanAlreadyAssignedError(MatchingError):
    def __init__(self, loan_id: UUID):
        super().__init__(f"Loan {loan_id} already has a lender assigned")
        self.loan_id = loan_id


class NotAuthorizedError(MatchingError):
    """The acting user is not the lender the offer was made to."""


class OfferNotAvailableError(MatchingError):
    """
    The offer can no longer be acted on.

    ``code`` is the current match status (e.g. ``declined``) or the ledger
    outcome that lost the race (``already_assigned``, ``insufficient_capital``).
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class OfferExpiredError(OfferNotAvailableError):
    def __init__(self, match_id: UUID):
        super().__init__(f"Match {match_id} has expired", code="expired")
        self.match_id = match_id


class RematchNotAllowedError(MatchingError):
    """The loan is not in a state from which a new matching round may start."""
