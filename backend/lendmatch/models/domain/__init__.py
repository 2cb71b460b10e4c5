"""Domain models for the application."""

from lendmatch.models.domain.borrower import BorrowerProfile
from lendmatch.models.domain.lender import (
    BusinessLenderPreference,
    BusinessLoanType,
    IndividualLenderPreference,
    LenderCriteria,
    LenderPreference,
    LenderReference,
    TierPolicy,
)
from lendmatch.models.domain.loan import LoanRequest, PaymentScheduleItem
from lendmatch.models.domain.match import MatchRecord

__all__ = [
    "BorrowerProfile",
    "LoanRequest",
    "PaymentScheduleItem",
    "LenderPreference",
    "IndividualLenderPreference",
    "BusinessLenderPreference",
    "BusinessLoanType",
    "LenderCriteria",
    "LenderReference",
    "TierPolicy",
    "MatchRecord",
]
