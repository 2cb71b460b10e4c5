"""Eligibility checks for the matching engine."""

from .borrower import FirstTimeBorrowerCheck, LoanTypeCheck
from .capital import CapacityCheck, MinimumAmountCheck
from .geographic import GeographicCheck

__all__ = [
    "CapacityCheck",
    "FirstTimeBorrowerCheck",
    "GeographicCheck",
    "LoanTypeCheck",
    "MinimumAmountCheck",
]
