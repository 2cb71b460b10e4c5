"""Repository layer for data access."""

from .base import BaseRepository
from .borrower_repository import BorrowerRepository
from .lender_repository import LenderRepository
from .loan_repository import LoanRepository
from .match_repository import MatchRepository

__all__ = [
    "BaseRepository",
    "BorrowerRepository",
    "LenderRepository",
    "LoanRepository",
    "MatchRepository",
]
