"""Scoring and ranking of eligible lenders."""

from typing import Optional, Sequence, TypeVar

from lendmatch.models.domain.lender import LenderCriteria, LenderPreference
from lendmatch.models.domain.loan import LoanRequest

T = TypeVar("T")

BASE_SCORE = 80
AUTO_ACCEPT_SCORE = 100
LOAN_TYPE_BONUS = 20
COUNTRY_BONUS = 5
STATE_BONUS = 5


class MatchScorer:
    """
    Integer fit score for an eligible lender, and the ranking built on it.

    Score components:
        - 80 base, 100 when the lender auto-accepts
        - +20 when a business lender explicitly lists the loan's type
        - +5 when the loan's country is explicitly listed
        - +5 when the loan's state is explicitly listed
    """

    @staticmethod
    def score(
        loan: LoanRequest,
        lender: LenderPreference,
        criteria: Optional[LenderCriteria] = None,
    ) -> int:
        """
        Calculate the fit score of one eligible lender.

        Args:
            loan: The loan request
            lender: An eligible lender
            criteria: Pre-computed eligibility inputs (computed when omitted)

        Returns:
            Fit score between 80 and 130
        """
        criteria = criteria or lender.eligibility_inputs()
        total = AUTO_ACCEPT_SCORE if lender.auto_accept else BASE_SCORE

        if (
            criteria.supported_loan_types
            and loan.loan_type
            and loan.loan_type.lower() in criteria.supported_loan_types
        ):
            total += LOAN_TYPE_BONUS

        if loan.country and loan.country.strip().upper() in criteria.countries:
            total += COUNTRY_BONUS

        if loan.state and loan.state.strip().upper() in criteria.states:
            total += STATE_BONUS

        return total

    @staticmethod
    def rank(candidates: Sequence[T], scores: Sequence[int], limit: int) -> list[tuple[T, int]]:
        """
        Order candidates by descending score and keep the first ``limit``.

        The sort is stable, so equal scores keep their input order.

        Args:
            candidates: Eligible candidates in eligibility-pass order
            scores: Score of each candidate, aligned with ``candidates``
            limit: Maximum number of candidates to keep (fan-out)

        Returns:
            List of (candidate, score) pairs, best first
        """
        paired = list(zip(candidates, scores))
        paired.sort(key=lambda pair: pair[1], reverse=True)
        return paired[: max(limit, 0)]
