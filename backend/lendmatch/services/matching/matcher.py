"""Candidate builder: catalogue screening, policy resolution, eligibility, ranking."""

from dataclasses import dataclass, field
from typing import Iterable, Optional
from uuid import UUID

from lendmatch.core.enums import TrustTier
from lendmatch.models.domain.lender import LenderPreference
from lendmatch.models.domain.loan import LoanRequest
from lendmatch.services.matching.base import ResolvedPolicy
from lendmatch.services.matching.eligibility import EligibilityFilter
from lendmatch.services.matching.policy import PolicyResolver
from lendmatch.services.matching.scoring import MatchScorer


@dataclass
class CandidateMatch:
    """
    An eligible lender, ranked.

    Attributes:
        lender: The lender preference
        policy: Rate and limit resolved for this borrower
        score: Integer fit score
        rank: 1-based position after ranking
    """

    lender: LenderPreference
    policy: ResolvedPolicy
    score: int
    rank: int


@dataclass
class LenderRejection:
    """
    A lender that was screened out, and why.

    Attributes:
        lender_id: Id of the lender preference
        stage: "catalogue", "policy" or "eligibility"
        reason: RejectionReason value, or a catalogue reason ("inactive", "self_lending")
        message: Human-readable detail
    """

    lender_id: UUID
    stage: str
    reason: str
    message: Optional[str] = None


@dataclass
class MatchEvaluation:
    """Ranked candidates plus every rejection, for logging and diagnostics."""

    candidates: list[CandidateMatch] = field(default_factory=list)
    rejections: list[LenderRejection] = field(default_factory=list)

    @property
    def has_candidates(self) -> bool:
        return bool(self.candidates)


class Matcher:
    """
    Builds the ranked candidate list for one loan request.

    Stage 1: Catalogue screening
        - Inactive lenders are skipped
        - A lender acting for the borrower is skipped (no self-lending)

    Stage 2: Policy resolution
        - Tier policy or default preferences, see ``PolicyResolver``

    Stage 3: Eligibility
        - Ordered checks, see ``EligibilityFilter``

    Stage 4: Scoring and ranking
        - Stable sort by score, truncated to the fan-out
    """

    def __init__(
        self,
        resolver: Optional[PolicyResolver] = None,
        eligibility: Optional[EligibilityFilter] = None,
        scorer: Optional[MatchScorer] = None,
    ):
        self.resolver = resolver or PolicyResolver()
        self.eligibility = eligibility or EligibilityFilter()
        self.scorer = scorer or MatchScorer()

    def find_candidates(
        self,
        loan: LoanRequest,
        lenders: Iterable[LenderPreference],
        borrower_tier: TrustTier,
        is_first_time_borrower: bool,
        fan_out: int,
    ) -> MatchEvaluation:
        """
        Evaluate every lender in the catalogue against a loan.

        Args:
            loan: Loan request being matched
            lenders: Lender catalogue, ordered by preference id
            borrower_tier: Borrower's trust tier
            is_first_time_borrower: Whether the borrower has zero completed loans
            fan_out: Maximum number of candidates to return

        Returns:
            MatchEvaluation with ranked candidates and per-lender rejections
        """
        evaluation = MatchEvaluation()
        eligible: list[tuple[LenderPreference, ResolvedPolicy]] = []
        scores: list[int] = []

        for lender in lenders:
            if not lender.is_active:
                evaluation.rejections.append(
                    LenderRejection(lender_id=lender.id, stage="catalogue", reason="inactive")
                )
                continue

            if lender.is_acting_user(loan.borrower_id):
                evaluation.rejections.append(
                    LenderRejection(lender_id=lender.id, stage="catalogue", reason="self_lending")
                )
                continue

            resolution = self.resolver.resolve(lender, borrower_tier, loan.amount)
            if not resolution.eligible:
                evaluation.rejections.append(
                    LenderRejection(
                        lender_id=lender.id,
                        stage="policy",
                        reason=resolution.reason.value,
                        message=resolution.message,
                    )
                )
                continue

            result = self.eligibility.evaluate(
                loan, lender, resolution.policy, is_first_time_borrower
            )
            if not result.eligible:
                evaluation.rejections.append(
                    LenderRejection(
                        lender_id=lender.id,
                        stage="eligibility",
                        reason=result.reason.value,
                        message=result.message,
                    )
                )
                continue

            eligible.append((lender, resolution.policy))
            scores.append(self.scorer.score(loan, lender))

        ranked = self.scorer.rank(eligible, scores, fan_out)
        evaluation.candidates = [
            CandidateMatch(lender=lender, policy=policy, score=score, rank=position)
            for position, ((lender, policy), score) in enumerate(ranked, start=1)
        ]
        return evaluation
