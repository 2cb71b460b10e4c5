"""Matching engine foundation: resolved policies, check context, results and the base check."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from lendmatch.core.enums import PolicySource, RejectionReason
from lendmatch.models.domain.lender import LenderCriteria, LenderPreference
from lendmatch.models.domain.loan import LoanRequest


@dataclass(frozen=True)
class ResolvedPolicy:
    """
    Effective pricing for one lender and one borrower.

    Attributes:
        interest_rate: Flat interest rate percentage, e.g. 12.50
        max_amount: Largest loan the lender will fund for this borrower (None = unbounded)
        source: Whether the figures came from a tier policy or the lender's defaults
    """

    interest_rate: Decimal
    max_amount: Optional[Decimal]
    source: PolicySource


@dataclass(frozen=True)
class PolicyResolution:
    """Outcome of policy resolution: a policy, or the reason there is none."""

    policy: Optional[ResolvedPolicy] = None
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None

    @property
    def eligible(self) -> bool:
        return self.policy is not None


@dataclass
class EligibilityContext:
    """
    Everything an eligibility check may look at for one (loan, lender) pair.

    Attributes:
        loan: The loan request being matched
        lender: The candidate lender preference
        criteria: The lender's eligibility inputs (see ``LenderPreference.eligibility_inputs``)
        policy: The rate and limit resolved for this borrower
        is_first_time_borrower: Whether the borrower has zero completed loans
    """

    loan: LoanRequest
    lender: LenderPreference
    criteria: LenderCriteria
    policy: ResolvedPolicy
    is_first_time_borrower: bool


@dataclass
class CheckResult:
    """
    Result of running one eligibility check.

    A failed result carries exactly one rejection reason.
    """

    passed: bool
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None
    evidence: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls) -> "CheckResult":
        return cls(passed=True)

    @classmethod
    def fail(cls, reason: RejectionReason, message: str, **evidence: Any) -> "CheckResult":
        return cls(passed=False, reason=reason, message=message, evidence=evidence)


class EligibilityCheck(ABC):
    """
    Abstract base class for eligibility checks using the Strategy pattern.

    Each concrete check tests one constraint of a lender's preferences
    against a loan request and reports a single reason when it fails.
    """

    name: str = "check"

    @abstractmethod
    def evaluate(self, context: EligibilityContext) -> CheckResult:
        """
        Evaluate the check against the provided context.

        Args:
            context: EligibilityContext for one (loan, lender) pair

        Returns:
            CheckResult, passed or failed with its reason
        """
