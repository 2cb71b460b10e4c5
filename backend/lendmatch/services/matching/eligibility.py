"""Eligibility filter: ordered, short-circuiting checks over one (loan, lender) pair."""

from dataclasses import dataclass, field
from typing import Optional

from lendmatch.core.enums import RejectionReason
from lendmatch.models.domain.lender import LenderPreference
from lendmatch.models.domain.loan import LoanRequest
from lendmatch.services.matching.base import (
    CheckResult,
    EligibilityCheck,
    EligibilityContext,
    ResolvedPolicy,
)
from lendmatch.services.matching.checks import (
    CapacityCheck,
    FirstTimeBorrowerCheck,
    GeographicCheck,
    LoanTypeCheck,
    MinimumAmountCheck,
)


@dataclass
class EligibilityResult:
    """
    Result of running the filter for one lender.

    Attributes:
        eligible: Whether every check passed
        reason: Reason of the first failing check (None when eligible)
        message: Human-readable detail of the failure
        failed_check: Name of the failing check
        evidence: Values the failing check compared
    """

    eligible: bool
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None
    failed_check: Optional[str] = None
    evidence: dict = field(default_factory=dict)


class EligibilityFilter:
    """
    Runs the registered eligibility checks in order.

    The first failing check decides the rejection reason; later checks are
    not run. The default order is capital, minimum amount, geography,
    first-time borrower, loan type.
    """

    def __init__(self, checks: Optional[list[EligibilityCheck]] = None):
        self._checks: list[EligibilityCheck] = (
            list(checks) if checks is not None else self._default_checks()
        )

    @staticmethod
    def _default_checks() -> list[EligibilityCheck]:
        return [
            CapacityCheck(),
            MinimumAmountCheck(),
            GeographicCheck(),
            FirstTimeBorrowerCheck(),
            LoanTypeCheck(),
        ]

    @property
    def checks(self) -> list[EligibilityCheck]:
        return list(self._checks)

    def register_check(self, check: EligibilityCheck) -> None:
        """Append a check after the existing ones."""
        self._checks.append(check)

    def evaluate(
        self,
        loan: LoanRequest,
        lender: LenderPreference,
        policy: ResolvedPolicy,
        is_first_time_borrower: bool,
    ) -> EligibilityResult:
        """
        Evaluate a lender against a loan request.

        Args:
            loan: The loan request
            lender: Candidate lender (active, not the borrower)
            policy: Policy already resolved for this borrower
            is_first_time_borrower: Whether the borrower has zero completed loans

        Returns:
            EligibilityResult carrying the first failure, if any
        """
        context = EligibilityContext(
            loan=loan,
            lender=lender,
            criteria=lender.eligibility_inputs(),
            policy=policy,
            is_first_time_borrower=is_first_time_borrower,
        )

        for check in self._checks:
            result: CheckResult = check.evaluate(context)
            if not result.passed:
                return EligibilityResult(
                    eligible=False,
                    reason=result.reason,
                    message=result.message,
                    failed_check=check.name,
                    evidence=result.evidence,
                )

        return EligibilityResult(eligible=True)
