"""First-time borrower and loan-type affinity checks."""

from lendmatch.core.enums import RejectionReason
from lendmatch.services.matching.base import CheckResult, EligibilityCheck, EligibilityContext


class FirstTimeBorrowerCheck(EligibilityCheck):
    """
    Applies only to borrowers with zero completed loans.

    The lender must allow first-time borrowers, and the request must not
    exceed its first-time limit. Without an explicit limit the resolved
    maximum amount is used.
    """

    name = "first_time_borrower"

    def evaluate(self, context: EligibilityContext) -> CheckResult:
        if not context.is_first_time_borrower:
            return CheckResult.ok()

        criteria = context.criteria
        amount = context.loan.amount

        if not criteria.allow_first_time_borrowers:
            return CheckResult.fail(
                RejectionReason.FIRST_TIME_NOT_ALLOWED,
                "Lender does not accept first-time borrowers",
            )

        limit = criteria.first_time_borrower_limit
        if limit is None:
            limit = context.policy.max_amount

        if limit is not None and amount > limit:
            return CheckResult.fail(
                RejectionReason.FIRST_TIME_LIMIT_EXCEEDED,
                f"Requested amount ${amount} exceeds first-time borrower limit ${limit}",
                limit=str(limit),
                requested=str(amount),
            )

        return CheckResult.ok()


class LoanTypeCheck(EligibilityCheck):
    """
    Loan-type affinity, for business lenders only.

    A business with no configured loan types accepts every type. Once any
    type is configured, the loan's type must be one of them.
    """

    name = "loan_type"

    def evaluate(self, context: EligibilityContext) -> CheckResult:
        supported = context.criteria.supported_loan_types
        if not supported:
            return CheckResult.ok()

        loan_type = context.loan.loan_type
        if loan_type is None or loan_type.lower() not in supported:
            return CheckResult.fail(
                RejectionReason.LOAN_TYPE_NOT_SUPPORTED,
                f"Loan type '{loan_type}' is not supported by lender",
                actual=loan_type,
                supported_types=sorted(supported),
            )

        return CheckResult.ok()
