"""Capital and amount-floor checks."""

from lendmatch.core.enums import RejectionReason
from lendmatch.services.matching.base import CheckResult, EligibilityCheck, EligibilityContext


class CapacityCheck(EligibilityCheck):
    """Lender must have ``pool - reserved >= amount`` available."""

    name = "capacity"

    def evaluate(self, context: EligibilityContext) -> CheckResult:
        available = context.lender.capacity()
        amount = context.loan.amount

        if available < amount:
            return CheckResult.fail(
                RejectionReason.INSUFFICIENT_CAPITAL,
                f"Available capital ${available} below requested ${amount}",
                available=str(available),
                requested=str(amount),
            )
        return CheckResult.ok()


class MinimumAmountCheck(EligibilityCheck):
    """Requested amount must reach the lender's minimum."""

    name = "min_amount"

    def evaluate(self, context: EligibilityContext) -> CheckResult:
        minimum = context.criteria.min_amount
        amount = context.loan.amount

        if amount < minimum:
            return CheckResult.fail(
                RejectionReason.BELOW_MINIMUM_AMOUNT,
                f"Requested amount ${amount} below lender minimum ${minimum}",
                minimum=str(minimum),
                requested=str(amount),
            )
        return CheckResult.ok()
