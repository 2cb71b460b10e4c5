"""Geographic check: countries and states a lender serves.

An empty list means the lender serves everywhere. Country and state are
tested independently; the country is tested first so a failure is always
attributed to a single reason.
"""

from typing import Optional

from lendmatch.core.enums import RejectionReason
from lendmatch.services.matching.base import CheckResult, EligibilityCheck, EligibilityContext


def _normalize(code: Optional[str]) -> Optional[str]:
    return code.strip().upper() if code else None


class GeographicCheck(EligibilityCheck):
    """Loan country and state must be in the lender's lists when those are non-empty."""

    name = "geography"

    def evaluate(self, context: EligibilityContext) -> CheckResult:
        criteria = context.criteria
        country = _normalize(context.loan.country)
        state = _normalize(context.loan.state)

        if criteria.countries and country not in criteria.countries:
            return CheckResult.fail(
                RejectionReason.COUNTRY_NOT_SERVED,
                f"Country '{country}' is not served by lender",
                actual=country,
                allowed_countries=sorted(criteria.countries),
            )

        if criteria.states and state not in criteria.states:
            return CheckResult.fail(
                RejectionReason.STATE_NOT_SERVED,
                f"State '{state}' is not served by lender",
                actual=state,
                allowed_states=sorted(criteria.states),
            )

        return CheckResult.ok()
