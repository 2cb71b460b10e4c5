"""Policy resolution: effective interest rate and loan limit per lender and borrower tier."""

from decimal import Decimal
from typing import Iterable, Optional

from lendmatch.core.enums import PolicySource, RejectionReason, TrustTier
from lendmatch.models.domain.lender import LenderPreference, TierPolicy
from lendmatch.services.matching.base import PolicyResolution, ResolvedPolicy


class PolicyResolver:
    """
    Resolves the rate and limit a lender offers a borrower.

    Two explicit branches:

    Tier policies
        The lender has configured at least one tier policy row (active or
        not). The borrower's tier must have an active policy whose
        ``max_loan_amount`` covers the request, otherwise the lender is
        excluded. Defaults are never used for such a lender.

    Default preferences
        The lender has no tier policy rows at all. The preference-level
        ``interest_rate`` and ``max_amount`` apply.

    Individual and business lenders resolve the same way, each against
    its own policy rows.
    """

    def resolve(
        self,
        lender: LenderPreference,
        borrower_tier: TrustTier,
        amount: Decimal,
        tier_policies: Optional[Iterable[TierPolicy]] = None,
    ) -> PolicyResolution:
        """
        Resolve the effective policy for a lender.

        Args:
            lender: Candidate lender preference
            borrower_tier: Borrower's current trust tier
            amount: Requested loan amount
            tier_policies: Policy rows for the lender; defaults to ``lender.tier_policies``

        Returns:
            PolicyResolution with a ResolvedPolicy, or the rejection reason
        """
        policies = list(lender.tier_policies if tier_policies is None else tier_policies)

        if policies:
            return self._resolve_from_tier_policies(policies, borrower_tier, amount)

        return self._resolve_from_defaults(lender, amount)

    def _resolve_from_tier_policies(
        self,
        policies: list[TierPolicy],
        borrower_tier: TrustTier,
        amount: Decimal,
    ) -> PolicyResolution:
        tier = TrustTier(borrower_tier)
        policy = next(
            (p for p in policies if TrustTier(p.tier) == tier and p.is_active),
            None,
        )

        if policy is None:
            return PolicyResolution(
                reason=RejectionReason.NO_TIER_POLICY,
                message=f"No active tier policy for borrower tier {tier.value}",
            )

        if policy.max_loan_amount < amount:
            return PolicyResolution(
                reason=RejectionReason.TIER_LIMIT_EXCEEDED,
                message=(
                    f"Requested amount ${amount} exceeds {tier.value} limit "
                    f"${policy.max_loan_amount}"
                ),
            )

        return PolicyResolution(
            policy=ResolvedPolicy(
                interest_rate=policy.interest_rate,
                max_amount=policy.max_loan_amount,
                source=PolicySource.TIER_POLICY,
            )
        )

    def _resolve_from_defaults(
        self,
        lender: LenderPreference,
        amount: Decimal,
    ) -> PolicyResolution:
        if lender.max_amount is not None and amount > lender.max_amount:
            return PolicyResolution(
                reason=RejectionReason.ABOVE_MAXIMUM_AMOUNT,
                message=(
                    f"Requested amount ${amount} exceeds lender maximum ${lender.max_amount}"
                ),
            )

        return PolicyResolution(
            policy=ResolvedPolicy(
                interest_rate=lender.interest_rate,
                max_amount=lender.max_amount,
                source=PolicySource.DEFAULT_PREFERENCES,
            )
        )
