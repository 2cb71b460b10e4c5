"""Policy resolution: tier-policy branch and default-preferences branch."""

from decimal import Decimal

from lendmatch.core.enums import PolicySource, RejectionReason, TrustTier
from lendmatch.services.matching import PolicyResolver

from factories import make_business_lender, make_individual_lender, make_tier_policy


# ============================================================
# DEFAULT PREFERENCES BRANCH
# ============================================================


class TestDefaultPreferences:
    """Lenders without any tier policy rows use their own rate and maximum."""

    def test_uses_lender_rate_and_max(self):
        lender = make_individual_lender(interest_rate=Decimal("9.50"), max_amount=Decimal("2000"))

        resolution = PolicyResolver().resolve(lender, TrustTier.TIER_3, Decimal("1500"))

        assert resolution.eligible
        assert resolution.policy.interest_rate == Decimal("9.50")
        assert resolution.policy.max_amount == Decimal("2000")
        assert resolution.policy.source == PolicySource.DEFAULT_PREFERENCES

    def test_unbounded_when_no_max(self):
        lender = make_individual_lender(max_amount=None)

        resolution = PolicyResolver().resolve(lender, TrustTier.TIER_1, Decimal("999999"))

        assert resolution.eligible
        assert resolution.policy.max_amount is None

    def test_rejects_above_max(self):
        lender = make_individual_lender(max_amount=Decimal("400"))

        resolution = PolicyResolver().resolve(lender, TrustTier.TIER_1, Decimal("500"))

        assert not resolution.eligible
        assert resolution.reason == RejectionReason.ABOVE_MAXIMUM_AMOUNT

    def test_amount_equal_to_max_is_allowed(self):
        lender = make_individual_lender(max_amount=Decimal("500"))

        resolution = PolicyResolver().resolve(lender, TrustTier.TIER_1, Decimal("500"))

        assert resolution.eligible


# ============================================================
# TIER POLICY BRANCH
# ============================================================


class TestTierPolicies:
    """Lenders with tier policy rows are priced by the borrower's tier only."""

    def test_matching_tier_policy_wins_over_defaults(self):
        lender = make_individual_lender(
            interest_rate=Decimal("10.00"),
            tier_policies=[
                make_tier_policy(TrustTier.TIER_1, rate="15.00", max_amount="300"),
                make_tier_policy(TrustTier.TIER_2, rate="11.00", max_amount="800"),
            ],
        )

        resolution = PolicyResolver().resolve(lender, TrustTier.TIER_2, Decimal("500"))

        assert resolution.eligible
        assert resolution.policy.interest_rate == Decimal("11.00")
        assert resolution.policy.max_amount == Decimal("800")
        assert resolution.policy.source == PolicySource.TIER_POLICY

    def test_no_policy_for_tier_never_falls_back_to_defaults(self):
        lender = make_individual_lender(
            max_amount=None,
            tier_policies=[make_tier_policy(TrustTier.TIER_3, max_amount="5000")],
        )

        resolution = PolicyResolver().resolve(lender, TrustTier.TIER_1, Decimal("100"))

        assert not resolution.eligible
        assert resolution.reason == RejectionReason.NO_TIER_POLICY

    def test_inactive_policy_does_not_apply(self):
        lender = make_individual_lender(
            tier_policies=[make_tier_policy(TrustTier.TIER_1, is_active=False)],
        )

        resolution = PolicyResolver().resolve(lender, TrustTier.TIER_1, Decimal("100"))

        assert not resolution.eligible
        assert resolution.reason == RejectionReason.NO_TIER_POLICY

    def test_rejects_above_tier_limit(self):
        lender = make_individual_lender(
            tier_policies=[make_tier_policy(TrustTier.TIER_1, max_amount="250")],
        )

        resolution = PolicyResolver().resolve(lender, TrustTier.TIER_1, Decimal("300"))

        assert not resolution.eligible
        assert resolution.reason == RejectionReason.TIER_LIMIT_EXCEEDED
        assert "250" in resolution.message

    def test_business_lender_resolves_against_its_own_policies(self):
        lender = make_business_lender(
            tier_policies=[make_tier_policy(TrustTier.TIER_4, rate="7.25", max_amount="10000")],
        )

        resolution = PolicyResolver().resolve(lender, TrustTier.TIER_4, Decimal("6000"))

        assert resolution.eligible
        assert resolution.policy.interest_rate == Decimal("7.25")

    def test_explicit_policy_rows_override_relationship(self):
        lender = make_individual_lender()
        policies = [make_tier_policy(TrustTier.TIER_2, rate="13.00")]

        resolution = PolicyResolver().resolve(
            lender, TrustTier.TIER_2, Decimal("100"), tier_policies=policies
        )

        assert resolution.policy.interest_rate == Decimal("13.00")
