"""Candidate building: catalogue screening, policy, eligibility and ranking together."""

import uuid
from decimal import Decimal

import pytest

from lendmatch.core.enums import PolicySource, RejectionReason, TrustTier
from lendmatch.services.matching import Matcher

from factories import (
    make_business_lender,
    make_individual_lender,
    make_loan,
    make_tier_policy,
)


@pytest.fixture
def matcher():
    return Matcher()


def rejection_for(evaluation, lender):
    return next(r for r in evaluation.rejections if r.lender_id == lender.id)


class TestFindCandidates:
    def test_capacity_exclusion_and_auto_accept_ranking(self, matcher):
        loan = make_loan("500")
        lender_a = make_individual_lender(pool="1000", reserved="600")
        lender_b = make_individual_lender(pool="1000", reserved="0", auto_accept=True)

        evaluation = matcher.find_candidates(
            loan, [lender_a, lender_b], TrustTier.TIER_1, True, fan_out=5
        )

        assert [c.lender for c in evaluation.candidates] == [lender_b]
        assert evaluation.candidates[0].rank == 1
        assert evaluation.candidates[0].score == 100
        rejection = rejection_for(evaluation, lender_a)
        assert rejection.stage == "eligibility"
        assert rejection.reason == RejectionReason.INSUFFICIENT_CAPITAL.value

    def test_first_time_borrower_screening(self, matcher):
        loan = make_loan("300")
        lender_c = make_individual_lender(allow_first_time_borrowers=False)
        lender_d = make_individual_lender(first_time_borrower_limit=Decimal("250"))
        lender_e = make_individual_lender(first_time_borrower_limit=Decimal("500"))

        evaluation = matcher.find_candidates(
            loan, [lender_c, lender_d, lender_e], TrustTier.TIER_1, True, fan_out=5
        )

        assert [c.lender for c in evaluation.candidates] == [lender_e]
        assert rejection_for(evaluation, lender_c).reason == "first_time_not_allowed"
        assert rejection_for(evaluation, lender_d).reason == "first_time_limit_exceeded"

    def test_inactive_and_self_lending_are_screened_first(self, matcher):
        borrower_id = uuid.uuid4()
        loan = make_loan(borrower_id=borrower_id)
        inactive = make_individual_lender(is_active=False)
        own_account = make_individual_lender(user_id=borrower_id)
        own_business = make_business_lender(owner_user_id=borrower_id)

        evaluation = matcher.find_candidates(
            loan, [inactive, own_account, own_business], TrustTier.TIER_1, False, fan_out=5
        )

        assert not evaluation.has_candidates
        assert rejection_for(evaluation, inactive).reason == "inactive"
        assert rejection_for(evaluation, own_account).reason == "self_lending"
        assert rejection_for(evaluation, own_business).reason == "self_lending"
        assert {r.stage for r in evaluation.rejections} == {"catalogue"}

    def test_tier_policy_lender_is_never_priced_by_defaults(self, matcher):
        loan = make_loan("100")
        lender = make_individual_lender(
            interest_rate=Decimal("5.00"),
            tier_policies=[make_tier_policy(TrustTier.TIER_2, rate="14.00")],
        )

        excluded = matcher.find_candidates(loan, [lender], TrustTier.TIER_1, False, fan_out=5)
        included = matcher.find_candidates(loan, [lender], TrustTier.TIER_2, False, fan_out=5)

        assert rejection_for(excluded, lender).stage == "policy"
        assert rejection_for(excluded, lender).reason == "no_tier_policy"
        assert included.candidates[0].policy.interest_rate == Decimal("14.00")
        assert included.candidates[0].policy.source == PolicySource.TIER_POLICY

    def test_fan_out_keeps_best_scores_with_stable_ties(self, matcher):
        loan = make_loan(country="US", state="CA")
        plain = [make_individual_lender() for _ in range(3)]
        listed = make_individual_lender(countries=["US"], states=["CA"])
        auto = make_individual_lender(auto_accept=True)

        evaluation = matcher.find_candidates(
            loan, plain + [listed, auto], TrustTier.TIER_1, False, fan_out=3
        )

        assert [c.lender for c in evaluation.candidates] == [auto, listed, plain[0]]
        assert [c.rank for c in evaluation.candidates] == [1, 2, 3]
        assert [c.score for c in evaluation.candidates] == [100, 90, 80]

    def test_same_catalogue_gives_same_ranking(self, matcher):
        loan = make_loan()
        lenders = [make_individual_lender() for _ in range(6)]

        first = matcher.find_candidates(loan, lenders, TrustTier.TIER_1, False, fan_out=4)
        second = matcher.find_candidates(loan, lenders, TrustTier.TIER_1, False, fan_out=4)

        assert [c.lender.id for c in first.candidates] == [c.lender.id for c in second.candidates]
