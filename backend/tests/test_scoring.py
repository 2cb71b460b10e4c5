"""Fit score components and deterministic ranking."""

from lendmatch.services.matching import MatchScorer

from factories import make_business_lender, make_individual_lender, make_loan


class TestScore:
    def test_base_score(self):
        assert MatchScorer.score(make_loan(), make_individual_lender()) == 80

    def test_auto_accept_raises_base(self):
        assert MatchScorer.score(make_loan(), make_individual_lender(auto_accept=True)) == 100

    def test_geographic_bonuses_need_explicit_listing(self):
        loan = make_loan(country="us", state="ca")

        assert MatchScorer.score(loan, make_individual_lender(countries=[], states=[])) == 80
        assert MatchScorer.score(loan, make_individual_lender(countries=["US"])) == 85
        assert (
            MatchScorer.score(loan, make_individual_lender(countries=["US"], states=["CA"])) == 90
        )

    def test_geographic_bonuses_ignore_whitespace_in_lender_codes(self):
        loan = make_loan(country="US", state="CA")
        lender = make_individual_lender(countries=[" us"], states=["CA "])

        assert MatchScorer.score(loan, lender) == 90

    def test_loan_type_bonus_for_listed_business_type(self):
        loan = make_loan(loan_type="Education", country="US", state="CA")
        lender = make_business_lender(
            auto_accept=True,
            loan_types=("education",),
            countries=["US"],
            states=["CA"],
        )

        assert MatchScorer.score(loan, lender) == 130

    def test_no_loan_type_bonus_when_business_accepts_everything(self):
        loan = make_loan(loan_type="education")

        assert MatchScorer.score(loan, make_business_lender(loan_types=())) == 80


class TestRank:
    def test_orders_by_descending_score(self):
        ranked = MatchScorer.rank(["a", "b", "c"], [80, 100, 90], limit=5)

        assert ranked == [("b", 100), ("c", 90), ("a", 80)]

    def test_ties_keep_input_order(self):
        ranked = MatchScorer.rank(["first", "second", "third"], [80, 80, 80], limit=5)

        assert [candidate for candidate, _ in ranked] == ["first", "second", "third"]

    def test_truncates_to_fan_out(self):
        ranked = MatchScorer.rank(list("abcdefg"), [80] * 7, limit=3)

        assert [candidate for candidate, _ in ranked] == ["a", "b", "c"]

    def test_non_positive_fan_out_keeps_nothing(self):
        assert MatchScorer.rank(["a"], [80], limit=0) == []
        assert MatchScorer.rank(["a"], [80], limit=-1) == []

    def test_repeated_runs_are_identical(self):
        candidates = [f"lender-{i}" for i in range(20)]
        scores = [80 + (i % 3) * 5 for i in range(20)]

        first = MatchScorer.rank(candidates, scores, limit=10)
        for _ in range(5):
            assert MatchScorer.rank(candidates, scores, limit=10) == first
