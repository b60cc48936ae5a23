"""Tests for weighted attribute matching."""

import pytest

from trial_scout.core.schemas import Criteria, Profile, WeightSet
from trial_scout.pipeline.scorer import MatchScorer, contains_term
from trial_scout.pipeline.vocabulary import MatchVocabulary
from trial_scout.pipeline.weights import allocate_weights

EVEN = WeightSet(age=25, gender=25, conditions=25, location=25)


def _profile(**kw: object) -> Profile:
    defaults: dict[str, object] = {"campaign_url": "https://www.gofundme.com/f/x"}
    defaults.update(kw)
    return Profile(**defaults)  # type: ignore[arg-type]


@pytest.fixture()
def scorer() -> MatchScorer:
    return MatchScorer()


class TestContainsTerm:
    def test_word_boundary(self) -> None:
        assert contains_term("lou gehrig's disease (als)", "als") is True
        assert contains_term("false alarm", "als") is False

    def test_multi_word(self) -> None:
        assert contains_term("history of heart attack", "heart attack") is True


class TestAge:
    def test_in_range(self, scorer: MatchScorer) -> None:
        r = scorer.score(_profile(age=62), Criteria(age={"min": 50, "max": 70}), EVEN)
        assert r.breakdown == {"age": True}
        assert r.score == 25

    def test_bounds_inclusive(self, scorer: MatchScorer) -> None:
        c = Criteria(age={"min": 50, "max": 70})
        assert scorer.score(_profile(age=50), c, EVEN).breakdown["age"] is True
        assert scorer.score(_profile(age=70), c, EVEN).breakdown["age"] is True

    def test_out_of_range(self, scorer: MatchScorer) -> None:
        r = scorer.score(_profile(age=45), Criteria(age={"min": 50}), EVEN)
        assert r.breakdown == {"age": False}
        assert r.score == 0

    def test_open_bounds(self, scorer: MatchScorer) -> None:
        assert scorer.score(_profile(age=5), Criteria(age={"max": 10}), EVEN).breakdown["age"]
        assert scorer.score(_profile(age=120), Criteria(age={"min": 18}), EVEN).breakdown["age"]

    def test_profile_age_missing_omitted(self, scorer: MatchScorer) -> None:
        r = scorer.score(_profile(), Criteria(age={"min": 50}), EVEN)
        assert "age" not in r.breakdown

    def test_zero_age_is_evaluated(self, scorer: MatchScorer) -> None:
        r = scorer.score(_profile(age=0), Criteria(age={"max": 2}), EVEN)
        assert r.breakdown == {"age": True}


class TestGender:
    def test_member(self, scorer: MatchScorer) -> None:
        r = scorer.score(_profile(gender="female"), Criteria(gender=["female"]), EVEN)
        assert r.breakdown == {"gender": True}

    def test_case_insensitive(self, scorer: MatchScorer) -> None:
        r = scorer.score(_profile(gender="Male"), Criteria(gender=["male"]), EVEN)
        assert r.breakdown == {"gender": True}

    def test_non_member(self, scorer: MatchScorer) -> None:
        r = scorer.score(_profile(gender="male"), Criteria(gender=["female"]), EVEN)
        assert r.breakdown == {"gender": False}

    def test_unknown_gender_omitted(self, scorer: MatchScorer) -> None:
        r = scorer.score(_profile(gender="unknown"), Criteria(gender=["female"]), EVEN)
        assert r.breakdown == {}

    def test_empty_criteria_leave_gender_unscored(self, scorer: MatchScorer) -> None:
        r = scorer.score(_profile(gender="female"), Criteria(), EVEN)
        assert "gender" not in r.breakdown


class TestConditions:
    @pytest.mark.parametrize(("required", "observed"), [
        ("diabetes", "Type 2 Diabetes"),
        ("Type 2 Diabetes", "diabetes"),
        ("cancer", "Merkel Cell Carcinoma"),
        ("heart disease", "cardiac arrest"),
        ("kidney failure", "end-stage renal disease"),
        ("high blood pressure", "hypertension"),
        ("heart attack", "myocardial infarction"),
        ("ALS", "amyotrophic lateral sclerosis"),
    ])
    def test_matches(self, scorer: MatchScorer, required: str, observed: str) -> None:
        assert scorer.conditions_match(required, observed) is True

    @pytest.mark.parametrize(("required", "observed"), [
        ("diabetes", "broken leg"),
        ("breast cancer", "stroke"),
        ("ALS", "stroke"),
        ("ALS", "epilepsy"),
        ("ALS", "spinal cord injury"),
        ("cystic fibrosis", "asthma"),
        ("systemic sclerosis", "epilepsy"),
        ("", "diabetes"),
    ])
    def test_non_matches(self, scorer: MatchScorer, required: str, observed: str) -> None:
        assert scorer.conditions_match(required, observed) is False

    def test_any_pair_matches(self, scorer: MatchScorer) -> None:
        r = scorer.score(
            _profile(conditions=["broken arm", "Stage 3 lung cancer"]),
            Criteria(conditions=["COPD", "cancer"]),
            EVEN,
        )
        assert r.breakdown == {"conditions": True}

    def test_no_profile_conditions_omitted(self, scorer: MatchScorer) -> None:
        r = scorer.score(_profile(), Criteria(conditions=["cancer"]), EVEN)
        assert r.breakdown == {}

    def test_custom_vocabulary(self) -> None:
        vocab = MatchVocabulary(medical_keywords={"glioma": "cancer", "cancer": "cancer"},
                                synonyms={}, states={})
        scorer = MatchScorer(vocab)
        assert scorer.conditions_match("cancer", "glioma") is True
        assert scorer.conditions_match("cancer", "Merkel cell carcinoma") is False


class TestLocation:
    @pytest.mark.parametrize(("wanted", "observed"), [
        ("Boston", "Boston, MA"),
        ("boston, ma", "Boston"),
        ("Massachusetts", "Boston, MA"),
        ("Boston, MA", "Massachusetts"),
        ("Texas", "Austin, TX"),
        ("New York", "Brooklyn, NY"),
    ])
    def test_matches(self, scorer: MatchScorer, wanted: str, observed: str) -> None:
        assert scorer.locations_match(wanted, observed) is True

    @pytest.mark.parametrize(("wanted", "observed"), [
        ("Boston", "Chicago, IL"),
        ("Texas", "Portland, OR"),
        ("Massachusetts", "Boston area"),
        ("West Virginia", "Richmond, VA"),
        ("Boston, Massachusetts", "Springfield, MA"),
        ("Boston, MA", "Worcester, Massachusetts"),
    ])
    def test_non_matches(self, scorer: MatchScorer, wanted: str, observed: str) -> None:
        assert scorer.locations_match(wanted, observed) is False

    def test_missing_profile_location_omitted(self, scorer: MatchScorer) -> None:
        r = scorer.score(_profile(), Criteria(location="Boston"), EVEN)
        assert r.breakdown == {}


class TestScore:
    def test_empty_profile_scores_zero(self, scorer: MatchScorer) -> None:
        c = Criteria(conditions=["cancer"], gender=["female"], age={"min": 50}, location="Ohio")
        r = scorer.score(_profile(), c, allocate_weights(c))
        assert r.score == 0
        assert r.breakdown == {}

    def test_full_match_scores_100(self, scorer: MatchScorer) -> None:
        c = Criteria(conditions=["Type 2 Diabetes"], gender=["female"],
                     age={"min": 50}, location="Boston")
        p = _profile(conditions=["diabetes"], gender="female", age=58, location="Boston, MA")
        r = scorer.score(p, c, allocate_weights(c))
        assert r.score == 100
        assert all(r.breakdown.values())

    def test_partial_match(self, scorer: MatchScorer) -> None:
        c = Criteria(conditions=["diabetes"], location="Boston",
                     priority_order=["conditions", "location"])
        p = _profile(conditions=["type 1 diabetes"], location="Denver, CO")
        r = scorer.score(p, c, allocate_weights(c))
        assert r.breakdown == {"conditions": True, "location": False}
        assert r.score == 60

    def test_weights_copied_into_result(self, scorer: MatchScorer) -> None:
        r = scorer.score(_profile(), Criteria(), EVEN)
        assert r.weights == EVEN

    def test_score_within_bounds(self, scorer: MatchScorer) -> None:
        c = Criteria(conditions=["cancer"], gender=["male"], age={"max": 90}, location="Ohio")
        p = _profile(conditions=["cancer"], gender="male", age=40, location="Columbus, OH")
        r = scorer.score(p, c, EVEN)
        assert 0 <= r.score <= 100

    def test_residual_attributes_credited(self, scorer: MatchScorer) -> None:
        c = Criteria(conditions=["diabetes"], location="Boston")
        p = _profile(conditions=["diabetes"], location="Boston, MA", age=55, gender="female")
        r = scorer.score(p, c, allocate_weights(c))
        assert r.breakdown == {"conditions": True, "location": True, "age": True, "gender": True}
        assert r.score == 100

    def test_residual_needs_profile_value(self, scorer: MatchScorer) -> None:
        c = Criteria(conditions=["diabetes"], location="Boston")
        p = _profile(conditions=["diabetes"], location="Boston, MA", gender="unknown")
        r = scorer.score(p, c, allocate_weights(c))
        assert r.breakdown == {"conditions": True, "location": True}
        assert r.score == 90

    def test_zero_residual_not_credited(self, scorer: MatchScorer) -> None:
        c = Criteria(conditions=["diabetes"])
        p = _profile(conditions=["diabetes"], age=55, location="Boston, MA")
        r = scorer.score(p, c, allocate_weights(c))
        assert r.breakdown == {"conditions": True}
        assert r.score == 100
