"""Weighted attribute matching of a candidate profile against trial criteria.

Score range: 0-100. Each attribute contributes its WeightSet share when it
matches; attributes missing on either side are left out of the breakdown
and contribute nothing. An attribute the criteria leave open but still
weight (a residual share) counts as matched when the profile has a value
for it.

Condition strategies, loosest last:
  1. substring containment in either direction
  2. shared medical keyword class (e.g. "carcinoma" and "cancer")
  3. synonym table (canonical term on one side, a synonym on the other)
"""

import logging
import re
from functools import lru_cache

from trial_scout.core.schemas import ATTRIBUTES, Criteria, MatchResult, Profile, WeightSet
from trial_scout.pipeline.vocabulary import DEFAULT_VOCABULARY, MatchVocabulary
from trial_scout.pipeline.weights import specified_attributes

logger = logging.getLogger(__name__)

AGE_FLOOR = 0
AGE_CEILING = 999


@lru_cache(maxsize=2048)
def _term_pattern(term: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![a-z0-9]){re.escape(term)}(?![a-z0-9])")


def contains_term(text: str, term: str) -> bool:
    """Word-boundary containment of a lower-cased term in lower-cased text."""
    return _term_pattern(term).search(text) is not None


def _last_token(text: str) -> str:
    tokens = [t for t in re.split(r"[\s,]+", text.strip()) if t]
    return tokens[-1].strip(".") if tokens else ""


class MatchScorer:
    """Computes a MatchResult for one profile, criteria and weight set."""

    def __init__(self, vocabulary: MatchVocabulary | None = None) -> None:
        self._vocab = vocabulary or DEFAULT_VOCABULARY

    def score(self, profile: Profile, criteria: Criteria, weights: WeightSet) -> MatchResult:
        breakdown: dict[str, bool] = {}

        age = self._match_age(profile, criteria)
        if age is not None:
            breakdown["age"] = age

        gender = self._match_gender(profile, criteria)
        if gender is not None:
            breakdown["gender"] = gender

        conditions = self._match_conditions(profile, criteria)
        if conditions is not None:
            breakdown["conditions"] = conditions

        location = self._match_location(profile, criteria)
        if location is not None:
            breakdown["location"] = location

        specified = specified_attributes(criteria)
        if specified:
            for attr in ATTRIBUTES:
                if (
                    attr not in specified
                    and weights.for_attribute(attr) > 0
                    and self._has_value(profile, attr)
                ):
                    breakdown[attr] = True

        score =sum(weights.for_attribute(attr) for attr, ok in breakdown.items() if ok)
        score = max(0, min(100, score))
        return MatchResult(score=score, breakdown=breakdown, weights=weights)

    # -- attributes ---------------------------------------------------------

    @staticmethod
    def _has_value(profile: Profile, attr: str) -> bool:
        if attr == "age":
            return profile.age is not None
        if attr == "gender":
            return (profile.gender or "unknown").lower() != "unknown"
        if attr == "conditions":
            return bool(profile.conditions)
        return bool(profile.location)

    def _match_age(self, profile: Profile, criteria: Criteria) -> bool | None:
        if not criteria.age.is_set or profile.age is None:
            return None
        age_min = criteria.age.min if criteria.age.min is not None else AGE_FLOOR
        age_max = criteria.age.max if criteria.age.max is not None else AGE_CEILING
        return age_min <= profile.age <= age_max

    def _match_gender(self, profile: Profile, criteria: Criteria) -> bool | None:
        gender = (profile.gender or "unknown").lower()
        if not criteria.gender or gender == "unknown":
            return None
        return gender in {g.lower() for g in criteria.gender}

    def _match_conditions(self, profile: Profile, criteria: Criteria) -> bool | None:
        if not criteria.conditions or not profile.conditions:
            return None
        return any(
            self.conditions_match(required, observed)
            for required in criteria.conditions
            for observed in profile.conditions
        )

    def _match_location(self, profile: Profile, criteria: Criteria) -> bool | None:
        if not criteria.location or not profile.location:
            return None
        return self.locations_match(criteria.location, profile.location)

    # -- strategies ---------------------------------------------------------

    def conditions_match(self, required: str, observed: str) -> bool:
        a = required.lower().strip()
        b = observed.lower().strip()
        if not a or not b:
            return False
        if a in b or b in a:
            return True
        if self._keyword_classes(a) & self._keyword_classes(b):
            return True
        return self._synonym_match(a, b)

    def locations_match(self, wanted: str, observed: str) -> bool:
        a = wanted.lower().strip()
        b = observed.lower().strip()
        if not a or not b:
            return False
        if a in b or b in a:
            return True
        return self._state_match(a, b) or self._state_match(b, a)

    def _keyword_classes(self, text: str) -> set[str]:
        return {
            cls for keyword, cls in self._vocab.medical_keywords.items()
            if contains_term(text, keyword)
        }

    def _synonym_match(self, a: str, b: str) -> bool:
        for canonical, related in self._vocab.synonyms.items():
            if contains_term(a, canonical) and any(contains_term(b, s) for s in related):
                return True
            if contains_term(b, canonical) and any(contains_term(a, s) for s in related):
                return True
        return False

    def _state_match(self, full: str, abbreviated: str) -> bool:
        # `full` must be exactly a state name, not a city or a longer state
        abbreviations = self._vocab.states.get(full.strip(" ."))
        if not abbreviations:
            return False
        return _last_token(abbreviated) in abbreviations
