"""Tests for the LLM-backed criteria, query and profile services."""

import json
from unittest.mock import MagicMock

import pytest

from trial_scout.core.schemas import AgeRange, Criteria
from trial_scout.llm.base import LLMProvider
from trial_scout.understanding.base import CriteriaParser, ProfileExtractor, QueryGenerator
from trial_scout.understanding.llm_services import (
    CRITERIA_SYSTEM_PROMPT,
    PAPER_SYSTEM_PROMPT,
    PROFILE_SYSTEM_PROMPT,
    QUERY_SYSTEM_PROMPT,
    LLMCriteriaParser,
    LLMPaperCriteriaExtractor,
    LLMProfileExtractor,
    LLMQueryGenerator,
    build_criteria,
    truncate_content,
)


def _provider(response: object) -> MagicMock:
    provider = MagicMock(spec=LLMProvider)
    provider.complete.return_value = (
        response if isinstance(response, str) else json.dumps(response)
    )
    return provider


class TestTruncateContent:
    def test_short_content_unchanged(self) -> None:
        assert truncate_content("a" * 3000) == "a" * 3000

    def test_long_content_keeps_head_and_tail(self) -> None:
        content = "h" * 2000 + "m" * 5000 + "t" * 1000
        result = truncate_content(content)
        assert result == "h" * 2000 + "\n...\n" + "t" * 1000


class TestBuildCriteria:
    def test_full(self) -> None:
        c = build_criteria({
            "age": {"min": 50, "max": "70"},
            "gender": ["Female"],
            "conditions": ["Type 2 Diabetes"],
            "location": "Boston",
            "exclusions": ["pregnancy"],
            "priorityOrder": ["location", "conditions", "gender", "age"],
        })
        assert c.age == AgeRange(min=50, max=70)
        assert c.gender == ["female"]
        assert c.conditions == ["Type 2 Diabetes"]
        assert c.location == "Boston"
        assert c.exclusions == ["pregnancy"]
        assert c.priority_order == ["conditions", "location", "gender", "age"]

    def test_empty_object(self) -> None:
        assert build_criteria({}) == Criteria()

    def test_sentinel_location_dropped(self) -> None:
        assert build_criteria({"location": "Not specified"}).location is None
        assert build_criteria({"location": "<unknown>"}).location is None

    def test_non_string_location_dropped(self) -> None:
        assert build_criteria({"location": {"city": "Boston"}}).location is None

    def test_unknown_values_dropped(self) -> None:
        c = build_criteria({
            "gender": ["female", "any"],
            "conditions": ["cancer", "unknown", None],
            "priorityOrder": ["conditions", "income"],
        })
        assert c.gender == ["female"]
        assert c.conditions == ["cancer"]
        assert c.priority_order == ["conditions"]

    def test_single_string_gender(self) -> None:
        assert build_criteria({"gender": "male"}).gender == ["male"]

    def test_bad_age_values_ignored(self) -> None:
        c = build_criteria({"age": {"min": "adult", "max": True}})
        assert c.age.is_set is False

    def test_snake_case_priority_accepted(self) -> None:
        assert build_criteria({"priority_order": ["age"], "age": {"min": 1}}).priority_order == ["age"]


class TestLLMCriteriaParser:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(LLMCriteriaParser(_provider({})), CriteriaParser)

    async def test_parse(self) -> None:
        provider = _provider({"conditions": ["diabetes"], "location": "Boston"})
        parser = LLMCriteriaParser(provider, model="m1")
        c = await parser.parse_criteria("diabetes patients in Boston")

        assert c.conditions == ["diabetes"]
        assert c.location == "Boston"
        args, kwargs = provider.complete.call_args
        assert "diabetes patients in Boston" in args[0]
        assert args[1] == "m1"
        assert kwargs["system"] == CRITERIA_SYSTEM_PROMPT

    async def test_fenced_response(self) -> None:
        provider = _provider('```json\n{"gender": ["female"]}\n```')
        c = await LLMCriteriaParser(provider).parse_criteria("women only")
        assert c.gender == ["female"]

    async def test_non_object_response_raises(self) -> None:
        with pytest.raises(ValueError, match="Expected a JSON object"):
            await LLMCriteriaParser(_provider([1, 2])).parse_criteria("x")

    async def test_provider_error_propagates(self) -> None:
        provider = MagicMock(spec=LLMProvider)
        provider.complete.side_effect = RuntimeError("rate limited")
        with pytest.raises(RuntimeError, match="rate limited"):
            await LLMCriteriaParser(provider).parse_criteria("x")


class TestLLMQueryGenerator:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(LLMQueryGenerator(_provider({})), QueryGenerator)

    async def test_generate(self) -> None:
        provider = _provider({"queries": ["q1", "q2", "q3"]})
        queries = await LLMQueryGenerator(provider).generate_queries(
            Criteria(conditions=["diabetes"]),
        )
        assert queries == ["q1", "q2", "q3"]
        args, kwargs = provider.complete.call_args
        assert "exactly 3" in args[0]
        assert '"diabetes"' in args[0]
        assert kwargs["system"] == QUERY_SYSTEM_PROMPT

    async def test_extra_queries_truncated_and_deduped(self) -> None:
        provider = _provider({"queries": ["a", "a", "b", "c", "d"]})
        queries = await LLMQueryGenerator(provider, query_count=3).generate_queries(Criteria())
        assert queries == ["a", "b", "c"]

    async def test_no_queries_raises(self) -> None:
        with pytest.raises(ValueError, match="no search queries"):
            await LLMQueryGenerator(_provider({"queries": []})).generate_queries(Criteria())


class TestLLMProfileExtractor:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(LLMProfileExtractor(_provider({})), ProfileExtractor)

    async def test_extract(self) -> None:
        provider = _provider({
            "name": "Linda",
            "organizerName": "Mark Smith",
            "age": 58,
            "gender": "Female",
            "conditions": ["Type 2 Diabetes", "kidney disease"],
            "location": "Boston, MA",
        })
        url = "https://www.gofundme.com/f/help-linda"
        profile = await LLMProfileExtractor(provider).extract_profile("x" * 600, url)

        assert profile.name == "Linda"
        assert profile.organizer_name == "Mark Smith"
        assert profile.age == 58
        assert profile.gender == "female"
        assert profile.conditions == ["Type 2 Diabetes", "kidney disease"]
        assert profile.location == "Boston, MA"
        assert profile.campaign_url == url
        assert profile.raw_description == "x" * 500
        assert provider.complete.call_args.kwargs["system"] == PROFILE_SYSTEM_PROMPT

    async def test_raw_values_left_for_normalizer(self) -> None:
        provider = _provider({"name": "<unknown>", "gender": None, "age": "n/a", "conditions": None})
        profile = await LLMProfileExtractor(provider).extract_profile("text", "u")
        assert profile.name == "<unknown>"
        assert profile.gender == "unknown"
        assert profile.age is None
        assert profile.conditions == []

    async def test_long_content_truncated_in_prompt(self) -> None:
        provider = _provider({})
        content = "h" * 2000 + "m" * 2000 + "t" * 1000
        await LLMProfileExtractor(provider).extract_profile(content, "u")
        prompt = provider.complete.call_args.args[0]
        assert "m" * 10 not in prompt
        assert "\n...\n" in prompt


class TestLLMPaperCriteriaExtractor:
    async def test_extract(self) -> None:
        provider = _provider({
            "age": {"min": 18},
            "conditions": ["stage III NSCLC"],
            "location": "null",
            "exclusions": ["prior chemotherapy"],
            "priorityOrder": ["age", "conditions"],
        })
        c = await LLMPaperCriteriaExtractor(provider).extract_criteria("Eligible patients ...")
        assert c.age == AgeRange(min=18)
        assert c.location is None
        assert c.exclusions == ["prior chemotherapy"]
        assert c.priority_order == ["conditions", "age"]
        assert provider.complete.call_args.kwargs["system"] == PAPER_SYSTEM_PROMPT

    async def test_empty_text_rejected(self) -> None:
        provider = _provider({})
        with pytest.raises(ValueError, match="Paper text must not be empty"):
            await LLMPaperCriteriaExtractor(provider).extract_criteria("   ")
        provider.complete.assert_not_called()
