"""LLM-backed implementations of the text-understanding capabilities.

Provider SDK calls are blocking, so each one runs in a worker thread.
Responses are parsed as JSON and coerced into the core models; anything the
model returns outside the schema is dropped rather than failing the call.
"""

import asyncio
import json
import logging
from typing import Any

from trial_scout.core.schemas import ALL_GENDERS, ATTRIBUTES, Criteria, Profile
from trial_scout.llm.base import LLMProvider, parse_json_response
from trial_scout.pipeline.normalizer import ProfileNormalizer

logger = logging.getLogger(__name__)

CRITERIA_SYSTEM_PROMPT = (
    "You extract clinical trial eligibility criteria from free text.\n\n"
    "Return ONLY a JSON object (no markdown, no explanation) with these fields, "
    "omitting any that the text does not mention:\n"
    '- age (object): {"min": <int>, "max": <int>}, either bound optional\n'
    '- gender (list[str]): any of "male", "female", "non-binary"\n'
    "- conditions (list[str]): medical conditions or diseases\n"
    "- location (string): city and/or state\n"
    "- exclusions (list[str]): exclusion criteria\n"
    "- priorityOrder (list[str]): the criteria in the order they appear in the "
    'text, drawn from "age", "gender", "conditions", "location". If conditions '
    "are mentioned they always come first.\n\n"
    "Examples:\n"
    '- "diabetes patient in Boston" -> priorityOrder ["conditions", "location"]\n'
    '- "female, over 50, living in Austin" -> priorityOrder ["gender", "age", "location"]\n\n'
    "Be conservative: never invent values and never use placeholders such as "
    '"unknown" or "N/A".'
)

QUERY_SYSTEM_PROMPT = (
    "You write web search queries that find patients on medical crowdfunding "
    "platforms (GoFundMe, GiveSendGo, Fundly and similar) who match clinical "
    "trial criteria.\n\n"
    "Each query should target a medical fundraiser, include the condition (or a "
    "common synonym) and the location when one is given, and read like a natural "
    'search using words such as "patient", "help", "fundraiser", "medical bills" '
    'or "treatment".\n\n'
    'Return ONLY a JSON object: {"queries": ["query1", "query2", ...]}'
)

PROFILE_SYSTEM_PROMPT = (
    "You extract patient information from crowdfunding campaign text.\n\n"
    "Return ONLY a JSON object (no markdown, no explanation) with:\n"
    "- name (string or null): the patient's first name if mentioned\n"
    '- organizerName (string or null): the organizer, e.g. after "Organizer:" '
    'or "Created by"\n'
    "- age (int or null): only if clearly stated\n"
    '- gender (string): "male", "female", "non-binary" or "unknown"\n'
    "- conditions (list[str]): EVERY medical condition, disease, injury or "
    "treatment mentioned (e.g. \"heart disease\", \"Type 2 Diabetes\")\n"
    "- location (string or null): city and/or state if mentioned\n\n"
    "Conditions are the most important field; include any health-related terms."
)

PAPER_SYSTEM_PROMPT = (
    "You extract patient eligibility criteria from a research paper abstract or "
    "methods section.\n\n"
    "Return ONLY a JSON object (no markdown, no explanation):\n"
    '{"age": {"min": <int>, "max": <int>}, "gender": ["male" | "female" | '
    '"non-binary"], "conditions": [...], "location": "City, State", '
    '"exclusions": [...], "priorityOrder": ["conditions", ...]}\n\n'
    "Rules:\n"
    "- conditions: every inclusion condition, with stage or severity if given\n"
    '- age: "adults" means {"min": 18}, "elderly" means {"min": 65}\n'
    "- gender: an array, only when the study restricts it\n"
    "- location: a flat string; omit it entirely when the paper does not state "
    "one\n"
    "- exclusions: conditions, medications or circumstances that disqualify\n"
    '- priorityOrder: "conditions" first, then other criteria by importance\n\n'
    "Look for phrases such as \"Inclusion criteria\", \"Eligible patients\", "
    "\"Participants aged\", \"Exclusion criteria\" and \"Conducted at\"."
)

# Page text above this is sent as head + tail so the organizer section survives.
CONTENT_LIMIT = 3000
CONTENT_HEAD = 2000
CONTENT_TAIL = 1000


def truncate_content(content: str) -> str:
    """Keep the first 2000 and last 1000 chars of long page text."""
    if len(content) <= CONTENT_LIMIT:
        return content
    return f"{content[:CONTENT_HEAD]}\n...\n{content[-CONTENT_TAIL:]}"


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return None


def _as_str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def _as_object(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        msg = f"Expected a JSON object for {what}, got {type(data).__name__}"
        raise ValueError(msg)
    return data


def build_criteria(data: dict[str, Any], normalizer: ProfileNormalizer | None = None) -> Criteria:
    """Coerce a loosely-typed criteria dict into a Criteria model."""
    normalizer = normalizer or ProfileNormalizer()

    age = data.get("age")
    age_range: dict[str, int | None] = {}
    if isinstance(age, dict):
        age_range = {"min": _as_int(age.get("min")), "max": _as_int(age.get("max"))}

    gender = [g.lower() for g in _as_str_list(data.get("gender"))]
    priority_raw = data.get("priorityOrder", data.get("priority_order"))
    priority = None
    if priority_raw is not None:
        priority = [p for p in (s.lower() for s in _as_str_list(priority_raw)) if p in ATTRIBUTES]

    location = data.get("location")
    if not isinstance(location, str) or normalizer.is_sentinel(location):
        location = None

    return Criteria(
        age=age_range,
        gender=[g for g in gender if g in ALL_GENDERS],
        conditions=[c for c in _as_str_list(data.get("conditions")) if not normalizer.is_sentinel(c)],
        location=location,
        exclusions=_as_str_list(data.get("exclusions")),
        priority_order=priority,
    )


class _LLMService:
    """Shared plumbing: run a blocking provider call off the event loop."""

    def __init__(self, provider: LLMProvider, model: str | None = None) -> None:
        self._provider = provider
        self._model = model

    async def _complete_json(self, prompt: str, system: str) -> Any:
        raw = await asyncio.to_thread(
            self._provider.complete, prompt, self._model, system=system,
        )
        return parse_json_response(raw)


class LLMCriteriaParser(_LLMService):
    """Free-text trial description -> Criteria."""

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        normalizer: ProfileNormalizer | None = None,
    ) -> None:
        super().__init__(provider, model)
        self._normalizer = normalizer or ProfileNormalizer()

    async def parse_criteria(self, text: str) -> Criteria:
        prompt = f'Extract clinical trial eligibility criteria from this description:\n\n"{text}"'
        data = _as_object(await self._complete_json(prompt, CRITERIA_SYSTEM_PROMPT), "criteria")
        criteria = build_criteria(data, self._normalizer)
        logger.info("Parsed criteria: %s", criteria.model_dump_json(by_alias=True))
        return criteria


class LLMQueryGenerator(_LLMService):
    """Criteria -> list of search queries."""

    def __init__(self, provider: LLMProvider, model: str | None = None, query_count: int = 3) -> None:
        super().__init__(provider, model)
        self._query_count = query_count

    async def generate_queries(self, criteria: Criteria) -> list[str]:
        criteria_json = json.dumps(criteria.to_wire(), indent=2)
        prompt = (
            f"Generate exactly {self._query_count} search queries for these criteria:\n\n"
            f"{criteria_json}"
        )
        data = _as_object(await self._complete_json(prompt, QUERY_SYSTEM_PROMPT), "queries")
        queries = list(dict.fromkeys(_as_str_list(data.get("queries"))))[: self._query_count]
        if not queries:
            msg = "LLM returned no search queries"
            raise ValueError(msg)
        logger.info("Generated %d queries: %s", len(queries), queries)
        return queries


class LLMProfileExtractor(_LLMService):
    """Campaign page text -> raw Profile (normalization happens downstream)."""

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        description_chars: int = 500,
    ) -> None:
        super().__init__(provider, model)
        self._description_chars = description_chars

    async def extract_profile(self, content: str, url: str) -> Profile:
        prompt = (
            "Extract patient information from this crowdfunding campaign:\n\n"
            f'"{truncate_content(content)}"'
        )
        data = _as_object(await self._complete_json(prompt, PROFILE_SYSTEM_PROMPT), "profile")
        gender = data.get("gender")
        return Profile(
            name=data.get("name") if isinstance(data.get("name"), str) else None,
            organizer_name=data.get("organizerName") if isinstance(data.get("organizerName"), str) else None,
            age=_as_int(data.get("age")),
            gender=gender.lower().strip() if isinstance(gender, str) else "unknown",
            conditions=_as_str_list(data.get("conditions")),
            location=data.get("location") if isinstance(data.get("location"), str) else None,
            campaign_url=url,
            raw_description=content[: self._description_chars],
        )


class LLMPaperCriteriaExtractor(_LLMService):
    """Research paper text -> Criteria."""

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        normalizer: ProfileNormalizer | None = None,
    ) -> None:
        super().__init__(provider, model)
        self._normalizer = normalizer or ProfileNormalizer()

    async def extract_criteria(self, text: str) -> Criteria:
        if not text.strip():
            msg = "Paper text must not be empty"
            raise ValueError(msg)
        prompt = f'Research paper content:\n\n"{text}"'
        data = _as_object(await self._complete_json(prompt, PAPER_SYSTEM_PROMPT), "paper criteria")
        return build_criteria(data, self._normalizer)
