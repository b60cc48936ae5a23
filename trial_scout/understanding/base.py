"""Capability interfaces for the text-understanding service.

The pipeline depends only on these protocols, so tests can drive it with
deterministic fakes and deployments can swap the backing model.
"""

from typing import Protocol, runtime_checkable

from trial_scout.core.schemas import Criteria, Profile


@runtime_checkable
class CriteriaParser(Protocol):
    async def parse_criteria(self, text: str) -> Criteria:
        """Turn a free-text trial description into structured criteria."""
        ...


@runtime_checkable
class QueryGenerator(Protocol):
    async def generate_queries(self, criteria: Criteria) -> list[str]:
        """Produce web-search query variants for the criteria."""
        ...


@runtime_checkable
class ProfileExtractor(Protocol):
    async def extract_profile(self, content: str, url: str) -> Profile:
        """Extract a raw (unnormalized) profile from one campaign page."""
        ...
