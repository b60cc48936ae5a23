"""Abstract base class for web-search providers."""

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from trial_scout.core.config import DEFAULT_DOMAINS
from trial_scout.core.schemas import RawHit


class SearchOptions(BaseModel):
    """Per-call options passed to a search provider."""

    max_results: int = Field(default=10, ge=1)
    include_raw_content: bool = True
    include_domains: list[str] = Field(default_factory=lambda: list(DEFAULT_DOMAINS))
    search_depth: str = "advanced"


class SearchProvider(ABC):
    """Base class that every search provider must implement."""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'tavily')."""

    @abstractmethod
    async def search(self, query: str, options: SearchOptions) -> list[RawHit]:
        """Run one query and return raw (unclassified, possibly duplicate) hits."""
