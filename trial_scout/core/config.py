"""Configuration models and YAML loader for trial-scout."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

# Crowdfunding platforms searched and accepted by the classifier.
DEFAULT_DOMAINS: list[str] = [
    "gofundme.com",
    "givesendgo.com",
    "fundly.com",
    "giveforward.com",
    "plumfund.com",
]

DEFAULT_SENTINELS: list[str] = [
    "null",
    "unknown",
    "n/a",
    "na",
    "not specified",
    "not mentioned",
    "none",
    "undefined",
]


class LLMConfig(BaseModel):
    """Text-understanding service settings."""

    provider: str = "anthropic"
    model: str | None = None
    query_count: int = Field(default=3, ge=1, le=10)


class SearchSettings(BaseModel):
    """Web-search provider settings."""

    provider: str = "tavily"
    api_key_env: str = "TAVILY_API_KEY"
    max_results: int = Field(default=10, ge=1, le=20)
    search_depth: str = "advanced"
    include_raw_content: bool = True
    domains: list[str] = Field(default_factory=lambda: list(DEFAULT_DOMAINS))

    @field_validator("search_depth")
    @classmethod
    def depth_known(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in {"basic", "advanced"}:
            msg = f"search_depth must be 'basic' or 'advanced', got '{v}'"
            raise ValueError(msg)
        return v

    @field_validator("domains")
    @classmethod
    def at_least_one_domain(cls, v: list[str]) -> list[str]:
        cleaned = [d.lower().strip() for d in v if d.strip()]
        if not cleaned:
            msg = "at least one search domain must be configured"
            raise ValueError(msg)
        return cleaned


class PipelineConfig(BaseModel):
    """Concurrency, limits and timeouts for one pipeline run (seconds)."""

    max_concurrency: int = Field(default=8, ge=1)
    max_candidates: int = Field(default=20, ge=1)
    search_timeout: float = Field(default=20.0, gt=0)
    extraction_timeout: float = Field(default=15.0, gt=0)
    run_timeout: float = Field(default=60.0, gt=0)
    min_content_chars: int = Field(default=50, ge=0)
    description_chars: int = Field(default=500, ge=0)
    drop_zero_scores: bool = False


class NormalizerConfig(BaseModel):
    """Placeholder tokens treated as absent values."""

    sentinel_tokens: list[str] = Field(default_factory=lambda: list(DEFAULT_SENTINELS))


class MatchingConfig(BaseModel):
    """Optional YAML file overriding the built-in match vocabulary."""

    vocabulary_path: str | None = None


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/trial_scout.db"


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    search: SearchSettings = Field(default_factory=SearchSettings)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    normalizer: NormalizerConfig = Field(default_factory=NormalizerConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
