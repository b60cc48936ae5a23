"""Core data models for the trial candidate matching pipeline."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

Gender = Literal["male", "female", "non-binary"]
ProfileGender = Literal["male", "female", "non-binary", "unknown"]
Attribute = Literal["age", "gender", "conditions", "location"]

ALL_GENDERS: tuple[str, ...] = ("male", "female", "non-binary")
ATTRIBUTES: tuple[str, ...] = ("age", "gender", "conditions", "location")


class WireModel(BaseModel):
    """Base for models that cross the event stream (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class AgeRange(WireModel):
    model_config = ConfigDict(frozen=True)

    min: int | None = None
    max: int | None = None

    @property
    def is_set(self) -> bool:
        return self.min is not None or self.max is not None


class Criteria(WireModel):
    """Structured eligibility requirements for one run.

    Frozen. Gender listing all three values collapses to unrestricted, and
    conditions (when present) always lead the priority order.
    """

    model_config = ConfigDict(frozen=True)

    age: AgeRange = Field(default_factory=AgeRange)
    gender: list[Gender] = Field(default_factory=list)
    conditions: list[str] = Field(default_factory=list)
    location: str | None = None
    exclusions: list[str] = Field(default_factory=list)
    priority_order: list[Attribute] | None = None

    @field_validator("age", mode="before")
    @classmethod
    def age_none_is_unbounded(cls, v: object) -> object:
        return {} if v is None else v

    @field_validator("gender", mode="before")
    @classmethod
    def gender_lowercase(cls, v: object) -> object:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return [g.lower().strip() if isinstance(g, str) else g for g in v]  # type: ignore[union-attr]

    @field_validator("gender")
    @classmethod
    def gender_unique(cls, v: list[str]) -> list[str]:
        unique = list(dict.fromkeys(v))
        if set(unique) >= set(ALL_GENDERS):
            return []
        return unique

    @field_validator("conditions", "exclusions", mode="before")
    @classmethod
    def drop_blank_entries(cls, v: object) -> object:
        if v is None:
            return []
        return [s.strip() for s in v if isinstance(s, str) and s.strip()]  # type: ignore[union-attr]

    @field_validator("location")
    @classmethod
    def blank_location_is_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("priority_order")
    @classmethod
    def conditions_lead_priority(
        cls, v: list[str] | None, info: ValidationInfo,
    ) -> list[str] | None:
        if v is None:
            return None
        order = list(dict.fromkeys(v))
        if info.data.get("conditions"):
            if "conditions" in order:
                order.remove("conditions")
            order.insert(0, "conditions")
        return order


class RawHit(BaseModel):
    """One search-provider result for one query."""

    model_config = ConfigDict(frozen=True)

    url: str
    title: str | None = None
    content: str = ""
    raw_content: str | None = None
    score: float | None = None

    @field_validator("content", mode="before")
    @classmethod
    def content_none_is_empty(cls, v: object) -> object:
        return "" if v is None else v

    @property
    def page_text(self) -> str:
        """Full page text when the provider returned it, else the snippet."""
        if self.raw_content and self.raw_content.strip():
            return self.raw_content
        return self.content


class CandidateURL(RawHit):
    """A RawHit that passed platform classification."""

    platform: str


class Profile(WireModel):
    """Structured attributes extracted from one campaign page."""

    name: str | None = None
    organizer_name: str | None = None
    age: int | None = None
    gender: str = "unknown"
    conditions: list[str] = Field(default_factory=list)
    location: str | None = None
    campaign_url: str
    raw_description: str = ""

    @field_validator("conditions", mode="before")
    @classmethod
    def conditions_none_is_empty(cls, v: object) -> object:
        return [] if v is None else v

    @field_validator("gender", mode="before")
    @classmethod
    def gender_none_is_unknown(cls, v: object) -> object:
        return "unknown" if v is None else v


class WeightSet(WireModel):
    """Per-attribute share of the 100-point match budget."""

    model_config = ConfigDict(frozen=True)

    age: int = Field(ge=0, le=100)
    gender: int = Field(ge=0, le=100)
    conditions: int = Field(ge=0, le=100)
    location: int = Field(ge=0, le=100)

    @property
    def total(self) -> int:
        return self.age + self.gender + self.conditions + self.location

    def for_attribute(self, attribute: str) -> int:
        return int(getattr(self, attribute))


class MatchResult(WireModel):
    """Score and per-attribute breakdown for one (Profile, Criteria) pair."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    breakdown: dict[Attribute, bool] = Field(default_factory=dict)
    weights: WeightSet


class ScoredProfile(WireModel):
    """A profile paired with its match result, as reported to clients."""

    model_config = ConfigDict(frozen=True)

    profile: Profile
    match_score: int = Field(ge=0, le=100)
    breakdown: dict[Attribute, bool] = Field(default_factory=dict)


class RunSummary(WireModel):
    """Final aggregate of one pipeline run."""

    model_config = ConfigDict(frozen=True)

    criteria: Criteria
    queries: list[str]
    total_results: int
    weights: WeightSet
    matches: list[ScoredProfile] = Field(default_factory=list)
    message: str | None = None


class RunRequest(BaseModel):
    """Incoming free-text run request."""

    description: str

    @field_validator("description")
    @classmethod
    def description_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "description must not be empty"
            raise ValueError(msg)
        return v.strip()
