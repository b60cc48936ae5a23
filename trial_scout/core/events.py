"""Incremental events emitted by a pipeline run.

One run produces one stream: status transitions, the parsed criteria and
queries, a candidate count, one profileScored event per candidate (in
completion order), and finally either complete or error.
"""

from typing import Literal, Union

from pydantic import Field

from trial_scout.core.schemas import Criteria, RunSummary, ScoredProfile, WireModel

PipelineStep = Literal[
    "parsing",
    "querying",
    "searching",
    "classifying",
    "extracting",
    "scoring",
    "done",
    "failed",
]


class StatusEvent(WireModel):
    type: Literal["status"] = "status"
    step: PipelineStep
    message: str


class CriteriaEvent(WireModel):
    type: Literal["criteria"] = "criteria"
    data: Criteria


class QueriesEvent(WireModel):
    type: Literal["queries"] = "queries"
    data: list[str] = Field(default_factory=list)


class CandidatesFoundEvent(WireModel):
    type: Literal["candidatesFound"] = "candidatesFound"
    count: int = Field(ge=0)


class ProfileScoredEvent(WireModel):
    type: Literal["profileScored"] = "profileScored"
    data: ScoredProfile


class CompleteEvent(WireModel):
    type: Literal["complete"] = "complete"
    data: RunSummary


class ErrorEvent(WireModel):
    type: Literal["error"] = "error"
    message: str


PipelineEvent = Union[
    StatusEvent,
    CriteriaEvent,
    QueriesEvent,
    CandidatesFoundEvent,
    ProfileScoredEvent,
    CompleteEvent,
    ErrorEvent,
]
