"""Orchestrator: drives one criteria -> ranked candidates run.

Data flow:
  1. Parse criteria (text-understanding service, run-fatal on failure)
  2. Generate query variants (run-fatal on failure)
  3. Search every query concurrently (a failed query contributes no hits)
  4. Merge, dedupe and classify hits into candidate URLs
  5. Extract + normalize + score each candidate concurrently
     (a failed extraction degrades to a minimal profile)
  6. Stable sort by score and emit the final aggregate

Progress is reported as events written into a queue by the concurrent tasks
and drained by a single consumer, the async iterator returned by stream().
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Callable

from trial_scout.core.config import PipelineConfig
from trial_scout.core.events import (
    CandidatesFoundEvent,
    CompleteEvent,
    CriteriaEvent,
    ErrorEvent,
    PipelineEvent,
    PipelineStep,
    ProfileScoredEvent,
    QueriesEvent,
    StatusEvent,
)
from trial_scout.core.schemas import (
    CandidateURL,
    Criteria,
    Profile,
    RawHit,
    RunRequest,
    RunSummary,
    ScoredProfile,
    WeightSet,
)
from trial_scout.pipeline.classifier import CandidateClassifier
from trial_scout.pipeline.normalizer import ProfileNormalizer
from trial_scout.pipeline.scorer import MatchScorer
from trial_scout.pipeline.weights import allocate_weights
from trial_scout.search.base import SearchOptions, SearchProvider
from trial_scout.understanding.base import CriteriaParser, ProfileExtractor, QueryGenerator

logger = logging.getLogger(__name__)

NO_CANDIDATES_MESSAGE = (
    "No crowdfunding campaigns found. Try broadening your search criteria "
    "or different condition names."
)

Emit = Callable[[PipelineEvent], None]


class PipelineError(RuntimeError):
    """A run ended with an error event instead of a complete event."""


def minimal_profile(url: str, content: str, description_chars: int = 500) -> Profile:
    """Profile with every optional field absent, used when extraction is skipped or fails."""
    return Profile(campaign_url=url, raw_description=content[:description_chars])


def rank_matches(scored: list[ScoredProfile], drop_zero_scores: bool = False) -> list[ScoredProfile]:
    """Sort by score descending; ties keep their input order."""
    if drop_zero_scores:
        scored = [s for s in scored if s.match_score > 0]
    return sorted(scored, key=lambda s: s.match_score, reverse=True)


class MatchPipeline:
    """End-to-end candidate discovery and matching for one description at a time."""

    def __init__(
        self,
        criteria_parser: CriteriaParser,
        query_generator: QueryGenerator,
        profile_extractor: ProfileExtractor,
        search_provider: SearchProvider,
        config: PipelineConfig | None = None,
        *,
        search_options: SearchOptions | None = None,
        classifier: CandidateClassifier | None = None,
        normalizer: ProfileNormalizer | None = None,
        scorer: MatchScorer | None = None,
    ) -> None:
        self._parser = criteria_parser
        self._queries = query_generator
        self._extractor = profile_extractor
        self._search = search_provider
        self._config = config or PipelineConfig()
        self._search_options = search_options or SearchOptions()
        self._classifier = classifier or CandidateClassifier(self._search_options.include_domains)
        self._normalizer = normalizer or ProfileNormalizer()
        self._scorer = scorer or MatchScorer()

    def stream(self, description: str) -> AsyncIterator[PipelineEvent]:
        """Start a run and return its event stream.

        Raises ValueError for a blank description before anything runs.
        Closing the iterator early cancels the run and every in-flight call.
        """
        request = RunRequest(description=description)
        return self._stream(request.description)

    async def run(self, description: str) -> RunSummary:
        """Run to completion and return the final aggregate.

        Raises:
            PipelineError: If the run ends with an error event.
        """
        summary: RunSummary | None = None
        async with contextlib.aclosing(self.stream(description)) as events:
            async for event in events:
                if isinstance(event, CompleteEvent):
                    summary = event.data
                elif isinstance(event, ErrorEvent):
                    raise PipelineError(event.message)
        if summary is None:
            msg = "Pipeline stream ended without a result"
            raise PipelineError(msg)
        return summary

    # -- producer / consumer -------------------------------------------------

    async def _stream(self, description: str) -> AsyncIterator[PipelineEvent]:
        queue: asyncio.Queue[PipelineEvent | None] = asyncio.Queue()
        producer = asyncio.create_task(self._produce(description, queue))
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
        finally:
            if not producer.done():
                logger.info("Run cancelled by consumer, abandoning in-flight calls")
                producer.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await producer

    async def _produce(self, description: str, queue: "asyncio.Queue[PipelineEvent | None]") -> None:
        emit: Emit = queue.put_nowait
        try:
            await asyncio.wait_for(
                self._execute(description, emit), timeout=self._config.run_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Run timed out after %.0fs", self._config.run_timeout)
            self._fail(emit, f"Search timed out after {self._config.run_timeout:g} seconds")
        except Exception as e:
            logger.error("Run failed: %s", e, exc_info=True)
            self._fail(emit, str(e) or type(e).__name__)
        finally:
            queue.put_nowait(None)

    @staticmethod
    def _status(emit: Emit, step: PipelineStep, message: str) -> None:
        logger.info("[%s] %s", step, message)
        emit(StatusEvent(step=step, message=message))

    def _fail(self, emit: Emit, message: str) -> None:
        self._status(emit, "failed", message)
        emit(ErrorEvent(message=message))

    # -- run steps -------------------------------------------------------------

    async def _execute(self, description: str, emit: Emit) -> None:
        self._status(emit, "parsing", "Parsing trial criteria...")
        try:
            criteria = await self._parser.parse_criteria(description)
        except Exception as e:
            msg = f"Failed to parse criteria: {e}"
            raise PipelineError(msg) from e
        emit(CriteriaEvent(data=criteria))
        weights = allocate_weights(criteria)

        self._status(emit, "querying", "Generating search queries...")
        try:
            queries = await self._queries.generate_queries(criteria)
        except Exception as e:
            msg = f"Failed to generate search queries: {e}"
            raise PipelineError(msg) from e
        emit(QueriesEvent(data=queries))

        self._status(emit, "searching", f"Searching {len(queries)} query variants...")
        hits = await self._search_all(queries)

        self._status(emit, "classifying", f"Classifying {len(hits)} search results...")
        candidates = self._classifier.classify(hits)
        emit(CandidatesFoundEvent(count=len(candidates)))

        if not candidates:
            self._status(emit, "done", "No candidates found")
            emit(CompleteEvent(data=RunSummary(
                criteria=criteria,
                queries=queries,
                total_results=0,
                weights=weights,
                matches=[],
                message=NO_CANDIDATES_MESSAGE,
            )))
            return

        batch = candidates[: self._config.max_candidates]
        self._status(emit, "extracting", f"Extracting profiles from {len(batch)} candidates...")
        semaphore = asyncio.Semaphore(self._config.max_concurrency)
        scored = await asyncio.gather(*(
            self._process_candidate(c, criteria, weights, semaphore, emit) for c in batch
        ))

        self._status(emit, "scoring", "Ranking matches...")
        matches = rank_matches(list(scored), self._config.drop_zero_scores)

        self._status(emit, "done", f"Ranked {len(matches)} candidates")
        emit(CompleteEvent(data=RunSummary(
            criteria=criteria,
            queries=queries,
            total_results=len(candidates),
            weights=weights,
            matches=matches,
        )))

    async def _search_all(self, queries: list[str]) -> list[RawHit]:
        semaphore = asyncio.Semaphore(self._config.max_concurrency)
        results = await asyncio.gather(*(self._search_one(q, semaphore) for q in queries))
        return [hit for hits in results for hit in hits]

    async def _search_one(self, query: str, semaphore: asyncio.Semaphore) -> list[RawHit]:
        async with semaphore:
            try:
                hits = await asyncio.wait_for(
                    self._search.search(query, self._search_options),
                    timeout=self._config.search_timeout,
                )
            except Exception:
                logger.warning("Search failed for query '%s', no hits", query, exc_info=True)
                return []
        logger.info("Query '%s': %d hits", query, len(hits))
        return hits

    async def _process_candidate(
        self,
        candidate: CandidateURL,
        criteria: Criteria,
        weights: WeightSet,
        semaphore: asyncio.Semaphore,
        emit: Emit,
    ) -> ScoredProfile:
        async with semaphore:
            raw = await self._extract(candidate)
        profile = self._normalizer.normalize(raw)
        result = self._scorer.score(profile, criteria, weights)
        scored = ScoredProfile(profile=profile, match_score=result.score, breakdown=result.breakdown)
        emit(ProfileScoredEvent(data=scored))
        return scored

    async def _extract(self, candidate: CandidateURL) -> Profile:
        text = candidate.page_text
        chars = self._config.description_chars
        if len(text.strip()) < self._config.min_content_chars:
            logger.debug("Skipping extraction for %s: content too short (%d chars)",
                         candidate.url, len(text))
            return minimal_profile(candidate.url, text, chars)
        try:
            profile = await asyncio.wait_for(
                self._extractor.extract_profile(text, candidate.url),
                timeout=self._config.extraction_timeout,
            )
        except Exception:
            logger.warning("Extraction failed for %s, using minimal profile",
                           candidate.url, exc_info=True)
            return minimal_profile(candidate.url, text, chars)
        return profile.model_copy(update={"campaign_url": candidate.url})
