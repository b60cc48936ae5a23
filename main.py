"""CLI entry point for trial-scout."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from trial_scout.core.config import Settings
from trial_scout.core.db import get_run_results, init_db, list_runs, save_run
from trial_scout.core.events import (
    CandidatesFoundEvent,
    CompleteEvent,
    ErrorEvent,
    PipelineEvent,
    ProfileScoredEvent,
    StatusEvent,
)
from trial_scout.core.schemas import RunSummary
from trial_scout.llm import available_providers, get_provider
from trial_scout.llm.base import LLMProvider
from trial_scout.pipeline.classifier import CandidateClassifier
from trial_scout.pipeline.normalizer import ProfileNormalizer
from trial_scout.pipeline.orchestrator import MatchPipeline
from trial_scout.pipeline.scorer import MatchScorer
from trial_scout.pipeline.vocabulary import MatchVocabulary
from trial_scout.search.base import SearchOptions, SearchProvider
from trial_scout.search.tavily import TavilySearchProvider
from trial_scout.understanding.llm_services import (
    LLMCriteriaParser,
    LLMPaperCriteriaExtractor,
    LLMProfileExtractor,
    LLMQueryGenerator,
)

DEFAULT_CONFIG = "config/settings.yaml"

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Find crowdfunding patients matching clinical trial criteria",
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG,
        help=f"Path to settings YAML file (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- search subcommand ---
    search_parser = subparsers.add_parser("search", help="Run a candidate search")
    search_parser.add_argument(
        "description",
        help="Free-text trial description, e.g. 'women over 50 with diabetes in Boston'",
    )
    search_parser.add_argument(
        "--provider",
        choices=available_providers(),
        help="LLM provider override (default: from settings)",
    )
    search_parser.add_argument(
        "--json",
        action="store_true",
        help="Print every event as a JSON line instead of progress text",
    )
    search_parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not store the finished run in the history database",
    )

    # --- extract-criteria subcommand ---
    extract_parser = subparsers.add_parser(
        "extract-criteria",
        help="Extract eligibility criteria from a research paper",
    )
    source = extract_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", help="Paper abstract or methods text")
    source.add_argument("--pdf", help="Path to the paper PDF")
    extract_parser.add_argument(
        "--provider",
        choices=available_providers(),
        help="LLM provider override (default: from settings)",
    )

    # --- history subcommand ---
    history_parser = subparsers.add_parser("history", help="Show saved searches")
    history_parser.add_argument(
        "--limit",
        type=int,
        default=50,
        help="Number of recent searches to list (default: 50)",
    )
    history_parser.add_argument(
        "--session",
        type=int,
        help="Show the ranked matches of one saved search",
    )

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    # SDK request logs drown out pipeline progress
    logging.getLogger("httpx").setLevel(logging.WARNING)


def load_settings(path: str) -> Settings:
    """Load settings, falling back to defaults when the default file is absent."""
    if path == DEFAULT_CONFIG and not Path(path).exists():
        logger.info("No %s found, using default settings", path)
        return Settings()
    return Settings.from_yaml(path)


def build_pipeline(
    settings: Settings,
    llm: LLMProvider,
    search: SearchProvider,
) -> MatchPipeline:
    """Wire a MatchPipeline from settings and the two external collaborators."""
    normalizer = ProfileNormalizer(settings.normalizer.sentinel_tokens)
    vocabulary = (
        MatchVocabulary.from_yaml(settings.matching.vocabulary_path)
        if settings.matching.vocabulary_path
        else None
    )
    options = SearchOptions(
        max_results=settings.search.max_results,
        include_raw_content=settings.search.include_raw_content,
        include_domains=settings.search.domains,
        search_depth=settings.search.search_depth,
    )
    model = settings.llm.model
    return MatchPipeline(
        criteria_parser=LLMCriteriaParser(llm, model, normalizer),
        query_generator=LLMQueryGenerator(llm, model, settings.llm.query_count),
        profile_extractor=LLMProfileExtractor(llm, model, settings.pipeline.description_chars),
        search_provider=search,
        config=settings.pipeline,
        search_options=options,
        classifier=CandidateClassifier(settings.search.domains),
        normalizer=normalizer,
        scorer=MatchScorer(vocabulary),
    )


def print_event(event: PipelineEvent, as_json: bool) -> None:
    if as_json:
        print(json.dumps(event.to_wire()), flush=True)
        return
    if isinstance(event, StatusEvent):
        print(f"[{event.step}] {event.message}")
    elif isinstance(event, CandidatesFoundEvent):
        print(f"  {event.count} candidate campaigns found")
    elif isinstance(event, ProfileScoredEvent):
        p = event.data.profile
        print(f"  scored {event.data.match_score:3d}%  {p.name or '(unnamed)'}  {p.campaign_url}")
    elif isinstance(event, ErrorEvent):
        print(f"Error: {event.message}", file=sys.stderr)


def print_summary(summary: RunSummary) -> None:
    print(f"\nSearch complete: {summary.total_results} candidates, "
          f"{len(summary.matches)} ranked.")
    if summary.message:
        print(summary.message)
    w = summary.weights
    print(f"Weights: conditions {w.conditions}, gender {w.gender}, "
          f"age {w.age}, location {w.location}")
    for rank, m in enumerate(summary.matches, start=1):
        p = m.profile
        details = ", ".join(
            part for part in (
                str(p.age) if p.age is not None else "",
                p.gender if p.gender != "unknown" else "",
                p.location or "",
                "; ".join(p.conditions),
            ) if part
        )
        print(f"  {rank:2d}. {m.match_score:3d}%  {p.name or '(unnamed)'}  [{details}]")
        print(f"      {p.campaign_url}")


async def run_search(
    settings: Settings,
    description: str,
    llm: LLMProvider,
    as_json: bool = False,
    save: bool = True,
) -> RunSummary | None:
    """Stream one run to stdout; returns the summary, or None if the run failed."""
    summary: RunSummary | None = None
    async with TavilySearchProvider.from_env(settings.search.api_key_env) as search:
        pipeline = build_pipeline(settings, llm, search)
        async for event in pipeline.stream(description):
            print_event(event, as_json)
            if isinstance(event, CompleteEvent):
                summary = event.data

    if summary is None:
        return None
    if not as_json:
        print_summary(summary)
    if save:
        conn = init_db(settings.database.path)
        try:
            session_id = save_run(conn, description, summary)
        finally:
            conn.close()
        logger.info("Saved run as session %d", session_id)
    return summary


def cmd_extract_criteria(args: argparse.Namespace, settings: Settings) -> None:
    """Handle extract-criteria subcommand."""
    if args.pdf:
        from trial_scout.understanding.pdf import extract_text_from_pdf

        text = extract_text_from_pdf(args.pdf)
        logger.info("Extracted %d characters from %s", len(text), args.pdf)
    else:
        text = args.text

    provider = get_provider(args.provider or settings.llm.provider)
    extractor = LLMPaperCriteriaExtractor(
        provider, settings.llm.model, ProfileNormalizer(settings.normalizer.sentinel_tokens),
    )
    criteria = asyncio.run(extractor.extract_criteria(text))
    print(json.dumps(criteria.to_wire(), indent=2))


def cmd_history(args: argparse.Namespace, settings: Settings) -> None:
    """Handle history subcommand."""
    conn = init_db(settings.database.path)
    try:
        if args.session is not None:
            results = get_run_results(conn, args.session)
            print(json.dumps(results, indent=2))
            return
        for run in list_runs(conn, args.limit):
            print(f"#{run['id']}  {run['created_at']}  "
                  f"{run['match_count']} matches / {run['total_results']} candidates  "
                  f"{run['search_query']!r}")
    finally:
        conn.close()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "extract-criteria":
        try:
            cmd_extract_criteria(args, settings)
        except (FileNotFoundError, ImportError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    elif args.command == "history":
        cmd_history(args, settings)
    else:
        try:
            llm = get_provider(args.provider or settings.llm.provider)
            summary = asyncio.run(
                run_search(settings, args.description, llm, args.json, not args.no_save),
            )
        except (ImportError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        if summary is None:
            sys.exit(1)


if __name__ == "__main__":
    main()
