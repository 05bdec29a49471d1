"""Per-source pipeline and multi-source orchestration.

Each source runs the strictly ordered stages tree build -> sentiment ->
entities -> chains. Stages are synchronous CPU work, so analyze_query runs each
source's stages in a worker thread while the event loop keeps fetching other
sources. One source failing or timing out never affects another; only a query
where every source fails raises NoDataError.

Key Functions:
    analyze_source: Synchronous per-source pipeline over fetched raw discussions
    analyze_query: Concurrent fan-out over sources, followed by consolidation
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import structlog

from sentiment_network.backend.utils.errors import (
    WARNING_TYPE_SOURCE_ANALYSIS_FAILED,
    WARNING_TYPE_SOURCE_CANCELLED,
    WARNING_TYPE_SOURCE_FETCH_FAILED,
    WARNING_TYPE_SOURCE_TIMED_OUT,
    NoDataError,
    WarningsCollector,
)
from sentiment_network.comment_tree import build_discussion, count_comments
from sentiment_network.config import AnalysisConfig
from sentiment_network.consolidation import consolidate_results
from sentiment_network.entities import (
    DEFAULT_CONTEXT_WINDOW,
    EntityExtractor,
    EntityTagger,
    deduplicate_entities,
)
from sentiment_network.entity_chains import build_entity_chains, summarize_entities
from sentiment_network.models.thread_models import (
    ConsolidatedResult,
    RawDiscussion,
    SourceFailure,
    SourceResult,
)
from sentiment_network.sentiment import PolarityScorer, SentimentAggregator

logger = structlog.get_logger(__name__)


SourceFetcher = Callable[[str], Awaitable[List[RawDiscussion]]]
TaggerFactory = Callable[[], EntityTagger]

ERROR_TYPE_FETCH = "fetch"
ERROR_TYPE_ANALYSIS = "analysis"
ERROR_TYPE_TIMEOUT = "timeout"
ERROR_TYPE_CANCELLED = "cancelled"


class SourceStageError(Exception):
    """A per-source failure tagged with the stage that raised it."""

    def __init__(self, source: str, error_type: str, cause: Exception):
        super().__init__(f"{error_type} failed for source '{source}': {cause}")
        self.source = source
        self.error_type = error_type
        self.cause = cause


def analyze_source(
    source: str,
    query: str,
    raw_discussions: Sequence[RawDiscussion],
    scorer: PolarityScorer,
    tagger: Optional[EntityTagger] = None,
    context_window: int = DEFAULT_CONTEXT_WINDOW,
    warnings: Optional[WarningsCollector] = None
) -> SourceResult:
    """Run the full per-source pipeline over fetched discussions.

    Stages run in strict order: every discussion's tree is built, then every
    comment is scored, then entities are extracted, then chains are built.
    Entity stages are skipped when tagger is None, leaving entity_analysis
    and each discussion's entities and entity_chains as None.

    Args:
        source: Source (subreddit) name
        query: The analyzed query
        raw_discussions: Fetched posts with their flat comment lists
        scorer: Polarity scorer
        tagger: NER tagger for this run, or None to skip entities
        context_window: Characters of context scored around each mention
        warnings: Collector for per-comment failures

    Returns:
        SourceResult
    """
    discussions = [build_discussion(raw) for raw in raw_discussions]

    aggregator = SentimentAggregator(scorer, warnings=warnings)
    for discussion in discussions:
        aggregator.analyze_discussion(discussion)
    source_sentiment = aggregator.analyze_source(discussions)

    entity_analysis = None
    if tagger is not None:
        extractor = EntityExtractor(tagger, aggregator, context_window=context_window, warnings=warnings)
        all_mentions = []
        for discussion in discussions:
            mentions = extractor.process_discussion(discussion)
            discussion.entities = deduplicate_entities(m.entity for m in mentions)
            discussion.entity_chains = build_entity_chains(mentions)
            all_mentions.extend(mentions)
        entity_analysis = summarize_entities(build_entity_chains(all_mentions), query, source=source)

    result = SourceResult(
        source=source,
        query=query,
        discussions=discussions,
        sentiment=source_sentiment,
        entity_analysis=entity_analysis,
        total_comments=sum(count_comments(d.comments) for d in discussions),
        fetched_at=datetime.now(timezone.utc).isoformat(),
    )

    logger.info(
        "source_analyzed",
        source=source,
        query=query,
        discussions=len(discussions),
        total_comments=result.total_comments,
        sentiment_label=source_sentiment.label,
        entity_chains=len(entity_analysis.entity_chains) if entity_analysis else None
    )
    return result


async def analyze_query(
    query: str,
    sources: Sequence[str],
    fetch_source: SourceFetcher,
    scorer: PolarityScorer,
    tagger_factory: Optional[TaggerFactory] = None,
    config: Optional[AnalysisConfig] = None
) -> ConsolidatedResult:
    """Fetch and analyze every source concurrently, then consolidate.

    Each source task awaits its fetch and then runs analyze_source in a worker
    thread. A semaphore bounds how many sources run at once. A fresh tagger is
    created per source run, so concurrent runs share no NER state.

    Failure handling:
    - Fetch error: source recorded as a "fetch" failure
    - Analysis error: source recorded as an "analysis" failure
    - Still pending when source_timeout_seconds elapses: task cancelled and
      recorded as a "timeout" failure
    - analyze_query itself cancelled (e.g. by asyncio.wait_for): unfinished
      source tasks are cancelled and awaited, then recorded as "cancelled"
      failures. If any source had completed, the partial result is returned
      instead of propagating the cancellation; otherwise CancelledError is
      re-raised.
    Completed sources are consolidated regardless of the failures.

    Args:
        query: Search query
        sources: Source names, in the order results should be consolidated.
            Repeated names are analyzed once.
        fetch_source: async (source) -> list[RawDiscussion]
        scorer: Polarity scorer shared by all runs
        tagger_factory: Zero-argument callable returning a tagger, or None to
            skip entity extraction
        config: AnalysisConfig (default: AnalysisConfig())

    Returns:
        ConsolidatedResult with failed_sources and warnings populated

    Raises:
        NoDataError: If no source completed successfully

    Example:
        >>> fetcher = make_reddit_fetcher(reddit, query, config)
        >>> result = await analyze_query(query, ["technology", "programming"],
        ...                              fetcher, VaderScorer(), SpacyTagger)
    """
    if config is None:
        config = AnalysisConfig()

    # A repeated source would be fetched twice and counted twice
    sources = list(dict.fromkeys(sources))

    warnings = WarningsCollector()
    semaphore = asyncio.Semaphore(config.max_concurrent_sources)

    async def run_source(source: str) -> SourceResult:
        async with semaphore:
            try:
                raw_discussions = await fetch_source(source)
            except Exception as e:
                raise SourceStageError(source, ERROR_TYPE_FETCH, e) from e

            tagger = tagger_factory() if tagger_factory is not None else None
            try:
                return await asyncio.to_thread(
                    analyze_source,
                    source,
                    query,
                    raw_discussions,
                    scorer,
                    tagger,
                    config.context_window,
                    warnings,
                )
            except Exception as e:
                raise SourceStageError(source, ERROR_TYPE_ANALYSIS, e) from e

    logger.info(
        "analysis_started",
        query=query,
        sources=list(sources),
        max_concurrent_sources=config.max_concurrent_sources,
        include_entities=tagger_factory is not None
    )

    tasks: Dict[asyncio.Task, str] = {
        asyncio.create_task(run_source(source)): source for source in sources
    }

    timeout = config.source_timeout_seconds or None
    done, pending = set(), set()
    cancellation: Optional[asyncio.CancelledError] = None
    if tasks:
        try:
            done, pending = await asyncio.wait(tasks.keys(), timeout=timeout)
        except asyncio.CancelledError as e:
            cancellation = e
            done = {t for t in tasks if t.done() and not t.cancelled()}
            pending = set(tasks) - done

    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    results_by_source: Dict[str, SourceResult] = {}
    failures_by_source: Dict[str, SourceFailure] = {}

    for task in done:
        source = tasks[task]
        error = task.exception()
        if error is None:
            results_by_source[source] = task.result()
            continue
        failure = _record_failure(source, error, warnings)
        failures_by_source[source] = failure

    for task in pending:
        source = tasks[task]
        if cancellation is not None:
            failures_by_source[source] = _record_cancelled(source, query, warnings)
        else:
            failures_by_source[source] = _record_timeout(source, query, config.source_timeout_seconds, warnings)

    # Keep the caller's source order for consolidation
    source_results = [results_by_source[s] for s in sources if s in results_by_source]
    failures = [failures_by_source[s] for s in sources if s in failures_by_source]

    if cancellation is not None:
        logger.warning(
            "analysis_cancelled",
            query=query,
            completed_sources=[r.source for r in source_results],
            cancelled_sources=[tasks[t] for t in pending]
        )
        if not source_results:
            raise cancellation

    if not source_results:
        logger.error(
            "analysis_no_data",
            query=query,
            failed_sources=[f.source for f in failures]
        )
        raise NoDataError(f"No data for query '{query}'", failures=failures)

    return consolidate_results(
        query,
        source_results,
        failures=failures,
        warnings=warnings,
        recompute_sentiment=config.recompute_consolidated_sentiment,
    )


def _record_timeout(source: str, query: str, timeout_seconds: float, warnings: WarningsCollector) -> SourceFailure:
    logger.warning(
        "source_timed_out",
        source=source,
        query=query,
        timeout_seconds=timeout_seconds
    )
    warnings.append(
        WARNING_TYPE_SOURCE_TIMED_OUT,
        f"Source {source} timed out",
        {"source": source, "timeout_seconds": timeout_seconds}
    )
    return SourceFailure(
        source=source,
        error_type=ERROR_TYPE_TIMEOUT,
        message=f"Source '{source}' did not finish within {timeout_seconds}s",
    )


def _record_cancelled(source: str, query: str, warnings: WarningsCollector) -> SourceFailure:
    logger.warning("source_cancelled", source=source, query=query)
    warnings.append(
        WARNING_TYPE_SOURCE_CANCELLED,
        f"Source {source} was cancelled before finishing",
        {"source": source}
    )
    return SourceFailure(
        source=source,
        error_type=ERROR_TYPE_CANCELLED,
        message=f"Source '{source}' was cancelled before finishing",
    )


def _record_failure(source: str, error: BaseException, warnings: WarningsCollector) -> SourceFailure:
    if isinstance(error, SourceStageError):
        error_type = error.error_type
        cause: Any = error.cause
    else:
        error_type = ERROR_TYPE_ANALYSIS
        cause = error

    warning_type = (
        WARNING_TYPE_SOURCE_FETCH_FAILED if error_type == ERROR_TYPE_FETCH
        else WARNING_TYPE_SOURCE_ANALYSIS_FAILED
    )

    logger.warning(
        warning_type,
        source=source,
        error=str(cause),
        error_type=type(cause).__name__
    )
    warnings.append(
        warning_type,
        f"Source {source} failed during {error_type}",
        {"source": source, "error_type": type(cause).__name__, "error": str(cause)}
    )

    return SourceFailure(source=source, error_type=error_type, message=str(cause))
