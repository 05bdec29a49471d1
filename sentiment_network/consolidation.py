"""
Multi-source consolidation.

Merges the per-source pipeline results of one query into a single result. All
aggregate counters are recomputed from the merged data; nothing is summed from
per-source summaries, so a (type, normalized_text) identity that appears in
several sources is counted once.
"""

from dataclasses import asdict, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import structlog

from sentiment_network.backend.utils.errors import NoDataError, WarningsCollector
from sentiment_network.comment_tree import count_comments, iter_comments
from sentiment_network.entity_chains import (
    rank_chains,
    score_weighted_sentiment,
    summarize_entities,
)
from sentiment_network.models.thread_models import (
    ConsolidatedResult,
    Discussion,
    EntityChain,
    EntityType,
    SourceFailure,
    SourceResult,
    SourceSummary,
)
from sentiment_network.sentiment import build_analysis, weighted_average

logger = structlog.get_logger(__name__)


def tag_discussions(source_result: SourceResult) -> List[Discussion]:
    """Return copies of a source's discussions tagged with the source name."""
    return [replace(d, source=source_result.source) for d in source_result.discussions]


def merge_entity_chains(
    chain_lists: Iterable[Iterable[EntityChain]],
    recompute_sentiment: bool = False
) -> List[EntityChain]:
    """
    Merge chains from several sources that share an entity identity.

    Mentions and scores are summed, trends concatenated in source order and
    unique_posts recomputed from the merged trend. By default the merged
    chain keeps the average_sentiment of the first source that contributed
    it; with recompute_sentiment=True the sentiment is rebuilt from the
    merged trend instead.

    Args:
        chain_lists: One chain list per source, in source order
        recompute_sentiment: Rebuild average_sentiment over the merged trend

    Returns:
        list[EntityChain]: New chain objects sorted descending by total_score.
            Input chains are not mutated.
    """
    merged: Dict[Tuple[EntityType, str], EntityChain] = {}

    for chains in chain_lists:
        for chain in chains:
            existing = merged.get(chain.key)
            if existing is None:
                merged[chain.key] = EntityChain(
                    entity=chain.entity,
                    total_mentions=chain.total_mentions,
                    unique_posts=chain.unique_posts,
                    total_score=chain.total_score,
                    average_sentiment=chain.average_sentiment,
                    sentiment_trend=list(chain.sentiment_trend),
                )
                continue
            existing.total_mentions += chain.total_mentions
            existing.total_score += chain.total_score
            existing.sentiment_trend.extend(chain.sentiment_trend)

    for chain in merged.values():
        chain.unique_posts = len({p.post_id for p in chain.sentiment_trend})
        if recompute_sentiment:
            chain.average_sentiment = score_weighted_sentiment(chain.sentiment_trend)

    return rank_chains(merged.values())


def summarize_source(result: SourceResult, top_entities: int = 5) -> SourceSummary:
    chains = result.entity_analysis.entity_chains if result.entity_analysis else []
    return SourceSummary(
        source=result.source,
        discussion_count=len(result.discussions),
        total_comments=result.total_comments,
        sentiment=result.sentiment,
        top_entities=chains[:top_entities],
    )


def consolidate_results(
    query: str,
    source_results: Sequence[SourceResult],
    failures: Sequence[SourceFailure] = (),
    warnings: Optional[WarningsCollector] = None,
    recompute_sentiment: bool = False,
    top_entities_per_source: int = 5
) -> ConsolidatedResult:
    """
    Merge per-source results into one consolidated result for the query.

    Args:
        query: The analyzed query
        source_results: Successful per-source results in source order
        failures: Sources that failed or timed out
        warnings: Run-level warnings collector, serialized into the result
        recompute_sentiment: Passed through to merge_entity_chains
        top_entities_per_source: Chains kept in each source summary

    Returns:
        ConsolidatedResult: Discussions tagged with their source, query-level
            sentiment recomputed over every comment of every discussion, merged
            entity analysis (None when no source ran entity extraction)

    Raises:
        NoDataError: If source_results is empty
    """
    if not source_results:
        logger.error(
            "consolidation_no_data",
            query=query,
            failed_sources=[f.source for f in failures]
        )
        raise NoDataError(f"No data for query '{query}'", failures=failures)

    discussions = [d for result in source_results for d in tag_discussions(result)]

    all_comments = [c for d in discussions for c in iter_comments(d.comments)]
    sentiment = build_analysis(weighted_average(all_comments))

    with_entities = [r for r in source_results if r.entity_analysis is not None]
    entity_analysis = None
    if with_entities:
        merged_chains = merge_entity_chains(
            [r.entity_analysis.entity_chains for r in with_entities],
            recompute_sentiment=recompute_sentiment
        )
        entity_analysis = summarize_entities(merged_chains, query)

    result = ConsolidatedResult(
        query=query,
        sources=[r.source for r in source_results],
        discussions=discussions,
        sentiment=sentiment,
        entity_analysis=entity_analysis,
        total_comments=sum(count_comments(d.comments) for d in discussions),
        total_discussions=len(discussions),
        source_summaries=[summarize_source(r, top_entities_per_source) for r in source_results],
        failed_sources=list(failures),
        warnings=warnings.to_list() if warnings is not None else [],
        created_at=datetime.now(timezone.utc).isoformat(),
    )

    logger.info(
        "consolidation_completed",
        query=query,
        sources=result.sources,
        failed_sources=[f.source for f in result.failed_sources],
        total_discussions=result.total_discussions,
        total_comments=result.total_comments,
        sentiment_label=sentiment.label,
        total_entities=entity_analysis.total_entities if entity_analysis else 0
    )
    return result


def consolidated_to_dict(result: ConsolidatedResult, entity_limit: Optional[int] = None) -> Dict[str, Any]:
    """Serialize a consolidated result, optionally keeping only the top entity chains."""
    data = asdict(result)
    if entity_limit is not None and data["entity_analysis"] is not None:
        data["entity_analysis"]["entity_chains"] = data["entity_analysis"]["entity_chains"][:entity_limit]
    return data
