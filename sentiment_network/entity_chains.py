"""
Entity chain building for one source.

Groups mention events by entity identity (type, normalized text), weights each
chain's sentiment by the popularity of the comments that mention it, and ranks
chains by cumulative comment score rather than raw mention count.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from sentiment_network.models.thread_models import (
    SENTIMENT_FIELDS,
    Entity,
    EntityAnalysis,
    EntityBreakdown,
    EntityChain,
    EntityType,
    MentionEvent,
    SentimentAnalysis,
    SentimentScores,
    SentimentTrendPoint,
)
from sentiment_network.sentiment import build_analysis

logger = structlog.get_logger(__name__)


def chain_key(entity: Entity) -> Tuple[EntityType, str]:
    return (entity.type, entity.normalized_text)


def neutral_sentiment() -> SentimentAnalysis:
    return SentimentAnalysis(
        original=SentimentScores.zero(),
        overall=SentimentScores.zero(),
        label="neutral",
    )


def score_weighted_sentiment(trend: Iterable[SentimentTrendPoint]) -> SentimentAnalysis:
    """
    Score-weighted average sentiment over a chain's mention history.

    Each point contributes with weight score_i / sum(scores). When the score
    sum is zero or negative there is no positive evidence to weight by, and
    the neutral default (all zeros, "neutral") is returned instead of an
    unweighted mean.

    Args:
        trend: Mention history of one chain

    Returns:
        SentimentAnalysis: Weighted sentiment, or the neutral default
    """
    points = list(trend)
    total_weight = sum(p.score for p in points)
    if total_weight <= 0:
        return neutral_sentiment()

    return build_analysis(SentimentScores(**{
        name: sum(getattr(p.sentiment.original, name) * (p.score / total_weight) for p in points)
        for name in SENTIMENT_FIELDS
    }))


def _finalize_chain(chain: EntityChain) -> EntityChain:
    chain.total_mentions = len(chain.sentiment_trend)
    chain.total_score = sum(p.score for p in chain.sentiment_trend)
    chain.unique_posts = len({p.post_id for p in chain.sentiment_trend})
    chain.average_sentiment = score_weighted_sentiment(chain.sentiment_trend)
    return chain


def rank_chains(chains: Iterable[EntityChain]) -> List[EntityChain]:
    """Sort chains descending by total score; ties keep first-seen order."""
    return sorted(chains, key=lambda c: c.total_score, reverse=True)


def build_entity_chains(mentions: Iterable[MentionEvent]) -> List[EntityChain]:
    """
    Group mention events into entity chains ranked by popularity.

    For each (type, normalized_text) group:
    - total_mentions: number of mention events
    - total_score: sum of hosting comment scores (negative scores included,
      never clamped)
    - sentiment_trend: the events in input order, never deduplicated
    - unique_posts: number of distinct discussion ids among the events
    - average_sentiment: score_weighted_sentiment over the trend

    Args:
        mentions: All mention events of one source (or one discussion)

    Returns:
        list[EntityChain]: Chains sorted descending by total_score. An entity
            mentioned once in a 1000-point comment outranks one mentioned
            twenty times in 1-point comments.
    """
    chains: Dict[Tuple[EntityType, str], EntityChain] = {}

    for mention in mentions:
        key = chain_key(mention.entity)
        chain = chains.get(key)
        if chain is None:
            chain = EntityChain(entity=mention.entity)
            chains[key] = chain
        chain.sentiment_trend.append(SentimentTrendPoint(
            timestamp=mention.timestamp,
            sentiment=mention.sentiment,
            score=mention.score,
            post_id=mention.post_id,
        ))

    return rank_chains(_finalize_chain(chain) for chain in chains.values())


def entity_breakdown(chains: Iterable[EntityChain]) -> EntityBreakdown:
    breakdown = EntityBreakdown()
    for chain in chains:
        if chain.entity.type == EntityType.PERSON:
            breakdown.persons += 1
        elif chain.entity.type == EntityType.ORGANIZATION:
            breakdown.organizations += 1
        elif chain.entity.type == EntityType.LOCATION:
            breakdown.locations += 1
    return breakdown


def summarize_entities(
    chains: List[EntityChain],
    query: str,
    source: Optional[str] = None
) -> EntityAnalysis:
    """Build an EntityAnalysis whose counters are recomputed from the chain list."""
    analysis = EntityAnalysis(
        query=query,
        timestamp=datetime.now(timezone.utc).isoformat(),
        total_entities=len(chains),
        total_mentions=sum(c.total_mentions for c in chains),
        total_score=sum(c.total_score for c in chains),
        entity_breakdown=entity_breakdown(chains),
        entity_chains=chains,
        source=source,
    )

    logger.info(
        "entity_analysis_completed",
        source=source,
        query=query,
        total_entities=analysis.total_entities,
        total_mentions=analysis.total_mentions,
        total_score=analysis.total_score,
        persons=analysis.entity_breakdown.persons,
        organizations=analysis.entity_breakdown.organizations,
        locations=analysis.entity_breakdown.locations
    )
    return analysis
