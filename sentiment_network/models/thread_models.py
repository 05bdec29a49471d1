"""Thread data models for the Reddit Sentiment Network pipeline.

This module defines the data structures that flow through the analysis pipeline,
from raw fetched records through the rebuilt comment tree to entity chains and
the consolidated multi-source result.

Data Models:
    RawComment / RawDiscussion: flat records as returned by the source fetch
    Comment / Discussion: rebuilt reply tree with sentiment/entity annotations
    SentimentScores / SentimentAnalysis: polarity vectors and their label
    Entity / MentionEvent / EntityChain: named-entity tracking across comments
    SourceResult / ConsolidatedResult: per-source and merged pipeline outputs

These models use dataclasses for simplicity. Comment and Discussion objects are
created once during tree building; only their sentiment, entities and
entity_chains fields are filled in afterwards by the aggregator stages.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


SENTIMENT_FIELDS = ("compound", "pos", "neu", "neg")


def to_iso_timestamp(value: Any) -> str:
    """Coerce an epoch number or string timestamp to an ISO 8601 string."""
    if value is None or value == "":
        return ""
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
    return str(value)


@dataclass
class SentimentScores:
    """Four-field polarity vector produced by the external scorer.

    Attributes:
        compound: Signed overall polarity in [-1, 1], used for classification
        pos: Positive magnitude component
        neu: Neutral magnitude component
        neg: Negative magnitude component
    """
    compound: float = 0.0
    pos: float = 0.0
    neu: float = 0.0
    neg: float = 0.0

    @classmethod
    def zero(cls) -> "SentimentScores":
        return cls(0.0, 0.0, 0.0, 0.0)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "SentimentScores":
        """Build scores from a scorer's raw dict output.

        Raises:
            ValueError: If a field is missing or not numeric (malformed output)
        """
        values = {}
        for name in SENTIMENT_FIELDS:
            try:
                value = raw[name]
            except (KeyError, TypeError) as e:
                raise ValueError(f"Scorer output missing field '{name}'") from e
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(
                    f"Scorer output field '{name}' is not numeric: {value!r}"
                )
            values[name] = float(value)
        return cls(**values)


@dataclass
class SentimentAnalysis:
    """Sentiment result attached to a comment, discussion, source or chain.

    `original` and `overall` carry the same vector; `label` is derived from
    the compound score (positive/negative/neutral).
    """
    original: SentimentScores
    overall: SentimentScores
    label: str = "neutral"


class EntityType(str, Enum):
    PERSON = "PERSON"
    ORGANIZATION = "ORGANIZATION"
    LOCATION = "LOCATION"


@dataclass
class TaggedSpan:
    """One raw span as returned by the NER tagger (type is unvalidated)."""
    text: str
    type: str
    start_index: int
    end_index: int
    confidence: float = 0.8


@dataclass
class Entity:
    """A detected named entity mention inside one text.

    Attributes:
        text: Original surface form
        normalized_text: Lowercased, punctuation-stripped, whitespace-collapsed form
        type: PERSON, ORGANIZATION or LOCATION
        start_index: Character offset of the mention start in the source text
        end_index: Character offset of the mention end in the source text
        confidence: Tagger confidence (0.0-1.0)
    """
    text: str
    normalized_text: str
    type: EntityType
    start_index: int
    end_index: int
    confidence: float


@dataclass
class RawComment:
    """A flat comment record from the source fetch.

    `parent_id` follows Reddit fullnames: "t3_<post>" for top-level comments,
    "t1_<comment>" for replies. It is consumed by the tree builder and does
    not survive into Comment.
    """
    id: str
    text: str
    score: int
    author: str
    timestamp: str
    parent_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RawComment":
        text = data.get("text")
        if text is None:
            text = data.get("body", "")
        timestamp = data.get("timestamp")
        if timestamp is None:
            timestamp = data.get("created_utc")
        return cls(
            id=str(data["id"]),
            text=text or "",
            score=int(data.get("score") or 0),
            author=data.get("author") or "[deleted]",
            timestamp=to_iso_timestamp(timestamp),
            parent_id=data.get("parent_id"),
        )


@dataclass
class RawDiscussion:
    """A fetched post with its flat list of raw comments."""
    id: str
    title: str
    url: str
    timestamp: str
    score: int
    content: str = ""
    comments: List[RawComment] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RawDiscussion":
        timestamp = data.get("timestamp")
        if timestamp is None:
            timestamp = data.get("created_utc")
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            url=data.get("url", ""),
            timestamp=to_iso_timestamp(timestamp),
            score=int(data.get("score") or 0),
            content=data.get("content") or "",
            comments=[RawComment.from_dict(c) for c in data.get("comments", [])],
        )


@dataclass
class Comment:
    """A node of the rebuilt reply tree.

    Attributes:
        id: Comment identifier
        text: Comment body
        score: Popularity weight (upvotes - downvotes, may be zero or negative)
        author: Username ("[deleted]" when unknown)
        timestamp: ISO 8601 creation time
        replies: Child comments in discovery order
        sentiment: Filled by SentimentAggregator (None if scoring failed)
        entities: Filled by EntityExtractor (None if extraction failed or skipped)
    """
    id: str
    text: str
    score: int
    author: str
    timestamp: str
    replies: List["Comment"] = field(default_factory=list)
    sentiment: Optional[SentimentAnalysis] = None
    entities: Optional[List[Entity]] = None


@dataclass
class SentimentTrendPoint:
    timestamp: str
    sentiment: SentimentAnalysis
    score: int
    post_id: str


@dataclass
class MentionEvent:
    """One occurrence of an entity in one comment, weighted by that comment."""
    entity: Entity
    sentiment: SentimentAnalysis
    score: int
    timestamp: str
    post_id: str


@dataclass
class EntityChain:
    """Aggregated identity and history of one entity across many mentions.

    Attributes:
        entity: Representative (first-seen) mention of the entity
        total_mentions: Number of mention events (== len(sentiment_trend))
        unique_posts: Number of distinct discussions mentioning the entity
        total_score: Sum of hosting comment scores; the chain's ranking weight
        average_sentiment: Score-weighted sentiment over the trend
        sentiment_trend: Append-only mention history
    """
    entity: Entity
    total_mentions: int = 0
    unique_posts: int = 0
    total_score: int = 0
    average_sentiment: Optional[SentimentAnalysis] = None
    sentiment_trend: List[SentimentTrendPoint] = field(default_factory=list)

    @property
    def key(self) -> Tuple[EntityType, str]:
        return (self.entity.type, self.entity.normalized_text)


@dataclass
class Discussion:
    """One source post owning the roots of its comment tree.

    Attributes:
        id: Post identifier
        title: Post title
        url: Permalink
        timestamp: ISO 8601 creation time
        score: Post score
        content: Post self text (empty for link posts)
        comments: Root-level comments (replies nested beneath)
        sentiment: Weighted roll-up over every comment of the tree
        entities: Entities found anywhere in the tree, deduplicated by
            (type, normalized_text) in first-seen order
        entity_chains: Chains built from this discussion's mentions only
        source: Originating source name, set on consolidated copies
    """
    id: str
    title: str
    url: str
    timestamp: str
    score: int
    content: str = ""
    comments: List[Comment] = field(default_factory=list)
    sentiment: Optional[SentimentAnalysis] = None
    entities: Optional[List[Entity]] = None
    entity_chains: Optional[List[EntityChain]] = None
    source: Optional[str] = None


@dataclass
class EntityBreakdown:
    persons: int = 0
    organizations: int = 0
    locations: int = 0


@dataclass
class EntityAnalysis:
    """Entity summary for one source or for the consolidated query."""
    query: str
    timestamp: str
    total_entities: int
    total_mentions: int
    total_score: int
    entity_breakdown: EntityBreakdown
    entity_chains: List[EntityChain] = field(default_factory=list)
    source: Optional[str] = None


@dataclass
class SourceResult:
    """Output of one per-source pipeline run (tree, sentiment, entities, chains)."""
    source: str
    query: str
    discussions: List[Discussion]
    sentiment: SentimentAnalysis
    entity_analysis: Optional[EntityAnalysis] = None
    total_comments: int = 0
    fetched_at: str = ""


@dataclass
class SourceFailure:
    source: str
    error_type: str
    message: str


@dataclass
class SourceSummary:
    source: str
    discussion_count: int
    total_comments: int
    sentiment: SentimentAnalysis
    top_entities: List[EntityChain] = field(default_factory=list)


@dataclass
class ConsolidatedResult:
    """Merged result across every successfully processed source."""
    query: str
    sources: List[str]
    discussions: List[Discussion]
    sentiment: SentimentAnalysis
    entity_analysis: Optional[EntityAnalysis] = None
    total_comments: int = 0
    total_discussions: int = 0
    source_summaries: List[SourceSummary] = field(default_factory=list)
    failed_sources: List[SourceFailure] = field(default_factory=list)
    warnings: List[Dict[str, Any]] = field(default_factory=list)
    created_at: str = ""
