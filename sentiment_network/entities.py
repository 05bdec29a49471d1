"""
Named-entity extraction over comment trees.

Wraps the external NER tagger (spaCy in production), normalizes and dedupes the
spans found in one text, and scores the sentiment of a context window around
each mention. Every comment of a discussion, nested replies included, yields
one mention event per entity it contains.
"""

import re
from typing import Iterable, List, Optional, Protocol

import structlog

from sentiment_network.backend.utils.errors import (
    WARNING_TYPE_COMMENT_ENTITIES_FAILED,
    WarningsCollector,
)
from sentiment_network.comment_tree import iter_comments
from sentiment_network.models.thread_models import (
    Comment,
    Discussion,
    Entity,
    EntityType,
    MentionEvent,
    SentimentAnalysis,
    TaggedSpan,
)
from sentiment_network.sentiment import SentimentAggregator, build_analysis

logger = structlog.get_logger(__name__)


DEFAULT_CONTEXT_WINDOW = 50

SUPPORTED_TYPES = {t.value: t for t in EntityType}


class EntityTagger(Protocol):
    def tag(self, text: str) -> Iterable[TaggedSpan]:
        ...


def normalize_entity_text(text: str) -> str:
    """
    Normalize an entity surface form for identity comparison.

    Lowercases, drops every character that is neither alphanumeric nor
    whitespace, collapses whitespace runs and trims.

    Examples:
        >>> normalize_entity_text("  Open-AI, Inc. ")
        'openai inc'
    """
    lowered = (text or "").lower()
    kept = "".join(ch for ch in lowered if ch.isalnum() or ch.isspace())
    return re.sub(r'\s+', ' ', kept).strip()


def deduplicate_entities(entities: Iterable[Entity]) -> List[Entity]:
    """Keep the first entity per (type, normalized_text), preserving order."""
    seen = set()
    deduplicated = []
    for entity in entities:
        key = (entity.type, entity.normalized_text)
        if key not in seen:
            seen.add(key)
            deduplicated.append(entity)
    return deduplicated


class EntityExtractor:
    """Per-run entity extraction service.

    Constructed once per source pipeline run with its own tagger instance, so
    concurrent source runs share no mutable state.

    Args:
        tagger: Object with tag(text) -> iterable of TaggedSpan
        aggregator: SentimentAggregator used to score mention context windows
        context_window: Characters of context kept on each side of a mention
        warnings: Optional collector for per-comment failures
    """

    def __init__(
        self,
        tagger: EntityTagger,
        aggregator: SentimentAggregator,
        context_window: int = DEFAULT_CONTEXT_WINDOW,
        warnings: Optional[WarningsCollector] = None
    ):
        self.tagger = tagger
        self.aggregator = aggregator
        self.context_window = context_window
        self.warnings = warnings

    def extract(self, text: Optional[str]) -> List[Entity]:
        """Tag a text and return its deduplicated supported entities.

        Spans with a type outside PERSON/ORGANIZATION/LOCATION, or whose
        normalized text is empty, are ignored.
        """
        if not text or not text.strip():
            return []

        entities = []
        for span in self.tagger.tag(text):
            raw_type = span.type.value if isinstance(span.type, EntityType) else str(span.type)
            entity_type = SUPPORTED_TYPES.get(raw_type.upper())
            if entity_type is None:
                continue
            normalized = normalize_entity_text(span.text)
            if not normalized:
                continue
            entities.append(Entity(
                text=span.text,
                normalized_text=normalized,
                type=entity_type,
                start_index=int(span.start_index),
                end_index=int(span.end_index),
                confidence=float(span.confidence),
            ))

        return deduplicate_entities(entities)

    def entity_sentiment(self, entity: Entity, full_text: str) -> SentimentAnalysis:
        """Score the text surrounding one mention rather than the whole comment."""
        start = max(0, entity.start_index - self.context_window)
        end = min(len(full_text), entity.end_index + self.context_window)
        return build_analysis(self.aggregator.score_text(full_text[start:end]))

    def process_comment(self, comment: Comment, post_id: str) -> List[MentionEvent]:
        """Extract a comment's entities and emit one mention event per entity.

        Sets comment.entities. On tagger or scorer failure the comment is
        skipped for this stage only: a warning is recorded and no mentions are
        emitted.
        """
        if not comment.text or not comment.text.strip():
            comment.entities = []
            return []

        try:
            entities = self.extract(comment.text)
            mentions = [
                MentionEvent(
                    entity=entity,
                    sentiment=self.entity_sentiment(entity, comment.text),
                    score=comment.score,
                    timestamp=comment.timestamp,
                    post_id=post_id,
                )
                for entity in entities
            ]
        except Exception as e:
            logger.warning(
                "comment_entities_failed",
                comment_id=comment.id,
                post_id=post_id,
                error=str(e),
                error_type=type(e).__name__
            )
            if self.warnings is not None:
                self.warnings.append(
                    WARNING_TYPE_COMMENT_ENTITIES_FAILED,
                    f"Entity extraction failed for comment {comment.id}",
                    {"comment_id": comment.id, "post_id": post_id,
                     "error_type": type(e).__name__, "error": str(e)}
                )
            return []

        comment.entities = entities
        return mentions

    def process_discussion(self, discussion: Discussion) -> List[MentionEvent]:
        mentions = []
        for comment in iter_comments(discussion.comments):
            mentions.extend(self.process_comment(comment, discussion.id))
        return mentions

    def process_discussions(self, discussions: Iterable[Discussion]) -> List[MentionEvent]:
        mentions = []
        for discussion in discussions:
            mentions.extend(self.process_discussion(discussion))
        return mentions
