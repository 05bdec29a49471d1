"""
Sentiment scoring and score-weighted roll-ups.

This module wraps the external polarity scorer (VADER in production, any object
with a polarity_scores(text) method in tests) and aggregates comment sentiment
at discussion level and source level using comment score as the weight.
"""

from typing import Any, Iterable, List, Mapping, Optional, Protocol

import structlog

from sentiment_network.backend.utils.errors import (
    WARNING_TYPE_COMMENT_SENTIMENT_FAILED,
    WarningsCollector,
)
from sentiment_network.comment_tree import iter_comments
from sentiment_network.models.thread_models import (
    SENTIMENT_FIELDS,
    Comment,
    Discussion,
    SentimentAnalysis,
    SentimentScores,
)

logger = structlog.get_logger(__name__)


POSITIVE_THRESHOLD = 0.05
NEGATIVE_THRESHOLD = -0.05


class PolarityScorer(Protocol):
    def polarity_scores(self, text: str) -> Mapping[str, Any]:
        ...


def classify_sentiment(compound: float) -> str:
    """
    Classify a compound score into a sentiment label.

    Returns:
        "positive" for compound >= 0.05, "negative" for compound <= -0.05,
        otherwise "neutral"

    Examples:
        >>> classify_sentiment(0.05)
        'positive'
        >>> classify_sentiment(-0.05)
        'negative'
        >>> classify_sentiment(0.049999)
        'neutral'
    """
    if compound >= POSITIVE_THRESHOLD:
        return "positive"
    if compound <= NEGATIVE_THRESHOLD:
        return "negative"
    return "neutral"


def build_analysis(scores: SentimentScores) -> SentimentAnalysis:
    return SentimentAnalysis(
        original=scores,
        overall=SentimentScores(scores.compound, scores.pos, scores.neu, scores.neg),
        label=classify_sentiment(scores.compound),
    )


def _mean(comments: List[Comment]) -> SentimentScores:
    count = len(comments)
    return SentimentScores(**{
        name: sum(getattr(c.sentiment.original, name) for c in comments) / count
        for name in SENTIMENT_FIELDS
    })


def weighted_average(comments: Iterable[Comment]) -> SentimentScores:
    """
    Score-weighted average sentiment over a flat list of comments.

    Two-tier policy:
    - Empty list (or no comment carrying a sentiment) returns the zero vector
    - If any comment has score > 0, each field is the weight-normalized mean
      over ONLY the positively scored comments; zero and negative scores are
      excluded entirely
    - If no comment has score > 0, each field is the unweighted arithmetic mean
      over all comments

    Comments whose sentiment is None (scoring failed) do not take part.

    Args:
        comments: Comments with score and sentiment populated

    Returns:
        SentimentScores: Aggregated compound/pos/neu/neg

    Examples:
        >>> weighted_average([]).compound
        0.0
        >>> # scores [10, -5, 0] with compounds [0.5, 0.8, -0.9] -> 0.5
    """
    scored = [c for c in comments if c.sentiment is not None]
    if not scored:
        return SentimentScores.zero()

    positive = [c for c in scored if c.score > 0]
    if not positive:
        return _mean(scored)

    total_weight = sum(c.score for c in positive)
    return SentimentScores(**{
        name: sum(getattr(c.sentiment.original, name) * c.score for c in positive) / total_weight
        for name in SENTIMENT_FIELDS
    })


class SentimentAggregator:
    """Scores comments through the external scorer and rolls results up.

    Example:
        >>> from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer
        >>> aggregator = SentimentAggregator(SentimentIntensityAnalyzer())
        >>> aggregator.analyze_discussion(discussion).label
        'positive'
    """

    def __init__(self, scorer: PolarityScorer, warnings: Optional[WarningsCollector] = None):
        self.scorer = scorer
        self.warnings = warnings

    def score_text(self, text: Optional[str]) -> SentimentScores:
        """Score a text; empty or whitespace-only text short-circuits to zero.

        Raises:
            ValueError: If the scorer returns malformed output
        """
        if not text or not text.strip():
            return SentimentScores.zero()
        return SentimentScores.from_mapping(self.scorer.polarity_scores(text))

    def score_comment(self, comment: Comment) -> SentimentAnalysis:
        return build_analysis(self.score_text(comment.text))

    def score_comments(self, roots: Iterable[Comment]) -> int:
        """Attach sentiment to every comment of a tree, nested replies included.

        A scorer failure on one comment leaves that comment's sentiment as None
        and is recorded as a warning; other comments are unaffected.

        Returns:
            int: Number of comments successfully scored
        """
        scored = 0
        for comment in iter_comments(roots):
            try:
                comment.sentiment = self.score_comment(comment)
                scored += 1
            except Exception as e:
                logger.warning(
                    "comment_sentiment_failed",
                    comment_id=comment.id,
                    error=str(e),
                    error_type=type(e).__name__
                )
                if self.warnings is not None:
                    self.warnings.append(
                        WARNING_TYPE_COMMENT_SENTIMENT_FAILED,
                        f"Sentiment scoring failed for comment {comment.id}",
                        {"comment_id": comment.id, "error_type": type(e).__name__, "error": str(e)}
                    )
        return scored

    def analyze_discussion(self, discussion: Discussion) -> SentimentAnalysis:
        """Score the discussion's full tree and roll it up into discussion.sentiment."""
        self.score_comments(discussion.comments)
        discussion.sentiment = build_analysis(
            weighted_average(iter_comments(discussion.comments))
        )
        return discussion.sentiment

    def analyze_source(self, discussions: Iterable[Discussion]) -> SentimentAnalysis:
        """Weighted average over every comment across all of a source's discussions.

        Assumes analyze_discussion has already run for each discussion.
        """
        all_comments = [
            comment
            for discussion in discussions
            for comment in iter_comments(discussion.comments)
        ]
        return build_analysis(weighted_average(all_comments))
