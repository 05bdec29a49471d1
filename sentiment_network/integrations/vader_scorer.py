"""VADER polarity scorer adapter."""

from typing import Dict

import structlog
from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer

logger = structlog.get_logger(__name__)


class VaderScorer:
    """Polarity scorer backed by vaderSentiment's SentimentIntensityAnalyzer.

    The analyzer only reads its lexicon after construction, so one instance
    is shared by every source pipeline of the process.

    Example:
        >>> VaderScorer().polarity_scores("I love this")["compound"] > 0
        True
    """

    def __init__(self, analyzer: SentimentIntensityAnalyzer = None):
        self.analyzer = analyzer or SentimentIntensityAnalyzer()
        logger.debug("vader_scorer_initialized")

    def polarity_scores(self, text: str) -> Dict[str, float]:
        scores = self.analyzer.polarity_scores(text or "")
        return {
            "compound": scores["compound"],
            "pos": scores["pos"],
            "neu": scores["neu"],
            "neg": scores["neg"],
        }
