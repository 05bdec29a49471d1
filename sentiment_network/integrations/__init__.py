"""
External NLP integrations for the Reddit Sentiment Network pipeline.

This module provides adapters around third-party NLP libraries:
- VADER (vaderSentiment) polarity scorer
- spaCy named-entity tagger
"""
