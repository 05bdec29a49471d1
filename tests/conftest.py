"""
Shared pytest fixtures for the analysis pipeline tests.

These fixtures provide a deterministic polarity scorer, a dictionary-based NER
tagger and builders for raw comment/discussion records, so pipeline behavior can
be verified without loading VADER lexicons or spaCy models.
"""

import re

import pytest

from sentiment_network.models.thread_models import RawComment, RawDiscussion, TaggedSpan


class FakeScorer:
    """Polarity scorer returning fixed vectors for texts containing a keyword.

    Texts matching no keyword score as neutral (compound 0). Every call is
    recorded in self.calls.
    """

    def __init__(self, keywords=None, fail_on=None):
        self.keywords = keywords or {}
        self.fail_on = fail_on
        self.calls = []

    def polarity_scores(self, text):
        self.calls.append(text)
        if self.fail_on is not None and self.fail_on in text:
            raise RuntimeError(f"scorer failed on {text!r}")
        for keyword, compound in self.keywords.items():
            if keyword in text:
                return scores(compound)
        return scores(0.0)


class FakeTagger:
    """Tagger that reports every occurrence of known surface forms.

    Args:
        entities: Mapping of surface form to entity type label
        fail_on: Substring that makes tag() raise
    """

    def __init__(self, entities=None, fail_on=None):
        self.entities = entities or {}
        self.fail_on = fail_on

    def tag(self, text):
        if self.fail_on is not None and self.fail_on in text:
            raise RuntimeError(f"tagger failed on {text!r}")
        spans = []
        for surface, label in self.entities.items():
            for match in re.finditer(re.escape(surface), text):
                spans.append(TaggedSpan(
                    text=match.group(0),
                    type=label,
                    start_index=match.start(),
                    end_index=match.end(),
                    confidence=0.8,
                ))
        return sorted(spans, key=lambda s: s.start_index)


def scores(compound, pos=None, neu=None, neg=None):
    """Build a scorer output dict; pos/neg default from the compound sign."""
    if pos is None:
        pos = max(compound, 0.0)
    if neg is None:
        neg = max(-compound, 0.0)
    if neu is None:
        neu = round(1.0 - pos - neg, 6)
    return {"compound": compound, "pos": pos, "neu": neu, "neg": neg}


def raw_comment(id, text="", score=1, parent_id=None, author="user", timestamp="2024-01-01T00:00:00+00:00"):
    return RawComment(id=id, text=text, score=score, author=author, timestamp=timestamp, parent_id=parent_id)


def raw_discussion(id, comments=(), title=None, score=100):
    return RawDiscussion(
        id=id,
        title=title or f"Discussion {id}",
        url=f"https://www.reddit.com/r/test/comments/{id}/",
        timestamp="2024-01-01T00:00:00+00:00",
        score=score,
        comments=list(comments),
    )


@pytest.fixture
def fake_scorer():
    return FakeScorer({"love": 0.8, "great": 0.5, "hate": -0.9, "awful": -0.6})


@pytest.fixture
def fake_tagger():
    return FakeTagger({
        "Sam Altman": "PERSON",
        "OpenAI": "ORGANIZATION",
        "Paris": "LOCATION",
    })


@pytest.fixture
def test_client():
    """Provide a FastAPI TestClient with fake NLP adapters in app.state.

    The client is not entered as a context manager, so the lifespan (which
    loads VADER and spaCy) does not run.
    """
    from fastapi.testclient import TestClient

    from sentiment_network.api.app import app
    from sentiment_network.config import AnalysisConfig

    app.state.config = AnalysisConfig()
    app.state.scorer = FakeScorer({"love": 0.8, "hate": -0.9})
    app.state.tagger_factory = lambda: FakeTagger({"OpenAI": "ORGANIZATION", "Paris": "LOCATION"})

    return TestClient(app)
