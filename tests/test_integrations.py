"""
Tests for the VADER scorer and spaCy tagger adapters.

The tagger is exercised with hand-built spaCy Doc objects (words, POS tags and
entity IOB tags) so no trained pipeline has to be installed.
"""

from unittest.mock import MagicMock, patch

import pytest
import spacy
from spacy.tokens import Doc

from sentiment_network.integrations.spacy_tagger import SpacyTagger, is_likely_organization, load_pipeline
from sentiment_network.integrations.vader_scorer import VaderScorer


def make_doc(words, pos, ents):
    vocab = spacy.blank("en").vocab
    spaces = [True] * (len(words) - 1) + [False]
    return Doc(vocab, words=words, spaces=spaces, pos=pos, ents=ents)


def tagger_for(doc, **kwargs):
    return SpacyTagger(nlp=lambda text: doc, **kwargs)


class TestVaderScorer:

    def test_returns_four_polarity_keys(self):
        analyzer = MagicMock()
        analyzer.polarity_scores.return_value = {"neg": 0.1, "neu": 0.5, "pos": 0.4, "compound": 0.6}

        scores = VaderScorer(analyzer).polarity_scores("fine")

        assert scores == {"compound": 0.6, "pos": 0.4, "neu": 0.5, "neg": 0.1}

    def test_none_text_scored_as_empty(self):
        analyzer = MagicMock()
        analyzer.polarity_scores.return_value = {"neg": 0.0, "neu": 0.0, "pos": 0.0, "compound": 0.0}

        VaderScorer(analyzer).polarity_scores(None)

        analyzer.polarity_scores.assert_called_once_with("")

    def test_real_lexicon_polarity(self):
        scorer = VaderScorer()

        assert scorer.polarity_scores("I love this, it is great")["compound"] > 0.5
        assert scorer.polarity_scores("I hate this, it is awful")["compound"] < -0.5


class TestSpacyTagger:

    def test_labeled_entities_mapped(self):
        doc = make_doc(
            ["Sam", "Altman", "visited", "Paris"],
            ["PROPN", "PROPN", "VERB", "PROPN"],
            ["B-PERSON", "I-PERSON", "O", "B-GPE"],
        )

        spans = tagger_for(doc).tag(doc.text)

        assert [(s.text, s.type, s.start_index, s.end_index, s.confidence) for s in spans] == [
            ("Sam Altman", "PERSON", 0, 10, 0.8),
            ("Paris", "LOCATION", 19, 24, 0.8),
        ]

    def test_org_and_facility_labels(self):
        doc = make_doc(
            ["OpenAI", "near", "Heathrow"],
            ["PROPN", "ADP", "PROPN"],
            ["B-ORG", "O", "B-FAC"],
        )

        spans = tagger_for(doc).tag(doc.text)

        assert [(s.text, s.type) for s in spans] == [("OpenAI", "ORGANIZATION"), ("Heathrow", "LOCATION")]

    def test_unsupported_and_short_entities_skipped(self):
        doc = make_doc(
            ["AI", "on", "Monday"],
            ["PROPN", "ADP", "PROPN"],
            ["B-ORG", "O", "B-DATE"],
        )

        assert tagger_for(doc).tag(doc.text) == []

    def test_unlabeled_proper_nouns_matched_as_organization(self):
        doc = make_doc(
            ["Sam", "Altman", "joined", "Acme", "Corp", "in", "Paris"],
            ["PROPN", "PROPN", "VERB", "PROPN", "PROPN", "ADP", "PROPN"],
            ["B-PERSON", "I-PERSON", "O", "O", "O", "O", "B-GPE"],
        )

        spans = tagger_for(doc).tag(doc.text)

        pattern_spans = [s for s in spans if s.confidence == 0.6]
        assert [(s.text, s.type) for s in pattern_spans] == [("Acme Corp", "ORGANIZATION")]
        assert doc.text[pattern_spans[0].start_index:pattern_spans[0].end_index] == "Acme Corp"

    def test_custom_organization_classifier(self):
        doc = make_doc(["Zorblax", "rocks"], ["PROPN", "VERB"], ["O", "O"])

        spans = tagger_for(doc, organization_classifier=lambda text: text == "Zorblax").tag(doc.text)

        assert [s.text for s in spans] == ["Zorblax"]

    @pytest.mark.parametrize("text,expected", [
        ("Acme Inc", True),
        ("Stanford University", True),
        ("Google", True),
        ("Jordan", False),
    ])
    def test_is_likely_organization(self, text, expected):
        assert is_likely_organization(text) is expected

    def test_pipeline_loaded_once_per_model(self):
        load_pipeline.cache_clear()
        try:
            with patch("spacy.load") as mock_load:
                first = SpacyTagger(model="en_core_web_sm")
                second = SpacyTagger(model="en_core_web_sm")

            mock_load.assert_called_once_with("en_core_web_sm")
            assert first is not second
            assert first.nlp is second.nlp
        finally:
            load_pipeline.cache_clear()
