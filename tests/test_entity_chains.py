"""
Tests for entity chain building.

Covers grouping by (type, normalized_text), score-weighted chain sentiment,
ranking by total comment score, unique discussion counting, and the entity
analysis summary counters.
"""

import pytest

from sentiment_network.entity_chains import (
    build_entity_chains,
    entity_breakdown,
    score_weighted_sentiment,
    summarize_entities,
)
from sentiment_network.models.thread_models import (
    Entity,
    EntityType,
    MentionEvent,
    SentimentScores,
    SentimentTrendPoint,
)
from sentiment_network.sentiment import build_analysis


def entity(text, type=EntityType.ORGANIZATION):
    return Entity(text, text.lower(), type, 0, len(text), 0.8)


def mention(text, score, compound=0.0, post_id='p1', type=EntityType.ORGANIZATION, timestamp='t'):
    return MentionEvent(
        entity=entity(text, type),
        sentiment=build_analysis(SentimentScores(compound, 0.0, 0.0, 0.0)),
        score=score,
        timestamp=timestamp,
        post_id=post_id,
    )


class TestBuildEntityChains:

    def test_mentions_grouped_by_identity(self):
        chains = build_entity_chains([
            mention('OpenAI', 1),
            mention('Paris', 1, type=EntityType.LOCATION),
            mention('OpenAI', 1),
        ])

        assert len(chains) == 2
        openai = next(c for c in chains if c.entity.normalized_text == 'openai')
        assert openai.total_mentions == 2

    def test_same_text_different_type_kept_apart(self):
        chains = build_entity_chains([
            mention('Jordan', 1, type=EntityType.PERSON),
            mention('Jordan', 1, type=EntityType.LOCATION),
        ])

        assert len(chains) == 2

    def test_popularity_outranks_mention_count(self):
        """One mention in a 1000-point comment beats twenty 1-point mentions."""
        mentions = [mention('Niche', 1) for _ in range(20)]
        mentions.append(mention('Viral', 1000))

        chains = build_entity_chains(mentions)

        assert [c.entity.text for c in chains] == ['Viral', 'Niche']
        assert chains[0].total_score == 1000
        assert chains[1].total_mentions == 20

    def test_negative_scores_not_clamped(self):
        chains = build_entity_chains([mention('OpenAI', 5), mention('OpenAI', -8)])
        assert chains[0].total_score == -3

    def test_trend_keeps_every_mention_in_order(self):
        chains = build_entity_chains([
            mention('OpenAI', 1, timestamp='t1'),
            mention('OpenAI', 1, timestamp='t2'),
            mention('OpenAI', 1, timestamp='t3'),
        ])

        trend = chains[0].sentiment_trend
        assert [p.timestamp for p in trend] == ['t1', 't2', 't3']
        assert chains[0].total_mentions == len(trend)

    def test_unique_posts_counts_distinct_discussions(self):
        chains = build_entity_chains([
            mention('OpenAI', 10, post_id='p1'),
            mention('OpenAI', 10, post_id='p1'),
            mention('OpenAI', 3, post_id='p2'),
        ])

        assert chains[0].unique_posts == 2

    def test_ties_keep_first_seen_order(self):
        chains = build_entity_chains([mention('Beta', 5), mention('Alpha', 5)])
        assert [c.entity.text for c in chains] == ['Beta', 'Alpha']

    def test_representative_entity_is_first_mention(self):
        first = mention('OpenAI', 1)
        chains = build_entity_chains([first, mention('OPENAI', 1)])
        assert chains[0].entity is first.entity

    def test_no_mentions_no_chains(self):
        assert build_entity_chains([]) == []


class TestScoreWeightedSentiment:

    def test_weighted_by_comment_score(self):
        chains = build_entity_chains([
            mention('OpenAI', 3, compound=1.0),
            mention('OpenAI', 1, compound=-1.0),
        ])

        assert chains[0].average_sentiment.original.compound == pytest.approx(0.5)
        assert chains[0].average_sentiment.label == 'positive'

    def test_non_positive_score_sum_is_neutral(self):
        chains = build_entity_chains([
            mention('OpenAI', 0, compound=0.9),
            mention('OpenAI', -2, compound=0.9),
        ])

        sentiment = chains[0].average_sentiment
        assert sentiment.label == 'neutral'
        assert sentiment.original == SentimentScores.zero()
        assert sentiment.overall == SentimentScores.zero()

    def test_empty_trend_is_neutral(self):
        assert score_weighted_sentiment([]).label == 'neutral'

    def test_negative_weights_participate_when_sum_positive(self):
        points = [
            SentimentTrendPoint('t', build_analysis(SentimentScores(0.5, 0, 0, 0)), 4, 'p'),
            SentimentTrendPoint('t', build_analysis(SentimentScores(0.9, 0, 0, 0)), -2, 'p'),
        ]

        # 0.5 * (4/2) + 0.9 * (-2/2)
        assert score_weighted_sentiment(points).original.compound == pytest.approx(0.1)


class TestSummarizeEntities:

    def test_counters_computed_from_chains(self):
        chains = build_entity_chains([
            mention('OpenAI', 10),
            mention('OpenAI', 5),
            mention('Sam Altman', 3, type=EntityType.PERSON),
            mention('Paris', 2, type=EntityType.LOCATION),
        ])

        analysis = summarize_entities(chains, 'ai', source='technology')

        assert analysis.total_entities == 3
        assert analysis.total_mentions == 4
        assert analysis.total_score == 20
        assert analysis.entity_breakdown.persons == 1
        assert analysis.entity_breakdown.organizations == 1
        assert analysis.entity_breakdown.locations == 1
        assert analysis.source == 'technology'
        assert analysis.entity_chains is chains

    def test_breakdown_of_empty_chain_list(self):
        breakdown = entity_breakdown([])
        assert (breakdown.persons, breakdown.organizations, breakdown.locations) == (0, 0, 0)
