"""
Tests for network graph construction.

Verifies node ids, node types and link types of the overview graph
(query -> subreddit -> topic) and of the expanded comment tree view.
"""

from sentiment_network.consolidation import consolidate_results
from sentiment_network.network import (
    build_comment_network,
    build_comment_networks,
    build_network_data,
    graph_to_dict,
)
from sentiment_network.pipeline import analyze_source
from tests.conftest import FakeScorer, FakeTagger, raw_comment, raw_discussion


def consolidated():
    scorer = FakeScorer({"love": 0.8, "hate": -0.9})
    tagger = FakeTagger({"OpenAI": "ORGANIZATION"})
    tech = analyze_source('technology', 'ai', [
        raw_discussion('p1', title='First', comments=[
            raw_comment('a', 'love OpenAI', 10, 't3_p1'),
            raw_comment('b', 'hate it', 2, 't1_a'),
        ]),
        raw_discussion('p2', title='Second'),
    ], scorer, tagger=tagger)
    prog = analyze_source('programming', 'ai', [
        raw_discussion('p3', title='Third', comments=[raw_comment('c', 'meh', 1, 't3_p3')]),
    ], scorer, tagger=tagger)
    return consolidate_results('ai', [tech, prog])


class TestOverviewNetwork:

    def test_node_ids_and_types(self):
        graph = build_network_data(consolidated())

        assert [(n.id, n.type) for n in graph.nodes] == [
            ('query', 'query'),
            ('subreddit-technology', 'subreddit'),
            ('topic-0', 'topic'),
            ('topic-1', 'topic'),
            ('subreddit-programming', 'subreddit'),
            ('topic-2', 'topic'),
        ]
        assert graph.center_node.id == 'query'
        assert graph.center_node.label == 'ai'

    def test_links(self):
        graph = build_network_data(consolidated())

        assert [(link.source, link.target, link.type) for link in graph.links] == [
            ('query', 'subreddit-technology', 'query-subreddit'),
            ('subreddit-technology', 'topic-0', 'subreddit-topic'),
            ('subreddit-technology', 'topic-1', 'subreddit-topic'),
            ('query', 'subreddit-programming', 'query-subreddit'),
            ('subreddit-programming', 'topic-2', 'subreddit-topic'),
        ]

    def test_topic_attributes(self):
        graph = build_network_data(consolidated())
        topic = next(n for n in graph.nodes if n.id == 'topic-0')

        assert topic.label == 'First'
        assert topic.attributes['comment_count'] == 2
        assert topic.attributes['subreddit'] == 'technology'
        # Only root comments are ranked by abs(compound) * score
        assert [c['comment_id'] for c in topic.attributes['top_comments']] == ['a']
        assert topic.attributes['top_comments'][0]['sentiment_impact'] == 8.0

    def test_subreddit_attributes(self):
        graph = build_network_data(consolidated())
        tech = next(n for n in graph.nodes if n.id == 'subreddit-technology')

        assert tech.attributes['discussion_count'] == 2
        assert tech.attributes['total_comments'] == 2
        assert tech.attributes['top_entities'][0]['text'] == 'OpenAI'

    def test_graph_serializes_to_dict(self):
        data = graph_to_dict(build_network_data(consolidated()))

        assert data['center_node']['id'] == 'query'
        assert len(data['nodes']) == 6
        assert data['links'][0]['type'] == 'query-subreddit'


class TestCommentNetwork:

    def test_full_tree_with_reply_links(self):
        result = consolidated()

        graph = build_comment_network(result.discussions[0])

        assert [(n.id, n.type) for n in graph.nodes] == [
            ('topic-center', 'query'),
            ('a', 'comment'),
            ('b', 'comment'),
        ]
        assert [(link.source, link.target, link.type) for link in graph.links] == [
            ('topic-center', 'a', 'topic-comment'),
            ('a', 'b', 'comment-reply'),
        ]
        assert graph.nodes[2].attributes['parent_id'] == 'a'

    def test_long_comment_label_truncated(self):
        discussion = consolidated().discussions[0]
        discussion.comments[0].text = 'x' * 80

        graph = build_comment_network(discussion)

        assert graph.nodes[1].label == 'x' * 50 + '...'

    def test_one_tree_per_overview_topic(self):
        result = consolidated()

        networks = build_comment_networks(result)
        overview_topics = [n.id for n in build_network_data(result).nodes if n.type == 'topic']

        assert list(networks) == overview_topics == ['topic-0', 'topic-1', 'topic-2']
        assert networks['topic-2'].center_node.label == 'Third'
        assert networks['topic-2'].center_node.attributes['subreddit'] == 'programming'
        # A discussion without comments is just its center node
        assert [n.id for n in networks['topic-1'].nodes] == ['topic-center']
        assert networks['topic-1'].links == []
