"""
Tests for comment tree reconstruction.

Behavioral tests verifying that flat parent-pointer records are rebuilt into a
nested reply tree regardless of input order, that comments whose parent was
pruned upstream are promoted to roots, and that no record is ever lost.
"""

import pytest

from sentiment_network.comment_tree import (
    build_comment_tree,
    build_discussion,
    count_comments,
    flatten_comments,
    iter_comments,
)
from tests.conftest import raw_comment, raw_discussion


class TestTreeConstruction:
    """Test parent/child linking from parent references."""

    def test_top_level_comments_become_roots(self):
        roots = build_comment_tree([
            raw_comment('a', parent_id='t3_post'),
            raw_comment('b', parent_id='t3_post'),
        ], discussion_id='post')

        assert [r.id for r in roots] == ['a', 'b']
        assert all(r.replies == [] for r in roots)

    def test_reply_attached_to_parent(self):
        roots = build_comment_tree([
            raw_comment('a', parent_id='t3_post'),
            raw_comment('b', parent_id='t1_a'),
        ])

        assert [r.id for r in roots] == ['a']
        assert [c.id for c in roots[0].replies] == ['b']

    def test_child_before_parent_in_input(self):
        """Children may precede their parents in the flat list."""
        roots = build_comment_tree([
            raw_comment('c', parent_id='t1_b'),
            raw_comment('b', parent_id='t1_a'),
            raw_comment('a', parent_id='t3_post'),
        ])

        assert [r.id for r in roots] == ['a']
        assert roots[0].replies[0].id == 'b'
        assert roots[0].replies[0].replies[0].id == 'c'

    def test_replies_keep_discovery_order(self):
        roots = build_comment_tree([
            raw_comment('a', parent_id='t3_post'),
            raw_comment('z', parent_id='t1_a'),
            raw_comment('m', parent_id='t1_a'),
            raw_comment('b', parent_id='t1_a'),
        ])

        assert [c.id for c in roots[0].replies] == ['z', 'm', 'b']

    def test_missing_parent_id_is_root(self):
        roots = build_comment_tree([raw_comment('a', parent_id=None)])
        assert [r.id for r in roots] == ['a']

    def test_bare_discussion_id_parent_is_root(self):
        roots = build_comment_tree(
            [raw_comment('a', parent_id='post')],
            discussion_id='post'
        )
        assert [r.id for r in roots] == ['a']

    def test_bare_comment_id_parent_is_linked(self):
        roots = build_comment_tree([
            raw_comment('a', parent_id='t3_post'),
            raw_comment('b', parent_id='a'),
        ], discussion_id='post')

        assert [c.id for c in roots[0].replies] == ['b']

    def test_empty_input_returns_empty_list(self):
        assert build_comment_tree([]) == []

    def test_comment_fields_copied_without_parent_pointer(self):
        roots = build_comment_tree([
            raw_comment('a', text='hello', score=7, author='alice', parent_id='t3_p')
        ])

        comment = roots[0]
        assert comment.text == 'hello'
        assert comment.score == 7
        assert comment.author == 'alice'
        assert comment.sentiment is None
        assert comment.entities is None
        assert not hasattr(comment, 'parent_id')


class TestOrphanHandling:
    """Test that pruned parents never lose their descendants."""

    def test_orphan_promoted_to_root(self):
        """Reply whose parent was pruned becomes a root."""
        roots = build_comment_tree([
            raw_comment('a', parent_id='t3_post'),
            raw_comment('orphan', parent_id='t1_pruned'),
        ])

        assert [r.id for r in roots] == ['a', 'orphan']

    def test_orphan_keeps_its_own_replies(self):
        roots = build_comment_tree([
            raw_comment('orphan', parent_id='t1_pruned'),
            raw_comment('child', parent_id='t1_orphan'),
        ])

        assert [r.id for r in roots] == ['orphan']
        assert [c.id for c in roots[0].replies] == ['child']

    def test_orphan_does_not_raise(self):
        build_comment_tree([raw_comment('x', parent_id='t1_missing')])


class TestCycleAndDuplicateHandling:
    """Test malformed inputs never drop records."""

    def test_self_parent_is_root(self):
        roots = build_comment_tree([raw_comment('a', parent_id='t1_a')])

        assert [r.id for r in roots] == ['a']
        assert roots[0].replies == []

    def test_two_cycle_keeps_both_comments(self):
        roots = build_comment_tree([
            raw_comment('a', parent_id='t1_b'),
            raw_comment('b', parent_id='t1_a'),
        ])

        assert count_comments(roots) == 2
        assert sorted(c.id for c in iter_comments(roots)) == ['a', 'b']

    def test_duplicate_ids_both_kept(self):
        roots = build_comment_tree([
            raw_comment('a', text='first', parent_id='t3_p'),
            raw_comment('a', text='second', parent_id='t3_p'),
            raw_comment('b', parent_id='t1_a'),
        ])

        assert count_comments(roots) == 3
        # Replies attach to the first record owning the id
        assert roots[0].text == 'first'
        assert [c.id for c in roots[0].replies] == ['b']


class TestTreeTraversal:
    """Test traversal helpers over nested trees."""

    @pytest.fixture
    def nested_roots(self):
        return build_comment_tree([
            raw_comment('a', parent_id='t3_p'),
            raw_comment('b', parent_id='t1_a'),
            raw_comment('c', parent_id='t1_b'),
            raw_comment('d', parent_id='t3_p'),
            raw_comment('e', parent_id='t1_a'),
        ])

    def test_pre_order_traversal(self, nested_roots):
        assert [c.id for c in iter_comments(nested_roots)] == ['a', 'b', 'c', 'e', 'd']

    def test_count_includes_nested_replies(self, nested_roots):
        assert count_comments(nested_roots) == 5

    def test_flatten_returns_every_comment_once(self, nested_roots):
        flat = flatten_comments(nested_roots)
        assert len(flat) == len({id(c) for c in flat}) == 5

    def test_deep_chain_does_not_recurse(self):
        """A 2000-deep reply chain is traversed without hitting the recursion limit."""
        records = [raw_comment('c0', parent_id='t3_p')]
        records += [raw_comment(f'c{i}', parent_id=f't1_c{i - 1}') for i in range(1, 2000)]

        roots = build_comment_tree(records)

        assert count_comments(roots) == 2000


class TestBuildDiscussion:

    def test_discussion_owns_rebuilt_tree(self):
        raw = raw_discussion('post', comments=[
            raw_comment('a', parent_id='t3_post'),
            raw_comment('b', parent_id='t1_a'),
        ], title='Big news')

        discussion = build_discussion(raw)

        assert discussion.id == 'post'
        assert discussion.title == 'Big news'
        assert [r.id for r in discussion.comments] == ['a']
        assert discussion.sentiment is None
        assert discussion.entity_chains is None
