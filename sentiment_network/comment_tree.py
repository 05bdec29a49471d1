"""Comment tree reconstruction from flat parent-pointer records.

Reddit returns comments as a flat list where each record names its parent by
fullname: "t3_<post id>" for a top-level comment, "t1_<comment id>" for a reply.
The tree is rebuilt index-then-link, so children may precede their parents in
the input and comments whose parent was pruned upstream are promoted to roots.
"""

from typing import Dict, Iterable, Iterator, List, Optional

import structlog

from sentiment_network.models.thread_models import Comment, Discussion, RawComment, RawDiscussion

logger = structlog.get_logger(__name__)


POST_PREFIX = "t3_"
COMMENT_PREFIX = "t1_"


def _candidate_parent_id(parent_id: Optional[str], discussion_id: Optional[str]) -> Optional[str]:
    """Return the comment id a parent reference points to, or None for the discussion."""
    if not parent_id:
        return None
    if parent_id.startswith(POST_PREFIX):
        return None
    if parent_id.startswith(COMMENT_PREFIX):
        return parent_id[len(COMMENT_PREFIX):]
    if discussion_id is not None and parent_id == discussion_id:
        return None
    return parent_id


def _closes_cycle(node: Comment, parent: Comment, parents: Dict[int, Comment]) -> bool:
    """Check whether attaching node under parent would make node its own ancestor."""
    current = parent
    while current is not None:
        if current is node:
            return True
        current = parents.get(id(current))
    return False


def build_comment_tree(
    raw_comments: Iterable[RawComment],
    discussion_id: Optional[str] = None
) -> List[Comment]:
    """Rebuild the nested reply tree from flat comment records.

    First pass indexes every comment by id. Second pass links each comment to
    its parent in input order. A comment becomes a root when:
    - it has no parent reference
    - its parent reference points to the discussion (t3_ prefix, or the bare
      discussion id)
    - its parent is not in the input set (pruned upstream, e.g. by a score
      threshold); this is expected and never raises
    - linking it would close a cycle

    Args:
        raw_comments: Flat comment records in discovery order
        discussion_id: Optional bare id of the owning discussion

    Returns:
        list[Comment]: Root comments with populated replies. Every input record
            appears exactly once in the tree.

    Example:
        >>> roots = build_comment_tree([
        ...     RawComment('b', 'reply', 3, 'u2', '', parent_id='t1_a'),
        ...     RawComment('a', 'top', 10, 'u1', '', parent_id='t3_post'),
        ... ])
        >>> [r.id for r in roots], [c.id for c in roots[0].replies]
        (['a'], ['b'])
    """
    records = list(raw_comments)
    nodes = [
        Comment(
            id=raw.id,
            text=raw.text or "",
            score=raw.score,
            author=raw.author,
            timestamp=raw.timestamp,
        )
        for raw in records
    ]

    index: Dict[str, Comment] = {}
    for node in nodes:
        # First record owns a duplicated id
        index.setdefault(node.id, node)

    roots: List[Comment] = []
    parents: Dict[int, Comment] = {}
    orphan_count = 0

    for raw, node in zip(records, nodes):
        candidate = _candidate_parent_id(raw.parent_id, discussion_id)
        if candidate is None:
            roots.append(node)
            continue

        parent = index.get(candidate)
        if parent is None or _closes_cycle(node, parent, parents):
            orphan_count += 1
            logger.debug(
                "orphaned_comment_promoted",
                comment_id=node.id,
                missing_parent_id=candidate,
                discussion_id=discussion_id
            )
            roots.append(node)
            continue

        parent.replies.append(node)
        parents[id(node)] = parent

    logger.debug(
        "comment_tree_built",
        discussion_id=discussion_id,
        total_comments=len(nodes),
        root_count=len(roots),
        orphans_promoted=orphan_count
    )
    return roots


def iter_comments(roots: Iterable[Comment]) -> Iterator[Comment]:
    """Yield every comment of the tree in pre-order (parent before its replies)."""
    stack = list(reversed(list(roots)))
    while stack:
        comment = stack.pop()
        yield comment
        stack.extend(reversed(comment.replies))


def flatten_comments(roots: Iterable[Comment]) -> List[Comment]:
    return list(iter_comments(roots))


def count_comments(roots: Iterable[Comment]) -> int:
    return sum(1 for _ in iter_comments(roots))


def build_discussion(raw: RawDiscussion) -> Discussion:
    """Build a Discussion with its rebuilt comment tree from a fetched post."""
    return Discussion(
        id=raw.id,
        title=raw.title,
        url=raw.url,
        timestamp=raw.timestamp,
        score=raw.score,
        content=raw.content,
        comments=build_comment_tree(raw.comments, discussion_id=raw.id),
    )
