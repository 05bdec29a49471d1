"""Network graph construction for visualization.

Two views are produced from a consolidated result:

    Overview: query -> subreddit -> topic (one topic per discussion)
    Comment tree: topic-center -> root comments -> replies, one graph per
        discussion keyed by that discussion's overview topic id

Node ids:
    "query", "subreddit-<name>", "topic-<index>" (index into the consolidated
    discussion list), "topic-center", and the comment id for comment nodes.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from sentiment_network.comment_tree import count_comments
from sentiment_network.models.thread_models import (
    Comment,
    ConsolidatedResult,
    Discussion,
    EntityChain,
)

NODE_QUERY = "query"
NODE_SUBREDDIT = "subreddit"
NODE_TOPIC = "topic"
NODE_COMMENT = "comment"

LINK_QUERY_SUBREDDIT = "query-subreddit"
LINK_SUBREDDIT_TOPIC = "subreddit-topic"
LINK_TOPIC_COMMENT = "topic-comment"
LINK_COMMENT_REPLY = "comment-reply"

TOP_COMMENTS_PER_TOPIC = 5
COMMENT_LABEL_LENGTH = 50


@dataclass
class NetworkNode:
    id: str
    label: str
    type: str
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class NetworkLink:
    source: str
    target: str
    type: str


@dataclass
class NetworkGraph:
    nodes: List[NetworkNode] = field(default_factory=list)
    links: List[NetworkLink] = field(default_factory=list)
    center_node: Optional[NetworkNode] = None


def _compound(comment_or_discussion) -> float:
    sentiment = comment_or_discussion.sentiment
    return sentiment.original.compound if sentiment is not None else 0.0


def _comment_label(text: str) -> str:
    if len(text) <= COMMENT_LABEL_LENGTH:
        return text
    return text[:COMMENT_LABEL_LENGTH] + "..."


def _entity_summary(chain: EntityChain) -> Dict[str, Any]:
    return {
        "text": chain.entity.text,
        "type": chain.entity.type.value,
        "mentions": chain.total_mentions,
        "total_score": chain.total_score,
        "sentiment": chain.average_sentiment.original.compound if chain.average_sentiment else 0.0,
    }


def top_comments(discussion: Discussion, limit: int = TOP_COMMENTS_PER_TOPIC) -> List[Dict[str, Any]]:
    """Root comments with the largest sentiment impact, abs(compound) * score."""
    ranked = sorted(
        (c for c in discussion.comments if c.sentiment is not None),
        key=lambda c: abs(c.sentiment.original.compound) * c.score,
        reverse=True,
    )
    return [
        {
            "comment_id": c.id,
            "text": c.text,
            "score": c.score,
            "sentiment": c.sentiment.original.compound,
            "sentiment_impact": abs(c.sentiment.original.compound) * c.score,
        }
        for c in ranked[:limit]
    ]


def build_network_data(result: ConsolidatedResult, top_entities: int = 5) -> NetworkGraph:
    """Build the overview graph: query, one node per source, one per discussion.

    Args:
        result: Consolidated result (discussions tagged with their source)
        top_entities: Entity chains listed on each subreddit node

    Returns:
        NetworkGraph with center_node set to the query node
    """
    query_node = NetworkNode(id="query", label=result.query, type=NODE_QUERY)
    graph = NetworkGraph(nodes=[query_node], center_node=query_node)

    summaries = {s.source: s for s in result.source_summaries}
    topic_indexes: Dict[str, List[int]] = {}
    for index, discussion in enumerate(result.discussions):
        topic_indexes.setdefault(discussion.source or "unknown", []).append(index)

    for source in result.sources:
        summary = summaries.get(source)
        indexes = topic_indexes.get(source, [])
        subreddit_id = f"subreddit-{source}"

        graph.nodes.append(NetworkNode(
            id=subreddit_id,
            label=source,
            type=NODE_SUBREDDIT,
            attributes={
                "discussion_count": len(indexes),
                "total_comments": summary.total_comments if summary else 0,
                "sentiment": summary.sentiment.original.compound if summary else 0.0,
                "top_entities": [
                    _entity_summary(c) for c in (summary.top_entities[:top_entities] if summary else [])
                ],
            },
        ))
        graph.links.append(NetworkLink("query", subreddit_id, LINK_QUERY_SUBREDDIT))

        for index in indexes:
            discussion = result.discussions[index]
            topic_id = f"topic-{index}"
            graph.nodes.append(NetworkNode(
                id=topic_id,
                label=discussion.title,
                type=NODE_TOPIC,
                attributes={
                    "subreddit": source,
                    "discussion_id": discussion.id,
                    "url": discussion.url,
                    "comment_count": count_comments(discussion.comments),
                    "sentiment": _compound(discussion),
                    "top_comments": top_comments(discussion),
                },
            ))
            graph.links.append(NetworkLink(subreddit_id, topic_id, LINK_SUBREDDIT_TOPIC))

    return graph


def build_comment_network(discussion: Discussion) -> NetworkGraph:
    """Build the expanded view of one discussion's full reply tree."""
    center = NetworkNode(
        id="topic-center",
        label=discussion.title,
        type=NODE_QUERY,
        attributes={
            "subreddit": discussion.source,
            "comment_count": count_comments(discussion.comments),
            "sentiment": _compound(discussion),
            "top_comments": top_comments(discussion),
        },
    )
    graph = NetworkGraph(nodes=[center], center_node=center)

    stack = [(c, None) for c in reversed(discussion.comments)]
    while stack:
        comment, parent_id = stack.pop()
        graph.nodes.append(_comment_node(comment, parent_id))
        if parent_id is None:
            graph.links.append(NetworkLink("topic-center", comment.id, LINK_TOPIC_COMMENT))
        else:
            graph.links.append(NetworkLink(parent_id, comment.id, LINK_COMMENT_REPLY))
        stack.extend((reply, comment.id) for reply in reversed(comment.replies))

    return graph


def build_comment_networks(result: ConsolidatedResult) -> Dict[str, NetworkGraph]:
    """Expanded views for every discussion, keyed by its overview topic node id."""
    return {
        f"topic-{index}": build_comment_network(discussion)
        for index, discussion in enumerate(result.discussions)
    }


def _comment_node(comment: Comment, parent_id: Optional[str]) -> NetworkNode:
    return NetworkNode(
        id=comment.id,
        label=_comment_label(comment.text),
        type=NODE_COMMENT,
        attributes={
            "author": comment.author,
            "score": comment.score,
            "sentiment": _compound(comment),
            "parent_id": parent_id,
        },
    )


def graph_to_dict(graph: NetworkGraph) -> Dict[str, Any]:
    return asdict(graph)
