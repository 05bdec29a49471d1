#!/usr/bin/env python3
"""Run the sentiment and entity-chain analysis for a query.

Fetches matching posts from every subreddit of a category (or an explicit
subreddit list) via Async PRAW, runs the per-source pipelines concurrently,
consolidates them and writes the result plus the overview network graph as JSON.

With --input, a saved JSON dump of raw discussions per subreddit is analyzed
instead of fetching:

    {"technology": [{"id": ..., "title": ..., "comments": [{"id": ..., "parent_id": ...}]}]}

Usage:
    python scripts/run_analysis.py --query "openai" --category technology [-o data/analysis.json]
    python scripts/run_analysis.py --query "openai" --subreddits technology programming --no-entities
    python scripts/run_analysis.py --query "openai" --input data/raw.json

Requires env vars: REDDIT_CLIENT_ID, REDDIT_CLIENT_SECRET, REDDIT_USER_AGENT (unless --input is set)
"""

import argparse
import asyncio
import json
import os
import sys
from functools import partial

# Add project root to path so sentiment_network.* imports work
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from sentiment_network.backend.utils.errors import NoDataError
from sentiment_network.backend.utils.logging_config import setup_logging
from sentiment_network.config import CATEGORIES, load_config, load_dotenv_file, subreddits_for
from sentiment_network.consolidation import consolidated_to_dict
from sentiment_network.models.thread_models import RawDiscussion
from sentiment_network.network import build_comment_networks, build_network_data, graph_to_dict
from sentiment_network.pipeline import analyze_query

load_dotenv_file(os.path.join(PROJECT_ROOT, ".env"))


def check_env_vars() -> list[str]:
    """Check required environment variables and return list of missing ones."""
    required = ["REDDIT_CLIENT_ID", "REDDIT_CLIENT_SECRET", "REDDIT_USER_AGENT"]
    return [v for v in required if not os.environ.get(v)]


def load_raw_input(path: str) -> dict[str, list[RawDiscussion]]:
    with open(path) as f:
        data = json.load(f)
    return {
        source: [RawDiscussion.from_dict(d) for d in discussions]
        for source, discussions in data.items()
    }


async def run_analysis(query: str, subreddits: list[str], input_path, include_entities: bool, output: str,
                       include_comment_networks: bool = False):
    from sentiment_network.integrations.vader_scorer import VaderScorer

    config = load_config()
    scorer = VaderScorer()

    tagger_factory = None
    if include_entities:
        from sentiment_network.integrations.spacy_tagger import SpacyTagger
        tagger_factory = partial(SpacyTagger, model=config.spacy_model)

    reddit = None
    if input_path:
        raw = load_raw_input(input_path)
        subreddits = subreddits or list(raw)

        async def fetch_source(source: str) -> list[RawDiscussion]:
            return raw.get(source, [])
    else:
        from sentiment_network.reddit import get_reddit_client, make_reddit_fetcher
        print("Connecting to Reddit...")
        reddit = await get_reddit_client()
        fetch_source = make_reddit_fetcher(reddit, query, config)

    try:
        print(f"Analyzing \"{query}\" across {len(subreddits)} subreddits: {', '.join(subreddits)}")
        result = await analyze_query(
            query, subreddits, fetch_source, scorer,
            tagger_factory=tagger_factory, config=config
        )
    finally:
        if reddit is not None:
            await reddit.close()

    output_data = {
        "result": consolidated_to_dict(result, entity_limit=config.response_entity_limit),
        "network": graph_to_dict(build_network_data(result)),
    }
    if include_comment_networks:
        output_data["comment_networks"] = {
            topic_id: graph_to_dict(graph)
            for topic_id, graph in build_comment_networks(result).items()
        }

    output_dir = os.path.dirname(output)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(output, "w") as f:
        json.dump(output_data, f, indent=2, default=str)

    print(f"\nAnalyzed {result.total_discussions} discussions, {result.total_comments} comments")
    print(f"  Sentiment: {result.sentiment.label} ({result.sentiment.overall.compound:+.3f})")
    if result.entity_analysis:
        top = ", ".join(c.entity.text for c in result.entity_analysis.entity_chains[:5])
        print(f"  Entities: {result.entity_analysis.total_entities} (top: {top or 'none'})")
    for failure in result.failed_sources:
        print(f"  Failed: r/{failure.source} ({failure.error_type}): {failure.message}")
    print(f"  Output: {output}")


def main():
    parser = argparse.ArgumentParser(
        description="Analyze sentiment and entity chains for a query across subreddits"
    )
    parser.add_argument("--query", required=True, help="Search query")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--category", choices=sorted(CATEGORIES), help="Category of subreddits to search")
    group.add_argument("--subreddits", nargs="+", help="Explicit subreddit names")
    parser.add_argument("--input", help="Analyze a saved JSON dump of raw discussions instead of fetching")
    parser.add_argument("--no-entities", action="store_true", help="Skip entity extraction and chains")
    parser.add_argument("--comment-networks", action="store_true", help="Also write each discussion's reply-tree graph")
    parser.add_argument("-o", "--output", default="data/analysis.json", help="Output JSON path (default: data/analysis.json)")
    args = parser.parse_args()

    setup_logging(log_dir="logs", log_filename="pipeline.log")

    if args.category:
        subreddits = subreddits_for(args.category)
    else:
        subreddits = args.subreddits or []

    if not args.input:
        if not subreddits:
            parser.error("one of --category or --subreddits is required unless --input is set")
        missing = check_env_vars()
        if missing:
            print(f"Error: Missing environment variables: {', '.join(missing)}")
            print("Set them in your .env file or export them in your shell.")
            sys.exit(1)

    try:
        asyncio.run(run_analysis(
            args.query, subreddits, args.input, not args.no_entities, args.output,
            include_comment_networks=args.comment_networks
        ))
    except NoDataError as e:
        print(f"Error: {e}")
        for failure in e.failures:
            print(f"  r/{failure.source} ({failure.error_type}): {failure.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
