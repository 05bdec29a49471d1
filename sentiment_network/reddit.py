"""Reddit Integration Module

This module provides Async PRAW client initialization and the source fetch
adapter: it searches one subreddit for a query and returns each matching post
with its flat comment list, ready for comment tree reconstruction.
"""

import os
from typing import List, Optional

import asyncpraw
import structlog

from sentiment_network.backend.utils.errors import retry_with_backoff_async
from sentiment_network.config import AnalysisConfig
from sentiment_network.models.thread_models import RawComment, RawDiscussion, to_iso_timestamp

# Initialize logger
logger = structlog.get_logger(__name__)

REDDIT_BASE_URL = "https://www.reddit.com"


class RedditAPIError(Exception):
    """Reddit API failure (HTTP 502 at the API layer)."""
    pass


async def get_reddit_client() -> asyncpraw.Reddit:
    """Initialize and return an Async PRAW Reddit client.

    Reads authentication credentials from environment variables:
    - REDDIT_CLIENT_ID: Reddit application client ID
    - REDDIT_CLIENT_SECRET: Reddit application client secret
    - REDDIT_USER_AGENT: User agent string for API requests

    Returns:
        asyncpraw.Reddit: Configured Reddit client instance

    Raises:
        ValueError: If any required environment variable is missing or empty
        RedditAPIError: If Async PRAW client construction fails

    Example:
        >>> client = await get_reddit_client()
        >>> subreddit = await client.subreddit("technology")
    """
    missing_vars = []

    client_id = os.environ.get('REDDIT_CLIENT_ID', '').strip()
    client_secret = os.environ.get('REDDIT_CLIENT_SECRET', '').strip()
    user_agent = os.environ.get('REDDIT_USER_AGENT', '').strip()

    if not client_id:
        missing_vars.append('REDDIT_CLIENT_ID')
    if not client_secret:
        missing_vars.append('REDDIT_CLIENT_SECRET')
    if not user_agent:
        missing_vars.append('REDDIT_USER_AGENT')

    if missing_vars:
        error_msg = f"Missing required environment variable(s): {', '.join(missing_vars)}"
        logger.error("reddit_client_init_failed", missing_vars=missing_vars)
        raise ValueError(error_msg)

    try:
        reddit = asyncpraw.Reddit(
            client_id=client_id,
            client_secret=client_secret,
            user_agent=user_agent
        )

        logger.info("reddit_client_initialized", user_agent=user_agent)
        return reddit

    except Exception as e:
        logger.error(
            "reddit_authentication_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise RedditAPIError(
            f"Reddit API unavailable: {str(e)}"
        ) from e


async def fetch_comments(
    submission,
    min_score: int = 0,
    limit: int = 500,
    replace_more_limit: Optional[int] = 0
) -> List[RawComment]:
    """Fetch a submission's comments as flat records with parent pointers.

    Args:
        submission: Async PRAW Submission object with a .comments attribute
        min_score: Comments scoring below this are dropped (default: 0). Replies
            of a dropped comment keep their parent_id and are later promoted to
            roots by the tree builder.
        limit: Maximum number of comments to return, in discovery order
        replace_more_limit: Number of MoreComments to replace (default: 0)
            - 0: Skip deep expansion (fastest)
            - None: Expand all MoreComments (slowest, most complete)
            - N: Expand up to N MoreComments objects

    Returns:
        list[RawComment]: Flat comment records. Empty list if the submission
            has no comments.

    Notes:
        - replace_more() failure logs a warning and proceeds with loaded comments
        - Deleted/removed authors are stored as "[deleted]"
    """
    comment_forest = submission.comments

    try:
        await comment_forest.replace_more(limit=replace_more_limit)
    except Exception as e:
        logger.warning(
            "replace_more_failed",
            submission_id=submission.id,
            replace_more_limit=replace_more_limit,
            error=str(e),
            error_type=type(e).__name__
        )

    all_comments = comment_forest.list()

    raw_comments = []
    for comment in all_comments:
        if comment.score < min_score:
            continue

        author_name = "[deleted]"
        if comment.author is not None:
            author_name = str(comment.author)

        raw_comments.append(RawComment(
            id=comment.id,
            text=getattr(comment, 'body', '') or '',
            score=comment.score,
            author=author_name,
            timestamp=to_iso_timestamp(comment.created_utc),
            parent_id=comment.parent_id,
        ))

        if len(raw_comments) >= limit:
            break

    logger.info(
        "comments_fetched",
        submission_id=submission.id,
        requested_limit=limit,
        total_fetched=len(all_comments),
        returned_count=len(raw_comments),
        pruned_below_min_score=sum(1 for c in all_comments if c.score < min_score)
    )
    return raw_comments


async def fetch_discussions(
    reddit: asyncpraw.Reddit,
    subreddit_name: str,
    query: str,
    timeframe: str = "week",
    min_post_score: int = 50,
    limit: int = 5,
    min_comment_score: int = 0,
    comment_limit: int = 500,
    replace_more_limit: Optional[int] = 0,
    max_retries: int = 3
) -> List[RawDiscussion]:
    """Search a subreddit for a query and fetch each matching post's comments.

    Args:
        reddit: Async PRAW Reddit client instance
        subreddit_name: Subreddit to search
        query: Search query
        timeframe: Search time filter (hour/day/week/month/year/all)
        min_post_score: Posts scoring below this are skipped
        limit: Maximum number of search results to consider
        min_comment_score: Passed to fetch_comments
        comment_limit: Passed to fetch_comments
        replace_more_limit: Passed to fetch_comments
        max_retries: Retries with exponential backoff before giving up

    Returns:
        list[RawDiscussion]: Matching posts with their flat comment lists

    Raises:
        RedditAPIError: If Async PRAW keeps failing after all retries
    """
    async def _search() -> List[RawDiscussion]:
        subreddit = await reddit.subreddit(subreddit_name)
        discussions = []
        skipped = 0

        async for submission in subreddit.search(query, sort="hot", time_filter=timeframe, limit=limit):
            if submission.score < min_post_score:
                skipped += 1
                continue

            # Search results carry no comment forest; load the full submission
            full_submission = await reddit.submission(id=submission.id)
            comments = await fetch_comments(
                full_submission,
                min_score=min_comment_score,
                limit=comment_limit,
                replace_more_limit=replace_more_limit
            )

            discussions.append(RawDiscussion(
                id=submission.id,
                title=submission.title,
                url=f"{REDDIT_BASE_URL}{submission.permalink}",
                timestamp=to_iso_timestamp(submission.created_utc),
                score=submission.score,
                content=getattr(submission, 'selftext', '') or '',
                comments=comments,
            ))

        logger.info(
            "discussions_fetched",
            subreddit=subreddit_name,
            query=query,
            timeframe=timeframe,
            requested_limit=limit,
            fetched_count=len(discussions),
            skipped_below_min_score=skipped,
            total_comments=sum(len(d.comments) for d in discussions)
        )
        return discussions

    try:
        return await retry_with_backoff_async(_search, max_retries=max_retries)

    except Exception as e:
        logger.error(
            "discussions_fetch_failed",
            subreddit=subreddit_name,
            query=query,
            error=str(e),
            error_type=type(e).__name__
        )
        raise RedditAPIError(
            f"Reddit API unavailable for r/{subreddit_name}: {str(e)}"
        ) from e


def make_reddit_fetcher(reddit: asyncpraw.Reddit, query: str, config: Optional[AnalysisConfig] = None):
    """Bind a client, query and config into a per-source fetch coroutine.

    Returns:
        async (subreddit_name) -> list[RawDiscussion], as consumed by
        pipeline.analyze_query

    Example:
        >>> fetcher = make_reddit_fetcher(reddit, "openai", load_config())
        >>> discussions = await fetcher("technology")
    """
    if config is None:
        config = AnalysisConfig()

    async def fetch_source(subreddit_name: str) -> List[RawDiscussion]:
        return await fetch_discussions(
            reddit,
            subreddit_name,
            query,
            timeframe=config.timeframe,
            min_post_score=config.min_post_score,
            limit=config.post_limit,
            min_comment_score=config.min_comment_score,
            comment_limit=config.comment_limit,
            replace_more_limit=config.replace_more_limit,
        )

    return fetch_source
