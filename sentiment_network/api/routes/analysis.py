"""Analysis API endpoints.

This module provides:
- GET /api/categories: Available categories and their subreddits
- POST /api/analyze: Run the multi-source pipeline for a query and category
"""

from dataclasses import asdict, replace

from fastapi import APIRouter, Request

from sentiment_network.api.models import AnalyzeRequest
from sentiment_network.api.responses import (
    NO_DATA,
    REDDIT_API_ERROR,
    VALIDATION_ERROR,
    raise_api_error,
    wrap_response,
)
from sentiment_network.backend.utils.errors import NoDataError
from sentiment_network.backend.utils.logging_config import get_logger
from sentiment_network.config import CATEGORIES, subreddits_for
from sentiment_network.consolidation import consolidated_to_dict
from sentiment_network.network import build_comment_networks, build_network_data, graph_to_dict
from sentiment_network.pipeline import analyze_query
from sentiment_network.reddit import RedditAPIError, get_reddit_client, make_reddit_fetcher

router = APIRouter(prefix="/api", tags=["analysis"])
logger = get_logger(__name__)


@router.get("/categories")
async def list_categories():
    """List categories with their subreddits.

    Returns:
        Response envelope with a list of {value, label, subreddits}
    """
    categories = [
        {"value": name, "label": name.capitalize(), "subreddits": subreddits}
        for name, subreddits in CATEGORIES.items()
    ]
    return wrap_response(categories, total=len(categories))


@router.post("/analyze")
async def analyze(request: Request, body: AnalyzeRequest):
    """Analyze a query across every subreddit of a category.

    Returns:
        Response envelope with:
        - result: Consolidated result (entity chains limited to the configured count)
        - network: Overview graph (query -> subreddit -> topic)
        - failed_sources: Sources that failed or timed out
        - comment_networks: Reply-tree graph per topic id, only when
          include_comment_networks is set

    Errors:
        VALIDATION_ERROR (422): Unknown category
        NO_DATA (404): No source produced data
        REDDIT_API_ERROR (502): Reddit client could not be created
    """
    try:
        subreddits = subreddits_for(body.category)
    except KeyError:
        raise_api_error(
            VALIDATION_ERROR,
            f"Invalid category '{body.category}'. Choose from: {', '.join(CATEGORIES)}"
        )

    config = request.app.state.config
    overrides = {}
    if body.timeframe is not None:
        overrides["timeframe"] = body.timeframe
    if body.min_post_score is not None:
        overrides["min_post_score"] = body.min_post_score
    if overrides:
        config = replace(config, **overrides)

    logger.info(
        "analyze_request",
        query=body.query,
        category=body.category,
        subreddits=subreddits,
        timeframe=config.timeframe,
        min_post_score=config.min_post_score,
        include_entities=body.include_entities
    )

    try:
        reddit = await get_reddit_client()
    except (ValueError, RedditAPIError) as e:
        raise_api_error(REDDIT_API_ERROR, f"Reddit client unavailable: {e}")

    tagger_factory = request.app.state.tagger_factory if body.include_entities else None

    try:
        result = await analyze_query(
            body.query,
            subreddits,
            make_reddit_fetcher(reddit, body.query, config),
            request.app.state.scorer,
            tagger_factory=tagger_factory,
            config=config,
        )
    except NoDataError as e:
        logger.warning(
            "analyze_no_data",
            query=body.query,
            category=body.category,
            failed_sources=[f.source for f in e.failures]
        )
        raise_api_error(NO_DATA, f"No data found for '{body.query}' in {body.category}")
    finally:
        await reddit.close()

    network = build_network_data(result)

    logger.info(
        "analyze_response",
        query=body.query,
        sources=result.sources,
        failed_sources=len(result.failed_sources),
        total_discussions=result.total_discussions,
        total_comments=result.total_comments
    )

    data = {
        "result": consolidated_to_dict(result, entity_limit=config.response_entity_limit),
        "network": graph_to_dict(network),
        "failed_sources": [asdict(f) for f in result.failed_sources],
    }
    if body.include_comment_networks:
        data["comment_networks"] = {
            topic_id: graph_to_dict(graph)
            for topic_id, graph in build_comment_networks(result).items()
        }
    return wrap_response(data)
