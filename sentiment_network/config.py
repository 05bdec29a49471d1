"""Analysis configuration.

Settings are read from ANALYSIS_* environment variables (a .env file at the
project root is honored by the script entry point) and collected in an
AnalysisConfig dataclass that the pipeline, the Reddit adapter and the API share.

Environment variables:
    ANALYSIS_TIMEFRAME: Reddit search time filter (hour/day/week/month/year/all)
    ANALYSIS_MIN_POST_SCORE: Posts below this score are skipped
    ANALYSIS_POST_LIMIT: Posts fetched per subreddit
    ANALYSIS_MIN_COMMENT_SCORE: Comments below this score are pruned at fetch time
    ANALYSIS_COMMENT_LIMIT: Max comments kept per post
    ANALYSIS_REPLACE_MORE_LIMIT: MoreComments expansions per post
    ANALYSIS_MAX_CONCURRENT_SOURCES: Sources processed at the same time
    ANALYSIS_SOURCE_TIMEOUT_SECONDS: Per-query timeout for source tasks (0 disables)
    ANALYSIS_CONTEXT_WINDOW: Characters of context scored around each entity
    ANALYSIS_SPACY_MODEL: spaCy pipeline used by the NER tagger
    ANALYSIS_RECOMPUTE_CONSOLIDATED_SENTIMENT: Rebuild merged chain sentiment
    ANALYSIS_RESPONSE_ENTITY_LIMIT: Entity chains returned by the API
"""

import os
from dataclasses import dataclass, fields
from typing import Dict, List, Mapping, Optional

TIMEFRAMES = ("hour", "day", "week", "month", "year", "all")

CATEGORIES: Dict[str, List[str]] = {
    "technology": ["technology", "programming", "MachineLearning", "Futurology"],
    "science": ["science", "askscience", "space", "physics"],
    "politics": ["politics", "PoliticalDiscussion", "geopolitics"],
    "finance": ["finance", "investing", "stocks", "economics"],
    "gaming": ["gaming", "pcgaming", "Games"],
    "health": ["health", "medicine", "nutrition"],
    "entertainment": ["movies", "television", "Music", "books"],
    "sports": ["sports", "nba", "soccer", "nfl"],
    "worldnews": ["worldnews", "news", "europe"],
    "business": ["business", "Entrepreneur", "smallbusiness"],
}


@dataclass
class AnalysisConfig:
    timeframe: str = "week"
    min_post_score: int = 50
    post_limit: int = 5
    min_comment_score: int = 0
    comment_limit: int = 500
    replace_more_limit: int = 0
    max_concurrent_sources: int = 4
    source_timeout_seconds: float = 120.0
    context_window: int = 50
    spacy_model: str = "en_core_web_sm"
    recompute_consolidated_sentiment: bool = False
    response_entity_limit: int = 20


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ('true', '1', 'yes', 'on'):
        return True
    if lowered in ('false', '0', 'no', 'off'):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def load_config(environ: Optional[Mapping[str, str]] = None) -> AnalysisConfig:
    """Build an AnalysisConfig from ANALYSIS_* environment variables.

    Unset or empty variables keep their defaults.

    Args:
        environ: Mapping to read from (default: os.environ)

    Returns:
        AnalysisConfig

    Raises:
        ValueError: If any variable cannot be parsed; the message names every
            offending variable

    Example:
        >>> load_config({"ANALYSIS_POST_LIMIT": "10"}).post_limit
        10
    """
    if environ is None:
        environ = os.environ

    values = {}
    invalid_vars = []

    for f in fields(AnalysisConfig):
        var = f"ANALYSIS_{f.name.upper()}"
        raw = environ.get(var, '').strip()
        if not raw:
            continue
        try:
            if f.type in (bool, 'bool'):
                values[f.name] = _parse_bool(raw)
            elif f.type in (int, 'int'):
                values[f.name] = int(raw)
            elif f.type in (float, 'float'):
                values[f.name] = float(raw)
            else:
                values[f.name] = raw
        except ValueError:
            invalid_vars.append(var)

    config = AnalysisConfig(**values)

    if config.timeframe not in TIMEFRAMES and "ANALYSIS_TIMEFRAME" not in invalid_vars:
        invalid_vars.append("ANALYSIS_TIMEFRAME")
    if config.max_concurrent_sources < 1 and "ANALYSIS_MAX_CONCURRENT_SOURCES" not in invalid_vars:
        invalid_vars.append("ANALYSIS_MAX_CONCURRENT_SOURCES")

    if invalid_vars:
        raise ValueError(f"Invalid environment variable(s): {', '.join(invalid_vars)}")

    return config


def subreddits_for(category: str) -> List[str]:
    """Return the subreddits of a category.

    Raises:
        KeyError: If the category is unknown
    """
    if category not in CATEGORIES:
        raise KeyError(f"Unknown category '{category}'. Must be one of: {', '.join(CATEGORIES)}")
    return list(CATEGORIES[category])


def load_dotenv_file(path: str) -> None:
    """Load a .env file into os.environ if it exists, keeping existing values."""
    if os.path.exists(path):
        with open(path) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, _, value = line.partition("=")
                    os.environ.setdefault(key.strip(), value.strip())
