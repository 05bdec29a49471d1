"""Pydantic models for API request/response structures.

Response Structure:
    All successful responses use ResponseEnvelope with:
    - data: The actual response payload (any type)
    - meta: Metadata including timestamp, version, and optional total count

Error Structure:
    All error responses use ErrorEnvelope with:
    - error: ErrorDetail containing code and message
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class MetaModel(BaseModel):
    """Metadata included in all successful responses.

    Attributes:
        timestamp: ISO 8601 formatted UTC timestamp of the response
        version: API version string (currently hardcoded as "1.0")
        total: Optional total count of items
    """
    timestamp: str
    version: str
    total: Optional[int] = None


class ResponseEnvelope(BaseModel):
    data: Any
    meta: MetaModel


class ErrorDetail(BaseModel):
    """Error details included in error responses.

    Attributes:
        code: Machine-readable error code (see responses.py for constants)
        message: Human-readable error message
    """
    code: str
    message: str


class ErrorEnvelope(BaseModel):
    error: ErrorDetail


class AnalyzeRequest(BaseModel):
    """Body of POST /api/analyze.

    Attributes:
        query: Search query run against every subreddit of the category
        category: Category name (see GET /api/categories)
        timeframe: Optional search time filter overriding the configured one
        min_post_score: Optional minimum post score overriding the configured one
        include_entities: Run entity extraction and chain building
        include_comment_networks: Also return each discussion's reply-tree graph
    """
    query: str = Field(min_length=1, max_length=200)
    category: str = Field(min_length=1)
    timeframe: Optional[str] = Field(default=None, pattern="^(hour|day|week|month|year|all)$")
    min_post_score: Optional[int] = Field(default=None, ge=0)
    include_entities: bool = True
    include_comment_networks: bool = False
