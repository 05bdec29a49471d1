"""Response utilities and error handling for the API.

This module provides:
- Error code constants for consistent error handling across endpoints
- wrap_response() utility for creating standard response envelopes
- raise_api_error() helper for raising HTTP exceptions with error envelopes
- Error code to HTTP status code mappings

All API endpoints should use wrap_response() to return data and raise_api_error()
to signal errors. Exception handlers in app.py convert these to ErrorEnvelope format.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException

from sentiment_network.api.models import MetaModel


# Error Code Constants
# These codes are returned in the ErrorEnvelope.error.code field
VALIDATION_ERROR = "VALIDATION_ERROR"  # Invalid request parameters (422)
NOT_FOUND = "NOT_FOUND"  # Requested resource not found (404)
NO_DATA = "NO_DATA"  # Every source failed or returned nothing (404)
REDDIT_API_ERROR = "REDDIT_API_ERROR"  # Reddit API communication failure (502)
INTERNAL_ERROR = "INTERNAL_ERROR"  # Unexpected server failure (500)


# Error Code to HTTP Status Code Mapping
ERROR_STATUS_CODES: Dict[str, int] = {
    VALIDATION_ERROR: 422,
    NOT_FOUND: 404,
    NO_DATA: 404,
    REDDIT_API_ERROR: 502,
    INTERNAL_ERROR: 500,
}


def wrap_response(data: Any, total: Optional[int] = None) -> Dict[str, Any]:
    """Wrap data in the standard response envelope.

    Args:
        data: The response payload (any JSON-serializable type)
        total: Optional total count of items

    Returns:
        Dict with response envelope structure:
        {
            "data": <data>,
            "meta": {
                "timestamp": "<ISO 8601 UTC timestamp>",
                "version": "1.0",
                "total": <total if provided>
            }
        }
    """
    meta = MetaModel(
        timestamp=datetime.now(timezone.utc).isoformat(),
        version="1.0",
        total=total
    )

    return {
        "data": data,
        "meta": meta.model_dump(exclude_none=True)
    }


def raise_api_error(code: str, message: str, status_code: Optional[int] = None) -> None:
    """Raise an HTTPException with consistent error envelope structure.

    Args:
        code: Error code constant (e.g., VALIDATION_ERROR, NO_DATA)
        message: Human-readable error message
        status_code: Optional HTTP status code (defaults to mapped code for known errors)

    Raises:
        HTTPException with the specified status code and detail dict containing
        the error code and message.

    Example:
        if category not in CATEGORIES:
            raise_api_error(VALIDATION_ERROR, f"Invalid category '{category}'")
    """
    if status_code is None:
        status_code = ERROR_STATUS_CODES.get(code, 500)

    raise HTTPException(
        status_code=status_code,
        detail={"code": code, "message": message}
    )
