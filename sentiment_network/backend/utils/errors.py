"""Error Handling Utilities

This module provides the pipeline's terminal error type, retry logic with
exponential backoff for transient source-fetch failures, and warning collection
for non-fatal events during an analysis run.

Error tiers:
    - Per-comment failures (scorer/tagger): skipped for that stage, recorded as warnings
    - Per-source failures (fetch/analysis/timeout/cancelled): source skipped, recorded as SourceFailure
    - Zero successful sources: NoDataError
"""

import asyncio
import json
import threading
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Type, TypeVar


T = TypeVar('T')


class NoDataError(Exception):
    """No source produced data for the request.

    Attributes:
        failures: SourceFailure records for every source that was attempted
    """

    def __init__(self, message: str = "No data for this request", failures: Optional[Sequence[Any]] = None):
        super().__init__(message)
        self.failures = list(failures or [])


def calculate_backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 30.0) -> float:
    """Calculate exponential backoff delay for retry attempts.

    Args:
        attempt: Retry attempt number (0-indexed)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay cap in seconds (default: 30.0)

    Returns:
        Delay in seconds for this attempt

    Examples:
        >>> calculate_backoff_delay(0)
        1.0
        >>> calculate_backoff_delay(2)
        4.0
        >>> calculate_backoff_delay(10)
        30.0
    """
    delay = base_delay * (2 ** attempt)
    return min(delay, max_delay)


async def retry_with_backoff_async(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)
) -> T:
    """Await a coroutine factory with exponential backoff retry logic.

    Used by the Reddit adapter for transient API failures.

    Args:
        fn: Zero-argument callable returning an awaitable
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay cap in seconds (default: 30.0)
        retryable_exceptions: Exception types to retry on (default: all exceptions)

    Returns:
        The awaited result of fn() on successful execution

    Raises:
        The final exception if all retries are exhausted, or immediately if the
        exception type is not in retryable_exceptions

    Backoff schedule (base_delay=1.0, max_delay=30.0):
        - Attempt 1: immediate
        - Attempt 2: wait 1.0s
        - Attempt 3: wait 2.0s
        - Attempt 4: wait 4.0s
    """
    for attempt in range(max_retries + 1):
        try:
            return await fn()
        except Exception as e:
            if not isinstance(e, retryable_exceptions):
                raise

            if attempt >= max_retries:
                raise

            await asyncio.sleep(calculate_backoff_delay(attempt, base_delay, max_delay))

    raise RuntimeError("Unreachable code")


# Supported warning types
WARNING_TYPE_SOURCE_FETCH_FAILED = "source_fetch_failed"
WARNING_TYPE_SOURCE_ANALYSIS_FAILED = "source_analysis_failed"
WARNING_TYPE_SOURCE_TIMED_OUT = "source_timed_out"
WARNING_TYPE_SOURCE_CANCELLED = "source_cancelled"
WARNING_TYPE_COMMENT_SENTIMENT_FAILED = "comment_sentiment_failed"
WARNING_TYPE_COMMENT_ENTITIES_FAILED = "comment_entities_failed"

VALID_WARNING_TYPES = {
    WARNING_TYPE_SOURCE_FETCH_FAILED,
    WARNING_TYPE_SOURCE_ANALYSIS_FAILED,
    WARNING_TYPE_SOURCE_TIMED_OUT,
    WARNING_TYPE_SOURCE_CANCELLED,
    WARNING_TYPE_COMMENT_SENTIMENT_FAILED,
    WARNING_TYPE_COMMENT_ENTITIES_FAILED,
}


class WarningsCollector:
    """Thread-safe collector for non-fatal warnings during an analysis run.

    Per-source pipelines run in worker threads and share one collector, so
    appends are guarded by a lock.

    Example:
        >>> collector = WarningsCollector()
        >>> collector.append(
        ...     "comment_sentiment_failed",
        ...     "Scorer raised for comment abc",
        ...     {"comment_id": "abc", "error_type": "ValueError"}
        ... )
        >>> collector.to_json()
        '[{"type": "comment_sentiment_failed", "message": "...", "timestamp": "...", "context": {...}}]'
    """

    def __init__(self):
        self._warnings: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def append(self, warning_type: str, message: str, context: Dict[str, Any]) -> None:
        """Add a warning with type, message, timestamp, and context.

        Raises:
            ValueError: If warning_type is not in VALID_WARNING_TYPES
        """
        if warning_type not in VALID_WARNING_TYPES:
            raise ValueError(
                f"Invalid warning_type '{warning_type}'. "
                f"Must be one of: {', '.join(sorted(VALID_WARNING_TYPES))}"
            )

        warning = {
            "type": warning_type,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "context": context
        }

        with self._lock:
            self._warnings.append(warning)

    def __len__(self) -> int:
        with self._lock:
            return len(self._warnings)

    def to_list(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(w) for w in self._warnings]

    def to_json(self) -> Optional[str]:
        """Serialize warnings to a JSON array string, or None if empty."""
        with self._lock:
            if not self._warnings:
                return None
            return json.dumps(self._warnings)
