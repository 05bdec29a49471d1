"""Logging Configuration for the Reddit Sentiment Network pipeline

Centralized logging configuration using structlog with JSON output, shared by
the API app and the script entry point.

Usage:
    >>> from sentiment_network.backend.utils.logging_config import setup_logging
    >>> setup_logging()
    >>> import structlog
    >>> logger = structlog.get_logger()
    >>> logger.info("source_analyzed", source="technology", discussions=5)
"""

import logging
import sys
from pathlib import Path

import structlog


def setup_logging(log_dir: str = "logs", log_filename: str = "pipeline.log", console_level: int = logging.INFO) -> None:
    """Configure structlog with JSON renderer and file output.

    Sets up both Python stdlib logging and structlog to write JSON-formatted
    log entries to <log_dir>/<log_filename>. Creates the directory if needed.

    Args:
        log_dir: Directory for log files (default: "logs")
        log_filename: Name of the log file (default: "pipeline.log")
        console_level: Minimum level echoed to stdout (default: INFO)

    Log entry format (JSON):
        {
            "event": "source_fetch_failed",
            "level": "warning",
            "timestamp": "2026-02-10T12:34:56.789Z",
            "logger": "sentiment_network.pipeline",
            ...additional context fields...
        }
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / log_filename

    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # The formatter applies the final JSON rendering for both structlog and
    # foreign (stdlib) records
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=shared_processors,
    )

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)


def get_logger(name: str = None):
    """Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__). If None, returns root logger.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("analysis_started", query="openai", sources=3)
    """
    return structlog.get_logger(name)
