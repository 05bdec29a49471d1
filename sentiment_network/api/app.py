"""FastAPI application entry point with lifespan, CORS, and structured logging.

This module initializes the FastAPI application with:
- Lifespan context manager that loads configuration and the NLP adapters
- CORS middleware for the visualization dev server
- Structured logging (JSON) to logs/backend.log
- Exception handlers for consistent error responses
- Basic health check endpoint

The polarity scorer is created once and shared; entity taggers are created per
source run through app.state.tagger_factory.

Usage:
    uvicorn sentiment_network.api.app:app --reload
"""

import os
import traceback
from contextlib import asynccontextmanager
from functools import partial
from typing import Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sentiment_network.api.models import ErrorDetail, ErrorEnvelope
from sentiment_network.api.responses import INTERNAL_ERROR, NOT_FOUND, VALIDATION_ERROR
from sentiment_network.api.routes import analysis
from sentiment_network.backend.utils.logging_config import get_logger, setup_logging
from sentiment_network.config import load_config


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load configuration and NLP adapters on startup.

    Stores in app.state:
        config: AnalysisConfig
        scorer: VaderScorer shared by every run
        tagger_factory: Zero-argument callable creating a SpacyTagger
    """
    # Imported here so tests can set app.state directly without loading models
    from sentiment_network.integrations.spacy_tagger import SpacyTagger
    from sentiment_network.integrations.vader_scorer import VaderScorer

    logger = get_logger(__name__)

    config = load_config()
    app.state.config = config
    app.state.scorer = VaderScorer()
    app.state.tagger_factory = partial(SpacyTagger, model=config.spacy_model)

    logger.info(
        "analysis_services_initialized",
        spacy_model=config.spacy_model,
        max_concurrent_sources=config.max_concurrent_sources
    )

    yield

    logger.info("analysis_services_shutdown")


# Initialize logging before creating the app
setup_logging(log_dir="logs", log_filename="backend.log")

app = FastAPI(
    title="Reddit Sentiment Network API",
    description="Sentiment and entity-chain analysis of Reddit discussions across subreddits",
    version="1.0.0",
    lifespan=lifespan,
)

cors_origins = os.environ.get(
    'CORS_ORIGINS',
    'http://localhost:5173'
).split(',')

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = get_logger(__name__)
logger.info("fastapi_app_initialized", cors_origins=cors_origins)

app.include_router(analysis.router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Convert request validation errors into the ErrorEnvelope format (422)."""
    logger = get_logger(__name__)
    logger.warning("validation_error", path=request.url.path, errors=exc.errors())

    error_envelope = ErrorEnvelope(
        error=ErrorDetail(
            code=VALIDATION_ERROR,
            message=f"Request validation failed: {exc.errors()[0]['msg']}"
        )
    )

    return JSONResponse(
        status_code=422,
        content=error_envelope.model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException with error envelope format.

    Routes exceptions raised via raise_api_error() or raw HTTPException
    into the standard ErrorEnvelope structure.
    """
    logger = get_logger(__name__)
    logger.warning("http_exception", path=request.url.path, status=exc.status_code)

    if isinstance(exc.detail, dict) and "code" in exc.detail:
        code = exc.detail["code"]
        message = exc.detail["message"]
    else:
        code_map = {404: NOT_FOUND, 422: VALIDATION_ERROR}
        code = code_map.get(exc.status_code, INTERNAL_ERROR)
        message = str(exc.detail) if exc.detail else "An error occurred"

    error_envelope = ErrorEnvelope(
        error=ErrorDetail(code=code, message=message)
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope.model_dump(),
    )


@app.exception_handler(404)
async def not_found_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger = get_logger(__name__)
    logger.warning("not_found", path=request.url.path)

    error_envelope = ErrorEnvelope(
        error=ErrorDetail(
            code=NOT_FOUND,
            message=f"Resource not found: {request.url.path}"
        )
    )

    return JSONResponse(
        status_code=404,
        content=error_envelope.model_dump(),
    )


@app.exception_handler(500)
async def internal_server_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger = get_logger(__name__)
    logger.error(
        "internal_server_error",
        path=request.url.path,
        error=str(exc),
        traceback=traceback.format_exc(),
    )

    error_envelope = ErrorEnvelope(
        error=ErrorDetail(
            code=INTERNAL_ERROR,
            message="An internal server error occurred"
        )
    )

    return JSONResponse(
        status_code=500,
        content=error_envelope.model_dump(),
    )


@app.get("/")
async def root() -> Dict[str, str]:
    """Root endpoint for basic health check.

    Example:
        GET / -> {"status": "ok", "message": "Reddit Sentiment Network API"}
    """
    return {
        "status": "ok",
        "message": "Reddit Sentiment Network API"
    }


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "healthy"}
