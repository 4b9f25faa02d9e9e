from __future__ import annotations

"""FastAPI application entrypoint for the grounded answer service."""

import logging
import uuid

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from answer_engine.app.dependencies import get_pipeline
from answer_engine.app.metrics import mark_failure, metrics_middleware, metrics_response
from answer_engine.app.schemas import (
    AnswerRequest,
    AnswerResponse,
    CitationOut,
    ErrorResponse,
    InvalidateResponse,
    StatsResponse,
)
from answer_engine.app.settings import settings
from answer_engine.loaders.directory import SourceReadError
from answer_engine.rag.embeddings import EmbeddingConfigError
from answer_engine.rag.guardrails import DEFAULT_INPUT_ERROR, InputError, require_question
from answer_engine.rag.llm import GenerationConfigError, GenerationError
from answer_engine.rag.pipeline import DegradedRetrievalError, RAGPipeline

logger = logging.getLogger(__name__)

app = FastAPI(title="Grounded Answer Engine", version="0.1.0")


def _configure_logging() -> None:
    """Configure root logging using environment settings."""
    level_name = settings.log_level.strip().upper()
    level = getattr(logging, level_name, logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    logger.setLevel(level)


_configure_logging()


def _safe_error_message(exc: Exception) -> str:
    """Return a safe error type name for logs."""
    return type(exc).__name__


def _error_response(
    request: Request,
    status_code: int,
    reason: str,
    message: str,
    exc: Exception,
    details: str | None = None,
) -> JSONResponse:
    """Log a failed request and build the error payload."""
    logger.error(
        "answer_failed",
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "reason": reason,
            "detail": _safe_error_message(exc),
        },
    )
    mark_failure(request, reason)
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "details": details if details is not None else str(exc)},
    )


@app.exception_handler(InputError)
async def input_error_handler(request: Request, exc: InputError) -> JSONResponse:
    return _error_response(request, 400, "input", str(exc), exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _error_response(
        request, 400, "input", DEFAULT_INPUT_ERROR, exc, details=str(exc.errors())
    )


@app.exception_handler(SourceReadError)
async def source_error_handler(request: Request, exc: SourceReadError) -> JSONResponse:
    return _error_response(request, 500, "source", "Unable to load the document corpus", exc)


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
    cause = exc.__cause__
    details = f"{exc} ({type(cause).__name__})" if cause is not None else str(exc)
    return _error_response(
        request, 502, "generation", "Error generating the answer", exc, details=details
    )


@app.exception_handler(DegradedRetrievalError)
async def degraded_error_handler(
    request: Request, exc: DegradedRetrievalError
) -> JSONResponse:
    return _error_response(
        request, 503, "degraded", "Retrieval is temporarily degraded", exc
    )


@app.exception_handler(EmbeddingConfigError)
async def embedding_config_error_handler(
    request: Request, exc: EmbeddingConfigError
) -> JSONResponse:
    return _error_response(request, 500, "config", "Embedding service is misconfigured", exc)


@app.exception_handler(GenerationConfigError)
async def generation_config_error_handler(
    request: Request, exc: GenerationConfigError
) -> JSONResponse:
    return _error_response(request, 500, "config", "Chat service is misconfigured", exc)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error_response(request, 500, "internal", "Error processing the question", exc)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Attach or create a request ID for traceability."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    """Capture request metrics before returning the response."""
    return await metrics_middleware(request, call_next)


@app.get("/metrics")
async def metrics():
    """Expose Prometheus-style metrics."""
    return metrics_response()


@app.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for uptime monitoring."""
    return {"status": "ok"}


@app.get("/stats", response_model=StatsResponse)
async def stats(pipeline: RAGPipeline = Depends(get_pipeline)) -> StatsResponse:
    """Report the state of the cached corpus without rebuilding it."""
    snapshot = pipeline.corpus.snapshot
    if snapshot is None:
        return StatsResponse(
            built=False,
            document_count=0,
            chunk_count=0,
            fallback_count=0,
            embedding_dimension=pipeline.embedder.dimension,
        )
    return StatsResponse(
        built=True,
        document_count=snapshot.document_count,
        chunk_count=len(snapshot.chunks),
        fallback_count=snapshot.fallback_count,
        embedding_dimension=pipeline.embedder.dimension,
        age_seconds=pipeline.corpus.age(),
    )


@app.post("/corpus/invalidate", response_model=InvalidateResponse)
async def invalidate_corpus(
    pipeline: RAGPipeline = Depends(get_pipeline),
) -> InvalidateResponse:
    """Force the next question to rebuild the corpus."""
    pipeline.corpus.invalidate()
    return InvalidateResponse(invalidated=True)


_ERROR_RESPONSES = {
    status: {"model": ErrorResponse} for status in (400, 500, 502, 503)
}


def validated_question(payload: AnswerRequest) -> str:
    """Reject unusable questions before the pipeline is built."""
    return require_question(payload.question)


@app.post("/answer", response_model=AnswerResponse, responses=_ERROR_RESPONSES)
async def answer(
    request: Request,
    question: str = Depends(validated_question),
    pipeline: RAGPipeline = Depends(get_pipeline),
) -> AnswerResponse:
    """Answer a question grounded on the local document corpus."""
    request_id = request.state.request_id
    logger.info("answer_requested", extra={"request_id": request_id})
    result = await pipeline.answer(question)
    if result.degraded:
        logger.warning("answer_degraded", extra={"request_id": request_id})
    return AnswerResponse(
        answer=result.answer,
        citations=[
            CitationOut(source=item.source, text=item.text, relevance=item.relevance)
            for item in result.citations
        ],
        sources=result.sources,
        degraded=result.degraded,
    )
