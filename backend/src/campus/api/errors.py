"""Mapping of domain errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from campus.api.deps import get_settings
from campus.errors import (
    CampusError,
    Forbidden,
    NotFound,
    ProviderUnavailable,
    RAGFailure,
    ValidationError,
)

logger = logging.getLogger(__name__)

RAG_FAILURE_MESSAGE = "Failed to generate response. Please try again."
PROVIDER_FAILURE_MESSAGE = "The AI service is unavailable. Please try again."
INTERNAL_FAILURE_MESSAGE = "Server error"


def _failure_body(message: str, error: Exception) -> dict[str, str]:
    """Generic message, plus the underlying error in development only."""
    body = {"detail": message}
    if get_settings().is_development:
        body["error"] = str(error)
    return body


async def _validation_error(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


async def _not_found(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


async def _forbidden(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": str(exc)})


async def _provider_unavailable(request: Request, exc: Exception) -> JSONResponse:
    logger.error("%s %s: provider unavailable: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=_failure_body(PROVIDER_FAILURE_MESSAGE, exc),
    )


async def _rag_failure(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_failure_body(RAG_FAILURE_MESSAGE, exc),
    )


async def _campus_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_failure_body(INTERNAL_FAILURE_MESSAGE, exc),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for the CampusError hierarchy.

    Starlette picks the handler of the most specific class in the exception's
    MRO, so subclasses such as SelfVoteForbidden follow their parent.
    """
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(NotFound, _not_found)
    app.add_exception_handler(Forbidden, _forbidden)
    app.add_exception_handler(ProviderUnavailable, _provider_unavailable)
    app.add_exception_handler(RAGFailure, _rag_failure)
    app.add_exception_handler(CampusError, _campus_error)
