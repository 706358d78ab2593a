"""
Service Errors
==============

Closed set of failure kinds raised by the quiz generation pipeline and the
teacher-facing endpoints that share its authenticator/authorizer.

Every failure carries a human-readable message plus structured context
(offending question index, upstream HTTP status, ...). Conversion to an HTTP
response happens only in the exception handler registered on the app.
"""

import enum
import logging
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    """Failure kinds surfaced to callers."""
    unauthenticated = "Unauthenticated"
    forbidden = "Forbidden"
    invalid_input = "InvalidInput"
    generation_unavailable = "GenerationUnavailable"
    generation_empty = "GenerationEmpty"
    malformed_generation = "MalformedGeneration"
    invalid_question_structure = "InvalidQuestionStructure"
    persistence_failed = "PersistenceFailed"


HTTP_STATUS_BY_KIND = {
    ErrorKind.unauthenticated: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.forbidden: status.HTTP_403_FORBIDDEN,
}


class QuizServiceError(Exception):
    def __init__(self, kind: ErrorKind, message: str, **context: Any):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.context: Dict[str, Any] = context

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_KIND.get(self.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)

    def __repr__(self) -> str:
        return f"QuizServiceError({self.kind.value}, {self.message!r}, {self.context})"


async def quiz_service_error_handler(request: Request, exc: QuizServiceError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} failed: {exc.kind.value} - {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.kind == ErrorKind.unauthenticated else None
    return JSONResponse(
        status_code=exc.http_status,
        content={"success": False, "error": exc.message},
        headers=headers,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} crashed: {type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal server error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(QuizServiceError, quiz_service_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
