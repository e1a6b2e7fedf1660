"""Render every error as ``{"error": {"code", "message"}, "decision"?}``."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from archive_rag.exceptions import ArchiveRAGError, ValidationError
from archive_rag.models.schemas import ErrorBody, ErrorResponse, RoutingDecisionOut
from archive_rag.observability.logger import get_logger

logger = get_logger("errors")


def error_response(status_code: int, code: str, message: str, decision=None) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorBody(code=code, message=message),
        decision=RoutingDecisionOut.from_domain(decision) if decision is not None else None,
    )
    content = body.model_dump(mode="json")
    if decision is None:
        content.pop("decision")
    return JSONResponse(status_code=status_code, content=content)


async def handle_archive_error(request: Request, exc: ArchiveRAGError) -> JSONResponse:
    logger.warning("request_error", path=request.url.path, code=exc.code, error=str(exc))
    return error_response(
        exc.status_code, exc.code, str(exc), decision=getattr(exc, "decision", None)
    )


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg', '')}" for e in errors
    )
    return error_response(ValidationError.status_code, ValidationError.code, message)


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, error=str(exc))
    return error_response(
        ArchiveRAGError.status_code, ArchiveRAGError.code, "Internal server error"
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ArchiveRAGError, handle_archive_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)
