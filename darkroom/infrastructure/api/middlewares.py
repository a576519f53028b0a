from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from darkroom.domain.errors import (
    AccessDenied,
    EditorError,
    InvalidOperation,
    LoadError,
    ProcessingError,
    ResourceExhausted,
    SaveError,
    StateError,
    UnsupportedFormat,
)

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[EditorError], int] = {
    LoadError: 400,
    SaveError: 500,
    UnsupportedFormat: 415,
    AccessDenied: 403,
    InvalidOperation: 422,
    ResourceExhausted: 413,
    ProcessingError: 500,
    StateError: 409,
}


def status_for(exc: EditorError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


def add_default_middlewares(app: FastAPI, env: str = "development") -> None:
    # CORS configuration
    # Development: the local editor UI origins; otherwise any origin
    if env in ("development", "staging"):
        allowed_origins = [
            "http://localhost:3000",
            "http://localhost:5173",  # Vite default
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
            "tauri://localhost",
        ]
    else:
        allowed_origins = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def add_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(EditorError)
    async def editor_error_handler(request: Request, exc: EditorError) -> JSONResponse:
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
        else:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.detail)
        return JSONResponse(status_code=status_code, content={"detail": exc.to_dict()})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        err = invalid_operation_from(exc)
        logger.warning("%s %s rejected: %s", request.method, request.url.path, err.detail)
        return JSONResponse(status_code=422, content={"detail": err.to_dict()})


def invalid_operation_from(exc: RequestValidationError) -> InvalidOperation:
    """Collapse a request-body validation failure into ``InvalidOperation``.

    Only the first error is reported. ``field`` is the innermost named
    location, e.g. ``hue`` for ``body.operation.Adjustment.params.hue``.
    """
    errors = exc.errors()
    if not errors:
        return InvalidOperation("Invalid request")
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    names = [part for part in first.get("loc", ()) if isinstance(part, str) and part != "body"]
    msg = first.get("msg", "Invalid value")
    detail = f"{'.'.join(loc)}: {msg}" if loc else msg
    return InvalidOperation(detail, field=names[-1] if names else None)
