"""Exception handlers rendering the upload error taxonomy."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mediarelay.core.exceptions import InternalError, UploadError, ValidationError

logger = logging.getLogger(__name__)


def error_status(exc: UploadError) -> int:
    """HTTP status for ``exc``.

    Upstream statuses with no category of their own are forwarded verbatim.
    """
    if isinstance(exc, InternalError) and exc.upstream_status and 400 <= exc.upstream_status < 600:
        return exc.upstream_status
    return exc.status_code


def register_exception_handlers(app: FastAPI) -> None:
    """Register taxonomy-aware exception handlers on ``app``."""

    @app.exception_handler(UploadError)
    async def upload_error_handler(request: Request, exc: UploadError) -> JSONResponse:
        return JSONResponse(status_code=error_status(exc), content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        fields = [".".join(str(part) for part in error["loc"][1:]) for error in exc.errors()]
        error = ValidationError(f"Invalid request fields: {', '.join(fields) or 'body'}")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())
