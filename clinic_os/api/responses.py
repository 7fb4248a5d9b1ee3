"""Response envelope helpers and exception handlers."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from clinic_os.config import get_settings
from clinic_os.core.errors import ClinicOSError
from clinic_os.core.messages import message_for
from clinic_os.core.schemas import ApiResponse

logger = logging.getLogger(__name__)


def ok(data: Any = None, code: Optional[str] = None) -> ApiResponse:
    """Wrap *data* in a success envelope, with the message for *code* if given."""
    return ApiResponse(
        success=True,
        data=data,
        message=message_for(code) if code else None,
    )


def _error_response(status_code: int, code: str, details: Any = None) -> JSONResponse:
    error: dict[str, Any] = {"code": code, "message": message_for(code).model_dump()}
    if details is not None:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def register_exception_handlers(app: FastAPI) -> None:
    settings = get_settings()

    @app.exception_handler(ClinicOSError)
    async def clinic_error_handler(request: Request, exc: ClinicOSError):
        logger.info(
            "%s %s -> %s (%d)", request.method, request.url.path, exc.code, exc.status_code
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.to_dict()},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]
        return _error_response(400, "VALIDATION_ERROR", details)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return _error_response(
            500,
            "INTERNAL_ERROR",
            str(exc) if settings.debug_mode else None,
        )
