"""Exception handlers for the sandbox backend."""

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from sunyield.sandbox.state import SandboxError

logger = structlog.get_logger()


async def sandbox_error_handler(request: Request, exc: SandboxError) -> Response:
    request_id = getattr(request.state, "request_id", "unknown")
    logger.info(
        "request_refused",
        request_id=request_id,
        code=exc.code,
        status_code=exc.status_code,
        error=exc.message,
    )
    if request.app.state.platform.legacy_errors:
        return PlainTextResponse(exc.message, status_code=exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "code": exc.code, "message": exc.message},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")

    if isinstance(exc, ValueError):
        logger.warning("bad_request", request_id=request_id, error=str(exc))
        return JSONResponse(
            status_code=400,
            content={"success": False, "code": "validation", "message": str(exc)},
        )

    if isinstance(exc, PermissionError):
        logger.warning("forbidden", request_id=request_id, error=str(exc))
        return JSONResponse(
            status_code=403,
            content={"success": False, "code": "authentication", "message": str(exc)},
        )

    if isinstance(exc, LookupError):
        logger.warning("not_found", request_id=request_id, error=str(exc))
        return JSONResponse(
            status_code=404,
            content={"success": False, "code": "not_found", "message": str(exc)},
        )

    logger.exception("unhandled_exception", request_id=request_id, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "code": "unexpected",
            "message": "An unexpected error occurred",
            "request_id": request_id,
        },
    )
