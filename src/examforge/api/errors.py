from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from examforge.exceptions import GuardError

logger = structlog.get_logger()


async def guard_error_handler(request: Request, exc: GuardError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("guard_error", path=request.url.path, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_body(),
        headers=exc.headers or None,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GuardError, guard_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
