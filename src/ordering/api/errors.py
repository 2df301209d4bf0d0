"""HTTP mapping for storefront errors.

Protean's own handlers cover plain validation failures; these add the typed
storefront errors with their status codes and a machine-readable ``code``.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.errors import StorefrontError

logger = structlog.get_logger(__name__)


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Storefront operation failed", path=request.url.path, code=exc.code, **exc.context)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.messages, "code": exc.code},
    )


async def timeout_handler(request: Request, exc: TimeoutError) -> JSONResponse:
    logger.warning("Request timed out waiting for a lock", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"error": {"lock": [str(exc)]}, "code": "Timeout"})


def register_storefront_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(TimeoutError, timeout_handler)
