"""
Error envelope shared by every router.

Errors leave the API as ``{"success": false, "error": ..., "code": ...}``.
"""
import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class APIError(HTTPException):
    """HTTPException carrying a machine-readable error code."""

    def __init__(self, status_code: int, detail: str, code: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.code = code


def not_found(entity: str) -> APIError:
    return APIError(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{entity} not found",
        code=f"{entity.upper().replace(' ', '_')}_NOT_FOUND",
    )


def validation_error(detail: str) -> APIError:
    return APIError(status_code=status.HTTP_400_BAD_REQUEST, detail=detail, code="VALIDATION_ERROR")


async def http_exception_handler(request: Request, exc: HTTPException):
    body = {"success": False, "error": exc.detail}
    code = getattr(exc, "code", None)
    if code:
        body["code"] = code
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": f"{field}: {message}" if field else message,
            "code": "VALIDATION_ERROR",
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal server error", "code": "INTERNAL_ERROR"},
    )
