"""Global exception handlers for the REST API

websocket 경로의 에러는 Bridge / send_error_and_close 가 envelope 으로 처리하므로
여기서는 HTTP 응답만 다룬다.
"""

from typing import Optional, Union

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from sshbridge.core.exceptions.base import BaseAppException
from sshbridge.core.exceptions.error_codes import ErrorCode, get_error_category
from sshbridge.core.logger import logger


_HTTP_STATUS_CODES = {
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    422: ErrorCode.VALIDATION_ERROR,
    429: ErrorCode.QUOTA_EXCEEDED,
    503: ErrorCode.SERVICE_UNAVAILABLE,
}


class ErrorResponse:
    """Standard error response format"""

    @staticmethod
    def create(error_code: ErrorCode, detail: Optional[str] = None, path: Optional[str] = None) -> dict:
        response = {
            "success": False,
            "error": {
                "code": error_code.code,
                "category": get_error_category(error_code.code).value,
                "message": error_code.message,
            }
        }
        if detail:
            response["error"]["detail"] = detail
        if path:
            response["path"] = path
        return response


async def base_app_exception_handler(request: Request, exc: BaseAppException) -> JSONResponse:
    """Handle custom application exceptions"""
    log_data = exc.to_log_dict()
    log_data["path"] = request.url.path

    log = logger.error if exc.http_status >= 500 else logger.warning
    log(f"[API] {request.method} {request.url.path} -> {exc}", extra={"context": log_data})

    return JSONResponse(
        status_code=exc.http_status,
        content=ErrorResponse.create(exc.error_code, exc.detail, request.url.path)
    )


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError]
) -> JSONResponse:
    """Handle Pydantic validation exceptions"""
    detail = "; ".join(
        f"{' -> '.join(str(loc) for loc in error.get('loc', []))}: {error.get('msg', '')}"
        for error in exc.errors()
    ) or None

    logger.warning(f"[API] {request.method} {request.url.path} -> validation failed: {detail}")

    return JSONResponse(
        status_code=ErrorCode.VALIDATION_ERROR.http_status,
        content=ErrorResponse.create(ErrorCode.VALIDATION_ERROR, detail, request.url.path)
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle Starlette HTTP exceptions (404 for unknown routes 등)"""
    error_code = _HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_SERVER_ERROR)
    logger.warning(f"[API] {request.method} {request.url.path} -> HTTP {exc.status_code}: {exc.detail}")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.create(error_code, str(exc.detail) if exc.detail else None, request.url.path)
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions"""
    logger.error(f"[API] {request.method} {request.url.path} -> unexpected {type(exc).__name__}: {exc}", exc_info=exc)

    return JSONResponse(
        status_code=500,
        content=ErrorResponse.create(
            ErrorCode.INTERNAL_SERVER_ERROR,
            "Internal server error. Please contact administrator.",
            request.url.path
        )
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers to FastAPI app"""
    app.add_exception_handler(BaseAppException, base_app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Global exception handlers registered")
