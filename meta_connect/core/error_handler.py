"""
통합 에러 처리
"""

import logging
import traceback

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .exceptions import MessengerProfileValidationError, MetaApiError, PreconditionError

logger = logging.getLogger(__name__)


def setup_error_handlers(app: FastAPI) -> None:
    """에러 핸들러 설정"""

    @app.exception_handler(PreconditionError)
    async def precondition_error_handler(request: Request, exc: PreconditionError):
        logger.warning(f"Precondition failed: {exc}", extra={
            "path": request.url.path,
            "method": request.method
        })
        return JSONResponse(
            status_code=400,
            content={
                "error": "Precondition Failed",
                "message": str(exc),
                "path": request.url.path
            }
        )

    @app.exception_handler(MessengerProfileValidationError)
    async def validation_error_handler(request: Request, exc: MessengerProfileValidationError):
        logger.warning(f"Messenger profile validation failed: {exc}", extra={
            "path": request.url.path,
            "method": request.method
        })
        return JSONResponse(
            status_code=422,
            content={
                "error": "Validation Error",
                "message": str(exc),
                "path": request.url.path
            }
        )

    @app.exception_handler(MetaApiError)
    async def meta_api_error_handler(request: Request, exc: MetaApiError):
        logger.error(f"Meta API Error: {exc.message}", extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method
        })
        return JSONResponse(
            status_code=502,
            content={
                "error": "Meta API Error",
                "message": exc.message,
                "upstream_status": exc.status_code,
                "path": request.url.path
            }
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.warning(f"HTTP Exception: {exc.detail}", extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method
        })
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "HTTP Exception",
                "message": exc.detail,
                "path": request.url.path
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unexpected error: {str(exc)}", extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": traceback.format_exc()
        })
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "message": "An unexpected error occurred",
                "path": request.url.path
            }
        )
