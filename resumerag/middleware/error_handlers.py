"""
Global Exception Handler Middleware for ResumeRAG
"""
import time
import traceback
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import Request, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from pydantic import ValidationError as PydanticValidationError

from resumerag.utils.exceptions import ResumeRAGError, map_to_http_exception
from resumerag.utils.logging_config import get_logger

logger = get_logger(__name__)


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Global exception handler middleware"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else "unknown"
            }
        )

        try:
            response = await call_next(request)

            logger.info(
                f"Request completed: {request.method} {request.url.path} - {response.status_code}",
                extra={
                    "request_id": request_id,
                    "status_code": response.status_code,
                    "method": request.method,
                    "path": request.url.path
                }
            )

            response.headers["X-Request-ID"] = request_id
            return response

        except ResumeRAGError as exc:
            log = logger.error if exc.status_code >= 500 else logger.warning
            log(
                f"{exc.__class__.__name__} in {request.method} {request.url.path}: {exc.message}",
                extra={
                    "request_id": request_id,
                    "exception_type": exc.__class__.__name__,
                    "error_code": exc.error_code,
                    "details": exc.details,
                    "method": request.method,
                    "path": request.url.path
                }
            )

            http_exc = map_to_http_exception(exc)
            return create_error_response(request_id, http_exc.status_code, http_exc.detail, http_exc.headers)

        except PydanticValidationError as exc:
            logger.error(
                f"Pydantic validation error in {request.method} {request.url.path}: {exc}",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path
                }
            )

            validation_details = {
                "error": {"code": "VALIDATION_ERROR", "message": "Invalid data format or values", "retryable": False},
                "message": "Invalid data format or values",
                "validation_errors": exc.errors(include_url=False, include_context=False),
            }

            return create_error_response(request_id, 400, validation_details)

        except HTTPException as exc:
            logger.warning(
                f"HTTP exception in {request.method} {request.url.path}: {exc.detail}",
                extra={
                    "request_id": request_id,
                    "status_code": exc.status_code,
                    "method": request.method,
                    "path": request.url.path
                }
            )

            return create_error_response(request_id, exc.status_code, exc.detail, exc.headers)

        except Exception as exc:
            logger.error(
                f"Unhandled exception in {request.method} {request.url.path}: {str(exc)}",
                extra={
                    "request_id": request_id,
                    "exception_type": exc.__class__.__name__,
                    "traceback": traceback.format_exc(),
                    "method": request.method,
                    "path": request.url.path
                },
                exc_info=True
            )

            # Don't expose internal errors
            error_detail = {
                "error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred", "retryable": True},
                "message": "An unexpected error occurred. Please try again later.",
            }

            return create_error_response(request_id, 500, error_detail)


def create_error_response(
    request_id: str,
    status_code: int,
    detail: Any,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Create standardized error response"""

    if isinstance(detail, str):
        detail = {"message": detail}
    elif not isinstance(detail, dict):
        detail = {"message": str(detail)}

    error_response = {
        "success": False,
        "timestamp": datetime.utcnow().isoformat(),
        "request_id": request_id,
        "status_code": status_code,
        **detail
    }

    return JSONResponse(
        status_code=status_code,
        content=error_response,
        headers={"X-Request-ID": request_id, **(headers or {})}
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request/response logging; bodies are never logged since they carry resumes"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        request_id = getattr(request.state, 'request_id', str(uuid.uuid4()))

        logger.debug(
            f"Request details: {request.method} {request.url}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "url": str(request.url),
                "content_length": request.headers.get("content-length"),
                "actor_id": request.headers.get("x-actor-id"),
                "client_ip": request.client.host if request.client else "unknown"
            }
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            processing_time = time.time() - start_time
            logger.error(
                f"Request failed: {request.method} {request.url.path} after {processing_time:.3f}s",
                extra={
                    "request_id": request_id,
                    "processing_time": processing_time,
                    "exception": str(exc)
                }
            )
            raise

        processing_time = time.time() - start_time
        logger.info(
            f"Response: {request.method} {request.url.path} - {response.status_code} in {processing_time:.3f}s",
            extra={
                "request_id": request_id,
                "status_code": response.status_code,
                "processing_time": processing_time,
            }
        )
        return response


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Middleware for performance monitoring"""

    def __init__(self, app, slow_request_threshold: float = 2.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        request_id = getattr(request.state, 'request_id', str(uuid.uuid4()))

        response = await call_next(request)

        processing_time = time.time() - start_time

        if processing_time > self.slow_request_threshold:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path} took {processing_time:.3f}s",
                extra={
                    "request_id": request_id,
                    "processing_time": processing_time,
                    "threshold": self.slow_request_threshold,
                    "method": request.method,
                    "path": request.url.path
                }
            )
        else:
            logger.debug(
                f"Request performance: {request.method} {request.url.path} - {processing_time:.3f}s",
                extra={
                    "request_id": request_id,
                    "processing_time": processing_time
                }
            )

        response.headers["X-Processing-Time"] = f"{processing_time:.3f}"

        return response


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body/query validation failures use the same 400 envelope as ValidationError"""
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    logger.warning(
        f"Request validation failed in {request.method} {request.url.path}",
        extra={"request_id": request_id, "method": request.method, "path": request.url.path}
    )
    detail = {
        "error": {"code": "VALIDATION_ERROR", "message": "Invalid request payload", "retryable": False},
        "message": "Invalid request payload",
        "validation_errors": jsonable_encoder(exc.errors()),
    }
    return create_error_response(request_id, 400, detail)
