"""Global error handling"""
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import traceback
import logging

from lead_intake.errors import LeadIntakeError

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Global error handler middleware"""

    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
            return response
        except Exception as exc:
            logger.error(f"Unhandled error: {exc}")
            logger.error(traceback.format_exc())

            content = {"ok": False, "message": "Internal server error"}
            if logging.getLogger().isEnabledFor(logging.DEBUG):
                content["detail"] = str(exc)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=content
            )


async def lead_intake_error_handler(request: Request, exc: LeadIntakeError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
    logger.info(f"Malformed request body on {request.url.path}: {fields}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"ok": False, "message": "Invalid request body", "invalid": fields}
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(LeadIntakeError, lead_intake_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
