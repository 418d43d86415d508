"""Map domain outcomes to HTTP responses"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from goldloan_core.api.dependencies import get_request_id
from goldloan_core.domain.exceptions import (
    ConcurrentModification,
    DomainException,
    InvalidState,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from goldloan_core.infrastructure.observability.metrics import rejected_command_counter

STATUS_CODES = {
    ValidationError: 400,
    NotFound: 404,
    InvalidTransition: 409,
    InvalidState: 409,
    ConcurrentModification: 409,
}


def status_code_for(exc: DomainException) -> int:
    for exc_type, code in STATUS_CODES.items():
        if isinstance(exc, exc_type):
            return code
    return 500


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException):
        status_code = status_code_for(exc)
        rejected_command_counter.labels(error=exc.error).inc()
        logging.warning(
            f"Command rejected: {exc}",
            extra={
                "request_id": get_request_id(request),
                "error": exc.error,
                "path": request.url.path,
            },
        )
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "error": exc.error, **exc.context()},
        )

    @app.exception_handler(Exception)
    async def unexpected_exception_handler(request: Request, exc: Exception):
        logging.error(f"Unexpected error: {exc}", extra={"request_id": get_request_id(request)})
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
