"""Error taxonomy shared by the services and the HTTP layer.

Each error carries the status code and the public ``detail`` string the API
renders, so routes can let them propagate instead of translating by hand.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("dropbin")


class DropError(Exception):
    status_code: int = 500
    detail: str = "Internal Server Error"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class ValidationError(DropError):
    status_code = 400
    detail = "Invalid request"


class Unauthorized(DropError):
    status_code = 401
    detail = "Unauthorized"


class NotFound(DropError):
    status_code = 404
    detail = "Bucket not found"


class Expired(DropError):
    status_code = 410
    detail = "This bucket has expired"


class SizeLimitExceeded(DropError):
    status_code = 413
    detail = "File is too large"


class RateLimited(DropError):
    status_code = 429
    detail = "Too many attempts. Try again in a minute."


class BackendFailure(DropError):
    """A metadata or blob backend call failed.

    The message is kept for logs only; clients always see the generic detail.
    """

    status_code = 500

    def __init__(self, message: str = "backend failure"):
        super().__init__(None)
        self.message = message

    def __str__(self) -> str:
        return self.message


class AllocationExhausted(DropError):
    status_code = 503
    detail = "No available PINs. Try again later."


async def drop_error_handler(request: Request, exc: DropError) -> JSONResponse:
    if isinstance(exc, BackendFailure):
        logger.error("Backend failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected request body on %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=ValidationError.status_code, content={"detail": ValidationError.detail})


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Metadata store failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=BackendFailure.status_code, content={"detail": BackendFailure.detail})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DropError, drop_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
