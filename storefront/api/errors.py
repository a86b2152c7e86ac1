"""Map ordering errors onto HTTP responses"""

import logging
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..domain.exceptions import (
    InvalidSignature, InvalidTransition, NotFound, OrderingError,
    ShipmentCreationFailed, UpstreamUnavailable, ValidationError
)

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS_CODES = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (InvalidSignature, status.HTTP_400_BAD_REQUEST),
    (ShipmentCreationFailed, status.HTTP_502_BAD_GATEWAY),
    (UpstreamUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
)


def status_code_for(exc: OrderingError) -> int:
    for exc_type, code in ERROR_STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    code = status_code_for(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=code, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OrderingError, ordering_error_handler)
