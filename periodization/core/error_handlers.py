from datetime import datetime

from fastapi import Request, status
from fastapi.responses import JSONResponse

from periodization.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BusinessRuleError,
    ConflictError,
    DataIntegrityError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from periodization.core.logging import get_logger

logger = get_logger(__name__)


ERROR_STATUS_MAP: dict[type[DomainError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    BusinessRuleError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ConflictError: status.HTTP_409_CONFLICT,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    DataIntegrityError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: DomainError) -> int:
    """Resolve the HTTP status for an error, walking up its class hierarchy."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_MAP:
            return ERROR_STATUS_MAP[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = status_for(exc)
    request_id = getattr(request.state, "request_id", None)

    if isinstance(exc, DataIntegrityError):
        logger.error(
            "data_integrity_violation",
            code=exc.code,
            message=exc.message,
            details=exc.details,
            request_id=request_id,
        )
        error = {
            "code": exc.code,
            "message": "Something went wrong. Please try again later.",
            "details": {},
        }
    else:
        error = {"code": exc.code, "message": exc.message, "details": exc.details}

    return JSONResponse(
        status_code=status_code,
        content={
            "data": None,
            "meta": {
                "request_id": request_id,
                "timestamp": datetime.utcnow().isoformat() + "Z",
            },
            "errors": [error],
        },
    )
