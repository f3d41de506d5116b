"""Centralized error transformation for API routes.

Maps service errors (domain and infrastructure) to HTTPException responses.
"""

import logging
from typing import Any

from fastapi import HTTPException

from indexer_service.domain.shared.error import (
    DomainError,
    IndexerServiceError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DOMAIN_ERROR_STATUS_MAP: dict[type[DomainError], int] = {
    NotFoundError: 404,
    PreconditionFailedError: 409,
    ValidationError: 422,
}


def map_service_error(error: IndexerServiceError) -> HTTPException:
    """Map a service error to an HTTPException.

    Domain errors keep their message. Anything else is an internal failure
    and is reported without detail.
    """
    if isinstance(error, DomainError):
        detail: dict[str, Any] = {"code": error.code, "message": error.message}
        if isinstance(error, ValidationError) and error.field is not None:
            detail["field"] = error.field
        if isinstance(error, PreconditionFailedError) and error.current is not None:
            detail["status"] = error.current
        return HTTPException(
            status_code=DOMAIN_ERROR_STATUS_MAP.get(type(error), 400), detail=detail
        )

    logger.error("Internal error (%s): %s", error.code, error.message)
    return HTTPException(
        status_code=500,
        detail={"code": "INTERNAL_ERROR", "message": "Internal server error"},
    )
