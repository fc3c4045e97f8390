from typing import NoReturn, TypeVar

from fastapi import HTTPException, status

from app.services.results import DomainError, Err, ErrorKind, Result

T = TypeVar("T")

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.SLOT_NOT_OFFERED: status.HTTP_409_CONFLICT,
    ErrorKind.SLOT_TAKEN: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorKind.DATE_HAS_BOOKINGS: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.STORAGE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}

RETRY_AFTER_SECONDS = "1"


def raise_domain_error(error: DomainError) -> NoReturn:
    headers = {"Retry-After": RETRY_AFTER_SECONDS} if error.retryable else None
    raise HTTPException(
        status_code=STATUS_BY_KIND.get(error.kind, status.HTTP_400_BAD_REQUEST),
        detail=error.as_dict(),
        headers=headers,
    )


def unwrap(result: Result[T, DomainError]) -> T:
    """Return the Ok value or raise the matching HTTPException."""
    if isinstance(result, Err):
        raise_domain_error(result.error)
    return result.value
