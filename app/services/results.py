"""Tagged outcomes for service calls.

Expected business rejections (slot taken, bad transition, invalid input) are
returned as ``Err`` values instead of raised, so routes can map them to
responses without try/except around every call.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    SLOT_NOT_OFFERED = "slot_not_offered"
    SLOT_TAKEN = "slot_taken"
    INVALID_TRANSITION = "invalid_transition"
    NOT_FOUND = "not_found"
    DATE_HAS_BOOKINGS = "date_has_bookings"
    STORAGE_UNAVAILABLE = "storage_unavailable"


@dataclass(frozen=True)
class DomainError:
    kind: ErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    retryable: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E


Result = Union[Ok[T], Err[E]]


def validation_error(message: str, **details: Any) -> Err[DomainError]:
    return Err(DomainError(ErrorKind.VALIDATION, message, details))


def not_found(what: str, ident: Any) -> Err[DomainError]:
    return Err(DomainError(ErrorKind.NOT_FOUND, f"{what} {ident} not found", {"id": ident}))


def storage_unavailable(message: str = "Database unavailable, please retry") -> Err[DomainError]:
    return Err(DomainError(ErrorKind.STORAGE_UNAVAILABLE, message, retryable=True))
