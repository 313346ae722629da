"""Domain error codes for access allocation.

Errors are grouped by how callers must react to them:

- ``NotFoundError``: a referenced record is absent, terminal for the operation.
- ``BadRequestError``: the input itself is invalid.
- ``ConflictError``: the current state forbids the operation (capacity
  exhausted, circular dependency, lost race).
- ``StorageUnavailableError``: the store failed or timed out; the outcome of
  the operation is unknown and must not be read as a capacity answer.

Selection problems are not raised at all, they are accumulated in a
``ValidationResult``.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    NOT_FOUND = "NOT_FOUND"
    BAD_REQUEST = "BAD_REQUEST"
    CONFLICT = "CONFLICT"
    ACCESS_NOT_FOUND = "ACCESS_NOT_FOUND"
    ACCESS_DATE_OUT_OF_BOUNDS = "ACCESS_DATE_OUT_OF_BOUNDS"
    ACCESS_CIRCULAR_DEPENDENCY = "ACCESS_CIRCULAR_DEPENDENCY"
    ACCESS_HAS_REGISTRATIONS = "ACCESS_HAS_REGISTRATIONS"
    ACCESS_CAPACITY_EXCEEDED = "ACCESS_CAPACITY_EXCEEDED"
    ACCESS_WAITLIST_FULL = "ACCESS_WAITLIST_FULL"
    SPONSORSHIP_NOT_APPLICABLE = "SPONSORSHIP_NOT_APPLICABLE"
    SPONSORSHIP_STATUS_CONFLICT = "SPONSORSHIP_STATUS_CONFLICT"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(DomainError):
    """A referenced record does not exist."""


class BadRequestError(DomainError):
    """The request is malformed or references invalid data."""


class ConflictError(DomainError):
    """The current state of the system forbids the operation."""


class StorageUnavailableError(DomainError):
    """The store failed or timed out; retrying later may succeed."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.STORAGE_UNAVAILABLE,
            message="Storage is temporarily unavailable",
        )


class EventNotFoundError(NotFoundError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(code=ErrorCode.NOT_FOUND, message="Event not found")
        self.event_id = event_id


class AccessNotFoundError(NotFoundError):
    """Raised when an access item is not found."""

    def __init__(self, access_id: str) -> None:
        super().__init__(code=ErrorCode.ACCESS_NOT_FOUND, message="Access item not found")
        self.access_id = access_id


class InvalidIdError(BadRequestError):
    """Raised when an identifier is not a valid UUID."""

    def __init__(self, kind: str) -> None:
        super().__init__(code=ErrorCode.BAD_REQUEST, message=f"Invalid {kind} ID format")


class InvalidQuantityError(BadRequestError):
    """Raised when a reservation or release asks for fewer than one spot."""

    def __init__(self, quantity: int) -> None:
        super().__init__(code=ErrorCode.BAD_REQUEST, message="Quantity must be at least 1")
        self.quantity = quantity


class PrerequisiteNotFoundError(BadRequestError):
    """Raised when prerequisite ids do not resolve inside the same event."""

    def __init__(self, missing_ids: list[str]) -> None:
        super().__init__(
            code=ErrorCode.BAD_REQUEST,
            message="One or more prerequisite access items not found or belong to different event",
        )
        self.missing_ids = missing_ids


class AccessDateOutOfBoundsError(BadRequestError):
    """Raised when an access item is scheduled outside its event's dates."""

    def __init__(self, message: str = "Access dates must fall within the event dates") -> None:
        super().__init__(code=ErrorCode.ACCESS_DATE_OUT_OF_BOUNDS, message=message)


class CircularDependencyError(ConflictError):
    """Raised when prerequisite edges would form a cycle."""

    def __init__(self, message: str = "Prerequisites would create a circular dependency") -> None:
        super().__init__(code=ErrorCode.ACCESS_CIRCULAR_DEPENDENCY, message=message)


class AccessHasRegistrationsError(ConflictError):
    """Raised when deleting an access item that registrants selected."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.ACCESS_HAS_REGISTRATIONS,
            message="Cannot delete access item with existing registrations",
        )


class AccessCapacityExceededError(ConflictError):
    """Raised when no confirmed spot is left for the requested quantity."""

    def __init__(self) -> None:
        super().__init__(code=ErrorCode.ACCESS_CAPACITY_EXCEEDED, message="No spots available")


class AccessLimitBelowCountError(ConflictError):
    """Raised when a new capacity or waitlist limit is below the spots already taken."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.CONFLICT,
            message="Limit is lower than the number of spots already taken",
        )


class AccessWaitlistFullError(ConflictError):
    """Raised when the waitlist cannot hold the requested quantity."""

    def __init__(self) -> None:
        super().__init__(code=ErrorCode.ACCESS_WAITLIST_FULL, message="Waitlist is full")
