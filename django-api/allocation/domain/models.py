"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in allocation/models.py (persistence layer).
"""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from allocation.domain.value_objects import AccessItemId, Capacity, EventId, Money, RegistrationId


class AccessType(StrEnum):
    WORKSHOP = "WORKSHOP"
    DINNER = "DINNER"
    SESSION = "SESSION"
    NETWORKING = "NETWORKING"
    ACCOMMODATION = "ACCOMMODATION"
    TRANSPORT = "TRANSPORT"
    OTHER = "OTHER"


class ConditionLogic(StrEnum):
    AND = "AND"
    OR = "OR"


class ConditionOperator(StrEnum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IN = "in"
    NOT_IN = "not_in"


class SelectionType(StrEnum):
    """How the items of a time slot may be picked.

    SINGLE slots are mutually exclusive (radio buttons), MULTIPLE slots are
    independently selectable (checkboxes).
    """

    SINGLE = "single"
    MULTIPLE = "multiple"


class ReservationStatus(StrEnum):
    CONFIRMED = "confirmed"
    WAITLISTED = "waitlisted"


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event."""

    id: EventId
    name: str
    start_date: datetime
    end_date: datetime
    base_price: Money
    currency: str


@dataclass(frozen=True)
class AccessCondition:
    """A single eligibility rule evaluated against form answers.

    ``operator`` is kept as received from storage so that rules written by a
    newer client with an unknown operator fail closed instead of crashing.
    """

    field_id: str
    operator: str
    value: Any


@dataclass(frozen=True)
class AccessItem:
    """Domain representation of an AccessItem."""

    id: AccessItemId
    event_id: EventId
    type: AccessType
    name: str
    price: Money
    currency: str
    description: str | None = None
    location: str | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    max_capacity: Capacity | None = None
    registered_count: int = 0
    waitlist_enabled: bool = False
    max_waitlist: Capacity | None = None
    waitlist_count: int = 0
    available_from: datetime | None = None
    available_to: datetime | None = None
    conditions: tuple[AccessCondition, ...] = ()
    condition_logic: ConditionLogic = ConditionLogic.AND
    required_ids: frozenset[AccessItemId] = frozenset()
    sort_order: int = 0
    active: bool = True
    created_at: datetime | None = None


@dataclass(frozen=True)
class Selection:
    """One access item chosen for a registration."""

    access_id: AccessItemId
    quantity: int = 1

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("Selection quantity must be at least 1")


@dataclass(frozen=True)
class EnrichedAccess:
    """An access item decorated with its live availability."""

    item: AccessItem
    spots_remaining: int | None
    waitlist_spots_remaining: int | None
    is_full: bool
    can_join_waitlist: bool


@dataclass(frozen=True)
class TimeSlot:
    starts_at: datetime
    ends_at: datetime | None
    selection_type: SelectionType
    items: tuple[EnrichedAccess, ...]


@dataclass(frozen=True)
class DateGroup:
    date_key: str
    slots: tuple[TimeSlot, ...]


@dataclass(frozen=True)
class GroupedAccess:
    date_groups: tuple[DateGroup, ...] = ()
    ungrouped: tuple[EnrichedAccess, ...] = ()


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a selection check.

    ``errors`` block checkout; ``warnings`` are informational only.
    """

    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class ReservationResult:
    status: ReservationStatus
    position: int | None = None


@dataclass(frozen=True)
class CapacityCheck:
    available: bool
    waitlist_available: bool
    spots_remaining: int | None


@dataclass(frozen=True)
class WaitlistPromotion:
    """The registrant moved from the waitlist to a confirmed spot."""

    registration_id: RegistrationId
    email: str
    quantity: int
