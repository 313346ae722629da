from allocation.domain.models import (
    AccessCondition,
    AccessItem,
    AccessType,
    ConditionLogic,
    ConditionOperator,
    Event,
    GroupedAccess,
    ReservationResult,
    ReservationStatus,
    Selection,
    SelectionType,
    ValidationResult,
)
from allocation.domain.value_objects import AccessItemId, Capacity, EventId, Money, RegistrationId

__all__ = [
    "AccessCondition",
    "AccessItem",
    "AccessType",
    "ConditionLogic",
    "ConditionOperator",
    "Event",
    "GroupedAccess",
    "ReservationResult",
    "ReservationStatus",
    "Selection",
    "SelectionType",
    "ValidationResult",
    "AccessItemId",
    "Capacity",
    "EventId",
    "Money",
    "RegistrationId",
]
