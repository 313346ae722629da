"""Access service - all business logic for access items lives here.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors
"""

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

import structlog
from django.utils import timezone

from allocation.domain.availability import is_visible
from allocation.domain.errors import (
    AccessDateOutOfBoundsError,
    AccessHasRegistrationsError,
    AccessNotFoundError,
    BadRequestError,
    ErrorCode,
    EventNotFoundError,
    InvalidIdError,
)
from allocation.domain.models import (
    AccessItem,
    AccessType,
    Event,
    GroupedAccess,
    Selection,
    ValidationResult,
)
from allocation.domain.prerequisites import validate_no_cycle, validate_prerequisites_exist
from allocation.domain.selection import validate_selections
from allocation.domain.timeslots import date_key, group_by_time_slot
from allocation.domain.value_objects import AccessItemId, EventId
from allocation.services.reservation import parse_access_id
from allocation.stores.interfaces import AccessStore

logger = structlog.get_logger(__name__)


def parse_event_id(event_id: str) -> EventId:
    try:
        return EventId.from_string(event_id)
    except ValueError as exc:
        raise InvalidIdError("event") from exc


def _parse_access_ids(values: Iterable[str]) -> frozenset[AccessItemId]:
    return frozenset(parse_access_id(value) for value in values)


def _check_schedule(event: Event, starts_at: datetime | None, ends_at: datetime | None) -> None:
    """Access items must be scheduled on the event's days, ending after they start."""
    first_day = date_key(event.start_date)
    last_day = date_key(event.end_date)
    for moment in (starts_at, ends_at):
        if moment is not None and not first_day <= date_key(moment) <= last_day:
            raise AccessDateOutOfBoundsError()
    if starts_at is not None and ends_at is not None and ends_at < starts_at:
        raise BadRequestError(code=ErrorCode.BAD_REQUEST, message="End time must be after start time")


class AccessService:
    """Service for access item management, grouping and selection checks."""

    def __init__(self, store: AccessStore) -> None:
        self._store = store

    def _get_event(self, event_id: str) -> Event:
        event = self._store.get_event(parse_event_id(event_id))
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def list_access(
        self,
        event_id: str,
        *,
        active: bool | None = None,
        access_type: AccessType | None = None,
    ) -> list[AccessItem]:
        """Return an event's access items.

        Raises:
            InvalidIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
        """
        event = self._get_event(event_id)
        return self._store.list_access(event.id, active=active, access_type=access_type)

    def get_access(self, access_id: str) -> AccessItem:
        access = self._store.get_access(parse_access_id(access_id))
        if access is None:
            raise AccessNotFoundError(access_id)
        return access

    def create_access(
        self,
        event_id: str,
        values: Mapping[str, Any],
        required_access_ids: Sequence[str] = (),
    ) -> AccessItem:
        """Create an access item.

        Raises:
            EventNotFoundError: If the event does not exist.
            PrerequisiteNotFoundError: If a prerequisite is not an item of the same event.
            AccessDateOutOfBoundsError: If the item is scheduled outside the event.
        """
        event = self._get_event(event_id)
        required_ids = _parse_access_ids(required_access_ids)
        _check_schedule(event, values.get("starts_at"), values.get("ends_at"))

        if required_ids:
            validate_prerequisites_exist(self._store.list_access(event.id), required_ids)

        access = self._store.create_access(event.id, dict(values), required_ids)
        logger.info(
            "access_item_created",
            access_id=str(access.id),
            event_id=event_id,
            prerequisites=len(required_ids),
        )
        return access

    def update_access(
        self,
        access_id: str,
        values: Mapping[str, Any],
        required_access_ids: Sequence[str] | None = None,
    ) -> AccessItem:
        """Apply a partial update to an access item.

        Raises:
            AccessNotFoundError: If the access item does not exist.
            PrerequisiteNotFoundError: If a prerequisite is not an item of the same event.
            CircularDependencyError: If the new prerequisites would form a cycle.
            BadRequestError: If a capacity or waitlist limit drops below the spots taken.
            AccessLimitBelowCountError: If a reservation raced the limit change.
            AccessDateOutOfBoundsError: If the item is rescheduled outside the event.
        """
        access = self.get_access(access_id)

        if "starts_at" in values or "ends_at" in values:
            event = self._get_event(str(access.event_id))
            _check_schedule(
                event,
                values.get("starts_at", access.starts_at),
                values.get("ends_at", access.ends_at),
            )

        max_capacity = values.get("max_capacity")
        if max_capacity is not None and max_capacity < access.registered_count:
            raise BadRequestError(
                code=ErrorCode.BAD_REQUEST,
                message="Capacity cannot be lower than the number of registered spots",
            )
        max_waitlist = values.get("max_waitlist")
        if max_waitlist is not None and max_waitlist < access.waitlist_count:
            raise BadRequestError(
                code=ErrorCode.BAD_REQUEST,
                message="Waitlist limit cannot be lower than the number of waitlisted spots",
            )

        required_ids = None
        if required_access_ids is not None:
            required_ids = _parse_access_ids(required_access_ids)
            validate_no_cycle(self._store.list_access(access.event_id), access.id, required_ids)

        updated = self._store.update_access(access.id, dict(values), required_ids)
        logger.info("access_item_updated", access_id=access_id, fields=sorted(values))
        return updated

    def delete_access(self, access_id: str) -> None:
        """Delete an access item nobody selected.

        Raises:
            AccessNotFoundError: If the access item does not exist.
            AccessHasRegistrationsError: If registrations hold the item.
        """
        access = self.get_access(access_id)
        if self._store.count_selections(access.id) > 0:
            raise AccessHasRegistrationsError()
        self._store.delete_access(access.id)
        logger.info("access_item_deleted", access_id=access_id)

    def get_grouped_access(
        self,
        event_id: str,
        form_data: Mapping[str, Any],
        selected_access_ids: Sequence[str] = (),
        now: datetime | None = None,
    ) -> GroupedAccess:
        """Group the items a registrant may currently see into days and time slots."""
        event = self._get_event(event_id)
        now = now or timezone.now()
        selected_ids = _parse_access_ids(selected_access_ids)
        visible = [
            access
            for access in self._store.list_access(event.id, active=True)
            if is_visible(access, now, form_data, selected_ids)
        ]
        return group_by_time_slot(visible)

    def validate_selections(
        self,
        event_id: str,
        selections: Sequence[Selection],
        form_data: Mapping[str, Any],
        now: datetime | None = None,
    ) -> ValidationResult:
        """Check a candidate selection. Advisory: reservation re-checks capacity."""
        event = self._get_event(event_id)
        if not selections:
            return ValidationResult()
        result = validate_selections(
            self._store.list_access(event.id, active=True),
            selections,
            form_data,
            now or timezone.now(),
        )
        if not result.valid:
            logger.info("access_selection_rejected", event_id=event_id, errors=len(result.errors))
        return result
