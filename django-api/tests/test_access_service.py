"""Integration tests for AccessService.

These test orchestration and domain error mapping over the Django store.
Run with: pytest tests/test_access_service.py -v
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from allocation import models
from allocation.domain.errors import (
    AccessDateOutOfBoundsError,
    AccessHasRegistrationsError,
    AccessLimitBelowCountError,
    AccessNotFoundError,
    BadRequestError,
    CircularDependencyError,
    ErrorCode,
    EventNotFoundError,
    InvalidIdError,
    PrerequisiteNotFoundError,
)
from allocation.domain.models import AccessType, Selection, SelectionType
from allocation.domain.value_objects import AccessItemId
from allocation.services.access_service import AccessService
from allocation.stores.django_store import DjangoAccessStore

NINE = datetime(2025, 6, 1, 9, 0, tzinfo=UTC)
BEFORE_OPENING = datetime(2025, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def service() -> AccessService:
    return AccessService(DjangoAccessStore())


@pytest.mark.django_db
class TestCreateAccess:
    """Tests for AccessService.create_access"""

    def test_creates_item_with_prerequisites(self, service, event, make_access):
        basics = make_access("Basics")
        created = service.create_access(
            str(event.id),
            {"name": "Advanced", "type": "WORKSHOP", "price": Decimal("50.00"), "starts_at": NINE},
            [str(basics.id)],
        )
        assert created.name == "Advanced"
        assert created.type is AccessType.WORKSHOP
        assert created.required_ids == frozenset({AccessItemId(basics.id)})

    def test_unknown_event(self, service):
        with pytest.raises(EventNotFoundError):
            service.create_access("9b2f8a8e-4c1e-4a57-9d0e-6f1f0f2d6a11", {"name": "X"})

    def test_malformed_event_id(self, service):
        with pytest.raises(InvalidIdError):
            service.create_access("nope", {"name": "X"})

    def test_prerequisite_from_another_event_is_rejected(self, service, event, other_event, make_access):
        foreign = make_access("Foreign", event=other_event)
        with pytest.raises(PrerequisiteNotFoundError):
            service.create_access(str(event.id), {"name": "X"}, [str(foreign.id)])

    def test_schedule_outside_event_dates(self, service, event):
        with pytest.raises(AccessDateOutOfBoundsError) as exc_info:
            service.create_access(str(event.id), {"name": "X", "starts_at": NINE + timedelta(days=10)})
        assert exc_info.value.code is ErrorCode.ACCESS_DATE_OUT_OF_BOUNDS

    def test_end_before_start(self, service, event):
        with pytest.raises(BadRequestError):
            service.create_access(
                str(event.id), {"name": "X", "starts_at": NINE, "ends_at": NINE - timedelta(hours=1)}
            )


@pytest.mark.django_db
class TestUpdateAccess:
    """Tests for AccessService.update_access"""

    def test_partial_update_keeps_counters(self, service, make_access):
        access = make_access(max_capacity=10, registered_count=4)
        updated = service.update_access(str(access.id), {"name": "Renamed", "max_capacity": 12})
        assert updated.name == "Renamed"
        assert updated.registered_count == 4
        assert updated.max_capacity.value == 12

    def test_capacity_below_registrations_is_rejected(self, service, make_access):
        access = make_access(max_capacity=10, registered_count=4)
        with pytest.raises(BadRequestError):
            service.update_access(str(access.id), {"max_capacity": 3})

    def test_waitlist_limit_below_waitlisted_is_rejected(self, service, make_access):
        access = make_access(waitlist_enabled=True, max_waitlist=5, waitlist_count=4)
        with pytest.raises(BadRequestError) as exc_info:
            service.update_access(str(access.id), {"max_waitlist": 2})
        assert exc_info.value.code is ErrorCode.BAD_REQUEST
        access.refresh_from_db()
        assert access.max_waitlist == 5

    def test_limit_raced_by_a_reservation_is_a_conflict(self, make_access):
        access = make_access(max_capacity=10, registered_count=4)
        with pytest.raises(AccessLimitBelowCountError) as exc_info:
            DjangoAccessStore().update_access(AccessItemId(access.id), {"max_capacity": 3}, None)
        assert exc_info.value.code is ErrorCode.CONFLICT
        access.refresh_from_db()
        assert access.max_capacity == 10

    def test_cycle_is_rejected(self, service, make_access):
        c = make_access("C")
        b = make_access("B")
        b.required_access.set([c])
        a = make_access("A")
        a.required_access.set([b])
        with pytest.raises(CircularDependencyError):
            service.update_access(str(c.id), {}, [str(a.id)])
        assert not models.AccessItem.objects.get(pk=c.pk).required_access.exists()

    def test_valid_prerequisite_change(self, service, make_access):
        a = make_access("A")
        b = make_access("B")
        updated = service.update_access(str(a.id), {}, [str(b.id)])
        assert updated.required_ids == frozenset({AccessItemId(b.id)})

    def test_reschedule_out_of_bounds(self, service, make_access):
        access = make_access(starts_at=NINE)
        with pytest.raises(AccessDateOutOfBoundsError):
            service.update_access(str(access.id), {"starts_at": NINE - timedelta(days=5)})

    def test_unknown_access(self, service):
        with pytest.raises(AccessNotFoundError) as exc_info:
            service.update_access("9b2f8a8e-4c1e-4a57-9d0e-6f1f0f2d6a11", {"name": "X"})
        assert exc_info.value.code is ErrorCode.ACCESS_NOT_FOUND


@pytest.mark.django_db
class TestDeleteAndList:
    def test_delete_unused_item(self, service, make_access):
        access = make_access()
        service.delete_access(str(access.id))
        assert not models.AccessItem.objects.filter(pk=access.pk).exists()

    def test_delete_selected_item_is_refused(self, service, make_access, make_registration):
        access = make_access()
        make_registration(items=[(access, "50.00")])
        with pytest.raises(AccessHasRegistrationsError):
            service.delete_access(str(access.id))

    def test_list_filters(self, service, event, make_access):
        make_access("Dinner", type=AccessType.DINNER.value)
        make_access("Workshop")
        make_access("Hidden", active=False)
        names = [item.name for item in service.list_access(str(event.id), active=True)]
        assert sorted(names) == ["Dinner", "Workshop"]
        dinners = service.list_access(str(event.id), access_type=AccessType.DINNER)
        assert [item.name for item in dinners] == ["Dinner"]


@pytest.mark.django_db
class TestGroupedAccess:
    def test_groups_visible_items(self, service, event, make_access):
        make_access("Workshop A", starts_at=NINE, max_capacity=30)
        make_access("Workshop B", starts_at=NINE)
        make_access("Inactive", starts_at=NINE, active=False)
        make_access("Hotel", type=AccessType.ACCOMMODATION.value)

        grouped = service.get_grouped_access(str(event.id), {}, now=BEFORE_OPENING)

        [day] = grouped.date_groups
        [slot] = day.slots
        assert slot.selection_type is SelectionType.SINGLE
        assert {entry.item.name for entry in slot.items} == {"Workshop A", "Workshop B"}
        assert [entry.item.name for entry in grouped.ungrouped] == ["Hotel"]

    def test_prerequisite_gated_items_appear_once_selected(self, service, event, make_access):
        basics = make_access("Basics")
        advanced = make_access("Advanced")
        advanced.required_access.set([basics])

        hidden = service.get_grouped_access(str(event.id), {}, now=BEFORE_OPENING)
        shown = service.get_grouped_access(str(event.id), {}, [str(basics.id)], now=BEFORE_OPENING)

        assert [entry.item.name for entry in hidden.ungrouped] == ["Basics"]
        assert {entry.item.name for entry in shown.ungrouped} == {"Basics", "Advanced"}


@pytest.mark.django_db
class TestValidateSelections:
    def test_time_conflict(self, service, event, make_access):
        a = make_access("Workshop A", starts_at=NINE, max_capacity=30)
        b = make_access("Workshop B", starts_at=NINE)
        result = service.validate_selections(
            str(event.id),
            [Selection(access_id=AccessItemId(a.id)), Selection(access_id=AccessItemId(b.id))],
            {},
            now=BEFORE_OPENING,
        )
        assert not result.valid
        assert "Workshop A" in result.errors[0] and "Workshop B" in result.errors[0]

    def test_empty_selection(self, service, event):
        assert service.validate_selections(str(event.id), [], {}).valid
