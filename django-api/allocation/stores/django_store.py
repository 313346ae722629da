"""Django ORM implementation of the AccessStore."""

import functools
from collections.abc import Callable
from decimal import Decimal
from typing import Any, ParamSpec, TypeVar

import structlog
from django.db import IntegrityError, OperationalError, transaction
from django.db.models import F, Q

from allocation import models
from allocation.domain.errors import (
    AccessCapacityExceededError,
    AccessLimitBelowCountError,
    StorageUnavailableError,
)
from allocation.domain.models import (
    AccessCondition,
    AccessItem,
    AccessType,
    ConditionLogic,
    Event,
    WaitlistPromotion,
)
from allocation.domain.value_objects import (
    AccessItemId,
    Capacity,
    EventId,
    Money,
    RegistrationId,
)
from allocation.stores.interfaces import AccessStore

logger = structlog.get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def storage_guard(func: Callable[P, R]) -> Callable[P, R]:
    """Surface backend failures (lost connection, lock timeout) as StorageUnavailableError."""

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return func(*args, **kwargs)
        except OperationalError as exc:
            logger.error("storage_operation_failed", operation=func.__name__, error=str(exc))
            raise StorageUnavailableError() from exc

    return wrapper


def _optional_capacity(value: int | None) -> Capacity | None:
    return None if value is None else Capacity(value)


def to_domain_event(event: models.Event) -> Event:
    return Event(
        id=EventId(event.id),
        name=event.name,
        start_date=event.start_date,
        end_date=event.end_date,
        base_price=Money(Decimal(event.base_price)),
        currency=event.currency,
    )


def to_domain_access(access: models.AccessItem) -> AccessItem:
    conditions = tuple(
        AccessCondition(
            field_id=rule.get("field_id", ""),
            operator=rule.get("operator", ""),
            value=rule.get("value"),
        )
        for rule in access.conditions or []
    )
    return AccessItem(
        id=AccessItemId(access.id),
        event_id=EventId(access.event_id),
        type=AccessType(access.type),
        name=access.name,
        description=access.description,
        location=access.location,
        price=Money(Decimal(access.price)),
        currency=access.currency,
        starts_at=access.starts_at,
        ends_at=access.ends_at,
        max_capacity=_optional_capacity(access.max_capacity),
        registered_count=access.registered_count,
        waitlist_enabled=access.waitlist_enabled,
        max_waitlist=_optional_capacity(access.max_waitlist),
        waitlist_count=access.waitlist_count,
        available_from=access.available_from,
        available_to=access.available_to,
        conditions=conditions,
        condition_logic=ConditionLogic(access.condition_logic),
        required_ids=frozenset(AccessItemId(required.id) for required in access.required_access.all()),
        sort_order=access.sort_order,
        active=access.active,
        created_at=access.created_at,
    )


def _has_capacity_for(quantity: int) -> Q:
    return Q(max_capacity__isnull=True) | Q(registered_count__lte=F("max_capacity") - quantity)


def _has_waitlist_room_for(quantity: int) -> Q:
    return Q(max_waitlist__isnull=True) | Q(waitlist_count__lte=F("max_waitlist") - quantity)


class DjangoAccessStore(AccessStore):
    """Relational access store using Django ORM conditional updates."""

    def _queryset(self):
        return models.AccessItem.objects.prefetch_related("required_access")

    @storage_guard
    def get_event(self, event_id: EventId) -> Event | None:
        event = models.Event.objects.filter(pk=event_id.value).first()
        return None if event is None else to_domain_event(event)

    @storage_guard
    def list_access(
        self,
        event_id: EventId,
        *,
        active: bool | None = None,
        access_type: AccessType | None = None,
    ) -> list[AccessItem]:
        queryset = self._queryset().filter(event_id=event_id.value)
        if active is not None:
            queryset = queryset.filter(active=active)
        if access_type is not None:
            queryset = queryset.filter(type=access_type.value)
        return [to_domain_access(access) for access in queryset]

    @storage_guard
    def get_access(self, access_id: AccessItemId) -> AccessItem | None:
        access = self._queryset().filter(pk=access_id.value).first()
        return None if access is None else to_domain_access(access)

    @storage_guard
    def create_access(
        self,
        event_id: EventId,
        values: dict[str, Any],
        required_ids: frozenset[AccessItemId],
    ) -> AccessItem:
        with transaction.atomic():
            access = models.AccessItem.objects.create(event_id=event_id.value, **values)
            access.required_access.set([required.value for required in required_ids])
        return to_domain_access(self._queryset().get(pk=access.pk))

    @storage_guard
    def update_access(
        self,
        access_id: AccessItemId,
        values: dict[str, Any],
        required_ids: frozenset[AccessItemId] | None,
    ) -> AccessItem:
        try:
            with transaction.atomic():
                access = models.AccessItem.objects.get(pk=access_id.value)
                for name, value in values.items():
                    setattr(access, name, value)
                # Counters are never part of update_fields: saving them would
                # overwrite concurrent reservations with a stale value.
                access.save(update_fields=[*values, "updated_at"])
                if required_ids is not None:
                    access.required_access.set([required.value for required in required_ids])
        except IntegrityError as exc:
            # A reservation landed between the service check and this write.
            raise AccessLimitBelowCountError() from exc
        return to_domain_access(self._queryset().get(pk=access_id.value))

    @storage_guard
    def delete_access(self, access_id: AccessItemId) -> None:
        models.AccessItem.objects.filter(pk=access_id.value).delete()

    @storage_guard
    def count_selections(self, access_id: AccessItemId) -> int:
        return models.RegistrationAccess.objects.filter(access_id=access_id.value).count()

    @storage_guard
    def try_reserve_capacity(
        self,
        access_id: AccessItemId,
        quantity: int,
        registration_id: RegistrationId | None = None,
    ) -> bool:
        with transaction.atomic():
            updated = models.AccessItem.objects.filter(
                _has_capacity_for(quantity), pk=access_id.value
            ).update(registered_count=F("registered_count") + quantity)
            if not updated:
                return False
            if registration_id is not None:
                models.RegistrationAccess.objects.update_or_create(
                    registration_id=registration_id.value,
                    access_id=access_id.value,
                    defaults={
                        "quantity": quantity,
                        "status": models.RegistrationAccess.Status.CONFIRMED,
                        "waitlist_position": None,
                    },
                )
        return True

    @storage_guard
    def try_reserve_waitlist(
        self,
        access_id: AccessItemId,
        quantity: int,
        registration_id: RegistrationId | None = None,
    ) -> int | None:
        with transaction.atomic():
            updated = models.AccessItem.objects.filter(
                _has_waitlist_room_for(quantity), pk=access_id.value, waitlist_enabled=True
            ).update(waitlist_count=F("waitlist_count") + quantity)
            if not updated:
                return None
            # The row stays locked by our UPDATE until commit, so this read
            # sees exactly the value we produced.
            new_count = (
                models.AccessItem.objects.filter(pk=access_id.value)
                .values_list("waitlist_count", flat=True)
                .get()
            )
            position = new_count - quantity + 1
            if registration_id is not None:
                models.RegistrationAccess.objects.update_or_create(
                    registration_id=registration_id.value,
                    access_id=access_id.value,
                    defaults={
                        "quantity": quantity,
                        "status": models.RegistrationAccess.Status.WAITLISTED,
                        "waitlist_position": position,
                    },
                )
        return position

    @storage_guard
    def release_capacity(self, access_id: AccessItemId, quantity: int) -> bool:
        updated = models.AccessItem.objects.filter(
            pk=access_id.value, registered_count__gte=quantity
        ).update(registered_count=F("registered_count") - quantity)
        return bool(updated)

    @storage_guard
    def release_waitlist(self, access_id: AccessItemId, quantity: int) -> bool:
        updated = models.AccessItem.objects.filter(
            pk=access_id.value, waitlist_count__gte=quantity
        ).update(waitlist_count=F("waitlist_count") - quantity)
        return bool(updated)

    @storage_guard
    def promote_next_waitlisted(self, access_id: AccessItemId) -> WaitlistPromotion | None:
        waitlisted = models.RegistrationAccess.Status.WAITLISTED
        with transaction.atomic():
            entry = (
                models.RegistrationAccess.objects.select_for_update()
                .filter(access_id=access_id.value, status=waitlisted)
                .order_by("waitlist_position", "created_at")
                .first()
            )
            if entry is None:
                return None

            claimed = models.RegistrationAccess.objects.filter(pk=entry.pk, status=waitlisted).update(
                status=models.RegistrationAccess.Status.PROMOTED, waitlist_position=None
            )
            if not claimed:
                return None

            moved = models.AccessItem.objects.filter(
                _has_capacity_for(entry.quantity),
                pk=access_id.value,
                waitlist_count__gte=entry.quantity,
            ).update(
                registered_count=F("registered_count") + entry.quantity,
                waitlist_count=F("waitlist_count") - entry.quantity,
            )
            if not moved:
                raise AccessCapacityExceededError()

            email = (
                models.Registration.objects.filter(pk=entry.registration_id)
                .values_list("email", flat=True)
                .get()
            )
        return WaitlistPromotion(
            registration_id=RegistrationId(entry.registration_id),
            email=email,
            quantity=entry.quantity,
        )
