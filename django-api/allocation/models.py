"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/.
Counters on AccessItem are only ever changed through conditional UPDATE
statements issued by stores/django_store.py.
"""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from allocation.domain.models import AccessType, ConditionLogic


class Event(models.Model):
    """Persistence model for events."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    base_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    currency = models.CharField(max_length=3, default=settings.DEFAULT_CURRENCY)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-start_date"]

    def __str__(self) -> str:
        return self.name


class AccessItem(models.Model):
    """Persistence model for optional, separately priced event components."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="access_items")
    type = models.CharField(
        max_length=20,
        choices=[(t.value, t.value) for t in AccessType],
        default=AccessType.OTHER,
    )
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, null=True)
    location = models.CharField(max_length=500, blank=True, null=True)

    starts_at = models.DateTimeField(blank=True, null=True)
    ends_at = models.DateTimeField(blank=True, null=True)

    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    currency = models.CharField(max_length=3, default=settings.DEFAULT_CURRENCY)

    max_capacity = models.PositiveIntegerField(blank=True, null=True)
    registered_count = models.PositiveIntegerField(default=0)
    waitlist_enabled = models.BooleanField(default=False)
    max_waitlist = models.PositiveIntegerField(blank=True, null=True)
    waitlist_count = models.PositiveIntegerField(default=0)

    available_from = models.DateTimeField(blank=True, null=True)
    available_to = models.DateTimeField(blank=True, null=True)

    conditions = models.JSONField(default=list, blank=True)
    condition_logic = models.CharField(
        max_length=3,
        choices=[(logic.value, logic.value) for logic in ConditionLogic],
        default=ConditionLogic.AND,
    )
    required_access = models.ManyToManyField(
        "self", symmetrical=False, related_name="required_by", blank=True
    )

    sort_order = models.IntegerField(default=0)
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["sort_order", "starts_at", "created_at"]
        indexes = [
            models.Index(fields=["event", "active"]),
            models.Index(fields=["event", "starts_at"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(max_capacity__isnull=True) | Q(registered_count__lte=F("max_capacity")),
                name="access_registered_within_capacity",
            ),
            models.CheckConstraint(
                condition=Q(max_waitlist__isnull=True) | Q(waitlist_count__lte=F("max_waitlist")),
                name="access_waitlist_within_limit",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.type})"


class Registration(models.Model):
    """The slice of a registrant's record the engine reads and writes.

    ``price_breakdown`` is the cached pricing snapshot computed at checkout:
    ``{"calculated_base_price": ..., "access_items": [{"access_id", "subtotal"}]}``.
    ``sponsorship_amount`` is denormalized from SponsorshipUsage rows and is
    recomputed from them on every mutation.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="registrations")
    email = models.EmailField()
    first_name = models.CharField(max_length=100, blank=True, null=True)
    last_name = models.CharField(max_length=100, blank=True, null=True)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    base_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    price_breakdown = models.JSONField(default=dict, blank=True)
    sponsorship_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.email


class RegistrationAccess(models.Model):
    """An access item held by a registration, confirmed or on the waitlist."""

    class Status(models.TextChoices):
        CONFIRMED = "CONFIRMED"
        WAITLISTED = "WAITLISTED"
        PROMOTED = "PROMOTED"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    registration = models.ForeignKey(
        Registration, on_delete=models.CASCADE, related_name="access_selections"
    )
    access = models.ForeignKey(AccessItem, on_delete=models.PROTECT, related_name="selections")
    quantity = models.PositiveIntegerField(default=1)
    status = models.CharField(max_length=12, choices=Status.choices, default=Status.CONFIRMED)
    waitlist_position = models.PositiveIntegerField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["access", "status", "waitlist_position"]),
        ]
        constraints = [
            models.UniqueConstraint(fields=["registration", "access"], name="unique_registration_access"),
        ]

    def __str__(self) -> str:
        return f"{self.registration} - {self.access} ({self.status})"
