"""Django ORM models (persistence layer) for sponsorships."""

import uuid

from django.db import models

from allocation.models import Event, Registration
from sponsorships.domain.models import SponsorshipStatus


class SponsorshipBatch(models.Model):
    """One sponsor submission; groups the sponsorships it paid for."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="sponsorship_batches")
    lab_name = models.CharField(max_length=200)
    contact_name = models.CharField(max_length=200)
    email = models.EmailField()
    phone = models.CharField(max_length=50, blank=True, null=True)
    form_data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.lab_name} ({self.event})"


class Sponsorship(models.Model):
    """Persistence model for a pre-paid coverage grant."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    batch = models.ForeignKey(SponsorshipBatch, on_delete=models.CASCADE, related_name="sponsorships")
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="sponsorships")
    code = models.CharField(max_length=7, unique=True)
    status = models.CharField(
        max_length=10,
        choices=[(s.value, s.value) for s in SponsorshipStatus],
        default=SponsorshipStatus.PENDING,
    )
    beneficiary_name = models.CharField(max_length=200)
    beneficiary_email = models.EmailField()
    beneficiary_phone = models.CharField(max_length=50, blank=True, null=True)
    beneficiary_address = models.CharField(max_length=500, blank=True, null=True)
    covers_base_price = models.BooleanField(default=False)
    covered_access_ids = models.JSONField(default=list, blank=True)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["event", "status"]),
        ]

    def __str__(self) -> str:
        return f"{self.code} - {self.beneficiary_name}"


class SponsorshipUsage(models.Model):
    """A sponsorship applied to a registration, with the amount credited."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    sponsorship = models.ForeignKey(Sponsorship, on_delete=models.CASCADE, related_name="usages")
    registration = models.ForeignKey(
        Registration, on_delete=models.CASCADE, related_name="sponsorship_usages"
    )
    amount_applied = models.DecimalField(max_digits=10, decimal_places=2)
    applied_by = models.CharField(max_length=100)
    applied_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["sponsorship", "registration"], name="unique_sponsorship_registration"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.sponsorship.code} -> {self.registration}"
