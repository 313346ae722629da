"""Django ORM implementation of the SponsorshipStore."""

from decimal import Decimal
from typing import Any
from uuid import UUID

from django.db import IntegrityError, transaction
from django.db.models import Q

from allocation import models as allocation_models
from allocation.domain.value_objects import AccessItemId, EventId, Money, RegistrationId
from allocation.stores.django_store import storage_guard
from sponsorships import models
from sponsorships.domain.errors import SponsorshipAlreadyLinkedError
from sponsorships.domain.models import (
    AccessCharge,
    Beneficiary,
    Coverage,
    LinkedSponsorship,
    PriceBreakdown,
    RegistrationSnapshot,
    Sponsor,
    Sponsorship,
    SponsorshipId,
    SponsorshipStatus,
    SponsorshipUsage,
)
from sponsorships.stores.interfaces import SponsorshipStore

SORTABLE_FIELDS = frozenset({"created_at", "code", "beneficiary_name", "total_amount", "status"})

SEARCH_FIELDS = (
    "code__icontains",
    "beneficiary_name__icontains",
    "beneficiary_email__icontains",
    "batch__lab_name__icontains",
    "batch__contact_name__icontains",
)


def to_domain_sponsorship(sponsorship: models.Sponsorship) -> Sponsorship:
    return Sponsorship(
        id=SponsorshipId(sponsorship.id),
        event_id=EventId(sponsorship.event_id),
        batch_id=sponsorship.batch_id,
        code=sponsorship.code,
        status=SponsorshipStatus(sponsorship.status),
        beneficiary_name=sponsorship.beneficiary_name,
        beneficiary_email=sponsorship.beneficiary_email,
        beneficiary_phone=sponsorship.beneficiary_phone,
        beneficiary_address=sponsorship.beneficiary_address,
        coverage=Coverage(
            covers_base_price=sponsorship.covers_base_price,
            covered_access_ids=frozenset(
                AccessItemId.from_string(value) for value in sponsorship.covered_access_ids or []
            ),
        ),
        total_amount=Money(Decimal(sponsorship.total_amount)),
        lab_name=sponsorship.batch.lab_name,
        created_at=sponsorship.created_at,
    )


def to_domain_usage(usage: models.SponsorshipUsage) -> SponsorshipUsage:
    return SponsorshipUsage(
        id=usage.id,
        sponsorship_id=SponsorshipId(usage.sponsorship_id),
        registration_id=RegistrationId(usage.registration_id),
        amount_applied=Money(Decimal(usage.amount_applied)),
        applied_by=usage.applied_by,
        applied_at=usage.applied_at,
    )


def _to_price_breakdown(raw: dict[str, Any] | None) -> PriceBreakdown:
    raw = raw or {}
    calculated = raw.get("calculated_base_price")
    return PriceBreakdown(
        calculated_base_price=None if calculated is None else Money(calculated),
        access_items=tuple(
            AccessCharge(
                access_id=AccessItemId.from_string(str(entry["access_id"])),
                subtotal=Money(entry.get("subtotal", 0)),
            )
            for entry in raw.get("access_items", [])
            if entry.get("access_id")
        ),
    )


def to_domain_registration(registration: allocation_models.Registration) -> RegistrationSnapshot:
    # Waitlisted selections are not charged, so sponsorships never cover them.
    held = [
        selection.access_id
        for selection in registration.access_selections.all()
        if selection.status != allocation_models.RegistrationAccess.Status.WAITLISTED
    ]
    return RegistrationSnapshot(
        id=RegistrationId(registration.id),
        event_id=EventId(registration.event_id),
        email=registration.email,
        total_amount=Money(Decimal(registration.total_amount)),
        base_amount=Money(Decimal(registration.base_amount)),
        access_ids=frozenset(AccessItemId(access_id) for access_id in held),
        price_breakdown=_to_price_breakdown(registration.price_breakdown),
        sponsorship_amount=Money(Decimal(registration.sponsorship_amount)),
    )


class DjangoSponsorshipStore(SponsorshipStore):
    """Relational sponsorship store backed by the Django ORM."""

    def _sponsorships(self):
        return models.Sponsorship.objects.select_related("batch")

    def _registrations(self):
        return allocation_models.Registration.objects.prefetch_related("access_selections")

    def atomic(self):
        return transaction.atomic()

    @storage_guard
    def code_exists(self, code: str) -> bool:
        return models.Sponsorship.objects.filter(code=code).exists()

    @storage_guard
    def create_batch(self, event_id: EventId, sponsor: Sponsor, form_data: dict[str, Any]) -> UUID:
        batch = models.SponsorshipBatch.objects.create(
            event_id=event_id.value,
            lab_name=sponsor.lab_name,
            contact_name=sponsor.contact_name,
            email=sponsor.email,
            phone=sponsor.phone,
            form_data=form_data,
        )
        return batch.id

    @storage_guard
    def create_sponsorship(
        self,
        event_id: EventId,
        batch_id: UUID,
        code: str,
        status: SponsorshipStatus,
        beneficiary: Beneficiary,
        total_amount: Money,
    ) -> Sponsorship:
        sponsorship = models.Sponsorship.objects.create(
            event_id=event_id.value,
            batch_id=batch_id,
            code=code,
            status=status.value,
            beneficiary_name=beneficiary.name,
            beneficiary_email=beneficiary.email,
            beneficiary_phone=beneficiary.phone,
            beneficiary_address=beneficiary.address,
            covers_base_price=beneficiary.coverage.covers_base_price,
            covered_access_ids=sorted(str(access_id) for access_id in beneficiary.coverage.covered_access_ids),
            total_amount=total_amount.amount,
        )
        return to_domain_sponsorship(self._sponsorships().get(pk=sponsorship.pk))

    @storage_guard
    def get_sponsorship(self, sponsorship_id: SponsorshipId) -> Sponsorship | None:
        sponsorship = self._sponsorships().filter(pk=sponsorship_id.value).first()
        return None if sponsorship is None else to_domain_sponsorship(sponsorship)

    @storage_guard
    def get_sponsorship_by_code(self, event_id: EventId, code: str) -> Sponsorship | None:
        sponsorship = self._sponsorships().filter(event_id=event_id.value, code=code).first()
        return None if sponsorship is None else to_domain_sponsorship(sponsorship)

    @storage_guard
    def list_sponsorships(
        self,
        event_id: EventId,
        *,
        status: SponsorshipStatus | None = None,
        search: str | None = None,
        sort_by: str = "created_at",
        descending: bool = True,
    ) -> list[Sponsorship]:
        queryset = self._sponsorships().filter(event_id=event_id.value)
        if status is not None:
            queryset = queryset.filter(status=status.value)
        if search:
            matches = Q()
            for lookup in SEARCH_FIELDS:
                matches |= Q(**{lookup: search})
            queryset = queryset.filter(matches)
        if sort_by not in SORTABLE_FIELDS:
            sort_by = "created_at"
        ordering = f"-{sort_by}" if descending else sort_by
        return [to_domain_sponsorship(sponsorship) for sponsorship in queryset.order_by(ordering, "id")]

    @storage_guard
    def update_sponsorship(self, sponsorship_id: SponsorshipId, values: dict[str, Any]) -> Sponsorship:
        sponsorship = models.Sponsorship.objects.get(pk=sponsorship_id.value)
        for name, value in values.items():
            setattr(sponsorship, name, value)
        sponsorship.save(update_fields=[*values, "updated_at"])
        return to_domain_sponsorship(self._sponsorships().get(pk=sponsorship_id.value))

    @storage_guard
    def set_status(self, sponsorship_id: SponsorshipId, status: SponsorshipStatus) -> None:
        models.Sponsorship.objects.filter(pk=sponsorship_id.value).update(status=status.value)

    @storage_guard
    def lock_sponsorship(self, sponsorship_id: SponsorshipId) -> Sponsorship | None:
        sponsorship = (
            self._sponsorships().select_for_update(of=("self",)).filter(pk=sponsorship_id.value).first()
        )
        return None if sponsorship is None else to_domain_sponsorship(sponsorship)

    @storage_guard
    def transition_status(
        self, sponsorship_id: SponsorshipId, expected: SponsorshipStatus, status: SponsorshipStatus
    ) -> bool:
        updated = models.Sponsorship.objects.filter(pk=sponsorship_id.value, status=expected.value).update(
            status=status.value
        )
        return bool(updated)

    @storage_guard
    def mark_used(self, sponsorship_id: SponsorshipId) -> bool:
        updated = (
            models.Sponsorship.objects.filter(pk=sponsorship_id.value)
            .exclude(status=SponsorshipStatus.CANCELLED.value)
            .update(status=SponsorshipStatus.USED.value)
        )
        return bool(updated)

    @storage_guard
    def delete_sponsorship(self, sponsorship_id: SponsorshipId) -> None:
        models.Sponsorship.objects.filter(pk=sponsorship_id.value).delete()

    @storage_guard
    def get_registration(self, registration_id: RegistrationId) -> RegistrationSnapshot | None:
        registration = self._registrations().filter(pk=registration_id.value).first()
        return None if registration is None else to_domain_registration(registration)

    @storage_guard
    def get_registrations(
        self, event_id: EventId, registration_ids: list[RegistrationId]
    ) -> list[RegistrationSnapshot]:
        queryset = self._registrations().filter(
            event_id=event_id.value,
            pk__in=[registration_id.value for registration_id in registration_ids],
        )
        return [to_domain_registration(registration) for registration in queryset]

    @storage_guard
    def list_linked(self, registration_id: RegistrationId) -> list[LinkedSponsorship]:
        usages = (
            models.SponsorshipUsage.objects.select_related("sponsorship__batch")
            .filter(registration_id=registration_id.value)
            .order_by("applied_at", "id")
        )
        return [
            LinkedSponsorship(usage=to_domain_usage(usage), sponsorship=to_domain_sponsorship(usage.sponsorship))
            for usage in usages
        ]

    @storage_guard
    def list_usages(self, sponsorship_id: SponsorshipId) -> list[SponsorshipUsage]:
        usages = models.SponsorshipUsage.objects.filter(sponsorship_id=sponsorship_id.value).order_by(
            "applied_at", "id"
        )
        return [to_domain_usage(usage) for usage in usages]

    @storage_guard
    def get_usage(
        self, sponsorship_id: SponsorshipId, registration_id: RegistrationId
    ) -> SponsorshipUsage | None:
        usage = models.SponsorshipUsage.objects.filter(
            sponsorship_id=sponsorship_id.value, registration_id=registration_id.value
        ).first()
        return None if usage is None else to_domain_usage(usage)

    @storage_guard
    def create_usage(
        self,
        sponsorship_id: SponsorshipId,
        registration_id: RegistrationId,
        amount: Money,
        applied_by: str,
    ) -> SponsorshipUsage:
        try:
            with transaction.atomic():
                usage = models.SponsorshipUsage.objects.create(
                    sponsorship_id=sponsorship_id.value,
                    registration_id=registration_id.value,
                    amount_applied=amount.amount,
                    applied_by=applied_by,
                )
        except IntegrityError as exc:
            raise SponsorshipAlreadyLinkedError() from exc
        return to_domain_usage(usage)

    @storage_guard
    def update_usage_amount(self, usage_id: UUID, amount: Money) -> None:
        models.SponsorshipUsage.objects.filter(pk=usage_id).update(amount_applied=amount.amount)

    @storage_guard
    def delete_usage(self, usage_id: UUID) -> bool:
        deleted, _ = models.SponsorshipUsage.objects.filter(pk=usage_id).delete()
        return bool(deleted)

    @storage_guard
    def count_usages(self, sponsorship_id: SponsorshipId) -> int:
        return models.SponsorshipUsage.objects.filter(sponsorship_id=sponsorship_id.value).count()

    @storage_guard
    def set_registration_sponsorship_amount(self, registration_id: RegistrationId, amount: Money) -> None:
        allocation_models.Registration.objects.filter(pk=registration_id.value).update(
            sponsorship_amount=amount.amount
        )
