"""Sponsorship service - batches, administration and linking to registrations.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors

Every path that creates, edits or removes a usage recomputes the registration's
``sponsorship_amount`` from its usage rows.
"""

from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from allocation.domain.errors import BadRequestError, ErrorCode, EventNotFoundError, InvalidIdError
from allocation.domain.models import AccessItem, Event
from allocation.domain.value_objects import AccessItemId, Money, RegistrationId
from allocation.services.access_service import parse_event_id
from allocation.services.reservation import parse_access_id
from allocation.stores.interfaces import AccessStore
from sponsorships.domain.codes import generate_unique_code
from sponsorships.domain.coverage import (
    calculate_applicable_amount,
    calculate_sponsorship_total,
    calculate_total_sponsorship_amount,
    determine_sponsorship_status,
    preview_coverage,
)
from sponsorships.domain.errors import (
    EmptyCoverageError,
    EventMismatchError,
    InvalidCoveredAccessError,
    RegistrationNotFoundError,
    SponsorshipAlreadyLinkedError,
    SponsorshipCancelledError,
    SponsorshipNotApplicableError,
    SponsorshipNotFoundError,
    SponsorshipNotLinkedError,
    SponsorshipStatusConflictError,
)
from sponsorships.domain.models import (
    AvailableSponsorship,
    BatchResult,
    Beneficiary,
    Coverage,
    LinkedSponsorship,
    LinkResult,
    RegistrationSnapshot,
    Sponsor,
    Sponsorship,
    SponsorshipId,
    SponsorshipStatus,
)
from sponsorships.stores.interfaces import SponsorshipStore

logger = structlog.get_logger(__name__)

SYSTEM_ACTOR = "SYSTEM"

BENEFICIARY_FIELDS = ("beneficiary_name", "beneficiary_email", "beneficiary_phone", "beneficiary_address")


def parse_sponsorship_id(sponsorship_id: str) -> SponsorshipId:
    try:
        return SponsorshipId.from_string(sponsorship_id)
    except ValueError as exc:
        raise InvalidIdError("sponsorship") from exc


def parse_registration_id(registration_id: str) -> RegistrationId:
    try:
        return RegistrationId.from_string(registration_id)
    except ValueError as exc:
        raise InvalidIdError("registration") from exc


def normalize_code(code: str) -> str:
    return code.strip().upper()


def _check_coverage(coverage: Coverage, active_items: Mapping[AccessItemId, AccessItem]) -> None:
    if not coverage.covers_base_price and not coverage.covered_access_ids:
        raise EmptyCoverageError()
    invalid = sorted(str(access_id) for access_id in coverage.covered_access_ids if access_id not in active_items)
    if invalid:
        raise InvalidCoveredAccessError(invalid)


class SponsorshipService:
    """Service for sponsorship batches, administration and coverage of registrations."""

    def __init__(
        self,
        store: SponsorshipStore,
        access_store: AccessStore,
        code_max_attempts: int = 10,
    ) -> None:
        self._store = store
        self._access_store = access_store
        self._code_max_attempts = code_max_attempts

    def _get_event(self, event_id: str) -> Event:
        event = self._access_store.get_event(parse_event_id(event_id))
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def _active_items(self, event: Event) -> dict[AccessItemId, AccessItem]:
        return {item.id: item for item in self._access_store.list_access(event.id, active=True)}

    def _get_registration(self, registration_id: str) -> RegistrationSnapshot:
        registration = self._store.get_registration(parse_registration_id(registration_id))
        if registration is None:
            raise RegistrationNotFoundError([registration_id])
        return registration

    def _refresh_registration_amount(self, registration_id: RegistrationId) -> Money:
        """Recompute and store the registration's sponsorship_amount from its usages."""
        linked = self._store.list_linked(registration_id)
        total = calculate_total_sponsorship_amount(entry.usage for entry in linked)
        self._store.set_registration_sponsorship_amount(registration_id, total)
        return total

    def _unlink_all(self, sponsorship: Sponsorship) -> None:
        for usage in self._store.list_usages(sponsorship.id):
            self._store.delete_usage(usage.id)
            self._refresh_registration_amount(usage.registration_id)

    def create_batch(
        self,
        event_id: str,
        sponsor: Sponsor,
        beneficiaries: Sequence[Beneficiary],
        form_data: Mapping[str, Any] | None = None,
    ) -> BatchResult:
        """Record a sponsor's submission and create one sponsorship per beneficiary.

        Beneficiaries without a registration get a PENDING sponsorship and a
        code to hand out. Beneficiaries naming a registration get a USED
        sponsorship linked to it immediately.

        Raises:
            EventNotFoundError: If the event does not exist.
            EmptyCoverageError: If a beneficiary's coverage is empty.
            InvalidCoveredAccessError: If coverage names items that are not active items of the event.
            RegistrationNotFoundError: If a linked registration is not in the event.
            SponsorshipCodeExhaustedError: If no unique code could be drawn.
        """
        event = self._get_event(event_id)
        if not beneficiaries:
            raise BadRequestError(code=ErrorCode.BAD_REQUEST, message="At least one beneficiary is required")

        active_items = self._active_items(event)
        for beneficiary in beneficiaries:
            _check_coverage(beneficiary.coverage, active_items)

        requested = [b.registration_id for b in beneficiaries if b.registration_id is not None]
        registrations = {}
        if requested:
            registrations = {
                registration.id: registration
                for registration in self._store.get_registrations(event.id, requested)
            }
            missing = sorted({str(rid) for rid in requested if rid not in registrations})
            if missing:
                raise RegistrationNotFoundError(missing)

        created = []
        with self._store.atomic():
            batch_id = self._store.create_batch(event.id, sponsor, dict(form_data or {}))
            for beneficiary in beneficiaries:
                coverage = beneficiary.coverage
                total = calculate_sponsorship_total(
                    event.base_price,
                    coverage.covers_base_price,
                    (active_items[access_id] for access_id in coverage.covered_access_ids),
                )
                code = generate_unique_code(self._store.code_exists, self._code_max_attempts)
                linked = beneficiary.registration_id is not None
                sponsorship = self._store.create_sponsorship(
                    event.id,
                    batch_id,
                    code,
                    SponsorshipStatus.USED if linked else SponsorshipStatus.PENDING,
                    beneficiary,
                    total,
                )
                if linked:
                    registration = registrations[beneficiary.registration_id]
                    self._store.create_usage(
                        sponsorship.id,
                        registration.id,
                        calculate_applicable_amount(sponsorship, registration),
                        SYSTEM_ACTOR,
                    )
                created.append(sponsorship)

            for registration_id in registrations:
                self._refresh_registration_amount(registration_id)

        logger.info(
            "sponsorship_batch_created",
            event_id=event_id,
            batch_id=str(batch_id),
            sponsorships=len(created),
            linked=len(requested),
        )
        return BatchResult(batch_id=batch_id, sponsorships=tuple(created))

    def list_sponsorships(
        self,
        event_id: str,
        *,
        status: SponsorshipStatus | None = None,
        search: str | None = None,
        sort_by: str = "created_at",
        descending: bool = True,
    ) -> list[Sponsorship]:
        event = self._get_event(event_id)
        return self._store.list_sponsorships(
            event.id, status=status, search=search, sort_by=sort_by, descending=descending
        )

    def get_sponsorship(self, sponsorship_id: str) -> Sponsorship:
        sponsorship = self._store.get_sponsorship(parse_sponsorship_id(sponsorship_id))
        if sponsorship is None:
            raise SponsorshipNotFoundError(sponsorship_id)
        return sponsorship

    def get_sponsorship_by_code(self, event_id: str, code: str) -> Sponsorship:
        event = self._get_event(event_id)
        sponsorship = self._store.get_sponsorship_by_code(event.id, normalize_code(code))
        if sponsorship is None:
            raise SponsorshipNotFoundError(code, message="Sponsorship code not found")
        return sponsorship

    def update_sponsorship(self, sponsorship_id: str, values: Mapping[str, Any]) -> Sponsorship:
        """Edit beneficiary details and coverage.

        A coverage change recomputes the sponsorship total, the amount applied
        by every usage, and the sponsorship_amount of every linked registration.

        Raises:
            SponsorshipNotFoundError: If the sponsorship does not exist.
            EmptyCoverageError: If the new coverage is empty.
            InvalidCoveredAccessError: If the new coverage names unknown or inactive items.
        """
        sponsorship = self.get_sponsorship(sponsorship_id)
        changes: dict[str, Any] = {name: values[name] for name in BENEFICIARY_FIELDS if name in values}

        coverage_changed = "covers_base_price" in values or "covered_access_ids" in values
        if coverage_changed:
            covered_ids = sponsorship.covered_access_ids
            if "covered_access_ids" in values:
                covered_ids = frozenset(parse_access_id(str(value)) for value in values["covered_access_ids"])
            coverage = Coverage(
                covers_base_price=values.get("covers_base_price", sponsorship.covers_base_price),
                covered_access_ids=covered_ids,
            )
            event = self._get_event(str(sponsorship.event_id))
            active_items = self._active_items(event)
            _check_coverage(coverage, active_items)
            total = calculate_sponsorship_total(
                event.base_price,
                coverage.covers_base_price,
                (active_items[access_id] for access_id in coverage.covered_access_ids),
            )
            changes["covers_base_price"] = coverage.covers_base_price
            changes["covered_access_ids"] = sorted(str(access_id) for access_id in covered_ids)
            changes["total_amount"] = total.amount

        if not changes:
            return sponsorship

        with self._store.atomic():
            updated = self._store.update_sponsorship(sponsorship.id, changes)
            if coverage_changed:
                for usage in self._store.list_usages(updated.id):
                    registration = self._store.get_registration(usage.registration_id)
                    if registration is None:
                        continue
                    self._store.update_usage_amount(
                        usage.id, calculate_applicable_amount(updated, registration)
                    )
                    self._refresh_registration_amount(usage.registration_id)

        logger.info(
            "sponsorship_updated",
            sponsorship_id=sponsorship_id,
            fields=sorted(changes),
            coverage_changed=coverage_changed,
        )
        return updated

    def cancel_sponsorship(self, sponsorship_id: str) -> Sponsorship:
        """Cancel a sponsorship, removing it from every registration it covered.

        Cancellation is final: nothing moves a sponsorship out of CANCELLED.
        """
        sponsorship = self.get_sponsorship(sponsorship_id)
        if sponsorship.status == SponsorshipStatus.CANCELLED:
            return sponsorship

        with self._store.atomic():
            self._store.lock_sponsorship(sponsorship.id)
            self._unlink_all(sponsorship)
            self._store.set_status(sponsorship.id, SponsorshipStatus.CANCELLED)

        logger.info("sponsorship_cancelled", sponsorship_id=sponsorship_id, code=sponsorship.code)
        return self.get_sponsorship(sponsorship_id)

    def delete_sponsorship(self, sponsorship_id: str) -> None:
        sponsorship = self.get_sponsorship(sponsorship_id)
        with self._store.atomic():
            self._unlink_all(sponsorship)
            self._store.delete_sponsorship(sponsorship.id)
        logger.info("sponsorship_deleted", sponsorship_id=sponsorship_id, code=sponsorship.code)

    def link_sponsorship(self, registration_id: str, sponsorship_id: str, applied_by: str) -> LinkResult:
        """Apply a sponsorship to a registration.

        Raises:
            RegistrationNotFoundError: If the registration does not exist.
            SponsorshipNotFoundError: If the sponsorship does not exist.
            SponsorshipCancelledError: If the sponsorship was cancelled.
            EventMismatchError: If they belong to different events.
            SponsorshipAlreadyLinkedError: If the pair is already linked.
            SponsorshipNotApplicableError: If nothing the sponsorship covers was charged.
            SponsorshipStatusConflictError: If the sponsorship was cancelled meanwhile.
        """
        registration = self._get_registration(registration_id)
        sponsorship = self.get_sponsorship(sponsorship_id)
        return self._link(sponsorship, registration, applied_by)

    def link_sponsorship_by_code(self, registration_id: str, code: str, applied_by: str) -> LinkResult:
        """Apply the sponsorship with ``code`` from the registration's event."""
        registration = self._get_registration(registration_id)
        sponsorship = self._store.get_sponsorship_by_code(registration.event_id, normalize_code(code))
        if sponsorship is None:
            raise SponsorshipNotFoundError(code, message="Sponsorship code not found")
        return self._link(sponsorship, registration, applied_by)

    def _link(self, sponsorship: Sponsorship, registration: RegistrationSnapshot, applied_by: str) -> LinkResult:
        if sponsorship.status == SponsorshipStatus.CANCELLED:
            raise SponsorshipCancelledError()
        if sponsorship.event_id != registration.event_id:
            raise EventMismatchError()
        if self._store.get_usage(sponsorship.id, registration.id) is not None:
            raise SponsorshipAlreadyLinkedError()

        preview = preview_coverage(sponsorship, registration, self._store.list_linked(registration.id))
        if preview.applicable_amount == Money.zero() and sponsorship.total_amount > Money.zero():
            raise SponsorshipNotApplicableError()

        with self._store.atomic():
            if not self._store.mark_used(sponsorship.id):
                raise SponsorshipStatusConflictError()
            usage = self._store.create_usage(
                sponsorship.id, registration.id, preview.applicable_amount, applied_by
            )
            sponsorship_amount = self._refresh_registration_amount(registration.id)

        logger.info(
            "sponsorship_linked",
            sponsorship_id=str(sponsorship.id),
            registration_id=str(registration.id),
            amount_applied=str(preview.applicable_amount),
            applied_by=applied_by,
            warnings=len(preview.warnings),
        )
        return LinkResult(
            usage=usage,
            total_amount=registration.total_amount,
            sponsorship_amount=sponsorship_amount,
            warnings=preview.warnings,
        )

    def unlink_sponsorship(self, registration_id: str, sponsorship_id: str) -> Money:
        """Remove a sponsorship from a registration.

        Returns the registration's new sponsorship_amount. The sponsorship goes
        back to PENDING once nothing uses it.

        Raises:
            SponsorshipNotLinkedError: If the pair is not linked.
            SponsorshipStatusConflictError: If the link or the status changed concurrently.
        """
        registration = self._get_registration(registration_id)
        sponsorship = self.get_sponsorship(sponsorship_id)
        usage = self._store.get_usage(sponsorship.id, registration.id)
        if usage is None:
            raise SponsorshipNotLinkedError()

        with self._store.atomic():
            # The status read above may be stale by now.
            current = self._store.lock_sponsorship(sponsorship.id)
            if current is None:
                raise SponsorshipNotFoundError(sponsorship_id)
            if not self._store.delete_usage(usage.id):
                raise SponsorshipStatusConflictError("Sponsorship was unlinked concurrently")
            sponsorship_amount = self._refresh_registration_amount(registration.id)
            status = determine_sponsorship_status(
                current.status, self._store.count_usages(sponsorship.id)
            )
            if status != current.status and not self._store.transition_status(
                sponsorship.id, current.status, status
            ):
                raise SponsorshipStatusConflictError("Sponsorship status changed concurrently")

        logger.info(
            "sponsorship_unlinked",
            sponsorship_id=sponsorship_id,
            registration_id=registration_id,
            status=status.value,
        )
        return sponsorship_amount

    def get_available_sponsorships(self, event_id: str, registration_id: str) -> list[AvailableSponsorship]:
        """PENDING sponsorships of the event the registration could use, with what each would pay."""
        event = self._get_event(event_id)
        registration = self._get_registration(registration_id)
        if registration.event_id != event.id:
            raise RegistrationNotFoundError([registration_id])

        existing = self._store.list_linked(registration.id)
        linked_ids = {entry.sponsorship.id for entry in existing}
        available = []
        for sponsorship in self._store.list_sponsorships(event.id, status=SponsorshipStatus.PENDING):
            if sponsorship.id in linked_ids:
                continue
            preview = preview_coverage(sponsorship, registration, existing)
            available.append(
                AvailableSponsorship(
                    sponsorship=sponsorship,
                    applicable_amount=preview.applicable_amount,
                    conflicts=preview.warnings,
                )
            )
        return available

    def get_linked_sponsorships(self, registration_id: str) -> list[LinkedSponsorship]:
        registration = self._get_registration(registration_id)
        return self._store.list_linked(registration.id)

