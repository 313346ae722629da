"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Multi-row flows (batch
creation, link, unlink, cancel) run inside ``atomic()``.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any
from uuid import UUID

from allocation.domain.value_objects import EventId, Money, RegistrationId
from sponsorships.domain.models import (
    Beneficiary,
    LinkedSponsorship,
    RegistrationSnapshot,
    Sponsor,
    Sponsorship,
    SponsorshipId,
    SponsorshipStatus,
    SponsorshipUsage,
)


class SponsorshipStore(ABC):
    """Interface for sponsorship persistence operations."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager[Any]:
        """Context in which every write commits or rolls back together."""
        ...

    @abstractmethod
    def code_exists(self, code: str) -> bool:
        ...

    @abstractmethod
    def create_batch(self, event_id: EventId, sponsor: Sponsor, form_data: dict[str, Any]) -> UUID:
        ...

    @abstractmethod
    def create_sponsorship(
        self,
        event_id: EventId,
        batch_id: UUID,
        code: str,
        status: SponsorshipStatus,
        beneficiary: Beneficiary,
        total_amount: Money,
    ) -> Sponsorship:
        ...

    @abstractmethod
    def get_sponsorship(self, sponsorship_id: SponsorshipId) -> Sponsorship | None:
        ...

    @abstractmethod
    def get_sponsorship_by_code(self, event_id: EventId, code: str) -> Sponsorship | None:
        ...

    @abstractmethod
    def list_sponsorships(
        self,
        event_id: EventId,
        *,
        status: SponsorshipStatus | None = None,
        search: str | None = None,
        sort_by: str = "created_at",
        descending: bool = True,
    ) -> list[Sponsorship]:
        ...

    @abstractmethod
    def update_sponsorship(self, sponsorship_id: SponsorshipId, values: dict[str, Any]) -> Sponsorship:
        """Apply beneficiary and coverage field changes (including total_amount)."""
        ...

    @abstractmethod
    def set_status(self, sponsorship_id: SponsorshipId, status: SponsorshipStatus) -> None:
        ...

    @abstractmethod
    def lock_sponsorship(self, sponsorship_id: SponsorshipId) -> Sponsorship | None:
        """Read a sponsorship and hold its row lock until the surrounding transaction ends."""
        ...

    @abstractmethod
    def transition_status(
        self, sponsorship_id: SponsorshipId, expected: SponsorshipStatus, status: SponsorshipStatus
    ) -> bool:
        """Set ``status`` only while the sponsorship is still ``expected``."""
        ...

    @abstractmethod
    def mark_used(self, sponsorship_id: SponsorshipId) -> bool:
        """Set USED unless the sponsorship is CANCELLED, as one conditional update."""
        ...

    @abstractmethod
    def delete_sponsorship(self, sponsorship_id: SponsorshipId) -> None:
        ...

    @abstractmethod
    def get_registration(self, registration_id: RegistrationId) -> RegistrationSnapshot | None:
        ...

    @abstractmethod
    def get_registrations(
        self, event_id: EventId, registration_ids: list[RegistrationId]
    ) -> list[RegistrationSnapshot]:
        """Return the registrations among ``registration_ids`` that belong to the event."""
        ...

    @abstractmethod
    def list_linked(self, registration_id: RegistrationId) -> list[LinkedSponsorship]:
        """Usages of a registration, each with its sponsorship."""
        ...

    @abstractmethod
    def list_usages(self, sponsorship_id: SponsorshipId) -> list[SponsorshipUsage]:
        ...

    @abstractmethod
    def get_usage(
        self, sponsorship_id: SponsorshipId, registration_id: RegistrationId
    ) -> SponsorshipUsage | None:
        ...

    @abstractmethod
    def create_usage(
        self,
        sponsorship_id: SponsorshipId,
        registration_id: RegistrationId,
        amount: Money,
        applied_by: str,
    ) -> SponsorshipUsage:
        """Create the link.

        Raises:
            SponsorshipAlreadyLinkedError: If the pair is already linked.
        """
        ...

    @abstractmethod
    def update_usage_amount(self, usage_id: UUID, amount: Money) -> None:
        ...

    @abstractmethod
    def delete_usage(self, usage_id: UUID) -> bool:
        """Returns False when the usage was already gone."""
        ...

    @abstractmethod
    def count_usages(self, sponsorship_id: SponsorshipId) -> int:
        ...

    @abstractmethod
    def set_registration_sponsorship_amount(self, registration_id: RegistrationId, amount: Money) -> None:
        ...
