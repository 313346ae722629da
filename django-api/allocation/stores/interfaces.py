"""Store interfaces (repository pattern).

Stores must be swappable and return domain models.

Counter methods (``try_*``, ``release_*``, ``promote_next_waitlisted``) are
single atomic conditional updates: they either apply completely or report that
they did not apply. Callers never read a counter, decide, then write it back.
Implementations raise StorageUnavailableError when the backend fails.
"""

from abc import ABC, abstractmethod
from typing import Any

from allocation.domain.models import AccessItem, AccessType, Event, WaitlistPromotion
from allocation.domain.value_objects import AccessItemId, EventId, RegistrationId


class AccessStore(ABC):
    """Interface for access item persistence operations."""

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...

    @abstractmethod
    def list_access(
        self,
        event_id: EventId,
        *,
        active: bool | None = None,
        access_type: AccessType | None = None,
    ) -> list[AccessItem]:
        """Return an event's access items ordered by sort_order, starts_at, created_at."""
        ...

    @abstractmethod
    def get_access(self, access_id: AccessItemId) -> AccessItem | None:
        """Return an access item by ID, or None if not found."""
        ...

    @abstractmethod
    def create_access(
        self,
        event_id: EventId,
        values: dict[str, Any],
        required_ids: frozenset[AccessItemId],
    ) -> AccessItem:
        """Persist a new access item with its prerequisite edges."""
        ...

    @abstractmethod
    def update_access(
        self,
        access_id: AccessItemId,
        values: dict[str, Any],
        required_ids: frozenset[AccessItemId] | None,
    ) -> AccessItem:
        """Apply field changes; replace prerequisite edges unless None."""
        ...

    @abstractmethod
    def delete_access(self, access_id: AccessItemId) -> None:
        ...

    @abstractmethod
    def count_selections(self, access_id: AccessItemId) -> int:
        """Number of registrations holding the item, waitlisted or not."""
        ...

    @abstractmethod
    def try_reserve_capacity(
        self,
        access_id: AccessItemId,
        quantity: int,
        registration_id: RegistrationId | None = None,
    ) -> bool:
        """Add ``quantity`` to registered_count if it stays within max_capacity."""
        ...

    @abstractmethod
    def try_reserve_waitlist(
        self,
        access_id: AccessItemId,
        quantity: int,
        registration_id: RegistrationId | None = None,
    ) -> int | None:
        """Add ``quantity`` to waitlist_count if waitlisting is enabled and has room.

        Returns the 1-based waitlist position, or None if nothing was applied.
        """
        ...

    @abstractmethod
    def release_capacity(self, access_id: AccessItemId, quantity: int) -> bool:
        """Subtract ``quantity`` from registered_count only if it is at least ``quantity``."""
        ...

    @abstractmethod
    def release_waitlist(self, access_id: AccessItemId, quantity: int) -> bool:
        """Subtract ``quantity`` from waitlist_count only if it is at least ``quantity``."""
        ...

    @abstractmethod
    def promote_next_waitlisted(self, access_id: AccessItemId) -> WaitlistPromotion | None:
        """Promote the earliest waitlisted entry, or return None if there is none.

        Raises:
            AccessCapacityExceededError: If the confirmed capacity filled up meanwhile.
        """
        ...
