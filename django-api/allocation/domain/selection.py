"""Checks a registrant's candidate access selection before checkout.

Every check runs and contributes its messages, so the form can show the full
list of problems after one round-trip. The capacity check reads counters that
other registrants may change at any moment; a passing result is advisory and
the reservation step decides.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

from allocation.domain.availability import has_closed, has_opened, is_eligible
from allocation.domain.models import AccessItem, Selection, ValidationResult
from allocation.domain.timeslots import spots_remaining
from allocation.domain.value_objects import AccessItemId


def _time_conflicts(selected: list[tuple[Selection, AccessItem]]) -> list[str]:
    by_start: dict[datetime, list[AccessItem]] = defaultdict(list)
    for _, item in selected:
        if item.starts_at is not None:
            by_start[item.starts_at].append(item)

    return [
        f"Time conflict: Can only select one of: {', '.join(item.name for item in items)}"
        for _, items in sorted(by_start.items())
        if len(items) > 1
    ]


def _missing_prerequisites(
    selected: list[tuple[Selection, AccessItem]],
    selected_ids: set[AccessItemId],
    names: Mapping[AccessItemId, str],
) -> list[str]:
    errors = []
    for _, item in selected:
        for required in sorted(item.required_ids, key=str):
            if required not in selected_ids:
                required_name = names.get(required, "its prerequisite")
                errors.append(f"{item.name} requires selecting {required_name} first")
    return errors


def validate_selections(
    items: Iterable[AccessItem],
    selections: Sequence[Selection],
    form_data: Mapping[str, Any],
    now: datetime,
) -> ValidationResult:
    """Validate ``selections`` against the event's active ``items``."""
    if not selections:
        return ValidationResult()

    by_id = {item.id: item for item in items if item.active}
    errors: list[str] = []
    warnings: list[str] = []

    selected: list[tuple[Selection, AccessItem]] = []
    for selection in selections:
        item = by_id.get(selection.access_id)
        if item is None:
            errors.append(f"Access item {selection.access_id} not found or inactive")
        else:
            selected.append((selection, item))

    errors.extend(_time_conflicts(selected))

    selected_ids = {selection.access_id for selection in selections}
    names = {item_id: item.name for item_id, item in by_id.items()}
    errors.extend(_missing_prerequisites(selected, selected_ids, names))

    for _, item in selected:
        if not has_opened(item, now):
            errors.append(f"{item.name} is not yet available")
        if has_closed(item, now):
            errors.append(f"{item.name} is no longer available")
        if not is_eligible(item, form_data):
            errors.append(f"{item.name} is not available based on your form answers")

    for selection, item in selected:
        spots = spots_remaining(item)
        if spots is None or spots >= selection.quantity:
            continue
        if item.waitlist_enabled:
            warnings.append(f"{item.name} is full, you will be placed on the waitlist")
        else:
            errors.append(f"{item.name} is full")

    return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))
