"""Visibility of an access item for one registrant at one moment."""

from collections.abc import Collection, Mapping
from datetime import datetime
from typing import Any

from allocation.domain.conditions import evaluate_conditions
from allocation.domain.models import AccessItem
from allocation.domain.value_objects import AccessItemId


def has_opened(item: AccessItem, now: datetime) -> bool:
    return item.available_from is None or item.available_from <= now


def has_closed(item: AccessItem, now: datetime) -> bool:
    return item.available_to is not None and item.available_to < now


def is_within_window(item: AccessItem, now: datetime) -> bool:
    return has_opened(item, now) and not has_closed(item, now)


def is_eligible(item: AccessItem, form_data: Mapping[str, Any]) -> bool:
    return evaluate_conditions(item.conditions, item.condition_logic, form_data)


def has_prerequisites(item: AccessItem, selected_ids: Collection[AccessItemId]) -> bool:
    return all(required in selected_ids for required in item.required_ids)


def is_visible(
    item: AccessItem,
    now: datetime,
    form_data: Mapping[str, Any],
    selected_ids: Collection[AccessItemId],
) -> bool:
    """Whether the item should be offered on the registration form."""
    return (
        item.active
        and is_within_window(item, now)
        and is_eligible(item, form_data)
        and has_prerequisites(item, selected_ids)
    )
