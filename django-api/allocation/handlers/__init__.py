from allocation.handlers.views import (
    AccessDetailView,
    EventAccessListView,
    GroupedAccessView,
    ValidateSelectionsView,
)

__all__ = [
    "AccessDetailView",
    "EventAccessListView",
    "GroupedAccessView",
    "ValidateSelectionsView",
]
