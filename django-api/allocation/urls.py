from django.urls import path

from allocation.handlers import (
    AccessDetailView,
    EventAccessListView,
    GroupedAccessView,
    ValidateSelectionsView,
)

urlpatterns = [
    path("events/<str:event_id>/access", EventAccessListView.as_view(), name="event-access-list"),
    path("access/<str:access_id>", AccessDetailView.as_view(), name="access-detail"),
    path(
        "public/events/<str:event_id>/access/grouped",
        GroupedAccessView.as_view(),
        name="access-grouped",
    ),
    path(
        "public/events/<str:event_id>/access/validate",
        ValidateSelectionsView.as_view(),
        name="access-validate",
    ),
]
