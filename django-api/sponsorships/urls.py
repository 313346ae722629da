from django.urls import path

from sponsorships.handlers import (
    AvailableSponsorshipsView,
    EventSponsorshipListView,
    RegistrationSponsorshipDetailView,
    RegistrationSponsorshipsView,
    SponsorshipBatchView,
    SponsorshipCancelView,
    SponsorshipDetailView,
)

urlpatterns = [
    path(
        "public/events/<str:event_id>/sponsorships",
        SponsorshipBatchView.as_view(),
        name="sponsorship-batch",
    ),
    path(
        "events/<str:event_id>/sponsorships",
        EventSponsorshipListView.as_view(),
        name="event-sponsorship-list",
    ),
    path("sponsorships/<str:sponsorship_id>", SponsorshipDetailView.as_view(), name="sponsorship-detail"),
    path(
        "sponsorships/<str:sponsorship_id>/cancel",
        SponsorshipCancelView.as_view(),
        name="sponsorship-cancel",
    ),
    path(
        "registrations/<str:registration_id>/sponsorships",
        RegistrationSponsorshipsView.as_view(),
        name="registration-sponsorships",
    ),
    path(
        "registrations/<str:registration_id>/sponsorships/<str:sponsorship_id>",
        RegistrationSponsorshipDetailView.as_view(),
        name="registration-sponsorship-detail",
    ),
    path(
        "events/<str:event_id>/registrations/<str:registration_id>/available-sponsorships",
        AvailableSponsorshipsView.as_view(),
        name="available-sponsorships",
    ),
]
