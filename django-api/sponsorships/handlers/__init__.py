from sponsorships.handlers.views import (
    AvailableSponsorshipsView,
    EventSponsorshipListView,
    RegistrationSponsorshipDetailView,
    RegistrationSponsorshipsView,
    SponsorshipBatchView,
    SponsorshipCancelView,
    SponsorshipDetailView,
)

__all__ = [
    "AvailableSponsorshipsView",
    "EventSponsorshipListView",
    "RegistrationSponsorshipDetailView",
    "RegistrationSponsorshipsView",
    "SponsorshipBatchView",
    "SponsorshipCancelView",
    "SponsorshipDetailView",
]
