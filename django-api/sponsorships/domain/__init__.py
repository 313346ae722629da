from sponsorships.domain.models import (
    Coverage,
    RegistrationSnapshot,
    Sponsor,
    Sponsorship,
    SponsorshipId,
    SponsorshipStatus,
    SponsorshipUsage,
)

__all__ = [
    "Coverage",
    "RegistrationSnapshot",
    "Sponsor",
    "Sponsorship",
    "SponsorshipId",
    "SponsorshipStatus",
    "SponsorshipUsage",
]
