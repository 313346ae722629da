"""Domain errors for sponsorships."""

from allocation.domain.errors import BadRequestError, ConflictError, ErrorCode, NotFoundError


class SponsorshipNotFoundError(NotFoundError):
    def __init__(self, reference: str, message: str = "Sponsorship not found") -> None:
        super().__init__(code=ErrorCode.NOT_FOUND, message=message)
        self.reference = reference


class RegistrationNotFoundError(NotFoundError):
    def __init__(self, registration_ids: list[str]) -> None:
        if len(registration_ids) == 1:
            message = "Registration not found"
        else:
            message = f"Registrations not found: {', '.join(registration_ids)}"
        super().__init__(code=ErrorCode.NOT_FOUND, message=message)
        self.registration_ids = registration_ids


class SponsorshipNotLinkedError(NotFoundError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.NOT_FOUND, message="Sponsorship is not linked to this registration"
        )


class InvalidCoveredAccessError(BadRequestError):
    def __init__(self, invalid_ids: list[str]) -> None:
        super().__init__(
            code=ErrorCode.BAD_REQUEST, message=f"Invalid access items: {', '.join(invalid_ids)}"
        )
        self.invalid_ids = invalid_ids


class EmptyCoverageError(BadRequestError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.BAD_REQUEST, message="Must cover at least base price or one access item"
        )


class EventMismatchError(BadRequestError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.BAD_REQUEST,
            message="Sponsorship and registration must be for the same event",
        )


class SponsorshipCancelledError(BadRequestError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.BAD_REQUEST, message="Cannot link a cancelled sponsorship")


class SponsorshipNotApplicableError(BadRequestError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.SPONSORSHIP_NOT_APPLICABLE,
            message=(
                "Sponsorship coverage does not apply to this registration "
                "(no overlap between sponsored items and registration selections)"
            ),
        )


class SponsorshipAlreadyLinkedError(ConflictError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.CONFLICT, message="Sponsorship is already linked to this registration"
        )


class SponsorshipStatusConflictError(ConflictError):
    def __init__(
        self, message: str = "Sponsorship cannot be linked (may be cancelled or already processing)"
    ) -> None:
        super().__init__(code=ErrorCode.SPONSORSHIP_STATUS_CONFLICT, message=message)


class SponsorshipCodeExhaustedError(ConflictError):
    def __init__(self, attempts: int) -> None:
        super().__init__(
            code=ErrorCode.CONFLICT,
            message="Failed to generate unique sponsorship code after maximum attempts",
        )
        self.attempts = attempts
