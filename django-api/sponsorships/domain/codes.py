"""Sponsorship codes: ``SP-`` followed by four characters.

O, I, L, 0 and 1 are left out of the alphabet so codes read back over the
phone or from a printed badge are unambiguous.
"""

import secrets
from collections.abc import Callable

from sponsorships.domain.errors import SponsorshipCodeExhaustedError

CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 4
CODE_PREFIX = "SP-"


def generate_code() -> str:
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
    return f"{CODE_PREFIX}{suffix}"


def generate_unique_code(exists: Callable[[str], bool], max_attempts: int = 10) -> str:
    """Draw codes until ``exists`` rejects none, at most ``max_attempts`` times.

    Raises:
        SponsorshipCodeExhaustedError: If every attempt collided.
    """
    for _ in range(max_attempts):
        code = generate_code()
        if not exists(code):
            return code
    raise SponsorshipCodeExhaustedError(max_attempts)
