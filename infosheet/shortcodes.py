"""
Short codes: random public identifiers for profiles.

A code is drawn from [A-Za-z0-9] with the `secrets` CSPRNG. Uniqueness is
checked with an indexed equality query before insert and also guaranteed by
the unique constraint on short_codes.code.
"""

from __future__ import annotations

import secrets
import string
from typing import Optional

from flask import current_app

from .extensions import db
from .models import Profile, ShortCode

ALPHABET = string.ascii_letters + string.digits


class ShortCodeExhaustedError(RuntimeError):
    """Every generated candidate collided with an existing code."""


def _code_length() -> int:
    return int(current_app.config.get("SHORT_CODE_LENGTH", 6))


def generate_short_code(length: int = 6) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def is_valid_code(code: str | None) -> bool:
    """Format check done before touching the database."""
    if not code or len(code) != _code_length():
        return False
    return all(ch in ALPHABET for ch in code)


def code_exists(code: str) -> bool:
    return db.session.query(ShortCode.id).filter_by(code=code).first() is not None


def _unused_code() -> str:
    length = _code_length()
    attempts = int(current_app.config.get("SHORT_CODE_MAX_ATTEMPTS", 10))

    for _ in range(attempts):
        candidate = generate_short_code(length)
        if not code_exists(candidate):
            return candidate
        current_app.logger.warning("Short code collision on %s", candidate)

    current_app.logger.error("No free short code after %d attempts", attempts)
    raise ShortCodeExhaustedError(f"could not allocate a short code in {attempts} attempts")


def allocate_short_code(profile: Profile) -> ShortCode:
    """
    Create the ShortCode row for a profile that has none.

    The row is added to the session; the caller commits.
    """
    if profile.short_code is not None:
        return profile.short_code

    short_code = ShortCode(code=_unused_code(), view_count=0)
    profile.short_code = short_code
    db.session.add(short_code)
    return short_code


def regenerate_short_code(profile: Profile) -> ShortCode:
    """Replace the profile's code. QR codes printed with the old code stop resolving."""
    short_code = profile.short_code
    if short_code is None:
        return allocate_short_code(profile)

    short_code.code = _unused_code()
    short_code.view_count = 0
    short_code.last_viewed_at = None
    return short_code


def find_profile_by_code(code: str) -> Optional[Profile]:
    if not is_valid_code(code):
        return None
    short_code = ShortCode.query.filter_by(code=code).first()
    if short_code is None:
        return None
    return short_code.profile


def backfill_short_codes() -> int:
    """Allocate codes for every profile that lacks one. Returns how many were created."""
    missing = (
        Profile.query
        .outerjoin(ShortCode, ShortCode.profile_id == Profile.id)
        .filter(ShortCode.id.is_(None))
        .all()
    )
    for profile in missing:
        allocate_short_code(profile)
        # flush so the next collision check sees this code
        db.session.flush()

    db.session.commit()
    return len(missing)
