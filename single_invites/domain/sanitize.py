import re
from collections.abc import Mapping
from typing import Any

from single_invites.domain.entities import MediaItem, MediaSubmission, ProfileSubmission
from single_invites.rules.models import ProfileRules

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_TEXT_FIELDS = (
    "nickname",
    "country",
    "city",
    "short_bio",
    "interests",
    "play_preferences",
    "boundaries",
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def clean_text(value: Any, max_length: int) -> str | None:
    """Trim a free-text value, cap its length and map blanks to None."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    return trimmed[:max_length]


def _clean_availability(value: Any) -> dict[str, Any] | list[Any] | str | None:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, dict | list):
        return value or None
    return None


def sanitize_profile(
    raw: Mapping[str, Any] | ProfileSubmission | None, limits: ProfileRules
) -> ProfileSubmission:
    """
    Canonicalize a submitted profile document.

    Text fields are trimmed and capped to the configured lengths, the contact
    email is lower-cased, and empty strings become absent (None). Unknown keys
    are dropped. Running the result through this function again is a no-op.
    """
    if isinstance(raw, ProfileSubmission):
        raw = raw.model_dump()
    if not raw:
        return ProfileSubmission()

    values: dict[str, Any] = {
        name: clean_text(raw.get(name), getattr(limits, name)) for name in _TEXT_FIELDS
    }

    email = clean_text(raw.get("contact_email"), limits.contact_email)
    values["contact_email"] = email.lower() if email else None
    values["availability"] = _clean_availability(raw.get("availability"))
    values["consent_acknowledged"] = raw.get("consent_acknowledged") is True

    return ProfileSubmission(**values)


def _clean_media_item(raw: Any) -> MediaItem | None:
    if not isinstance(raw, Mapping):
        return None
    item_id = clean_text(raw.get("id"), 200)
    url = clean_text(raw.get("url"), 2048)
    if not item_id or not url:
        return None
    return MediaItem(id=item_id, url=url, label=clean_text(raw.get("label"), 120))


def sanitize_media(raw: Mapping[str, Any] | None) -> MediaSubmission:
    """Keep only well-formed media references ({id, url, label?})."""
    if not raw:
        return MediaSubmission()

    def _items(key: str) -> list[MediaItem]:
        entries = raw.get(key) or []
        if not isinstance(entries, list):
            return []
        return [item for item in map(_clean_media_item, entries) if item is not None]

    video = _clean_media_item(raw.get("verification_video"))
    return MediaSubmission(
        identity_documents=_items("identity_documents"),
        verification_video=video,
        selfies=[MediaItem(id=s.id, url=s.url) for s in _items("selfies")],
    )
