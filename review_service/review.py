"""
Review submission model.

Parses the widget's form body and turns it into the pieces the CRM
sequence sends: the upsert body, custom field values, the note text and
the low-rating tag. Form semantics apply throughout: a value of None,
"", 0 or false counts as "not provided".
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .config import DEFAULT_SOURCE, CustomFieldIds

LOW_RATING_THRESHOLD = 3
NO_FEEDBACK_PLACEHOLDER = "(No feedback provided)"


def utc_now_iso() -> str:
    """Current UTC instant, e.g. ``2026-10-18T09:30:00.000Z``."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def is_provided(value: Any) -> bool:
    return bool(value)


def stringify(value: Any) -> str:
    """Render a form value the way the widget's JSON would print it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _or_default(value: Any, default: str) -> str:
    return stringify(value) if is_provided(value) else default


@dataclass
class ReviewSubmission:
    name: Any = None
    email: Any = None
    phone: Any = None
    feedback: Any = None
    rating: Any = None
    location: Any = None
    date: Any = None
    source: Any = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ReviewSubmission":
        """Build a submission from a decoded JSON body.

        Anything other than a JSON object yields an empty submission,
        which then fails validation.
        """
        if not isinstance(payload, dict):
            payload = {}
        return cls(
            name=payload.get("name"),
            email=payload.get("email"),
            phone=payload.get("phone"),
            feedback=payload.get("feedback"),
            rating=payload.get("rating"),
            location=payload.get("location"),
            date=payload.get("date"),
            source=payload.get("source"),
        )

    def missing_fields(self) -> list[str]:
        return [f for f in ("name", "email") if not is_provided(getattr(self, f))]

    def rating_value(self) -> float | None:
        """Finite numeric rating, or None when absent or not a number."""
        if not is_provided(self.rating) or isinstance(self.rating, bool):
            return None
        if isinstance(self.rating, str) and "_" in self.rating:
            return None
        try:
            value = float(self.rating)
        except (TypeError, ValueError):
            return None
        return value if math.isfinite(value) else None

    def review_date(self, now: str) -> str:
        return self.date if is_provided(self.date) else now

    def upsert_body(
        self,
        location_id: str,
        default_source: str = DEFAULT_SOURCE,
        custom_fields: list[dict] | None = None,
    ) -> dict:
        body = {
            "locationId": location_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone or "",
            "source": self.source or default_source,
        }
        if custom_fields is not None:
            body["customFields"] = custom_fields
        return body

    def custom_field_values(self, field_ids: CustomFieldIds, now: str) -> list[dict]:
        """``[{id, value}]`` entries for the four review custom fields."""
        return [
            {"id": field_ids.rating, "value": _or_default(self.rating, "")},
            {"id": field_ids.review_location, "value": _or_default(self.location, "")},
            {"id": field_ids.review_date, "value": self.review_date(now)},
            {"id": field_ids.feedback, "value": _or_default(self.feedback, "")},
        ]

    def note_text(self, now: str, default_source: str = DEFAULT_SOURCE) -> str:
        return "\n".join([
            "=== Review Submission ===",
            f"Star Rating: {_or_default(self.rating, 'Not provided')}",
            f"Location: {_or_default(self.location, 'Not specified')}",
            f"Date: {self.review_date(now)}",
            "",
            "Feedback:",
            _or_default(self.feedback, NO_FEEDBACK_PLACEHOLDER),
            "",
            f"Source: {_or_default(self.source, default_source)}",
        ])

    def low_rating_tag(self) -> str | None:
        """``"<rating>-star-rating"`` for ratings of 3 or less, else None."""
        value = self.rating_value()
        if value is None or value > LOW_RATING_THRESHOLD:
            return None
        return f"{stringify(self.rating)}-star-rating"


@dataclass(frozen=True)
class ContactIdLookup:
    """Where (if anywhere) the upsert response carried the contact id."""
    contact_id: str | None
    source: str | None = None

    @property
    def found(self) -> bool:
        return self.contact_id is not None


def extract_contact_id(payload: Any) -> ContactIdLookup:
    """Pull the contact id out of an upsert response.

    The upsert endpoint answers either ``{"contact": {"id": ...}}`` or a
    bare ``{"id": ...}``; the nested form wins when both are present.
    """
    if not isinstance(payload, dict):
        return ContactIdLookup(None)

    contact = payload.get("contact")
    if isinstance(contact, dict) and contact.get("id"):
        return ContactIdLookup(str(contact["id"]), "contact.id")

    if payload.get("id"):
        return ContactIdLookup(str(payload["id"]), "id")

    return ContactIdLookup(None)
