"""
Process-wide configuration for the review service.

Everything the handler needs (CRM credentials, CORS allow-list, custom
field ids) is collected into one immutable ReviewServiceConfig, built once
from the environment and handed to the handler. Tests build their own.
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from .secrets import get_crm_access_token

logger = logging.getLogger(__name__)

LEADCONNECTOR_BASE_URL = "https://services.leadconnectorhq.com"
LEADCONNECTOR_API_VERSION = "2021-07-28"
DEFAULT_SOURCE = "Website Review Widget"

# Origins allowed to post reviews from the browser. Extra domains (the
# WordPress site hosting the widget) come from REVIEW_ALLOWED_ORIGINS.
DEFAULT_ALLOWED_ORIGINS = (
    "https://app.gohighlevel.com",
    "http://localhost",
)


class CustomFieldMode(str, Enum):
    """How the review's custom fields reach the contact record."""
    INLINE = "inline"      # sent in the upsert body
    SEPARATE = "separate"  # PUT /contacts/{id} after the upsert


@dataclass(frozen=True)
class CustomFieldIds:
    """Custom field ids configured in the CRM location."""
    rating: str = "E6wd31Ij8ld7ctPsgsnZ"
    review_location: str = "paKbVGQE6MaTvGabVnj0"
    review_date: str = "SLwouXYkId5VYl11b3R9"
    feedback: str = "8fvluSPLrqs9EVYEyPME"


@dataclass(frozen=True)
class ReviewServiceConfig:
    access_token: str | None
    location_id: str | None
    allowed_origins: tuple[str, ...] = DEFAULT_ALLOWED_ORIGINS
    custom_fields: CustomFieldIds = field(default_factory=CustomFieldIds)
    custom_field_mode: CustomFieldMode = CustomFieldMode.INLINE
    base_url: str = LEADCONNECTOR_BASE_URL
    api_version: str = LEADCONNECTOR_API_VERSION
    default_source: str = DEFAULT_SOURCE

    @property
    def has_credentials(self) -> bool:
        return bool(self.access_token and self.location_id)

    def __repr__(self) -> str:
        # Keeps the token out of @log_function output
        return (
            f"ReviewServiceConfig(location_id={self.location_id!r}, "
            f"has_token={bool(self.access_token)}, "
            f"mode={self.custom_field_mode.value}, "
            f"origins={len(self.allowed_origins)})"
        )


def _split_origins(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(o.strip().rstrip("/") for o in raw.split(",") if o.strip())


def _parse_mode(raw: str | None) -> CustomFieldMode:
    if not raw:
        return CustomFieldMode.INLINE
    try:
        return CustomFieldMode(raw.strip().lower())
    except ValueError:
        logger.warning(f"Unknown GHL_CUSTOM_FIELDS_MODE={raw!r}, using 'inline'")
        return CustomFieldMode.INLINE


def load_config(environ: Mapping[str, str] | None = None) -> ReviewServiceConfig:
    """Build the service configuration from environment variables.

    Missing credentials are not an error here: the handler reports them
    per request as a server configuration error.
    """
    env = os.environ if environ is None else environ

    defaults = CustomFieldIds()
    custom_fields = CustomFieldIds(
        rating=env.get("GHL_FIELD_RATING") or defaults.rating,
        review_location=env.get("GHL_FIELD_REVIEW_LOCATION") or defaults.review_location,
        review_date=env.get("GHL_FIELD_REVIEW_DATE") or defaults.review_date,
        feedback=env.get("GHL_FIELD_FEEDBACK") or defaults.feedback,
    )

    allowed_origins = DEFAULT_ALLOWED_ORIGINS + tuple(
        o for o in _split_origins(env.get("REVIEW_ALLOWED_ORIGINS"))
        if o not in DEFAULT_ALLOWED_ORIGINS
    )

    config = ReviewServiceConfig(
        access_token=get_crm_access_token(env),
        location_id=(env.get("GHL_LOCATION_ID") or "").strip() or None,
        allowed_origins=allowed_origins,
        custom_fields=custom_fields,
        custom_field_mode=_parse_mode(env.get("GHL_CUSTOM_FIELDS_MODE")),
        base_url=(env.get("GHL_BASE_URL") or LEADCONNECTOR_BASE_URL).rstrip("/"),
    )

    if not config.has_credentials:
        logger.warning("CRM credentials not configured (GHL_ACCESS_TOKEN / GHL_LOCATION_ID)")

    return config
