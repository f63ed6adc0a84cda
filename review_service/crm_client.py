"""
LeadConnector (HighLevel) REST client for the review service.

Only the four calls a review submission needs. Each returns the raw
``requests.Response`` so the caller decides which failures are fatal.
"""

import logging
from urllib.parse import quote

import requests

from .config import LEADCONNECTOR_API_VERSION, LEADCONNECTOR_BASE_URL
from .logging_utils import log_function

logger = logging.getLogger(__name__)


class LeadConnectorClient:
    """Thin wrapper over a ``requests.Session`` bound to one access token."""

    def __init__(
        self,
        access_token: str,
        base_url: str = LEADCONNECTOR_BASE_URL,
        api_version: str = LEADCONNECTOR_API_VERSION,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Version": api_version,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _contact_url(self, contact_id: str, suffix: str = "") -> str:
        return f"{self.base_url}/contacts/{quote(str(contact_id), safe='')}{suffix}"

    @log_function
    def upsert_contact(self, body: dict) -> requests.Response:
        """POST /contacts/upsert (create-or-update keyed by email)."""
        return self.session.post(
            f"{self.base_url}/contacts/upsert", json=body, headers=self.headers
        )

    @log_function
    def update_contact(self, contact_id: str, body: dict) -> requests.Response:
        """PUT /contacts/{id}, used for custom field updates."""
        return self.session.put(
            self._contact_url(contact_id), json=body, headers=self.headers
        )

    @log_function
    def add_note(self, contact_id: str, text: str) -> requests.Response:
        """POST /contacts/{id}/notes"""
        return self.session.post(
            self._contact_url(contact_id, "/notes"), json={"body": text}, headers=self.headers
        )

    @log_function
    def add_tags(self, contact_id: str, tags: list[str]) -> requests.Response:
        return self.session.post(
            self._contact_url(contact_id, "/tags"), json={"tags": list(tags)}, headers=self.headers
        )
