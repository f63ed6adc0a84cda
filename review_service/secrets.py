"""
Credential lookup for the review service.

The CRM access token normally arrives through the GHL_ACCESS_TOKEN
environment variable (Cloud Functions ``--set-secrets`` or a local shell).
When the deployment only names a Secret Manager secret through
GHL_ACCESS_TOKEN_SECRET, the token is read from Secret Manager instead.
"""

import logging
import os
from typing import Mapping

from google.cloud import secretmanager

from .logging_utils import log_function

logger = logging.getLogger(__name__)

ACCESS_TOKEN_ENV = "GHL_ACCESS_TOKEN"
ACCESS_TOKEN_SECRET_ENV = "GHL_ACCESS_TOKEN_SECRET"

METADATA_PROJECT_URL = (
    "http://metadata.google.internal/computeMetadata/v1/project/project-id"
)

# Module-level caches
_sm_client: secretmanager.SecretManagerServiceClient | None = None
_project_id: str | None = None


def _get_sm_client() -> secretmanager.SecretManagerServiceClient:
    global _sm_client
    if _sm_client is None:
        _sm_client = secretmanager.SecretManagerServiceClient()
    return _sm_client


def get_project_id() -> str:
    """Resolve and cache the GCP project ID.

    Resolution order:
      1. GCP_PROJECT env var
      2. GOOGLE_CLOUD_PROJECT env var
      3. GCP metadata server (Cloud Functions runtime)
    """
    global _project_id
    if _project_id:
        return _project_id

    _project_id = os.environ.get("GCP_PROJECT") or os.environ.get("GOOGLE_CLOUD_PROJECT")
    if _project_id:
        return _project_id

    import requests

    response = requests.get(METADATA_PROJECT_URL, headers={"Metadata-Flavor": "Google"})
    response.raise_for_status()
    _project_id = response.text.strip()
    return _project_id


@log_function
def get_secret(secret_id: str) -> str:
    """Fetch the latest version of a secret, decoded and whitespace-stripped."""
    name = f"projects/{get_project_id()}/secrets/{secret_id}/versions/latest"
    response = _get_sm_client().access_secret_version(request={"name": name})
    return response.payload.data.decode("UTF-8").strip()


def get_crm_access_token(environ: Mapping[str, str] | None = None) -> str | None:
    """Return the CRM bearer token, or None when it cannot be resolved.

    Env var first, then the Secret Manager secret named by
    GHL_ACCESS_TOKEN_SECRET. A Secret Manager failure is logged and
    reported as a missing token so the handler answers with its
    configuration error instead of crashing at import.
    """
    env = os.environ if environ is None else environ

    # Secrets injected via --set-secrets can carry a trailing \r\n
    token = (env.get(ACCESS_TOKEN_ENV) or "").strip()
    if token:
        return token

    secret_id = (env.get(ACCESS_TOKEN_SECRET_ENV) or "").strip()
    if not secret_id:
        return None

    try:
        return get_secret(secret_id) or None
    except Exception as e:
        logger.error(f"Failed to fetch CRM access token from Secret Manager ({secret_id}): {e}")
        return None


def _reset_caches():
    """Reset module-level caches (for testing only)."""
    global _sm_client, _project_id
    _sm_client = None
    _project_id = None
