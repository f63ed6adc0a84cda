"""
Shared test configuration: auto-discovers CRM sandbox credentials for tests/local/.

Credential resolution (same logic for CI and local):
  1. If GHL_ACCESS_TOKEN and GHL_LOCATION_ID are already set, use them.
  2. Otherwise, read crm-credentials.secret.json in the repo root:
       {"access_token": "pit-...", "location_id": "..."}
  3. If neither works, local tests skip themselves.

Unit tests never read these; they build their own config.
"""

import json
import os
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
CREDENTIALS_FILE = REPO_ROOT / "crm-credentials.secret.json"


def pytest_configure(config):
    """Export sandbox credentials before any test runs."""
    if os.environ.get("GHL_ACCESS_TOKEN") and os.environ.get("GHL_LOCATION_ID"):
        return

    if not CREDENTIALS_FILE.is_file():
        return

    data = json.loads(CREDENTIALS_FILE.read_text(encoding="utf-8"))
    os.environ.setdefault("GHL_ACCESS_TOKEN", data.get("access_token", ""))
    os.environ.setdefault("GHL_LOCATION_ID", data.get("location_id", ""))
