"""
Review Widget Service - Cloud Functions entry point.

submit_review (HTTP trigger, unauthenticated)
  - Called by the review widget on the website (CORS allow-listed origins)
  - Upserts the reviewer as a CRM contact, stores the review in custom
    fields and a note, and tags 1-3 star reviews for follow-up
  - Deployed as: gcloud functions deploy submit_review --trigger-http --allow-unauthenticated

Configuration is read from the environment on the first request and shared
by every later request the instance serves, once it carries CRM credentials.
"""

import logging

import functions_framework
from flask import Request

from .config import load_config
from .handler import ReviewSubmissionHandler
from .logging_utils import setup_cloud_logging

# Structured JSON on GCP, plain text locally
setup_cloud_logging()
logger = logging.getLogger(__name__)

_handler: ReviewSubmissionHandler | None = None


def get_handler() -> ReviewSubmissionHandler:
    """Return the process-wide handler, building it on first use.

    A config without credentials is not cached, so a failed Secret Manager
    read is retried on the next request instead of sticking to the instance.
    """
    global _handler
    if _handler is not None:
        return _handler

    config = load_config()
    handler = ReviewSubmissionHandler(config)
    if config.has_credentials:
        logger.info(f"Review handler initialised: {config!r}")
        _handler = handler
    return handler


def _reset_handler():
    """Drop the cached handler (for testing only)."""
    global _handler
    _handler = None


@functions_framework.http
def submit_review(request: Request):
    """HTTP Cloud Function receiving review widget submissions."""
    return get_handler().handle(request)


logger.info("Review service module loaded. Logging is operational.")
