"""
Review submission handler.

Takes the widget's POST, writes it into the CRM and answers with one JSON
response. Only the contact upsert decides success; custom fields, the note
and the low-rating tag are enrichment whose failures are logged and
recorded in a SubmissionReport but never surface to the caller.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable

from flask import Request

from .config import CustomFieldMode, ReviewServiceConfig
from .crm_client import LeadConnectorClient
from .logging_utils import log_function
from .review import ReviewSubmission, extract_contact_id, utc_now_iso

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Review submitted successfully"


class UpsertError(Exception):
    """The CRM rejected the contact upsert."""

    def __init__(self, status_code: int, error_text: str):
        super().__init__(f"Upsert failed with HTTP {status_code}: {error_text}")
        self.status_code = status_code
        self.error_text = error_text


class MissingContactIdError(Exception):
    """The upsert succeeded but its response carried no contact id."""


@dataclass
class StepOutcome:
    step: str
    ok: bool
    status_code: int | None = None
    detail: str | None = None
    skipped: bool = False


@dataclass
class SubmissionReport:
    """Per-step outcomes of one CRM sequence."""
    contact_id: str | None = None
    outcomes: list[StepOutcome] = field(default_factory=list)

    def record(self, step: str, response) -> StepOutcome:
        outcome = StepOutcome(
            step=step,
            ok=response.ok,
            status_code=response.status_code,
            detail=None if response.ok else response.text,
        )
        self.outcomes.append(outcome)
        return outcome

    def skip(self, step: str, reason: str) -> StepOutcome:
        outcome = StepOutcome(step=step, ok=True, detail=reason, skipped=True)
        self.outcomes.append(outcome)
        return outcome

    def outcome(self, step: str) -> StepOutcome | None:
        return next((o for o in self.outcomes if o.step == step), None)

    @property
    def failed_steps(self) -> list[str]:
        return [o.step for o in self.outcomes if not o.ok]

    def to_log_fields(self) -> dict:
        return {
            "contactId": self.contact_id,
            "failedSteps": self.failed_steps,
            "steps": [
                {
                    "step": o.step,
                    "ok": o.ok,
                    "statusCode": o.status_code,
                    "skipped": o.skipped,
                    "detail": o.detail,
                }
                for o in self.outcomes
            ],
        }


def build_cors_headers(origin: str | None, allowed_origins) -> dict:
    """CORS headers for a response; the origin is echoed only when allow-listed."""
    headers = {
        'Access-Control-Allow-Methods': 'POST, OPTIONS',
        'Access-Control-Allow-Headers': 'Content-Type',
        'Access-Control-Max-Age': '86400',
    }
    if origin and origin in allowed_origins:
        headers['Access-Control-Allow-Origin'] = origin
        headers['Vary'] = 'Origin'
    return headers


class ReviewSubmissionHandler:
    """Turns review widget submissions into CRM writes.

    Stateless between requests: the config is immutable and the CRM client
    is only built (once) when a request gets past the credential check.
    """

    def __init__(
        self,
        config: ReviewServiceConfig,
        client: LeadConnectorClient | None = None,
        clock: Callable[[], str] = utc_now_iso,
    ):
        self.config = config
        self.clock = clock
        self._client = client

    @property
    def client(self) -> LeadConnectorClient:
        if self._client is None:
            self._client = LeadConnectorClient(
                access_token=self.config.access_token,
                base_url=self.config.base_url,
                api_version=self.config.api_version,
            )
        return self._client

    @log_function
    def handle(self, request: Request):
        """Answer one HTTP request with a Flask ``(body, status, headers)`` tuple.

        Request body:
        {
            "name": "Jane Doe",
            "email": "jane@example.com",
            "phone": "555-0100",          // optional
            "rating": 5,                  // optional, number or string
            "feedback": "Great!",         // optional
            "location": "Downtown",       // optional
            "date": "2026-10-18T09:30Z",  // optional, defaults to now
            "source": "Review Widget"     // optional
        }

        Response:
        {
            "success": true,
            "contactId": "abc123",
            "message": "Review submitted successfully"
        }
        """
        cors_headers = build_cors_headers(
            request.headers.get('Origin'), self.config.allowed_origins
        )

        # Handle CORS preflight
        if request.method == 'OPTIONS':
            return ('', 200, cors_headers)

        if request.method != 'POST':
            return {'error': 'Method not allowed'}, 405, cors_headers

        if not self.config.has_credentials:
            logger.error("Missing CRM credentials (GHL_ACCESS_TOKEN / GHL_LOCATION_ID)")
            return {
                'error': 'Server configuration error',
                'detail': 'Missing API credentials',
            }, 500, cors_headers

        try:
            submission = ReviewSubmission.from_payload(request.get_json(silent=True))
            logger.info(
                f"Received submission: name={submission.name!r} email={submission.email!r} "
                f"rating={submission.rating!r} location={submission.location!r}"
            )

            if submission.missing_fields():
                return {
                    'error': 'Missing required fields',
                    'detail': 'Name and email are required',
                }, 400, cors_headers

            report = self.submit(submission)

        except UpsertError as e:
            return {'step': 'upsert', 'error': e.error_text}, e.status_code, cors_headers

        except MissingContactIdError:
            return {
                'error': 'Failed to create/update contact',
                'detail': 'No contact ID returned',
            }, 500, cors_headers

        except Exception as e:
            logger.error(f"Error in submit_review: {e}", exc_info=True)
            return {'error': 'Server error', 'detail': str(e) or repr(e)}, 500, cors_headers

        return {
            'success': True,
            'contactId': report.contact_id,
            'message': SUCCESS_MESSAGE,
        }, 200, cors_headers

    def submit(self, submission: ReviewSubmission) -> SubmissionReport:
        """Run the CRM sequence for a validated submission.

        Raises UpsertError or MissingContactIdError when the contact could
        not be written; everything after the upsert is best-effort.
        """
        config = self.config
        now = self.clock()
        report = SubmissionReport()
        inline = config.custom_field_mode is CustomFieldMode.INLINE
        custom_fields = submission.custom_field_values(config.custom_fields, now)

        # Step 1: create/update the contact
        response = self.client.upsert_contact(submission.upsert_body(
            config.location_id,
            config.default_source,
            custom_fields if inline else None,
        ))
        if not response.ok:
            logger.error(f"Upsert failed: HTTP {response.status_code} {response.text}")
            raise UpsertError(response.status_code, response.text)

        lookup = extract_contact_id(response.json())
        if not lookup.found:
            logger.error("Upsert succeeded but no contact ID was returned")
            raise MissingContactIdError("No contact ID returned")

        contact_id = report.contact_id = lookup.contact_id
        report.record("upsert", response)
        logger.info(f"Contact created/updated: {contact_id} (from {lookup.source})")

        # Step 2: custom fields, when they were not sent with the upsert
        if inline:
            report.skip("custom_fields", "sent inline with upsert")
        else:
            self._best_effort(
                report, "custom_fields",
                self.client.update_contact(contact_id, {"customFields": custom_fields}),
            )

        # Step 3: note
        self._best_effort(
            report, "note",
            self.client.add_note(contact_id, submission.note_text(now, config.default_source)),
        )

        # Step 4: tag low ratings (1-3 stars)
        tag = submission.low_rating_tag()
        if tag:
            logger.info(f"Adding low rating tag: {tag}")
            self._best_effort(report, "tag", self.client.add_tags(contact_id, [tag]))
        else:
            report.skip("tag", "rating not provided or above threshold")

        logger.info(
            f"Review submitted for contact {contact_id}; failed steps: {report.failed_steps or 'none'}",
            extra={"json_fields": report.to_log_fields()},
        )
        return report

    @staticmethod
    def _best_effort(report: SubmissionReport, step: str, response) -> None:
        outcome = report.record(step, response)
        if not outcome.ok:
            logger.warning(
                f"{step} failed for contact {report.contact_id}: "
                f"HTTP {outcome.status_code} {outcome.detail}"
            )
