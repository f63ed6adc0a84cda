"""
Cloud Functions source root.

Cloud Functions (and `functions-framework` run locally) load main.py from
the deployed directory, so this re-exports the function targets from the
review_service package:

    gcloud functions deploy submit_review --trigger-http --allow-unauthenticated
    functions-framework --target=submit_review
"""

from review_service.main import submit_review  # noqa: F401
