"""
Logging utilities for the review service.

Provides:
- setup_cloud_logging(): structured JSON logging on Cloud Functions, plain text locally
- @log_function decorator: logs entry/exit/errors with timing
"""

import functools
import inspect
import logging
import os
import time
from typing import Any, Callable

logger = logging.getLogger(__name__)


def setup_cloud_logging():
    """Configure logging for the current environment.

    Cloud Functions sets K_SERVICE. There we hand logging over to
    google-cloud-logging so records (including ``extra={"json_fields": ...}``)
    arrive as structured entries with severity and trace fields.
    Anywhere else a readable basicConfig is enough.
    """
    if os.environ.get("K_SERVICE"):
        import google.cloud.logging
        client = google.cloud.logging.Client()
        client.setup_logging(log_level=logging.INFO)
    else:
        logging.basicConfig(level=logging.INFO)


# Parameter names whose values never reach the logs
SENSITIVE_PARAMS = frozenset({
    'access_token', 'token', 'authorization', 'api_key',
    'secret', 'password', 'credentials',
})


def _is_response_tuple(value: Any) -> bool:
    """True for Flask-style ``(body, status, headers)`` return values."""
    return (
        isinstance(value, tuple)
        and len(value) == 3
        and isinstance(value[1], int)
        and isinstance(value[2], dict)
    )


def _summarize(value: Any, max_len: int = 120) -> str:
    """Create a concise summary of a return value for logging."""
    if value is None:
        return "None"

    type_name = type(value).__name__

    if _is_response_tuple(value):
        body, status, _ = value
        if isinstance(body, dict) and body:
            return f"HTTP {status} {sorted(body.keys())}"
        return f"HTTP {status}"

    # requests.Response and friends
    status_code = getattr(value, "status_code", None)
    if isinstance(status_code, int):
        return f"{type_name}: HTTP {status_code}"

    if isinstance(value, str):
        if len(value) > max_len:
            return f"str({len(value)} chars): {value[:max_len]}..."
        return f"str: {value}"

    if isinstance(value, (list, tuple)):
        return f"{type_name}({len(value)} items)"

    if isinstance(value, dict):
        return f"dict({len(value)} keys: {list(value.keys())[:5]})"

    if isinstance(value, (bool, int, float)):
        return str(value)

    text = repr(value)
    if len(text) > max_len:
        return f"{type_name}: {text[:max_len]}..."
    return f"{type_name}: {text}"


def _format_params(func: Callable, args: tuple, kwargs: dict) -> str:
    """Format call arguments for logging, masking sensitive values."""
    bound = inspect.signature(func).bind(*args, **kwargs)
    bound.apply_defaults()

    parts = []
    for name, value in bound.arguments.items():
        if name in ('self', 'cls'):
            continue
        if name in SENSITIVE_PARAMS:
            parts.append(f"{name}=***")
        elif isinstance(value, str) and len(value) > 80:
            parts.append(f"{name}='{value[:80]}...'")
        elif isinstance(value, dict) and len(repr(value)) > 120:
            parts.append(f"{name}=dict({len(value)} keys)")
        else:
            parts.append(f"{name}={value!r}")

    return ", ".join(parts)


def log_function(func: Callable) -> Callable:
    """
    Decorator that logs function entry, exit, duration, and errors.

    Usage:
        @log_function
        def upsert_contact(self, body):
            ...
    """
    qual_name = func.__qualname__

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            params_str = _format_params(func, args, kwargs)
        except TypeError:
            params_str = "(unable to format params)"

        logger.info(f"▶ {qual_name}({params_str})")
        start = time.time()

        try:
            result = func(*args, **kwargs)
        except Exception:
            elapsed = time.time() - start
            logger.info(f"◀ {qual_name} FAILED [{elapsed:.2f}s]")
            raise

        elapsed = time.time() - start
        logger.info(f"◀ {qual_name} → {_summarize(result)} [{elapsed:.2f}s]")
        return result

    return wrapper
