"""Sentry setup for the DealDesk API.

Payment data must never leave the service: auth headers, UPI handles and
uploaded proof bodies are scrubbed from every event before it is sent.
"""

import structlog
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.redis import RedisIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

logger = structlog.get_logger()

_REDACTED = "[REDACTED]"
_SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})
_SENSITIVE_FIELDS = frozenset({"payout_handle", "payee_handle", "upi_uri", "proof", "file"})


def _scrub_sensitive_data(event: dict, hint: dict) -> dict:
    request = event.get("request") or {}

    headers = request.get("headers") or {}
    for name in list(headers):
        if name.lower() in _SENSITIVE_HEADERS:
            headers[name] = _REDACTED

    body = request.get("data")
    if isinstance(body, dict):
        for field in _SENSITIVE_FIELDS.intersection(body):
            body[field] = _REDACTED
    elif body:
        # Multipart uploads arrive as raw strings; drop them wholesale
        request["data"] = _REDACTED
    return event


def init_sentry(
    dsn: str | None,
    environment: str = "development",
    release: str | None = None,
) -> None:
    """Initialise Sentry. Must run before the FastAPI app is created.

    Does nothing when ``dsn`` is empty.
    """
    if not dsn:
        logger.warning("sentry_disabled", reason="SENTRY_DSN not set")
        return

    sample_rate = 0.1 if environment == "production" else 1.0
    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        traces_sample_rate=sample_rate,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            RedisIntegration(),
        ],
        send_default_pii=False,
        before_send=_scrub_sensitive_data,
    )
    sentry_sdk.set_tag("service", "dealdesk-api")
    logger.info("sentry_initialized", environment=environment, traces_sample_rate=sample_rate)
