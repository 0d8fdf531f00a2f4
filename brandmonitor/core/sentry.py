"""Sentry error tracking for the API and Celery workers.

Initialised only when SENTRY_DSN is set. Provider API keys and the cron secret
are redacted from every event before it leaves the process, because provider
errors tend to echo request headers.
"""

import logging
import uuid

from brandmonitor.core.config import settings

logger = logging.getLogger(__name__)

REDACTED = "[redacted]"


def _secrets() -> list[str]:
    values = (
        settings.openai_api_key,
        settings.anthropic_api_key,
        settings.perplexity_api_key,
        settings.cron_secret,
    )
    return [v for v in values if v]


def _redact(value, secrets: list[str]):
    if isinstance(value, str):
        for secret in secrets:
            value = value.replace(secret, REDACTED)
        return value
    if isinstance(value, dict):
        return {k: _redact(v, secrets) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact(v, secrets) for v in value]
    return value


def scrub_event(event: dict, hint: dict | None = None) -> dict:
    """``before_send`` hook: replace configured secrets anywhere in *event*."""
    secrets = _secrets()
    if not secrets:
        return event
    return _redact(event, secrets)


def tag_run(workspace_id: uuid.UUID, run_id: uuid.UUID | None = None) -> None:
    """Tag the current Sentry scope with the measurement being executed."""
    if not settings.sentry_dsn:
        return

    import sentry_sdk

    sentry_sdk.set_tag("workspace_id", str(workspace_id))
    if run_id is not None:
        sentry_sdk.set_tag("run_id", str(run_id))


def init_sentry() -> bool:
    """Initialize Sentry if SENTRY_DSN is configured. Returns True when enabled."""
    if not settings.sentry_dsn:
        logger.debug("Sentry DSN not configured, skipping")
        return False

    import sentry_sdk
    from sentry_sdk.integrations.celery import CeleryIntegration
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.app_env,
        traces_sample_rate=0.1 if settings.app_env == "production" else 1.0,
        send_default_pii=False,
        before_send=scrub_event,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            CeleryIntegration(),
        ],
    )
    logger.info("Sentry initialized (env=%s)", settings.app_env)
    return True
