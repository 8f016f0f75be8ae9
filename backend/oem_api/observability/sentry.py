# Overview: Optional error tracking (Sentry), enabled only when SENTRY_DSN is set.

from __future__ import annotations

import logging

import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from ..config import Settings


logger = logging.getLogger(__name__)


def init_sentry(settings: Settings) -> bool:
    if not settings.SENTRY_DSN:
        return False
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.APP_ENV,
        release=settings.APP_VERSION,
        integrations=[
            FlaskIntegration(transaction_style="url"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=1.0 if settings.is_development else 0.1,
        send_default_pii=False,
    )
    logger.info("Sentry initialized for error tracking")
    return True
