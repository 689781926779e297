import os
import logging
from logging.config import dictConfig

import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration


def init_logging(app):
    """Structured logs (JSON) in staging/prod; keep default console in dev/tests."""
    app_env = (os.getenv("APP_ENV", "development") or "development").lower()
    level = (app.config.get("LOG_LEVEL") or "INFO").upper()
    if app_env in ("staging", "production"):
        fmt = "%(asctime)s %(levelname)s %(name)s %(message)s"
        dictConfig({
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"()": "pythonjsonlogger.json.JsonFormatter", "fmt": fmt}},
            "handlers": {"wsgi": {"class": "logging.StreamHandler", "formatter": "json"}},
            "root": {"level": level, "handlers": ["wsgi"]},
        })
    else:
        logging.getLogger("betaboard").setLevel(level)
        app.logger.setLevel(level)


def init_sentry(app):
    """Wire Sentry if DSN present; no-op otherwise."""
    dsn = os.getenv("SENTRY_DSN")
    if not dsn:
        return
    sentry_sdk.init(
        dsn=dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=float(os.getenv("SENTRY_TRACES", "0.0")),
        environment=os.getenv("APP_ENV", "development"),
        # Tester emails and feedback bodies stay out of Sentry
        send_default_pii=False,
    )
    app.logger.info("Sentry initialised for %s", os.getenv("APP_ENV", "development"))
