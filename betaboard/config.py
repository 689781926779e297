import os

from dotenv import dotenv_values


def _flag(name: str, default: str = "false") -> bool:
    return (os.getenv(name, default) or default).lower() == "true"


class BaseConfig:
    # Secrets (env in prod; dev/test may use defaults)
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-not-secure")
    WTF_CSRF_SECRET_KEY = SECRET_KEY
    WTF_CSRF_TIME_LIMIT = None  # admin pages stay open for long triage sessions

    # Database (env in prod; dev/test may use default)
    _ENV_FALLBACK = dotenv_values(".env")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL") or _ENV_FALLBACK.get("DATABASE_URL") or "sqlite:///betaboard.db"
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Cookies: secure-by-default
    SESSION_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    RATELIMIT_DEFAULT = None

    # --- Mail (SMTP relay used by the /api/send-email endpoint) ---
    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp-relay.brevo.com")
    MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
    MAIL_USE_TLS = _flag("MAIL_USE_TLS", "true")
    MAIL_USE_SSL = _flag("MAIL_USE_SSL", "false")
    MAIL_USERNAME = os.getenv("MAIL_USERNAME") or os.getenv("BREVO_EMAIL")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD") or os.getenv("BREVO_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", '"Beta Testing Team" <no-reply@yourdomain.com>')
    MAIL_SUPPRESS_SEND = _flag("MAIL_SUPPRESS_SEND", "false")

    # Where send_email() POSTs {to, subject, html}. Empty = relay in-process.
    MAIL_ENDPOINT_URL = os.getenv("MAIL_ENDPOINT_URL", "")
    MAIL_ENDPOINT_TIMEOUT = float(os.getenv("MAIL_ENDPOINT_TIMEOUT", "15"))
    # Optional shared secret expected as "Authorization: Bearer <token>"
    MAIL_ENDPOINT_TOKEN = os.getenv("MAIL_ENDPOINT_TOKEN", "")

    # Used for absolute links in emails (feedback form URL)
    APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:5000")

    # --- Beta program copy ---
    APP_NAME = os.getenv("APP_NAME", "MCCI Tax Refund System")
    SUPPORT_EMAIL = os.getenv("SUPPORT_EMAIL", "support@example.com")
    TEAM_NAME = os.getenv("TEAM_NAME", "MNS Team")
    TESTING_START_DATE = os.getenv("TESTING_START_DATE", "June 23rd, 2025")

    # iOS testers must use iCloud, Android testers Gmail
    REQUIRE_PLATFORM_EMAIL = _flag("REQUIRE_PLATFORM_EMAIL", "false")

    ITEMS_PER_PAGE = int(os.getenv("ITEMS_PER_PAGE", "10"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "WARNING")
    # Read lazily: create_app() fails fast when these are missing
    SECRET_KEY = os.environ.get("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL")
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True
    SESSION_COOKIE_SAMESITE = os.environ.get("SESSION_COOKIE_SAMESITE", "Lax")
    MAIL_SUPPRESS_SEND = False


class TestingConfig(BaseConfig):
    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URL", "sqlite:///:memory:")
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False
    MAIL_SUPPRESS_SEND = True
    MAIL_ENDPOINT_URL = ""
    # Limits are per-process memory; tests hammer the public forms
    RATELIMIT_ENABLED = False


_ENV_MAP = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def get_config():
    env = os.environ.get("APP_ENV", "development").lower()
    return _ENV_MAP.get(env, DevelopmentConfig)
