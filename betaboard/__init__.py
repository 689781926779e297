import os
from flask import Flask, render_template, request, has_request_context

# Load .env only for local/dev. In prod, env vars come from the platform.
if os.getenv("APP_ENV", "development") != "production":
    from dotenv import load_dotenv
    load_dotenv(".env", override=True)


from .config import get_config
from .extensions import db, migrate, csrf, login_manager, limiter, mail
from .security import init_security
from .observability import init_logging, init_sentry


def create_app():
    app = Flask(__name__, template_folder="templates", static_folder="static")

    # Rate limiting storage: memory locally, Redis in staging/production
    app_env = (os.getenv("APP_ENV", "development") or "development").lower()
    use_redis = app_env in ("staging", "production")
    storage_uri = os.environ.get("REDIS_URL") if use_redis else "memory://"
    if use_redis and not storage_uri:
        raise RuntimeError("REDIS_URL is required in staging/production for rate limiting")

    app.config["RATELIMIT_STORAGE_URI"] = storage_uri
    app.config.setdefault("RATELIMIT_DEFAULTS", ["1000 per hour"])
    app.config.setdefault("RATELIMIT_HEADERS_ENABLED", True)

    app.config.from_object(get_config())

    def _require(name: str):
        val = os.getenv(name) or app.config.get(name)
        if not val:
            raise RuntimeError(f"Missing required environment variable: {name}")
        return val

    if app_env in ("staging", "production"):
        _require("SECRET_KEY")
        _require("DATABASE_URL")

    init_logging(app)
    init_sentry(app)

    # HTTPS, HSTS & CSP only in staging/production
    if app_env in ("staging", "production"):
        init_security(app)

    db.init_app(app)
    migrate.init_app(app, db, directory="migrations")
    csrf.init_app(app)
    login_manager.init_app(app)
    limiter.init_app(app)
    mail.init_app(app)

    from .blueprints.main import bp as main_bp
    from .blueprints.auth import bp as auth_bp
    from .blueprints.admin import bp as admin_bp
    from .blueprints.api import bp as api_bp

    app.register_blueprint(main_bp)                         # "/", "/feedback"
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(api_bp, url_prefix="/api")       # mail relay endpoint

    # The relay is called cross-origin without a session
    csrf.exempt(api_bp)

    try:
        limiter.exempt(app.view_functions["static"])
    except KeyError:
        pass

    from datetime import datetime, timezone

    @app.context_processor
    def inject_globals():
        """Inject global template variables."""
        # Emails render from CLI and batch jobs too, where there is no request
        theme = request.cookies.get("theme") if has_request_context() else None
        return {
            "current_year": datetime.now(timezone.utc).year,
            "theme": theme if theme in ("light", "dark") else "light",
            "APP_NAME": app.config.get("APP_NAME", ""),
            "APP_ENV": app.config.get("APP_ENV", app_env),
        }

    @limiter.exempt
    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}, 200

    def _wants_json():
        return (
            "application/json" in (request.headers.get("Accept") or "").lower()
            or request.is_json
            or request.path.endswith(".json")
        )

    @app.errorhandler(404)
    def not_found(e):
        if _wants_json():
            return {"ok": False, "error": "not_found"}, 404
        return ("Not Found", 404)

    @app.errorhandler(500)
    def server_error(e):
        if _wants_json():
            return {"ok": False, "error": "server_error"}, 500
        return ("Internal Server Error", 500)

    from flask_wtf.csrf import CSRFError

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        if _wants_json():
            return {"ok": False, "error": "csrf_failed", "detail": e.description}, 400
        return (f"CSRF validation failed: {e.description}", 400)

    @app.errorhandler(403)
    def forbidden(e):
        if _wants_json():
            return {"ok": False, "error": "forbidden"}, 403
        return render_template("errors/403.html"), 403

    @app.errorhandler(429)
    def too_many_requests(e):
        retry_after = getattr(e, "retry_after", None)
        headers = {}
        if retry_after is not None:
            headers["Retry-After"] = str(int(retry_after))
        if _wants_json():
            payload = {"ok": False, "error": "rate_limited"}
            if retry_after is not None:
                payload["retry_after"] = int(retry_after)
            return (payload, 429, headers)
        return (render_template("errors/429.html", retry_after=retry_after), 429, headers)

    from .cli import register_cli
    register_cli(app)

    if not app.config.get("MAIL_ENDPOINT_URL"):
        app.logger.info("MAIL_ENDPOINT_URL not set; emails are relayed in-process via SMTP")

    return app
