from flask import render_template, request, redirect, url_for, current_app
from flask_login import login_user, logout_user, current_user
from sqlalchemy import func

from betaboard.extensions import db, limiter
from betaboard.models.user import User
from betaboard.utils.validators import validate_email, validate_required
from . import bp

INVALID_CREDENTIALS = "Invalid credentials. Please try again."


def _login_email_scope():
    email = (request.form.get("email") or "").strip().lower()
    # Keep a stable scope even if email is blank
    return f"login-email:{email or 'missing'}"


# Only allow internal paths like "/admin/testers" (no external URLs or "//" protocol-relative).
def _safe_next_path(next_raw: str) -> str:
    next_raw = (next_raw or "").strip()
    if next_raw.startswith("/") and not next_raw.startswith("//"):
        return next_raw
    return url_for("admin.testers_index")


@bp.get("/login")
def login_get():
    if current_user.is_authenticated:
        return redirect(_safe_next_path(request.args.get("next")))
    return render_template("auth/login.html", errors={}, email="")


@bp.post("/login")
@limiter.limit("10 per minute; 100 per hour")              # per-IP
@limiter.limit("5 per minute; 20 per hour", key_func=_login_email_scope)  # per-account
def login_post():
    email = (request.form.get("email") or "").strip()
    password = request.form.get("password") or ""

    errors = {}
    email_check = validate_email(email)
    if not email_check.is_valid:
        errors["email"] = email_check.message
    password_check = validate_required(password, "Password")
    if not password_check.is_valid:
        errors["password"] = password_check.message
    if errors:
        return render_template("auth/login.html", errors=errors, email=email), 400

    user = db.session.execute(
        db.select(User).where(func.lower(User.email) == func.lower(email))
    ).scalar_one_or_none()

    if not user or not user.is_active or not user.check_password(password):
        current_app.logger.info("admin_login_failed", extra={"event": "admin_login_failed"})
        return render_template("auth/login.html", errors={}, error=INVALID_CREDENTIALS, email=email), 400

    login_user(user)
    current_app.logger.info("admin_login", extra={"event": "admin_login", "user_id": user.id})
    return redirect(_safe_next_path(request.args.get("next")))


@bp.get("/logout")
def logout():
    if current_user.is_authenticated:
        logout_user()
    return redirect(url_for("auth.login_get"))


@bp.post("/logout")
def logout_post():
    if current_user.is_authenticated:
        logout_user()
    return redirect(url_for("auth.login_get"))
