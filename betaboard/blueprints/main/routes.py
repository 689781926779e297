from flask import render_template, request, redirect, url_for, flash, jsonify, current_app, make_response
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from betaboard.extensions import db, limiter
from betaboard.models import Tester, Feedback
from betaboard.models.tester import STATUS_PENDING
from betaboard.models.feedback import DEFAULT_FEEDBACK_STATUS
from betaboard.utils.validators import validate_registration, validate_feedback, clean_str, parse_bool
from . import bp

REGISTRATION_SUCCESS = "Thank you for joining our beta program! We'll be in touch soon."
FEEDBACK_SUCCESS = "Thank you for your feedback! We appreciate your input and will review it carefully."
GENERIC_ERROR = "Something went wrong. Please try again."
DUPLICATE_EMAIL = "This email is already registered."


def _wants_json() -> bool:
    return request.is_json or "application/json" in (request.headers.get("Accept") or "")


def _payload() -> dict:
    if request.is_json:
        return dict(request.get_json(silent=True) or {})
    return request.form.to_dict()


def _invalid(template: str, errors: dict, values: dict, status: int = 400):
    if _wants_json():
        return jsonify({"ok": False, "errors": errors}), status
    return render_template(template, errors=errors, values=values), status


@bp.get("/")
def register_get():
    return render_template("main/register.html", errors={}, values={})


@bp.post("/")
@limiter.limit("10 per minute; 50 per hour")
def register_post():
    data = _payload()
    errors = validate_registration(data, current_app.config.get("REQUIRE_PLATFORM_EMAIL", False))
    if errors:
        return _invalid("main/register.html", errors, data)

    email = data["email"].strip().lower()
    exists = db.session.execute(
        db.select(Tester.id).where(func.lower(Tester.email) == email)
    ).first()
    if exists:
        return _invalid("main/register.html", {"email": DUPLICATE_EMAIL}, data, 409)

    tester = Tester(
        full_name=clean_str(data.get("full_name")),
        email=email,
        device_type=data["device_type"].strip(),
        device_model=clean_str(data.get("device_model")),
        experience_level=data["experience_level"].strip(),
        status=STATUS_PENDING,
    )
    try:
        db.session.add(tester)
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent sign-up for the same address
        db.session.rollback()
        return _invalid("main/register.html", {"email": DUPLICATE_EMAIL}, data, 409)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Tester registration failed")
        if _wants_json():
            return jsonify({"ok": False, "error": GENERIC_ERROR}), 500
        flash(GENERIC_ERROR, "error")
        return render_template("main/register.html", errors={}, values=data), 500

    current_app.logger.info(
        "tester_registered",
        extra={"event": "tester_registered", "tester_id": tester.id, "device_type": tester.device_type},
    )
    if _wants_json():
        return jsonify({"ok": True, "message": REGISTRATION_SUCCESS, "tester": tester.to_dict()}), 201
    flash(REGISTRATION_SUCCESS, "success")
    return redirect(url_for("main.register_get"))


@bp.get("/feedback")
def feedback_get():
    return render_template("main/feedback.html", errors={}, values={})


@bp.post("/feedback")
@limiter.limit("10 per minute; 50 per hour")
def feedback_post():
    """Accept feedback from the public form (HTML) or a JSON client."""
    data = _payload()
    is_anonymous = parse_bool(data.get("is_anonymous"))
    data["is_anonymous"] = is_anonymous

    errors = validate_feedback(data)
    if errors:
        return _invalid("main/feedback.html", errors, data)

    fb = Feedback(
        device_type=data["device_type"].strip(),
        device_model=clean_str(data.get("device_model")),
        feedback_type=data["feedback_type"].strip(),
        comment=data["comment"].strip(),
        is_anonymous=is_anonymous,
        email=None if is_anonymous else data["email"].strip().lower(),
        status=DEFAULT_FEEDBACK_STATUS,
        development_estimate=0,
    )
    try:
        db.session.add(fb)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Feedback submission failed")
        if _wants_json():
            return jsonify({"ok": False, "error": GENERIC_ERROR}), 500
        flash(GENERIC_ERROR, "error")
        return render_template("main/feedback.html", errors={}, values=data), 500

    # No comment body in logs
    current_app.logger.info(
        "feedback_submitted",
        extra={"event": "feedback_submitted", "feedback_id": fb.id, "feedback_type": fb.feedback_type,
               "is_anonymous": fb.is_anonymous},
    )
    if _wants_json():
        return jsonify({"ok": True, "message": FEEDBACK_SUCCESS}), 201
    flash(FEEDBACK_SUCCESS, "success")
    return redirect(url_for("main.feedback_get"))


@bp.post("/theme")
def set_theme():
    data = _payload()
    theme = data.get("theme")
    if theme not in ("light", "dark"):
        current = request.cookies.get("theme")
        theme = "light" if current == "dark" else "dark"

    if _wants_json():
        resp = jsonify({"ok": True, "theme": theme})
    else:
        ref = request.referrer or ""
        target = ref if ref.startswith(request.host_url) else url_for("main.register_get")
        resp = make_response(redirect(target))
    resp.set_cookie("theme", theme, max_age=60 * 60 * 24 * 365, samesite="Lax")
    return resp
