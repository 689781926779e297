import hmac
from flask import request, jsonify, current_app
from smtplib import SMTPException

from betaboard.extensions import limiter
from betaboard.services.email import relay_email, log_structured
from . import bp

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def _with_cors(resp, status: int = 200):
    resp.status_code = status
    for k, v in CORS_HEADERS.items():
        resp.headers[k] = v
    return resp


def _authorized() -> bool:
    token = current_app.config.get("MAIL_ENDPOINT_TOKEN")
    if not token:
        return True
    header = request.headers.get("Authorization") or ""
    return hmac.compare_digest(header, f"Bearer {token}")


@bp.route("/send-email", methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
@limiter.limit("60 per minute")
def send_email_endpoint():
    """
    Relay {to, subject, html} through SMTP.
    Browsers call this cross-origin, so every response carries CORS headers.
    """
    if request.method == "OPTIONS":
        return _with_cors(jsonify({}), 200)
    if request.method != "POST":
        return _with_cors(jsonify({"success": False, "error": "Method not allowed"}), 405)
    if not _authorized():
        return _with_cors(jsonify({"success": False, "error": "Unauthorized"}), 401)

    data = request.get_json(silent=True) or {}
    to, subject, html = data.get("to"), data.get("subject"), data.get("html")
    if not to or not subject or not html:
        return _with_cors(
            jsonify({"success": False, "error": "Missing required fields: to, subject, or html"}), 400
        )

    try:
        message_id = relay_email(to, subject, html)
    except (SMTPException, OSError) as ex:
        log_structured("mail_relay", level="error", to=str(to).lower(), outcome="failed", error=str(ex))
        return _with_cors(jsonify({"success": False, "error": str(ex)}), 500)

    log_structured("mail_relay", to=str(to).lower(), outcome="sent", provider_msg_id=message_id)
    return _with_cors(jsonify({"success": True, "messageId": message_id}), 200)


@bp.get("/test")
def test():
    return jsonify({"message": "Server is running correctly"})
