from typing import NamedTuple, Optional
from flask import current_app, render_template
from flask_mail import Message
import json
import time
import requests

from betaboard.extensions import db, mail
from betaboard.models import EmailLog


class SendResult(NamedTuple):
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def log_structured(event: str, level: str = "info", **fields):
    """
    Minimal structured log: one JSON object per line.
    (No PII beyond recipient email; never the html body.)
    """
    payload = {"event": event, **fields}
    getattr(current_app.logger, level)(json.dumps(payload))


def _program_context(app_name: Optional[str] = None) -> dict:
    cfg = current_app.config
    return {
        "app_name": app_name or cfg.get("APP_NAME", ""),
        "support_email": cfg.get("SUPPORT_EMAIL", ""),
        "team_name": cfg.get("TEAM_NAME", ""),
        "testing_start_date": cfg.get("TESTING_START_DATE", ""),
    }


def generate_invitation_email_content(tester_name: str, platform_name: str, invitation_link: str,
                                      app_name: Optional[str] = None) -> str:
    """Install guide for both stores; the link points at the tester's own store."""
    return render_template(
        "email/invitation.html",
        tester_name=tester_name,
        platform_name=platform_name,
        invitation_link=invitation_link,
        **_program_context(app_name),
    )


def generate_feedback_invitation_email_content(tester_name: str, feedback_url: str,
                                               app_name: Optional[str] = None) -> str:
    return render_template(
        "email/feedback_invitation.html",
        tester_name=tester_name,
        feedback_url=feedback_url,
        **_program_context(app_name),
    )


def relay_email(to: str, subject: str, html: str) -> str:
    """
    SMTP delivery behind the /api/send-email endpoint.
    Returns the Message-ID; SMTP errors propagate to the caller.
    """
    msg = Message(recipients=[to], subject=subject, html=html)
    mail.send(msg)
    return msg.msgId


def _post_to_endpoint(url: str, to: str, subject: str, html: str) -> SendResult:
    headers = {"Content-Type": "application/json"}
    token = current_app.config.get("MAIL_ENDPOINT_TOKEN")
    if token:
        headers["Authorization"] = f"Bearer {token}"

    resp = requests.post(
        url,
        json={"to": to, "subject": subject, "html": html},
        headers=headers,
        timeout=current_app.config.get("MAIL_ENDPOINT_TIMEOUT", 15),
    )
    try:
        data = resp.json()
    except ValueError:
        data = {}

    if not resp.ok or not data.get("success"):
        return SendResult(False, None, data.get("error") or f"Failed to send email (HTTP {resp.status_code})")
    return SendResult(True, data.get("messageId"))


def send_email(to: str, subject: str, html: str, template: str = "custom") -> SendResult:
    """
    Deliver one email and record the attempt in email_logs.

    POSTs {to, subject, html} to MAIL_ENDPOINT_URL when configured, otherwise
    relays in-process. Delivery failures never raise; they come back as
    SendResult(success=False) so batch callers can keep counting.
    """
    elog = EmailLog(
        to_email=to.lower(),
        template=template,
        subject=subject[:200],
        status="queued",
        meta={},
    )
    db.session.add(elog)
    db.session.commit()

    url = current_app.config.get("MAIL_ENDPOINT_URL")
    start = time.perf_counter()
    try:
        if url:
            result = _post_to_endpoint(url, to, subject, html)
        else:
            result = SendResult(True, relay_email(to, subject, html))
    except Exception as ex:
        result = SendResult(False, None, str(ex))
    latency_ms = int((time.perf_counter() - start) * 1000)

    elog.status = "sent" if result.success else "failed"
    elog.provider_msg_id = result.message_id
    if result.error:
        elog.meta = {"error": result.error}
    db.session.commit()

    log_structured(
        "mail_send",
        level="info" if result.success else "warning",
        template=template,
        to=to.lower(),
        subject=subject,
        transport="endpoint" if url else "smtp",
        outcome="sent" if result.success else "failed",
        provider_msg_id=result.message_id,
        latency_ms=latency_ms,
        error=result.error,
    )
    return result
