import csv
import io
import logging
from datetime import datetime, timezone
from dataclasses import dataclass, field
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from betaboard.extensions import db
from betaboard.models import Tester, Invitation
from betaboard.models.tester import DEVICE_IOS, DEVICE_ANDROID, STATUS_APPROVED, STATUS_INVITED
from betaboard.models.invitation import PLATFORM_GOOGLE_PLAY, PLATFORM_APP_STORE, PLATFORMS, INVITATION_SENT
from betaboard.services.email import (
    send_email,
    generate_invitation_email_content,
    generate_feedback_invitation_email_content,
)

logger = logging.getLogger(__name__)

INVITATION_SUBJECT = "You're Invited to Join Our Beta Test!"
REMINDER_SUFFIX = " (Reminder)"
FEEDBACK_SUBJECT = "Share Your Feedback - Help Us Improve Our App!"
RESEND_FAILED = "Failed to resend invitation. Please try again."
NOT_ELIGIBLE = "Tester is not eligible for this platform"

_LINK_TEMPLATES = {
    PLATFORM_GOOGLE_PLAY: "https://play.google.com/apps/testing/{app_id}",
    PLATFORM_APP_STORE: "https://testflight.apple.com/join/{app_id}",
}
_DISPLAY_NAMES = {
    PLATFORM_GOOGLE_PLAY: "Google Play Store",
    PLATFORM_APP_STORE: "Apple TestFlight",
}
_PLATFORM_DEVICE = {
    PLATFORM_GOOGLE_PLAY: DEVICE_ANDROID,
    PLATFORM_APP_STORE: DEVICE_IOS,
}


class InvitationError(Exception):
    """Raised for invitation requests that cannot be carried out."""


@dataclass
class BatchResult:
    total: int = 0
    sent: int = 0
    failed: int = 0
    # tester id -> error text (None when that tester's email went out)
    results: dict = field(default_factory=dict)
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.total > 0 and self.failed == 0

    def to_dict(self):
        return {
            "ok": self.ok,
            "total": self.total,
            "sent": self.sent,
            "failed": self.failed,
            "results": {str(k): v for k, v in self.results.items()},
            "message": self.message,
        }


def generate_invitation_link(platform: str, app_id: str) -> str:
    tmpl = _LINK_TEMPLATES.get(platform)
    return tmpl.format(app_id=app_id) if tmpl else ""


def platform_display_name(platform: str) -> str:
    return _DISPLAY_NAMES.get(platform, platform)


def testers_for_platform(platform: str, search: str = ""):
    """Approved testers whose device matches the store."""
    device = _PLATFORM_DEVICE.get(platform)
    if device is None:
        return []
    query = Tester.query.filter(Tester.status == STATUS_APPROVED, Tester.device_type == device)
    search = (search or "").strip().lower()
    if search:
        like = f"%{search}%"
        query = query.filter(or_(func.lower(Tester.full_name).like(like), func.lower(Tester.email).like(like)))
    return query.order_by(Tester.created_at.desc(), Tester.id.desc()).all()


def send_invitations(tester_ids, platform: str, app_id: str) -> BatchResult:
    """
    Email each selected tester their store link, one at a time.

    Outcomes are keyed by tester id: only testers whose own email succeeded get
    an Invitation row and move to "invited".
    """
    app_id = (app_id or "").strip()
    if platform not in PLATFORMS:
        raise InvitationError("Please choose a platform.")
    if not app_id:
        raise InvitationError("Please enter the app ID first.")
    if not tester_ids:
        raise InvitationError("Please select at least one tester.")

    testers = {t.id: t for t in Tester.query.filter(Tester.id.in_(tester_ids)).all()}
    device = _PLATFORM_DEVICE[platform]
    link = generate_invitation_link(platform, app_id)
    platform_name = platform_display_name(platform)

    batch = BatchResult(total=len(tester_ids))
    for tid in tester_ids:
        tester = testers.get(tid)
        if tester is None:
            batch.results[tid] = "Tester not found"
            batch.failed += 1
            continue
        if tester.status != STATUS_APPROVED or tester.device_type != device:
            batch.results[tid] = NOT_ELIGIBLE
            batch.failed += 1
            continue

        html = generate_invitation_email_content(tester.full_name, platform_name, link)
        result = send_email(tester.email, INVITATION_SUBJECT, html, template="invitation")
        if not result.success:
            batch.results[tid] = result.error or "Failed to send email"
            batch.failed += 1
            continue

        try:
            db.session.add(Invitation(
                tester_id=tester.id,
                platform=platform,
                invitation_link=link,
                status=INVITATION_SENT,
            ))
            tester.status = STATUS_INVITED
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Recording invitation failed for tester %s", tid)
            batch.results[tid] = "Email sent but the invitation could not be recorded"
            batch.failed += 1
            continue

        batch.results[tid] = None
        batch.sent += 1

    if batch.failed == 0:
        batch.message = (
            f"Successfully sent {batch.sent} invitation email(s) to testers for "
            f"{platform.replace('_', ' ')}."
        )
    else:
        batch.message = (
            f"Sent {batch.sent} invitation(s), but failed to send {batch.failed} invitation(s). "
            "Please try again for the failed ones."
        )
    logger.info(
        "invitations_batch",
        extra={"event": "invitations_batch", "platform": platform, "sent": batch.sent, "failed": batch.failed},
    )
    return batch


def resend_invitation(invitation_id: int) -> Invitation:
    invitation = Invitation.query.get_or_404(invitation_id)
    tester = invitation.tester
    html = generate_invitation_email_content(
        tester.full_name, platform_display_name(invitation.platform), invitation.invitation_link
    )
    result = send_email(tester.email, INVITATION_SUBJECT + REMINDER_SUFFIX, html, template="invitation_reminder")
    if not result.success:
        logger.warning("Resend failed for invitation %s: %s", invitation_id, result.error)
        raise InvitationError(RESEND_FAILED)

    invitation.invitation_sent_at = datetime.now(timezone.utc)
    invitation.status = INVITATION_SENT
    db.session.commit()
    return invitation


def send_feedback_invitations(feedback_url: str) -> BatchResult:
    testers = (
        Tester.query.filter(Tester.status == STATUS_INVITED)
        .order_by(Tester.created_at.desc(), Tester.id.desc())
        .all()
    )
    if not testers:
        raise InvitationError("No registered testers found.")

    batch = BatchResult(total=len(testers))
    for tester in testers:
        html = generate_feedback_invitation_email_content(tester.full_name, feedback_url)
        result = send_email(tester.email, FEEDBACK_SUBJECT, html, template="feedback_invitation")
        if result.success:
            batch.results[tester.id] = None
            batch.sent += 1
        else:
            batch.results[tester.id] = result.error or "Failed to send email"
            batch.failed += 1

    if batch.failed == 0:
        batch.message = f"Successfully sent feedback invitation email(s) to {batch.sent} tester(s)."
    else:
        batch.message = (
            f"Sent {batch.sent} feedback invitation(s), but failed to send {batch.failed}. "
            "Please try again for the failed ones."
        )
    return batch


def platform_csv(testers, platform: str) -> str:
    """Tester list in the format each store console imports."""
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    if platform == PLATFORM_APP_STORE:
        w.writerow(["Email", "First Name", "Last Name"])
        for t in testers:
            w.writerow([t.email, t.first_name, t.last_name])
    else:
        w.writerow(["Email"])
        for t in testers:
            w.writerow([t.email])
    return buf.getvalue()


def platform_csv_filename(platform: str) -> str:
    return f"{platform}-testers.csv"


def invitations_query(search: str = ""):
    query = Invitation.query.join(Tester, Invitation.tester_id == Tester.id)
    search = (search or "").strip().lower()
    if search:
        like = f"%{search}%"
        query = query.filter(or_(func.lower(Tester.full_name).like(like), func.lower(Tester.email).like(like)))
    return query.order_by(Invitation.invitation_sent_at.desc(), Invitation.id.desc())
