import csv
import io
import logging
from sqlalchemy import func, or_

from betaboard.extensions import db
from betaboard.models import Feedback
from betaboard.models.feedback import FEEDBACK_STATUSES, FEEDBACK_TYPES, BOARD_COLUMNS
from betaboard.models.tester import DEVICE_TYPES
from betaboard.services.testers import StatusUpdateError

logger = logging.getLogger(__name__)

EXPORT_HEADERS = ["Date", "Type", "Device Type", "Device Model", "Comment", "Email", "Anonymous", "Status"]

BOARD_STATUSES = tuple(cid for cid, _ in BOARD_COLUMNS)
MAX_ESTIMATE = 999


def filtered_query(q: str = "", feedback_type: str = "all", device: str = "all", status: str = "all"):
    query = Feedback.query
    q = (q or "").strip().lower()
    if q:
        like = f"%{q}%"
        query = query.filter(or_(
            func.lower(Feedback.comment).like(like),
            func.lower(Feedback.device_model).like(like),
            func.lower(func.coalesce(Feedback.email, "")).like(like),
        ))
    if feedback_type in FEEDBACK_TYPES:
        query = query.filter(Feedback.feedback_type == feedback_type)
    if device in DEVICE_TYPES:
        query = query.filter(Feedback.device_type == device)
    if status in FEEDBACK_STATUSES:
        query = query.filter(Feedback.status == status)
    return query.order_by(Feedback.created_at.desc(), Feedback.id.desc())


def stats() -> dict:
    by_type = dict(
        db.session.query(Feedback.feedback_type, func.count(Feedback.id)).group_by(Feedback.feedback_type).all()
    )
    archived = Feedback.query.filter(Feedback.status == "archived").count()
    return {
        "total": sum(by_type.values()),
        "bug_reports": by_type.get("bug_report", 0),
        "suggestions": by_type.get("suggestion", 0),
        "comments": by_type.get("general_comment", 0),
        "archived": archived,
    }


def update_status(item_id: int, status: str) -> Feedback:
    if status not in FEEDBACK_STATUSES:
        raise StatusUpdateError(f"Unknown status: {status}")
    item = Feedback.query.get_or_404(item_id)
    item.status = status
    db.session.commit()
    return item


def bulk_update_status(ids: list[int], status: str) -> int:
    if not ids:
        raise StatusUpdateError("Select at least one feedback item.")
    if status not in FEEDBACK_STATUSES:
        raise StatusUpdateError(f"Unknown status: {status}")
    updated = (
        Feedback.query.filter(Feedback.id.in_(ids))
        .update({Feedback.status: status, Feedback.updated_at: func.now()}, synchronize_session=False)
    )
    db.session.commit()
    logger.info("feedback_bulk_status", extra={"event": "feedback_bulk_status", "count": updated, "status": status})
    return updated


def export_csv(items) -> str:
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(EXPORT_HEADERS)
    for f in items:
        w.writerow([
            f.created_at.strftime("%Y-%m-%d") if f.created_at else "",
            f.feedback_type.replace("_", " "),
            f.device_type,
            f.device_model,
            f.comment,
            f.email or "N/A",
            "Yes" if f.is_anonymous else "No",
            f.status.replace("_", " "),
        ])
    return buf.getvalue()


# --- Kanban board (persisted) ---

def board() -> dict:
    """Feedback grouped by board column, newest first, plus estimate totals (days)."""
    rows = (
        Feedback.query.filter(Feedback.status.in_(BOARD_STATUSES))
        .order_by(Feedback.created_at.desc(), Feedback.id.desc())
        .all()
    )
    columns = []
    for cid, title in BOARD_COLUMNS:
        items = [r for r in rows if r.status == cid]
        columns.append({
            "id": cid,
            "title": title,
            "items": items,
            "count": len(items),
            "estimate_total": sum(i.development_estimate or 0 for i in items),
        })
    total_days = next(c["estimate_total"] for c in columns if c["id"] == "to_implement")
    return {"columns": columns, "total_days": total_days}


def move_feedback(item_id: int, target_status: str) -> bool:
    """
    Drop a card on a column. Returns False (and writes nothing) when the card
    is already in that column.
    """
    if target_status not in BOARD_STATUSES:
        raise StatusUpdateError(f"Unknown column: {target_status}")
    item = Feedback.query.get_or_404(item_id)
    if item.status == target_status:
        return False
    item.status = target_status
    db.session.commit()
    return True


def update_estimate(item_id: int, estimate) -> Feedback:
    try:
        value = int(estimate)
    except (TypeError, ValueError):
        raise StatusUpdateError("Estimate must be a whole number.")
    if value < 0 or value > MAX_ESTIMATE:
        raise StatusUpdateError(f"Estimate must be between 0 and {MAX_ESTIMATE}.")
    item = Feedback.query.get_or_404(item_id)
    item.development_estimate = value
    db.session.commit()
    return item
