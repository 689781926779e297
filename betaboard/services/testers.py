import csv
import io
import logging
from sqlalchemy import func, or_

from betaboard.extensions import db
from betaboard.models import Tester
from betaboard.models.tester import (
    TESTER_STATUSES,
    DEVICE_TYPES,
    STATUS_PENDING,
    STATUS_APPROVED,
    STATUS_ACTIVE,
)

logger = logging.getLogger(__name__)

EXPORT_HEADERS = ["Name", "Email", "Device Type", "Device Model", "Experience", "Status", "Registration Date"]


class StatusUpdateError(ValueError):
    """Bad status change request (empty selection or unknown status)."""


def filtered_query(q: str = "", status: str = "all", device: str = "all"):
    """Newest-first tester query; "all" (or blank) disables a filter."""
    query = Tester.query
    q = (q or "").strip().lower()
    if q:
        like = f"%{q}%"
        query = query.filter(or_(
            func.lower(Tester.full_name).like(like),
            func.lower(Tester.email).like(like),
        ))
    if status in TESTER_STATUSES:
        query = query.filter(Tester.status == status)
    if device in DEVICE_TYPES:
        query = query.filter(Tester.device_type == device)
    return query.order_by(Tester.created_at.desc(), Tester.id.desc())


def stats() -> dict:
    counts = dict(
        db.session.query(Tester.status, func.count(Tester.id)).group_by(Tester.status).all()
    )
    return {
        "total": sum(counts.values()),
        "pending": counts.get(STATUS_PENDING, 0),
        "approved": counts.get(STATUS_APPROVED, 0),
        "active": counts.get(STATUS_ACTIVE, 0),
    }


def update_status(tester_id: int, status: str) -> Tester:
    if status not in TESTER_STATUSES:
        raise StatusUpdateError(f"Unknown status: {status}")
    tester = Tester.query.get_or_404(tester_id)
    tester.status = status
    db.session.commit()
    return tester


def bulk_update_status(ids: list[int], status: str) -> int:
    """
    One UPDATE ... WHERE id IN (...) for the whole selection.
    Empty selections are rejected before touching the database.
    """
    if not ids:
        raise StatusUpdateError("Select at least one tester.")
    if status not in TESTER_STATUSES:
        raise StatusUpdateError(f"Unknown status: {status}")
    updated = (
        Tester.query.filter(Tester.id.in_(ids))
        .update({Tester.status: status, Tester.updated_at: func.now()}, synchronize_session=False)
    )
    db.session.commit()
    logger.info("testers_bulk_status", extra={"event": "testers_bulk_status", "count": updated, "status": status})
    return updated


def export_csv(testers) -> str:
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(EXPORT_HEADERS)
    for t in testers:
        w.writerow([
            t.full_name,
            t.email,
            t.device_type,
            t.device_model,
            t.experience_level,
            t.status,
            t.created_at.strftime("%Y-%m-%d") if t.created_at else "",
        ])
    return buf.getvalue()
