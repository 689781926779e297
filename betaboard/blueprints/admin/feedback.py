from flask import render_template, request, jsonify, redirect, url_for, flash, current_app

from betaboard.models.feedback import FEEDBACK_STATUSES, FEEDBACK_TYPES, STATUS_LABELS, TYPE_LABELS
from betaboard.models.tester import DEVICE_TYPES
from betaboard.services import feedback as svc
from betaboard.services.testers import StatusUpdateError
from betaboard.utils.helpers import paginate, parse_id_list
from . import bp
from .testers import _wants_json, _csv_response


def _filters():
    return {
        "q": (request.args.get("q") or "").strip(),
        "type": request.args.get("type") or "all",
        "device": request.args.get("device") or "all",
        "status": request.args.get("status") or "all",
    }


def _query(f):
    return svc.filtered_query(f["q"], f["type"], f["device"], f["status"])


@bp.get("/feedback")
def feedback_index():
    f = _filters()
    page = paginate(_query(f).all(), request.args.get("page"), current_app.config.get("ITEMS_PER_PAGE", 10))
    return render_template(
        "admin/feedback.html",
        page=page,
        filters=f,
        stats=svc.stats(),
        statuses=FEEDBACK_STATUSES,
        types=FEEDBACK_TYPES,
        devices=DEVICE_TYPES,
        status_labels=STATUS_LABELS,
        type_labels=TYPE_LABELS,
    )


@bp.get("/feedback.json")
def feedback_json():
    f = _filters()
    page = paginate(_query(f).all(), request.args.get("page"), current_app.config.get("ITEMS_PER_PAGE", 10))
    page["items"] = [i.to_dict() for i in page["items"]]
    return jsonify({"ok": True, "page": page, "stats": svc.stats()})


@bp.post("/feedback/<int:item_id>/status")
def feedback_status(item_id: int):
    data = request.get_json(silent=True) or request.form
    try:
        item = svc.update_status(item_id, (data.get("status") or "").strip())
    except StatusUpdateError as e:
        if _wants_json():
            return jsonify({"ok": False, "error": str(e)}), 400
        flash(str(e), "error")
        return redirect(request.referrer or url_for("admin.feedback_index"))

    if _wants_json():
        return jsonify({"ok": True, "feedback": item.to_dict()})
    flash("Feedback status updated.", "success")
    return redirect(request.referrer or url_for("admin.feedback_index"))


@bp.post("/feedback/bulk-status")
def feedback_bulk_status():
    data = request.get_json(silent=True) or {}
    if not data:
        data = {"ids": request.form.getlist("ids"), "status": request.form.get("status")}
    ids = parse_id_list(data.get("ids"))
    try:
        updated = svc.bulk_update_status(ids, (data.get("status") or "").strip())
    except StatusUpdateError as e:
        if _wants_json():
            return jsonify({"ok": False, "error": str(e)}), 400
        flash(str(e), "error")
        return redirect(request.referrer or url_for("admin.feedback_index"))

    if _wants_json():
        return jsonify({"ok": True, "updated": updated, "selected": [], "stats": svc.stats()})
    flash(f"Updated {updated} feedback item(s).", "success")
    return redirect(request.referrer or url_for("admin.feedback_index"))


@bp.get("/feedback/export.csv")
def feedback_export_csv():
    ids = parse_id_list(request.args.get("ids"))
    if ids:
        wanted = set(ids)
        rows = [i for i in svc.filtered_query().all() if i.id in wanted]
        filename = "selected-beta-feedback.csv"
    else:
        rows = _query(_filters()).all()
        filename = "beta-feedback.csv"
    return _csv_response(svc.export_csv(rows), filename)
