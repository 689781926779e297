from flask import render_template, request, jsonify, redirect, url_for, flash, current_app, make_response

from betaboard.models.tester import TESTER_STATUSES, DEVICE_TYPES, EXPERIENCE_LEVELS
from betaboard.services import testers as svc
from betaboard.services.testers import StatusUpdateError
from betaboard.utils.helpers import paginate, parse_id_list
from . import bp


def _filters():
    return {
        "q": (request.args.get("q") or "").strip(),
        "status": request.args.get("status") or "all",
        "device": request.args.get("device") or "all",
    }


def _wants_json() -> bool:
    return request.is_json or "application/json" in (request.headers.get("Accept") or "")


def _csv_response(body: str, filename: str):
    resp = make_response(body)
    resp.headers["Content-Type"] = "text/csv; charset=utf-8"
    resp.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return resp


@bp.get("/testers")
def testers_index():
    f = _filters()
    rows = svc.filtered_query(f["q"], f["status"], f["device"]).all()
    page = paginate(rows, request.args.get("page"), current_app.config.get("ITEMS_PER_PAGE", 10))
    return render_template(
        "admin/testers.html",
        page=page,
        filters=f,
        stats=svc.stats(),
        statuses=TESTER_STATUSES,
        devices=DEVICE_TYPES,
        experience_levels=EXPERIENCE_LEVELS,
    )


@bp.get("/testers.json")
def testers_json():
    f = _filters()
    rows = svc.filtered_query(f["q"], f["status"], f["device"]).all()
    page = paginate(rows, request.args.get("page"), current_app.config.get("ITEMS_PER_PAGE", 10))
    page["items"] = [t.to_dict() for t in page["items"]]
    return jsonify({"ok": True, "page": page, "stats": svc.stats()})


@bp.post("/testers/<int:tester_id>/status")
def testers_status(tester_id: int):
    data = request.get_json(silent=True) or request.form
    try:
        tester = svc.update_status(tester_id, (data.get("status") or "").strip())
    except StatusUpdateError as e:
        if _wants_json():
            return jsonify({"ok": False, "error": str(e)}), 400
        flash(str(e), "error")
        return redirect(request.referrer or url_for("admin.testers_index"))

    if _wants_json():
        return jsonify({"ok": True, "tester": tester.to_dict()})
    flash(f"Updated {tester.full_name} to {tester.status}.", "success")
    return redirect(request.referrer or url_for("admin.testers_index"))


@bp.post("/testers/bulk-status")
def testers_bulk_status():
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
        return redirect(request.referrer or url_for("admin.testers_index"))

    if _wants_json():
        return jsonify({"ok": True, "updated": updated, "selected": [], "stats": svc.stats()})
    flash(f"Updated {updated} tester(s).", "success")
    return redirect(request.referrer or url_for("admin.testers_index"))


@bp.get("/testers/export.csv")
def testers_export_csv():
    ids = parse_id_list(request.args.get("ids"))
    if ids:
        wanted = set(ids)
        rows = [t for t in svc.filtered_query().all() if t.id in wanted]
        filename = "selected-beta-testers.csv"
    else:
        f = _filters()
        rows = svc.filtered_query(f["q"], f["status"], f["device"]).all()
        filename = "beta-testers.csv"
    return _csv_response(svc.export_csv(rows), filename)
