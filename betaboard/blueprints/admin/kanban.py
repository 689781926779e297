from flask import render_template, request, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError

from betaboard.extensions import db
from betaboard.models.feedback import TYPE_LABELS
from betaboard.services import feedback as svc
from betaboard.services.testers import StatusUpdateError
from . import bp


@bp.get("/kanban")
def kanban_index():
    return render_template("admin/kanban.html", board=svc.board(), type_labels=TYPE_LABELS,
                           max_estimate=svc.MAX_ESTIMATE)


@bp.get("/kanban.json")
def kanban_json():
    board = svc.board()
    for col in board["columns"]:
        col["items"] = [i.to_dict() for i in col["items"]]
    return jsonify({"ok": True, **board})


@bp.post("/kanban/items/<int:item_id>/move")
def kanban_move(item_id: int):
    data = request.get_json(silent=True) or {}
    try:
        changed = svc.move_feedback(item_id, (data.get("status") or "").strip())
    except StatusUpdateError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Kanban move failed for feedback %s", item_id)
        return jsonify({"ok": False, "error": "Could not move the item. Please try again."}), 500
    return jsonify({"ok": True, "changed": changed, "total_days": svc.board()["total_days"]})


@bp.post("/kanban/items/<int:item_id>/estimate")
def kanban_estimate(item_id: int):
    data = request.get_json(silent=True) or {}
    try:
        item = svc.update_estimate(item_id, data.get("estimate"))
    except StatusUpdateError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Estimate update failed for feedback %s", item_id)
        return jsonify({"ok": False, "error": "Could not save the estimate. Please try again."}), 500
    return jsonify({"ok": True, "feedback": item.to_dict(), "total_days": svc.board()["total_days"]})
