from flask import render_template, request, jsonify, redirect, url_for, flash, current_app

from betaboard.models.invitation import PLATFORMS, PLATFORM_GOOGLE_PLAY
from betaboard.services import invitations as svc
from betaboard.services.invitations import InvitationError
from betaboard.utils.helpers import paginate, parse_id_list
from . import bp
from .testers import _wants_json, _csv_response

NO_SELECTION = "Please select at least one tester."


def _platform(value) -> str:
    return value if value in PLATFORMS else PLATFORM_GOOGLE_PLAY


def _payload() -> dict:
    data = request.get_json(silent=True)
    if data is not None:
        return data
    form = request.form.to_dict()
    form["ids"] = request.form.getlist("ids")
    return form


def _feedback_url() -> str:
    base = (current_app.config.get("APP_BASE_URL") or "").rstrip("/")
    return f"{base}{url_for('main.feedback_get')}"


@bp.get("/invitations")
def invitations_index():
    platform = _platform(request.args.get("platform"))
    q = (request.args.get("q") or "").strip()
    page = paginate(
        svc.invitations_query(request.args.get("iq")).all(),
        request.args.get("page"),
        current_app.config.get("ITEMS_PER_PAGE", 10),
    )
    return render_template(
        "admin/invitations.html",
        platform=platform,
        platforms=[(p, svc.platform_display_name(p)) for p in PLATFORMS],
        testers=svc.testers_for_platform(platform, q),
        q=q,
        iq=request.args.get("iq") or "",
        page=page,
        feedback_url=_feedback_url(),
    )


@bp.post("/invitations/send")
def invitations_send():
    data = _payload()
    platform = data.get("platform")
    try:
        batch = svc.send_invitations(parse_id_list(data.get("ids")), platform, data.get("app_id"))
    except InvitationError as e:
        if _wants_json():
            return jsonify({"ok": False, "error": str(e)}), 400
        flash(str(e), "error")
        return redirect(url_for("admin.invitations_index", platform=_platform(platform)))

    if _wants_json():
        return jsonify(batch.to_dict()), 200
    flash(batch.message, "success" if batch.ok else "warning")
    return redirect(url_for("admin.invitations_index", platform=platform))


@bp.post("/invitations/<int:invitation_id>/resend")
def invitations_resend(invitation_id: int):
    try:
        invitation = svc.resend_invitation(invitation_id)
    except InvitationError as e:
        if _wants_json():
            return jsonify({"ok": False, "error": str(e)}), 502
        flash(str(e), "error")
        return redirect(url_for("admin.invitations_index"))

    if _wants_json():
        return jsonify({"ok": True, "invitation": invitation.to_dict()})
    flash(f"Invitation resent to {invitation.tester.email}.", "success")
    return redirect(url_for("admin.invitations_index"))


@bp.post("/invitations/feedback")
def invitations_feedback():
    data = _payload()
    url = (data.get("feedback_url") or "").strip() or _feedback_url()
    try:
        batch = svc.send_feedback_invitations(url)
    except InvitationError as e:
        if _wants_json():
            return jsonify({"ok": False, "error": str(e)}), 400
        flash(str(e), "error")
        return redirect(url_for("admin.invitations_index"))

    if _wants_json():
        return jsonify(batch.to_dict())
    flash(batch.message, "success" if batch.ok else "warning")
    return redirect(url_for("admin.invitations_index"))


@bp.get("/invitations/platform.csv")
def invitations_platform_csv():
    platform = _platform(request.args.get("platform"))
    ids = parse_id_list(request.args.get("ids"))
    if not ids:
        if _wants_json():
            return jsonify({"ok": False, "error": NO_SELECTION}), 400
        flash(NO_SELECTION, "error")
        return redirect(url_for("admin.invitations_index", platform=platform))
    wanted = set(ids)
    testers = [t for t in svc.testers_for_platform(platform) if t.id in wanted]
    return _csv_response(svc.platform_csv(testers, platform), svc.platform_csv_filename(platform))
