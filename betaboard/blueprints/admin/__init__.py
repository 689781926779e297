from flask import Blueprint, request, redirect, url_for
from flask_login import current_user

bp = Blueprint("admin", __name__)


@bp.before_request
def _require_login_admin():
    if current_user.is_authenticated:
        return None
    if request.is_json or "application/json" in (request.headers.get("Accept") or ""):
        return {"ok": False, "error": "login_required"}, 401
    return redirect(url_for("auth.login_get", next=request.full_path.rstrip("?")))


@bp.get("/")
def index():
    return redirect(url_for("admin.testers_index"))


# Import submodules so their routes register on the same bp
from . import testers  # noqa: E402,F401
from . import feedback  # noqa: E402,F401
from . import invitations  # noqa: E402,F401
from . import kanban  # noqa: E402,F401
from . import kanban_import  # noqa: E402,F401
