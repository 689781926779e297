import re


def _script(client, name):
    resp = client.get(f"/static/js/{name}")
    assert resp.status_code == 200
    return resp.get_data(as_text=True)


def test_board_scripts_load_after_shared_helpers(admin_client):
    for path, page_js in (("/admin/kanban", "js/kanban.js"), ("/admin/kanban/import", "js/kanban_import.js")):
        html = admin_client.get(path).get_data(as_text=True)
        assert "js/app.js" in html and page_js in html
        # startCardDrag lives in app.js
        assert html.index("js/app.js") < html.index(page_js), f"app.js must load before {page_js}"


def test_drag_start_sets_data_and_ghost_preview(client):
    helpers = _script(client, "app.js")
    assert 'setData("text/plain"' in helpers
    assert "setDragImage(ghost" in helpers

    for name in ("kanban.js", "kanban_import.js"):
        assert "window.startCardDrag(e," in _script(client, name), f"{name} must start drags through startCardDrag"


def test_bulk_apply_starts_disabled(admin_client, make_tester, make_feedback):
    make_tester()
    make_feedback()
    for path in ("/admin/testers", "/admin/feedback"):
        html = admin_client.get(path).get_data(as_text=True)
        assert re.search(r"<button[^>]*data-bulk-submit[^>]*disabled[^>]*>Apply to selected", html), path


def test_export_link_falls_back_to_filtered_url(client):
    helpers = _script(client, "app.js")
    assert "submit.disabled = ids.length === 0" in helpers
    assert 'exportLink.setAttribute("href", filteredHref)' in helpers
