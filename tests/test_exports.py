from betaboard.extensions import db
from betaboard.models import Tester, User
from betaboard.services import invitations as inv
from betaboard.services.email import SendResult
from betaboard.cli import admins, testers as testers_cli


def test_platform_csv_endpoint(admin_client, make_tester):
    grace = make_tester(full_name="Grace Hopper", email="grace@icloud.com", device_type="ios", status="approved")
    ada = make_tester(full_name="Ada Lovelace", email="ada@gmail.com", status="approved")
    make_tester(full_name="Alan Turing", email="alan@gmail.com", status="approved")

    ios = admin_client.get(f"/admin/invitations/platform.csv?platform=app_store&ids={grace}")
    assert 'filename="app_store-testers.csv"' in ios.headers["Content-Disposition"]
    assert ios.get_data(as_text=True) == "Email,First Name,Last Name\ngrace@icloud.com,Grace,Hopper\n"

    android = admin_client.get(f"/admin/invitations/platform.csv?platform=google_play&ids={ada},{grace}")
    assert android.get_data(as_text=True) == "Email\nada@gmail.com\n"


def test_platform_csv_requires_a_selection(admin_client, make_tester):
    make_tester(status="approved")
    resp = admin_client.get("/admin/invitations/platform.csv?platform=google_play",
                            headers={"Accept": "application/json"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Please select at least one tester."

    page = admin_client.get("/admin/invitations/platform.csv?platform=google_play", follow_redirects=True)
    assert b"Please select at least one tester." in page.data


def test_invitations_page_and_send(app, admin_client, make_tester, monkeypatch):
    tid = make_tester(status="approved")
    assert b"ada@gmail.com" in admin_client.get("/admin/invitations?platform=google_play").data

    missing = admin_client.post("/admin/invitations/send", json={"ids": [tid], "platform": "google_play", "app_id": ""})
    assert missing.status_code == 400
    assert missing.get_json()["error"] == "Please enter the app ID first."

    monkeypatch.setattr(inv, "send_email", lambda to, subject, html, template="custom": SendResult(True, "m"))
    resp = admin_client.post("/admin/invitations/send",
                             json={"ids": [tid], "platform": "google_play", "app_id": "com.acme"})
    body = resp.get_json()
    assert body["sent"] == 1 and body["results"] == {str(tid): None}
    with app.app_context():
        assert db.session.get(Tester, tid).status == "invited"

    listing = admin_client.get("/admin/invitations")
    assert listing.status_code == 200 and b"Resend" in listing.data


def test_feedback_invitation_route_uses_base_url(admin_client, make_tester, monkeypatch):
    make_tester(status="invited")
    seen = []
    monkeypatch.setattr(
        inv, "send_email",
        lambda to, subject, html, template="custom": seen.append(html) or SendResult(True, "m"),
    )
    resp = admin_client.post("/admin/invitations/feedback", json={})
    assert resp.get_json()["sent"] == 1
    assert "http://example.test/feedback" in seen[0]


def test_cli_admin_lifecycle(app):
    runner = app.test_cli_runner()
    result = runner.invoke(admins, ["create", "--email", "Ops@Example.com", "--password", "longenough"])
    assert result.exit_code == 0, result.output
    assert "Admin created" in result.output

    dup = runner.invoke(admins, ["create", "--email", "ops@example.com", "--password", "longenough"])
    assert dup.exit_code != 0 and "already exists" in dup.output

    off = runner.invoke(admins, ["deactivate", "--email", "ops@example.com"])
    assert off.exit_code == 0
    with app.app_context():
        assert User.query.one().is_active is False


def test_cli_approve_pending(app, make_tester):
    make_tester(email="p1@gmail.com")
    make_tester(email="p2@gmail.com", status="declined")
    result = app.test_cli_runner().invoke(testers_cli, ["approve-pending"])
    assert "Approved 1 pending tester(s)" in result.output
    with app.app_context():
        assert sorted(t.status for t in Tester.query.all()) == ["approved", "declined"]
