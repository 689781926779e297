import pytest

from betaboard.extensions import db
from betaboard.models import Tester, Invitation, EmailLog
from betaboard.services import invitations as inv
from betaboard.services.email import SendResult


def test_links_and_display_names():
    assert inv.generate_invitation_link("google_play", "com.acme.app") == \
        "https://play.google.com/apps/testing/com.acme.app"
    assert inv.generate_invitation_link("app_store", "AbC123") == "https://testflight.apple.com/join/AbC123"
    assert inv.generate_invitation_link("other", "x") == ""
    assert inv.platform_display_name("google_play") == "Google Play Store"
    assert inv.platform_display_name("app_store") == "Apple TestFlight"


def test_testers_for_platform_matches_device_and_approval(app, make_tester):
    a = make_tester(email="a@gmail.com", status="approved")
    make_tester(email="b@gmail.com", status="pending")
    make_tester(email="c@icloud.com", device_type="ios", status="approved")
    with app.app_context():
        assert [t.id for t in inv.testers_for_platform("google_play")] == [a]
        assert [t.email for t in inv.testers_for_platform("app_store")] == ["c@icloud.com"]
        assert inv.testers_for_platform("google_play", "zzz") == []


def test_send_invitations_requires_app_id_and_selection(app, make_tester):
    tid = make_tester(status="approved")
    with app.app_context():
        with pytest.raises(inv.InvitationError, match="Please enter the app ID first."):
            inv.send_invitations([tid], "google_play", "  ")
        with pytest.raises(inv.InvitationError, match="Please select at least one tester."):
            inv.send_invitations([], "google_play", "com.acme")


def test_send_invitations_all_succeed(app, make_tester, monkeypatch):
    ids = [make_tester(email=f"t{i}@gmail.com", status="approved") for i in range(2)]
    sent = []

    def fake_send(to, subject, html, template="custom"):
        sent.append((to, subject, template))
        assert "https://play.google.com/apps/testing/com.acme" in html
        return SendResult(True, f"<{to}>")

    monkeypatch.setattr(inv, "send_email", fake_send)
    with app.app_context():
        batch = inv.send_invitations(ids, "google_play", "com.acme")
        assert (batch.total, batch.sent, batch.failed) == (2, 2, 0)
        assert batch.message == "Successfully sent 2 invitation email(s) to testers for google play."
        assert {t.status for t in Tester.query.all()} == {"invited"}
        rows = Invitation.query.all()
        assert len(rows) == 2 and {r.status for r in rows} == {"sent"}
    assert sent[0][1] == "You're Invited to Join Our Beta Test!"


def test_failed_email_only_affects_its_own_tester(app, make_tester, monkeypatch):
    first = make_tester(email="fails@gmail.com", status="approved")
    second = make_tester(email="works@gmail.com", status="approved")

    def fake_send(to, subject, html, template="custom"):
        if to == "fails@gmail.com":
            return SendResult(False, None, "mailbox unavailable")
        return SendResult(True, "<ok>")

    monkeypatch.setattr(inv, "send_email", fake_send)
    with app.app_context():
        batch = inv.send_invitations([first, second], "google_play", "com.acme")
        assert (batch.sent, batch.failed) == (1, 1)
        assert batch.results == {first: "mailbox unavailable", second: None}
        assert batch.message == (
            "Sent 1 invitation(s), but failed to send 1 invitation(s). Please try again for the failed ones."
        )

        assert db.session.get(Tester, first).status == "approved"
        assert db.session.get(Tester, second).status == "invited"
        assert [i.tester_id for i in Invitation.query.all()] == [second]


def test_resend_adds_reminder_suffix(app, make_tester, monkeypatch):
    tid = make_tester(email="r@icloud.com", device_type="ios", status="invited")
    with app.app_context():
        row = Invitation(tester_id=tid, platform="app_store", invitation_link="https://testflight.apple.com/join/X",
                         status="expired")
        db.session.add(row)
        db.session.commit()
        inv_id = row.id

    subjects = []
    monkeypatch.setattr(inv, "send_email",
                        lambda to, subject, html, template="custom": subjects.append(subject) or SendResult(True, "m"))
    with app.app_context():
        updated = inv.resend_invitation(inv_id)
        assert updated.status == "sent"
    assert subjects == ["You're Invited to Join Our Beta Test! (Reminder)"]

    monkeypatch.setattr(inv, "send_email", lambda *a, **k: SendResult(False, None, "smtp down"))
    with app.app_context():
        with pytest.raises(inv.InvitationError) as exc:
            inv.resend_invitation(inv_id)
    assert str(exc.value) == "Failed to resend invitation. Please try again."


def test_feedback_invitations_target_invited_testers(app, make_tester, monkeypatch):
    with app.app_context():
        with pytest.raises(inv.InvitationError, match="No registered testers found."):
            inv.send_feedback_invitations("http://example.test/feedback")

    make_tester(email="i@gmail.com", status="invited")
    make_tester(email="p@gmail.com", status="pending")
    recipients = []

    def fake_send(to, subject, html, template="custom"):
        recipients.append(to)
        assert subject == "Share Your Feedback - Help Us Improve Our App!"
        assert "http://example.test/feedback" in html
        return SendResult(True, "m")

    monkeypatch.setattr(inv, "send_email", fake_send)
    with app.app_context():
        batch = inv.send_feedback_invitations("http://example.test/feedback")
    assert recipients == ["i@gmail.com"]
    assert (batch.sent, batch.failed) == (1, 0)


def test_platform_csv_formats(app, make_tester):
    make_tester(full_name="Grace Brewster Hopper", email="g@icloud.com", device_type="ios")
    with app.app_context():
        testers = Tester.query.all()
        assert inv.platform_csv(testers, "google_play") == "Email\ng@icloud.com\n"
        assert inv.platform_csv(testers, "app_store") == (
            "Email,First Name,Last Name\ng@icloud.com,Grace,Brewster Hopper\n"
        )
    assert inv.platform_csv_filename("app_store") == "app_store-testers.csv"


def test_send_email_records_log_and_never_raises(app, monkeypatch):
    from betaboard.services import email as email_svc

    def boom(to, subject, html):
        raise OSError("connection refused")

    monkeypatch.setattr(email_svc, "relay_email", boom)
    with app.app_context():
        result = email_svc.send_email("X@Example.com", "Hi", "<p>hi</p>", template="invitation")
        assert result.success is False and "connection refused" in result.error
        log = EmailLog.query.one()
        assert (log.to_email, log.status, log.template) == ("x@example.com", "failed", "invitation")

    monkeypatch.setattr(email_svc, "relay_email", lambda to, subject, html: "<abc@mail>")
    with app.app_context():
        ok = email_svc.send_email("y@example.com", "Hi", "<p>hi</p>")
        assert ok == SendResult(True, "<abc@mail>", None)


def test_send_email_posts_to_endpoint_when_configured(app, monkeypatch):
    from betaboard.services import email as email_svc

    calls = {}

    class FakeResp:
        ok = True
        status_code = 200

        def json(self):
            return {"success": True, "messageId": "mid-1"}

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.update(url=url, json=json, headers=headers)
        return FakeResp()

    monkeypatch.setattr(email_svc.requests, "post", fake_post)
    monkeypatch.setitem(app.config, "MAIL_ENDPOINT_URL", "http://relay.test/api/send-email")
    monkeypatch.setitem(app.config, "MAIL_ENDPOINT_TOKEN", "s3cret")
    with app.app_context():
        result = email_svc.send_email("z@example.com", "Subj", "<b>x</b>")
    assert result.success and result.message_id == "mid-1"
    assert calls["json"] == {"to": "z@example.com", "subject": "Subj", "html": "<b>x</b>"}
    assert calls["headers"]["Authorization"] == "Bearer s3cret"


def test_invitation_email_renders_link_and_program_details(app):
    from betaboard.services.email import generate_invitation_email_content

    with app.test_request_context():
        html = generate_invitation_email_content("Ada", "Apple TestFlight", "https://testflight.apple.com/join/X")
    assert "Hello Ada" in html
    assert "https://testflight.apple.com/join/X" in html
    assert app.config["TESTING_START_DATE"] in html
    assert "TestFlight" in html and "Google Play" in html


def test_only_approved_testers_on_the_platform_are_invited(app, make_tester, monkeypatch):
    pending = make_tester(email="p@gmail.com", status="pending")
    declined = make_tester(email="d@gmail.com", status="declined")
    invited = make_tester(email="already@gmail.com", status="invited")
    ios = make_tester(email="i@icloud.com", device_type="ios", status="approved")
    ok = make_tester(email="ok@gmail.com", status="approved")
    sent = []

    def fake_send(to, subject, html, template="custom"):
        sent.append(to)
        return SendResult(True, "m")

    monkeypatch.setattr(inv, "send_email", fake_send)
    with app.app_context():
        batch = inv.send_invitations([pending, declined, invited, ios, ok], "google_play", "com.acme")
        assert sent == ["ok@gmail.com"]
        assert (batch.total, batch.sent, batch.failed) == (5, 1, 4)
        for tid in (pending, declined, invited, ios):
            assert batch.results[tid] == "Tester is not eligible for this platform"
        assert batch.results[ok] is None

        assert db.session.get(Tester, pending).status == "pending"
        assert db.session.get(Tester, declined).status == "declined"
        assert db.session.get(Tester, ios).status == "approved"
        assert [i.tester_id for i in Invitation.query.all()] == [ok]


def test_email_content_renders_without_a_request(app):
    from betaboard.services.email import (
        generate_invitation_email_content,
        generate_feedback_invitation_email_content,
    )

    with app.app_context():
        invite = generate_invitation_email_content("Ada", "Google Play Store", "https://play.google.com/apps/testing/x")
        feedback = generate_feedback_invitation_email_content("Ada", "http://example.test/feedback")
    assert "https://play.google.com/apps/testing/x" in invite
    assert "http://example.test/feedback" in feedback
