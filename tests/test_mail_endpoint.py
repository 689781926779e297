from smtplib import SMTPException

from betaboard.blueprints.api import routes as api_routes


def _cors_ok(resp):
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert resp.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"
    assert resp.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"


def test_preflight(client):
    resp = client.options("/api/send-email")
    assert resp.status_code == 200
    _cors_ok(resp)


def test_wrong_method(client):
    resp = client.get("/api/send-email")
    assert resp.status_code == 405
    assert resp.get_json() == {"success": False, "error": "Method not allowed"}
    _cors_ok(resp)


def test_missing_fields(client):
    resp = client.post("/api/send-email", json={"to": "a@example.com", "subject": "Hi"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Missing required fields: to, subject, or html"
    _cors_ok(resp)


def test_relays_and_returns_message_id(client, monkeypatch):
    monkeypatch.setattr(api_routes, "relay_email", lambda to, subject, html: "<m1@example.com>")
    resp = client.post("/api/send-email", json={"to": "a@example.com", "subject": "Hi", "html": "<p>x</p>"})
    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "messageId": "<m1@example.com>"}
    _cors_ok(resp)


def test_suppressed_smtp_still_returns_message_id(client):
    resp = client.post("/api/send-email", json={"to": "a@example.com", "subject": "Hi", "html": "<p>x</p>"})
    assert resp.status_code == 200
    assert resp.get_json()["success"] is True
    assert resp.get_json()["messageId"]


def test_smtp_failure_is_500(client, monkeypatch):
    def boom(to, subject, html):
        raise SMTPException("relay rejected")

    monkeypatch.setattr(api_routes, "relay_email", boom)
    resp = client.post("/api/send-email", json={"to": "a@example.com", "subject": "Hi", "html": "<p>x</p>"})
    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "error": "relay rejected"}


def test_shared_secret(app, client, monkeypatch):
    monkeypatch.setitem(app.config, "MAIL_ENDPOINT_TOKEN", "s3cret")
    monkeypatch.setattr(api_routes, "relay_email", lambda to, subject, html: "<m>")
    payload = {"to": "a@example.com", "subject": "Hi", "html": "<p>x</p>"}
    assert client.post("/api/send-email", json=payload).status_code == 401
    ok = client.post("/api/send-email", json=payload, headers={"Authorization": "Bearer s3cret"})
    assert ok.status_code == 200


def test_health_message(client):
    assert client.get("/api/test").get_json() == {"message": "Server is running correctly"}
