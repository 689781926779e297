import os
# Ensure the app factory picks the Testing config & SQLite memory DB
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///:memory:")

import pytest
from betaboard import create_app
from betaboard.extensions import db
from betaboard.models import User, Tester, Feedback


@pytest.fixture(scope="session")
def app():
    app = create_app()
    app.config.update(
        TESTING=True,
        SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
        MAIL_SUPPRESS_SEND=True,
        MAIL_ENDPOINT_URL="",
        MAIL_ENDPOINT_TOKEN="",
        APP_BASE_URL="http://example.test",
        WTF_CSRF_ENABLED=False,
        APP_ENV="test",
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def _db_clean(app):
    # Clean BEFORE each test
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()
    yield
    # And AFTER each test (keeps state hermetic even if a test fails mid-transaction)
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()


@pytest.fixture()
def admin_client(app, client):
    """Test client with a signed-in admin session."""
    with app.app_context():
        user = User(email="admin@example.com", is_active=True)
        user.set_password("correct-horse")
        db.session.add(user)
        db.session.commit()
        uid = user.id
    with client.session_transaction() as sess:
        sess["_user_id"] = str(uid)
        sess["_fresh"] = True
    return client


@pytest.fixture()
def make_tester(app):
    """Insert a tester and return its id."""
    def _make(**kw) -> int:
        fields = {
            "full_name": "Ada Lovelace",
            "email": "ada@gmail.com",
            "device_type": "android",
            "device_model": "Pixel 8",
            "experience_level": "expert",
            "status": "pending",
        }
        fields.update(kw)
        with app.app_context():
            t = Tester(**fields)
            db.session.add(t)
            db.session.commit()
            return t.id
    return _make


@pytest.fixture()
def make_feedback(app):
    def _make(**kw) -> int:
        fields = {
            "device_type": "ios",
            "device_model": "iPhone 15",
            "feedback_type": "bug_report",
            "comment": "The app crashes when I open settings.",
            "is_anonymous": False,
            "email": "grace@icloud.com",
            "status": "to_discuss",
            "development_estimate": 0,
        }
        fields.update(kw)
        with app.app_context():
            f = Feedback(**fields)
            db.session.add(f)
            db.session.commit()
            return f.id
    return _make
