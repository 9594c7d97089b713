"""Pytest fixtures for the time tracker tests."""

import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from models import db, User

TEST_CONFIG = {
    "TESTING": True,
    "SECRET_KEY": "test-secret",
    "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    "SCHEDULER_ENABLED": False,
    "VAPID_PUBLIC_KEY": "test-vapid-public",
    "VAPID_PRIVATE_KEY": "test-vapid-private",
    "RESEND_API_KEY": "re_test_key",
    "CLOUDINARY_CLOUD_NAME": None,
}


@pytest.fixture
def app():
    """Fresh application with an in-memory database per test."""
    app = create_app(TEST_CONFIG)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


def _make_user(username, email=None):
    user = User(username=username, password_hash=generate_password_hash("secret123"), email=email)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def make_user(app_ctx):
    return _make_user


@pytest.fixture
def user(make_user):
    return make_user("alice", "alice@example.com")


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_client(client):
    """Client logged in as a freshly registered user."""
    response = client.post(
        "/auth/register",
        json={"username": "bob", "password": "secret123", "email": "bob@example.com"},
    )
    assert response.status_code == 200
    return client
