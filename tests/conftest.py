# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from taskmarket import create_app
from taskmarket.config import Config
from taskmarket.extensions import db
from taskmarket.models.user import User
from taskmarket.services import lifecycle, payment_service

from .fakes import FakeProcessor

PASSWORD = "passw0rd123"


class TestConfig(Config):
    __test__ = False

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    WTF_CSRF_ENABLED = False
    SESSION_COOKIE_SECURE = False
    MAIL_SUPPRESS_SEND = True
    MAIL_DEFAULT_SENDER = "noreply@taskmarket.app"
    STRIPE_SECRET_KEY = "sk_test_123"
    STRIPE_API_BASE = "https://stripe.invalid/v1"
    SENTRY_DSN = ""
    LOG_LEVEL = "WARNING"
    LOG_JSON = False


@pytest.fixture()
def app(tmp_path: Path):
    """
    Fresh app + in-memory database per test.

    No app context stays pushed here: each test client request gets its own,
    like production. Service-level tests use ``ctx`` instead.
    """
    cfg = type("PerTestConfig", (TestConfig,), {"LOG_DIR": str(tmp_path / "logs")})
    app = create_app(cfg)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture()
def processor(monkeypatch) -> FakeProcessor:
    fake = FakeProcessor()
    monkeypatch.setattr(payment_service, "create_checkout_session", fake.create_checkout_session)
    monkeypatch.setattr(payment_service, "retrieve_checkout_session", fake.retrieve_checkout_session)
    return fake


# -----------------
# Service-level helpers (need ``ctx``)
# -----------------

def make_user(email: str, full_name: str | None = None) -> str:
    u = User(email=email, full_name=full_name or email.split("@")[0].title())
    u.set_password(PASSWORD)
    db.session.add(u)
    db.session.commit()
    return u.id


@pytest.fixture()
def owner(ctx) -> str:
    return make_user("owner@gmail.com", "Olivia Owner")


@pytest.fixture()
def tasker(ctx) -> str:
    return make_user("tasker@gmail.com", "Tom Tasker")


@pytest.fixture()
def tasker2(ctx) -> str:
    return make_user("second@gmail.com", "Sam Second")


def post_task(owner_id: str, **overrides):
    fields = dict(
        title="Assemble IKEA wardrobe",
        description="PAX wardrobe, two doors, all parts on site.",
        category="handyman",
        location="Brooklyn, NY",
        budget_type="range",
        budget_min=50,
        budget_max=100,
        skills=["assembly", "tools"],
    )
    fields.update(overrides)
    return lifecycle.create_task(owner_id, **fields)


@pytest.fixture()
def open_task(owner):
    return post_task(owner)


# -----------------
# HTTP helpers
# -----------------

def register(client, email: str, full_name: str = "Test User"):
    return client.post("/auth/register", json={
        "full_name": full_name,
        "email": email,
        "password": PASSWORD,
        "password2": PASSWORD,
    })


@pytest.fixture()
def owner_client(app):
    c = app.test_client()
    assert register(c, "olivia@gmail.com", "Olivia Owner").status_code == 201
    return c


@pytest.fixture()
def tasker_client(app):
    c = app.test_client()
    assert register(c, "tom@gmail.com", "Tom Tasker").status_code == 201
    return c


@pytest.fixture()
def tasker2_client(app):
    c = app.test_client()
    assert register(c, "sam@gmail.com", "Sam Second").status_code == 201
    return c
