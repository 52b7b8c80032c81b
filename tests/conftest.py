"""Shared test fixtures and helpers."""

from datetime import datetime, timedelta

import pytest

from app import create_app
from config import Config
from models import db
from models.service import Service
from models.staff import Staff
from models.timeslot import Timeslot
from models.user import Role, User
from security.password import hash_password

ADMIN_PASSWORD = "correct-horse-battery"


class TestConfig(Config):
    TESTING = True
    CREATE_SCHEMA_ON_STARTUP = True
    # concurrent writers wait for the sqlite lock instead of failing
    SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 30}}
    SMTP_HOST = None
    ADMIN_NOTIFY_EMAIL = None
    SHOP_TIMEZONE = "UTC"
    CANCEL_CUTOFF_HOURS = 0
    LOGIN_RATE_MAX_REQUESTS = 1000
    BOOKING_RATE_MAX_REQUESTS = 1000
    CANCEL_RATE_MAX_REQUESTS = 1000
    SITE_URL = "https://shop.example.com"


@pytest.fixture
def app(tmp_path):
    config_class = type(
        "PerTestConfig",
        (TestConfig,),
        {"SQLALCHEMY_DATABASE_URI": "sqlite:///" + str(tmp_path / "test.db")},
    )
    app = create_app(config_class)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


def make_staff(name="Mike Johnson", active=True) -> Staff:
    staff = Staff(name=name, bio="", is_active=active)
    db.session.add(staff)
    db.session.commit()
    return staff


def make_service(name="Express Wash", price_cents=3000, duration_min=30, active=True) -> Service:
    service = Service(name=name, price_cents=price_cents, duration_min=duration_min, is_active=active)
    db.session.add(service)
    db.session.commit()
    return service


def make_slot(staff, start=None, minutes=30, blocked=False) -> Timeslot:
    if start is None:
        day = datetime.utcnow().date() + timedelta(days=2)
        start = datetime(day.year, day.month, day.day, 9, 0)
    slot = Timeslot(staff_id=staff.id, start_time=start, end_time=start + timedelta(minutes=minutes), is_blocked=blocked)
    db.session.add(slot)
    db.session.commit()
    return slot


def booking_payload(service, staff, slot, **overrides) -> dict:
    data = {
        "serviceId": service.id,
        "staffId": staff.id,
        "timeslotId": slot.id,
        "customerName": "Alice Walker",
        "customerEmail": "alice@example.com",
        "customerPhone": "555-0100",
        "notes": "Black sedan",
    }
    data.update(overrides)
    return data


@pytest.fixture
def catalog(app):
    """One service, one technician, one future 9:00-9:30 slot."""
    service = make_service()
    staff = make_staff()
    slot = make_slot(staff)
    return service, staff, slot


def make_user(email="admin@example.com", role="ADMIN") -> User:
    user = User(email=email, password_hash=hash_password(ADMIN_PASSWORD))
    role_row = Role.query.filter_by(name=role).first()
    user.roles.append(role_row)
    db.session.add(user)
    db.session.commit()
    return user


def login(client, email="admin@example.com", password=ADMIN_PASSWORD) -> dict:
    """Log in and return the headers an admin request needs (CSRF)."""
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    csrf = client.get_cookie("csrf_token")
    return {"X-CSRF-Token": csrf.value}
