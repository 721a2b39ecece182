"""
Shared test fixtures.
Swap the configured database for an in-memory SQLite database so that
tests run fast and without external dependencies.
"""
import os
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

# ── Force SQLite BEFORE any rideshare module is imported ──────────────────
os.environ["DATABASE_URL"] = "sqlite://"

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import rideshare.database as _db

# one shared connection, so every session sees the same in-memory database
_test_engine = create_engine(
    "sqlite://",
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(bind=_test_engine, autocommit=False, autoflush=False)

# Monkey-patch the database module so every Storage class uses the test DB
_db.engine = _test_engine
_db.SessionLocal = _TestSessionLocal

from rideshare.auth import AdminRole, AdminUser, AdminUserStorage, create_access_token, get_password_hash
from rideshare.catalog.value_objects import (
    AdditionalService, DiscountCode, DiscountType, DistrictSurcharge, Itinerary, ItineraryType
)
from rideshare.main import app
from rideshare.storage import (
    AdditionalServiceStorage, DiscountCodeStorage, DistrictSurchargeStorage, ItineraryStorage
)


@pytest.fixture(autouse=True)
def _setup_test_db():
    """Create all tables before each test; drop them after."""
    _db.Base.metadata.create_all(bind=_test_engine)
    yield
    _db.Base.metadata.drop_all(bind=_test_engine)


@pytest.fixture
def client():
    return TestClient(app)


def _make_user(username: str, role: AdminRole) -> AdminUser:
    now = datetime.now()
    user = AdminUser(
        user_id=f"{username}-id",
        username=username,
        password_hash=get_password_hash("password123"),
        role=role,
        created_at=now,
        updated_at=now,
    )
    AdminUserStorage.save(user)
    return user


@pytest.fixture
def admin_user():
    return _make_user("root", AdminRole.ADMIN)


@pytest.fixture
def staff_user():
    return _make_user("helper", AdminRole.STAFF)


def _headers(user: AdminUser) -> dict:
    token = create_access_token({"sub": user.username, "user_id": user.user_id, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
def staff_headers(staff_user):
    return _headers(staff_user)


@pytest.fixture
def future_date():
    return date.today() + timedelta(days=14)


@pytest.fixture
def catalog():
    """The catalog used by the pricing scenarios."""
    airport = Itinerary(
        itinerary_id="iti-airport",
        name="Airport Pickup",
        type=ItineraryType.AIRPORT_PICKUP,
        price_per_person=Decimal("500000"),
        available_times=["08:00", "14:00"],
    )
    tour = Itinerary(
        itinerary_id="iti-tour",
        name="City Tour",
        type=ItineraryType.TOURISM,
        price_per_person=Decimal("250000"),
    )
    ItineraryStorage.save(airport)
    ItineraryStorage.save(tour)

    kuta = DistrictSurcharge("dist-kuta", "Kuta", Decimal("50000"))
    DistrictSurchargeStorage.save(kuta)

    luggage = AdditionalService(
        service_id="svc-luggage",
        name="Extra Luggage",
        price=Decimal("100000"),
        applicable_to=[ItineraryType.AIRPORT_PICKUP, ItineraryType.AIRPORT_DROPOFF],
    )
    AdditionalServiceStorage.save(luggage)

    fixed = DiscountCode("disc-fixed", "hemat200", DiscountType.FIXED, Decimal("200000"))
    percent = DiscountCode("disc-pct", "TEN", DiscountType.PERCENTAGE, Decimal("10"))
    DiscountCodeStorage.save(fixed)
    DiscountCodeStorage.save(percent)

    return {
        "airport": airport,
        "tour": tour,
        "kuta": kuta,
        "luggage": luggage,
        "fixed": fixed,
        "percent": percent,
    }
