"""
Shared fixtures: an in-memory database, a small trip and an API client.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tripsettle.core.security import create_access_token
from tripsettle.db.base import Base
from tripsettle.db.session import get_db
from tripsettle.main import app
from tripsettle.models import Expense, ExpenseSplit, Trip, TripParticipant, User

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def make_user(db, username, name=None, venmo_username=None, paypal_email=None):
    user = User(
        username=username,
        email=f"{username}@example.com",
        name=name,
        venmo_username=venmo_username,
        paypal_email=paypal_email,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def alice(db):
    return make_user(db, "alice", name="Alice", venmo_username="@alice-v", paypal_email="alice.pay@example.com")


@pytest.fixture
def bob(db):
    return make_user(db, "bob", name="Bob")


@pytest.fixture
def carol(db):
    return make_user(db, "carol", name="Carol", venmo_username="carol_c")


@pytest.fixture
def outsider(db):
    """A user who is not on the trip."""
    return make_user(db, "mallory", name="Mallory")


@pytest.fixture
def trip(db, alice, bob, carol):
    """Lisbon trip with Alice (creator), Bob and Carol."""
    trip = Trip(name="Lisbon", base_currency="EUR")
    db.add(trip)
    db.flush()
    db.add_all([
        TripParticipant(trip_id=trip.id, user_id=alice.id, is_creator=True),
        TripParticipant(trip_id=trip.id, user_id=bob.id),
        TripParticipant(trip_id=trip.id, user_id=carol.id),
    ])
    db.commit()
    db.refresh(trip)
    return trip


def add_expense(db, trip, payer, amount, shares):
    """Create an expense paid by ``payer`` split according to ``{user: amount}``."""
    expense = Expense(trip_id=trip.id, payer_id=payer.id, amount=Decimal(amount), currency=trip.base_currency)
    db.add(expense)
    db.flush()
    for user, share in shares.items():
        db.add(ExpenseSplit(expense_id=expense.id, user_id=user.id, owed_amount=Decimal(share)))
    db.commit()
    db.refresh(expense)
    return expense


@pytest.fixture
def dinner(db, trip, alice, bob, carol):
    """Alice pays 90.00 for dinner, split three ways."""
    return add_expense(db, trip, alice, "90.00", {alice: "30.00", bob: "30.00", carol: "30.00"})


@pytest.fixture
def client(db):
    """API client whose requests share the test session."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user):
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}
