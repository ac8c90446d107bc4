"""
Pytest fixtures for the billing tracker test suite.

Provides:
- An in-memory SQLite session per test (StaticPool, fresh schema)
- A FastAPI TestClient wired to that session
- Small factories for clients, work entries and payments
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"

import datetime as dt
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from billing_app.core.dependencies import get_db
from billing_app.db.base import Base
from billing_app.main import app
from billing_app.models.client import Client
from billing_app.models.enums import ChargedBy, ClientStatus, PricingMode, WorkStatus
from billing_app.models.payment import PaymentEntry
from billing_app.models.work_entry import WorkEntry


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine) -> Generator[Session, None, None]:
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def api(engine) -> Generator[TestClient, None, None]:
    """TestClient whose requests each get their own session on the test engine."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_client(db):
    def _make(
        name: str = "Acme",
        charged_by: ChargedBy = ChargedBy.MINUTE,
        rate: float = 100,
        status: ClientStatus = ClientStatus.ACTIVE,
        **extra,
    ) -> Client:
        client = Client(
            name=name,
            charged_by=charged_by.value,
            rate=rate,
            status=status.value,
            **extra,
        )
        db.add(client)
        db.commit()
        db.refresh(client)
        return client

    return _make


@pytest.fixture
def make_work(db):
    def _make(
        client: Client,
        amount_due: float,
        status: WorkStatus = WorkStatus.DELIVERED,
        date: dt.date = dt.date(2024, 1, 10),
        project_name: str = "Edit",
        **extra,
    ) -> WorkEntry:
        delivered_at = None
        if status == WorkStatus.DELIVERED:
            delivered_at = dt.datetime.combine(date, dt.time(12, 0))

        entry = WorkEntry(
            client_id=client.id,
            date=date,
            project_name=project_name,
            status=status.value,
            delivered_at=delivered_at,
            pricing_mode=PricingMode.MANUAL_TOTAL.value,
            charged_by_snapshot=ChargedBy.PROJECT.value,
            units=1,
            amount_due=amount_due,
            **extra,
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry

    return _make


@pytest.fixture
def make_payment(db):
    def _make(
        client: Client,
        amount: float,
        date: dt.date = dt.date(2024, 1, 15),
        medium: str = "bkash",
    ) -> PaymentEntry:
        payment = PaymentEntry(
            client_id=client.id,
            date=date,
            amount=amount,
            medium=medium,
        )
        db.add(payment)
        db.commit()
        db.refresh(payment)
        return payment

    return _make
