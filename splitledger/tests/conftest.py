"""
Pytest configuration and fixtures for splitledger tests.
"""
import os

# Keep imports of the app module from touching a file database
os.environ.setdefault("DATABASE_URL", "sqlite://")

import itertools
import pytest
from decimal import Decimal
from datetime import datetime
from typing import Dict, Optional, Set
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from splitledger.db.database import Base, get_db
from splitledger.schemas.ledger_schema import ExpenseRecord, SettlementRecord, SplitRecord, SplitType
from splitledger.services.auth.jwt_handler import create_access_token
import splitledger.models.users  # noqa: F401
import splitledger.models.groups  # noqa: F401
import splitledger.models.expenses  # noqa: F401
import splitledger.models.settlements  # noqa: F401

_ids = itertools.count(1)


def make_expense(
    payer: str,
    shares: Dict[str, str],
    group_id: Optional[str] = None,
    paid: Optional[Set[str]] = None,
    date: datetime = datetime(2024, 3, 1),
    split_type: SplitType = SplitType.equal
) -> ExpenseRecord:
    """
    Build an expense record. The payer's own split is marked paid, as the
    split resolver does; users listed in `paid` are marked paid as well.
    """
    paid = set(paid or ()) | {payer}
    splits = [
        SplitRecord(user_id=user_id, amount=Decimal(amount), paid=user_id in paid)
        for user_id, amount in shares.items()
    ]
    return ExpenseRecord(
        id=f"e{next(_ids)}",
        description="test expense",
        amount=sum((s.amount for s in splits), Decimal("0")),
        date=date,
        paid_by_user_id=payer,
        group_id=group_id,
        split_type=split_type,
        splits=splits,
        created_by=payer
    )


def make_settlement(
    payer: str,
    receiver: str,
    amount: str,
    group_id: Optional[str] = None,
    created_by: Optional[str] = None
) -> SettlementRecord:
    return SettlementRecord(
        id=f"s{next(_ids)}",
        amount=Decimal(amount),
        date=datetime(2024, 3, 2),
        paid_by_user_id=payer,
        received_by_user_id=receiver,
        group_id=group_id,
        created_by=created_by or payer
    )


@pytest.fixture
def three_way_group_expenses():
    """A pays 90 split three ways, B pays 30 split three ways."""
    return [
        make_expense("A", {"A": "30.00", "B": "30.00", "C": "30.00"}, group_id="g1"),
        make_expense("B", {"A": "10.00", "B": "10.00", "C": "10.00"}, group_id="g1"),
    ]


@pytest.fixture
def db_session():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db_session):
    """TestClient bound to the in-memory database."""
    from fastapi.testclient import TestClient
    from splitledger.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user_id: str) -> Dict[str, str]:
    return {"access-token": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def registered_users(client):
    """Stores alice, bob and carol and returns their ids."""
    for user_id, name in (("alice", "Alice"), ("bob", "Bob"), ("carol", "Carol")):
        response = client.post(
            "/users",
            json={"name": name, "email": f"{user_id}@example.com"},
            headers=auth_headers(user_id)
        )
        assert response.status_code == 200
    return ["alice", "bob", "carol"]
