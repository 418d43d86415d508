"""Pytest fixtures for testing"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from goldloan_core.api.main import create_app
from goldloan_core.infrastructure.database.models import Base, LoanRecord
from goldloan_core.infrastructure.database.session import get_db
from goldloan_core.services.loans import LoanLifecycleService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ACTOR = "officer-1"


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def headers() -> dict:
    """Caller identity for mutating requests"""
    return {"X-Actor-Id": ACTOR}


@pytest.fixture
def sample_items() -> list[dict]:
    """Two pledged ornaments valued at the pledge-time rate"""
    return [
        {
            "item_type": "Necklace",
            "weight_grams": Decimal("20.000"),
            "purity": "22K",
            "rate_at_pledge": Decimal("6000.00"),
            "description": "Temple design",
        },
        {
            "item_type": "Bangle",
            "weight_grams": Decimal("10.500"),
            "purity": "22K",
            "rate_at_pledge": Decimal("6000.00"),
        },
    ]


@pytest.fixture
def pending_loan(db: Session, sample_items: list[dict]) -> LoanRecord:
    """₹100,000 at 12% for 12 months, with two pledged items"""
    return LoanLifecycleService(db).create_loan(
        customer_id="CUST-001",
        principal_amount=Decimal("100000"),
        interest_rate_percent=Decimal("12"),
        tenure_months=12,
        actor=ACTOR,
        items=sample_items,
    )


@pytest.fixture
def disburse_loan(db: Session) -> Callable[..., LoanRecord]:
    """Approve and disburse a pending loan on a chosen date"""

    def _disburse(loan: LoanRecord, on: date | None = None) -> LoanRecord:
        service = LoanLifecycleService(db)
        service.approve(loan.id, ACTOR)
        return service.disburse(loan.id, ACTOR, today=on or date.today())

    return _disburse


@pytest.fixture
def active_loan(pending_loan: LoanRecord, disburse_loan) -> LoanRecord:
    """Loan disbursed today, maturing in twelve months"""
    return disburse_loan(pending_loan)


@pytest.fixture
def matured_loan(pending_loan: LoanRecord, disburse_loan) -> LoanRecord:
    """Loan disbursed 400 days ago, so its 12-month maturity passed 34-35 days ago"""
    return disburse_loan(pending_loan, on=date.today() - timedelta(days=400))
