"""Pytest fixtures for testing"""

import pytest
from typing import Generator
from fastapi.testclient import TestClient
from loan_ledger.api.main import create_app
from loan_ledger.infrastructure.database.models import Application, Contract, Judgment
from loan_ledger.infrastructure.database.store import LedgerStore
from loan_ledger.services import applications, contracts, judgments


@pytest.fixture
def store(tmp_path) -> Generator[LedgerStore, None, None]:
    """Ledger store on a fresh SQLite file per test"""
    ledger_store = LedgerStore.from_url(f"sqlite:///{tmp_path / 'ledger.db'}")
    ledger_store.create_schema()
    try:
        yield ledger_store
    finally:
        ledger_store.drop_schema()
        ledger_store.engine.dispose()


@pytest.fixture
def client(store: LedgerStore) -> TestClient:
    """Create FastAPI test client bound to the test store"""
    return TestClient(create_app(store))


@pytest.fixture
def application(store: LedgerStore) -> Application:
    """A submitted application asking for 10000"""
    return applications.create_application(
        store,
        name="Jane Doe",
        phone="010-1234-5678",
        email="jane@example.com",
        requested_amount=10000,
        interest_rate=5.0,
        maturity=36,
    )


@pytest.fixture
def approved_judgment(store: LedgerStore, application: Application) -> Judgment:
    """Judgment approving 8000 at 5%"""
    return judgments.create_judgment(
        store,
        application.id,
        name="Standard review",
        approval_amount=8000,
        approval_rate=5.0,
    )


@pytest.fixture
def pending_contract(store: LedgerStore, application: Application, approved_judgment: Judgment) -> Contract:
    """Contract for the approved amount, not yet signed"""
    return contracts.create_contract(
        store,
        application.id,
        approved_judgment.id,
        amount=8000,
        rate=5.0,
        term=36,
    )


@pytest.fixture
def active_contract(store: LedgerStore, pending_contract: Contract) -> Contract:
    """Activated contract; the application's balance starts at 8000"""
    return contracts.update_contract_status(store, pending_contract.id, "active")
