"""Pytest configuration and shared fixtures.

Every test gets a throwaway SQLite database under ``tmp_path`` so nothing
touches a real MySQL instance.
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from household_bills.config import Settings
from household_bills.main import create_app
from household_bills.services.bill_store import BillStore
from household_bills.services.database_service import DatabaseService

ADMIN_TOKEN = "test-admin-token"
FIXED_TODAY = date(2025, 3, 15)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def app_settings(tmp_path) -> Settings:
    """Settings pointing at a per-test SQLite file."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'bills.db'}",
        admin_purge_token=ADMIN_TOKEN,
    )


@pytest.fixture
async def database_service(app_settings: Settings):
    service = DatabaseService(app_settings)
    await service.create_tables()
    yield service
    await service.close()


@pytest.fixture
def store(database_service: DatabaseService, app_settings: Settings) -> BillStore:
    """Store with a pinned calendar day for paidAt stamping."""
    return BillStore(database_service, app_settings, today=lambda: FIXED_TODAY)


@pytest.fixture
def client(app_settings: Settings):
    app = create_app(app_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def bill_payload() -> dict:
    return {
        "name": "Meralco",
        "amount": 2450.75,
        "dueDate": "2025-03-20",
        "category": "electricity",
        "provider": "Meralco",
    }


@pytest.fixture
def spaylater_payload() -> dict:
    return {
        "name": "Air fryer",
        "amount": "3999.00",
        "dueDate": "2025-04-05",
        "category": "spaylater",
        "installment": "three_months",
        "assignee": "lia",
    }
