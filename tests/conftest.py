"""Pytest configuration and fixtures."""

import os
from collections.abc import Awaitable, Callable
from decimal import Decimal

import pytest

# Pin the settings the tests rely on before anything reads them
os.environ["DAYBOOK_APP_ID"] = "test-app"
os.environ["DAYBOOK_STORE"] = "memory"
os.environ.pop("DAYBOOK_GUARD_REFINALIZE", None)
os.environ.pop("DAILY_CONSUMPTION_CREDIT", None)

from daybook.config import get_settings  # noqa: E402
from daybook.models import Employee  # noqa: E402
from daybook.paths import employee_document  # noqa: E402
from daybook.store import InMemoryDocumentStore  # noqa: E402

SeedEmployee = Callable[..., Awaitable[str]]


@pytest.fixture(autouse=True)
def fresh_settings():
    """Re-read settings for every test so env changes are picked up."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def seed_employee(store: InMemoryDocumentStore) -> SeedEmployee:
    """Write an employee document straight into the store."""

    async def _seed(
        employee_id: str,
        name: str | None = None,
        credit: str = "0.00",
        is_delivery: bool = False,
    ) -> str:
        employee = Employee(
            id=employee_id,
            name=name or employee_id,
            is_delivery=is_delivery,
            credit=Decimal(credit),
            salary_base=Decimal("60.00"),
            created_at="2026-10-01T09:00:00.000Z",
        )
        await store.set(employee_document(store, employee_id), employee.to_document())
        return employee_id

    return _seed


async def read_credit(store: InMemoryDocumentStore, employee_id: str) -> Decimal:
    snapshot = await store.get(employee_document(store, employee_id))
    return Decimal(str(snapshot.get("credit")))


@pytest.fixture
def credit_of(store: InMemoryDocumentStore) -> Callable[[str], Awaitable[Decimal]]:
    """Read an employee's persisted credit as a Decimal."""

    async def _credit(employee_id: str) -> Decimal:
        return await read_credit(store, employee_id)

    return _credit
