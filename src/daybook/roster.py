"""Employee roster administration."""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal

import structlog

from daybook.config import get_settings
from daybook.errors import ValidationError
from daybook.models import Employee, utc_timestamp
from daybook.money import ZERO
from daybook.paths import employee_document, employees_collection
from daybook.store.base import DocumentSnapshot, DocumentStore, Subscription

logger = structlog.get_logger(__name__)


class Roster:
    """Creates and reads employees. Credit is never written from here."""

    def __init__(
        self,
        store: DocumentStore,
        app_id: str | None = None,
        daily_salary: Decimal | None = None,
    ):
        self._store = store
        self._app_id = app_id
        self._daily_salary = daily_salary if daily_salary is not None else get_settings().daily_salary
        self._collection = employees_collection(store, app_id)

    async def add_employee(self, name: str, is_delivery: bool = False) -> Employee:
        """Register a new employee with zero credit and the fixed daily salary."""
        clean_name = (name or "").strip()
        if not clean_name:
            raise ValidationError("O nome é obrigatório.", field="name")

        ref = self._collection.document()
        employee = Employee(
            id=ref.id,
            name=clean_name,
            is_delivery=is_delivery,
            credit=ZERO,
            salary_base=self._daily_salary,
            created_at=utc_timestamp(),
        )
        await self._store.set(ref, employee.to_document())
        logger.info("employee_added", employee_id=ref.id, is_delivery=is_delivery)
        return employee

    async def list_employees(self) -> list[Employee]:
        snapshots = await self._store.list(self._collection)
        return [Employee.from_snapshot(s) for s in snapshots if s.exists]

    async def get_employee(self, employee_id: str) -> Employee | None:
        snapshot = await self._store.get(employee_document(self._store, employee_id, self._app_id))
        return Employee.from_snapshot(snapshot) if snapshot.exists else None

    async def delivery_employees(self) -> list[Employee]:
        return [e for e in await self.list_employees() if e.is_delivery]

    def subscribe(self, callback: Callable[[list[Employee]], None]) -> Subscription:
        """Push the full roster to ``callback`` now and on every change."""

        def on_change(snapshots: list[DocumentSnapshot]) -> None:
            employees = [Employee.from_snapshot(s) for s in snapshots if s.exists]
            logger.debug("roster_loaded", count=len(employees))
            callback(employees)

        return self._store.subscribe(self._collection, on_change)
