"""Work log ("escala"): who was present on a day, deliveries and consumption."""

from __future__ import annotations

from collections.abc import Iterator
from decimal import Decimal
from typing import Any

import structlog

from daybook.money import ZERO, to_count, to_money
from daybook.models import WorkLogEntry
from daybook.paths import date_key

logger = structlog.get_logger(__name__)


class WorkLog:
    """In-memory work log for one date.

    Holds at most one entry per employee. Nothing here touches the store;
    the closing engine persists the log when the day is finalized.
    """

    def __init__(self, closing_date: str, entries: list[WorkLogEntry] | None = None):
        self.date = date_key(closing_date)
        self._entries: dict[str, WorkLogEntry] = {}
        # Employees edited locally since the last persisted snapshot
        self._dirty: set[str] = set()
        for entry in entries or []:
            if entry.employee_id:
                self._entries[entry.employee_id] = entry

    @classmethod
    def from_document(cls, closing_date: str, data: dict[str, Any] | None) -> WorkLog:
        entries = [
            WorkLogEntry.from_document(item)
            for item in (data or {}).get("employees") or []
            if isinstance(item, dict)
        ]
        return cls(closing_date, entries)

    def to_document(self) -> dict[str, Any]:
        return {"employees": [entry.to_document() for entry in self._entries.values()]}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[WorkLogEntry]:
        return iter(list(self._entries.values()))

    def __contains__(self, employee_id: object) -> bool:
        return employee_id in self._entries

    @property
    def entries(self) -> list[WorkLogEntry]:
        return list(self._entries.values())

    @property
    def is_dirty(self) -> bool:
        return bool(self._dirty)

    def entry_for(self, employee_id: str) -> WorkLogEntry | None:
        return self._entries.get(employee_id)

    def deliveries_for(self, employee_id: str) -> int:
        entry = self._entries.get(employee_id)
        return entry.deliveries if entry else 0

    def mark_attendance(self, employee_id: str, present: bool) -> None:
        """Mark or unmark an employee as present.

        Marking an already present employee keeps their deliveries and
        consumption. Unmarking drops the entry together with its values.
        """
        self._dirty.add(employee_id)
        if present:
            if employee_id not in self._entries:
                self._entries[employee_id] = WorkLogEntry(employee_id)
                logger.debug("attendance_marked", date=self.date, employee_id=employee_id)
        elif self._entries.pop(employee_id, None) is not None:
            logger.debug("attendance_unmarked", date=self.date, employee_id=employee_id)

    def set_deliveries(self, employee_id: str, count: Any) -> None:
        entry = self._entries.get(employee_id)
        if entry is None:
            return
        entry.deliveries = to_count(count)
        self._dirty.add(employee_id)

    def set_consumption(self, employee_id: str, amount: Any) -> None:
        entry = self._entries.get(employee_id)
        if entry is None:
            return
        # Consumption is never negative
        entry.consumption = max(to_money(amount), ZERO)
        self._dirty.add(employee_id)

    def total_consumption(self) -> Decimal:
        return sum((entry.consumption for entry in self._entries.values()), Decimal("0.00"))

    def apply_remote(self, data: dict[str, Any] | None) -> None:
        """Merge a pushed snapshot, keeping employees edited locally."""
        remote = WorkLog.from_document(self.date, data)
        merged: dict[str, WorkLogEntry] = {}
        for entry in remote:
            if entry.employee_id not in self._dirty:
                merged[entry.employee_id] = entry
        for employee_id in self._dirty:
            local = self._entries.get(employee_id)
            if local is not None:
                merged[employee_id] = local
        self._entries = merged

    def mark_clean(self) -> None:
        self._dirty.clear()
