"""Daily closing ("fechamento"): cash reconciliation and credit accrual.

The totals are pure arithmetic over the draft inputs and the work log.
Finalizing writes the closing, the work log and every present employee's
new credit in a single store transaction.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import structlog

from daybook.config import get_settings
from daybook.errors import ClosingAlreadyFinalizedError, ValidationError
from daybook.ledger import accrue_daily_credit
from daybook.models import (
    CLOSING_FIELDS,
    RECEIPTS_FIELD,
    ClosingInputs,
    ClosingTotals,
    DailyClosing,
    DeliveryCommission,
    Employee,
    Receipt,
    utc_timestamp,
)
from daybook.money import ZERO, to_money, to_number
from daybook.paths import closing_document, date_key, employee_document, work_log_document
from daybook.store.base import DocumentStore, Transaction
from daybook.worklog import WorkLog

logger = structlog.get_logger(__name__)


# === Pure computation ===


def compute_delivery_commissions(
    roster: Iterable[Employee],
    work_log: WorkLog,
    delivery_rate: Decimal,
    fixed_bonus: Decimal,
) -> list[DeliveryCommission]:
    """Commission for every delivery employee, present or not.

    ``deliveries * rate``, plus the fixed bonus when there was at least one
    delivery. Employees missing from the work log show zero deliveries.
    """
    commissions = []
    for employee in roster:
        if not employee.is_delivery:
            continue
        deliveries = work_log.deliveries_for(employee.id)
        bonus = fixed_bonus if deliveries > 0 else ZERO
        commissions.append(
            DeliveryCommission(
                employee_id=employee.id,
                name=employee.name,
                deliveries=deliveries,
                commission=to_money(deliveries * delivery_rate + bonus),
            )
        )
    return commissions


def compute_totals(
    inputs: ClosingInputs,
    work_log: WorkLog,
    roster: Iterable[Employee] = (),
) -> ClosingTotals:
    """Derive receipts total, counted total, expected subtotal and difference."""
    total_receipts = sum((r.amount for r in inputs.receipts), ZERO)
    total_counted = inputs.counted_change + inputs.counted_notes
    subtotal = inputs.opening_balance + inputs.change_inflow + total_receipts - inputs.cash_outflow
    commissions = compute_delivery_commissions(
        roster, work_log, inputs.delivery_rate, inputs.fixed_bonus
    )
    return ClosingTotals(
        total_receipts=to_money(total_receipts),
        total_counted=to_money(total_counted),
        subtotal=to_money(subtotal),
        difference=to_money(total_counted - subtotal),
        commissions=tuple(commissions),
    )


# === Draft editing ===


class ClosingDraft:
    """Closing inputs being edited, merged with pushed snapshots.

    Fields the user has touched are tracked in a dirty set; remote updates
    only overwrite fields that are not dirty.
    """

    def __init__(self, inputs: ClosingInputs | None = None):
        self.inputs = inputs or ClosingInputs()
        self._dirty: set[str] = set()

    @classmethod
    def from_document(cls, data: dict[str, Any] | None) -> ClosingDraft:
        return cls(ClosingInputs.from_document(data))

    @property
    def dirty_fields(self) -> frozenset[str]:
        return frozenset(self._dirty)

    def edit(self, key: str, value: Any) -> Decimal:
        """Set a money field by its document name, coercing invalid input to 0.

        Clearing a commission parameter restores its default.
        """
        attr = CLOSING_FIELDS.get(key)
        if attr is None:
            raise ValidationError(f"Unknown closing field: {key}", field=key)
        amount = ClosingInputs.field_value(key, value)
        setattr(self.inputs, attr, amount)
        self._dirty.add(key)
        return amount

    def add_receipt(self, name: str = "", amount: Any = 0) -> int:
        self.inputs.receipts.append(Receipt(name=name, amount=to_money(amount)))
        self._dirty.add(RECEIPTS_FIELD)
        return len(self.inputs.receipts) - 1

    def edit_receipt(self, index: int, name: str | None = None, amount: Any = None) -> None:
        receipt = self._receipt(index)
        if name is not None:
            receipt.name = name
        if amount is not None:
            receipt.amount = to_money(amount)
        self._dirty.add(RECEIPTS_FIELD)

    def remove_receipt(self, index: int) -> None:
        self._receipt(index)
        del self.inputs.receipts[index]
        self._dirty.add(RECEIPTS_FIELD)

    def _receipt(self, index: int) -> Receipt:
        if not 0 <= index < len(self.inputs.receipts):
            raise ValidationError(f"No receipt at position {index}", field=RECEIPTS_FIELD)
        return self.inputs.receipts[index]

    def apply_remote(self, data: dict[str, Any] | None) -> None:
        """Three-way merge of a pushed closing document into the draft."""
        if data is None:
            return
        remote = ClosingInputs.from_document(data)
        for key, attr in CLOSING_FIELDS.items():
            if key not in self._dirty:
                setattr(self.inputs, attr, getattr(remote, attr))
        if RECEIPTS_FIELD not in self._dirty:
            self.inputs.receipts = remote.receipts

    def mark_clean(self) -> None:
        self._dirty.clear()


# === Finalization ===


@dataclass
class FinalizeResult:
    """Outcome of a finalized closing."""

    date: str
    closing: DailyClosing
    credits: dict[str, Decimal] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)


class ClosingEngine:
    """Reads closings and finalizes a day atomically."""

    def __init__(
        self,
        store: DocumentStore,
        app_id: str | None = None,
        daily_credit: Decimal | None = None,
        guard_refinalize: bool | None = None,
    ):
        settings = get_settings()
        self._store = store
        self._app_id = app_id
        self.daily_credit = (
            daily_credit if daily_credit is not None else settings.daily_consumption_credit
        )
        self.guard_refinalize = (
            guard_refinalize if guard_refinalize is not None else settings.guard_refinalize
        )
        self._logger = logger.bind(component="closing_engine")

    async def get_closing(self, closing_date: str) -> DailyClosing | None:
        """Look up the persisted closing of a date, if any."""
        key = date_key(closing_date)
        snapshot = await self._store.get(closing_document(self._store, key, self._app_id))
        if not snapshot.exists:
            return None
        return DailyClosing.from_document(key, snapshot.data or {})

    async def get_work_log(self, closing_date: str) -> WorkLog:
        key = date_key(closing_date)
        snapshot = await self._store.get(work_log_document(self._store, key, self._app_id))
        return WorkLog.from_document(key, snapshot.data)

    async def finalize(
        self,
        closing_date: str,
        inputs: ClosingInputs,
        work_log: WorkLog,
        closed_by: str,
        guard: bool | None = None,
    ) -> FinalizeResult:
        """Persist the day and apply every present employee's credit delta.

        In one transaction: set the closing document, set the work log
        document and, for each work log entry, update the employee credit to
        ``credit + daily_credit - consumption``. Employees that no longer
        exist are skipped. Finalizing the same date twice applies the
        accrual twice unless ``guard`` (or ``DAYBOOK_GUARD_REFINALIZE``) is
        on, in which case an already closed date raises
        :class:`ClosingAlreadyFinalizedError`.
        """
        key = date_key(closing_date)
        if work_log.date != key:
            raise ValidationError(
                f"Work log is for {work_log.date}, not {key}", field="date"
            )
        check_existing = self.guard_refinalize if guard is None else guard

        totals = compute_totals(inputs, work_log)
        closing_ref = closing_document(self._store, key, self._app_id)
        work_log_ref = work_log_document(self._store, key, self._app_id)
        entries = work_log.entries
        work_log_data = work_log.to_document()

        async def work(tx: Transaction) -> FinalizeResult:
            if check_existing:
                existing = await tx.get(closing_ref)
                if existing.exists and existing.get("closedAt"):
                    raise ClosingAlreadyFinalizedError(key, existing.get("closedAt"))

            # Reads first: transactions reject reads after writes
            employee_snapshots = [
                (entry, await tx.get(employee_document(self._store, entry.employee_id, self._app_id)))
                for entry in entries
            ]

            closing = DailyClosing(
                date=key,
                inputs=inputs,
                difference=totals.difference,
                closed_by=closed_by,
                closed_at=utc_timestamp(),
            )
            tx.set(closing_ref, closing.to_document())
            tx.set(work_log_ref, work_log_data)

            result = FinalizeResult(date=key, closing=closing)
            for entry, snapshot in employee_snapshots:
                if not snapshot.exists:
                    result.skipped.append(entry.employee_id)
                    continue
                new_credit = accrue_daily_credit(
                    to_money(snapshot.get("credit")), entry.consumption, self.daily_credit
                )
                tx.update(snapshot.ref, {"credit": to_number(new_credit)})
                result.credits[entry.employee_id] = new_credit
            return result

        result = await self._store.run_transaction(work)

        for employee_id in result.skipped:
            self._logger.warning("employee_skipped", date=key, employee_id=employee_id)
        self._logger.info(
            "closing_finalized",
            date=key,
            closed_by=closed_by,
            difference=str(totals.difference),
            credited=len(result.credits),
            skipped=len(result.skipped),
        )
        work_log.mark_clean()
        return result
