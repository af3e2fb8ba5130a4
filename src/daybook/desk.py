"""The closing desk: the workspace the administrator, cashier and employees use.

The desk keeps live copies of the roster, the selected day's closing and
work log, lets the user edit a draft, and turns failures into status
messages instead of letting them escape to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

import structlog

from daybook.closing import ClosingDraft, ClosingEngine, FinalizeResult, compute_totals
from daybook.errors import DaybookError, PersistenceError
from daybook.ledger import CreditLedger
from daybook.models import ClosingTotals, DailyClosing, Employee
from daybook.money import format_currency, to_money
from daybook.paths import closing_document, date_key, work_log_document
from daybook.roster import Roster
from daybook.session import Role, Session
from daybook.store.base import DocumentSnapshot, DocumentStore, Subscription
from daybook.worklog import WorkLog

logger = structlog.get_logger(__name__)

CLOSING_ROLES = (Role.ADMIN, Role.CASHIER)


def format_date(value: str) -> str:
    """``2026-10-19`` -> ``19/10/2026``."""
    return date.fromisoformat(value).strftime("%d/%m/%Y")


@dataclass(frozen=True)
class StatusMessage:
    """User-facing outcome of the last desk action."""

    text: str
    is_error: bool = False


class ClosingDesk:
    """Live workspace bound to a store, a session and a selected date.

    Usage:
        desk = ClosingDesk(store, Session(identity="uid-123"))
        desk.open()
        desk.login(Role.CASHIER, pin="0000")
        desk.mark_attendance(employee_id, True)
        desk.edit("saldoInicial", "100")
        await desk.finalize(confirm=True)
        desk.close()
    """

    def __init__(
        self,
        store: DocumentStore,
        session: Session | None = None,
        closing_date: date | str | None = None,
        app_id: str | None = None,
    ):
        self.store = store
        self.session = session or Session()
        self._app_id = app_id
        self.roster = Roster(store, app_id)
        self.engine = ClosingEngine(store, app_id)
        self.ledger = CreditLedger(store, app_id)

        self.date = date_key(closing_date or date.today())
        self.employees: list[Employee] = []
        self.closing: DailyClosing | None = None
        self.work_log = WorkLog(self.date)
        self.draft = ClosingDraft()
        self.status: StatusMessage | None = None

        self._roster_subscription: Subscription | None = None
        self._day_subscriptions: list[Subscription] = []
        self._logger = logger.bind(component="closing_desk")

    # === Lifecycle ===

    def open(self) -> None:
        """Start the live subscriptions."""
        if self._roster_subscription is None:
            self._roster_subscription = self.roster.subscribe(self._on_roster)
        self._subscribe_day()

    async def load(self) -> None:
        """One-off read of the roster and the selected day, without listeners."""
        self._on_roster(await self.roster.list_employees())
        self._on_closing(
            await self.store.get(closing_document(self.store, self.date, self._app_id))
        )
        self._on_work_log(
            await self.store.get(work_log_document(self.store, self.date, self._app_id))
        )

    def close(self) -> None:
        """Cancel every live subscription."""
        if self._roster_subscription is not None:
            self._roster_subscription.cancel()
            self._roster_subscription = None
        self._unsubscribe_day()

    def select_date(self, closing_date: date | str) -> None:
        """Switch the desk to another day, discarding the unsaved draft."""
        self._unsubscribe_day()
        self.date = date_key(closing_date)
        self.closing = None
        self.work_log = WorkLog(self.date)
        self.draft = ClosingDraft()
        self._subscribe_day()

    def _subscribe_day(self) -> None:
        self._unsubscribe_day()
        self._day_subscriptions = [
            self.store.subscribe(
                closing_document(self.store, self.date, self._app_id), self._on_closing
            ),
            self.store.subscribe(
                work_log_document(self.store, self.date, self._app_id), self._on_work_log
            ),
        ]

    def _unsubscribe_day(self) -> None:
        for subscription in self._day_subscriptions:
            subscription.cancel()
        self._day_subscriptions = []

    def _on_roster(self, employees: list[Employee]) -> None:
        self.employees = employees

    def _on_closing(self, snapshot: DocumentSnapshot) -> None:
        if snapshot.ref.id != self.date:
            return
        if snapshot.exists:
            self.closing = DailyClosing.from_document(self.date, snapshot.data or {})
            self.draft.apply_remote(snapshot.data)
        else:
            self.closing = None

    def _on_work_log(self, snapshot: DocumentSnapshot) -> None:
        if snapshot.ref.id != self.date:
            return
        self.work_log.apply_remote(snapshot.data)

    # === Session ===

    def login(self, role: Role | str, pin: str | None = None, employee_id: str | None = None) -> bool:
        try:
            self.session.login(role, pin=pin, employee_id=employee_id, roster=self.employees)
        except DaybookError as e:
            self.status = StatusMessage(str(e), is_error=True)
            return False
        self.status = None
        return True

    def logout(self) -> None:
        self.session.logout()
        self.status = None

    def employee(self, employee_id: str) -> Employee | None:
        return next((e for e in self.employees if e.id == employee_id), None)

    @property
    def current_employee(self) -> Employee | None:
        if self.session.role is not Role.EMPLOYEE or not self.session.employee_id:
            return None
        return self.employee(self.session.employee_id)

    # === Roster (admin) ===

    async def add_employee(self, name: str, is_delivery: bool = False) -> Employee | None:
        self.session.require(Role.ADMIN)
        try:
            employee = await self.roster.add_employee(name, is_delivery)
        except PersistenceError as e:
            self._logger.error("add_employee_failed", error=str(e), status=e.status_code)
            self.status = StatusMessage(
                f"Falha ao adicionar funcionário. Código do Erro: {e.status_code or type(e).__name__}",
                is_error=True,
            )
            return None
        except DaybookError as e:
            self.status = StatusMessage(str(e), is_error=True)
            return None
        self.status = StatusMessage(f"{employee.name} adicionado(a) à equipe.")
        return employee

    # === Work log and draft (admin / cashier) ===

    def mark_attendance(self, employee_id: str, present: bool) -> None:
        self.session.require(*CLOSING_ROLES)
        self.work_log.mark_attendance(employee_id, present)

    def set_deliveries(self, employee_id: str, count: Any) -> None:
        self.session.require(*CLOSING_ROLES)
        self.work_log.set_deliveries(employee_id, count)

    def set_consumption(self, employee_id: str, amount: Any) -> None:
        self.session.require(*CLOSING_ROLES)
        self.work_log.set_consumption(employee_id, amount)

    def edit(self, key: str, value: Any) -> Decimal:
        self.session.require(*CLOSING_ROLES)
        return self.draft.edit(key, value)

    def add_receipt(self, name: str = "", amount: Any = 0) -> int:
        self.session.require(*CLOSING_ROLES)
        return self.draft.add_receipt(name, amount)

    def edit_receipt(self, index: int, name: str | None = None, amount: Any = None) -> None:
        self.session.require(*CLOSING_ROLES)
        self.draft.edit_receipt(index, name=name, amount=amount)

    def remove_receipt(self, index: int) -> None:
        self.session.require(*CLOSING_ROLES)
        self.draft.remove_receipt(index)

    def totals(self) -> ClosingTotals:
        return compute_totals(self.draft.inputs, self.work_log, self.employees)

    def consumption_limits(self) -> list[dict[str, Any]]:
        """Per present employee: limit for the day and what is left of it."""
        rows = []
        for entry in self.work_log:
            employee = self.employee(entry.employee_id)
            if employee is None:
                continue
            limit = self.ledger.daily_limit(employee)
            preview = self.ledger.preview(limit, entry.consumption)
            rows.append(
                {
                    "id": employee.id,
                    "name": employee.name,
                    "limit": limit,
                    "consumption": entry.consumption,
                    "remaining": preview.remaining,
                    "label": (
                        f"Excesso: {format_currency(preview.excess)}"
                        if preview.is_excess
                        else f"Restante: {format_currency(preview.remaining)}"
                    ),
                }
            )
        return rows

    async def finalize(self, confirm: bool = False) -> FinalizeResult | None:
        """Finalize the selected day after explicit confirmation.

        Each call applies the daily credit again, so callers must only pass
        ``confirm=True`` once the user has agreed.
        """
        self.session.require(*CLOSING_ROLES)
        if not confirm:
            self.status = StatusMessage("Fechamento não confirmado.", is_error=True)
            return None

        try:
            result = await self.engine.finalize(
                self.date,
                self.draft.inputs,
                self.work_log,
                closed_by=self.session.identity,
            )
        except PersistenceError as e:
            self._logger.error(
                "closing_failed", date=self.date, error=str(e), status=e.status_code
            )
            self.status = StatusMessage(f"ERRO ao finalizar: {e}", is_error=True)
            return None
        except DaybookError as e:
            self._logger.warning("closing_rejected", date=self.date, error=str(e))
            self.status = StatusMessage(f"ERRO ao finalizar: {e}", is_error=True)
            return None

        self.draft.mark_clean()
        self.status = StatusMessage(
            f"Fechamento do dia {format_date(self.date)} e créditos atualizados!"
        )
        return result

    # === Employee self-service ===

    async def record_consumption(self, amount: Any, confirm: bool = True) -> Decimal | None:
        """Debit the logged-in employee's own credit."""
        self.session.require(Role.EMPLOYEE)
        employee_id = self.session.employee_id or ""
        value = to_money(amount)
        if value <= 0:
            self.status = StatusMessage("O consumo deve ser maior que zero.", is_error=True)
            return None
        if not confirm:
            self.status = None
            return None

        try:
            new_credit = await self.ledger.debit(employee_id, value)
        except DaybookError as e:
            self._logger.error("consumption_failed", employee_id=employee_id, error=str(e))
            self.status = StatusMessage(
                f"ERRO ao registrar consumo. Tente novamente. Detalhe: {e}", is_error=True
            )
            return None

        text = (
            f"Consumo de {format_currency(value)} registrado com sucesso! "
            f"Crédito restante: {format_currency(new_credit)}"
        )
        if new_credit < 0:
            text += f" (excesso de {format_currency(-new_credit)})"
        self.status = StatusMessage(text)
        return new_credit
