"""Employee consumption credit.

Credit only moves in two ways: the daily accrual applied when a closing is
finalized, and the self-service debit an employee records for themselves.
Both re-read the persisted balance inside a store transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import structlog

from daybook.config import get_settings
from daybook.errors import EmployeeNotFoundError, ValidationError
from daybook.models import Employee
from daybook.money import to_money, to_number
from daybook.paths import employee_document
from daybook.store.base import DocumentStore, Transaction

logger = structlog.get_logger(__name__)


def accrue_daily_credit(current: Decimal, consumption: Decimal, daily_credit: Decimal) -> Decimal:
    """Balance after one worked day: earn the daily credit, pay the consumption."""
    return to_money(current + daily_credit - consumption)


@dataclass(frozen=True)
class CreditPreview:
    """What a balance would look like after a consumption."""

    remaining: Decimal

    @property
    def is_excess(self) -> bool:
        return self.remaining < 0

    @property
    def excess(self) -> Decimal:
        return -self.remaining if self.is_excess else Decimal("0.00")


class CreditLedger:
    """Self-service debits against an employee's credit balance."""

    def __init__(
        self,
        store: DocumentStore,
        app_id: str | None = None,
        daily_credit: Decimal | None = None,
    ):
        self._store = store
        self._app_id = app_id
        self.daily_credit = (
            daily_credit if daily_credit is not None else get_settings().daily_consumption_credit
        )
        self._logger = logger.bind(component="credit_ledger")

    def preview(self, credit: Any, amount: Any) -> CreditPreview:
        return CreditPreview(remaining=to_money(to_money(credit) - to_money(amount)))

    def daily_limit(self, employee: Employee) -> Decimal:
        """Credit available to a present employee before today's consumption."""
        return to_money(employee.credit + self.daily_credit)

    async def balance(self, employee_id: str) -> Decimal:
        snapshot = await self._store.get(employee_document(self._store, employee_id, self._app_id))
        if not snapshot.exists:
            raise EmployeeNotFoundError(employee_id)
        return to_money(snapshot.get("credit"))

    async def debit(self, employee_id: str, amount: Any) -> Decimal:
        """Record a consumption against the employee's own balance.

        Args:
            employee_id: Employee document id.
            amount: Consumption amount; must be greater than zero.

        Returns:
            The new balance, which may be negative (an excess).

        Raises:
            ValidationError: If the amount is not positive. Nothing is written.
            EmployeeNotFoundError: If the employee no longer exists.
        """
        value = to_money(amount)
        if value <= 0:
            raise ValidationError("O consumo deve ser maior que zero.", field="amount")

        ref = employee_document(self._store, employee_id, self._app_id)

        async def work(tx: Transaction) -> Decimal:
            snapshot = await tx.get(ref)
            if not snapshot.exists:
                raise EmployeeNotFoundError(employee_id)
            new_credit = to_money(to_money(snapshot.get("credit")) - value)
            tx.update(ref, {"credit": to_number(new_credit)})
            return new_credit

        new_credit = await self._store.run_transaction(work)
        self._logger.info(
            "credit_debited",
            employee_id=employee_id,
            amount=str(value),
            credit=str(new_credit),
            excess=new_credit < 0,
        )
        return new_credit
