"""Domain records and their document shapes.

Documents keep the field names the store has always used (``saldoInicial``,
``entradasRecebimentos`` and so on); the dataclasses expose them under
Python names and hold money as ``Decimal``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from daybook.config import get_settings
from daybook.money import ZERO, to_count, to_money, to_number
from daybook.store.base import DocumentSnapshot

# Document field -> ClosingInputs attribute, for the scalar money fields
CLOSING_FIELDS: dict[str, str] = {
    "saldoInicial": "opening_balance",
    "entradaTroco": "change_inflow",
    "saidaCaixa": "cash_outflow",
    "trocoContado": "counted_change",
    "notasAltasContadas": "counted_notes",
    "valorEntrega": "delivery_rate",
    "acrescimoFixo": "fixed_bonus",
}
RECEIPTS_FIELD = "entradasRecebimentos"


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass
class Employee:
    """A roster member with their running consumption credit."""

    id: str
    name: str
    is_delivery: bool = False
    credit: Decimal = ZERO
    salary_base: Decimal = ZERO
    created_at: str = ""

    @classmethod
    def from_document(cls, employee_id: str, data: dict[str, Any]) -> Employee:
        return cls(
            id=employee_id,
            name=str(data.get("name", "")),
            is_delivery=bool(data.get("isDelivery", False)),
            credit=to_money(data.get("credit")),
            salary_base=to_money(data.get("salaryBase")),
            created_at=str(data.get("createdAt", "")),
        )

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> Employee:
        return cls.from_document(snapshot.id, snapshot.data or {})

    def to_document(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "isDelivery": self.is_delivery,
            "credit": to_number(self.credit),
            "salaryBase": to_number(self.salary_base),
            "createdAt": self.created_at,
        }


@dataclass
class WorkLogEntry:
    """One present employee on a given day."""

    employee_id: str
    deliveries: int = 0
    consumption: Decimal = ZERO

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> WorkLogEntry:
        return cls(
            employee_id=str(data.get("id", "")),
            deliveries=to_count(data.get("deliveries")),
            consumption=max(to_money(data.get("consumption")), ZERO),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.employee_id,
            "deliveries": self.deliveries,
            "consumption": to_number(self.consumption),
        }


@dataclass
class Receipt:
    """A named cash receipt entered during the closing."""

    name: str = ""
    amount: Decimal = ZERO

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> Receipt:
        return cls(name=str(data.get("nome", "") or ""), amount=to_money(data.get("valor")))

    def to_document(self) -> dict[str, Any]:
        return {"nome": self.name, "valor": to_number(self.amount)}


@dataclass
class ClosingInputs:
    """Cash movements, physical count and commission parameters of a day."""

    opening_balance: Decimal = ZERO
    change_inflow: Decimal = ZERO
    cash_outflow: Decimal = ZERO
    receipts: list[Receipt] = field(default_factory=list)
    counted_change: Decimal = ZERO
    counted_notes: Decimal = ZERO
    delivery_rate: Decimal = field(default_factory=lambda: get_settings().default_delivery_rate)
    fixed_bonus: Decimal = field(default_factory=lambda: get_settings().default_fixed_bonus)

    @classmethod
    def from_document(cls, data: dict[str, Any] | None) -> ClosingInputs:
        """Build inputs from a closing document; absent fields take defaults."""
        inputs = cls()
        for key, attr in CLOSING_FIELDS.items():
            setattr(inputs, attr, cls.field_value(key, (data or {}).get(key)))
        inputs.receipts = [
            Receipt.from_document(item)
            for item in (data or {}).get(RECEIPTS_FIELD) or []
            if isinstance(item, dict)
        ]
        return inputs

    @staticmethod
    def field_value(key: str, value: Any) -> Decimal:
        """Coerce one scalar field. Blank commission parameters take the defaults."""
        if _is_blank(value):
            settings = get_settings()
            if key == "valorEntrega":
                return settings.default_delivery_rate
            if key == "acrescimoFixo":
                return settings.default_fixed_bonus
        return to_money(value)

    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            key: to_number(getattr(self, attr)) for key, attr in CLOSING_FIELDS.items()
        }
        document[RECEIPTS_FIELD] = [receipt.to_document() for receipt in self.receipts]
        return document


@dataclass(frozen=True)
class DeliveryCommission:
    """Commission owed to a delivery employee for the day."""

    employee_id: str
    name: str
    deliveries: int
    commission: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.employee_id,
            "name": self.name,
            "deliveries": self.deliveries,
            "commission": str(self.commission),
        }


@dataclass(frozen=True)
class ClosingTotals:
    """Figures derived from the closing inputs; only the difference is stored."""

    total_receipts: Decimal
    total_counted: Decimal
    subtotal: Decimal
    difference: Decimal
    commissions: tuple[DeliveryCommission, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalRecebimentos": str(self.total_receipts),
            "totalContado": str(self.total_counted),
            "subtotalApurado": str(self.subtotal),
            "diferencaCaixa": str(self.difference),
            "deliveryCommissions": [c.to_dict() for c in self.commissions],
        }


@dataclass
class DailyClosing:
    """A finalized closing as persisted for its date."""

    date: str
    inputs: ClosingInputs
    difference: Decimal = ZERO
    closed_by: str = ""
    closed_at: str = ""

    @property
    def is_finalized(self) -> bool:
        return bool(self.closed_at)

    @classmethod
    def from_document(cls, closing_date: str, data: dict[str, Any]) -> DailyClosing:
        return cls(
            date=str(data.get("date") or closing_date),
            inputs=ClosingInputs.from_document(data),
            difference=to_money(data.get("diferencaCaixa")),
            closed_by=str(data.get("closedBy", "") or ""),
            closed_at=str(data.get("closedAt", "") or ""),
        )

    def to_document(self) -> dict[str, Any]:
        document = self.inputs.to_document()
        document.update(
            {
                "diferencaCaixa": to_number(self.difference),
                "date": self.date,
                "closedBy": self.closed_by,
                "closedAt": self.closed_at,
            }
        )
        return document
