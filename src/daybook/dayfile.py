"""Loading a day's closing inputs from a YAML file.

Example::

    date: 2026-10-19
    saldoInicial: 150.00
    entradaTroco: 50
    saidaCaixa: 32.40
    entradasRecebimentos:
      - {nome: Pix, valor: 220.00}
    trocoContado: 80
    notasAltasContadas: 300
    attendance:
      - {id: 3pQ1yZ, deliveries: 4, consumption: 12.50}
      - {id: 9aLk0B}
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from daybook.errors import ValidationError
from daybook.models import CLOSING_FIELDS, RECEIPTS_FIELD
from daybook.paths import date_key


@dataclass
class DayFile:
    """Parsed day file: date, closing fields and attendance entries."""

    date: str | None
    closing: dict[str, Any]
    attendance: list[dict[str, Any]]


def load_day_file(path: Path | str) -> DayFile:
    raw = Path(path).read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid day file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"Day file {path} must contain a mapping")

    closing = {key: data[key] for key in CLOSING_FIELDS if key in data}
    receipts = data.get(RECEIPTS_FIELD) or []
    if not isinstance(receipts, list):
        raise ValidationError(f"{RECEIPTS_FIELD} must be a list", field=RECEIPTS_FIELD)
    closing[RECEIPTS_FIELD] = [r for r in receipts if isinstance(r, dict)]

    attendance = data.get("attendance") or []
    if not isinstance(attendance, list):
        raise ValidationError("attendance must be a list", field="attendance")
    entries = []
    for item in attendance:
        if isinstance(item, str):
            item = {"id": item}
        if not isinstance(item, dict) or not item.get("id"):
            raise ValidationError(f"Attendance entry without id: {item!r}", field="attendance")
        entries.append(item)

    day = data.get("date")
    return DayFile(
        date=date_key(day) if day else None,
        closing=closing,
        attendance=entries,
    )
