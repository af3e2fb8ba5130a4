"""Tests for the day file loader and the command line."""

from decimal import Decimal

import pytest

from daybook.cli import build_parser, main
from daybook.dayfile import load_day_file
from daybook.errors import ValidationError
from daybook.paths import closing_document, work_log_document

DAY_FILE = """\
date: 2026-10-19
saldoInicial: 100
entradaTroco: 20
saidaCaixa: 10.5
entradasRecebimentos:
  - {nome: Pix, valor: 40}
trocoContado: 49.5
notasAltasContadas: 100
attendance:
  - {id: E1, consumption: 10}
  - {id: M1, deliveries: 2}
  - E2
"""


def test_load_day_file(tmp_path):
    path = tmp_path / "day.yaml"
    path.write_text(DAY_FILE, encoding="utf-8")

    day = load_day_file(path)

    assert day.date == "2026-10-19"
    assert day.closing["saidaCaixa"] == 10.5
    assert day.closing["entradasRecebimentos"] == [{"nome": "Pix", "valor": 40}]
    assert [entry["id"] for entry in day.attendance] == ["E1", "M1", "E2"]


def test_load_day_file_rejects_entries_without_id(tmp_path):
    path = tmp_path / "day.yaml"
    path.write_text("attendance:\n  - {deliveries: 2}\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        load_day_file(path)


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


@pytest.mark.asyncio
async def test_close_command_finalizes_the_day(tmp_path, store, seed_employee, credit_of, capsys):
    await seed_employee("E1", name="Ana", credit="5.00")
    await seed_employee("M1", name="Moto", is_delivery=True)
    await seed_employee("E2", name="Bia")
    path = tmp_path / "day.yaml"
    path.write_text(DAY_FILE, encoding="utf-8")

    code = await main(
        ["close", "--input", str(path), "--pin", "0000", "--closed-by", "caixa-01", "--yes"],
        store=store,
    )

    out = capsys.readouterr().out
    assert code == 0
    assert "Subtotal apurado:   R$ 149,50" in out
    assert "Diferença de caixa: R$ 0,00" in out
    assert "Moto: 2 entregas, comissão R$ 37,00" in out
    assert await credit_of("E1") == Decimal("10.00")
    assert await credit_of("M1") == Decimal("15.00")
    assert await credit_of("E2") == Decimal("15.00")
    closing = (await store.get(closing_document(store, "2026-10-19"))).data
    assert closing["closedBy"] == "caixa-01"


@pytest.mark.asyncio
async def test_close_command_rejects_wrong_pin(tmp_path, store, capsys):
    path = tmp_path / "day.yaml"
    path.write_text(DAY_FILE, encoding="utf-8")

    code = await main(["close", "--input", str(path), "--pin", "1111", "--yes"], store=store)

    assert code == 1
    assert "PIN/Dados incorretos." in capsys.readouterr().err
    assert not (await store.get(closing_document(store, "2026-10-19"))).exists


@pytest.mark.asyncio
async def test_close_command_stops_without_confirmation(
    tmp_path, store, seed_employee, credit_of, monkeypatch
):
    await seed_employee("E1", credit="0.00")
    path = tmp_path / "day.yaml"
    path.write_text("date: 2026-10-19\nattendance: [E1]\n", encoding="utf-8")
    monkeypatch.setattr("builtins.input", lambda prompt: "n")

    code = await main(["close", "--input", str(path), "--pin", "0000"], store=store)

    assert code == 1
    assert await credit_of("E1") == Decimal("0.00")


@pytest.mark.asyncio
async def test_debit_and_list_commands(store, seed_employee, capsys):
    await seed_employee("E1", name="Ana", credit="20.00")

    assert await main(["debit", "E1", "12.50"], store=store) == 0
    assert "Crédito restante: R$ 7,50" in capsys.readouterr().out

    assert await main(["debit", "E1", "0"], store=store) == 1
    assert await main(["debit", "ghost", "5"], store=store) == 1

    assert await main(["employees", "list"], store=store) == 0
    assert "E1\tAna\tequipe\tR$ 7,50" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_employees_add_needs_admin_pin(store, capsys):
    assert await main(["employees", "add", "Carla", "--pin", "0000"], store=store) == 1
    assert await main(["employees", "add", "Carla", "--delivery", "--pin", "1234"], store=store) == 0

    out = capsys.readouterr().out
    assert "\tCarla" in out


@pytest.mark.asyncio
async def test_show_command(store, capsys):
    assert await main(["show", "--date", "2026-10-19"], store=store) == 1

    await store.set(
        closing_document(store, "2026-10-19"),
        {"saldoInicial": 10, "diferencaCaixa": -2, "closedBy": "uid", "closedAt": "2026-10-19T22:00:00.000Z"},
    )

    assert await main(["show", "--date", "2026-10-19"], store=store) == 0
    out = capsys.readouterr().out
    assert "Diferença de caixa: -R$ 2,00" in out
    assert "Fechado por:        uid" in out


@pytest.mark.asyncio
async def test_invalid_date_is_reported(store, capsys):
    assert await main(["show", "--date", "19/10/2026"], store=store) == 1
    assert "Invalid date" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_close_command_replaces_stored_attendance(
    tmp_path, store, seed_employee, credit_of
):
    await seed_employee("E1", credit="0.00")
    await seed_employee("E9", credit="0.00")
    await store.set(
        work_log_document(store, "2026-10-19"),
        {"employees": [{"id": "E9", "deliveries": 0, "consumption": 0}]},
    )
    path = tmp_path / "day.yaml"
    path.write_text("date: 2026-10-19\nattendance: [E1]\n", encoding="utf-8")

    code = await main(["close", "--input", str(path), "--pin", "0000", "--yes"], store=store)

    assert code == 0
    assert await credit_of("E1") == Decimal("15.00")
    assert await credit_of("E9") == Decimal("0.00")
    stored = (await store.get(work_log_document(store, "2026-10-19"))).data
    assert [entry["id"] for entry in stored["employees"]] == ["E1"]


@pytest.mark.asyncio
async def test_negative_consumption_in_day_file_is_ignored(
    tmp_path, store, seed_employee, credit_of
):
    await seed_employee("E1", credit="0.00")
    path = tmp_path / "day.yaml"
    path.write_text(
        "date: 2026-10-19\nattendance:\n  - {id: E1, consumption: -50}\n", encoding="utf-8"
    )

    assert await main(["close", "--input", str(path), "--pin", "0000", "--yes"], store=store) == 0

    assert await credit_of("E1") == Decimal("15.00")
