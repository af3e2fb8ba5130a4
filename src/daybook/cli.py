"""Command line entry point.

Usage:
    daybook employees add "Maria Souza" --delivery --pin 1234
    daybook employees list
    daybook close --input day.yaml --pin 0000 --closed-by caixa-01
        (the file's attendance list replaces any work log stored for the date)
    daybook debit EMPLOYEE_ID 12.50
    daybook show --date 2026-10-19
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from datetime import date

import structlog

from daybook.config import configure_logging
from daybook.dayfile import load_day_file
from daybook.desk import ClosingDesk
from daybook.errors import DaybookError
from daybook.models import RECEIPTS_FIELD
from daybook.money import format_currency
from daybook.session import Role, Session
from daybook.store import DocumentStore, create_store

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="daybook",
        description="Daily cash closing and employee consumption credit",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Override LOG_LEVEL",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    employees = commands.add_parser("employees", help="Manage the roster")
    employee_commands = employees.add_subparsers(dest="employees_command", required=True)
    add = employee_commands.add_parser("add", help="Add an employee (admin)")
    add.add_argument("name")
    add.add_argument("--delivery", action="store_true", help="Employee makes deliveries")
    add.add_argument("--pin", required=True, help="Admin PIN")
    employee_commands.add_parser("list", help="List employees and credit")

    close = commands.add_parser("close", help="Finalize a day's closing")
    close.add_argument("--input", required=True, help="YAML day file")
    close.add_argument("--date", default=None, help="YYYY-MM-DD (defaults to the file or today)")
    close.add_argument("--pin", required=True, help="Cashier or admin PIN")
    close.add_argument("--role", choices=[Role.CASHIER.value, Role.ADMIN.value], default="caixa")
    close.add_argument("--closed-by", default="cli", help="Identity recorded on the closing")
    close.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    debit = commands.add_parser("debit", help="Record an employee's own consumption")
    debit.add_argument("employee_id")
    debit.add_argument("amount")

    show = commands.add_parser("show", help="Show the closing stored for a date")
    show.add_argument("--date", default=None, help="YYYY-MM-DD (defaults to today)")

    return parser


def _confirm(prompt: str) -> bool:
    answer = input(f"{prompt} [s/N] ").strip().lower()
    return answer in {"s", "sim", "y", "yes"}


async def _employees_add(store: DocumentStore, args: argparse.Namespace) -> int:
    desk = ClosingDesk(store)
    if not desk.login(Role.ADMIN, pin=args.pin):
        print(desk.status.text if desk.status else "Login failed", file=sys.stderr)
        return 1
    employee = await desk.add_employee(args.name, is_delivery=args.delivery)
    if employee is None:
        print(desk.status.text if desk.status else "Failed", file=sys.stderr)
        return 1
    print(f"{employee.id}\t{employee.name}")
    return 0


async def _employees_list(store: DocumentStore, args: argparse.Namespace) -> int:
    desk = ClosingDesk(store)
    await desk.load()
    for employee in desk.employees:
        kind = "entregador" if employee.is_delivery else "equipe"
        print(f"{employee.id}\t{employee.name}\t{kind}\t{format_currency(employee.credit)}")
    return 0


async def _close(store: DocumentStore, args: argparse.Namespace) -> int:
    day = load_day_file(args.input)
    closing_date = args.date or day.date or date.today().isoformat()

    desk = ClosingDesk(store, Session(identity=args.closed_by), closing_date)
    await desk.load()
    if not desk.login(args.role, pin=args.pin):
        print(desk.status.text if desk.status else "Login failed", file=sys.stderr)
        return 1

    for key, value in day.closing.items():
        if key == RECEIPTS_FIELD:
            continue
        desk.edit(key, value)
    if RECEIPTS_FIELD in day.closing:
        for index in reversed(range(len(desk.draft.inputs.receipts))):
            desk.remove_receipt(index)
        for receipt in day.closing[RECEIPTS_FIELD]:
            desk.add_receipt(str(receipt.get("nome", "") or ""), receipt.get("valor"))
    listed = {str(entry["id"]) for entry in day.attendance}
    for stored in desk.work_log.entries:
        if stored.employee_id not in listed:
            desk.mark_attendance(stored.employee_id, False)
    for entry in day.attendance:
        employee_id = str(entry["id"])
        desk.mark_attendance(employee_id, True)
        desk.set_deliveries(employee_id, entry.get("deliveries", 0))
        desk.set_consumption(employee_id, entry.get("consumption", 0))

    totals = desk.totals()
    print(f"Total recebimentos: {format_currency(totals.total_receipts)}")
    print(f"Total contado:      {format_currency(totals.total_counted)}")
    print(f"Subtotal apurado:   {format_currency(totals.subtotal)}")
    print(f"Diferença de caixa: {format_currency(totals.difference)}")
    for commission in totals.commissions:
        print(
            f"  {commission.name}: {commission.deliveries} entregas, "
            f"comissão {format_currency(commission.commission)}"
        )

    confirmed = args.yes or _confirm(
        "Finalizar o fechamento? Os créditos dos funcionários serão atualizados."
    )
    result = await desk.finalize(confirm=confirmed)
    if desk.status:
        print(desk.status.text, file=sys.stderr if desk.status.is_error else sys.stdout)
    if result is None:
        return 1
    for employee_id in result.skipped:
        print(f"Funcionário ignorado (não encontrado): {employee_id}", file=sys.stderr)
    return 0


async def _debit(store: DocumentStore, args: argparse.Namespace) -> int:
    desk = ClosingDesk(store, Session(identity=args.employee_id))
    await desk.load()
    if not desk.login(Role.EMPLOYEE, employee_id=args.employee_id):
        print(desk.status.text if desk.status else "Login failed", file=sys.stderr)
        return 1
    new_credit = await desk.record_consumption(args.amount)
    if desk.status:
        print(desk.status.text, file=sys.stderr if desk.status.is_error else sys.stdout)
    return 0 if new_credit is not None else 1


async def _show(store: DocumentStore, args: argparse.Namespace) -> int:
    desk = ClosingDesk(store, closing_date=args.date or date.today())
    closing = await desk.engine.get_closing(desk.date)
    if closing is None:
        print(f"Sem fechamento para {desk.date}", file=sys.stderr)
        return 1
    inputs = closing.inputs
    print(f"Data:               {closing.date}")
    print(f"Saldo inicial:      {format_currency(inputs.opening_balance)}")
    print(f"Entrada troco:      {format_currency(inputs.change_inflow)}")
    print(f"Saída caixa:        {format_currency(inputs.cash_outflow)}")
    for receipt in inputs.receipts:
        print(f"  {receipt.name or '-'}: {format_currency(receipt.amount)}")
    print(f"Diferença de caixa: {format_currency(closing.difference)}")
    print(f"Fechado por:        {closing.closed_by} em {closing.closed_at}")
    return 0


HANDLERS = {
    ("employees", "add"): _employees_add,
    ("employees", "list"): _employees_list,
    ("close", None): _close,
    ("debit", None): _debit,
    ("show", None): _show,
}


async def main(argv: Sequence[str] | None = None, store: DocumentStore | None = None) -> int:
    """Parse arguments and run one command against the configured store."""
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level)

    handler = HANDLERS[(args.command, getattr(args, "employees_command", None))]
    own_store = store is None
    active_store = store or create_store()
    try:
        return await handler(active_store, args)
    except DaybookError as e:
        logger.error("command_failed", command=args.command, error=str(e))
        print(f"Erro: {e}", file=sys.stderr)
        return 1
    finally:
        if own_store:
            await active_store.close()


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
