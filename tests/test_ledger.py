"""Tests for the credit ledger."""

import asyncio
from decimal import Decimal

import pytest

from daybook.closing import ClosingEngine
from daybook.errors import EmployeeNotFoundError, ValidationError
from daybook.ledger import CreditLedger, accrue_daily_credit
from daybook.models import ClosingInputs, Employee
from daybook.paths import employee_document
from daybook.worklog import WorkLog


def test_accrue_daily_credit():
    assert accrue_daily_credit(Decimal("5.00"), Decimal("10.00"), Decimal("15.00")) == Decimal(
        "10.00"
    )
    assert accrue_daily_credit(Decimal("0"), Decimal("20.00"), Decimal("15.00")) == Decimal(
        "-5.00"
    )


def test_preview_reports_excess(store):
    ledger = CreditLedger(store)

    preview = ledger.preview("20.00", "25.00")

    assert preview.remaining == Decimal("-5.00")
    assert preview.is_excess
    assert preview.excess == Decimal("5.00")
    assert not ledger.preview(20, 12.5).is_excess


def test_daily_limit_adds_daily_credit(store):
    ledger = CreditLedger(store, daily_credit=Decimal("15.00"))

    assert ledger.daily_limit(Employee(id="E1", name="Ana", credit=Decimal("-2.00"))) == Decimal(
        "13.00"
    )


@pytest.mark.asyncio
async def test_debit_subtracts_from_persisted_credit(store, seed_employee, credit_of):
    await seed_employee("E1", credit="20.00")
    ledger = CreditLedger(store)

    new_credit = await ledger.debit("E1", "12.50")

    assert new_credit == Decimal("7.50")
    assert await credit_of("E1") == Decimal("7.50")


@pytest.mark.asyncio
async def test_debit_may_go_negative(store, seed_employee, credit_of):
    await seed_employee("E1", credit="20.00")

    new_credit = await CreditLedger(store).debit("E1", 25)

    assert new_credit == Decimal("-5.00")
    assert await credit_of("E1") == Decimal("-5.00")


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, "-1", "abc", None])
async def test_debit_rejects_non_positive_amounts(store, seed_employee, credit_of, amount):
    await seed_employee("E1", credit="20.00")

    with pytest.raises(ValidationError):
        await CreditLedger(store).debit("E1", amount)

    assert await credit_of("E1") == Decimal("20.00")


@pytest.mark.asyncio
async def test_debit_for_missing_employee_fails(store):
    with pytest.raises(EmployeeNotFoundError):
        await CreditLedger(store).debit("ghost", 5)

    assert not (await store.get(employee_document(store, "ghost"))).exists


@pytest.mark.asyncio
async def test_debit_uses_balance_at_transaction_time(store, seed_employee, credit_of):
    await seed_employee("E1", credit="20.00")
    ledger = CreditLedger(store)
    stale = await ledger.balance("E1")

    await store.set(
        employee_document(store, "E1"),
        {**(await store.get(employee_document(store, "E1"))).data, "credit": 50},
    )
    new_credit = await ledger.debit("E1", 10)

    assert stale == Decimal("20.00")
    assert new_credit == Decimal("40.00")


@pytest.mark.asyncio
async def test_concurrent_debit_and_closing_do_not_lose_updates(store, seed_employee, credit_of):
    """A debit racing a closing must see the accrued credit (or vice versa)."""
    await seed_employee("E1", credit="20.00")
    ref = employee_document(store, "E1")
    read_done = asyncio.Event()
    closing_done = asyncio.Event()
    attempts = 0

    async def slow_debit():
        nonlocal attempts

        async def work(tx):
            nonlocal attempts
            attempts += 1
            snapshot = await tx.get(ref)
            if attempts == 1:
                read_done.set()
                await closing_done.wait()
            tx.update(ref, {"credit": float(Decimal(str(snapshot.get("credit"))) - Decimal("5"))})

        await store.run_transaction(work)

    async def closing():
        await read_done.wait()
        log = WorkLog("2026-10-19")
        log.mark_attendance("E1", True)
        await ClosingEngine(store, daily_credit=Decimal("15.00")).finalize(
            "2026-10-19", ClosingInputs(), log, closed_by="caixa"
        )
        closing_done.set()

    await asyncio.gather(slow_debit(), closing())

    assert attempts == 2
    assert await credit_of("E1") == Decimal("30.00")
