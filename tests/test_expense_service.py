import asyncio
from datetime import date
from decimal import Decimal

import pytest

from budgetwise.categories import Category
from budgetwise.db.database import get_db
from budgetwise.errors import (
    DuplicateBudgetError,
    ExpenseNotFoundError,
    InvalidAmountError,
    MissingBudgetError,
    UnauthorizedError,
)
from budgetwise.services.budget_service import create_budget, get_budget
from budgetwise.services.expense_service import (
    create_expense,
    delete_expense,
    edit_expense,
    get_expense,
    get_expenses,
    get_recent_expenses,
)

USER = 100


async def _assert_invariant():
    """Every budget's cached spent equals the sum of its matching expenses."""
    db = await get_db()
    cursor = await db.execute("SELECT * FROM budgets")
    for b in await cursor.fetchall():
        start = date(b["year"], b["month"], 1).isoformat()
        end = date(b["year"] + (b["month"] == 12), b["month"] % 12 + 1, 1).isoformat()
        rows = await (
            await db.execute(
                "SELECT amount FROM expenses WHERE user_id = ? AND category = ? "
                "AND expense_date >= ? AND expense_date < ?",
                (b["user_id"], b["category"], start, end),
            )
        ).fetchall()
        expected = sum((Decimal(r["amount"]) for r in rows), Decimal("0"))
        assert Decimal(b["current_spent"]) == expected, dict(b)


@pytest.fixture
async def march_budgets():
    await create_budget(USER, Category.GROCERIES, 3, 2025, Decimal("400"))
    await create_budget(USER, Category.TRANSPORTATION, 3, 2025, Decimal("200"))
    await create_budget(USER, Category.GROCERIES, 4, 2025, Decimal("400"))


async def test_create_updates_spent(march_budgets):
    e = await create_expense(USER, Decimal("85.50"), Category.GROCERIES, date(2025, 3, 14), "weekly shop")
    assert e.id is not None
    assert e.amount == Decimal("85.50")

    b = await get_budget(USER, Category.GROCERIES, 3, 2025)
    assert b.current_spent == Decimal("85.50")
    await _assert_invariant()


async def test_missing_budget_rejected_and_nothing_written():
    with pytest.raises(MissingBudgetError, match="You must create a budget for Travel in March 2025"):
        await create_expense(USER, Decimal("50"), Category.TRAVEL, date(2025, 3, 14), "train")
    assert await get_expenses(USER) == []


async def test_missing_budget_for_other_month(march_budgets):
    with pytest.raises(MissingBudgetError):
        await create_expense(USER, Decimal("50"), Category.TRANSPORTATION, date(2025, 4, 1), "fuel")
    assert await get_expenses(USER) == []
    await _assert_invariant()


async def test_budget_of_other_user_does_not_count(march_budgets):
    with pytest.raises(MissingBudgetError):
        await create_expense(USER + 1, Decimal("5"), Category.GROCERIES, date(2025, 3, 2), "bread")


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1")])
async def test_non_positive_amount_rejected(march_budgets, amount):
    with pytest.raises(InvalidAmountError):
        await create_expense(USER, amount, Category.GROCERIES, date(2025, 3, 2), "nothing")
    assert await get_expenses(USER) == []


async def test_delete_decreases_spent_exactly(march_budgets):
    await create_expense(USER, Decimal("30.10"), Category.GROCERIES, date(2025, 3, 2), "a")
    e = await create_expense(USER, Decimal("12.35"), Category.GROCERIES, date(2025, 3, 3), "b")
    before = (await get_budget(USER, Category.GROCERIES, 3, 2025)).current_spent

    await delete_expense(USER, e.id)

    after = (await get_budget(USER, Category.GROCERIES, 3, 2025)).current_spent
    assert before - after == Decimal("12.35")
    assert await get_expense(e.id) is None
    await _assert_invariant()


async def test_delete_other_users_expense_rejected(march_budgets):
    e = await create_expense(USER, Decimal("10"), Category.GROCERIES, date(2025, 3, 2), "a")
    with pytest.raises(UnauthorizedError):
        await delete_expense(USER + 1, e.id)
    assert await get_expense(e.id) is not None


async def test_delete_missing_expense():
    with pytest.raises(ExpenseNotFoundError):
        await delete_expense(USER, 12345)


async def test_edit_amount(march_budgets):
    e = await create_expense(USER, Decimal("10"), Category.GROCERIES, date(2025, 3, 2), "a")
    updated = await edit_expense(USER, e.id, amount=Decimal("25.25"))
    assert updated.amount == Decimal("25.25")
    assert (await get_budget(USER, Category.GROCERIES, 3, 2025)).current_spent == Decimal("25.25")
    await _assert_invariant()


async def test_edit_category_moves_spent(march_budgets):
    e = await create_expense(USER, Decimal("40"), Category.GROCERIES, date(2025, 3, 2), "fuel by mistake")
    await edit_expense(USER, e.id, category=Category.TRANSPORTATION)

    assert (await get_budget(USER, Category.GROCERIES, 3, 2025)).current_spent == Decimal("0")
    assert (await get_budget(USER, Category.TRANSPORTATION, 3, 2025)).current_spent == Decimal("40.00")
    await _assert_invariant()


async def test_edit_date_moves_spent_across_months(march_budgets):
    e = await create_expense(USER, Decimal("40"), Category.GROCERIES, date(2025, 3, 31), "late shop")
    await edit_expense(USER, e.id, expense_date=date(2025, 4, 1))

    assert (await get_budget(USER, Category.GROCERIES, 3, 2025)).current_spent == Decimal("0")
    assert (await get_budget(USER, Category.GROCERIES, 4, 2025)).current_spent == Decimal("40.00")
    await _assert_invariant()


async def test_edit_into_month_without_budget_rejected(march_budgets):
    e = await create_expense(USER, Decimal("40"), Category.TRANSPORTATION, date(2025, 3, 5), "taxi")
    with pytest.raises(MissingBudgetError):
        await edit_expense(USER, e.id, expense_date=date(2025, 5, 5))

    stored = await get_expense(e.id)
    assert stored.expense_date == date(2025, 3, 5)
    await _assert_invariant()


async def test_edit_other_users_expense_rejected(march_budgets):
    e = await create_expense(USER, Decimal("10"), Category.GROCERIES, date(2025, 3, 2), "a")
    with pytest.raises(UnauthorizedError):
        await edit_expense(USER + 1, e.id, amount=Decimal("1"))


async def test_edit_without_changes_returns_expense(march_budgets):
    e = await create_expense(USER, Decimal("10"), Category.GROCERIES, date(2025, 3, 2), "a")
    same = await edit_expense(USER, e.id)
    assert same.amount == Decimal("10.00")


async def test_long_notes_truncated(march_budgets):
    e = await create_expense(USER, Decimal("10"), Category.GROCERIES, date(2025, 3, 2), "a", notes="x" * 1500)
    stored = await get_expense(e.id)
    assert len(stored.notes) == 1000
    assert stored.notes.endswith("...")


async def test_description_bounded_and_defaulted(march_budgets):
    e = await create_expense(USER, Decimal("10"), Category.GROCERIES, date(2025, 3, 2), "d" * 400)
    assert len(e.description) == 255
    blank = await create_expense(USER, Decimal("10"), Category.GROCERIES, date(2025, 3, 2), "   ")
    assert blank.description == "Groceries"


async def test_get_expenses_filters(march_budgets):
    await create_expense(USER, Decimal("10"), Category.GROCERIES, date(2025, 3, 2), "a")
    await create_expense(USER, Decimal("20"), Category.TRANSPORTATION, date(2025, 3, 10), "b")
    await create_expense(USER, Decimal("30"), Category.GROCERIES, date(2025, 4, 2), "c")

    march = await get_expenses(USER, date(2025, 3, 1), date(2025, 3, 31))
    assert {e.description for e in march} == {"a", "b"}

    groceries = await get_expenses(USER, category=Category.GROCERIES)
    assert [e.description for e in groceries] == ["c", "a"]

    assert await get_expenses(USER + 1) == []


async def test_recent_expenses_newest_first(march_budgets):
    for day in (1, 5, 3):
        await create_expense(USER, Decimal("1"), Category.GROCERIES, date(2025, 3, day), f"day {day}")
    recent = await get_recent_expenses(USER, limit=2)
    assert [e.expense_date.day for e in recent] == [5, 3]


async def test_rolled_back_duplicate_budget_keeps_concurrent_expense(march_budgets):
    expense, error = await asyncio.gather(
        create_expense(USER, Decimal("42"), Category.GROCERIES, date(2025, 3, 9), "market"),
        create_budget(USER, Category.GROCERIES, 3, 2025, Decimal("999")),
        return_exceptions=True,
    )

    assert isinstance(error, DuplicateBudgetError)
    assert await get_expense(expense.id) is not None
    assert (await get_budget(USER, Category.GROCERIES, 3, 2025)).current_spent == Decimal("42.00")
    await _assert_invariant()


async def test_concurrent_creates_all_counted(march_budgets):
    await asyncio.gather(
        *(create_expense(USER, Decimal("1.10"), Category.GROCERIES, date(2025, 3, d), f"d{d}") for d in range(1, 11))
    )

    assert len(await get_expenses(USER)) == 10
    assert (await get_budget(USER, Category.GROCERIES, 3, 2025)).current_spent == Decimal("11.00")
    await _assert_invariant()
