"""Budgets and the budget/expense invariant.

Every expense must fall under a budget for the same (user, category, month,
year), and a budget's ``current_spent`` is always re-derived from the full
set of matching expenses rather than incremented. Concurrent writers touching
the same key therefore converge on the correct total whichever order their
recomputations land in.
"""

import logging
from calendar import monthrange
from datetime import date
from decimal import Decimal

import aiosqlite

from budgetwise.categories import Category
from budgetwise.db.database import get_db, transaction
from budgetwise.db.models import Budget
from budgetwise.errors import (
    BudgetInUseError,
    BudgetNotFoundError,
    DuplicateBudgetError,
    InvalidAmountError,
    MissingBudgetError,
    UnauthorizedError,
)
from budgetwise.services.aggregates import to_money

logger = logging.getLogger(__name__)


def month_bounds(month: int, year: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


async def _find(db: aiosqlite.Connection, user_id: int, category: Category, month: int, year: int) -> Budget | None:
    cursor = await db.execute(
        "SELECT * FROM budgets WHERE user_id = ? AND category = ? AND month = ? AND year = ?",
        (user_id, category.value, month, year),
    )
    row = await cursor.fetchone()
    return Budget.from_row(row) if row else None


async def _sum_expenses(db: aiosqlite.Connection, user_id: int, category: Category, month: int, year: int) -> Decimal:
    start, end = month_bounds(month, year)
    cursor = await db.execute(
        """SELECT amount FROM expenses
        WHERE user_id = ? AND category = ? AND expense_date >= ? AND expense_date <= ?""",
        (user_id, category.value, start.isoformat(), end.isoformat()),
    )
    rows = await cursor.fetchall()
    return sum((Decimal(row["amount"]) for row in rows), Decimal("0"))


async def _count_expenses(db: aiosqlite.Connection, user_id: int, category: Category, month: int, year: int) -> int:
    start, end = month_bounds(month, year)
    cursor = await db.execute(
        """SELECT COUNT(*) FROM expenses
        WHERE user_id = ? AND category = ? AND expense_date >= ? AND expense_date <= ?""",
        (user_id, category.value, start.isoformat(), end.isoformat()),
    )
    row = await cursor.fetchone()
    return row[0]


async def require_budget(user_id: int, category: Category, on_date: date) -> Budget:
    db = await get_db()
    budget = await _find(db, user_id, category, on_date.month, on_date.year)
    if budget is None:
        raise MissingBudgetError(category, on_date.month, on_date.year)
    return budget


async def recompute_spent(user_id: int, category: Category, month: int, year: int) -> Decimal | None:
    """Overwrite the cached spent of the budget for this key. Returns None if there is no such budget.

    Does not commit; callers run it inside the same transaction as the mutation that triggered it.
    """
    db = await get_db()
    spent = await _sum_expenses(db, user_id, category, month, year)
    cursor = await db.execute(
        """UPDATE budgets SET current_spent = ?, updated_at = CURRENT_TIMESTAMP
        WHERE user_id = ? AND category = ? AND month = ? AND year = ?""",
        (str(spent), user_id, category.value, month, year),
    )
    if cursor.rowcount == 0:
        return None
    logger.debug(
        "Recomputed %s %02d/%d spent=%s",
        category.value,
        month,
        year,
        spent,
        extra={"user_id": user_id},
    )
    return spent


async def create_budget(user_id: int, category: Category, month: int, year: int, monthly_limit: Decimal) -> Budget:
    limit = to_money(monthly_limit)
    if limit <= 0:
        raise InvalidAmountError(monthly_limit)
    month_bounds(month, year)

    async with transaction() as db:
        if await _find(db, user_id, category, month, year):
            raise DuplicateBudgetError(category, month, year)
        cursor = await db.execute(
            "INSERT INTO budgets (user_id, category, month, year, monthly_limit) VALUES (?, ?, ?, ?, ?)",
            (user_id, category.value, month, year, str(limit)),
        )
        budget_id = cursor.lastrowid
        spent = await recompute_spent(user_id, category, month, year)

    logger.info("Created budget #%s %s %02d/%d", budget_id, category.value, month, year, extra={"user_id": user_id})
    return Budget(
        id=budget_id,
        user_id=user_id,
        category=category,
        month=month,
        year=year,
        monthly_limit=limit,
        current_spent=spent or Decimal("0"),
    )


async def get_budget_by_id(budget_id: int) -> Budget | None:
    db = await get_db()
    cursor = await db.execute("SELECT * FROM budgets WHERE id = ?", (budget_id,))
    row = await cursor.fetchone()
    return Budget.from_row(row) if row else None


async def _owned_budget(user_id: int, budget_id: int) -> Budget:
    budget = await get_budget_by_id(budget_id)
    if budget is None:
        raise BudgetNotFoundError(budget_id)
    if budget.user_id != user_id:
        raise UnauthorizedError("budget", budget_id)
    return budget


async def edit_budget(
    user_id: int,
    budget_id: int,
    *,
    category: Category | None = None,
    month: int | None = None,
    year: int | None = None,
    monthly_limit: Decimal | None = None,
) -> Budget:
    budget = await _owned_budget(user_id, budget_id)
    old_key = (budget.category, budget.month, budget.year)
    new_category = category or budget.category
    new_month = month or budget.month
    new_year = year or budget.year
    new_key = (new_category, new_month, new_year)
    limit = budget.monthly_limit if monthly_limit is None else to_money(monthly_limit)
    if limit <= 0:
        raise InvalidAmountError(monthly_limit)
    month_bounds(new_month, new_year)

    async with transaction() as db:
        if new_key != old_key:
            if await _find(db, user_id, *new_key):
                raise DuplicateBudgetError(*new_key)
            if await _count_expenses(db, user_id, *old_key):
                raise BudgetInUseError(*old_key)
        await db.execute(
            """UPDATE budgets SET category = ?, month = ?, year = ?, monthly_limit = ?,
            updated_at = CURRENT_TIMESTAMP WHERE id = ?""",
            (new_category.value, new_month, new_year, str(limit), budget_id),
        )
        if new_key != old_key:
            await recompute_spent(user_id, *old_key)
        spent = await recompute_spent(user_id, *new_key)

    return Budget(
        id=budget_id,
        user_id=user_id,
        category=new_category,
        month=new_month,
        year=new_year,
        monthly_limit=limit,
        current_spent=spent or Decimal("0"),
    )


async def delete_budget(user_id: int, budget_id: int) -> Budget:
    budget = await _owned_budget(user_id, budget_id)
    async with transaction() as db:
        if await _count_expenses(db, user_id, budget.category, budget.month, budget.year):
            raise BudgetInUseError(budget.category, budget.month, budget.year)
        await db.execute("DELETE FROM budgets WHERE id = ?", (budget_id,))
    logger.info("Deleted budget #%s", budget_id, extra={"user_id": user_id})
    return budget


async def get_budget(user_id: int, category: Category, month: int, year: int) -> Budget | None:
    db = await get_db()
    return await _find(db, user_id, category, month, year)


async def budget_status(user_id: int, category: Category, month: int, year: int) -> Budget | None:
    """Budget for the key with a freshly recomputed spent value."""
    async with transaction():
        await recompute_spent(user_id, category, month, year)
    return await get_budget(user_id, category, month, year)


async def get_budgets_for_month(user_id: int, month: int, year: int) -> list[Budget]:
    db = await get_db()
    cursor = await db.execute(
        "SELECT * FROM budgets WHERE user_id = ? AND month = ? AND year = ? ORDER BY category",
        (user_id, month, year),
    )
    rows = await cursor.fetchall()
    return [Budget.from_row(row) for row in rows]


async def get_all_budgets(user_id: int) -> list[Budget]:
    db = await get_db()
    cursor = await db.execute(
        "SELECT * FROM budgets WHERE user_id = ? ORDER BY year DESC, month DESC, category",
        (user_id,),
    )
    rows = await cursor.fetchall()
    return [Budget.from_row(row) for row in rows]
