import logging
from datetime import date
from decimal import Decimal

from budgetwise.categories import Category
from budgetwise.db.database import get_db, transaction
from budgetwise.db.models import Expense
from budgetwise.errors import ExpenseNotFoundError, InvalidAmountError, UnauthorizedError
from budgetwise.services.aggregates import to_money
from budgetwise.services.budget_service import recompute_spent, require_budget

logger = logging.getLogger(__name__)

MAX_DESCRIPTION = 255
MAX_NOTES = 1000


def _clip_notes(notes: str | None) -> str | None:
    if notes is not None and len(notes) > MAX_NOTES:
        return notes[: MAX_NOTES - 3] + "..."
    return notes


def _clip_description(description: str) -> str:
    return description.strip()[:MAX_DESCRIPTION]


def _validated_amount(amount) -> Decimal:
    value = to_money(amount)
    if value <= 0:
        raise InvalidAmountError(amount)
    return value


async def create_expense(
    user_id: int,
    amount: Decimal,
    category: Category,
    expense_date: date,
    description: str,
    notes: str | None = None,
    receipt_url: str | None = None,
    recurring_expense_id: int | None = None,
) -> Expense:
    expense = Expense(
        id=None,
        user_id=user_id,
        amount=_validated_amount(amount),
        category=category,
        expense_date=expense_date,
        description=_clip_description(description) or category.display_name,
        notes=_clip_notes(notes),
        receipt_url=receipt_url,
        recurring_expense_id=recurring_expense_id,
    )
    async with transaction() as db:
        await require_budget(user_id, category, expense_date)
        cursor = await db.execute(
            """INSERT INTO expenses
            (user_id, amount, category, expense_date, description, notes, receipt_url, recurring_expense_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                expense.user_id,
                str(expense.amount),
                expense.category.value,
                expense.expense_date.isoformat(),
                expense.description,
                expense.notes,
                expense.receipt_url,
                expense.recurring_expense_id,
            ),
        )
        expense.id = cursor.lastrowid
        await recompute_spent(user_id, category, expense_date.month, expense_date.year)

    logger.info("Created expense #%s %s %s", expense.id, category.value, expense.amount, extra={"user_id": user_id})
    return expense


async def get_expense(expense_id: int) -> Expense | None:
    db = await get_db()
    cursor = await db.execute("SELECT * FROM expenses WHERE id = ?", (expense_id,))
    row = await cursor.fetchone()
    return Expense.from_row(row) if row else None


async def _owned_expense(user_id: int, expense_id: int) -> Expense:
    expense = await get_expense(expense_id)
    if expense is None:
        raise ExpenseNotFoundError(expense_id)
    if expense.user_id != user_id:
        raise UnauthorizedError("expense", expense_id)
    return expense


async def get_expenses(
    user_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    category: Category | None = None,
) -> list[Expense]:
    db = await get_db()
    query = "SELECT * FROM expenses WHERE user_id = ?"
    params: list[int | str] = [user_id]
    if start_date:
        query += " AND expense_date >= ?"
        params.append(start_date.isoformat())
    if end_date:
        query += " AND expense_date <= ?"
        params.append(end_date.isoformat())
    if category:
        query += " AND category = ?"
        params.append(category.value)
    query += " ORDER BY expense_date DESC, id DESC"
    cursor = await db.execute(query, params)
    rows = await cursor.fetchall()
    return [Expense.from_row(row) for row in rows]


async def get_recent_expenses(user_id: int, limit: int = 10) -> list[Expense]:
    db = await get_db()
    cursor = await db.execute(
        "SELECT * FROM expenses WHERE user_id = ? ORDER BY expense_date DESC, id DESC LIMIT ?",
        (user_id, limit),
    )
    rows = await cursor.fetchall()
    return [Expense.from_row(row) for row in rows]


async def edit_expense(user_id: int, expense_id: int, **fields) -> Expense:
    allowed = {"amount", "category", "expense_date", "description", "notes", "receipt_url"}
    fields = {k: v for k, v in fields.items() if k in allowed and v is not None}
    expense = await _owned_expense(user_id, expense_id)
    if not fields:
        return expense

    old_key = (expense.category, expense.expense_date.month, expense.expense_date.year)
    if "amount" in fields:
        expense.amount = _validated_amount(fields["amount"])
    if "category" in fields:
        expense.category = fields["category"]
    if "expense_date" in fields:
        expense.expense_date = fields["expense_date"]
    if "description" in fields:
        expense.description = _clip_description(fields["description"]) or expense.description
    if "notes" in fields:
        expense.notes = _clip_notes(fields["notes"])
    if "receipt_url" in fields:
        expense.receipt_url = fields["receipt_url"]
    new_key = (expense.category, expense.expense_date.month, expense.expense_date.year)

    async with transaction() as db:
        if new_key != old_key:
            await require_budget(user_id, expense.category, expense.expense_date)
        await db.execute(
            """UPDATE expenses SET amount = ?, category = ?, expense_date = ?, description = ?,
            notes = ?, receipt_url = ? WHERE id = ?""",
            (
                str(expense.amount),
                expense.category.value,
                expense.expense_date.isoformat(),
                expense.description,
                expense.notes,
                expense.receipt_url,
                expense_id,
            ),
        )
        await recompute_spent(user_id, *old_key)
        if new_key != old_key:
            await recompute_spent(user_id, *new_key)

    logger.info("Updated expense #%s: %s", expense_id, ", ".join(sorted(fields)), extra={"user_id": user_id})
    return expense


async def delete_expense(user_id: int, expense_id: int) -> Expense:
    expense = await _owned_expense(user_id, expense_id)
    async with transaction() as db:
        await db.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))
        await recompute_spent(user_id, expense.category, expense.expense_date.month, expense.expense_date.year)
    logger.info("Deleted expense #%s", expense_id, extra={"user_id": user_id})
    return expense
