import logging
import shlex
from datetime import date

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from budgetwise.categories import categories_str, parse_category
from budgetwise.currency import format_amount, get_user_currency
from budgetwise.db.models import Expense
from budgetwise.errors import BudgetwiseError
from budgetwise.handlers.budget import parse_amount
from budgetwise.services.expense_service import (
    create_expense,
    delete_expense,
    edit_expense,
    get_recent_expenses,
)

logger = logging.getLogger(__name__)
router = Router()

ADD_USAGE = (
    "Usage: /add <amount> <category> [YYYY-MM-DD] [description]\n"
    "Example: /add 85.50 groceries 2025-03-02 weekly shop"
)
EDIT_USAGE = (
    "Usage: /edit <id> key=value ...\n"
    "Keys: amount, category, date, description, notes\n"
    'Example: /edit 12 amount=90 description="weekly shop"'
)
EDIT_KEYS = {"amount", "category", "date", "description", "notes"}


def _parse_date(text: str) -> date | None:
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def _expense_text(e: Expense, cur: str) -> str:
    text = (
        f"#{e.id} {e.expense_date} · {e.category.display_name} · {format_amount(e.amount, cur)}\n"
        f"  {e.description}"
    )
    if e.notes:
        text += f"\n  📝 {e.notes}"
    return text


@router.message(Command("add"))
async def cmd_add(message: Message, command: CommandObject):
    parts = command.args.split() if command.args else []
    if len(parts) < 2:
        await message.answer(ADD_USAGE)
        return

    amount = parse_amount(parts[0])
    category = parse_category(parts[1])
    if amount is None:
        await message.answer(f"Invalid amount.\n{ADD_USAGE}")
        return
    if category is None:
        await message.answer(f"Unknown category '{parts[1]}'.\nCategories: {categories_str()}")
        return

    rest = parts[2:]
    expense_date = date.today()
    if rest and (parsed := _parse_date(rest[0])):
        expense_date = parsed
        rest = rest[1:]
    description = " ".join(rest) or category.display_name

    user_id = message.from_user.id
    try:
        expense = await create_expense(user_id, amount, category, expense_date, description)
    except BudgetwiseError as exc:
        await message.answer(str(exc))
        return

    cur = await get_user_currency(user_id)
    await message.answer(f"✅ Added\n{_expense_text(expense, cur)}")


@router.message(Command("edit"))
async def cmd_edit(message: Message, command: CommandObject):
    try:
        parts = shlex.split(command.args) if command.args else []
    except ValueError:
        parts = []
    if len(parts) < 2 or not parts[0].isdigit():
        await message.answer(EDIT_USAGE)
        return

    changes: dict = {}
    for pair in parts[1:]:
        key, sep, value = pair.partition("=")
        key = key.strip().lower()
        if not sep or key not in EDIT_KEYS:
            await message.answer(f"Unknown field '{pair}'.\n{EDIT_USAGE}")
            return
        if key == "amount":
            changes["amount"] = parse_amount(value)
            if changes["amount"] is None:
                await message.answer("Invalid amount.")
                return
        elif key == "category":
            changes["category"] = parse_category(value)
            if changes["category"] is None:
                await message.answer(f"Unknown category '{value}'.\nCategories: {categories_str()}")
                return
        elif key == "date":
            changes["expense_date"] = _parse_date(value)
            if changes["expense_date"] is None:
                await message.answer("Invalid date, use YYYY-MM-DD.")
                return
        else:
            changes[key] = value

    user_id = message.from_user.id
    try:
        expense = await edit_expense(user_id, int(parts[0]), **changes)
    except BudgetwiseError as exc:
        await message.answer(str(exc))
        return

    cur = await get_user_currency(user_id)
    await message.answer(f"✏️ Updated\n{_expense_text(expense, cur)}")


@router.message(Command("delete"))
async def cmd_delete(message: Message, command: CommandObject):
    if not command.args or not command.args.strip().isdigit():
        await message.answer("Usage: /delete <id>")
        return

    user_id = message.from_user.id
    try:
        expense = await delete_expense(user_id, int(command.args.strip()))
    except BudgetwiseError as exc:
        await message.answer(str(exc))
        return

    cur = await get_user_currency(user_id)
    await message.answer(
        f"Removed: {format_amount(expense.amount, cur)} · {expense.category.display_name} ({expense.expense_date})"
    )


@router.message(Command("expenses"))
async def cmd_expenses(message: Message, command: CommandObject):
    limit = int(command.args) if command.args and command.args.strip().isdigit() else 10
    user_id = message.from_user.id
    expenses = await get_recent_expenses(user_id, limit=min(limit, 50))
    if not expenses:
        await message.answer("No expenses yet. Use /add to record one.")
        return

    cur = await get_user_currency(user_id)
    await message.answer("🧾 Recent expenses:\n\n" + "\n\n".join(_expense_text(e, cur) for e in expenses))
