import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from budgetwise.categories import categories_str, parse_category
from budgetwise.currency import format_amount, get_user_currency
from budgetwise.db.database import transaction
from budgetwise.db.models import Budget
from budgetwise.errors import BudgetwiseError
from budgetwise.services.budget_service import (
    create_budget,
    delete_budget,
    edit_budget,
    get_budgets_for_month,
    recompute_spent,
)

logger = logging.getLogger(__name__)
router = Router()

_MONTH_ARG = re.compile(r"^(\d{4})-(\d{1,2})$")


def parse_amount(text: str) -> Decimal | None:
    try:
        value = Decimal(text.replace(",", "."))
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def parse_month(text: str | None) -> tuple[int, int] | None:
    """'2025-03' -> (3, 2025). Missing argument means the current month."""
    if not text:
        today = date.today()
        return today.month, today.year
    match = _MONTH_ARG.match(text.strip())
    if not match or not 1 <= int(match.group(2)) <= 12:
        return None
    return int(match.group(2)), int(match.group(1))


def _progress_bar(pct: Decimal, width: int = 10) -> str:
    filled = max(min(int(pct / 100 * width), width), 0)
    return "█" * filled + "░" * (width - filled)


def _budget_line(b: Budget, cur: str) -> str:
    warn = " ⚠️" if b.over_budget else ""
    return (
        f"#{b.id} {b.category.display_name}: {format_amount(b.current_spent, cur)} / "
        f"{format_amount(b.monthly_limit, cur)}{warn}\n"
        f"  {_progress_bar(b.percentage)} {b.percentage}%  ({format_amount(b.remaining, cur)} left)"
    )


@router.message(Command("setbudget"))
async def cmd_setbudget(message: Message, command: CommandObject):
    parts = command.args.split() if command.args else []
    if len(parts) not in (2, 3):
        await message.answer(
            "Usage: /setbudget <category> <limit> [YYYY-MM]\n"
            "Example: /setbudget groceries 400\n\n"
            f"Categories: {categories_str()}"
        )
        return

    category = parse_category(parts[0])
    if category is None:
        await message.answer(f"Unknown category '{parts[0]}'.\nCategories: {categories_str()}")
        return
    limit = parse_amount(parts[1])
    if limit is None:
        await message.answer("Invalid amount. Usage: /setbudget groceries 400")
        return
    period = parse_month(parts[2] if len(parts) == 3 else None)
    if period is None:
        await message.answer("Invalid month, use YYYY-MM.")
        return

    user_id = message.from_user.id
    try:
        b = await create_budget(user_id, category, period[0], period[1], limit)
    except BudgetwiseError as exc:
        await message.answer(str(exc))
        return

    cur = await get_user_currency(user_id)
    await message.answer(
        f"Budget #{b.id} set: {category.display_name} → {format_amount(b.monthly_limit, cur)} "
        f"for {date(b.year, b.month, 1):%B %Y}"
    )


@router.message(Command("editbudget"))
async def cmd_editbudget(message: Message, command: CommandObject):
    parts = command.args.split() if command.args else []
    if len(parts) not in (3, 4) or not parts[0].isdigit():
        await message.answer("Usage: /editbudget <id> <category> <limit> [YYYY-MM]")
        return

    category = parse_category(parts[1])
    limit = parse_amount(parts[2])
    period = parse_month(parts[3]) if len(parts) == 4 else None
    if category is None or limit is None or (len(parts) == 4 and period is None):
        await message.answer("Usage: /editbudget <id> <category> <limit> [YYYY-MM]")
        return

    user_id = message.from_user.id
    try:
        b = await edit_budget(
            user_id,
            int(parts[0]),
            category=category,
            month=period[0] if period else None,
            year=period[1] if period else None,
            monthly_limit=limit,
        )
    except BudgetwiseError as exc:
        await message.answer(str(exc))
        return

    cur = await get_user_currency(user_id)
    await message.answer(f"Updated budget:\n{_budget_line(b, cur)}")


@router.message(Command("removebudget"))
async def cmd_removebudget(message: Message, command: CommandObject):
    if not command.args or not command.args.strip().isdigit():
        await message.answer("Usage: /removebudget <id>")
        return

    try:
        b = await delete_budget(message.from_user.id, int(command.args.strip()))
    except BudgetwiseError as exc:
        await message.answer(str(exc))
        return
    await message.answer(f"Removed {b.category.display_name} budget for {date(b.year, b.month, 1):%B %Y}.")


@router.message(Command("budget"))
async def cmd_budget(message: Message, command: CommandObject):
    period = parse_month(command.args)
    if period is None:
        await message.answer("Usage: /budget [YYYY-MM]")
        return

    user_id = message.from_user.id
    month, year = period
    budgets = await get_budgets_for_month(user_id, month, year)
    if not budgets:
        await message.answer("No budgets set for that month. Use /setbudget to create one.")
        return

    async with transaction():
        for b in budgets:
            await recompute_spent(user_id, b.category, month, year)
    budgets = await get_budgets_for_month(user_id, month, year)

    cur = await get_user_currency(user_id)
    limit = sum((b.monthly_limit for b in budgets), Decimal("0"))
    spent = sum((b.current_spent for b in budgets), Decimal("0"))
    text = (
        f"💰 Budget — {date(year, month, 1):%B %Y}\n\n"
        + "\n\n".join(_budget_line(b, cur) for b in budgets)
        + f"\n\nTotal: {format_amount(spent, cur)} / {format_amount(limit, cur)}"
    )
    await message.answer(text)
