import logging
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import FSInputFile, Message

from budgetwise.charts import daily_spending_chart, spending_by_category_chart
from budgetwise.currency import format_amount, get_user_currency
from budgetwise.services import aggregates
from budgetwise.services.budget_service import get_budgets_for_month
from budgetwise.services.expense_service import get_expenses

logger = logging.getLogger(__name__)
router = Router()

DAILY_WINDOW_DAYS = 30


async def _answer_with_chart(message: Message, chart_path: str | None, text: str) -> None:
    if chart_path:
        try:
            await message.answer_photo(FSInputFile(chart_path), caption=text)
        finally:
            Path(chart_path).unlink(missing_ok=True)
    else:
        await message.answer(text)


@router.message(Command("summary"))
async def cmd_summary(message: Message):
    today = date.today()
    start = today.replace(day=1)
    user_id = message.from_user.id

    expenses = await get_expenses(user_id, start, today)
    totals = aggregates.total_by_category(expenses, start, today)
    label = today.strftime("%B %Y")
    if not totals:
        await message.answer(f"No expenses for {label}.")
        return

    cur = await get_user_currency(user_id)
    counts = {c: sum(1 for e in expenses if e.category == c) for c in totals}
    lines = [
        f"• {c.display_name}: {format_amount(v, cur)} ({counts[c]} items)"
        for c, v in sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    ]
    total = aggregates.total_between(expenses, start, today)
    text = f"📊 Summary for {label}\n\n" + "\n".join(lines) + f"\n\nTotal: {format_amount(total, cur)}"

    budgets = await get_budgets_for_month(user_id, today.month, today.year)
    if budgets:
        budget_lines = [
            f"  {b.category.display_name}: {b.percentage}% ({format_amount(b.remaining, cur)} left)" for b in budgets
        ]
        text += "\n\n💰 Budget:\n" + "\n".join(budget_lines)

    try:
        chart_path = await spending_by_category_chart(totals, cur)
    except Exception:
        logger.exception("Failed to render category chart", extra={"user_id": user_id})
        chart_path = None
    await _answer_with_chart(message, chart_path, text)


@router.message(Command("daily"))
async def cmd_daily(message: Message) -> None:
    today = date.today()
    start = today - timedelta(days=DAILY_WINDOW_DAYS - 1)
    user_id = message.from_user.id

    expenses = await get_expenses(user_id, start, today)
    series = aggregates.daily_series(expenses, start, today)
    if not series:
        await message.answer(f"No expenses in the last {DAILY_WINDOW_DAYS} days.")
        return

    cur = await get_user_currency(user_id)
    total = aggregates.total_between(expenses, start, today)
    avg = aggregates.safe_divide(total, DAILY_WINDOW_DAYS)
    text = (
        f"Daily spending (last {DAILY_WINDOW_DAYS} days)\n\n"
        f"Total: {format_amount(total, cur)}\nDaily avg: {format_amount(avg, cur)}"
    )

    budgets = await get_budgets_for_month(user_id, today.month, today.year)
    budget_total = sum((b.monthly_limit for b in budgets), Decimal("0")) or None

    try:
        chart_path = await daily_spending_chart(series, cur, budget=budget_total)
    except Exception:
        logger.exception("Failed to render daily chart", extra={"user_id": user_id})
        chart_path = None
    await _answer_with_chart(message, chart_path, text)
