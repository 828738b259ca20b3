"""Question engine: classify, extract, aggregate, format.

Each local handler returns the answer text, or None when the question lacks
something it needs (for example a spending question that names neither a
period nor a category). None sends the question to the completion fallback.
"""

import logging
import re
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from budgetwise.categories import tip_for
from budgetwise.chat import formatter
from budgetwise.chat.entities import (
    extract_category,
    extract_period,
    extract_specific_date,
    last_month_bounds,
    this_month,
)
from budgetwise.chat.fallback import answer_with_fallback
from budgetwise.chat.intents import FALLBACK_INTENTS, Intent, classify, normalize
from budgetwise.currency import format_amount
from budgetwise.errors import InvalidDateError, UpstreamServiceError
from budgetwise.llm.client import ask_completion
from budgetwise.services import aggregates
from budgetwise.services.aggregates import AveragePeriod
from budgetwise.services.budget_service import budget_status, get_budgets_for_month
from budgetwise.services.expense_service import get_expenses

logger = logging.getLogger(__name__)

MONTHLY_LOOKBACK = 12

TIP_SYSTEM_PROMPT = "You are Budgetwise, a friendly personal finance assistant."


@dataclass(slots=True)
class Question:
    user_id: int
    text: str
    currency: str
    today: date


Handler = Callable[[Question], Awaitable[str | None]]


def _mentions(text: str, *words: str) -> bool:
    return any(re.search(rf"(?<!\w){w}(?!\w)", text) for w in words)


async def _spending(q: Question) -> str | None:
    period = extract_period(q.text, q.today)
    category = extract_category(q.text)
    if period is None and category is None:
        return None
    period = period or this_month(q.today)
    expenses = await get_expenses(q.user_id, period.start, period.end, category)
    total = aggregates.total_between(expenses, period.start, period.end)
    return formatter.spending(total, q.currency, period, category)


async def _specific_date(q: Question) -> str | None:
    on = extract_specific_date(q.text, q.today)
    if on is None:
        return None
    expenses = await get_expenses(q.user_id, on, on, extract_category(q.text))
    return formatter.specific_date(aggregates.total_between(expenses, on, on), q.currency, on)


async def _comparison(q: Question) -> str | None:
    current = (q.today.replace(day=1), q.today)
    previous = last_month_bounds(q.today)
    expenses = await get_expenses(q.user_id, previous[0], q.today, extract_category(q.text))
    return formatter.comparison(aggregates.compare(expenses, current, previous), q.currency)


async def _average(q: Question) -> str | None:
    if _mentions(q.text, "monthly", "per month", "a month"):
        expenses = await get_expenses(q.user_id)
        window_start = aggregates.months_back(q.today, MONTHLY_LOOKBACK)
        months = aggregates.active_months(expenses, window_start, q.today)
        if months == 0:
            return "You don't have enough expense history to calculate a monthly average."
        value = aggregates.average(expenses, AveragePeriod.MONTHLY, MONTHLY_LOOKBACK, q.today)
        return formatter.monthly_average(value, q.currency, months)

    expenses = await get_expenses(q.user_id, end_date=q.today)
    if not expenses:
        return "You don't have any expenses recorded yet."
    value = aggregates.average(expenses, AveragePeriod.DAILY, None, q.today)
    return formatter.daily_average(value, q.currency)


async def _transaction_count(q: Question) -> str | None:
    period = extract_period(q.text, q.today) or this_month(q.today)
    expenses = await get_expenses(q.user_id, period.start, period.end, extract_category(q.text))
    return formatter.transaction_count(aggregates.count_between(expenses, period.start, period.end), period.label)


async def _budget_status(q: Question) -> str | None:
    period = extract_period(q.text, q.today)
    if period and period.label == "last month":
        on, label = period.start, "last month"
    else:
        on, label = q.today, "this month"
    category = extract_category(q.text)

    if category is not None:
        budget = await budget_status(q.user_id, category, on.month, on.year)
        if budget is None:
            return formatter.no_budget(category, label)
        return formatter.budget_detail(budget, q.currency)

    budgets = await get_budgets_for_month(q.user_id, on.month, on.year)
    if not budgets:
        return formatter.no_budgets(label)
    if _mentions(q.text, "over", "exceeded", "exceeding", "above"):
        return formatter.over_budget(budgets)
    return formatter.budget_overview(budgets, q.currency, on.month, on.year)


async def _category_analysis(q: Question) -> str | None:
    period = extract_period(q.text, q.today) or this_month(q.today)
    expenses = await get_expenses(q.user_id, period.start, period.end)
    totals = aggregates.total_by_category(expenses, period.start, period.end)
    if not totals:
        return formatter.no_expenses(period.label)
    if _mentions(q.text, "largest", "highest", "most", "biggest", "top"):
        category, total = aggregates.top_category(expenses, period.start, period.end)
        return formatter.largest_category(category, total, q.currency, period.label)
    return formatter.category_breakdown(totals, q.currency, period.label)


async def _overview(q: Question) -> str | None:
    start = q.today.replace(day=1)
    expenses = await get_expenses(q.user_id, start, q.today)
    budgets = await get_budgets_for_month(q.user_id, q.today.month, q.today.year)
    top = aggregates.top_category(expenses, start, q.today)
    return formatter.overview(
        aggregates.total_between(expenses, start, q.today),
        sum((b.monthly_limit for b in budgets), Decimal("0")),
        aggregates.count_between(expenses, start, q.today),
        top[0] if top else None,
        q.currency,
        q.today,
    )


async def _tip(q: Question) -> str | None:
    """A short generated tip grounded in this month's numbers; the static tip when that fails."""
    start = q.today.replace(day=1)
    expenses = await get_expenses(q.user_id, start, q.today)
    budgets = await get_budgets_for_month(q.user_id, q.today.month, q.today.year)
    category = extract_category(q.text)
    focus = f" They asked about {category.display_name}." if category is not None else ""
    if category is None:
        top = aggregates.top_category(expenses, start, q.today)
        category = top[0] if top else None
        focus = f" Most of it went to {category.display_name}." if category is not None else ""

    spent = format_amount(aggregates.total_between(expenses, start, q.today), q.currency)
    budget = format_amount(sum((b.monthly_limit for b in budgets), Decimal("0")), q.currency)
    prompt = (
        f"Give the user a brief financial tip. They've spent {spent} of {budget} budget this month."
        f"{focus} Keep it practical and under 50 words."
    )

    try:
        tip = (await ask_completion(prompt, system_prompt=TIP_SYSTEM_PROMPT)).strip()
    except UpstreamServiceError as exc:
        logger.warning("Tip completion unavailable: %s", exc, extra={"user_id": q.user_id})
        tip = ""
    return tip or tip_for(category)


async def _feature(q: Question) -> str | None:
    return formatter.feature_answer(q.text)


HANDLERS: dict[Intent, Handler] = {
    Intent.FEATURE_QUESTION: _feature,
    Intent.SPECIFIC_DATE: _specific_date,
    Intent.COMPARISON: _comparison,
    Intent.AVERAGE: _average,
    Intent.TRANSACTION_COUNT: _transaction_count,
    Intent.BUDGET_STATUS: _budget_status,
    Intent.CATEGORY_ANALYSIS: _category_analysis,
    Intent.SPENDING: _spending,
    Intent.OVERVIEW: _overview,
    Intent.TIP_REQUEST: _tip,
}


async def answer_question(user_id: int, text: str, currency: str, today: date | None = None) -> str:
    started = time.monotonic()
    question = Question(user_id=user_id, text=normalize(text), currency=currency, today=today or date.today())
    intent = classify(question.text)

    answer: str | None = None
    try:
        if intent not in FALLBACK_INTENTS:
            answer = await HANDLERS[intent](question)
    except InvalidDateError as exc:
        logger.info("Unparseable date %r", exc.text, extra={"user_id": user_id, "intent": intent.value})
        return formatter.CLARIFY_DATE
    except Exception:
        logger.exception("Local handler failed", extra={"user_id": user_id, "intent": intent.value})
        return formatter.APOLOGY

    handler = "local"
    if answer is None:
        handler = "fallback"
        answer = await answer_with_fallback(user_id, text, currency, question.today)

    logger.info(
        "Answered question",
        extra={
            "user_id": user_id,
            "intent": intent.value,
            "handler": handler,
            "latency_ms": round((time.monotonic() - started) * 1000),
        },
    )
    return formatter.humanize_categories(answer)
