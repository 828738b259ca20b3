"""Sentences returned by the question engine.

Every amount goes through ``format_amount`` and every category through its
display name; ``humanize_categories`` scrubs identifiers that arrive from
outside, such as completion replies or raw query rows.
"""

import re
from datetime import date
from decimal import Decimal

from budgetwise.categories import Category
from budgetwise.chat.entities import Period
from budgetwise.currency import format_amount
from budgetwise.db.models import Budget
from budgetwise.services.aggregates import Comparison

_IDENTIFIER = re.compile(r"\b(" + "|".join(c.value for c in Category) + r")\b")

FEATURE_ANSWERS: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("receipt", "scan"),
        "Attach a receipt reference when you add an expense and it stays linked to that entry, "
        "so you can always trace an amount back to the slip it came from.",
    ),
    (
        ("categor", "organi"),
        "Categories help organize your expenses into groups like Food & Dining, Transportation, "
        "Entertainment, etc. This makes it easier to see where your money is going.",
    ),
    (
        ("budget", "work"),
        "Budgets help you control your spending by setting monthly limits for different categories. "
        "Every expense needs a budget for its category and month, and the spent total updates "
        "automatically whenever you add, edit or delete an expense.",
    ),
)

FEATURE_DEFAULT = "I can explain how budgets, categories, receipts and other features work. Just ask!"
CLARIFY_DATE = "Please specify a valid date like 'September 8th' or '8th of October'."
APOLOGY = "Sorry, I couldn't answer that right now. Please try again in a moment."


def humanize_categories(text: str) -> str:
    return _IDENTIFIER.sub(lambda m: Category(m.group(1)).display_name, text)


def month_label(month: int, year: int) -> str:
    return f"{date(year, month, 1):%B} {year}"


def spending(total: Decimal, currency: str, period: Period, category: Category | None = None) -> str:
    amount = format_amount(total, currency)
    verb = "You spent" if period.completed else "You've spent"
    if category is not None:
        return f"{verb} {amount} on {category.display_name} {period.label}."
    if period.label == "last month":
        return f"You spent {amount} in {month_label(period.start.month, period.start.year)}."
    if period.label == "this month":
        return f"You've spent {amount} so far in {month_label(period.start.month, period.start.year)}."
    return f"{verb} {amount} {period.label}."


def specific_date(total: Decimal, currency: str, on: date) -> str:
    return f"You spent {format_amount(total, currency)} on {on:%B} {on.day}, {on.year}."


def budget_detail(budget: Budget, currency: str) -> str:
    return (
        f"Your {budget.category.display_name} budget: {format_amount(budget.monthly_limit, currency)} limit, "
        f"{format_amount(budget.current_spent, currency)} spent, "
        f"{format_amount(budget.remaining, currency)} remaining ({budget.percentage}% used)."
    )


def no_budget(category: Category, period_label: str) -> str:
    return f"You don't have a budget set for {category.display_name} {period_label}."


def no_budgets(period_label: str) -> str:
    return f"You don't have any budgets set for {period_label}."


def over_budget(budgets: list[Budget]) -> str:
    over = [b.category.display_name for b in budgets if b.over_budget]
    if not over:
        return "Great news! You're within budget for all categories this month."
    return f"You're over budget for: {', '.join(over)}."


def budget_overview(budgets: list[Budget], currency: str, month: int, year: int) -> str:
    limit = sum((b.monthly_limit for b in budgets), Decimal("0"))
    spent = sum((b.current_spent for b in budgets), Decimal("0"))
    return (
        f"Your total budget for {date(year, month, 1):%B} is {format_amount(limit, currency)}. "
        f"You've spent {format_amount(spent, currency)} ({format_amount(limit - spent, currency)} remaining)."
    )


def largest_category(category: Category, total: Decimal, currency: str, period_label: str) -> str:
    return (
        f"Your largest spending category {period_label} is {category.display_name} "
        f"with {format_amount(total, currency)}."
    )


def category_breakdown(totals: dict[Category, Decimal], currency: str, period_label: str) -> str:
    lines = [f"Your spending by category {period_label}:"]
    for category, total in sorted(totals.items(), key=lambda kv: kv[1], reverse=True):
        lines.append(f"• {category.display_name}: {format_amount(total, currency)}")
    return "\n".join(lines)


def no_expenses(period_label: str) -> str:
    return f"You don't have any expenses recorded for {period_label}."


def transaction_count(count: int, period_label: str) -> str:
    if count == 0:
        return f"You made no transactions {period_label}."
    if count == 1:
        return f"You made 1 transaction {period_label}."
    return f"You made {count} transactions {period_label}."


def daily_average(value: Decimal, currency: str) -> str:
    return f"Your average daily spending is {format_amount(value, currency)}."


def monthly_average(value: Decimal, currency: str, months: int) -> str:
    return (
        f"Your average monthly spending is {format_amount(value, currency)} "
        f"(based on {months} months of data)."
    )


def comparison(result: Comparison, currency: str) -> str:
    if result.direction == "the same":
        tail = "You've spent the same amount this month."
    else:
        tail = f"You've spent {format_amount(result.difference, currency)} {result.direction} this month."
    return (
        f"This month: {format_amount(result.current, currency)}, "
        f"Last month: {format_amount(result.previous, currency)}. {tail}"
    )


def overview(
    spent: Decimal,
    budget_total: Decimal,
    count: int,
    top: Category | None,
    currency: str,
    today: date,
) -> str:
    return "\n".join(
        [
            f"Here's your financial overview for {today:%B}:",
            f"💰 Total spent: {format_amount(spent, currency)}",
            f"🎯 Total budget: {format_amount(budget_total, currency)}",
            f"📊 Transactions: {count}",
            f"🏆 Top category: {top.display_name if top else 'None'}",
        ]
    )


def feature_answer(text: str) -> str:
    for keywords, answer in FEATURE_ANSWERS:
        if any(k in text for k in keywords):
            return answer
    return FEATURE_DEFAULT
