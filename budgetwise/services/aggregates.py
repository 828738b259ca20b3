"""Pure aggregate functions over one user's expenses.

All money results are ``Decimal``. Divisions go through :func:`safe_divide`
and are rounded to cents half-up; dividing by zero yields zero.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum

from budgetwise.categories import Category
from budgetwise.db.models import Expense

ZERO = Decimal("0")
CENTS = Decimal("0.01")


class AveragePeriod(StrEnum):
    DAILY = "daily"
    MONTHLY = "monthly"


@dataclass(frozen=True, slots=True)
class Comparison:
    current: Decimal
    previous: Decimal

    @property
    def difference(self) -> Decimal:
        return abs(self.current - self.previous)

    @property
    def direction(self) -> str:
        if self.current > self.previous:
            return "more"
        if self.current < self.previous:
            return "less"
        return "the same"


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_money(value) -> Decimal:
    return round_money(Decimal(str(value)))


def safe_divide(numerator: Decimal, denominator: Decimal | int) -> Decimal:
    if not denominator:
        return round_money(ZERO)
    return round_money(Decimal(numerator) / Decimal(denominator))


def _within(expenses: Iterable[Expense], start: date, end: date) -> list[Expense]:
    return [e for e in expenses if start <= e.expense_date <= end]


def total_between(expenses: Iterable[Expense], start: date, end: date) -> Decimal:
    return sum((e.amount for e in _within(expenses, start, end)), ZERO)


def count_between(expenses: Iterable[Expense], start: date, end: date) -> int:
    return len(_within(expenses, start, end))


def total_by_category(expenses: Iterable[Expense], start: date, end: date) -> dict[Category, Decimal]:
    totals: dict[Category, Decimal] = {}
    for e in _within(expenses, start, end):
        totals[e.category] = totals.get(e.category, ZERO) + e.amount
    return totals


def daily_series(expenses: Iterable[Expense], start: date, end: date) -> dict[date, Decimal]:
    totals: dict[date, Decimal] = {}
    for e in _within(expenses, start, end):
        totals[e.expense_date] = totals.get(e.expense_date, ZERO) + e.amount
    return dict(sorted(totals.items()))


def top_category(expenses: Iterable[Expense], start: date, end: date) -> tuple[Category, Decimal] | None:
    totals = total_by_category(expenses, start, end)
    best: tuple[Category, Decimal] | None = None
    # Enum declaration order decides ties.
    for category in Category:
        if category in totals and (best is None or totals[category] > best[1]):
            best = (category, totals[category])
    return best


def months_back(today: date, months: int) -> date:
    index = today.year * 12 + (today.month - 1) - months
    return date(index // 12, index % 12 + 1, 1)


def average(
    expenses: Sequence[Expense],
    period: AveragePeriod,
    lookback_months: int | None,
    today: date,
) -> Decimal:
    """Average spend per day or per active month.

    ``lookback_months=None`` uses the full history. Daily divides by the days
    from the first expense in the window to ``today`` inclusive; monthly
    divides by the number of distinct months that have at least one expense.
    """
    start = date.min if lookback_months is None else months_back(today, lookback_months)
    window = _within(expenses, start, today)
    if not window:
        return round_money(ZERO)
    total = sum((e.amount for e in window), ZERO)
    if period == AveragePeriod.DAILY:
        first = min(e.expense_date for e in window)
        return safe_divide(total, (today - first).days + 1)
    months = {(e.expense_date.year, e.expense_date.month) for e in window}
    return safe_divide(total, len(months))


def active_months(expenses: Iterable[Expense], start: date, end: date) -> int:
    return len({(e.expense_date.year, e.expense_date.month) for e in _within(expenses, start, end)})


def compare(
    expenses: Sequence[Expense],
    current: tuple[date, date],
    previous: tuple[date, date],
) -> Comparison:
    return Comparison(
        current=total_between(expenses, *current),
        previous=total_between(expenses, *previous),
    )
