from datetime import date
from decimal import Decimal

import pytest

from budgetwise.categories import Category
from budgetwise.db.models import Expense
from budgetwise.services.aggregates import (
    AveragePeriod,
    active_months,
    average,
    compare,
    count_between,
    daily_series,
    months_back,
    round_money,
    safe_divide,
    top_category,
    total_between,
    total_by_category,
)


def _e(amount: str, category: Category, day: date) -> Expense:
    return Expense(
        id=None,
        user_id=1,
        amount=Decimal(amount),
        category=category,
        expense_date=day,
        description="test",
    )


EXPENSES = [
    _e("85.50", Category.GROCERIES, date(2025, 3, 14)),
    _e("20.00", Category.TRANSPORTATION, date(2025, 3, 2)),
    _e("14.50", Category.TRANSPORTATION, date(2025, 3, 14)),
    _e("99.99", Category.SHOPPING, date(2025, 2, 27)),
    _e("5.01", Category.GROCERIES, date(2025, 4, 1)),
]

MARCH = (date(2025, 3, 1), date(2025, 3, 31))


def test_total_between():
    assert total_between(EXPENSES, *MARCH) == Decimal("120.00")


def test_total_between_empty_is_zero():
    assert total_between([], *MARCH) == Decimal("0")


def test_total_by_category_only_spent_categories():
    totals = total_by_category(EXPENSES, *MARCH)
    assert totals == {
        Category.GROCERIES: Decimal("85.50"),
        Category.TRANSPORTATION: Decimal("34.50"),
    }


def test_category_totals_sum_to_range_total():
    start, end = date(2025, 1, 1), date(2025, 12, 31)
    assert sum(total_by_category(EXPENSES, start, end).values()) == total_between(EXPENSES, start, end)


def test_daily_series_ascending():
    series = daily_series(EXPENSES, *MARCH)
    assert list(series) == [date(2025, 3, 2), date(2025, 3, 14)]
    assert series[date(2025, 3, 14)] == Decimal("100.00")


def test_count_between():
    assert count_between(EXPENSES, *MARCH) == 3
    assert count_between(EXPENSES, date(2025, 5, 1), date(2025, 5, 31)) == 0


def test_top_category():
    assert top_category(EXPENSES, *MARCH) == (Category.GROCERIES, Decimal("85.50"))
    assert top_category([], *MARCH) is None


def test_top_category_tie_goes_to_enum_order():
    tied = [
        _e("10", Category.GROCERIES, date(2025, 3, 1)),
        _e("10", Category.FOOD_DINING, date(2025, 3, 1)),
    ]
    assert top_category(tied, *MARCH)[0] is Category.FOOD_DINING


def test_daily_average():
    expenses = [_e("30", Category.GROCERIES, date(2025, 3, 1)), _e("15", Category.GROCERIES, date(2025, 3, 5))]
    # 45 over 1..10 March inclusive
    assert average(expenses, AveragePeriod.DAILY, None, date(2025, 3, 10)) == Decimal("4.50")


def test_monthly_average_counts_active_months_only():
    expenses = [
        _e("100", Category.GROCERIES, date(2025, 1, 5)),
        _e("50", Category.GROCERIES, date(2025, 1, 20)),
        _e("50", Category.GROCERIES, date(2025, 3, 5)),
    ]
    assert average(expenses, AveragePeriod.MONTHLY, 12, date(2025, 3, 10)) == Decimal("100.00")
    assert active_months(expenses, date(2024, 3, 1), date(2025, 3, 10)) == 2


def test_average_lookback_excludes_old_expenses():
    expenses = [
        _e("1000", Category.GROCERIES, date(2023, 1, 5)),
        _e("60", Category.GROCERIES, date(2025, 3, 5)),
    ]
    assert average(expenses, AveragePeriod.MONTHLY, 12, date(2025, 3, 10)) == Decimal("60.00")


def test_average_without_expenses_is_zero():
    assert average([], AveragePeriod.DAILY, None, date(2025, 3, 10)) == Decimal("0.00")


def test_compare():
    result = compare(EXPENSES, MARCH, (date(2025, 2, 1), date(2025, 2, 28)))
    assert result.current == Decimal("120.00")
    assert result.previous == Decimal("99.99")
    assert result.difference == Decimal("20.01")
    assert result.direction == "more"


@pytest.mark.parametrize(
    "value,expected",
    [
        (Decimal("21.375"), Decimal("21.38")),
        (Decimal("0.005"), Decimal("0.01")),
        (Decimal("2.344"), Decimal("2.34")),
    ],
)
def test_round_money_half_up(value, expected):
    assert round_money(value) == expected


def test_safe_divide_by_zero():
    assert safe_divide(Decimal("10"), 0) == Decimal("0.00")
    assert safe_divide(Decimal("10"), 3) == Decimal("3.33")


def test_months_back_crosses_year():
    assert months_back(date(2025, 2, 17), 12) == date(2024, 2, 1)
    assert months_back(date(2025, 1, 31), 1) == date(2024, 12, 1)
