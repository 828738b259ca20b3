from datetime import date
from decimal import Decimal

import pytest

from budgetwise.categories import Category
from budgetwise.chat import formatter
from budgetwise.chat.entities import Period
from budgetwise.currency import format_amount
from budgetwise.db.models import Budget
from budgetwise.services.aggregates import Comparison

LAST_MONTH = Period("last month", date(2025, 2, 1), date(2025, 2, 28), True)
THIS_MONTH = Period("this month", date(2025, 3, 1), date(2025, 3, 12), False)


@pytest.mark.parametrize(
    "amount,code,expected",
    [
        (Decimal("85.5"), "ZAR", "R85.50"),
        (Decimal("1200"), "USD", "$1200.00"),
        (Decimal("21.375"), "EUR", "€21.38"),
        (Decimal("-5"), "ZAR", "-R5.00"),
        (Decimal("10"), "SEK", "10.00 kr"),
        (Decimal("10"), "XYZ", "10.00 XYZ"),
    ],
)
def test_format_amount(amount, code, expected):
    assert format_amount(amount, code) == expected


def test_humanize_categories():
    text = "Most of it went to FOOD_DINING, then BILLS_UTILITIES and GROCERIES."
    assert formatter.humanize_categories(text) == (
        "Most of it went to Food & Dining, then Bills & Utilities and Groceries."
    )


def test_humanize_leaves_plain_words():
    assert formatter.humanize_categories("other travel plans") == "other travel plans"


def test_spending_last_month_names_the_month():
    assert formatter.spending(Decimal("1200"), "ZAR", LAST_MONTH) == "You spent R1200.00 in February 2025."


def test_spending_this_month_is_running():
    assert formatter.spending(Decimal("10"), "ZAR", THIS_MONTH) == "You've spent R10.00 so far in March 2025."


def test_spending_with_category_uses_display_name():
    answer = formatter.spending(Decimal("1200"), "ZAR", LAST_MONTH, Category.TRANSPORTATION)
    assert answer == "You spent R1200.00 on Transportation last month."
    assert "TRANSPORTATION" not in answer


def test_specific_date():
    assert formatter.specific_date(Decimal("42"), "ZAR", date(2025, 10, 8)) == (
        "You spent R42.00 on October 8, 2025."
    )


def test_budget_detail():
    budget = Budget(
        id=1,
        user_id=1,
        category=Category.GROCERIES,
        month=3,
        year=2025,
        monthly_limit=Decimal("400.00"),
        current_spent=Decimal("85.50"),
    )
    answer = formatter.budget_detail(budget, "ZAR")
    assert "R400.00" in answer
    assert "R85.50" in answer
    assert "R314.50" in answer
    assert "21.38%" in answer
    assert "Groceries" in answer


def test_over_budget_lists_display_names():
    budgets = [
        Budget(1, 1, Category.FOOD_DINING, 3, 2025, Decimal("100"), Decimal("150")),
        Budget(2, 1, Category.GROCERIES, 3, 2025, Decimal("100"), Decimal("50")),
    ]
    assert formatter.over_budget(budgets) == "You're over budget for: Food & Dining."


def test_within_all_budgets():
    budgets = [Budget(1, 1, Category.GROCERIES, 3, 2025, Decimal("100"), Decimal("100"))]
    assert formatter.over_budget(budgets).startswith("Great news!")


def test_category_breakdown_sorted_descending():
    answer = formatter.category_breakdown(
        {Category.GROCERIES: Decimal("10"), Category.CRYPTO: Decimal("99")}, "ZAR", "this month"
    )
    lines = answer.splitlines()
    assert lines[1] == "• Crypto & Digital Assets: R99.00"
    assert lines[2] == "• Groceries: R10.00"


@pytest.mark.parametrize(
    "count,expected",
    [
        (0, "You made no transactions this week."),
        (1, "You made 1 transaction this week."),
        (4, "You made 4 transactions this week."),
    ],
)
def test_transaction_count(count, expected):
    assert formatter.transaction_count(count, "this week") == expected


def test_comparison():
    answer = formatter.comparison(Comparison(Decimal("120"), Decimal("100")), "ZAR")
    assert answer == "This month: R120.00, Last month: R100.00. You've spent R20.00 more this month."


def test_comparison_same():
    answer = formatter.comparison(Comparison(Decimal("5"), Decimal("5")), "ZAR")
    assert answer.endswith("You've spent the same amount this month.")


def test_overview_without_top_category():
    answer = formatter.overview(Decimal("0"), Decimal("0"), 0, None, "ZAR", date(2025, 3, 12))
    assert answer.splitlines()[0] == "Here's your financial overview for March:"
    assert "Top category: None" in answer


@pytest.mark.parametrize(
    "text,needle",
    [
        ("how does receipt scanning work?", "receipt"),
        ("how do categories work?", "Categories"),
        ("how do budgets work?", "Budgets"),
        ("what else is there?", "Just ask"),
    ],
)
def test_feature_answer(text, needle):
    assert needle in formatter.feature_answer(text)
