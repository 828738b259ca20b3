import pytest

from budgetwise.chat.intents import INTENT_RULES, Intent, classify, normalize


def test_normalize():
    assert normalize("  How MUCH   did I\tspend?  ") == "how much did i spend?"


@pytest.mark.parametrize(
    "text,intent",
    [
        ("How much did I spend on transport last month?", Intent.SPENDING),
        ("how much have i spent today", Intent.SPENDING),
        ("show my spending this week", Intent.SPENDING),
        ("What's my groceries budget?", Intent.BUDGET_STATUS),
        ("am I over budget?", Intent.BUDGET_STATUS),
        ("how much is left to spend", Intent.BUDGET_STATUS),
        ("What is my largest spending category?", Intent.CATEGORY_ANALYSIS),
        ("give me a breakdown for last month", Intent.CATEGORY_ANALYSIS),
        ("How many transactions did I make this week?", Intent.TRANSACTION_COUNT),
        ("what is my average daily spending", Intent.AVERAGE),
        ("How much did I spend on the 8th of October?", Intent.SPECIFIC_DATE),
        ("spending on Oct 8th", Intent.SPECIFIC_DATE),
        ("compare this month to last month", Intent.COMPARISON),
        ("How does receipt scanning work?", Intent.FEATURE_QUESTION),
        ("how do budgets work", Intent.FEATURE_QUESTION),
        ("give me an overview", Intent.OVERVIEW),
        ("any tips to save money?", Intent.TIP_REQUEST),
        ("I spent R2000 on shoes, was that too much?", Intent.SUBJECTIVE),
        ("is this a normal amount for a family?", Intent.SUBJECTIVE),
        ("I'm worried about money", Intent.SUBJECTIVE),
        ("hello there", Intent.UNCLASSIFIED),
    ],
)
def test_classify(text, intent):
    assert classify(normalize(text)) is intent


def test_local_intent_beats_subjective():
    # "am i" is opinion seeking, but the budget rule sits earlier in the table
    assert classify("am i within my budget this month?") is Intent.BUDGET_STATUS


def test_first_person_statement_goes_to_fallback():
    assert classify(normalize("I spent 500 on food, too much?")) is Intent.SUBJECTIVE


def test_feature_question_beats_budget():
    assert classify("how does the budget feature work?") is Intent.FEATURE_QUESTION


def test_date_beats_spending():
    assert classify("how much did i spend on march 3") is Intent.SPECIFIC_DATE


def test_year_is_not_a_day():
    assert classify("how much did i spend in march 2024") is not Intent.SPECIFIC_DATE


def test_rule_table_order():
    order = [intent for intent, _ in INTENT_RULES]
    assert order == [
        Intent.FEATURE_QUESTION,
        Intent.SPECIFIC_DATE,
        Intent.COMPARISON,
        Intent.AVERAGE,
        Intent.TRANSACTION_COUNT,
        Intent.BUDGET_STATUS,
        Intent.CATEGORY_ANALYSIS,
        Intent.SPENDING,
        Intent.OVERVIEW,
        Intent.TIP_REQUEST,
        Intent.SUBJECTIVE,
    ]
