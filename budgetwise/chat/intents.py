"""Keyword intent classification for free-text financial questions.

Rules live in one ordered table; the first rule whose pattern matches wins.
Local intents sit ahead of SUBJECTIVE, so "am I over budget?" is answered from
the budgets table even though "am i" is also an opinion-seeking phrase.
"""

import re
from enum import StrEnum

from budgetwise.chat.entities import DATE_PATTERNS


class Intent(StrEnum):
    FEATURE_QUESTION = "feature_question"
    SPECIFIC_DATE = "specific_date"
    COMPARISON = "comparison"
    AVERAGE = "average"
    TRANSACTION_COUNT = "transaction_count"
    BUDGET_STATUS = "budget_status"
    CATEGORY_ANALYSIS = "category_analysis"
    SPENDING = "spending"
    OVERVIEW = "overview"
    TIP_REQUEST = "tip_request"
    SUBJECTIVE = "subjective"
    UNCLASSIFIED = "unclassified"


FALLBACK_INTENTS = frozenset({Intent.SUBJECTIVE, Intent.UNCLASSIFIED})


def _words(*phrases: str) -> re.Pattern[str]:
    return re.compile("|".join(rf"(?<!\w){p}(?!\w)" for p in phrases))


_SUBJECTIVE_PHRASES = _words(
    # first-person purchase statements
    "i spent", "i bought", "i purchased", "i paid", "was that", "is that", "should i have",
    # value judgements
    "worth it", "too much", "too expensive", "good deal", "bad deal", "waste", "smart", "stupid", "regret",
    # opinion seeking
    "should i", "is it okay", "am i", "do you think", "what do you think", "opinion", "thoughts on",
    # questions about descriptions
    r"descriptions?", "why did i", "when did i", "where did i", "what did i buy",
    # analysis
    "analy[sz]e", r"patterns?", r"trends?", r"insights?", "understand", "explain why", "tell me about",
    "compared to", "different from", "similar to", "like others", "typical", "normal", "unusual",
    r"habits?", "lifestyle", "behaviou?r", "way i", "how i",
    # emotional language
    "feel", "feeling", "worried", "concerned", "happy", "sad", "proud", "embarrassed",
)

_PURCHASE_AMOUNT = re.compile(r"(?:i\s+(?:spent|paid|bought)|cost\s+me)\s+\w*?\s*\d+")


INTENT_RULES: tuple[tuple[Intent, tuple[re.Pattern[str], ...]], ...] = (
    (
        Intent.FEATURE_QUESTION,
        (
            _words(r"receipts?", "scan", "scanning", r"features?", "organi[sz]e"),
            re.compile(r"(?<!\w)(?:how (?:do|does|can|to)|what (?:is|are))(?!\w).*(?<!\w)work(?:s)?(?!\w)"),
            _words("what can you do", "help me use", "how do i use"),
        ),
    ),
    (Intent.SPECIFIC_DATE, DATE_PATTERNS),
    (
        Intent.COMPARISON,
        (
            _words("compare", "comparison", "vs", "versus"),
            re.compile(r"(?<!\w)this month(?!\w).*(?<!\w)(?:last|previous) month(?!\w)"),
            re.compile(r"(?<!\w)(?:last|previous) month(?!\w).*(?<!\w)this month(?!\w)"),
        ),
    ),
    (Intent.AVERAGE, (_words("average", "avg", "on average", "per day", "per month"),)),
    (
        Intent.TRANSACTION_COUNT,
        (
            re.compile(r"(?<!\w)how many (?:transactions|purchases|expenses|payments|times)(?!\w)"),
            _words(r"number of (?:transactions|purchases|expenses)", "transaction count"),
        ),
    ),
    (
        Intent.BUDGET_STATUS,
        (_words(r"budgets?", "left to spend", "how much (?:do i have|is) left", "over the limit"),),
    ),
    (
        Intent.CATEGORY_ANALYSIS,
        (
            _words(
                "breakdown",
                "by category",
                "all categories",
                r"(?:largest|biggest|highest|top) (?:spending )?categor(?:y|ies)",
                "spen[dt] the most",
                "spen[dt] most",
                "where (?:does|did) my money go",
            ),
        ),
    ),
    (
        Intent.SPENDING,
        (
            re.compile(r"(?<!\w)how much(?!\w).*(?<!\w)(?:spen[dt]|spending|pay|paid|cost)(?!\w)"),
            _words(
                "what did i spend",
                r"(?:my|total) spending",
                "total spent",
                r"spending (?:on|for|in|this|last|today|yesterday)",
                r"expenses (?:this|last|today|yesterday)",
            ),
        ),
    ),
    (
        Intent.OVERVIEW,
        (
            _words(
                "overview",
                "summary",
                "how am i doing",
                r"financial (?:status|situation|health)",
                "status",
            ),
        ),
    ),
    (
        Intent.TIP_REQUEST,
        (
            _words(r"tips?", "advice", "save money", "saving", "how can i save", "recommend", "suggest", "suggestions?"),
        ),
    ),
    (Intent.SUBJECTIVE, (_SUBJECTIVE_PHRASES, _PURCHASE_AMOUNT)),
)


def normalize(text: str) -> str:
    return " ".join(text.lower().split())


def classify(normalized: str) -> Intent:
    for intent, patterns in INTENT_RULES:
        if any(p.search(normalized) for p in patterns):
            return intent
    return Intent.UNCLASSIFIED
