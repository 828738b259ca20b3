import re
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, timedelta

from budgetwise.categories import Category, category_pattern
from budgetwise.errors import InvalidDateError

MONTHS: dict[str, int] = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sept": 9, "sep": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}

_MONTH_ALT = "|".join(sorted(MONTHS, key=len, reverse=True))

DAY_OF_MONTH = re.compile(rf"(?<!\w)(\d{{1,2}})(?:st|nd|rd|th)? of ({_MONTH_ALT})(?!\w)")
MONTH_DAY = re.compile(rf"(?<!\w)({_MONTH_ALT})\.? (\d{{1,2}})(?:st|nd|rd|th)?(?!\w)")
DATE_PATTERNS = (DAY_OF_MONTH, MONTH_DAY)


@dataclass(frozen=True, slots=True)
class Period:
    label: str
    start: date
    end: date
    # False when the period is still running, e.g. "this month"
    completed: bool


def extract_category(text: str) -> Category | None:
    for category in Category:
        if category_pattern(category).search(text):
            return category
    return None


def _has(text: str, *phrases: str) -> bool:
    return any(re.search(rf"(?<!\w){p}(?!\w)", text) for p in phrases)


def last_month_bounds(today: date) -> tuple[date, date]:
    end = today.replace(day=1) - timedelta(days=1)
    return end.replace(day=1), end


def extract_period(text: str, today: date) -> Period | None:
    if _has(text, "last month", "previous month"):
        start, end = last_month_bounds(today)
        return Period("last month", start, end, True)
    if _has(text, "this month", "current month"):
        return Period("this month", today.replace(day=1), today, False)
    if _has(text, "last week", "previous week"):
        start = today - timedelta(days=today.weekday() + 7)
        return Period("last week", start, start + timedelta(days=6), True)
    if _has(text, "this week", "current week"):
        return Period("this week", today - timedelta(days=today.weekday()), today, False)
    if _has(text, "yesterday"):
        yesterday = today - timedelta(days=1)
        return Period("yesterday", yesterday, yesterday, True)
    if _has(text, "today"):
        return Period("today", today, today, False)
    return None


def this_month(today: date) -> Period:
    return Period("this month", today.replace(day=1), today, False)


def _resolve(day: int, month: int, today: date, raw: str) -> date:
    # A month earlier in the year than the current one refers to next year.
    year = today.year + 1 if month < today.month else today.year
    if not 1 <= day <= monthrange(year, month)[1]:
        raise InvalidDateError(raw)
    return date(year, month, day)


def extract_specific_date(text: str, today: date) -> date | None:
    """Resolve "8th of october" or "oct 8" style dates. Raises InvalidDateError for "feb 30"."""
    if match := DAY_OF_MONTH.search(text):
        return _resolve(int(match.group(1)), MONTHS[match.group(2)], today, match.group(0))
    if match := MONTH_DAY.search(text):
        return _resolve(int(match.group(2)), MONTHS[match.group(1)], today, match.group(0))
    return None
