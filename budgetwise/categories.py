import re
from enum import StrEnum


class Category(StrEnum):
    FOOD_DINING = "FOOD_DINING"
    TRANSPORTATION = "TRANSPORTATION"
    SHOPPING = "SHOPPING"
    ENTERTAINMENT = "ENTERTAINMENT"
    BILLS_UTILITIES = "BILLS_UTILITIES"
    HEALTHCARE = "HEALTHCARE"
    EDUCATION = "EDUCATION"
    TRAVEL = "TRAVEL"
    GROCERIES = "GROCERIES"
    PERSONAL_CARE = "PERSONAL_CARE"
    BUSINESS = "BUSINESS"
    GIFTS_DONATIONS = "GIFTS_DONATIONS"
    INVESTMENTS = "INVESTMENTS"
    CRYPTO = "CRYPTO"
    OTHER = "OTHER"

    @property
    def display_name(self) -> str:
        return DISPLAY_NAMES[self]


DISPLAY_NAMES: dict[Category, str] = {
    Category.FOOD_DINING: "Food & Dining",
    Category.TRANSPORTATION: "Transportation",
    Category.SHOPPING: "Shopping",
    Category.ENTERTAINMENT: "Entertainment",
    Category.BILLS_UTILITIES: "Bills & Utilities",
    Category.HEALTHCARE: "Healthcare",
    Category.EDUCATION: "Education",
    Category.TRAVEL: "Travel",
    Category.GROCERIES: "Groceries",
    Category.PERSONAL_CARE: "Personal Care",
    Category.BUSINESS: "Business",
    Category.GIFTS_DONATIONS: "Gifts & Donations",
    Category.INVESTMENTS: "Investments",
    Category.CRYPTO: "Crypto & Digital Assets",
    Category.OTHER: "Other",
}

SYNONYMS: dict[Category, tuple[str, ...]] = {
    Category.FOOD_DINING: ("food", "dining", "restaurant", "restaurants", "eat", "eating", "takeaway", "takeout"),
    Category.TRANSPORTATION: ("transport", "car", "gas", "fuel", "petrol", "uber", "taxi", "bus", "train"),
    Category.SHOPPING: ("clothes", "clothing", "amazon"),
    Category.ENTERTAINMENT: ("movie", "movies", "games", "fun", "concert", "concerts"),
    Category.BILLS_UTILITIES: ("bills", "utilities", "electricity", "water bill", "internet", "rent"),
    Category.HEALTHCARE: ("health", "doctor", "medical", "pharmacy", "medicine"),
    Category.EDUCATION: ("school", "tuition", "course", "courses"),
    Category.TRAVEL: ("flight", "flights", "hotel", "hotels", "vacation", "holiday"),
    Category.GROCERIES: ("grocery", "groceries", "supermarket"),
    Category.PERSONAL_CARE: ("haircut", "salon", "gym", "toiletries"),
    Category.BUSINESS: ("office", "work expenses"),
    Category.GIFTS_DONATIONS: ("gift", "gifts", "donation", "donations", "charity"),
    Category.INVESTMENTS: ("investment", "invest", "stocks", "shares"),
    Category.CRYPTO: ("crypto", "bitcoin", "ethereum"),
    Category.OTHER: (),
}

CATEGORY_TIPS: dict[Category, str] = {
    Category.FOOD_DINING: (
        "Your biggest expense is dining out. Try meal planning and cooking at home more often to save money."
    ),
    Category.TRANSPORTATION: (
        "Transportation is your largest expense. Consider carpooling, public transport, "
        "or walking/cycling for short trips."
    ),
    Category.SHOPPING: (
        "Shopping is taking up most of your budget. Try the 24-hour rule: "
        "wait a day before making non-essential purchases."
    ),
    Category.ENTERTAINMENT: (
        "Entertainment spending is high. Look for free activities like parks, "
        "museums on free days, or home movie nights."
    ),
    Category.BILLS_UTILITIES: (
        "Bills are your largest cost. Compare providers once a year and switch off appliances on standby."
    ),
    Category.GROCERIES: (
        "Groceries lead your spending. Shop with a list, buy store brands and avoid shopping hungry."
    ),
    Category.TRAVEL: "Travel is your top category. Book early and travel off-peak to cut costs.",
}

DEFAULT_TIP = "Review your spending regularly and set realistic budgets for each category to better control your finances."

_PATTERNS: dict[Category, re.Pattern[str]] = {}


def _terms(category: Category) -> list[str]:
    return [
        category.display_name.lower(),
        category.value.lower().replace("_", " "),
        *SYNONYMS[category],
    ]


def category_pattern(category: Category) -> re.Pattern[str]:
    if category not in _PATTERNS:
        alternatives = "|".join(re.escape(t) for t in _terms(category))
        _PATTERNS[category] = re.compile(rf"(?<!\w)(?:{alternatives})(?!\w)")
    return _PATTERNS[category]


def parse_category(text: str) -> Category | None:
    """Resolve a single user-typed category argument such as "groceries" or "food_dining"."""
    term = text.strip().lower().replace("_", " ")
    if not term:
        return None
    for category in Category:
        if term in _terms(category):
            return category
    return None


def tip_for(category: Category | None) -> str:
    if category is None:
        return DEFAULT_TIP
    return CATEGORY_TIPS.get(category, DEFAULT_TIP)


def categories_str() -> str:
    return ", ".join(c.display_name for c in Category)
