from decimal import ROUND_HALF_UP, Decimal

from budgetwise.config import settings
from budgetwise.db.database import get_db, transaction

CURRENCY_SYMBOLS: dict[str, str] = {
    "ZAR": "R",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "C$",
    "AUD": "A$",
    "CHF": "CHF",
    "CNY": "¥",
    "INR": "₹",
    "NGN": "₦",
    "KES": "KSh",
    "BWP": "P",
    "NAD": "N$",
    "SEK": "kr",
    "NOK": "kr",
    "DKK": "kr",
    "PLN": "zł",
    "BRL": "R$",
    "NZD": "NZ$",
    "SGD": "S$",
    "HKD": "HK$",
    "MXN": "MX$",
}

_PREFIX_SYMBOLS = frozenset(
    {"R", "$", "€", "£", "¥", "₹", "₦", "C$", "A$", "N$", "R$", "NZ$", "S$", "HK$", "MX$"}
)


def currency_symbol(code: str) -> str:
    return CURRENCY_SYMBOLS.get(code.upper(), code.upper())


def is_known_currency(code: str) -> bool:
    return code.upper() in CURRENCY_SYMBOLS


def format_amount(amount: Decimal | float, currency_code: str) -> str:
    sym = currency_symbol(currency_code)
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    value = abs(value)
    if sym in _PREFIX_SYMBOLS:
        return f"{sign}{sym}{value}"
    return f"{sign}{value} {sym}"


async def get_user_currency(user_id: int) -> str:
    db = await get_db()
    cursor = await db.execute(
        "SELECT currency FROM user_settings WHERE user_id = ?",
        (user_id,),
    )
    row = await cursor.fetchone()
    if row:
        return row["currency"]
    return settings.default_currency


async def set_user_currency(user_id: int, currency: str) -> None:
    async with transaction() as db:
        await db.execute(
            "INSERT OR REPLACE INTO user_settings (user_id, currency) VALUES (?, ?)",
            (user_id, currency.upper()),
        )
