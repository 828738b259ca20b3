"""Completion-backed answers for questions no local intent can handle.

The completion may propose one SQL statement. It is only executed when it is a
single plain SELECT, and then only against a private in-memory copy of the
asking user's own rows, switched to ``PRAGMA query_only`` and read with a row
cap. The shared connection is never handed to generated SQL. Nothing here
raises to the caller.
"""

import logging
import re
from datetime import date

import aiosqlite

from budgetwise.categories import Category
from budgetwise.chat.formatter import APOLOGY, humanize_categories
from budgetwise.config import settings
from budgetwise.currency import format_amount
from budgetwise.db.database import SCHEMA, transaction
from budgetwise.errors import UnsafeQueryError, UpstreamServiceError
from budgetwise.llm.client import ask_completion
from budgetwise.services import aggregates
from budgetwise.services.budget_service import get_budgets_for_month
from budgetwise.services.expense_service import get_expenses, get_recent_expenses

logger = logging.getLogger(__name__)

NOT_PERMITTED = "That query is not permitted. Only single read-only SELECT statements can be run."
NO_RESULTS = "No results found for your query."
QUERY_FAILED = "I couldn't look that up because the generated query failed to run."

SCHEMA_DESCRIPTION = (
    "SQLite tables:\n"
    "expenses(id INTEGER, user_id INTEGER, amount TEXT decimal string, category TEXT, "
    "expense_date DATE 'YYYY-MM-DD', description TEXT, notes TEXT, receipt_url TEXT, "
    "recurring_expense_id INTEGER, created_at TIMESTAMP)\n"
    "budgets(id INTEGER, user_id INTEGER, category TEXT, month INTEGER 1-12, year INTEGER, "
    "monthly_limit TEXT decimal string, current_spent TEXT decimal string)\n"
    "Use CAST(amount AS REAL) when summing. Category values: "
    + ", ".join(f"{c.value} ({c.display_name})" for c in Category)
)

SYSTEM_PROMPT = (
    "You are Budgetwise, a personal expense and budget assistant. Answer the user's question in 1-2 short "
    "sentences using the summary provided. If the summary is not enough, include exactly one SQLite SELECT "
    "statement ending with a semicolon that answers it, always filtered on the given user_id. Never write "
    "data. Refer to categories by their display names."
)

# Lowercase select only counts at the start of a line, so prose like "I'll select your
# groceries" is not taken for SQL. Uppercase verbs count anywhere so writes can be refused.
_STATEMENT_START = re.compile(
    r"^[ \t]*(?P<leading>(?i:select))\b"
    r"|\b(?P<verb>SELECT|INSERT|UPDATE|DELETE|DROP|ALTER|CREATE|REPLACE|TRUNCATE|ATTACH|DETACH|PRAGMA|VACUUM)\b",
    re.MULTILINE,
)
_FENCED_SQL = re.compile(r"```(?:sql)?[ \t]*\n([\s\S]*?)```", re.IGNORECASE)
_STARTS_WITH_SELECT = re.compile(r"^select\b", re.IGNORECASE)
_WRITE_KEYWORDS = re.compile(
    r"\b(?:insert|update|delete|drop|alter|create|truncate|attach|detach|pragma|vacuum|reindex)\b",
    re.IGNORECASE,
)
_CODE_FENCE = re.compile(r"```\w*")
_SCOPED_TABLES = ("budgets", "expenses", "user_settings")


async def build_context(user_id: int, question: str, currency: str, today: date) -> str:
    start = today.replace(day=1)
    month_expenses = await get_expenses(user_id, start_date=start, end_date=today)
    total = aggregates.total_between(month_expenses, start, today)
    by_category = aggregates.total_by_category(month_expenses, start, today)
    budgets = await get_budgets_for_month(user_id, today.month, today.year)
    recent = await get_recent_expenses(user_id, limit=5)

    breakdown = ", ".join(f"{c.display_name}: {format_amount(v, currency)}" for c, v in by_category.items())
    utilization = ", ".join(
        f"{b.category.display_name}: {format_amount(b.current_spent, currency)} of "
        f"{format_amount(b.monthly_limit, currency)} ({b.percentage}%)"
        for b in budgets
    )
    recent_lines = "\n".join(
        f"{e.expense_date} | {e.category.display_name} | {format_amount(e.amount, currency)} | {e.description}"
        for e in recent
    )

    return (
        f"{SCHEMA_DESCRIPTION}\n\n"
        f"user_id: {user_id}\n"
        f"Today: {today.isoformat()}\n"
        f"Spent this month: {format_amount(total, currency)}\n"
        f"By category: {breakdown or 'none'}\n"
        f"Budgets this month: {utilization or 'none'}\n"
        f"Last transactions:\n{recent_lines or 'none'}\n\n"
        f"User question: {question}"
    )


def _first_statement(text: str) -> str | None:
    match = _STATEMENT_START.search(text)
    if match is None:
        return None
    start = match.start(match.lastgroup)
    end = text.find(";", start)
    return text[start : end + 1] if end != -1 else None


def extract_statement(reply: str) -> str | None:
    """First statement in a fenced sql block, else the first one in the reply."""
    for block in _FENCED_SQL.findall(reply):
        statement = _first_statement(block)
        if statement:
            return statement
    return _first_statement(reply)


def check_statement(statement: str) -> str:
    body = statement.strip()
    if not _STARTS_WITH_SELECT.match(body):
        raise UnsafeQueryError(statement, "not a SELECT")
    if ";" in body.rstrip(";").rstrip():
        raise UnsafeQueryError(statement, "multiple statements")
    if "--" in body or "/*" in body:
        raise UnsafeQueryError(statement, "comment marker")
    if _WRITE_KEYWORDS.search(body):
        raise UnsafeQueryError(statement, "write keyword")
    return body


async def _scoped_copy(user_id: int) -> aiosqlite.Connection:
    """Open a read-only in-memory database holding nothing but this user's rows."""
    scoped = await aiosqlite.connect(":memory:")
    scoped.row_factory = aiosqlite.Row
    try:
        await scoped.executescript(SCHEMA)
        # Taken under the write lock so no other request's uncommitted rows are copied.
        async with transaction() as db:
            for table in _SCOPED_TABLES:
                cursor = await db.execute(f"SELECT * FROM {table} WHERE user_id = ?", (user_id,))
                rows = await cursor.fetchall()
                if not rows:
                    continue
                columns = rows[0].keys()
                await scoped.executemany(
                    f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({', '.join('?' * len(columns))})",
                    [tuple(row) for row in rows],
                )
        await scoped.commit()
        await scoped.execute("PRAGMA query_only = ON")
    except BaseException:
        await scoped.close()
        raise
    return scoped


async def run_statement(user_id: int, statement: str) -> list[dict]:
    scoped = await _scoped_copy(user_id)
    try:
        cursor = await scoped.execute(statement)
        rows = await cursor.fetchmany(settings.fallback_max_rows)
        return [dict(row) for row in rows]
    finally:
        await scoped.close()


def format_rows(rows: list[dict]) -> str:
    if not rows:
        return NO_RESULTS
    lines = ["; ".join(f"{key}: {value}" for key, value in row.items()) for row in rows]
    return "Results:\n" + "\n".join(lines)


async def answer_with_fallback(user_id: int, question: str, currency: str, today: date | None = None) -> str:
    today = today or date.today()
    try:
        context = await build_context(user_id, question, currency, today)
        reply = await ask_completion(
            context,
            system_prompt=SYSTEM_PROMPT,
            temperature=settings.fallback_temperature,
        )
    except UpstreamServiceError as exc:
        logger.warning("Completion unavailable: %s", exc, extra={"user_id": user_id})
        return APOLOGY
    except Exception:
        logger.exception("Failed to prepare fallback answer", extra={"user_id": user_id})
        return APOLOGY

    statement = extract_statement(reply)
    if statement is None:
        return humanize_categories(reply.strip()) or APOLOGY

    explanation = _CODE_FENCE.sub("", reply.replace(statement, "")).strip()
    try:
        safe = check_statement(statement)
    except UnsafeQueryError as exc:
        logger.warning("Rejected generated statement (%s)", exc.reason, extra={"user_id": user_id})
        return NOT_PERMITTED

    try:
        rows = await run_statement(user_id, safe)
    except aiosqlite.Error:
        logger.exception("Generated statement failed", extra={"user_id": user_id})
        return humanize_categories(f"{explanation}\n\n{QUERY_FAILED}".strip())

    logger.info("Fallback query returned %d rows", len(rows), extra={"user_id": user_id})
    return humanize_categories(f"{explanation}\n\n{format_rows(rows)}".strip())
