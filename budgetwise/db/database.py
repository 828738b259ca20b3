import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

import aiosqlite

from budgetwise.config import settings

SCHEMA = """
CREATE TABLE IF NOT EXISTS budgets (
    id INTEGER PRIMARY KEY,
    user_id INTEGER NOT NULL,
    category TEXT NOT NULL,
    month INTEGER NOT NULL CHECK(month >= 1 AND month <= 12),
    year INTEGER NOT NULL,
    monthly_limit TEXT NOT NULL CHECK(CAST(monthly_limit AS REAL) > 0),
    current_spent TEXT NOT NULL DEFAULT '0',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE(user_id, category, month, year)
);

CREATE TABLE IF NOT EXISTS expenses (
    id INTEGER PRIMARY KEY,
    user_id INTEGER NOT NULL,
    amount TEXT NOT NULL CHECK(CAST(amount AS REAL) > 0),
    category TEXT NOT NULL,
    expense_date DATE NOT NULL,
    description TEXT NOT NULL,
    notes TEXT,
    receipt_url TEXT,
    recurring_expense_id INTEGER,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS user_settings (
    user_id INTEGER PRIMARY KEY,
    currency TEXT NOT NULL DEFAULT 'ZAR'
);

CREATE INDEX IF NOT EXISTS idx_expenses_user_date ON expenses(user_id, expense_date);
CREATE INDEX IF NOT EXISTS idx_expenses_user_category_date ON expenses(user_id, category, expense_date);
CREATE INDEX IF NOT EXISTS idx_budgets_user_period ON budgets(user_id, year, month);
"""

_db: aiosqlite.Connection | None = None
# Held by transaction(); a rollback on the shared connection must not take other writers with it.
_write_lock = asyncio.Lock()


async def get_db() -> aiosqlite.Connection:
    global _db
    if _db is None:
        _db = await aiosqlite.connect(settings.db_path)
        _db.row_factory = aiosqlite.Row
        await _db.execute("PRAGMA journal_mode=WAL")
        await _db.execute("PRAGMA foreign_keys=ON")
    return _db


async def close_db():
    global _db
    if _db is not None:
        await _db.close()
        _db = None


async def init_db():
    db = await get_db()
    await db.executescript(SCHEMA)
    await db.commit()


@asynccontextmanager
async def transaction() -> AsyncIterator[aiosqlite.Connection]:
    """Commit everything written inside the block, or roll all of it back.

    Blocks are serialized and must not be nested.
    """
    async with _write_lock:
        db = await get_db()
        try:
            yield db
        except BaseException:
            await db.rollback()
            raise
        await db.commit()
