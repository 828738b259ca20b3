import asyncio
import json
import logging

from aiogram import Bot, Dispatcher
from aiogram.types import Message

from budgetwise.config import settings
from budgetwise.db.database import close_db, get_db, init_db
from budgetwise.handlers import budget, categories, common, expenses, summary
from budgetwise.llm.client import backend_name
from budgetwise.logging import setup_logging

setup_logging(level=logging.DEBUG if settings.debug else logging.INFO)
logger = logging.getLogger(__name__)


async def auth_middleware(handler, event: Message, data: dict):
    user_id = event.from_user.id if event.from_user else None
    if user_id is None:
        return
    if settings.allowed_user_ids and user_id not in settings.allowed_user_ids:
        logger.warning("Unauthorized access", extra={"user_id": user_id})
        return
    return await handler(event, data)


async def error_boundary_middleware(handler, event, data: dict):
    try:
        return await handler(event, data)
    except Exception:
        user_id = event.from_user.id if getattr(event, "from_user", None) else None
        logger.error("Handler error", exc_info=True, extra={"user_id": user_id})
        try:
            if isinstance(event, Message):
                await event.answer("Something went wrong. Please try again.")
        except Exception:
            logger.error("Failed to send error message", exc_info=True, extra={"user_id": user_id})


async def _health_check(reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
    await reader.read(4096)
    checks: dict[str, str] = {}
    try:
        db = await get_db()
        await db.execute("SELECT 1")
        checks["db"] = "ok"
    except Exception as e:
        checks["db"] = f"error: {e}"
    checks["completion_backend"] = backend_name()
    if settings.completion_backend == "http":
        checks["completion"] = "configured" if settings.completion_api_url else "not configured"
    else:
        checks["completion"] = "configured" if settings.anthropic_api_key else "not configured"
    healthy = checks["db"] == "ok"
    body = json.dumps({"status": "healthy" if healthy else "unhealthy", "checks": checks})
    status = "200 OK" if healthy else "503 Service Unavailable"
    response = f"HTTP/1.1 {status}\r\nContent-Type: application/json\r\nContent-Length: {len(body)}\r\n\r\n{body}"
    writer.write(response.encode())
    await writer.drain()
    writer.close()
    await writer.wait_closed()


async def main():
    await init_db()

    bot = Bot(token=settings.telegram_bot_token)
    dp = Dispatcher()

    dp.message.outer_middleware(error_boundary_middleware)
    dp.message.middleware(auth_middleware)

    dp.include_router(budget.router)
    dp.include_router(expenses.router)
    dp.include_router(summary.router)
    dp.include_router(categories.router)
    # Last: its free-text handler answers anything the command routers leave.
    dp.include_router(common.router)

    health_server = await asyncio.start_server(_health_check, "0.0.0.0", settings.health_check_port)
    logger.info("Health check listening on :%d", settings.health_check_port)

    logger.info("Starting Budgetwise bot (completion backend: %s)", backend_name())
    try:
        await dp.start_polling(bot)
    finally:
        logger.info("Shutting down gracefully...")
        health_server.close()
        await health_server.wait_closed()
        await close_db()
        logger.info("Shutdown complete")


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
