import asyncio
import json
import logging
from functools import partial

from aiogram import Bot, Dispatcher
from aiogram.types import CallbackQuery, Message

from spendwise.config import settings
from spendwise.db.database import close_db, get_db, init_db
from spendwise.handlers import auth, common, expenses, filters, summary
from spendwise.logging import setup_logging
from spendwise.services.api_client import ExpenseApi
from spendwise.services.session_service import SessionRegistry

setup_logging(level=logging.DEBUG if settings.debug else logging.INFO)
logger = logging.getLogger(__name__)


async def auth_middleware(handler, event: Message, data: dict):
    if settings.allowed_chat_ids and event.chat.id not in settings.allowed_chat_ids:
        logger.warning("Unauthorized access", extra={"chat_id": event.chat.id})
        return
    return await handler(event, data)


async def error_boundary_middleware(handler, event, data: dict):
    try:
        return await handler(event, data)
    except Exception:
        chat_id = event.chat.id if hasattr(event, "chat") and event.chat else None
        logger.error("Handler error", exc_info=True, extra={"chat_id": chat_id})
        try:
            if isinstance(event, Message):
                await event.answer("Something went wrong. Please try again.")
            elif isinstance(event, CallbackQuery):
                await event.answer("Something went wrong.", show_alert=True)
        except Exception:
            logger.error("Failed to send error message", exc_info=True, extra={"chat_id": chat_id})


async def _health_check(reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
    await reader.read(4096)
    checks: dict[str, str] = {}
    try:
        db = await get_db()
        await db.execute("SELECT 1")
        checks["db"] = "ok"
    except Exception as e:
        checks["db"] = f"error: {e}"
    checks["api"] = "configured" if settings.api_base_url else "not configured"
    healthy = checks["db"] == "ok"
    body = json.dumps({"status": "healthy" if healthy else "unhealthy", "checks": checks})
    status = "200 OK" if healthy else "503 Service Unavailable"
    response = f"HTTP/1.1 {status}\r\nContent-Type: application/json\r\nContent-Length: {len(body)}\r\n\r\n{body}"
    writer.write(response.encode())
    await writer.drain()
    writer.close()
    await writer.wait_closed()


def build_dispatcher(bot: Bot) -> Dispatcher:
    dp = Dispatcher()
    dp["registry"] = SessionRegistry(ExpenseApi(), lambda chat_id: partial(bot.send_message, chat_id))

    dp.message.outer_middleware(error_boundary_middleware)
    dp.callback_query.outer_middleware(error_boundary_middleware)
    dp.message.middleware(auth_middleware)

    dp.include_router(auth.router)
    dp.include_router(expenses.router)
    dp.include_router(filters.router)
    dp.include_router(summary.router)
    dp.include_router(common.router)
    return dp


async def main():
    await init_db()

    bot = Bot(token=settings.telegram_bot_token)
    dp = build_dispatcher(bot)

    health_server = await asyncio.start_server(_health_check, "0.0.0.0", settings.health_check_port)
    logger.info("Health check listening on :%d", settings.health_check_port)

    logger.info("Starting Spendwise bot")
    try:
        await dp.start_polling(bot)
    finally:
        logger.info("Shutting down gracefully...")
        health_server.close()
        await health_server.wait_closed()
        await close_db()
        logger.info("Shutdown complete")


if __name__ == "__main__":
    asyncio.run(main())
