import logging
from contextlib import suppress

from aiogram import Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from spendwise.services.api_client import ApiError
from spendwise.services.session_service import SessionRegistry

logger = logging.getLogger(__name__)
router = Router()


async def _forget_credentials(message: Message) -> None:
    # The command text carries a password.
    with suppress(TelegramBadRequest):
        await message.delete()


async def _load_after_login(message: Message, registry: SessionRegistry, greeting: str) -> None:
    state = await registry.get(message.chat.id)
    await message.answer(greeting)
    try:
        await state.store.load()
    except ApiError:
        return
    await message.answer(f"Loaded {len(state.store.expenses)} expenses. Try /list or /chart.")


@router.message(Command("login"))
async def cmd_login(message: Message, command: CommandObject, registry: SessionRegistry):
    parts = command.args.split() if command.args else []
    if len(parts) != 2:
        await message.answer("Usage: /login <email> <password>")
        return
    await _forget_credentials(message)

    email, password = parts
    try:
        state = await registry.login(message.chat.id, email, password)
    except ApiError as exc:
        logger.info("Login failed: %s", exc, extra={"chat_id": message.chat.id})
        await message.answer(f"Login failed: {exc}")
        return

    await _load_after_login(message, registry, f"Welcome back, {state.name or email}!")


@router.message(Command("register"))
async def cmd_register(message: Message, command: CommandObject, registry: SessionRegistry):
    parts = command.args.split() if command.args else []
    if len(parts) < 3:
        await message.answer("Usage: /register <name> <email> <password>")
        return
    await _forget_credentials(message)

    *name_parts, email, password = parts
    name = " ".join(name_parts)
    try:
        await registry.register(message.chat.id, name, email, password)
    except ApiError as exc:
        logger.info("Registration failed: %s", exc, extra={"chat_id": message.chat.id})
        await message.answer(f"Registration failed: {exc}")
        return

    await _load_after_login(message, registry, f"Account created. Welcome, {name}!")


@router.message(Command("logout"))
async def cmd_logout(message: Message, registry: SessionRegistry):
    if await registry.logout(message.chat.id):
        await message.answer("Logged out.")
    else:
        await message.answer("You are not logged in.")
