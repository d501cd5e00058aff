from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, InlineKeyboardButton, InlineKeyboardMarkup, Message

from spendwise.categories import Category, DateWindow, InvalidChoiceError, PaymentMode, parse_choice
from spendwise.db.models import FilterState
from spendwise.services.filter_service import (
    DEFAULT_FILTERS,
    describe_filters,
    set_date_window,
    toggle_category,
    toggle_payment_mode,
)
from spendwise.services.session_service import SessionRegistry

router = Router()

_CALLBACK_KINDS: dict[str, type] = {
    "cat": Category,
    "mode": PaymentMode,
    "window": DateWindow,
}


def _button(text: str, selected: bool, data: str) -> InlineKeyboardButton:
    return InlineKeyboardButton(text=f"✓ {text}" if selected else text, callback_data=data)


def filters_keyboard(filters: FilterState) -> InlineKeyboardMarkup:
    rows = [
        [_button(c.value, c in filters.categories, f"filter:cat:{c.value}") for c in list(Category)[:3]],
        [_button(c.value, c in filters.categories, f"filter:cat:{c.value}") for c in list(Category)[3:]],
        [_button(m.value, m in filters.payment_modes, f"filter:mode:{m.value}") for m in list(PaymentMode)[:2]],
        [_button(m.value, m in filters.payment_modes, f"filter:mode:{m.value}") for m in list(PaymentMode)[2:]],
        [_button(w.value, w == filters.date_window, f"filter:window:{w.value}") for w in list(DateWindow)[:2]],
        [_button(w.value, w == filters.date_window, f"filter:window:{w.value}") for w in list(DateWindow)[2:]],
        [InlineKeyboardButton(text="Clear filters", callback_data="filter:clear")],
    ]
    return InlineKeyboardMarkup(inline_keyboard=rows)


def apply_filter_toggle(filters: FilterState, data: str) -> FilterState:
    """Apply a ``filter:<kind>:<value>`` callback to the filter state."""
    parts = data.split(":", 2)
    if parts[1] == "clear":
        return DEFAULT_FILTERS
    if len(parts) != 3 or parts[1] not in _CALLBACK_KINDS:
        raise ValueError(f"Unknown filter action '{data}'")
    value = parse_choice(_CALLBACK_KINDS[parts[1]], parts[2])
    if parts[1] == "cat":
        return toggle_category(filters, value)
    if parts[1] == "mode":
        return toggle_payment_mode(filters, value)
    return set_date_window(filters, value)


@router.message(Command("filters"))
async def cmd_filters(message: Message, registry: SessionRegistry):
    state = await registry.get(message.chat.id)
    await message.answer(describe_filters(state.filters), reply_markup=filters_keyboard(state.filters))


@router.message(Command("period"))
async def cmd_period(message: Message, command: CommandObject, registry: SessionRegistry):
    if not command.args:
        await message.answer("Usage: /period <" + " | ".join(w.value.lower() for w in DateWindow) + ">")
        return
    try:
        window = parse_choice(DateWindow, command.args.strip())
    except InvalidChoiceError as exc:
        await message.answer(str(exc))
        return

    state = await registry.get(message.chat.id)
    state.filters = set_date_window(state.filters, window)
    await message.answer(f"Showing {window.value.lower()}. Use /list to see expenses.")


@router.message(Command("clear"))
async def cmd_clear(message: Message, registry: SessionRegistry):
    state = await registry.get(message.chat.id)
    state.filters = DEFAULT_FILTERS
    await message.answer("Filters cleared.\n\n" + describe_filters(state.filters))


@router.callback_query(lambda c: c.data and c.data.startswith("filter:"))
async def on_filter_toggle(callback: CallbackQuery, registry: SessionRegistry):
    state = await registry.get(callback.message.chat.id)
    try:
        updated = apply_filter_toggle(state.filters, callback.data)
    except ValueError:
        await callback.answer("Unknown filter.")
        return

    if updated == state.filters:
        await callback.answer()
        return

    state.filters = updated
    await callback.message.edit_text(describe_filters(updated), reply_markup=filters_keyboard(updated))
    await callback.answer()
