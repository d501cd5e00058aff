import logging
import re
from datetime import UTC, datetime

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, InlineKeyboardButton, InlineKeyboardMarkup, Message

from spendwise.categories import InvalidChoiceError, PaymentMode, parse_category, parse_payment_mode
from spendwise.config import settings
from spendwise.currency import format_amount
from spendwise.db.models import DraftValidationError, Expense, ExpenseDraft
from spendwise.services.api_client import ApiError
from spendwise.services.filter_service import describe_filters, filter_expenses, sort_for_display
from spendwise.services.session_service import SessionRegistry

logger = logging.getLogger(__name__)
router = Router()

ADD_USAGE = "Usage: /add <amount> <category> [payment mode] [YYYY-MM-DD] [notes]\nExample: /add 450 groceries upi"

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_add_args(text: str | None) -> ExpenseDraft:
    parts = text.split() if text else []
    if len(parts) < 2:
        raise ValueError(ADD_USAGE)

    try:
        amount = float(parts[0])
    except ValueError:
        raise DraftValidationError("Amount must be a positive number") from None
    category = parse_category(parts[1])
    rest = parts[2:]

    payment_mode = PaymentMode.CASH
    if rest:
        try:
            payment_mode = parse_payment_mode(rest[0])
            rest = rest[1:]
        except InvalidChoiceError:
            pass

    date = datetime.now(UTC)
    if rest and _DATE_RE.match(rest[0]):
        try:
            date = datetime.strptime(rest[0], "%Y-%m-%d").replace(tzinfo=UTC)
        except ValueError:
            raise DraftValidationError(f"Invalid date '{rest[0]}'") from None
        rest = rest[1:]

    return ExpenseDraft(
        amount=amount,
        category=category,
        payment_mode=payment_mode,
        date=date,
        notes=" ".join(rest),
    )


def describe_expense(expense: Expense) -> str:
    line = f"{expense.date:%d %b %Y} - {expense.category} - {format_amount(expense.amount)} ({expense.payment_mode})"
    if expense.notes:
        line += f" - {expense.notes}"
    return line


def delete_keyboard(expenses: list[Expense]) -> InlineKeyboardMarkup:
    rows = [
        [
            InlineKeyboardButton(
                text=f"🗑 {e.date:%d %b} {format_amount(e.amount)} {e.category}",
                callback_data=f"expense:delete:{e.id}",
            )
        ]
        for e in expenses
    ]
    return InlineKeyboardMarkup(inline_keyboard=rows)


def confirm_delete_keyboard(expense_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="Delete", callback_data=f"expense:confirm_delete:{expense_id}"),
                InlineKeyboardButton(text="Cancel", callback_data="expense:cancel"),
            ]
        ]
    )


@router.message(Command("add"))
async def cmd_add(message: Message, command: CommandObject, registry: SessionRegistry):
    try:
        draft = parse_add_args(command.args)
    except ValueError as exc:
        await message.answer(str(exc))
        return

    state = await registry.get(message.chat.id)
    try:
        expense = await state.store.create(draft)
    except ApiError:
        return

    await message.answer(f"Expense Added\n{format_amount(expense.amount)} added to {expense.category}")


@router.message(Command("list"))
async def cmd_list(message: Message, registry: SessionRegistry):
    state = await registry.get(message.chat.id)
    try:
        await state.store.ensure_loaded()
    except ApiError:
        return

    matching = sort_for_display(filter_expenses(state.store.expenses, state.filters))
    if not matching:
        await message.answer(
            f"No expenses found with the current filters.\n\n{describe_filters(state.filters)}\n\n/clear to reset filters."
        )
        return

    shown = matching[: settings.list_limit]
    lines = [f"Showing {len(matching)} expenses", describe_filters(state.filters), ""]
    lines += [f"• {describe_expense(e)}" for e in shown]
    if len(matching) > len(shown):
        lines.append(f"\n... and {len(matching) - len(shown)} more")
    lines.append(f"\nTotal: {format_amount(sum(e.amount for e in matching))}")

    await message.answer("\n".join(lines), reply_markup=delete_keyboard(shown))


@router.callback_query(lambda c: c.data and c.data.startswith("expense:delete:"))
async def on_delete(callback: CallbackQuery, registry: SessionRegistry):
    expense_id = callback.data.split(":", 2)[2]
    state = await registry.get(callback.message.chat.id)
    expense = state.store.get(expense_id)

    if not expense:
        await callback.answer("This expense is no longer in your list.")
        return

    await callback.message.answer(
        f"Delete this expense?\n{describe_expense(expense)}\n\nThis will permanently delete this expense record.",
        reply_markup=confirm_delete_keyboard(expense_id),
    )
    await callback.answer()


@router.callback_query(lambda c: c.data and c.data.startswith("expense:confirm_delete:"))
async def on_confirm_delete(callback: CallbackQuery, registry: SessionRegistry):
    expense_id = callback.data.split(":", 2)[2]
    state = await registry.get(callback.message.chat.id)

    try:
        await state.store.remove(expense_id)
    except ApiError:
        await callback.message.edit_reply_markup(reply_markup=None)
        await callback.answer()
        return

    await callback.message.edit_text("Expense deleted.")
    await callback.answer("Deleted.")


@router.callback_query(lambda c: c.data == "expense:cancel")
async def on_cancel(callback: CallbackQuery):
    await callback.message.edit_text("Expense kept.")
    await callback.answer()
