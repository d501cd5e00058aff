from pathlib import Path

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import FSInputFile, Message

from spendwise.charts import monthly_category_chart
from spendwise.currency import format_amount
from spendwise.services.api_client import ApiError
from spendwise.services.session_service import SessionRegistry
from spendwise.services.summary_service import monthly_buckets, spending_by_category, this_month_total

router = Router()


@router.message(Command("chart"))
async def cmd_chart(message: Message, registry: SessionRegistry):
    state = await registry.get(message.chat.id)
    try:
        await state.store.ensure_loaded()
    except ApiError:
        return

    expenses = state.store.expenses
    if not expenses:
        await message.answer("Add expenses to see your spending patterns.")
        return

    buckets = monthly_buckets(expenses)
    lines = [f"This month's total: {format_amount(this_month_total(buckets))}"]
    by_category = spending_by_category(expenses)
    if by_category:
        lines.append("\nAll time:")
        lines += [f"• {row['category']}: {format_amount(row['total'])} ({row['count']} items)" for row in by_category]
    text = "\n".join(lines)

    chart_path = await monthly_category_chart(buckets)
    if chart_path:
        try:
            await message.answer_photo(FSInputFile(chart_path), caption=text)
        finally:
            Path(chart_path).unlink(missing_ok=True)
    else:
        await message.answer(text)
