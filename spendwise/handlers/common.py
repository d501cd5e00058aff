from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import Message

router = Router()


@router.message(Command("start"))
async def cmd_start(message: Message):
    await message.answer(
        "Welcome to Spendwise, your personal expense tracker!\n\n"
        "Create an account with /register or sign in with /login.\n"
        "Then log expenses like:\n"
        "  /add 450 groceries upi 2024-03-10 weekly vegetables\n\n"
        "Type /help for all commands."
    )


@router.message(Command("help"))
async def cmd_help(message: Message):
    await message.answer(
        "Account:\n"
        "  /register <name> <email> <password>\n"
        "  /login <email> <password>\n"
        "  /logout\n\n"
        "Expenses:\n"
        "  /add <amount> <category> [payment mode] [YYYY-MM-DD] [notes]\n"
        "  /list - expenses matching your filters\n\n"
        "Filters:\n"
        "  /filters - toggle categories and payment modes\n"
        "  /period <this month | last 30 days | last 90 days | all time>\n"
        "  /clear - reset filters\n\n"
        "Analytics:\n"
        "  /chart - monthly spending by category\n\n"
        "Categories: Rental, Groceries, Entertainment, Travel, Others\n"
        "Payment modes: UPI, Credit-Card, Net-Banking, Cash"
    )


@router.message(F.text & ~F.text.startswith("/"))
async def handle_text(message: Message):
    await message.answer("I only understand commands. Type /help to see them.")
