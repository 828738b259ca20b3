import logging

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from budgetwise.chat.engine import answer_question
from budgetwise.config import settings
from budgetwise.currency import CURRENCY_SYMBOLS, get_user_currency, is_known_currency, set_user_currency

logger = logging.getLogger(__name__)
router = Router()


@router.message(Command("start"))
async def cmd_start(message: Message):
    await message.answer(
        "Welcome to Budgetwise, your personal budget tracker!\n\n"
        "1. Set a monthly budget per category:\n"
        "  /setbudget groceries 400\n"
        "2. Record expenses against it:\n"
        "  /add 85.50 groceries weekly shop\n"
        "3. Ask anything in plain words:\n"
        '  "How much did I spend on transport last month?"\n'
        '  "Am I over budget?"\n'
        '  "What is my largest spending category?"\n\n'
        "Type /help for all commands."
    )


@router.message(Command("help"))
async def cmd_help(message: Message):
    await message.answer(
        "Budgets:\n"
        "  /setbudget <category> <limit> [YYYY-MM]\n"
        "  /budget [YYYY-MM] — budget status\n"
        "  /editbudget <id> <category> <limit> [YYYY-MM]\n"
        "  /removebudget <id>\n\n"
        "Expenses:\n"
        "  /add <amount> <category> [YYYY-MM-DD] [description]\n"
        "  /edit <id> key=value — amount, category, date, description, notes\n"
        "  /delete <id>\n"
        "  /expenses [n] — recent expenses\n\n"
        "Reports:\n"
        "  /summary — this month by category + chart\n"
        "  /daily — last 30 days chart\n\n"
        "Setup:\n"
        "  /categories — available categories\n"
        "  /setcurrency <code> — display currency\n"
        "  /settings — view current config\n\n"
        'Or just ask: "how much on groceries this month?"'
    )


@router.message(Command("setcurrency"))
async def cmd_setcurrency(message: Message, command: CommandObject) -> None:
    user_id = message.from_user.id
    if not command.args or not command.args.strip():
        current = await get_user_currency(user_id)
        await message.answer(
            f"Current currency: {current}\n\n"
            f"Usage: /setcurrency USD\n"
            f"Supported: {', '.join(sorted(CURRENCY_SYMBOLS))}"
        )
        return

    code = command.args.strip().upper()
    if not is_known_currency(code):
        await message.answer(f"Unknown currency '{code}'. Use /setcurrency to see supported currencies.")
        return

    await set_user_currency(user_id, code)
    await message.answer(f"Currency set to {code}. Amounts will now display in {code}.")


@router.message(Command("settings"))
async def cmd_settings(message: Message) -> None:
    currency = await get_user_currency(message.from_user.id)
    model = settings.completion_model if settings.completion_backend == "anthropic" else settings.completion_api_url
    await message.answer(
        f"⚙️ Settings\n\n"
        f"Currency: {currency}\n"
        f"Completion backend: {settings.completion_backend}\n"
        f"Model: {model}\n"
        f"\nUse /setcurrency to change currency."
    )


@router.message(F.text & ~F.text.startswith("/"))
async def handle_question(message: Message):
    user_id = message.from_user.id
    currency = await get_user_currency(user_id)
    answer = await answer_question(user_id, message.text, currency)
    await message.answer(answer)
