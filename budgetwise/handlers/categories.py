from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from budgetwise.categories import SYNONYMS, Category

router = Router()


@router.message(Command("categories"))
async def cmd_categories(message: Message):
    lines = []
    for category in Category:
        aliases = ", ".join(SYNONYMS[category][:4])
        lines.append(f"• {category.display_name}" + (f" ({aliases})" if aliases else ""))
    await message.answer("Categories:\n\n" + "\n".join(lines) + "\n\nUse any of these names with /setbudget and /add.")
