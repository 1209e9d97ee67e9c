import asyncio
import logging

from aiogram import Bot, Dispatcher, Router, types, F
from aiogram.filters import Command, CommandObject
from aiogram.filters.callback_data import CallbackData
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import BotCommand, InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application
from aiohttp import web

from bot_config import get_settings
from db import create_session_factory, init_db
from errors import DuplicateError, FinanceError, ValidationError
from finance_service import FinanceService, build_service
from reports import domain_for
from windows import WindowKind


settings = get_settings()

logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

router = Router()

REPORT_COMMANDS: dict[str, tuple[WindowKind, bool]] = {
    "day_expenses": (WindowKind.DAY, False),
    "week_expenses": (WindowKind.WEEK, False),
    "month_expenses": (WindowKind.MONTH, False),
    "day_income": (WindowKind.DAY, True),
    "week_income": (WindowKind.WEEK, True),
    "month_income": (WindowKind.MONTH, True),
}


# команды не считаются вводом суммы, даже когда бот ждёт её
NOT_COMMAND = ~F.text.startswith("/")


class AddOperation(StatesGroup):
    waiting_payload = State()


class CategoryCallback(CallbackData, prefix="cat"):
    operation: str
    index: int


def category_keyboard(operation_type: bool) -> InlineKeyboardMarkup:
    domain = domain_for(operation_type)
    rows = [
        [
            InlineKeyboardButton(
                text=f"{domain.emoji[name]} {name}",
                callback_data=CategoryCallback(operation=domain.name, index=i).pack(),
            )
        ]
        for i, name in enumerate(domain.categories)
    ]
    return InlineKeyboardMarkup(inline_keyboard=rows)


@router.message(Command("start"))
async def cmd_start(message: types.Message, state: FSMContext) -> None:
    await state.clear()
    text = (
        "Привет! Это бот для учёта доходов и расходов.\n\n"
        "Основные команды:\n"
        "• /expense — добавить расход\n"
        "• /income — добавить доход\n"
        "• /day_expenses, /week_expenses, /month_expenses — отчёты по расходам\n"
        "• /day_income, /week_income, /month_income — отчёты по доходам\n\n"
        "После выбора категории отправьте сообщение вида: <code>сумма, комментарий</code>\n"
        "Пример: <code>250, обед</code>"
    )
    await message.answer(text, parse_mode="HTML")


@router.message(Command("expense", "income"))
async def cmd_add(message: types.Message, command: CommandObject, state: FSMContext) -> None:
    await state.clear()
    operation_type = command.command == "income"
    await message.answer("Выберите категорию:", reply_markup=category_keyboard(operation_type))


@router.callback_query(CategoryCallback.filter())
async def choose_category(
    query: types.CallbackQuery, callback_data: CategoryCallback, state: FSMContext
) -> None:
    operation_type = callback_data.operation == "income"
    categories = domain_for(operation_type).categories
    if not 0 <= callback_data.index < len(categories):
        await query.answer("Неизвестная категория", show_alert=True)
        return

    category = categories[callback_data.index]
    await state.set_state(AddOperation.waiting_payload)
    await state.update_data(operation_type=operation_type, category=category)
    await query.answer()
    if query.message:
        await query.message.answer(
            f"Категория: {category}\nВведите сумму и комментарий через запятую, например: 250, обед"
        )


@router.message(Command(*REPORT_COMMANDS))
async def cmd_report(message: types.Message, command: CommandObject, service: FinanceService) -> None:
    kind, operation_type = REPORT_COMMANDS[command.command]
    user_id = message.chat.id
    try:
        text = await service.report(user_id=user_id, kind=kind, operation_type=operation_type)
    except FinanceError:
        logger.exception("Failed to build %s report for user %s", command.command, user_id)
        await message.answer("Не удалось получить отчёт, попробуйте позже.")
        return
    await message.answer(text)


@router.message(AddOperation.waiting_payload, F.text, NOT_COMMAND)
async def receive_payload(message: types.Message, state: FSMContext, service: FinanceService) -> None:
    data = await state.get_data()
    user_id = message.chat.id
    try:
        await service.add_transaction(
            user_id=user_id,
            operation_type=data["operation_type"],
            category=data["category"],
            payload=message.text,
        )
    except ValidationError:
        await message.answer("Неверный формат. Используйте: сумма, комментарий (пример: 250, обед)")
        return
    except DuplicateError:
        await message.answer("Такая операция уже записана.")
        await state.clear()
        return
    except FinanceError:
        logger.exception("Failed to record transaction for user %s", user_id)
        await message.answer("Не удалось сохранить операцию, попробуйте позже.")
        await state.clear()
        return

    await state.clear()
    await message.answer("Операция успешно добавлена ✅")


async def set_bot_commands(bot: Bot) -> None:
    commands = [
        BotCommand(command="start", description="Старт и помощь"),
        BotCommand(command="expense", description="Добавить расход"),
        BotCommand(command="income", description="Добавить доход"),
        BotCommand(command="day_expenses", description="Расходы за день"),
        BotCommand(command="week_expenses", description="Расходы за неделю"),
        BotCommand(command="month_expenses", description="Расходы за месяц"),
        BotCommand(command="day_income", description="Доходы за день"),
        BotCommand(command="week_income", description="Доходы за неделю"),
        BotCommand(command="month_income", description="Доходы за месяц"),
    ]
    await bot.set_my_commands(commands)


async def prepare() -> tuple[Bot, Dispatcher]:
    if not settings.bot_token:
        raise RuntimeError("BOT_TOKEN is not set")

    engine, session_factory = create_session_factory(settings.db_url)
    await init_db(engine)

    bot = Bot(token=settings.bot_token)
    dp = Dispatcher(service=build_service(session_factory, settings))
    dp.include_router(router)

    await set_bot_commands(bot)
    return bot, dp


async def run_polling() -> None:
    bot, dp = await prepare()
    logger.info("Starting bot in polling mode (local development)...")
    await dp.start_polling(bot)


async def run_webhook() -> None:
    if not settings.webhook_domain:
        raise RuntimeError("WEBHOOK_DOMAIN is not configured")

    bot, dp = await prepare()

    app = web.Application()
    webhook_path = f"/webhook/{settings.bot_token}"
    SimpleRequestHandler(dispatcher=dp, bot=bot, secret_token=settings.webhook_secret).register(
        app, path=webhook_path
    )
    setup_application(app, dp, bot=bot)

    webhook_url = settings.webhook_domain.rstrip("/") + webhook_path
    await bot.set_webhook(url=webhook_url, secret_token=settings.webhook_secret)
    logger.info("Webhook set to %s", webhook_url)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", settings.port)
    logger.info("Listening on port %s", settings.port)
    await site.start()

    while True:
        await asyncio.sleep(3600)


async def main() -> None:
    if settings.webhook_domain:
        await run_webhook()
    else:
        await run_polling()


if __name__ == "__main__":
    asyncio.run(main())
