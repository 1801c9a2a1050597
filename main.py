# main.py

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.types import BotCommand
from aiogram.enums import ParseMode
from aiogram.client.default import DefaultBotProperties
from aiogram.fsm.storage.memory import MemoryStorage

from config.settings import TELEGRAM_BOT_TOKEN, LOG_LEVEL
from infrastructure.google_sheets.expense_repository import ExpenseSheetRepository
from infrastructure.google_sheets.group_repository import GroupSheetRepository
from infrastructure.google_sheets.user_repository import UserSheetRepository

from application.usecases.balances import BalanceService
from application.usecases.expenses import ExpenseService
from application.usecases.reports import ReportService
from application.usecases.users import UserService
from transport.telegram.balance_handlers import register_balance_handlers
from transport.telegram.expense_handlers import register_expense_handlers
from transport.telegram.registration_handlers import register_registration_handlers

logger = logging.getLogger(__name__)


async def main():
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not TELEGRAM_BOT_TOKEN:
        logger.error("TELEGRAM_BOT_TOKEN is empty, set the environment variable")
        return

    # 1. Создаём Bot и Dispatcher
    bot = Bot(
        token=TELEGRAM_BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    # Команды, которые видны по кнопке справа от поля ввода
    await bot.set_my_commands(
        commands=[
            BotCommand(command="start", description="Начать работу"),
            BotCommand(command="balance", description="Кто кому должен"),
            BotCommand(command="expense", description="Добавить затрату за всех в группе"),
            BotCommand(command="help", description="Список команд"),
        ]
    )

    dp = Dispatcher(storage=MemoryStorage())

    # 2. Репозитории и сервисы
    expense_repo = ExpenseSheetRepository()
    group_repo = GroupSheetRepository()
    user_repo = UserSheetRepository()

    users_service = UserService(user_repo=user_repo, group_repo=group_repo)
    expense_service = ExpenseService(expense_repo=expense_repo, group_repo=group_repo)
    balance_service = BalanceService(expense_svc=expense_service, group_repo=group_repo)
    report_service = ReportService(users_svc=users_service)

    # 3. Регистрируем хэндлеры, передавая внутрь сервисы
    register_registration_handlers(dp, users_service)
    register_balance_handlers(dp, balance_service, report_service)
    register_expense_handlers(dp, users_service, expense_service)

    # 4. Запускаем бота в режиме long polling
    logger.info("Bot started")
    await dp.start_polling(bot)


if __name__ == "__main__":
    asyncio.run(main())
