# transport/telegram/registration_handlers.py

import logging
from html import escape

from aiogram import Dispatcher
from aiogram.filters import Command, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, ReplyKeyboardRemove

from application.usecases.users import UserService
from domain.errors import DataUnavailable

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "<b>Доступные команды:</b>\n"
    "/start - зарегистрироваться и показать список команд.\n"
    "/balance - показать, кто кому должен.\n"
    "/expense - добавить затрату за всех в группе.\n"
    "/help - показать это справочное сообщение.\n"
)


def register_registration_handlers(dp: Dispatcher, svc: UserService) -> None:
    """
    Регистрация хэндлеров /start и /help.

    Параметры:
    - dp: Dispatcher aiogram.
    - svc: сервис работы с пользователями.
    """

    # /help
    @dp.message(Command("help"))
    async def cmd_help(message: Message):
        """
        Показать список доступных команд.
        """
        await message.answer(HELP_TEXT)

    # /start
    @dp.message(CommandStart())
    async def cmd_start(message: Message, state: FSMContext):
        """
        /start:
        - добавляет пользователя в лист users (если его там нет),
          чтобы в отчётах других участников было видно имя;
        - показывает список команд.
        """
        await state.clear()
        user_id = str(message.from_user.id)
        user_name = message.from_user.full_name

        try:
            svc.ensure_user_exists(user_id, user_name)
        except DataUnavailable:
            logger.exception("Cannot register user %s", user_id)
            await message.answer(
                "Не удалось сохранить данные пользователя. Попробуйте позже.",
                reply_markup=ReplyKeyboardRemove(),
            )
            return

        await message.answer(
            f"Привет, {escape(user_name)}!\n\n{HELP_TEXT}",
            reply_markup=ReplyKeyboardRemove(),
        )
