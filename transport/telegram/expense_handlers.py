# transport/telegram/expense_handlers.py

import logging
from html import escape

from aiogram import Dispatcher, F
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import StatesGroup, State
from aiogram.types import (
    Message,
    CallbackQuery,
    InlineKeyboardMarkup,
    InlineKeyboardButton,
)

from application.usecases.expenses import ExpenseService
from application.usecases.users import UserService
from common.money import to_decimal
from config.settings import DEFAULT_EXPENSE_CURRENCY
from domain.errors import DataUnavailable, GroupNotFound, MalformedExpense
from domain.models.groups import Group

logger = logging.getLogger(__name__)


# ----- СОСТОЯНИЯ FSM (диалога) -----


class ExpenseStates(StatesGroup):
    """
    Шаги диалога добавления затраты «за всех в группе».
    """

    # Пользователь выбирает группу
    EXPENSE_GROUP = State()

    # Пользователь вводит текст описания (комментарий)
    EXPENSE_COMMENT = State()

    # Пользователь вводит сумму
    EXPENSE_AMOUNT = State()


def _group_keyboard(groups: list[Group]) -> InlineKeyboardMarkup:
    """
    Inline-клавиатура со списком групп пользователя.

    callback_data имеет вид 'grp:<group_id>'.
    """
    keyboard_rows = []
    for group in groups:
        title = group.name or group.id
        if group.icon:
            title = f"{group.icon} {title}"
        keyboard_rows.append(
            [InlineKeyboardButton(text=title, callback_data=f"grp:{group.id}")]
        )
    return InlineKeyboardMarkup(inline_keyboard=keyboard_rows)


def register_expense_handlers(
    dp: Dispatcher,
    users_svc: UserService,
    expense_svc: ExpenseService,
) -> None:
    """
    Регистрация хэндлеров учёта затрат.

    Параметры:
    - dp: Dispatcher aiogram.
    - users_svc: сервис пользователей (знает группы пользователя).
    - expense_svc: сервис, который создаёт затраты.
    """

    # ---------- ШАГ 1. Команда /expense ----------

    @dp.message(Command("expense"))
    async def cmd_expense(message: Message, state: FSMContext):
        user_id = str(message.from_user.id)

        try:
            groups = users_svc.list_user_groups(user_id)
        except DataUnavailable:
            logger.exception("Cannot load groups of user %s", user_id)
            await message.answer("Не удалось загрузить группы. Попробуйте позже.")
            return

        if not groups:
            await state.clear()
            await message.answer("Вы пока не состоите ни в одной группе.")
            return

        await state.set_state(ExpenseStates.EXPENSE_GROUP)
        await message.answer(
            "Выберите группу, за которую учитываете затрату:",
            reply_markup=_group_keyboard(groups),
        )

    # ---------- ШАГ 2. Выбор группы ----------

    @dp.callback_query(ExpenseStates.EXPENSE_GROUP, F.data.startswith("grp:"))
    async def process_group_callback(callback: CallbackQuery, state: FSMContext):
        _, group_id = callback.data.split(":", 1)
        await state.update_data(group_id=group_id)
        await state.set_state(ExpenseStates.EXPENSE_COMMENT)
        await callback.message.answer("Введите описание затраты:")
        await callback.answer()

    @dp.message(ExpenseStates.EXPENSE_GROUP)
    async def process_group_invalid(message: Message):
        await message.answer(
            "Пожалуйста, выберите группу на кнопках под сообщением.",
        )

    # ---------- ШАГ 3. Описание ----------

    @dp.message(ExpenseStates.EXPENSE_COMMENT, F.text)
    async def process_comment(message: Message, state: FSMContext):
        user_id = str(message.from_user.id)
        try:
            currency = users_svc.expense_currency(user_id)
        except DataUnavailable:
            logger.exception("Cannot load currency of user %s", user_id)
            await state.clear()
            await message.answer("Не удалось загрузить данные пользователя. Попробуйте позже.")
            return

        await state.update_data(comment=message.text.strip(), currency=currency)
        await state.set_state(ExpenseStates.EXPENSE_AMOUNT)
        await message.answer(f"Введите сумму в {currency} (например 1500 или 99.90):")

    # ---------- ШАГ 4. Сумма и сохранение ----------

    @dp.message(ExpenseStates.EXPENSE_AMOUNT, F.text)
    async def process_amount(message: Message, state: FSMContext):
        amount = to_decimal(message.text)
        if amount <= 0:
            await message.answer("Сумма должна быть положительным числом. Попробуйте ещё раз:")
            return

        data = await state.get_data()
        user_id = str(message.from_user.id)

        try:
            expense = expense_svc.create_expense_for_group(
                user_id=user_id,
                group_id=data["group_id"],
                amount=amount,
                currency=data.get("currency", DEFAULT_EXPENSE_CURRENCY),
                description=data.get("comment", ""),
            )
        except GroupNotFound:
            await state.clear()
            await message.answer("Группа не найдена. Начните заново: /expense")
            return
        except MalformedExpense as exc:
            await message.answer(f"Затрата не сохранена: {escape(str(exc))}")
            return
        except DataUnavailable:
            logger.exception("Cannot save expense of user %s", user_id)
            await state.clear()
            await message.answer("Не удалось сохранить затрату. Попробуйте позже.")
            return

        await state.clear()
        await message.answer(
            "Затрата сохранена.\n"
            f"Сумма: {expense.amount:.2f} {expense.currency}\n"
            f"Участников: {len(expense.participants)}\n"
            "Посмотреть баланс: /balance"
        )
