# transport/telegram/balance_handlers.py

import logging

from aiogram import Dispatcher, F
from aiogram.filters import Command
from aiogram.types import (
    Message,
    CallbackQuery,
    InlineKeyboardMarkup,
    InlineKeyboardButton,
)

from application.usecases.balances import BalanceService
from application.usecases.reports import ReportService
from domain.errors import DataUnavailable
from domain.models.balances import BalanceOverview

logger = logging.getLogger(__name__)

# ----- ТЕКСТЫ КНОПОК -----

SUMMARY_BTN = "Итог"
SIMPLE_BTN = "Упрощённо"
PEOPLE_BTN = "По людям"
GROUPS_BTN = "По группам"

DATA_UNAVAILABLE_TEXT = (
    "Не удалось получить данные о затратах. Попробуйте ещё раз чуть позже."
)


def _balance_keyboard() -> InlineKeyboardMarkup:
    """
    Inline-клавиатура с видами отчёта по балансу.

    callback_data имеет вид 'bal:<вид>'.
    """
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text=SUMMARY_BTN, callback_data="bal:summary"),
                InlineKeyboardButton(text=SIMPLE_BTN, callback_data="bal:simple"),
            ],
            [
                InlineKeyboardButton(text=PEOPLE_BTN, callback_data="bal:people"),
                InlineKeyboardButton(text=GROUPS_BTN, callback_data="bal:groups"),
            ],
        ]
    )


def render_balance_view(report_svc: ReportService, overview: BalanceOverview, view: str) -> str:
    """
    Текст отчёта для выбранного вида.
    Неизвестный вид — общий баланс с упрощённым списком.
    """
    if view == "summary":
        return report_svc.format_summary(overview.summary, overview.primary_currency)
    if view == "simple":
        return report_svc.format_consolidated_report(overview.consolidated)
    if view == "people":
        return report_svc.format_counterparty_report(overview.by_counterparty)
    if view == "groups":
        return report_svc.format_group_report(overview.by_group)
    return report_svc.format_overview(overview)


async def build_balance_text(
    balance_svc: BalanceService,
    report_svc: ReportService,
    user_id: str,
    view: str,
) -> str:
    # Баланс всегда пересчитывается заново; при сбое хранилища
    # показываем ошибку, а не нули.
    try:
        overview = await balance_svc.get_overview(user_id)
    except DataUnavailable:
        logger.exception("Balance for user %s is unavailable", user_id)
        return DATA_UNAVAILABLE_TEXT
    return render_balance_view(report_svc, overview, view)


def register_balance_handlers(
    dp: Dispatcher,
    balance_svc: BalanceService,
    report_svc: ReportService,
) -> None:
    """
    Регистрация хэндлеров отчётов по балансу.

    Параметры:
    - dp: Dispatcher aiogram.
    - balance_svc: сервис расчёта балансов.
    - report_svc: сервис форматирования отчётов.
    """

    @dp.message(Command("balance"))
    async def cmd_balance(message: Message):
        user_id = str(message.from_user.id)
        text = await build_balance_text(balance_svc, report_svc, user_id, "overview")
        await message.answer(text, reply_markup=_balance_keyboard())

    @dp.callback_query(F.data.startswith("bal:"))
    async def process_balance_view(callback: CallbackQuery):
        _, view = callback.data.split(":", 1)
        user_id = str(callback.from_user.id)

        text = await build_balance_text(balance_svc, report_svc, user_id, view)
        await callback.message.answer(text, reply_markup=_balance_keyboard())
        await callback.answer()
