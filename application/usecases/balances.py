# application/usecases/balances.py

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from common.money import ZERO, round_money, to_decimal
from config.settings import DEFAULT_PRIMARY_CURRENCY
from domain.errors import DataUnavailable
from domain.models.balances import (
    BalanceOverview,
    BalanceSummary,
    CounterpartyBalance,
    GroupBalance,
    MemberBalance,
)
from domain.models.expenses import Expense
from domain.models.groups import Group
from domain.repositories import IGroupRepository
from application.usecases.expenses import ExpenseService

logger = logging.getLogger(__name__)

UNKNOWN_GROUP_NAME = "Unknown Group"


# ---------- Чистые функции расчёта ----------


def paid_by(expense: Expense, user_id: str) -> Decimal:
    return sum(
        (to_decimal(p.amount_paid) for p in expense.payers if p.user_id == user_id),
        ZERO,
    )


def owed_by(expense: Expense, user_id: str) -> Decimal:
    return sum(
        (to_decimal(p.amount_owed) for p in expense.participants if p.user_id == user_id),
        ZERO,
    )


def net_for_user(expense: Expense, user_id: str) -> Decimal:
    """
    Сколько пользователь переплатил (> 0) или недоплатил (< 0) по затрате.
    """
    return paid_by(expense, user_id) - owed_by(expense, user_id)


def calculate_balance(expenses: Iterable[Expense], user_id: str) -> BalanceSummary:
    """
    Итоговый баланс пользователя.

    Суммы складываются без учёта валюты затрат: так итог выглядит
    и в исходном приложении, конвертации валют здесь нет.
    """
    total_owed = ZERO
    total_owed_to = ZERO

    for expense in expenses:
        net = net_for_user(expense, user_id)
        if net > 0:
            total_owed_to += net
        elif net < 0:
            total_owed += -net

    return BalanceSummary(
        total_owed=round_money(total_owed),
        total_owed_to=round_money(total_owed_to),
        net_balance=round_money(total_owed_to - total_owed),
    )


def distribute_balances(
    expenses: Iterable[Expense],
    user_id: str,
    group_id: Optional[str] = None,
) -> dict[str, tuple[Decimal, str]]:
    """
    Разнести переплату/недоплату пользователя по контрагентам.

    Параметры:
    - expenses: затраты пользователя;
    - group_id: None — берём только затраты без групп (прямые);
      иначе — только затраты этой группы.

    Правило для каждой затраты с net != 0:
    - net > 0: остальные участники с amount_owed > 0 получают
      net * amount_owed / (сумма их amount_owed);
    - net < 0: остальные плательщики с amount_paid > 0 получают
      -|net| * amount_paid / (сумма их amount_paid).
    Если знаменатель равен 0 — затрата ни на кого не распределяется.

    Возвращает:
    - словарь {user_id -> (неокруглённая сумма, валюта)}.
      Валюта — последней встреченной затраты с этим контрагентом.
    """
    balances: dict[str, tuple[Decimal, str]] = {}

    def add(counterparty_id: str, amount: Decimal, currency: str) -> None:
        current, _ = balances.get(counterparty_id, (ZERO, currency))
        balances[counterparty_id] = (current + amount, currency)

    for expense in expenses:
        if group_id is None:
            if expense.is_group_expense:
                continue
        elif group_id not in expense.group_ids:
            continue

        net = net_for_user(expense, user_id)
        if net == 0:
            continue

        if net > 0:
            others = [
                (p.user_id, to_decimal(p.amount_owed))
                for p in expense.participants
                if p.user_id != user_id and to_decimal(p.amount_owed) > 0
            ]
        else:
            others = [
                (p.user_id, to_decimal(p.amount_paid))
                for p in expense.payers
                if p.user_id != user_id and to_decimal(p.amount_paid) > 0
            ]

        total = sum((weight for _, weight in others), ZERO)
        if total <= 0:
            continue

        for other_id, weight in others:
            add(other_id, net * weight / total, expense.currency)

    return balances


def _rounded_nonzero(balances: dict[str, tuple[Decimal, str]]) -> list[tuple[str, Decimal, str]]:
    rows = [
        (uid, round_money(amount), currency)
        for uid, (amount, currency) in balances.items()
    ]
    rows = [row for row in rows if row[1] != 0]
    rows.sort(key=lambda row: row[1], reverse=True)
    return rows


def balances_by_counterparty(
    expenses: Iterable[Expense],
    user_id: str,
) -> list[CounterpartyBalance]:
    """
    Баланс с каждым контрагентом по прямым затратам (без групп).
    Нулевые убраны, сортировка по убыванию суммы.
    """
    return [
        CounterpartyBalance(user_id=uid, amount=amount, currency=currency)
        for uid, amount, currency in _rounded_nonzero(distribute_balances(expenses, user_id))
    ]


def build_group_balances(
    expenses: Sequence[Expense],
    user_id: str,
    groups: dict[str, Optional[Group]],
) -> list[GroupBalance]:
    """
    Балансы пользователя по группам.

    Параметры:
    - groups: уже загруженные группы {group_id -> Group или None}.
      Для отсутствующих используется заглушка UNKNOWN_GROUP_NAME.

    Группа без чистой суммы и без балансов участников не попадает в результат.
    """
    net_by_group: dict[str, Decimal] = {}
    currency_by_group: dict[str, str] = {}

    for expense in expenses:
        for gid in expense.group_ids:
            net_by_group[gid] = net_by_group.get(gid, ZERO) + net_for_user(expense, user_id)
            currency_by_group[gid] = expense.currency

    result: list[GroupBalance] = []
    for gid, net in net_by_group.items():
        members = tuple(
            MemberBalance(user_id=uid, amount=amount)
            for uid, amount, _ in _rounded_nonzero(distribute_balances(expenses, user_id, gid))
        )
        net_amount = round_money(net)
        if net_amount == 0 and not members:
            continue

        group = groups.get(gid)
        result.append(
            GroupBalance(
                group_id=gid,
                group_name=group.name if group is not None and group.name else UNKNOWN_GROUP_NAME,
                group_icon=group.icon if group is not None else None,
                net_amount=net_amount,
                currency=currency_by_group[gid],
                member_balances=members,
            )
        )

    result.sort(key=lambda g: g.net_amount, reverse=True)
    return result


def choose_primary_currency(
    counterparty_balances: Sequence[CounterpartyBalance],
    group_balances: Sequence[GroupBalance] = (),
    default: str = DEFAULT_PRIMARY_CURRENCY,
) -> str:
    """
    Самая частая валюта среди балансов пользователя.
    При равенстве — та, что встретилась первой.
    """
    counts: dict[str, int] = {}
    for currency in [b.currency for b in counterparty_balances] + [g.currency for g in group_balances]:
        if currency:
            counts[currency] = counts.get(currency, 0) + 1

    if not counts:
        return default
    # max() возвращает первый из равных, а dict хранит порядок появления
    return max(counts, key=counts.__getitem__)


def consolidate_balances(
    counterparty_balances: Sequence[CounterpartyBalance],
    group_balances: Sequence[GroupBalance],
    primary_currency: str,
) -> list[CounterpartyBalance]:
    """
    «Упрощённый» список: прямые и групповые долги с одним человеком
    складываются в одну сумму. Валюта — primary_currency.
    """
    merged: dict[str, Decimal] = {}
    for balance in counterparty_balances:
        merged[balance.user_id] = merged.get(balance.user_id, ZERO) + balance.amount
    for group in group_balances:
        for member in group.member_balances:
            merged[member.user_id] = merged.get(member.user_id, ZERO) + member.amount

    return [
        CounterpartyBalance(user_id=uid, amount=amount, currency=primary_currency)
        for uid, amount, _ in _rounded_nonzero(
            {uid: (amount, primary_currency) for uid, amount in merged.items()}
        )
    ]


# ---------- Сервис ----------


@dataclass
class BalanceService:
    """
    Расчёт балансов пользователя «на лету» по всей истории затрат.

    Ничего не кэширует: каждый вызов заново читает затраты
    и пересчитывает результат.
    """

    expense_svc: ExpenseService
    group_repo: IGroupRepository
    default_currency: str = DEFAULT_PRIMARY_CURRENCY

    async def calculate_balance(self, user_id: str) -> BalanceSummary:
        expenses = await self.expense_svc.list_expenses_involving_user(user_id)
        return calculate_balance(expenses, user_id)

    async def get_balances_by_counterparty(self, user_id: str) -> list[CounterpartyBalance]:
        expenses = await self.expense_svc.list_expenses_involving_user(user_id)
        return balances_by_counterparty(expenses, user_id)

    async def get_group_balances(self, user_id: str) -> list[GroupBalance]:
        expenses = await self.expense_svc.list_expenses_involving_user(user_id)
        return await self._group_balances(expenses, user_id)

    async def get_consolidated_balances(
        self,
        user_id: str,
        primary_currency: Optional[str] = None,
    ) -> list[CounterpartyBalance]:
        """
        Прямые и групповые балансы, сведённые в одну сумму на человека.

        primary_currency — валюта подписи; если не задана,
        выбирается choose_primary_currency.
        """
        expenses = await self.expense_svc.list_expenses_involving_user(user_id)
        by_counterparty = balances_by_counterparty(expenses, user_id)
        by_group = await self._group_balances(expenses, user_id)
        currency = primary_currency or choose_primary_currency(
            by_counterparty, by_group, default=self.default_currency
        )
        return consolidate_balances(by_counterparty, by_group, currency)

    async def get_overview(self, user_id: str) -> BalanceOverview:
        """
        Все представления сразу, по одной выборке затрат.
        """
        expenses = await self.expense_svc.list_expenses_involving_user(user_id)
        summary = calculate_balance(expenses, user_id)
        by_counterparty = balances_by_counterparty(expenses, user_id)
        by_group = await self._group_balances(expenses, user_id)
        currency = choose_primary_currency(by_counterparty, by_group, default=self.default_currency)

        return BalanceOverview(
            summary=summary,
            by_counterparty=tuple(by_counterparty),
            by_group=tuple(by_group),
            primary_currency=currency,
            consolidated=tuple(consolidate_balances(by_counterparty, by_group, currency)),
        )

    async def _group_balances(self, expenses: list[Expense], user_id: str) -> list[GroupBalance]:
        group_ids: list[str] = []
        for expense in expenses:
            for gid in expense.group_ids:
                if gid not in group_ids:
                    group_ids.append(gid)

        found = await asyncio.gather(*(self._find_group(gid) for gid in group_ids))
        return build_group_balances(expenses, user_id, dict(zip(group_ids, found)))

    async def _find_group(self, group_id: str) -> Optional[Group]:
        # Сбой одной группы не должен ломать весь расчёт: покажем заглушку
        try:
            group = await asyncio.to_thread(self.group_repo.get_by_id, group_id)
        except DataUnavailable:
            logger.exception("Failed to load group %s, using placeholder", group_id)
            return None
        if group is None:
            logger.warning("Group %s not found, using placeholder", group_id)
        return group
