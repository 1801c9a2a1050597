# application/usecases/expenses.py

import asyncio
import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from itertools import chain
from typing import Sequence

from common.money import ZERO, allocate_cents, round_money, to_decimal
from config.settings import STORAGE_TIMEOUT_SECONDS
from domain.errors import DataUnavailable, GroupNotFound, MalformedExpense
from domain.models.expenses import (
    SPLIT_TYPES,
    Expense,
    ExpenseParticipant,
    ExpensePayer,
    ExpenseScope,
)
from domain.repositories import IExpenseRepository, IGroupRepository

logger = logging.getLogger(__name__)

# Затраты без даты при сортировке уходят в конец
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _created_at_key(expense: Expense) -> datetime:
    created = expense.created_at
    if created is None:
        return _EPOCH
    if created.tzinfo is None:
        return created.replace(tzinfo=timezone.utc)
    return created


def split_amount(
    split_type: str,
    amount: Decimal,
    participants: Sequence[ExpenseParticipant],
) -> tuple[ExpenseParticipant, ...]:
    """
    Посчитать amount_owed каждого участника по правилу деления.

    Правила:
    - equal: сумма делится поровну до копейки, лишние копейки
      получают первые участники списка;
    - percentage: у каждого участника задан percentage, в сумме 100;
    - share: у каждого участника задан фиксированный amount_owed,
      в сумме равный amount.

    Во всех случаях сумма amount_owed в точности равна amount.
    При нарушении правил — MalformedExpense.
    """
    if not participants:
        raise MalformedExpense("expense must have at least one participant")

    if split_type == "equal":
        parts = allocate_cents(amount, [Decimal(1)] * len(participants))
        return tuple(
            ExpenseParticipant(user_id=p.user_id, amount_owed=part)
            for p, part in zip(participants, parts)
        )

    if split_type == "percentage":
        percentages = []
        for p in participants:
            percentage = to_decimal(p.percentage, default=Decimal(-1))
            if percentage < 0:
                raise MalformedExpense(f"participant {p.user_id} has no valid percentage")
            percentages.append(percentage)
        if sum(percentages, ZERO) != Decimal(100):
            raise MalformedExpense("percentages must add up to 100")
        parts = allocate_cents(amount, percentages)
        return tuple(
            ExpenseParticipant(user_id=p.user_id, amount_owed=part, percentage=pct)
            for p, part, pct in zip(participants, parts, percentages)
        )

    if split_type == "share":
        shares = []
        for p in participants:
            share = to_decimal(p.amount_owed, default=Decimal(-1))
            if share < 0:
                raise MalformedExpense(f"participant {p.user_id} has no valid share")
            shares.append(round_money(share))
        if sum(shares, ZERO) != amount:
            raise MalformedExpense("shares must add up to the expense amount")
        return tuple(
            ExpenseParticipant(user_id=p.user_id, amount_owed=share)
            for p, share in zip(participants, shares)
        )

    raise MalformedExpense(f"unknown split type {split_type!r}")


@dataclass
class ExpenseService:
    """
    Сервис работы с затратами.

    Умеет:
    - собирать все затраты, в которых участвует пользователь
      (создатель, участник или плательщик);
    - создавать новые затраты с делением суммы по правилу split_type;
    - создавать затрату «за всех в группе».
    """

    expense_repo: IExpenseRepository
    group_repo: IGroupRepository
    timeout_seconds: float = STORAGE_TIMEOUT_SECONDS

    async def list_expenses_involving_user(self, user_id: str) -> list[Expense]:
        """
        Все затраты, где пользователь — создатель, участник или плательщик.

        Три запроса к хранилищу выполняются параллельно, результат
        объединяется без повторов по id и сортируется по created_at
        (сначала новые, без даты — в конце).

        Если хотя бы один запрос не удался или не уложился в таймаут —
        DataUnavailable. Частичный список не возвращается.
        """
        try:
            created, participated, paid = await asyncio.wait_for(
                asyncio.gather(
                    asyncio.to_thread(self.expense_repo.list_created_by, user_id),
                    asyncio.to_thread(self.expense_repo.list_with_participant, user_id),
                    asyncio.to_thread(self.expense_repo.list_with_payer, user_id),
                ),
                timeout=self.timeout_seconds,
            )
        except TimeoutError as exc:
            raise DataUnavailable(
                f"expense storage did not answer in {self.timeout_seconds}s"
            ) from exc

        merged: dict[str, Expense] = {}
        for expense in chain(created, participated, paid):
            merged.setdefault(expense.id, expense)

        expenses = sorted(merged.values(), key=_created_at_key, reverse=True)
        logger.debug("Collected %d expenses for user %s", len(expenses), user_id)
        return expenses

    def create_expense(
        self,
        created_by: str,
        amount: Decimal | float | str,
        currency: str,
        split_type: str,
        participants: Sequence[ExpenseParticipant],
        payers: Sequence[ExpensePayer] = (),
        scopes: Sequence[ExpenseScope] = (),
        description: str = "",
    ) -> Expense:
        """
        Создать и сохранить затрату.

        Параметры:
        - amount: общая сумма (> 0), округляется до копеек;
        - participants: участники; для percentage нужен percentage,
          для share — amount_owed;
        - payers: кто сколько заплатил; если пусто — всё оплатил created_by.
          Сумма amount_paid должна совпадать с amount.

        Возвращает:
        - созданный объект Expense.
        """
        total = round_money(to_decimal(amount))
        if total <= 0:
            raise MalformedExpense("expense amount must be positive")

        currency = (currency or "").strip().upper()
        if not currency:
            raise MalformedExpense("expense currency is required")

        if split_type not in SPLIT_TYPES:
            raise MalformedExpense(f"unknown split type {split_type!r}")

        participant_ids = [p.user_id for p in participants]
        if len(set(participant_ids)) != len(participant_ids):
            raise MalformedExpense("participant ids must be unique")

        if not payers:
            payers = (ExpensePayer(user_id=created_by, amount_paid=total),)
        payers = tuple(replace(p, amount_paid=round_money(to_decimal(p.amount_paid))) for p in payers)
        if any(p.amount_paid < 0 for p in payers):
            raise MalformedExpense("payer amounts must not be negative")
        if sum((p.amount_paid for p in payers), ZERO) != total:
            raise MalformedExpense("payer amounts must add up to the expense amount")

        expense = Expense(
            id=str(uuid.uuid4()),
            amount=total,
            currency=currency,
            created_by=created_by,
            split_type=split_type,
            scopes=tuple(scopes),
            participants=split_amount(split_type, total, participants),
            payers=payers,
            created_at=datetime.now(timezone.utc),
            description=description,
        )
        self.expense_repo.create(expense)
        logger.info(
            "Created expense %s: %s %s by %s (%s)",
            expense.id, expense.amount, expense.currency, created_by, split_type,
        )
        return expense

    def create_expense_for_group(
        self,
        user_id: str,
        group_id: str,
        amount: Decimal | float | str,
        currency: str,
        description: str = "",
    ) -> Expense:
        """
        Создать затрату «за всех в группе».

        Правило:
        - user_id заплатил всю сумму;
        - сумма делится поровну между всеми участниками группы
          (включая самого пользователя).

        Если группы нет — GroupNotFound.
        """
        group = self.group_repo.get_by_id(group_id)
        if group is None:
            raise GroupNotFound(group_id)

        member_ids = list(group.members)
        if user_id not in member_ids:
            member_ids.append(user_id)

        return self.create_expense(
            created_by=user_id,
            amount=amount,
            currency=currency,
            split_type="equal",
            participants=[ExpenseParticipant(user_id=uid) for uid in member_ids],
            scopes=[ExpenseScope(type="group", id=group.id)],
            description=description,
        )
