from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional


# Знак суммы во всех моделях ниже:
# > 0: контрагент должен текущему пользователю;
# < 0: текущий пользователь должен контрагенту.


@dataclass(frozen=True)
class BalanceSummary:
    """
    Итоговый баланс пользователя по всем затратам.

    - total_owed: сколько должен пользователь;
    - total_owed_to: сколько должны пользователю;
    - net_balance: total_owed_to - total_owed.
    """

    total_owed: Decimal
    total_owed_to: Decimal
    net_balance: Decimal


@dataclass(frozen=True)
class CounterpartyBalance:
    user_id: str
    amount: Decimal
    currency: str


@dataclass(frozen=True)
class MemberBalance:
    user_id: str
    amount: Decimal


@dataclass(frozen=True)
class GroupBalance:
    group_id: str
    group_name: str
    group_icon: Optional[str]
    net_amount: Decimal
    currency: str
    member_balances: tuple[MemberBalance, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class BalanceOverview:
    """
    Все представления баланса, посчитанные по одной выборке затрат.
    """

    summary: BalanceSummary
    by_counterparty: tuple[CounterpartyBalance, ...]
    by_group: tuple[GroupBalance, ...]
    primary_currency: str
    consolidated: tuple[CounterpartyBalance, ...]
