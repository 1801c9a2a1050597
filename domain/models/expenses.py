from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional


SplitType = Literal["equal", "percentage", "share"]
ScopeType = Literal["user", "group"]

SPLIT_TYPES: tuple[str, ...] = ("equal", "percentage", "share")


@dataclass(frozen=True)
class ExpenseScope:
    """
    С кем разделена затрата: с конкретным пользователем или с группой.
    """

    type: ScopeType
    id: str


@dataclass(frozen=True)
class ExpenseParticipant:
    user_id: str
    amount_owed: Optional[Decimal] = None   # None считаем как 0
    percentage: Optional[Decimal] = None


@dataclass(frozen=True)
class ExpensePayer:
    user_id: str
    amount_paid: Decimal = Decimal("0")


@dataclass(frozen=True)
class Expense:
    """
    Затрата. После создания не меняется.

    Поля:
    - id: UUID затраты;
    - amount: общая сумма в валюте currency;
    - created_by: кто создал запись;
    - split_type: как делили сумму (equal / percentage / share);
    - scopes: с кем разделена затрата (пользователи и/или группы);
    - participants: кто сколько должен внести;
    - payers: кто сколько фактически заплатил;
    - created_at: время создания (может отсутствовать у старых строк).
    """

    id: str
    amount: Decimal
    currency: str
    created_by: str
    split_type: SplitType
    scopes: tuple[ExpenseScope, ...] = field(default_factory=tuple)
    participants: tuple[ExpenseParticipant, ...] = field(default_factory=tuple)
    payers: tuple[ExpensePayer, ...] = field(default_factory=tuple)
    created_at: Optional[datetime] = None
    description: str = ""

    @property
    def group_ids(self) -> list[str]:
        """
        Идентификаторы групп из scopes, без повторов, в исходном порядке.
        """
        result: list[str] = []
        for scope in self.scopes:
            if scope.type == "group" and scope.id not in result:
                result.append(scope.id)
        return result

    @property
    def is_group_expense(self) -> bool:
        return bool(self.group_ids)

    def involves(self, user_id: str) -> bool:
        if self.created_by == user_id:
            return True
        if any(p.user_id == user_id for p in self.participants):
            return True
        return any(p.user_id == user_id for p in self.payers)
