import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest

from application.usecases.balances import BalanceService
from application.usecases.expenses import ExpenseService
from application.usecases.reports import ReportService
from application.usecases.users import UserService
from domain.errors import DataUnavailable
from domain.models.expenses import Expense, ExpenseParticipant, ExpensePayer, ExpenseScope
from domain.models.groups import Group
from domain.models.users import UserInfo


class InMemoryExpenseRepository:
    def __init__(self, expenses=(), fail=False, delay=0.0):
        self.expenses = list(expenses)
        self.fail = fail
        self.delay = delay
        self.created = []

    def _all(self):
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise DataUnavailable("storage is down")
        return list(self.expenses)

    def list_created_by(self, user_id):
        return [e for e in self._all() if e.created_by == user_id]

    def list_with_participant(self, user_id):
        return [e for e in self._all() if any(p.user_id == user_id for p in e.participants)]

    def list_with_payer(self, user_id):
        return [e for e in self._all() if any(p.user_id == user_id for p in e.payers)]

    def create(self, expense):
        if self.fail:
            raise DataUnavailable("storage is down")
        self.expenses.append(expense)
        self.created.append(expense)


class InMemoryGroupRepository:
    def __init__(self, groups=(), failing_ids=()):
        self.groups = {g.id: g for g in groups}
        self.failing_ids = set(failing_ids)

    def get_by_id(self, group_id):
        if group_id in self.failing_ids:
            raise DataUnavailable(f"cannot read group {group_id}")
        return self.groups.get(group_id)

    def list_for_member(self, user_id):
        return [g for g in self.groups.values() if user_id in g.members]


class InMemoryUserRepository:
    def __init__(self, users=()):
        self.users = {u.user_id: u for u in users}

    def get_by_id(self, user_id):
        return self.users.get(user_id)

    def create_if_not_exists(self, user_id, name):
        if user_id not in self.users:
            self.users[user_id] = UserInfo(user_id=user_id, name=name)
        return self.users[user_id]


def _money(value) -> Optional[Decimal]:
    return None if value is None else Decimal(str(value))


def build_expense(
    expense_id: str,
    amount,
    participants: dict,
    payers: dict,
    currency: str = "USD",
    groups=(),
    users=(),
    created_by: Optional[str] = None,
    created_at: Optional[datetime] = None,
    split_type: str = "equal",
) -> Expense:
    scopes = [ExpenseScope(type="group", id=g) for g in groups]
    scopes += [ExpenseScope(type="user", id=u) for u in users]
    return Expense(
        id=expense_id,
        amount=Decimal(str(amount)),
        currency=currency,
        created_by=created_by or next(iter(payers), ""),
        split_type=split_type,
        scopes=tuple(scopes),
        participants=tuple(
            ExpenseParticipant(user_id=uid, amount_owed=_money(owed))
            for uid, owed in participants.items()
        ),
        payers=tuple(
            ExpensePayer(user_id=uid, amount_paid=Decimal(str(paid)))
            for uid, paid in payers.items()
        ),
        created_at=created_at,
    )


@pytest.fixture
def make_expense():
    return build_expense


@pytest.fixture
def at():
    def _at(day: int, hour: int = 12) -> datetime:
        return datetime(2026, 3, day, hour, tzinfo=timezone.utc)

    return _at


@pytest.fixture
def group_repo():
    return InMemoryGroupRepository(
        [
            Group(id="g1", name="Поездка", icon="🏔", members=("U", "A", "B")),
            Group(id="g2", name="Квартира", icon=None, members=("U", "C")),
        ]
    )


@pytest.fixture
def user_repo():
    return InMemoryUserRepository(
        [
            UserInfo(user_id="U", name="Юля"),
            UserInfo(user_id="A", name="Аня"),
            UserInfo(user_id="B", name="Боря"),
        ]
    )


@pytest.fixture
def make_services(group_repo):
    def _make(expenses=(), **repo_kwargs):
        expense_repo = InMemoryExpenseRepository(expenses, **repo_kwargs)
        expense_svc = ExpenseService(expense_repo=expense_repo, group_repo=group_repo)
        balance_svc = BalanceService(expense_svc=expense_svc, group_repo=group_repo)
        return expense_repo, expense_svc, balance_svc

    return _make


@pytest.fixture
def report_svc(user_repo, group_repo):
    return ReportService(users_svc=UserService(user_repo=user_repo, group_repo=group_repo))
