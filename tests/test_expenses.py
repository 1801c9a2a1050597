import asyncio
from decimal import Decimal

import pytest

from application.usecases.expenses import ExpenseService, split_amount
from domain.errors import DataUnavailable, GroupNotFound, MalformedExpense
from domain.models.expenses import ExpenseParticipant, ExpensePayer, ExpenseScope

from conftest import InMemoryExpenseRepository


# ---------- Сбор затрат пользователя ----------


def test_aggregator_collects_each_expense_once(make_services, make_expense, at):
    created_only = make_expense("created", 10, participants={"A": 10}, payers={"A": 10}, created_by="U", created_at=at(1))
    everything = make_expense("all", 10, participants={"U": 10}, payers={"U": 10}, created_by="U", created_at=at(2))
    paid_only = make_expense("paid", 10, participants={"A": 10}, payers={"U": 10}, created_by="A", created_at=at(3))
    unrelated = make_expense("other", 10, participants={"A": 10}, payers={"B": 10}, created_by="B", created_at=at(4))
    _, expense_svc, _ = make_services([created_only, everything, paid_only, unrelated])

    expenses = asyncio.run(expense_svc.list_expenses_involving_user("U"))

    assert [e.id for e in expenses] == ["paid", "all", "created"]


def test_aggregator_puts_undated_expenses_last(make_services, make_expense, at):
    undated = make_expense("undated", 10, participants={"U": 10}, payers={"A": 10})
    old = make_expense("old", 10, participants={"U": 10}, payers={"A": 10}, created_at=at(1))
    new = make_expense("new", 10, participants={"U": 10}, payers={"A": 10}, created_at=at(5))
    _, expense_svc, _ = make_services([undated, old, new])

    expenses = asyncio.run(expense_svc.list_expenses_involving_user("U"))

    assert [e.id for e in expenses] == ["new", "old", "undated"]


def test_aggregator_fails_instead_of_returning_partial_set(make_services):
    _, expense_svc, _ = make_services(fail=True)

    with pytest.raises(DataUnavailable):
        asyncio.run(expense_svc.list_expenses_involving_user("U"))


def test_aggregator_times_out_as_data_unavailable(group_repo):
    repo = InMemoryExpenseRepository(delay=0.3)
    expense_svc = ExpenseService(expense_repo=repo, group_repo=group_repo, timeout_seconds=0.05)

    with pytest.raises(DataUnavailable):
        asyncio.run(expense_svc.list_expenses_involving_user("U"))


# ---------- Деление суммы ----------


def _people(*ids, **kwargs):
    return [ExpenseParticipant(user_id=uid, **kwargs) for uid in ids]


def test_equal_split_gives_leftover_cents_to_first_participants():
    parts = split_amount("equal", Decimal("100.00"), _people("U", "A", "B"))

    assert [p.amount_owed for p in parts] == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]


def test_percentage_split_sums_exactly():
    participants = [
        ExpenseParticipant("U", percentage=Decimal("33.3")),
        ExpenseParticipant("A", percentage=Decimal("33.3")),
        ExpenseParticipant("B", percentage=Decimal("33.4")),
    ]

    parts = split_amount("percentage", Decimal("10.00"), participants)

    assert [p.amount_owed for p in parts] == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]
    assert [p.percentage for p in parts] == [Decimal("33.3"), Decimal("33.3"), Decimal("33.4")]


def test_percentage_split_requires_hundred_percent():
    participants = [
        ExpenseParticipant("U", percentage=Decimal("50")),
        ExpenseParticipant("A", percentage=Decimal("40")),
    ]

    with pytest.raises(MalformedExpense):
        split_amount("percentage", Decimal("10.00"), participants)


def test_share_split_keeps_fixed_amounts():
    participants = [
        ExpenseParticipant("U", amount_owed=Decimal("12.50")),
        ExpenseParticipant("A", amount_owed=Decimal("7.50")),
    ]

    parts = split_amount("share", Decimal("20.00"), participants)

    assert [p.amount_owed for p in parts] == [Decimal("12.50"), Decimal("7.50")]


def test_share_split_must_match_total():
    with pytest.raises(MalformedExpense):
        split_amount("share", Decimal("20.00"), _people("U", "A", amount_owed=Decimal("5")))


# ---------- Создание затрат ----------


def test_create_expense_persists_and_defaults_payer(make_services):
    repo, expense_svc, _ = make_services()

    expense = expense_svc.create_expense(
        created_by="U",
        amount="90",
        currency="usd",
        split_type="equal",
        participants=_people("U", "A", "B"),
        scopes=[ExpenseScope(type="user", id="A"), ExpenseScope(type="user", id="B")],
        description="Ужин",
    )

    assert repo.created == [expense]
    assert expense.amount == Decimal("90.00")
    assert expense.currency == "USD"
    assert expense.payers == (ExpensePayer("U", Decimal("90.00")),)
    assert [p.amount_owed for p in expense.participants] == [Decimal("30.00")] * 3
    assert expense.created_at is not None
    assert not expense.is_group_expense


def test_create_expense_supports_several_payers(make_services):
    _, expense_svc, _ = make_services()

    expense = expense_svc.create_expense(
        created_by="U",
        amount=Decimal("50"),
        currency="EUR",
        split_type="equal",
        participants=_people("U", "A"),
        payers=[ExpensePayer("U", Decimal("20")), ExpensePayer("A", Decimal("30"))],
    )

    assert sum(p.amount_paid for p in expense.payers) == Decimal("50.00")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"amount": "0"},
        {"amount": "-5"},
        {"currency": " "},
        {"split_type": "weird"},
        {"participants": _people("U", "U")},
        {"participants": []},
        {"payers": [ExpensePayer("U", Decimal("10"))]},
        {"payers": [ExpensePayer("U", Decimal("-10")), ExpensePayer("A", Decimal("40"))]},
    ],
)
def test_create_expense_rejects_malformed_input(make_services, kwargs):
    repo, expense_svc, _ = make_services()
    params = {
        "created_by": "U",
        "amount": "30",
        "currency": "USD",
        "split_type": "equal",
        "participants": _people("U", "A"),
    }
    params.update(kwargs)

    with pytest.raises(MalformedExpense):
        expense_svc.create_expense(**params)
    assert repo.created == []


def test_create_expense_for_group_splits_between_members(make_services):
    repo, expense_svc, balance_svc = make_services()

    expense = expense_svc.create_expense_for_group(
        user_id="U", group_id="g1", amount="90", currency="USD", description="Бензин"
    )

    assert expense.group_ids == ["g1"]
    assert {p.user_id: p.amount_owed for p in expense.participants} == {
        "U": Decimal("30.00"),
        "A": Decimal("30.00"),
        "B": Decimal("30.00"),
    }
    [group] = asyncio.run(balance_svc.get_group_balances("U"))
    assert group.net_amount == Decimal("60.00")


def test_create_expense_for_group_adds_creator_if_missing(make_services):
    _, expense_svc, _ = make_services()

    expense = expense_svc.create_expense_for_group(user_id="Z", group_id="g2", amount="30", currency="USD")

    assert [p.user_id for p in expense.participants] == ["U", "C", "Z"]


def test_create_expense_for_unknown_group(make_services):
    _, expense_svc, _ = make_services()

    with pytest.raises(GroupNotFound):
        expense_svc.create_expense_for_group(user_id="U", group_id="nope", amount="10", currency="USD")
