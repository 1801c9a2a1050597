# infrastructure/google_sheets/expense_repository.py

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from googleapiclient.discovery import Resource

from common.money import ZERO, to_decimal
from config.settings import SHEET_EXPENSES_RANGE
from domain.errors import DataUnavailable, MalformedExpense
from domain.models.expenses import (
    SPLIT_TYPES,
    Expense,
    ExpenseParticipant,
    ExpensePayer,
    ExpenseScope,
)
from domain.repositories import IExpenseRepository
from infrastructure.google_sheets.client import get_sheets_service, SPREADSHEET_ID, STORAGE_ERRORS

logger = logging.getLogger(__name__)

# Порядок колонок листа expenses:
# A: Id
# B: CreatedAt (ISO)
# C: CreatedBy
# D: Amount
# E: Currency
# F: SplitType
# G: Description
# H: Scopes (JSON: [{"type": "group", "id": "..."}])
# I: Participants (JSON: [{"user_id": "...", "amount_owed": 10, "percentage": null}])
# J: Payers (JSON: [{"user_id": "...", "amount_paid": 10}])
COLUMNS_COUNT = 10


def _parse_json_list(value: Any) -> list:
    text = str(value or "").strip()
    if not text:
        return []
    try:
        parsed = json.loads(text)
    except ValueError:
        return []
    return parsed if isinstance(parsed, list) else []


def _parse_datetime(value: Any) -> Optional[datetime]:
    text = str(value or "").strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def row_to_expense(row: list[Any]) -> Expense:
    """
    Собрать Expense из строки листа.

    Отсутствующие или нечисловые суммы считаются нулём, битый JSON —
    пустым списком. Строка без id — MalformedExpense.
    """
    cells = [str(c) if c is not None else "" for c in row]
    cells += [""] * (COLUMNS_COUNT - len(cells))

    expense_id = cells[0].strip()
    if not expense_id:
        raise MalformedExpense("expense row has no id")

    scopes = []
    for item in _parse_json_list(cells[7]):
        if not isinstance(item, dict) or item.get("type") not in ("user", "group"):
            continue
        scope_id = str(item.get("id") or "").strip()
        if scope_id:
            scopes.append(ExpenseScope(type=item["type"], id=scope_id))

    participants = []
    for item in _parse_json_list(cells[8]):
        if not isinstance(item, dict) or not item.get("user_id"):
            continue
        participants.append(
            ExpenseParticipant(
                user_id=str(item["user_id"]),
                amount_owed=None if item.get("amount_owed") is None else to_decimal(item["amount_owed"]),
                percentage=None if item.get("percentage") is None else to_decimal(item["percentage"]),
            )
        )

    payers = []
    for item in _parse_json_list(cells[9]):
        if not isinstance(item, dict) or not item.get("user_id"):
            continue
        payers.append(
            ExpensePayer(user_id=str(item["user_id"]), amount_paid=to_decimal(item.get("amount_paid")))
        )

    split_type = cells[5].strip().lower()
    if split_type not in SPLIT_TYPES:
        split_type = "equal"

    return Expense(
        id=expense_id,
        amount=to_decimal(cells[3]),
        currency=cells[4].strip().upper(),
        created_by=cells[2].strip(),
        split_type=split_type,
        scopes=tuple(scopes),
        participants=tuple(participants),
        payers=tuple(payers),
        created_at=_parse_datetime(cells[1]),
        description=cells[6],
    )


def expense_to_row(expense: Expense) -> list[str]:
    """
    Обратное преобразование для записи в лист. Суммы пишем строками,
    чтобы не терять точность Decimal.
    """
    scopes = [{"type": s.type, "id": s.id} for s in expense.scopes]
    participants = [
        {
            "user_id": p.user_id,
            "amount_owed": None if p.amount_owed is None else str(p.amount_owed),
            "percentage": None if p.percentage is None else str(p.percentage),
        }
        for p in expense.participants
    ]
    payers = [{"user_id": p.user_id, "amount_paid": str(p.amount_paid)} for p in expense.payers]

    return [
        expense.id,                                             # Id
        expense.created_at.isoformat() if expense.created_at else "",  # CreatedAt
        expense.created_by,                                     # CreatedBy
        str(expense.amount),                                    # Amount
        expense.currency,                                       # Currency
        expense.split_type,                                     # SplitType
        expense.description,                                    # Description
        json.dumps(scopes, ensure_ascii=False),                 # Scopes
        json.dumps(participants, ensure_ascii=False),           # Participants
        json.dumps(payers, ensure_ascii=False),                 # Payers
    ]


def _warn_if_inconsistent(expense: Expense) -> None:
    # Не отбрасываем такие строки: одна битая запись не должна
    # «обнулять» весь баланс пользователя.
    if expense.amount < 0:
        logger.warning("Expense %s has negative amount %s", expense.id, expense.amount)
    paid_total = sum((p.amount_paid for p in expense.payers), ZERO)
    if paid_total != expense.amount:
        logger.warning(
            "Expense %s: payers add up to %s, expected %s",
            expense.id, paid_total, expense.amount,
        )


class ExpenseSheetRepository(IExpenseRepository):
    """
    Репозиторий затрат поверх листа expenses.

    Каждый метод чтения перечитывает лист целиком и фильтрует строки:
    никакого кэша, баланс всегда считается по актуальным данным.
    """

    def __init__(self, service: Optional[Resource] = None) -> None:
        self.service: Resource = service if service is not None else get_sheets_service()

    def _read_all_expenses(self) -> list[Expense]:
        try:
            result = (
                self.service.spreadsheets()
                .values()
                .get(
                    spreadsheetId=SPREADSHEET_ID,
                    range=SHEET_EXPENSES_RANGE,
                )
                .execute()
            )
        except STORAGE_ERRORS as exc:
            raise DataUnavailable("cannot read expenses sheet") from exc

        expenses: list[Expense] = []
        for index, row in enumerate(result.get("values", [])):
            if not row or not any(str(c).strip() for c in row):
                continue
            try:
                expense = row_to_expense(row)
            except MalformedExpense as exc:
                logger.warning("Skipping expense row %d: %s", index + 2, exc)
                continue
            _warn_if_inconsistent(expense)
            expenses.append(expense)
        return expenses

    def _filter(self, predicate: Callable[[Expense], bool]) -> list[Expense]:
        return [e for e in self._read_all_expenses() if predicate(e)]

    def list_created_by(self, user_id: str) -> list[Expense]:
        return self._filter(lambda e: e.created_by == user_id)

    def list_with_participant(self, user_id: str) -> list[Expense]:
        return self._filter(lambda e: any(p.user_id == user_id for p in e.participants))

    def list_with_payer(self, user_id: str) -> list[Expense]:
        return self._filter(lambda e: any(p.user_id == user_id for p in e.payers))

    def create(self, expense: Expense) -> None:
        body = {"values": [expense_to_row(expense)]}

        try:
            (
                self.service.spreadsheets()
                .values()
                .append(
                    spreadsheetId=SPREADSHEET_ID,
                    range=SHEET_EXPENSES_RANGE,
                    valueInputOption="RAW",
                    body=body,
                )
                .execute()
            )
        except STORAGE_ERRORS as exc:
            raise DataUnavailable("cannot append to expenses sheet") from exc
