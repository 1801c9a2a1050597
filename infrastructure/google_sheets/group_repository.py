# infrastructure/google_sheets/group_repository.py

import json
from typing import Any, List, Optional
from googleapiclient.discovery import Resource

from domain.errors import DataUnavailable
from domain.models.groups import Group
from domain.repositories import IGroupRepository
from infrastructure.google_sheets.client import get_sheets_service, SPREADSHEET_ID, STORAGE_ERRORS
from config.settings import SHEET_GROUPS_RANGE


def _parse_members(value: Any) -> tuple[str, ...]:
    """
    Участники хранятся JSON-списком, но допускаем и простой
    список через запятую, если таблицу заполняли руками.
    """
    text = str(value or "").strip()
    if not text:
        return ()
    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = text.split(",")
    if isinstance(parsed, (str, int)):
        # одиночный id, например "405145783"
        parsed = [parsed]
    if not isinstance(parsed, list):
        return ()
    return tuple(str(m).strip() for m in parsed if str(m).strip())


def row_to_group(row: List[Any]) -> Optional[Group]:
    cells = [str(c).strip() for c in row] + [""] * 5
    if not cells[0]:
        return None
    return Group(
        id=cells[0],
        name=cells[1],
        icon=cells[2] or None,
        members=_parse_members(cells[3]),
        created_by=cells[4],
    )


class GroupSheetRepository(IGroupRepository):
    """
    Реализация репозитория групп поверх листа Groups.

    Лист Groups (начиная со строки 2, A2:E):
    - A: id
    - B: название
    - C: иконка
    - D: участники (JSON-список user_id)
    - E: кто создал
    """

    def __init__(self, service: Optional[Resource] = None) -> None:
        self.service: Resource = service if service is not None else get_sheets_service()

    def _read_all_groups(self) -> List[Group]:
        """
        Считывает все строки из диапазона SHEET_GROUPS_RANGE.
        """
        try:
            result = (
                self.service.spreadsheets()
                .values()
                .get(
                    spreadsheetId=SPREADSHEET_ID,
                    range=SHEET_GROUPS_RANGE,
                )
                .execute()
            )
        except STORAGE_ERRORS as exc:
            raise DataUnavailable("cannot read groups sheet") from exc

        values = result.get("values", [])
        groups = [row_to_group(row) for row in values if row]
        return [g for g in groups if g is not None]

    def get_by_id(self, group_id: str) -> Optional[Group]:
        for group in self._read_all_groups():
            if group.id == group_id:
                return group
        return None

    def list_for_member(self, user_id: str) -> List[Group]:
        return [g for g in self._read_all_groups() if user_id in g.members]
