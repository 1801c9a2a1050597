from typing import List, Optional
from googleapiclient.discovery import Resource

from domain.errors import DataUnavailable
from domain.models.users import UserInfo
from domain.repositories import IUserRepository
from infrastructure.google_sheets.client import get_sheets_service, SPREADSHEET_ID, STORAGE_ERRORS
from config.settings import SHEET_USERS_RANGE


class UserSheetRepository(IUserRepository):
    """
    Репозиторий для листа users.

    Лист users:
    - колонка A: userId
    - колонка B: userName
    - колонка C: defaultCurrency (необязательно)
    начиная со строки 2 (диапазон A2:C).
    """

    def __init__(self, service: Optional[Resource] = None) -> None:
        self.service: Resource = service if service is not None else get_sheets_service()

    def _read_all_rows(self) -> List[List[str]]:
        try:
            result = (
                self.service.spreadsheets()
                .values()
                .get(
                    spreadsheetId=SPREADSHEET_ID,
                    range=SHEET_USERS_RANGE,
                )
                .execute()
            )
        except STORAGE_ERRORS as exc:
            raise DataUnavailable("cannot read users sheet") from exc
        return result.get("values", [])

    def get_by_id(self, user_id: str) -> Optional[UserInfo]:
        values = self._read_all_rows()

        for row in values:
            if not row:
                continue
            row_user_id = str(row[0]).strip()
            if not row_user_id:
                continue
            if row_user_id == str(user_id):
                name = str(row[1]).strip() if len(row) > 1 else ""
                currency = str(row[2]).strip().upper() if len(row) > 2 else ""
                return UserInfo(user_id=str(user_id), name=name, default_currency=currency or None)

        return None

    def create_if_not_exists(self, user_id: str, name: str) -> UserInfo:
        existing = self.get_by_id(user_id)
        if existing is not None:
            return existing

        body = {
            "values": [
                [str(user_id), name]
            ]
        }

        try:
            (
                self.service.spreadsheets()
                .values()
                .append(
                    spreadsheetId=SPREADSHEET_ID,
                    range=SHEET_USERS_RANGE,
                    valueInputOption="RAW",
                    body=body,
                )
                .execute()
            )
        except STORAGE_ERRORS as exc:
            raise DataUnavailable("cannot append to users sheet") from exc

        return UserInfo(user_id=str(user_id), name=name)
