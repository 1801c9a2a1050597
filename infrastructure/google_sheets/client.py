# infrastructure/google_sheets/client.py

import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from google.oauth2.service_account import Credentials
from config.settings import GOOGLE_SPREADSHEET_ID, GOOGLE_SERVICE_ACCOUNT_FILE

from domain.errors import DataUnavailable

# Область доступа: чтение и запись в Google Sheets
SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

# Ошибки, после которых считаем таблицу недоступной.
STORAGE_ERRORS = (HttpError, httplib2.HttpLib2Error, GoogleAuthError, OSError)


def get_sheets_service():
    """
    Создаёт и возвращает клиент Google Sheets API.

    Требуется:
    - файл с ключом сервисного аккаунта (GOOGLE_SERVICE_ACCOUNT_FILE);
    - таблица, доступ к которой выдан сервисному аккаунту.

    Если ключ не удаётся прочитать — DataUnavailable.
    """
    try:
        creds = Credentials.from_service_account_file(GOOGLE_SERVICE_ACCOUNT_FILE, scopes=SCOPES)
    except (OSError, ValueError, GoogleAuthError) as exc:
        raise DataUnavailable(f"cannot load service account file {GOOGLE_SERVICE_ACCOUNT_FILE!r}") from exc
    service = build("sheets", "v4", credentials=creds, cache_discovery=False)
    return service


# ID таблицы будем использовать из настроек
SPREADSHEET_ID = GOOGLE_SPREADSHEET_ID
