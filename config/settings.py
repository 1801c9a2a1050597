# config/settings.py

import os

TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")

# ID основной Google-таблицы (из URL таблицы)
GOOGLE_SPREADSHEET_ID = os.getenv("GOOGLE_SPREADSHEET_ID", "")

# Файл с ключом сервисного аккаунта
GOOGLE_SERVICE_ACCOUNT_FILE = os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE", "credentials.json")

# Названия листов и диапазоны
# Id, CreatedAt, CreatedBy, Amount, Currency, SplitType, Description, Scopes, Participants, Payers
SHEET_EXPENSES_RANGE = os.getenv("SHEET_EXPENSES_RANGE", "expenses!A2:J")
# Id, Name, Icon, Members, CreatedBy
SHEET_GROUPS_RANGE = os.getenv("SHEET_GROUPS_RANGE", "Groups!A2:E")
# userId, userName, defaultCurrency
SHEET_USERS_RANGE = os.getenv("SHEET_USERS_RANGE", "users!A2:C")

# Валюта для «упрощённого» списка, если у пользователя ещё нет балансов
DEFAULT_PRIMARY_CURRENCY = os.getenv("DEFAULT_PRIMARY_CURRENCY", "INR")

# Валюта новых затрат, созданных через бота
DEFAULT_EXPENSE_CURRENCY = os.getenv("DEFAULT_EXPENSE_CURRENCY", DEFAULT_PRIMARY_CURRENCY)

# Общий таймаут на чтение данных из хранилища для одного расчёта
STORAGE_TIMEOUT_SECONDS = float(os.getenv("STORAGE_TIMEOUT_SECONDS", "30"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
