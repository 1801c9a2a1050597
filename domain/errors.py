# domain/errors.py


class DataUnavailable(RuntimeError):
    """
    Хранилище (затраты, пользователи, группы) недоступно или вернуло ошибку.

    Расчёт прерывается целиком: частичный результат и «нулевые» балансы
    вместо ошибки не возвращаются.
    """


class MalformedExpense(ValueError):
    """
    Запись затраты структурно некорректна
    (отрицательная сумма, суммы не сходятся, нет id и т.п.).
    """


class GroupNotFound(LookupError):
    """
    Группа с указанным id не найдена.
    """

    def __init__(self, group_id: str) -> None:
        super().__init__(f"Group {group_id!r} not found")
        self.group_id = group_id
