# domain/repositories.py

from typing import Protocol, Optional
from domain.models.groups import Group
from domain.models.users import UserInfo
from domain.models.expenses import Expense


class IUserRepository(Protocol):
    def get_by_id(self, user_id: str) -> Optional[UserInfo]:
        ...

    def create_if_not_exists(self, user_id: str, name: str) -> UserInfo:
        ...


class IGroupRepository(Protocol):
    """
    Контракт для чтения групп.

    Группы в этом сервисе только читаются: расчёт балансов
    берёт из них название, иконку и список участников.
    """

    def get_by_id(self, group_id: str) -> Optional[Group]:
        """
        Найти группу по идентификатору.

        Возвращает:
        - Group, если группа есть;
        - None, если такой группы нет.

        Если хранилище недоступно — DataUnavailable.
        """
        ...

    def list_for_member(self, user_id: str) -> list[Group]:
        """
        Все группы, в списке участников которых есть user_id.
        """
        ...


class IExpenseRepository(Protocol):
    """
    Контракт для работы с затратами.

    Три метода чтения соответствуют трём условиям участия пользователя
    в затрате: создал, участвует, платил. Агрегатор вызывает их параллельно
    и объединяет результат.

    Любой сбой хранилища — DataUnavailable, без частичных результатов.
    """

    def list_created_by(self, user_id: str) -> list[Expense]:
        """
        Затраты, созданные пользователем.
        """
        ...

    def list_with_participant(self, user_id: str) -> list[Expense]:
        """
        Затраты, где пользователь есть в participants.
        """
        ...

    def list_with_payer(self, user_id: str) -> list[Expense]:
        """
        Затраты, где пользователь есть в payers.
        """
        ...

    def create(self, expense: Expense) -> None:
        """
        Сохранить новую затрату.
        """
        ...
