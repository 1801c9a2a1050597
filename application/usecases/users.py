# application/usecases/users.py

from dataclasses import dataclass
from typing import Optional

from config.settings import DEFAULT_EXPENSE_CURRENCY
from domain.models.groups import Group
from domain.models.users import UserInfo
from domain.repositories import IGroupRepository, IUserRepository


@dataclass
class UserService:
    """
    Сервис (use-case слой) для работы с пользователями и их группами.

    Здесь нет ничего про Google Sheets — только вызовы репозиториев.
    """

    user_repo: IUserRepository
    group_repo: IGroupRepository

    def ensure_user_exists(self, user_id: str, name: str) -> UserInfo:
        """
        Если пользователя ещё нет в листе users, добавить его.
        """
        return self.user_repo.create_if_not_exists(user_id, name)

    def get_user(self, user_id: str) -> Optional[UserInfo]:
        return self.user_repo.get_by_id(user_id)

    def display_name(self, user_id: str) -> str:
        """
        Имя пользователя для отчётов. Если имени нет — показываем id.
        """
        user_info = self.user_repo.get_by_id(user_id)
        if user_info is not None and user_info.name:
            return user_info.name
        return f"Пользователь {user_id}"

    def expense_currency(self, user_id: str) -> str:
        """
        Валюта новых затрат пользователя: его defaultCurrency из листа users,
        а если она не задана, то DEFAULT_EXPENSE_CURRENCY из настроек.
        """
        user_info = self.get_user(user_id)
        if user_info is not None and user_info.default_currency:
            return user_info.default_currency
        return DEFAULT_EXPENSE_CURRENCY

    def list_user_groups(self, user_id: str) -> list[Group]:
        """
        Группы, в которых состоит пользователь.
        """
        return self.group_repo.list_for_member(user_id)
