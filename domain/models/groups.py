from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Group:
    """
    Модель группы.

    Поля:
    - id: строковый идентификатор группы;
    - name: название, которое видят пользователи;
    - icon: иконка (эмодзи или URL), может отсутствовать;
    - members: user_id участников группы;
    - created_by: кто создал группу.
    """

    id: str
    name: str = ""
    icon: Optional[str] = None
    members: tuple[str, ...] = field(default_factory=tuple)
    created_by: str = ""
