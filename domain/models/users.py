from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class UserInfo:
    user_id: str
    name: str
    default_currency: Optional[str] = None
