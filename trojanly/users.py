#  Copyright ©  2025 SRI International.
#  This work is licensed under CC BY-NC-ND 4.0 license.
#  To view a copy of this license, visit https://creativecommons.org/licenses/by-nc-nd/4.0/
from dataclasses import dataclass
from typing import *

from .engine import TrojanClient
from .nodeinfo import UserInfo

@dataclass(frozen=True)
class TrojanAccount:
    password: str

@dataclass(frozen=True)
class User:
    email: str
    account: TrojanAccount
    level: int = 0

    def to_client(self) -> TrojanClient:
        return TrojanClient(password=self.account.password, email=self.email, level=self.level)

def build_user_email(tag: str, uid: int, uuid: str) -> str:
    return f"{tag}|{uid}|{uuid}"

def build_users(tag: str, user_infos: Iterable[UserInfo]) -> list[User]:
    """The user's uuid doubles as the Trojan password."""
    return [User(email=build_user_email(tag, u.id, u.uuid), account=TrojanAccount(password=u.uuid))
            for u in user_infos]
