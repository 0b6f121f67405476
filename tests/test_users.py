#  Copyright (c) 2025 SRI International.
#  This work is licensed under CC BY-NC-ND 4.0 license.
#  To view a copy of this license, visit https://creativecommons.org/licenses/by-nc-nd/4.0/
#

from trojanly.engine import TrojanClient
from trojanly.nodeinfo import UserInfo
from trojanly.users import TrojanAccount, User, build_user_email, build_users


def test_user_email_format():
    assert build_user_email("trojan_443", 7, "0b7e1c2a") == "trojan_443|7|0b7e1c2a"


def test_build_users_keeps_order_and_uses_uuid_as_password():
    infos = [UserInfo(id=2, uuid="uuid-b"), UserInfo(id=1, uuid="uuid-a")]
    users = build_users("trojan_8443", infos)

    assert users == [
        User(email="trojan_8443|2|uuid-b", account=TrojanAccount(password="uuid-b")),
        User(email="trojan_8443|1|uuid-a", account=TrojanAccount(password="uuid-a")),
    ]
    assert all(u.level == 0 for u in users)


def test_build_users_empty():
    assert build_users("trojan_443", []) == []


def test_user_to_client():
    user = build_users("trojan_443", [UserInfo(id=5, uuid="secret")])[0]
    assert user.to_client() == TrojanClient(password="secret", email="trojan_443|5|secret", level=0)
