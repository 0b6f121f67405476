#  Copyright (c) 2025 SRI International.
#  This work is licensed under CC BY-NC-ND 4.0 license.
#  To view a copy of this license, visit https://creativecommons.org/licenses/by-nc-nd/4.0/
#

from dataclasses import replace

import pytest

from trojanly.engine import (
    InboundConfig,
    PortRange,
    SniffingConfig,
    TrojanClient,
    TrojanSettings,
    finalize,
)
from trojanly.exceptions import EngineValidationError
from trojanly.security import SecurityConfig
from trojanly.stream import StreamConfig
from trojanly.transport import Int32Range, SplitHTTPSettings


def _inbound(**changes) -> InboundConfig:
    base = InboundConfig(tag="trojan_443",
                         protocol="trojan",
                         port_range=PortRange(443, 443),
                         settings=TrojanSettings(),
                         stream=StreamConfig(network="tcp"),
                         sniffing=SniffingConfig(enabled=True, dest_override=("http", "tls")))
    return replace(base, **changes)


def test_finalize_minimal_inbound():
    handler = finalize(_inbound())
    assert handler.tag == "trojan_443"
    assert handler.transport_protocol == "tcp"
    assert handler.stream.security.mode == "none"


@pytest.mark.parametrize("network, canonical", [
    ("raw", "tcp"), ("websocket", "websocket"), ("ws", "websocket"), ("gun", "grpc"), ("mkcp", "mkcp"),
])
def test_network_aliases(network, canonical):
    handler = finalize(_inbound(stream=StreamConfig(network=network)))
    assert handler.transport_protocol == canonical
    assert handler.stream.network == network


@pytest.mark.parametrize("changes, message", [
    ({"tag": ""}, "tag"),
    ({"protocol": "smtp"}, "unknown inbound protocol"),
    ({"port_range": PortRange(444, 443)}, "invalid port range"),
    ({"sniffing": SniffingConfig(enabled=True, dest_override=("ftp",))}, "sniffing"),
    ({"settings": TrojanSettings(clients=(TrojanClient(password=""),))}, "password"),
    ({"stream": StreamConfig(network="tcp", security=SecurityConfig(mode="tls"))}, "no certificate"),
    ({"stream": StreamConfig(network="tcp", security=SecurityConfig(mode="reality"))}, "unknown security"),
])
def test_finalize_rejects(changes, message):
    with pytest.raises(EngineValidationError, match=message):
        finalize(_inbound(**changes))


def test_zero_padding_is_rejected():
    stream = StreamConfig(network="xhttp", xhttp_settings=SplitHTTPSettings(path="/p"))
    with pytest.raises(EngineValidationError, match="invalid x_padding length:0"):
        finalize(_inbound(stream=stream))

    stream = replace(stream, xhttp_settings=SplitHTTPSettings(path="/p", x_padding_bytes=Int32Range(1, 1)))
    assert finalize(_inbound(stream=stream)).stream.xhttp_settings.mode == "auto"


def test_with_users_returns_new_handler():
    handler = finalize(_inbound())
    alice = TrojanClient(password="pw-alice", email="trojan_443|1|pw-alice")
    updated = handler.with_users([alice])

    assert updated.settings.clients == (alice,)
    assert handler.settings.clients == ()
    assert updated.to_json()["settings"] == {
        "clients": [{"password": "pw-alice", "email": "trojan_443|1|pw-alice", "level": 0}]
    }

    with pytest.raises(EngineValidationError):
        handler.with_users([TrojanClient(password="")])


def test_port_range_json():
    assert PortRange(443, 443).to_json() == 443
    assert PortRange(1000, 2000).to_json() == "1000-2000"
