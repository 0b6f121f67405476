#  Copyright ©  2025 SRI International.
#  This work is licensed under CC BY-NC-ND 4.0 license.
#  To view a copy of this license, visit https://creativecommons.org/licenses/by-nc-nd/4.0/
"""
Engine-side inbound configuration objects and the finalize/validate step.

An :class:`InboundConfig` is what the builders assemble; :func:`finalize` applies the
engine's schema-level acceptance rules and returns the engine-native
:class:`InboundHandlerConfig`, or raises :class:`EngineValidationError`.
"""
from dataclasses import dataclass, replace
from typing import *

from .exceptions import EngineValidationError
from .stream import StreamConfig
from .transport import SplitHTTPSettings

KNOWN_INBOUND_PROTOCOLS = frozenset({
    "trojan", "vless", "vmess", "shadowsocks", "socks", "http", "dokodemo-door", "wireguard",
})
SNIFFING_DEST_OVERRIDES = frozenset({"http", "tls", "quic", "fakedns", "fakedns+others"})
# network name -> canonical transport protocol
TRANSPORT_PROTOCOLS = {
    "tcp": "tcp", "raw": "tcp",
    "ws": "websocket", "websocket": "websocket",
    "xhttp": "splithttp", "splithttp": "splithttp",
    "grpc": "grpc", "gun": "grpc",
    "kcp": "mkcp", "mkcp": "mkcp",
    "httpupgrade": "httpupgrade",
}
XHTTP_MODES = frozenset({"auto", "packet-up", "stream-up", "stream-one"})
TCP_HEADER_TYPES = frozenset({"none", "http"})
SECURITY_MODES = frozenset({"", "none", "tls"})


@dataclass(frozen=True)
class PortRange:
    start: int
    end: int

    def to_json(self) -> int | str:
        return self.start if self.start == self.end else f"{self.start}-{self.end}"


@dataclass(frozen=True)
class SniffingConfig:
    enabled: bool = False
    dest_override: tuple[str, ...] = ()


@dataclass(frozen=True)
class TrojanClient:
    password: str
    email: str = ""
    level: int = 0

    def to_json(self) -> dict[str, Any]:
        return {"password": self.password, "email": self.email, "level": self.level}


@dataclass(frozen=True)
class TrojanSettings:
    clients: tuple[TrojanClient, ...] = ()

    def to_json(self) -> dict[str, Any]:
        return {"clients": [c.to_json() for c in self.clients]}


@dataclass(frozen=True)
class InboundConfig:
    tag: str
    protocol: str
    port_range: PortRange
    settings: TrojanSettings
    stream: StreamConfig
    sniffing: SniffingConfig = SniffingConfig()

    def build(self) -> "InboundHandlerConfig":
        return finalize(self)


@dataclass(frozen=True)
class InboundHandlerConfig:
    tag: str
    protocol: str
    port_range: PortRange
    settings: TrojanSettings
    stream: StreamConfig
    sniffing: SniffingConfig
    transport_protocol: str = "tcp"

    def with_users(self, clients: Iterable[TrojanClient]) -> "InboundHandlerConfig":
        """Return a copy carrying ``clients`` in addition to the ones already present."""
        added = tuple(clients)
        for c in added:
            _check_client(c)
        return replace(self, settings=replace(self.settings, clients=self.settings.clients + added))

    def to_json(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "protocol": self.protocol,
            "port": self.port_range.to_json(),
            "settings": self.settings.to_json(),
            "sniffing": {"enabled": self.sniffing.enabled, "destOverride": list(self.sniffing.dest_override)},
            "streamSettings": self.stream.to_json(),
        }


# ----- Validation -----
def _check_port_range(pr: PortRange) -> None:
    for p in (pr.start, pr.end):
        if isinstance(p, bool) or not isinstance(p, int) or not (1 <= p <= 65535):
            raise EngineValidationError(f"invalid port: {p!r}")
    if pr.start > pr.end:
        raise EngineValidationError(f"invalid port range: {pr.start}-{pr.end}")


def _check_client(c: TrojanClient) -> None:
    if not c.password:
        raise EngineValidationError(f"trojan: password is not specified for user {c.email!r}")


def _check_sniffing(s: SniffingConfig) -> None:
    for dest in s.dest_override:
        if dest.lower() not in SNIFFING_DEST_OVERRIDES:
            raise EngineValidationError(f"unknown protocol for sniffing: {dest}")


def _check_xhttp(settings: Optional[SplitHTTPSettings]) -> SplitHTTPSettings:
    # absent settings resolve to the zero value, including a 0-0 padding range
    xhttp = settings if settings is not None else SplitHTTPSettings()
    if xhttp.x_padding_bytes.end <= 0:
        raise EngineValidationError(f"invalid x_padding length:{xhttp.x_padding_bytes.end}")
    mode = xhttp.mode or "auto"
    if mode not in XHTTP_MODES:
        raise EngineValidationError(f"unsupported mode: {xhttp.mode}")
    return replace(xhttp, mode=mode)


def _check_stream(stream: StreamConfig) -> tuple[StreamConfig, str]:
    protocol = TRANSPORT_PROTOCOLS.get(stream.network.lower())
    if protocol is None:
        raise EngineValidationError(f"unknown transport protocol: {stream.network}")

    if protocol == "splithttp":
        stream = replace(stream, xhttp_settings=_check_xhttp(stream.xhttp_settings))
    elif protocol == "tcp" and stream.tcp_settings is not None and stream.tcp_settings.header is not None:
        header = stream.tcp_settings.header
        if not isinstance(header, dict) or header.get("type") not in TCP_HEADER_TYPES:
            raise EngineValidationError(f"unknown tcp header: {header!r}")

    security = stream.security
    if security.mode not in SECURITY_MODES:
        raise EngineValidationError(f"unknown security type: {security.mode}")
    if security.is_tls:
        if not security.certificates:
            raise EngineValidationError("tls: no certificate configured")
        for cert in security.certificates:
            if not cert.cert_file or not cert.key_file:
                raise EngineValidationError(f"tls: incomplete certificate pair: {cert!r}")
    return stream, protocol


def finalize(inbound: InboundConfig) -> InboundHandlerConfig:
    """Apply the engine's acceptance rules to an assembled inbound configuration."""
    if not inbound.tag:
        raise EngineValidationError("inbound tag must not be empty")
    _check_port_range(inbound.port_range)
    if inbound.protocol.lower() not in KNOWN_INBOUND_PROTOCOLS:
        raise EngineValidationError(f"unknown inbound protocol: {inbound.protocol}")
    for client in inbound.settings.clients:
        _check_client(client)
    _check_sniffing(inbound.sniffing)
    stream, transport_protocol = _check_stream(inbound.stream)

    return InboundHandlerConfig(tag=inbound.tag,
                                protocol=inbound.protocol.lower(),
                                port_range=inbound.port_range,
                                settings=inbound.settings,
                                stream=stream,
                                sniffing=inbound.sniffing,
                                transport_protocol=transport_protocol)
