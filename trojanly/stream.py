#  Copyright (c) 2025 SRI International.
#  This work is licensed under CC BY-NC-ND 4.0 license.
#  To view a copy of this license, visit https://creativecommons.org/licenses/by-nc-nd/4.0/

from dataclasses import dataclass, replace
from typing import *

from .configuration import ServiceConfiguration
from .nodeinfo import TrojanNode
from .security import SecurityConfig, attach_security
from .transport import (GRPCSettings, Int32Range, RawSettings, SplitHTTPSettings, TransportSettings,
                        WebSocketSettings, parse_transport_settings)

# The engine rejects an xhttp padding range whose upper bound is <= 0
# ("invalid x_padding length:0"), so every populated xhttp schema gets this one.
DEFAULT_X_PADDING_BYTES = Int32Range(100, 200)

@dataclass(frozen=True)
class StreamConfig:
    network: str
    security: SecurityConfig = SecurityConfig()
    # at most one of these is populated, matching ``network``
    tcp_settings: Optional[RawSettings] = None
    ws_settings: Optional[WebSocketSettings] = None
    xhttp_settings: Optional[SplitHTTPSettings] = None
    grpc_settings: Optional[GRPCSettings] = None

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {"network": self.network, "security": self.security.mode}
        if self.security.is_tls:
            out["tlsSettings"] = {"certificates": [c.to_json() for c in self.security.certificates]}
        for key, settings in (("tcpSettings", self.tcp_settings),
                              ("wsSettings", self.ws_settings),
                              ("xhttpSettings", self.xhttp_settings),
                              ("grpcSettings", self.grpc_settings)):
            if settings is not None:
                out[key] = settings.to_json()
        return out


def normalize_padding(settings: SplitHTTPSettings) -> SplitHTTPSettings:
    """Always overwrite the padding range, even one supplied by the node."""
    return replace(settings, x_padding_bytes=DEFAULT_X_PADDING_BYTES)


def _slot_for(settings: TransportSettings) -> str:
    if isinstance(settings, RawSettings):
        return "tcp_settings"
    if isinstance(settings, WebSocketSettings):
        return "ws_settings"
    if isinstance(settings, SplitHTTPSettings):
        return "xhttp_settings"
    if isinstance(settings, GRPCSettings):
        return "grpc_settings"
    raise TypeError(f"unsupported transport settings: {type(settings).__name__}")


def build_stream_config(node: TrojanNode, config: ServiceConfiguration) -> StreamConfig:
    """
    Assemble the stream settings of one Trojan inbound.

    Raises :class:`~trojanly.exceptions.TransportSettingsError` for malformed ws, xhttp
    or grpc settings; nothing partial is returned in that case.
    """
    settings = parse_transport_settings(node.network, node.network_settings)
    security = attach_security(config.cert)

    if isinstance(settings, SplitHTTPSettings):
        settings = normalize_padding(settings)

    stream = StreamConfig(network=node.network, security=security)
    if settings is not None:
        stream = replace(stream, **{_slot_for(settings): settings})
    return stream
