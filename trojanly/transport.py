#  Copyright (c) 2025 SRI International.
#  This work is licensed under CC BY-NC-ND 4.0 license.
#  To view a copy of this license, visit https://creativecommons.org/licenses/by-nc-nd/4.0/

from dataclasses import dataclass, field, fields
from enum import Enum
import json
import re
import structlog
from typing import *

from .exceptions import TransportSettingsError
from .logger import TROJANLY_LOG

_log = structlog.get_logger(TROJANLY_LOG)

INT32_MIN = -2**31
INT32_MAX = 2**31 - 1


class TransportKind(Enum):
    """Wire transports with their own settings schema."""
    TCP = "tcp"      # raw stream
    WS = "ws"        # WebSocket
    XHTTP = "xhttp"  # chunked-HTTP ("split" transport)
    GRPC = "grpc"    # RPC stream

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_str(cls, s: str) -> Optional["TransportKind"]:
        """Exact match on the network name; unknown names yield None."""
        for m in cls:
            if m.value == s:
                return m
        return None


# ----- JSON value decoders (engine semantics: no implicit conversions) -----
def _json_type(v: Any) -> str:
    if v is None:
        return "null"
    if isinstance(v, bool):
        return "bool"
    if isinstance(v, (int, float)):
        return "number"
    if isinstance(v, str):
        return "string"
    if isinstance(v, list):
        return "array"
    return "object"


def _string(v: Any) -> str:
    if not isinstance(v, str):
        raise TypeError(f"cannot unmarshal {_json_type(v)} into string")
    return v


def _boolean(v: Any) -> bool:
    if not isinstance(v, bool):
        raise TypeError(f"cannot unmarshal {_json_type(v)} into bool")
    return v


def _integer(v: Any) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise TypeError(f"cannot unmarshal {_json_type(v)} into integer")
    return v


def _int32(v: Any) -> int:
    i = _integer(v)
    if not INT32_MIN <= i <= INT32_MAX:
        raise ValueError(f"integer {i} overflows int32")
    return i


def _uint32(v: Any) -> int:
    i = _integer(v)
    if not 0 <= i <= 2**32 - 1:
        raise ValueError(f"integer {i} overflows uint32")
    return i


def _string_map(v: Any) -> dict[str, str]:
    if not isinstance(v, dict):
        raise TypeError(f"cannot unmarshal {_json_type(v)} into map of strings")
    return {k: _string(val) for k, val in v.items()}


def _raw(v: Any) -> Any:
    return v


@dataclass(frozen=True)
class Int32Range:
    """Closed range ``[start, end]``; JSON form is an integer or a ``"start-end"`` string."""
    start: int = 0
    end: int = 0

    @classmethod
    def from_json(cls, v: Any) -> "Int32Range":
        if isinstance(v, str):
            parts = v.split("-")
            if len(parts) not in (1, 2):
                raise ValueError(f"invalid range string: {v!r}")
            parts = [p.strip() for p in parts]
            # plain digits only; int() would also take "+5" and "1_000"
            if not all(re.fullmatch(r"[0-9]+", p) for p in parts):
                raise ValueError(f"invalid range string: {v!r}")
            bounds = [_int32(int(p)) for p in parts]
            lo, hi = bounds[0], bounds[-1]
        elif isinstance(v, int) and not isinstance(v, bool):
            lo = hi = _int32(v)
        else:
            raise TypeError("invalid integer range, expected either string or int")
        # ranges are always kept ordered
        return cls(min(lo, hi), max(lo, hi))

    def to_json(self) -> str:
        return f"{self.start}-{self.end}"


def _json_field(key: str, decode: Callable[[Any], Any], **kwargs) -> Any:
    return field(metadata={"json": key, "decode": decode}, **kwargs)


class _JsonSettings:
    """
    Mixin for transport schemas. Field metadata names the JSON key and its decoder.
    Decoding matches keys case-insensitively and ignores unknown keys.
    """

    @classmethod
    def decode(cls, raw: bytes) -> Self:
        try:
            data = json.loads(raw)
        except RecursionError as exc:
            raise ValueError(f"settings nested too deeply: {exc}") from exc
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise TypeError(f"cannot unmarshal {_json_type(data)} into {cls.__name__}")
        by_key = {f.metadata["json"].lower(): f for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            f = by_key.get(key.lower())
            if f is None or value is None:
                continue
            try:
                kwargs[f.name] = f.metadata["decode"](value)
            except (TypeError, ValueError) as exc:
                raise type(exc)(f"field {f.metadata['json']!r}: {exc}") from exc
        return cls(**kwargs)

    def to_json(self) -> dict[str, Any]:
        """Engine JSON form; fields still at their default are omitted."""
        out: dict[str, Any] = {}
        for f in fields(self):
            v = getattr(self, f.name)
            default = f.default_factory() if callable(f.default_factory) else f.default
            if v == default:
                continue
            out[f.metadata["json"]] = v.to_json() if isinstance(v, Int32Range) else v
        return out


# ----- Per-transport schemas -----
@dataclass(frozen=True)
class RawSettings(_JsonSettings):
    header: Any = _json_field("header", _raw, default=None)
    accept_proxy_protocol: bool = _json_field("acceptProxyProtocol", _boolean, default=False)


@dataclass(frozen=True)
class WebSocketSettings(_JsonSettings):
    host: str = _json_field("host", _string, default="")
    path: str = _json_field("path", _string, default="")
    headers: Mapping[str, str] = _json_field("headers", _string_map, default_factory=dict)
    accept_proxy_protocol: bool = _json_field("acceptProxyProtocol", _boolean, default=False)
    heartbeat_period: int = _json_field("heartbeatPeriod", _uint32, default=0)


@dataclass(frozen=True)
class SplitHTTPSettings(_JsonSettings):
    host: str = _json_field("host", _string, default="")
    path: str = _json_field("path", _string, default="")
    mode: str = _json_field("mode", _string, default="")
    headers: Mapping[str, str] = _json_field("headers", _string_map, default_factory=dict)
    x_padding_bytes: Int32Range = _json_field("xPaddingBytes", Int32Range.from_json, default=Int32Range())
    no_grpc_header: bool = _json_field("noGRPCHeader", _boolean, default=False)
    no_sse_header: bool = _json_field("noSSEHeader", _boolean, default=False)
    sc_max_each_post_bytes: Optional[Int32Range] = _json_field("scMaxEachPostBytes", Int32Range.from_json,
                                                               default=None)
    sc_min_posts_interval_ms: Optional[Int32Range] = _json_field("scMinPostsIntervalMs", Int32Range.from_json,
                                                                 default=None)
    sc_max_buffered_posts: int = _json_field("scMaxBufferedPosts", _integer, default=0)
    sc_stream_up_server_secs: Optional[Int32Range] = _json_field("scStreamUpServerSecs", Int32Range.from_json,
                                                                 default=None)
    xmux: Any = _json_field("xmux", _raw, default=None)
    download_settings: Any = _json_field("downloadSettings", _raw, default=None)
    extra: Any = _json_field("extra", _raw, default=None)


@dataclass(frozen=True)
class GRPCSettings(_JsonSettings):
    authority: str = _json_field("authority", _string, default="")
    service_name: str = _json_field("serviceName", _string, default="")
    multi_mode: bool = _json_field("multiMode", _boolean, default=False)
    idle_timeout: int = _json_field("idle_timeout", _int32, default=0)
    health_check_timeout: int = _json_field("health_check_timeout", _int32, default=0)
    permit_without_stream: bool = _json_field("permit_without_stream", _boolean, default=False)
    initial_windows_size: int = _json_field("initial_windows_size", _int32, default=0)
    user_agent: str = _json_field("user_agent", _string, default="")


TransportSettings: TypeAlias = RawSettings | WebSocketSettings | SplitHTTPSettings | GRPCSettings


def _decode_strict(kind: TransportKind, schema: type[_JsonSettings], raw: bytes) -> TransportSettings:
    try:
        return schema.decode(raw)
    except (TypeError, ValueError) as exc:  # json.JSONDecodeError is a ValueError
        raise TransportSettingsError(str(kind), str(exc)) from exc


def parse_transport_settings(network: str, raw: bytes) -> Optional[TransportSettings]:
    """
    Decode the opaque settings blob for ``network`` into its typed schema.

    Returns None when the blob is empty, when the network has no schema, or when
    raw-stream (tcp) settings are malformed: raw-stream parse errors are logged and
    ignored while every other transport raises :class:`TransportSettingsError`.
    """
    kind = TransportKind.from_str(network)
    if kind is None:
        _log.debug("no transport settings schema", network=network)
        return None
    if len(raw) == 0:
        return None

    match kind:
        case TransportKind.TCP:
            try:
                return RawSettings.decode(raw)
            except (TypeError, ValueError) as exc:
                # TODO: unify with the other transports once raw-stream leniency is confirmed unwanted
                _log.warning("ignoring malformed tcp settings", error=str(exc))
                return None
        case TransportKind.WS:
            return _decode_strict(kind, WebSocketSettings, raw)
        case TransportKind.XHTTP:
            return _decode_strict(kind, SplitHTTPSettings, raw)
        case TransportKind.GRPC:
            return _decode_strict(kind, GRPCSettings, raw)
        case _:
            assert_never(kind)
