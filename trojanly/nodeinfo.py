#  Copyright ©  2025 SRI International.
#  This work is licensed under CC BY-NC-ND 4.0 license.
#  To view a copy of this license, visit https://creativecommons.org/licenses/by-nc-nd/4.0/
from dataclasses import dataclass
import json
from typing import *

from .exceptions import NodeInfoError

# Control-plane documents, e.g.:
#   {"node_type": "trojan", "node_id": 7,
#    "trojan": {"server_port": 443, "network": "ws", "networkSettings": {"path": "/ws"}}}
#   [{"id": 1, "uuid": "5a1c..."}, ...]

@dataclass(frozen=True)
class TrojanNode:
    server_port: int
    network: str = "tcp"
    network_settings: bytes = b""  # opaque JSON, decoded per transport kind
    host: str = ""
    server_name: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrojanNode":
        port = data.get("server_port")
        if not isinstance(port, int) or isinstance(port, bool):
            raise NodeInfoError(f"server_port must be an integer, got {port!r}")
        network = data.get("network") or "tcp"
        if not isinstance(network, str):
            raise NodeInfoError(f"network must be a string, got {network!r}")
        raw = data.get("networkSettings", data.get("network_settings"))
        return cls(server_port=port,
                   network=network,
                   network_settings=_raw_json(raw),
                   host=str(data.get("host", "")),
                   server_name=str(data.get("server_name", "")))


def _raw_json(raw: Any) -> bytes:
    """Keep network settings opaque: strings are taken verbatim, anything else is re-serialized."""
    if raw is None:
        return b""
    if isinstance(raw, bytes):
        return raw
    if isinstance(raw, str):
        return raw.encode("utf-8")
    return json.dumps(raw, separators=(",", ":")).encode("utf-8")


@dataclass(frozen=True)
class NodeInfo:
    node_type: str = ""
    node_id: int = 0
    trojan: Optional[TrojanNode] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NodeInfo":
        if not isinstance(data, Mapping):
            raise NodeInfoError(f"node info must be a JSON object, got {type(data).__name__}")
        trojan = data.get("trojan")
        if trojan is not None and not isinstance(trojan, Mapping):
            raise NodeInfoError("trojan descriptor must be a JSON object")
        node_id = data.get("node_id", 0)
        if not isinstance(node_id, int) or isinstance(node_id, bool):
            raise NodeInfoError(f"node_id must be an integer, got {node_id!r}")
        return cls(node_type=str(data.get("node_type", "")),
                   node_id=node_id,
                   trojan=TrojanNode.from_dict(trojan) if trojan is not None else None)

    @classmethod
    def from_json(cls, doc: bytes | str) -> "NodeInfo":
        try:
            data = json.loads(doc)
        except (json.JSONDecodeError, RecursionError) as exc:
            raise NodeInfoError(f"malformed node info: {exc}") from exc
        return cls.from_dict(data)


@dataclass(frozen=True)
class UserInfo:
    id: int
    uuid: str

    @classmethod
    def list_from_json(cls, doc: bytes | str) -> list["UserInfo"]:
        try:
            data = json.loads(doc)
        except (json.JSONDecodeError, RecursionError) as exc:
            raise NodeInfoError(f"malformed user list: {exc}") from exc
        if isinstance(data, Mapping):
            data = data.get("users", [])  # accept {"users": [...]} envelopes too
        if not isinstance(data, list):
            raise NodeInfoError("user list must be a JSON array")
        try:
            return [cls(id=int(u["id"]), uuid=str(u["uuid"])) for u in data]
        except (KeyError, TypeError, ValueError) as exc:
            raise NodeInfoError(f"malformed user entry: {exc!r}") from exc
