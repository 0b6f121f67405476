#  Copyright (c) 2025 SRI International.
#  This work is licensed under CC BY-NC-ND 4.0 license.
#  To view a copy of this license, visit https://creativecommons.org/licenses/by-nc-nd/4.0/

import json
import textwrap

import pytest

from trojanly.cli import main
from trojanly.exceptions import MissingProtocolDescriptor
from trojanly.nodeinfo import NodeInfo, UserInfo
from trojanly.service import build_inbounds, load_node_infos, read_documents, run
from .tutils import NO_CERT, WITH_CERT, node_info

NODES = {
    "ws.json": {"trojan": {"server_port": 443, "network": "ws", "networkSettings": {"path": "/ws"}}},
    "xhttp.json": {"trojan": {"server_port": 8443, "network": "xhttp",
                              "networkSettings": {"path": "/GunService", "mode": "stream-up"}}},
    "grpc.json": {"trojan": {"server_port": 2053, "network": "grpc",
                             "networkSettings": {"serviceName": "GunService"}}},
}
USERS = [{"id": 1, "uuid": "uuid-1"}, {"id": 2, "uuid": "uuid-2"}]


def _write_nodes(tmp_path) -> list[str]:
    paths = []
    for name, doc in NODES.items():
        p = tmp_path / name
        p.write_text(json.dumps(doc), encoding="utf-8")
        paths.append(str(p))
    return paths


def _write_users(tmp_path) -> str:
    p = tmp_path / "users.json"
    p.write_text(json.dumps(USERS), encoding="utf-8")
    return str(p)


async def test_read_documents_keeps_order(tmp_path):
    paths = _write_nodes(tmp_path)
    docs = await read_documents(paths)
    assert [json.loads(d) for d in docs] == list(NODES.values())


async def test_load_node_infos(tmp_path):
    infos = await load_node_infos(_write_nodes(tmp_path))
    assert [i.trojan.server_port for i in infos] == [443, 8443, 2053]
    assert [i.trojan.network for i in infos] == ["ws", "xhttp", "grpc"]


async def test_run_builds_every_node_with_users(tmp_path):
    handlers = await run(WITH_CERT, _write_nodes(tmp_path), _write_users(tmp_path))
    assert [h.tag for h in handlers] == ["trojan_443", "trojan_8443", "trojan_2053"]
    for h in handlers:
        assert h.stream.security.mode == "tls"
        assert [c.email for c in h.settings.clients] == [f"{h.tag}|1|uuid-1", f"{h.tag}|2|uuid-2"]
        assert [c.password for c in h.settings.clients] == ["uuid-1", "uuid-2"]


async def test_run_without_users(tmp_path):
    handlers = await run(NO_CERT, _write_nodes(tmp_path))
    assert all(h.settings.clients == () for h in handlers)
    assert all(h.stream.security.mode == "none" for h in handlers)


def test_build_inbounds_stops_at_first_failure():
    nodes = [node_info("ws", '{"path": "/ws"}'), NodeInfo(node_type="vmess")]
    with pytest.raises(MissingProtocolDescriptor):
        build_inbounds(WITH_CERT, nodes, [UserInfo(1, "a")])


def test_cli_writes_inbounds(tmp_path):
    config = tmp_path / "trojanly.toml"
    config.write_text(textwrap.dedent("""
        [cert]
        cert_file = "/etc/ssl/cert.pem"
        key_file = "/etc/ssl/key.pem"
    """).strip(), encoding="utf-8")
    out = tmp_path / "inbounds.json"

    status = main([*_write_nodes(tmp_path), "-c", str(config), "--users", _write_users(tmp_path),
                   "-o", str(out)])
    assert status == 0

    inbounds = json.loads(out.read_text(encoding="utf-8"))["inbounds"]
    assert [i["tag"] for i in inbounds] == ["trojan_443", "trojan_8443", "trojan_2053"]
    xhttp = inbounds[1]["streamSettings"]
    assert xhttp["security"] == "tls"
    assert xhttp["xhttpSettings"] == {"path": "/GunService", "mode": "stream-up", "xPaddingBytes": "100-200"}
    assert len(inbounds[0]["settings"]["clients"]) == 2


def test_cli_reports_missing_node_file(tmp_path):
    assert main([str(tmp_path / "missing.json")]) == 1


def test_cli_reports_malformed_settings(tmp_path, capsys):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"trojan": {"server_port": 443, "network": "ws",
                                          "networkSettings": "{broken"}}), encoding="utf-8")
    assert main([str(bad)]) == 1
    assert capsys.readouterr().out == ""
