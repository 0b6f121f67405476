#  Copyright ©  2025 SRI International.
#  This work is licensed under CC BY-NC-ND 4.0 license.
#  To view a copy of this license, visit https://creativecommons.org/licenses/by-nc-nd/4.0/
import os
import structlog
import trio
from typing import *

from .configuration import ServiceConfiguration
from .engine import InboundHandlerConfig
from .inbound import build_inbound
from .logger import TROJANLY_LOG
from .nodeinfo import NodeInfo, UserInfo
from .users import build_users

PathT: TypeAlias = str | os.PathLike[str]

_log = structlog.get_logger(TROJANLY_LOG)

async def read_documents(paths: Sequence[PathT]) -> list[bytes]:
    """Read all documents concurrently; results keep the order of ``paths``."""
    results: list[bytes] = [b""] * len(paths)

    async def _read(index: int, path: PathT) -> None:
        results[index] = await trio.Path(path).read_bytes()

    async with trio.open_nursery() as nursery:
        for i, p in enumerate(paths):
            nursery.start_soon(_read, i, p)
    return results

async def load_node_infos(paths: Sequence[PathT]) -> list[NodeInfo]:
    return [NodeInfo.from_json(doc) for doc in await read_documents(paths)]

async def load_users(path: PathT) -> list[UserInfo]:
    return UserInfo.list_from_json(await trio.Path(path).read_bytes())

def build_inbounds(config: ServiceConfiguration,
                   node_infos: Iterable[NodeInfo],
                   user_infos: Sequence[UserInfo] = ()) -> list[InboundHandlerConfig]:
    """
    Build every node independently against the same read-only configuration.
    The first failing node aborts the batch.
    """
    handlers = []
    for node_info in node_infos:
        handler = build_inbound(config, node_info)
        if user_infos:
            handler = handler.with_users(u.to_client() for u in build_users(handler.tag, user_infos))
        _log.info("built inbound", tag=handler.tag, network=handler.stream.network,
                  security=handler.stream.security.mode, clients=len(handler.settings.clients))
        handlers.append(handler)
    return handlers

async def run(config: ServiceConfiguration,
              node_paths: Sequence[PathT],
              users_path: Optional[PathT] = None) -> list[InboundHandlerConfig]:
    node_infos = await load_node_infos(node_paths)
    user_infos = await load_users(users_path) if users_path is not None else []
    return build_inbounds(config, node_infos, user_infos)
