#  Copyright ©  2025 SRI International.
#  This work is licensed under CC BY-NC-ND 4.0 license.
#  To view a copy of this license, visit https://creativecommons.org/licenses/by-nc-nd/4.0/
import structlog

from .configuration import ServiceConfiguration
from .engine import InboundConfig, InboundHandlerConfig, PortRange, SniffingConfig, TrojanSettings
from .exceptions import MissingProtocolDescriptor
from .logger import TROJANLY_LOG
from .nodeinfo import NodeInfo
from .stream import build_stream_config

PROTOCOL = "trojan"
SNIFFING_DEST_OVERRIDE = ("http", "tls")

_log = structlog.get_logger(TROJANLY_LOG)

def inbound_tag(port: int) -> str:
    return f"{PROTOCOL}_{port}"

def build_inbound(config: ServiceConfiguration, node_info: NodeInfo) -> InboundHandlerConfig:
    """Build and finalize the Trojan inbound for one node.

    Args:

      config (ServiceConfiguration): Read-only process configuration; only the
          certificate pair is consulted.

      node_info (NodeInfo): Node descriptor from the control plane. It must carry
          a Trojan sub-descriptor.

    Returns:
      :class:`~trojanly.engine.InboundHandlerConfig` with an empty client list;
      users are attached afterwards.

    Raises:
      :class:`MissingProtocolDescriptor` if ``node_info.trojan`` is missing,
      :class:`TransportSettingsError` for malformed ws/xhttp/grpc settings,
      :class:`EngineValidationError` if the engine rejects the assembled config.

    """
    if node_info.trojan is None:
        raise MissingProtocolDescriptor("node info missing Trojan config")
    trojan = node_info.trojan

    _log.debug("trojan network settings",
               port=trojan.server_port,
               network=trojan.network,
               network_settings=trojan.network_settings.decode("utf-8", errors="replace"))
    stream = build_stream_config(trojan, config)

    inbound = InboundConfig(tag=inbound_tag(trojan.server_port),
                            protocol=PROTOCOL,
                            port_range=PortRange(trojan.server_port, trojan.server_port),
                            settings=TrojanSettings(clients=()),
                            stream=stream,
                            sniffing=SniffingConfig(enabled=True, dest_override=SNIFFING_DEST_OVERRIDE))
    return inbound.build()
