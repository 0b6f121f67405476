#  Copyright ©  2025 SRI International.
#  This work is licensed under CC BY-NC-ND 4.0 license.
#  To view a copy of this license, visit https://creativecommons.org/licenses/by-nc-nd/4.0/

class TrojanlyError(Exception):
    """Base class for all inbound building errors."""
    pass

class MissingProtocolDescriptor(TrojanlyError):
    """Raised when a node descriptor carries no Trojan sub-descriptor."""
    pass

class NodeInfoError(TrojanlyError):
    """Raised when a control-plane node or user document cannot be decoded."""
    pass

class TransportSettingsError(TrojanlyError):
    def __init__(self, network: str, reason_phrase: str):
        super().__init__(f"unmarshal {network} config error: {reason_phrase}")
        self.network = network
        self.reason_phrase = reason_phrase

class EngineValidationError(TrojanlyError):
    """Raised when the engine's finalize step rejects an assembled inbound configuration."""
    pass
