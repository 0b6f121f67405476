#  Copyright ©  2025 SRI International.
#  This work is licensed under CC BY-NC-ND 4.0 license.
#  To view a copy of this license, visit https://creativecommons.org/licenses/by-nc-nd/4.0/
from dataclasses import dataclass
from typing import *

from .configuration import CertConfig

SecurityMode = Literal["tls", "none"]

@dataclass(frozen=True)
class TLSCertificate:
    cert_file: str
    key_file: str

    def to_json(self) -> dict[str, str]:
        return {"certificateFile": self.cert_file, "keyFile": self.key_file}

@dataclass(frozen=True)
class SecurityConfig:
    mode: SecurityMode = "none"
    certificates: tuple[TLSCertificate, ...] = ()

    @property
    def is_tls(self) -> bool:
        return self.mode == "tls"

def attach_security(cert: Optional[CertConfig]) -> SecurityConfig:
    """
    Trojan always runs over TLS once a certificate is configured, whatever the
    transport or the node asks for. The certificate pair is copied verbatim.
    """
    if cert is not None and cert.cert_file != "":
        return SecurityConfig(mode="tls",
                              certificates=(TLSCertificate(cert_file=cert.cert_file, key_file=cert.key_file),))
    return SecurityConfig(mode="none")
