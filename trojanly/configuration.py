#  Copyright (c) 2025 SRI International.
#  This work is licensed under CC BY-NC-ND 4.0 license.
#  To view a copy of this license, visit https://creativecommons.org/licenses/by-nc-nd/4.0/

from dataclasses import dataclass, fields, replace
from importlib.resources import files as ir_files  # py311+
import os
from pathlib import Path
import tomllib  # py311+
from typing import *

LOGGING_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ----- Small utilities -----
def _deep_update(dst: dict, src: Mapping) -> dict:
    for k, v in src.items():
        if isinstance(v, Mapping) and isinstance(dst.get(k), dict):
            _deep_update(dst[k], v)
        else:
            dst[k] = v
    return dst


def _coerce_scalar(s: str) -> Any:
    t = s.strip()
    low = t.lower()
    if low in {"true", "false"}:
        return low == "true"
    try:
        if t.isdecimal() or (t.startswith("-") and t[1:].isdecimal()):
            return int(t)
        return float(t)
    except ValueError:
        return t


def env_to_mapping(prefix: str, sep: str = "__", coerce: bool = True) -> dict[str, Any]:
    """
    TROJANLY__LOGGING_LEVEL=DEBUG             -> {"logging_level": "DEBUG"}
    TROJANLY_CERT__CERT_FILE=/etc/ssl/a.pem   -> {"cert_file": "/etc/ssl/a.pem"}

    With ``coerce=False`` values stay strings (file paths such as ``1e3``).
    """
    n = len(prefix)
    out: dict[str, Any] = {}
    for k, v in os.environ.items():
        if not k.startswith(prefix):
            continue
        parts = k[n:].split(sep)
        key = parts[-1].strip().lower()
        out[key] = _coerce_scalar(v) if coerce else v
    return out


# ----- TOML loader (CWD, absolute, or package resource) -----
def _load_toml(path: str) -> dict:
    """
    Load TOML from:
      1) absolute path or existing CWD-relative path
      2) package resource next to this module (preferred for installed/wheel)
      3) filesystem path relative to this file
    """
    p = Path(path)
    if p.is_absolute() or p.exists():
        with p.open("rb") as f:
            return tomllib.load(f)
    pkg = __package__ or __name__.rpartition(".")[0]
    try:
        res = ir_files(pkg).joinpath(path)
        if res.is_file():
            data = res.read_bytes()
            return tomllib.loads(data.decode("utf-8"))
    except (ModuleNotFoundError, TypeError):
        pass
    here = Path(__file__).resolve().parent / path
    if here.exists():
        with here.open("rb") as f:
            return tomllib.load(f)
    raise FileNotFoundError(path)


# ----- Certificate files -----
@dataclass(frozen=True)
class CertConfig:
    cert_file: str = ""
    key_file: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CertConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{k: str(v) for k, v in data.items() if k in known})


# ----- ServiceConfiguration -----
@dataclass(frozen=True)
class ServiceConfiguration:
    """
    Process-wide configuration handed explicitly to every builder.
    Never mutated during a build; use ``dataclasses.replace`` to derive variants.
    """
    logging_level: str = "INFO"
    json_logs: bool = False
    cert: Optional[CertConfig] = None

    def __post_init__(self):
        if str(self.logging_level).upper() not in LOGGING_LEVELS:
            raise ValueError(f"logging_level must be one of {LOGGING_LEVELS}: {self.logging_level!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ServiceConfiguration":
        """Build from a (merged) mapping. Unknown keys are ignored."""
        conf = cls()
        top = {k: v for k, v in data.items() if k != "cert" and hasattr(conf, k)}
        if top:
            conf = replace(conf, **top)
        if isinstance(data.get("cert"), Mapping):
            conf = replace(conf, cert=CertConfig.from_mapping(data["cert"]))
        return conf

    @classmethod
    def load(cls,
             toml_path: Optional[str] = None,
             defaults_path: str = "defaults.toml",
             env_prefix_top: str = "TROJANLY__",        # top-level env
             env_prefix_cert: str = "TROJANLY_CERT__",  # [cert] env
             runtime_overrides: Optional[Mapping[str, Any]] = None,
    ) -> "ServiceConfiguration":
        # 1) version-controlled TOML defaults
        data = _load_toml(defaults_path)

        # 2) Apply TOML file (top-level keys + [cert])
        if toml_path:
            _deep_update(data, _load_toml(toml_path))

        # 3) ENV overrides
        top_env = env_to_mapping(env_prefix_top)
        if top_env:
            _deep_update(data, top_env)
        cert_env = env_to_mapping(env_prefix_cert, coerce=False)
        if cert_env:
            _deep_update(data, {"cert": cert_env})

        # 4) runtime overrides
        if runtime_overrides:
            _deep_update(data, runtime_overrides)

        return cls.from_mapping(data)
