from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

from .errors import InvalidPortSpec, ScanError
from .liveness import METHODS
from .ports import DEFAULT_PORTS, parse_ports

FORMATS = ("csv", "json")


def load_defaults(environ: Optional[Mapping[str, str]] = None) -> Dict[str, object]:
    env = os.environ if environ is None else environ
    return {
        "PORTS": env.get("NETSCAN_PORTS", ",".join(str(p) for p in DEFAULT_PORTS)),
        "TIMEOUT_MS": env.get("NETSCAN_TIMEOUT_MS", "1000"),
        "WORKERS": env.get("NETSCAN_WORKERS", "64"),
        "METHOD": env.get("NETSCAN_METHOD", "ping"),
        "LOG_LEVEL": env.get("NETSCAN_LOG_LEVEL", "WARNING"),
    }


# Defaults, overridable from the environment; CLI flags win over both.
DEFAULTS: Dict[str, object] = load_defaults()


class ConfigError(ScanError, ValueError):
    pass


def _int_setting(name: str, value: object) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


@dataclass
class ScanConfig:
    target: str
    ports: Tuple[int, ...] = DEFAULT_PORTS
    timeout_ms: int = 1000
    workers: int = 64
    method: str = "ping"
    output: Optional[str] = None
    fmt: str = "csv"

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    def validate(self) -> "ScanConfig":
        if self.timeout_ms <= 0:
            raise ConfigError(f"Timeout must be a positive number of milliseconds, got {self.timeout_ms}")
        if self.workers < 1:
            raise ConfigError(f"Workers must be >= 1, got {self.workers}")
        if self.method not in METHODS:
            raise ConfigError(f"Unknown method {self.method!r} (expected one of {', '.join(METHODS)})")
        if self.fmt not in FORMATS:
            raise ConfigError(f"Unknown output format {self.fmt!r} (expected one of {', '.join(FORMATS)})")
        if not self.ports:
            raise InvalidPortSpec("Empty port list")
        return self


def from_env(target: str, **overrides) -> ScanConfig:
    """Build a config from DEFAULTS, applying any non-None overrides."""
    ports = overrides.pop("ports", None)
    timeout_ms = overrides.pop("timeout_ms", None)
    workers = overrides.pop("workers", None)
    method = overrides.pop("method", None)

    cfg = ScanConfig(
        target=target,
        ports=parse_ports(ports if ports is not None else str(DEFAULTS["PORTS"])),
        timeout_ms=_int_setting("timeout", timeout_ms if timeout_ms is not None else DEFAULTS["TIMEOUT_MS"]),
        workers=_int_setting("workers", workers if workers is not None else DEFAULTS["WORKERS"]),
        method=method if method is not None else str(DEFAULTS["METHOD"]),
        **{k: v for k, v in overrides.items() if v is not None},
    )
    return cfg.validate()
