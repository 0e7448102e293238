from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class ScanState(Enum):
    IDLE = "idle"
    EXPANDING = "expanding"
    PROBING_LIVENESS = "probing-liveness"
    PROBING_PORTS = "probing-ports"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class HostProbeResult:
    address: str
    is_online: bool
    rtt_ms: Optional[int] = None


@dataclass(frozen=True)
class PortScanResult:
    address: str
    open_ports: Tuple[int, ...] = ()


@dataclass(frozen=True)
class HostRecord:
    address: str
    status: str
    rtt_ms: Optional[int]
    open_ports: Tuple[int, ...] = ()


@dataclass(frozen=True)
class ScanReport:
    records: Tuple[HostRecord, ...]
    total_addresses: int
    started_at: float
    finished_at: float
    interrupted: bool = False
    ports: Tuple[int, ...] = field(default=())

    @property
    def online_count(self) -> int:
        return len(self.records)

    @property
    def elapsed_s(self) -> float:
        return self.finished_at - self.started_at
