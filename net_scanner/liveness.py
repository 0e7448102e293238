from __future__ import annotations

import logging
import math
import platform
import re
import subprocess
import time
from typing import Callable, List, Optional

from scapy.error import Scapy_Exception
from scapy.layers.inet import ICMP, IP
from scapy.sendrecv import sr1

from .models import HostProbeResult

logger = logging.getLogger(__name__)

METHODS = ("ping", "icmp")

# Extra time the ping child gets before it is killed.
_PING_GRACE_S = 1.0

_RTT_RE = re.compile(r"time\s*[=<]\s*([\d.]+)\s*ms", re.IGNORECASE)

HostProber = Callable[[str, float], HostProbeResult]


def ping_command(address: str, timeout_s: float, system: Optional[str] = None) -> List[str]:
    system = (system or platform.system()).lower()
    timeout_ms = max(1, int(round(timeout_s * 1000)))
    if system == "windows":
        # -n 1 = one echo, -w = timeout in ms
        return ["ping", "-n", "1", "-w", str(timeout_ms), address]
    if system == "darwin":
        # BSD ping: -W is the reply wait in ms
        return ["ping", "-c", "1", "-W", str(timeout_ms), address]
    # iputils / BusyBox: -W is the reply wait in whole seconds
    return ["ping", "-c", "1", "-W", str(max(1, math.ceil(timeout_s))), address]


def parse_rtt(output: str) -> Optional[int]:
    m = _RTT_RE.search(output or "")
    if not m:
        return None
    return max(0, int(round(float(m.group(1)))))


def _elapsed_ms(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))


def ping_host(address: str, timeout_s: float) -> HostProbeResult:
    """
    One echo request through the system ping binary (no privileges needed).
    Any failure is an offline verdict, never an exception.
    """
    system = platform.system()
    cmd = ping_command(address, timeout_s, system)
    start = time.perf_counter()
    try:
        res = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout_s + _PING_GRACE_S,
        )
    except subprocess.TimeoutExpired:
        logger.debug("ping %s: timed out", address)
        return HostProbeResult(address=address, is_online=False)
    except OSError as e:
        logger.debug("ping %s: %s", address, e)
        return HostProbeResult(address=address, is_online=False)

    elapsed = _elapsed_ms(start)
    out = res.stdout or ""
    online = res.returncode == 0
    # Windows exits 0 on "Destination host unreachable" replies
    if online and system.lower() == "windows" and "TTL=" not in out.upper():
        online = False

    if not online:
        logger.debug("ping %s: no reply (rc=%s)", address, res.returncode)
        return HostProbeResult(address=address, is_online=False)

    rtt = parse_rtt(out)
    return HostProbeResult(address=address, is_online=True, rtt_ms=rtt if rtt is not None else elapsed)


def icmp_host(address: str, timeout_s: float) -> HostProbeResult:
    """
    One raw ICMP echo request sent with scapy. Needs root / CAP_NET_RAW;
    without it every host reads as offline.
    """
    packet = IP(dst=address) / ICMP(type=8, code=0)
    start = time.perf_counter()
    try:
        reply = sr1(packet, timeout=timeout_s, verbose=0)
    except (OSError, Scapy_Exception) as e:
        logger.debug("icmp %s: %s", address, e)
        return HostProbeResult(address=address, is_online=False)

    elapsed = _elapsed_ms(start)
    if reply is None or not reply.haslayer(ICMP) or reply[ICMP].type != 0:
        return HostProbeResult(address=address, is_online=False)
    return HostProbeResult(address=address, is_online=True, rtt_ms=elapsed)


def make_host_prober(method: str = "ping") -> HostProber:
    if method == "ping":
        return ping_host
    if method == "icmp":
        return icmp_host
    raise ValueError(f"Unknown liveness method: {method} (expected one of {', '.join(METHODS)})")
