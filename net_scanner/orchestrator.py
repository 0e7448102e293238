from __future__ import annotations

import ipaddress
import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .config import ScanConfig
from .liveness import HostProber, make_host_prober
from .models import HostProbeResult, HostRecord, PortScanResult, ScanReport, ScanState
from .scanner import PortProber, iter_jobs, probe_port, run_bounded
from .targets import expand_range

logger = logging.getLogger(__name__)

Progress = Callable[[ScanState, int, int], None]


def _address_key(address: str) -> int:
    return int(ipaddress.IPv4Address(address))


class ScanOrchestrator:
    """
    Runs one scan: expand -> probe liveness -> probe ports -> report.

    Each stage joins on all of its probes before the next one starts. Probe
    workers only return values; results are merged on the calling thread in
    address order, so the report does not depend on network timing.
    """

    def __init__(
        self,
        config: ScanConfig,
        host_prober: Optional[HostProber] = None,
        port_prober: Optional[PortProber] = None,
        progress: Optional[Progress] = None,
        reporter: Optional[Callable[[ScanReport], None]] = None,
    ):
        self.config = config
        self.host_prober = host_prober or make_host_prober(config.method)
        self.port_prober = port_prober or probe_port
        self.progress = progress
        self.reporter = reporter
        self.state = ScanState.IDLE
        self.report: Optional[ScanReport] = None
        self._cancel = threading.Event()

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def _enter(self, state: ScanState) -> None:
        logger.info("Scan state: %s -> %s", self.state.value, state.value)
        self.state = state

    def _report_progress(self, stage: ScanState, done: int, total: int) -> None:
        if self.progress is not None:
            self.progress(stage, done, total)

    def probe_liveness(self, addresses: Sequence[str]) -> Dict[str, HostProbeResult]:
        """Probe every address; only online hosts are kept, in address order."""
        total = len(addresses)
        done = 0
        timeout_s = self.config.timeout_s

        def on_done(_address: str, _result: HostProbeResult) -> None:
            nonlocal done
            done += 1
            self._report_progress(ScanState.PROBING_LIVENESS, done, total)

        online = run_bounded(
            addresses,
            lambda address: self.host_prober(address, timeout_s),
            workers=self.config.workers,
            on_done=on_done,
            cancel=self._cancel,
            keep=lambda r: r.is_online,
        )
        return {a: online[a] for a in sorted(online, key=_address_key)}

    def probe_ports(self, hosts: Sequence[str]) -> Dict[str, PortScanResult]:
        ports = self.config.ports
        timeout_s = self.config.timeout_s
        total = len(hosts)
        remaining = {h: len(ports) for h in hosts}
        hosts_done = 0

        def on_done(job: Tuple[str, int], _is_open: bool) -> None:
            nonlocal hosts_done
            address = job[0]
            remaining[address] -= 1
            if remaining[address] == 0:
                hosts_done += 1
                self._report_progress(ScanState.PROBING_PORTS, hosts_done, total)

        outcome = run_bounded(
            iter_jobs(hosts, ports),
            lambda job: self.port_prober(job[0], job[1], timeout_s),
            workers=self.config.workers,
            on_done=on_done,
            cancel=self._cancel,
            keep=bool,
        )

        return {
            h: PortScanResult(address=h, open_ports=tuple(p for p in ports if outcome.get((h, p))))
            for h in hosts
        }

    def run(self) -> ScanReport:
        started = time.time()

        self._enter(ScanState.EXPANDING)
        try:
            addresses = expand_range(self.config.target)
        except ValueError:
            self._enter(ScanState.FAILED)
            raise
        logger.info("Expanded %s to %d addresses", self.config.target, len(addresses))

        self._enter(ScanState.PROBING_LIVENESS)
        liveness = self.probe_liveness(addresses)
        online: List[str] = list(liveness)
        logger.info("%d/%d hosts online", len(online), len(addresses))

        port_results: Dict[str, PortScanResult] = {}
        if not self.cancelled:
            self._enter(ScanState.PROBING_PORTS)
            port_results = self.probe_ports(online)

        self._enter(ScanState.REPORTING)
        records = tuple(
            HostRecord(
                address=a,
                status="online",
                rtt_ms=liveness[a].rtt_ms,
                open_ports=port_results[a].open_ports if a in port_results else (),
            )
            for a in online
        )
        report = ScanReport(
            records=records,
            total_addresses=len(addresses),
            started_at=started,
            finished_at=time.time(),
            interrupted=self.cancelled,
            ports=tuple(self.config.ports),
        )
        self.report = report

        try:
            if self.reporter is not None:
                self.reporter(report)
        finally:
            # An export failure does not undo the scan.
            self._enter(ScanState.CANCELLED if self.cancelled else ScanState.DONE)
        return report
