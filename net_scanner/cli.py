from __future__ import annotations

import argparse
import logging
import sys

from .config import DEFAULTS, FORMATS, from_env
from .errors import ExportFailure, ScanError
from .liveness import METHODS
from .log import LEVELS, setup_logging
from .models import ScanReport, ScanState
from .orchestrator import ScanOrchestrator
from .output import print_report, save_report

EXIT_OK = 0
EXIT_EXPORT_FAILED = 1
EXIT_BAD_INPUT = 2
EXIT_INTERRUPTED = 130

_STAGE_LABELS = {
    ScanState.PROBING_LIVENESS: "Pinged",
    ScanState.PROBING_PORTS: "Port-scanned",
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Subnet scanner - find live hosts and open TCP ports")
    p.add_argument("target", help="Address range: CIDR (192.168.1.0/24) or start-end (192.168.1.1-192.168.1.254)")
    p.add_argument("--ports", default=None, help=f"Ports to probe on live hosts (default: {DEFAULTS['PORTS']})")
    p.add_argument("--timeout", type=int, default=None, help=f"Per-probe timeout in ms (default: {DEFAULTS['TIMEOUT_MS']})")
    p.add_argument("--output", "-o", default=None, help="Export the report to this file")
    p.add_argument("--format", dest="fmt", choices=FORMATS, default="csv", help="Export format (default: csv)")
    p.add_argument("--workers", type=int, default=None, help=f"Concurrent probes (default: {DEFAULTS['WORKERS']})")
    p.add_argument("--method", choices=METHODS, default=None,
                   help="Liveness probe: system ping, or raw ICMP via scapy (needs root)")
    p.add_argument("--quiet", "-q", action="store_true", help="No progress output")
    p.add_argument("--log-level", type=str.upper, choices=LEVELS, default=str(DEFAULTS["LOG_LEVEL"]).upper(),
                   help="Logging level (default: WARNING)")
    return p


class ProgressPrinter:
    def __init__(self):
        self._stage = None

    def __call__(self, stage: ScanState, done: int, total: int) -> None:
        if self._stage is not None and stage != self._stage:
            print()
        self._stage = stage
        label = _STAGE_LABELS.get(stage, stage.value)
        print(f"\r[*] {label} {done}/{total}", end="", flush=True)

    def finish(self) -> None:
        if self._stage is not None:
            print()  # newline after progress
            self._stage = None


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = from_env(
            args.target,
            ports=args.ports,
            timeout_ms=args.timeout,
            workers=args.workers,
            method=args.method,
            output=args.output,
            fmt=args.fmt,
        )
    except ScanError as e:
        print(f"[!] {e}", file=sys.stderr)
        return EXIT_BAD_INPUT

    progress = None if args.quiet else ProgressPrinter()

    def report_sink(report: ScanReport) -> None:
        if progress is not None:
            progress.finish()
        print_report(report)
        if config.output:
            path = save_report(report, config.output, fmt=config.fmt)
            print(f"Saved results to {path}")

    orchestrator = ScanOrchestrator(config, progress=progress, reporter=report_sink)
    if not args.quiet:
        print(f"[*] Range: {config.target} | Ports: {', '.join(str(p) for p in config.ports)} "
              f"| Timeout: {config.timeout_ms} ms")

    try:
        report = orchestrator.run()
    except ExportFailure as e:
        print(f"[!] Scan completed but export failed: {e}", file=sys.stderr)
        return EXIT_EXPORT_FAILED
    except ScanError as e:
        print(f"[!] {e}", file=sys.stderr)
        return EXIT_BAD_INPUT
    except KeyboardInterrupt:
        orchestrator.cancel()
        if progress is not None:
            progress.finish()
        print("[!] Interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED

    if report.interrupted:
        logging.getLogger(__name__).warning("Scan interrupted after %d online hosts", report.online_count)
        return EXIT_INTERRUPTED
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
