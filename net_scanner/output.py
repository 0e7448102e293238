from __future__ import annotations

import csv
import json
import os
from typing import Dict, List, Optional, TextIO

from .errors import ExportFailure
from .models import HostRecord, ScanReport

CSV_FIELDS = ["IPAddress", "Status", "ResponseTime", "OpenPorts"]


def join_ports(ports) -> str:
    return ", ".join(str(p) for p in ports)


def format_row(r: HostRecord) -> str:
    rtt = f"{r.rtt_ms} ms" if r.rtt_ms is not None else "n/a"
    ports = join_ports(r.open_ports) or "none"
    return f"Host: {r.address} | {r.status} ({rtt}) | Open ports: {ports}"


def print_report(report: ScanReport, stream: Optional[TextIO] = None) -> None:
    print(
        f"Found {report.online_count} online hosts out of {report.total_addresses} addresses "
        f"({report.elapsed_s:.1f}s)",
        file=stream,
    )
    if report.ports:
        print(f"Ports probed: {join_ports(report.ports)}", file=stream)
    if report.interrupted:
        print("[!] Scan was interrupted; results are partial", file=stream)

    for r in report.records:
        print(format_row(r), file=stream)


def csv_rows(report: ScanReport) -> List[Dict[str, str]]:
    return [
        {
            "IPAddress": r.address,
            "Status": r.status,
            "ResponseTime": "" if r.rtt_ms is None else str(r.rtt_ms),
            "OpenPorts": join_ports(r.open_ports),
        }
        for r in report.records
    ]


def save_report(report: ScanReport, path: str, fmt: str = "csv") -> str:
    """
    Write the report to `path`. Any filesystem error is raised as
    ExportFailure; the report itself is left untouched.
    """
    try:
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)

        if fmt == "csv":
            with open(path, "w", newline="", encoding="utf-8") as f:
                w = csv.DictWriter(f, fieldnames=CSV_FIELDS)
                w.writeheader()
                w.writerows(csv_rows(report))

        elif fmt == "json":
            payload = [
                {
                    "address": r.address,
                    "status": r.status,
                    "response_time_ms": r.rtt_ms,
                    "open_ports": list(r.open_ports),
                }
                for r in report.records
            ]
            with open(path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)

        else:
            raise ValueError(f"Unsupported format: {fmt}")
    except OSError as e:
        raise ExportFailure(path, e) from e

    return path


def load_csv(path: str) -> List[Dict[str, str]]:
    with open(path, newline="", encoding="utf-8") as f:
        return [dict(row) for row in csv.DictReader(f)]
