from __future__ import annotations

from typing import List, Tuple

from .errors import InvalidPortSpec

DEFAULT_PORTS: Tuple[int, ...] = (22, 80, 443, 3389, 5985)


def _port(value: str, part: str) -> int:
    try:
        p = int(value)
    except ValueError:
        raise InvalidPortSpec(f"Invalid port: {part!r}") from None
    if p < 1 or p > 65535:
        raise InvalidPortSpec(f"Port out of range (1-65535): {p}")
    return p


def parse_ports(spec: str) -> Tuple[int, ...]:
    """
    Parses a port specification string into a tuple of ports.
    Supports:
    - Single ports: "80"
    - Ranges: "8000-8010"
    - Comma-separated: "22,80,443"
    - Mixed: "22,80,8000-8010"

    Input order is kept; a port listed twice is only probed once.
    """
    spec = (spec or "").strip()
    if not spec:
        raise InvalidPortSpec("Empty port spec")

    ports: List[int] = []
    for part in spec.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start_s, end_s = part.split("-", 1)
            start = _port(start_s.strip(), part)
            end = _port(end_s.strip(), part)
            if start > end:
                raise InvalidPortSpec(f"Invalid port range: {part}")
            ports.extend(range(start, end + 1))
        else:
            ports.append(_port(part, part))

    if not ports:
        raise InvalidPortSpec("Empty port spec")

    # De-dupe, keep input order
    return tuple(dict.fromkeys(ports))
