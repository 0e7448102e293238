from __future__ import annotations

import ipaddress
import re
from typing import Iterator, Sequence, Union, overload

from .errors import InvalidFormat, InvalidRange

_OCTET = r"(?:25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)"
_QUAD = rf"{_OCTET}(?:\.{_OCTET}){{3}}"

_CIDR_RE = re.compile(rf"^({_QUAD})/(\d{{1,3}})$")
_RANGE_RE = re.compile(rf"^({_QUAD})\s*-\s*({_QUAD})$")
_SINGLE_RE = re.compile(rf"^({_QUAD})$")

EXPECTED = "A.B.C.D/N (CIDR, N in 0-32) or A.B.C.D-E.F.G.H (start-end)"


def _to_int(quad: str) -> int:
    return int(ipaddress.IPv4Address(quad))


def _to_str(value: int) -> str:
    return str(ipaddress.IPv4Address(value))


class AddressRange(Sequence[str]):
    """
    Immutable, ascending run of IPv4 addresses backed by an integer range.
    Addresses are only turned into strings when read, so a /8 costs no
    more memory than a /30.
    """

    __slots__ = ("_values",)

    def __init__(self, first: int, last: int):
        self._values = range(first, last + 1)

    def __len__(self) -> int:
        return len(self._values)

    @overload
    def __getitem__(self, index: int) -> str: ...

    @overload
    def __getitem__(self, index: slice) -> "AddressRange": ...

    def __getitem__(self, index: Union[int, slice]):
        if isinstance(index, slice):
            sub = self._values[index]
            if sub.step != 1:
                raise ValueError("AddressRange slices must be contiguous and ascending")
            return AddressRange(sub.start, sub.stop - 1)
        return _to_str(self._values[index])

    def __iter__(self) -> Iterator[str]:
        return (_to_str(a) for a in self._values)

    def __contains__(self, address: object) -> bool:
        try:
            return _to_int(str(address)) in self._values
        except ValueError:
            return False

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AddressRange):
            return self._values == other._values
        if isinstance(other, (tuple, list)):
            return len(other) == len(self) and all(a == b for a, b in zip(self, other))
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._values)

    def __repr__(self) -> str:
        if not self:
            return "AddressRange(empty)"
        return f"AddressRange({self[0]}-{self[-1]}, {len(self)} addresses)"


def _expand_cidr(base: str, prefix: int) -> AddressRange:
    if prefix > 32:
        raise InvalidFormat(f"Invalid CIDR prefix /{prefix}: prefix out of range (expected 0-32)")

    mask = (0xFFFFFFFF << (32 - prefix)) & 0xFFFFFFFF
    network = _to_int(base) & mask
    broadcast = network | (~mask & 0xFFFFFFFF)

    # /31 is a point-to-point link (RFC 3021): both addresses are hosts.
    # /32 is the single address.
    if prefix >= 31:
        return AddressRange(network, broadcast)

    return AddressRange(network + 1, broadcast - 1)


def _expand_span(start_s: str, end_s: str) -> AddressRange:
    start = _to_int(start_s)
    end = _to_int(end_s)
    if start > end:
        raise InvalidRange(f"Invalid range {start_s}-{end_s}: start address is greater than end address")
    return AddressRange(start, end)


def expand_range(spec: str) -> AddressRange:
    """
    Expand an address-range argument into an ordered, lazy sequence of
    IPv4 addresses.

    Supports:
      - CIDR: "192.168.1.0/24" (network and broadcast excluded)
      - Start-end: "192.168.1.1-192.168.1.254" (both endpoints kept)
      - Single IP: "192.168.1.10"
    """
    if spec is None:
        raise InvalidFormat(f"Empty address range, expected {EXPECTED}")
    spec = spec.strip()
    if not spec:
        raise InvalidFormat(f"Empty address range, expected {EXPECTED}")

    m = _CIDR_RE.match(spec)
    if m:
        return _expand_cidr(m.group(1), int(m.group(2)))

    m = _RANGE_RE.match(spec)
    if m:
        return _expand_span(m.group(1), m.group(2))

    m = _SINGLE_RE.match(spec)
    if m:
        value = _to_int(m.group(1))
        return AddressRange(value, value)

    raise InvalidFormat(f"Invalid address range '{spec}', expected {EXPECTED}")
