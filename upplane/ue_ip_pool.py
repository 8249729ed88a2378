"""IPv4 address pools from which UE addresses are handed out."""

from __future__ import annotations

import ipaddress
import logging
from itertools import combinations
from typing import Iterable, Optional, Union

logger = logging.getLogger(__name__)

AddressLike = Union[str, int, bytes, ipaddress.IPv4Address, ipaddress.IPv6Address]


def _as_ipv4(value: AddressLike) -> ipaddress.IPv4Address:
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        addr = value
    else:
        addr = ipaddress.ip_address(value)
    if isinstance(addr, ipaddress.IPv6Address):
        if addr.ipv4_mapped is None:
            raise ValueError(f"{value} is not an IPv4 address")
        addr = addr.ipv4_mapped
    return addr


def _as_int(value: AddressLike) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return int(_as_ipv4(value))


class UeIPPool:
    """A CIDR block of IPv4 addresses.

    Free addresses are kept as ordered segments. Allocation takes the lowest
    address of the first segment and released addresses go to the back, so a
    freed address is reused only after the rest of the pool.
    """

    def __init__(self, cidr: str):
        try:
            network = ipaddress.ip_network(cidr, strict=False)
        except ValueError as exc:
            raise ValueError(f"invalid CIDR {cidr!r}: {exc}") from exc
        if network.version != 4:
            raise ValueError(f"only IPv4 pools are supported: {cidr!r}")
        self._subnet = network
        self._min = int(network.network_address)
        self._max = int(network.broadcast_address)
        self._free: list[list[int]] = [[self._min, self._max]]

    def __repr__(self) -> str:
        return f"UeIPPool({str(self._subnet)!r})"

    @property
    def subnet(self) -> ipaddress.IPv4Network:
        return self._subnet

    @property
    def min_value(self) -> int:
        return self._min

    @property
    def max_value(self) -> int:
        return self._max

    @property
    def remaining(self) -> int:
        """Number of addresses still free."""
        return sum(last - first + 1 for first, last in self._free)

    def allocate(self, request: Optional[AddressLike] = None) -> Optional[ipaddress.IPv4Address]:
        """Take ``request`` if given, else the next free address; ``None`` if unavailable."""
        if request is not None:
            value = _as_int(request)
            if not self._take(value):
                logger.warning("IP[%s] is used in Pool[%s]", _as_ipv4(value), self._subnet)
                return None
        else:
            if not self._free:
                logger.warning("Pool is empty: %s", self._subnet)
                return None
            head = self._free[0]
            value = head[0]
            head[0] += 1
            if head[0] > head[1]:
                self._free.pop(0)
        addr = ipaddress.IPv4Address(value)
        logger.info("Allocated UE IP address: %s", addr)
        return addr

    def _take(self, value: int) -> bool:
        for index, (first, last) in enumerate(self._free):
            if first <= value <= last:
                if first == last:
                    del self._free[index]
                elif value == first:
                    self._free[index][0] += 1
                elif value == last:
                    self._free[index][1] -= 1
                else:
                    self._free[index:index + 1] = [[first, value - 1], [value + 1, last]]
                return True
        return False

    def _is_free(self, value: int) -> bool:
        return any(first <= value <= last for first, last in self._free)

    def release(self, addr: AddressLike) -> None:
        """Return ``addr`` to the pool; a foreign or already free address is ignored."""
        value = _as_int(addr)
        if not self._min <= value <= self._max or self._is_free(value):
            logger.warning("failed to release UE Address: %s", ipaddress.IPv4Address(value))
        elif self._free and self._free[-1][1] + 1 == value:
            self._free[-1][1] = value
        else:
            self._free.append([value, value])
        logger.debug(self.dump())

    def reserve(self, first: AddressLike, last: AddressLike) -> None:
        """Remove the inclusive range ``first``..``last`` from the free addresses."""
        lo, hi = _as_int(first), _as_int(last)
        if lo > hi:
            raise ValueError(f"invalid range: {lo} > {hi}")
        if lo < self._min or hi > self._max:
            raise ValueError(
                f"range {ipaddress.IPv4Address(lo)}-{ipaddress.IPv4Address(hi)} "
                f"is outside pool {self._subnet}"
            )
        remaining: list[list[int]] = []
        for seg_first, seg_last in self._free:
            if seg_last < lo or seg_first > hi:
                remaining.append([seg_first, seg_last])
                continue
            if seg_first < lo:
                remaining.append([seg_first, lo - 1])
            if seg_last > hi:
                remaining.append([hi + 1, seg_last])
        self._free = remaining

    def exclude(self, other: UeIPPool) -> None:
        """Reserve every address of ``other`` in this pool."""
        try:
            self.reserve(other.min_value, other.max_value)
        except ValueError as exc:
            raise ValueError(f"exclude uePool fail: {exc}") from exc

    def overlaps(self, other: UeIPPool) -> bool:
        """Return True if the address ranges of the two pools intersect."""
        return self._min <= other.max_value and other.min_value <= self._max

    def contains(self, addr: AddressLike) -> bool:
        """Return True if ``addr`` lies within this pool's subnet."""
        try:
            return _as_ipv4(addr) in self._subnet
        except ValueError:
            return False

    def dump(self) -> str:
        """Describe the free segments in order."""
        parts = (
            f"{{{ipaddress.IPv4Address(first)} - {ipaddress.IPv4Address(last)}}}"
            for first, last in self._free
        )
        return "[" + "->".join(parts) + "]"


def pools_overlap(pools: Iterable[UeIPPool]) -> bool:
    """Return True if any two of ``pools`` share an address."""
    return any(a.overlaps(b) for a, b in combinations(list(pools), 2))