"""S-NSSAI values and the per-slice DNN information held for UPFs and the SMF."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Union

if TYPE_CHECKING:
    from upplane.ue_ip_pool import UeIPPool

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


@dataclass
class SNssai:
    """Single network slice selection assistance information."""

    sst: int
    sd: str = ""

    def matches(self, other: Any) -> bool:
        """Return True if ``other`` has the same SST and (case-insensitively) the same SD."""
        return self.sst == other.sst and self.sd.casefold() == other.sd.casefold()


@dataclass
class DnnUPFInfoItem:
    """What a UPF offers for one DNN within a slice."""

    dnn: str
    dnai_list: list[str] = field(default_factory=list)
    pdu_session_types: list[str] = field(default_factory=list)
    ue_ip_pools: list[UeIPPool] = field(default_factory=list)
    static_ip_pools: list[UeIPPool] = field(default_factory=list)

    def contains_dnai(self, dnai: str) -> bool:
        """Return True if this DNN serves ``dnai``; an empty DNAI matches an empty list."""
        if not dnai:
            return not self.dnai_list
        return dnai in self.dnai_list

    def contains_ip(self, ip: Optional[Union[str, IPAddress]]) -> bool:
        """Return True if ``ip`` lies in one of the dynamic pools; ``None`` always matches."""
        if ip is None:
            return True
        return any(pool.contains(ip) for pool in self.ue_ip_pools)


@dataclass
class SnssaiUPFInfo:
    """A slice supported by a UPF and the DNNs it serves in that slice."""

    snssai: SNssai
    dnn_list: list[DnnUPFInfoItem] = field(default_factory=list)


@dataclass
class DNS:
    """DNS server addresses handed to UEs."""

    ipv4_addr: Optional[ipaddress.IPv4Address] = None
    ipv6_addr: Optional[ipaddress.IPv6Address] = None


@dataclass
class PCSCF:
    """P-CSCF address handed to UEs."""

    ipv4_addr: Optional[ipaddress.IPv4Address] = None


@dataclass
class SnssaiSmfDnnInfo:
    """SMF information for one DNN within a slice."""

    dns: DNS = field(default_factory=DNS)
    pcscf: PCSCF = field(default_factory=PCSCF)


@dataclass
class SnssaiSmfInfo:
    """SMF information for one slice, keyed by DNN."""

    snssai: SNssai
    dnn_infos: dict[str, SnssaiSmfDnnInfo] = field(default_factory=dict)