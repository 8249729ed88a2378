"""UPF contexts held by the SMF: node IDs, interfaces, association state and a registry."""

from __future__ import annotations

import ipaddress
import logging
import socket
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Iterable, Iterator, Optional, Union

from upplane.config import InterfaceUpfInfoItem
from upplane.snssai import SNssai, SnssaiUPFInfo

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

PFCP_PORT = 8805


class NotAssociatedError(RuntimeError):
    """Raised when a UPF is used before a PFCP association is set up."""


class NodeIdType(IntEnum):
    IPV4_ADDRESS = 0
    IPV6_ADDRESS = 1
    FQDN = 2


def _resolve(name: str) -> Optional[IPAddress]:
    if not name:
        return None
    try:
        infos = socket.getaddrinfo(name, None)
    except (OSError, UnicodeError):
        return None
    addresses: list[IPAddress] = []
    for info in infos:
        try:
            addresses.append(ipaddress.ip_address(str(info[4][0]).split("%", 1)[0]))
        except ValueError:
            continue
    if not addresses:
        return None
    return next((a for a in addresses if a.version == 4), addresses[0])


def _to_v4(addr: Optional[IPAddress]) -> Optional[ipaddress.IPv4Address]:
    if addr is None:
        return None
    if isinstance(addr, ipaddress.IPv4Address):
        return addr
    return addr.ipv4_mapped


def _to_v6(addr: IPAddress) -> ipaddress.IPv6Address:
    if isinstance(addr, ipaddress.IPv6Address):
        return addr
    return ipaddress.IPv6Address(f"::ffff:{addr}")


@dataclass(frozen=True)
class NodeID:
    """PFCP node identity: an IPv4 or IPv6 address, or an FQDN."""

    type: NodeIdType
    ip: Optional[IPAddress] = None
    fqdn: str = ""

    @classmethod
    def from_string(cls, value: str) -> NodeID:
        """Classify ``value`` as IPv4 (including v4-mapped), IPv6, or otherwise FQDN."""
        try:
            addr = ipaddress.ip_address(value)
        except ValueError:
            return cls(NodeIdType.FQDN, fqdn=value)
        v4 = _to_v4(addr)
        if v4 is not None:
            return cls(NodeIdType.IPV4_ADDRESS, ip=v4)
        return cls(NodeIdType.IPV6_ADDRESS, ip=addr)

    def resolve_ip(self) -> Optional[IPAddress]:
        """Return the address of this node, resolving an FQDN; ``None`` if it cannot."""
        if self.type is NodeIdType.FQDN:
            return _resolve(self.fqdn)
        return self.ip

    def __str__(self) -> str:
        return self.fqdn if self.type is NodeIdType.FQDN else str(self.ip)


class PduSessionType(IntEnum):
    IPV4 = 1
    IPV6 = 2
    IPV4V6 = 3
    UNSTRUCTURED = 4
    ETHERNET = 5


class UpInterfaceType(str, Enum):
    N3 = "N3"
    N9 = "N9"


@dataclass
class UPFInterfaceInfo:
    """Endpoints and network instances of one UPF interface."""

    network_instances: list[str] = field(default_factory=list)
    ipv4_endpoints: list[ipaddress.IPv4Address] = field(default_factory=list)
    ipv6_endpoints: list[ipaddress.IPv6Address] = field(default_factory=list)
    endpoint_fqdn: str = ""

    @classmethod
    def from_config(cls, item: InterfaceUpfInfoItem) -> UPFInterfaceInfo:
        """Sort the configured endpoints into IPv4, IPv6 and FQDN (the last one wins)."""
        info = cls(network_instances=list(item.network_instances))
        logger.info("Endpoints: %s", item.endpoints)
        for endpoint in item.endpoints:
            try:
                addr = ipaddress.ip_address(endpoint)
            except ValueError:
                info.endpoint_fqdn = endpoint
                continue
            v4 = _to_v4(addr)
            if v4 is not None:
                info.ipv4_endpoints.append(v4)
            else:
                info.ipv6_endpoints.append(addr)
        return info

    def ip(self, pdu_session_type: int) -> Optional[IPAddress]:
        """Return the endpoint address for a PDU session type; raise ValueError if none matches.

        A resolved FQDN yielding only IPv6 for an IPv4 session gives ``None``.
        """
        session_type = int(pdu_session_type)
        if session_type in (PduSessionType.IPV4, PduSessionType.IPV4V6) and self.ipv4_endpoints:
            return self.ipv4_endpoints[0]
        if session_type in (PduSessionType.IPV6, PduSessionType.IPV4V6) and self.ipv6_endpoints:
            return self.ipv6_endpoints[0]
        if self.endpoint_fqdn:
            resolved = _resolve(self.endpoint_fqdn)
            if resolved is None:
                logger.error("resolve addr [%s] failed", self.endpoint_fqdn)
            elif session_type == PduSessionType.IPV4:
                return _to_v4(resolved)
            elif session_type == PduSessionType.IPV6:
                return _to_v6(resolved)
            else:
                return _to_v4(resolved) or _to_v6(resolved)
        raise ValueError("not matched ip address")


@dataclass
class UPFSelectionParams:
    """Criteria for choosing a UPF: DNN, slice, DNAI and requested UE address."""

    dnn: str = ""
    snssai: Optional[SNssai] = None
    dnai: str = ""
    pdu_address: Optional[IPAddress] = None

    def __str__(self) -> str:
        text = ""
        if self.dnn:
            text += f"Dnn: {self.dnn}\n"
        if self.snssai is not None:
            text += f"Sst: {int(self.snssai.sst)}, Sd: {self.snssai.sd}\n"
        if self.dnai:
            text += f"DNAI: {self.dnai}\n"
        if self.pdu_address is not None:
            text += f"PDUAddress: {self.pdu_address}\n"
        return text


class UPF:
    """A UPF as seen by the SMF. It starts out not associated."""

    def __init__(
        self,
        node_id: NodeID,
        interfaces: Iterable[InterfaceUpfInfoItem] = (),
        addr: str = "",
    ):
        self._uuid = uuid.uuid4()
        self.node_id = node_id
        self.addr = addr
        self.recovery_time_stamp: Optional[datetime] = None
        self.snssai_infos: list[SnssaiUPFInfo] = []
        self.n3_interfaces: list[UPFInterfaceInfo] = []
        self.n9_interfaces: list[UPFInterfaceInfo] = []
        self._associated = threading.Event()
        for item in interfaces:
            info = UPFInterfaceInfo.from_config(item)
            if item.interface_type == UpInterfaceType.N3:
                self.n3_interfaces.append(info)
            elif item.interface_type == UpInterfaceType.N9:
                self.n9_interfaces.append(info)

    def __repr__(self) -> str:
        return f"UPF(node_id={self.node_id}, id={self.id})"

    @property
    def uuid(self) -> uuid.UUID:
        return self._uuid

    @property
    def id(self) -> str:
        return str(self._uuid)

    @property
    def is_associated(self) -> bool:
        return self._associated.is_set()

    def get_interface(self, interface_type: Union[str, UpInterfaceType], dnn: str) -> Optional[UPFInterfaceInfo]:
        """Return the first interface of the given type that serves ``dnn``."""
        if interface_type == UpInterfaceType.N3:
            candidates = self.n3_interfaces
        elif interface_type == UpInterfaceType.N9:
            candidates = self.n9_interfaces
        else:
            return None
        return next((iface for iface in candidates if dnn in iface.network_instances), None)

    def pfcp_addr(self) -> tuple[str, int]:
        """Return the (host, port) pair for PFCP messages to this UPF."""
        return str(self.node_id.resolve_ip()), PFCP_PORT

    def associate(self) -> None:
        self._associated.set()

    def dissociate(self) -> None:
        self._associated.clear()

    def ensure_associated(self) -> None:
        """Raise NotAssociatedError unless the UPF is associated."""
        if not self._associated.is_set():
            raise NotAssociatedError(f"UPF[{self.node_id.resolve_ip()}] not associated with SMF")

    def supports_snssai(self, snssai: SNssai) -> bool:
        return any(info.snssai.matches(snssai) for info in self.snssai_infos)


def _same_node(a: NodeID, b: NodeID) -> bool:
    if a.type != b.type and NodeIdType.FQDN in (a.type, b.type):
        return _to_v4(a.resolve_ip()) == _to_v4(b.resolve_ip())
    return a == b


class UPFRegistry:
    """Thread-safe collection of UPFs keyed by their ID."""

    def __init__(self) -> None:
        self._upfs: dict[str, UPF] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._upfs)

    def __iter__(self) -> Iterator[UPF]:
        with self._lock:
            return iter(list(self._upfs.values()))

    def __contains__(self, upf_id: object) -> bool:
        with self._lock:
            return upf_id in self._upfs

    def add(self, upf: UPF) -> UPF:
        with self._lock:
            self._upfs[upf.id] = upf
        return upf

    def get(self, upf_id: str) -> Optional[UPF]:
        with self._lock:
            return self._upfs.get(upf_id)

    def find_by_node_id(self, node_id: NodeID) -> Optional[UPF]:
        """Return the UPF with ``node_id``; an FQDN matches an address it resolves to."""
        for upf in self:
            if _same_node(upf.node_id, node_id):
                return upf
        return None

    def remove_by_node_id(self, node_id: NodeID) -> bool:
        """Remove the UPF with ``node_id``; return whether one was removed."""
        upf = self.find_by_node_id(node_id)
        if upf is None:
            return False
        with self._lock:
            self._upfs.pop(upf.id, None)
        return True