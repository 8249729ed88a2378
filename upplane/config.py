"""User-plane topology configuration: UP nodes, their slices and pools, and links."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from upplane.snssai import SNssai


def _require(data: Mapping[str, Any], key: str, where: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError(f"{where}: expected a mapping, got {type(data).__name__}")
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"{where}: missing {key!r}") from None


def _str_list(value: Any, where: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        raise ValueError(f"{where}: expected a list of strings")
    return [str(item) for item in value]


def _cidrs(value: Any, where: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"{where}: expected a list of pools")
    return [str(_require(item, "cidr", where)) for item in value]


@dataclass
class InterfaceUpfInfoItem:
    """One N3 or N9 interface of a UPF."""

    interface_type: str
    endpoints: list[str] = field(default_factory=list)
    network_instances: list[str] = field(default_factory=list)

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> InterfaceUpfInfoItem:
        where = "interface"
        return cls(
            interface_type=str(_require(data, "interfaceType", where)),
            endpoints=_str_list(data.get("endpoints"), f"{where}.endpoints"),
            network_instances=_str_list(data.get("networkInstances"), f"{where}.networkInstances"),
        )

    def _to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"interfaceType": str(self.interface_type)}
        if self.endpoints:
            result["endpoints"] = list(self.endpoints)
        if self.network_instances:
            result["networkInstances"] = list(self.network_instances)
        return result


@dataclass
class DnnUpfInfoConfig:
    """Configuration of one DNN served by a UPF in a slice."""

    dnn: str
    dnai_list: list[str] = field(default_factory=list)
    pdu_session_types: list[str] = field(default_factory=list)
    pools: list[str] = field(default_factory=list)
    static_pools: list[str] = field(default_factory=list)

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> DnnUpfInfoConfig:
        where = "dnnUpfInfo"
        return cls(
            dnn=str(_require(data, "dnn", where)),
            dnai_list=_str_list(data.get("dnaiList"), f"{where}.dnaiList"),
            pdu_session_types=_str_list(data.get("pduSessionTypes"), f"{where}.pduSessionTypes"),
            pools=_cidrs(data.get("pools"), f"{where}.pools"),
            static_pools=_cidrs(data.get("staticPools"), f"{where}.staticPools"),
        )

    def _to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"dnn": self.dnn}
        if self.dnai_list:
            result["dnaiList"] = list(self.dnai_list)
        if self.pdu_session_types:
            result["pduSessionTypes"] = list(self.pdu_session_types)
        if self.pools:
            result["pools"] = [{"cidr": cidr} for cidr in self.pools]
        if self.static_pools:
            result["staticPools"] = [{"cidr": cidr} for cidr in self.static_pools]
        return result


@dataclass
class SnssaiUpfInfoConfig:
    """Configuration of one slice served by a UPF."""

    snssai: SNssai
    dnn_upf_info_list: list[DnnUpfInfoConfig] = field(default_factory=list)

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> SnssaiUpfInfoConfig:
        where = "sNssaiUpfInfo"
        raw = _require(data, "sNssai", where)
        sst = _require(raw, "sst", f"{where}.sNssai")
        if isinstance(sst, bool) or not isinstance(sst, int):
            raise ValueError(f"{where}.sNssai: sst must be an integer")
        return cls(
            snssai=SNssai(sst=sst, sd=str(raw.get("sd", "") or "")),
            dnn_upf_info_list=[
                DnnUpfInfoConfig._from_dict(item) for item in data.get("dnnUpfInfoList") or []
            ],
        )

    def _to_dict(self) -> dict[str, Any]:
        snssai: dict[str, Any] = {"sst": self.snssai.sst}
        if self.snssai.sd:
            snssai["sd"] = self.snssai.sd
        result: dict[str, Any] = {"sNssai": snssai}
        if self.dnn_upf_info_list:
            result["dnnUpfInfoList"] = [item._to_dict() for item in self.dnn_upf_info_list]
        return result


@dataclass
class UPNodeConfig:
    """Configuration of one user-plane node: an access network or a UPF."""

    type: str
    node_id: str = ""
    addr: str = ""
    an_ip: str = ""
    snssai_infos: list[SnssaiUpfInfoConfig] = field(default_factory=list)
    interfaces: list[InterfaceUpfInfoItem] = field(default_factory=list)

    @classmethod
    def _from_dict(cls, name: str, data: Mapping[str, Any]) -> UPNodeConfig:
        where = f"upNodes[{name}]"
        return cls(
            type=str(_require(data, "type", where)),
            node_id=str(data.get("nodeID", "") or ""),
            addr=str(data.get("addr", "") or ""),
            an_ip=str(data.get("anIP", "") or ""),
            snssai_infos=[
                SnssaiUpfInfoConfig._from_dict(item) for item in data.get("sNssaiUpfInfos") or []
            ],
            interfaces=[InterfaceUpfInfoItem._from_dict(item) for item in data.get("interfaces") or []],
        )

    def _to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type}
        if self.node_id:
            result["nodeID"] = self.node_id
        if self.addr:
            result["addr"] = self.addr
        if self.an_ip:
            result["anIP"] = self.an_ip
        if self.snssai_infos:
            result["sNssaiUpfInfos"] = [item._to_dict() for item in self.snssai_infos]
        if self.interfaces:
            result["interfaces"] = [item._to_dict() for item in self.interfaces]
        return result


@dataclass
class UPLinkConfig:
    """An undirected link between two named UP nodes."""

    a: str
    b: str


@dataclass
class UserPlaneConfig:
    """The whole user-plane topology as configured."""

    up_nodes: dict[str, UPNodeConfig] = field(default_factory=dict)
    links: list[UPLinkConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UserPlaneConfig:
        """Build the configuration from its mapping form; raise ValueError on bad input."""
        if not isinstance(data, Mapping):
            raise ValueError("user plane configuration must be a mapping")
        nodes = data.get("upNodes") or {}
        if not isinstance(nodes, Mapping):
            raise ValueError("upNodes must be a mapping")
        links = data.get("links") or []
        if not isinstance(links, (list, tuple)):
            raise ValueError("links must be a list")
        return cls(
            up_nodes={str(name): UPNodeConfig._from_dict(str(name), node) for name, node in nodes.items()},
            links=[
                UPLinkConfig(a=str(_require(link, "A", "link")), b=str(_require(link, "B", "link")))
                for link in links
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the mapping form accepted by ``from_dict``."""
        return {
            "upNodes": {name: node._to_dict() for name, node in self.up_nodes.items()},
            "links": [{"A": link.a, "B": link.b} for link in self.links],
        }