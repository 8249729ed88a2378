"""Export of a live user-plane topology back into its configuration form."""

from __future__ import annotations

import logging
from collections import deque

from upplane.config import (
    DnnUpfInfoConfig,
    InterfaceUpfInfoItem,
    SnssaiUpfInfoConfig,
    UPLinkConfig,
    UPNodeConfig,
)
from upplane.snssai import SNssai
from upplane.upf import UPF, UPFInterfaceInfo, UpInterfaceType
from upplane.user_plane_information import UPNode, UPNodeType, UserPlaneInformation

logger = logging.getLogger(__name__)


def _interface_config(interface_type: UpInterfaceType, iface: UPFInterfaceInfo) -> InterfaceUpfInfoItem:
    endpoints: list[str] = []
    if iface.endpoint_fqdn:
        endpoints.append(iface.endpoint_fqdn)
    endpoints.extend(str(addr) for addr in iface.ipv4_endpoints)
    return InterfaceUpfInfoItem(
        interface_type=interface_type.value,
        endpoints=endpoints,
        network_instances=list(iface.network_instances),
    )


def _snssai_configs(upf: UPF) -> list[SnssaiUpfInfoConfig]:
    return [
        SnssaiUpfInfoConfig(
            snssai=SNssai(sst=info.snssai.sst, sd=info.snssai.sd),
            dnn_upf_info_list=[
                DnnUpfInfoConfig(
                    dnn=dnn_info.dnn,
                    pools=[str(pool.subnet) for pool in dnn_info.ue_ip_pools],
                    static_pools=[str(pool.subnet) for pool in dnn_info.static_ip_pools],
                )
                for dnn_info in info.dnn_list
            ],
        )
        for info in upf.snssai_infos
    ]


def _node_config(node: UPNode) -> UPNodeConfig:
    if node.type == UPNodeType.UPF:
        cfg = UPNodeConfig(type="UPF")
    elif node.type == UPNodeType.AN:
        cfg = UPNodeConfig(type="AN", an_ip=str(node.an_ip) if node.an_ip is not None else "")
    else:
        cfg = UPNodeConfig(type="Unknown")
    if node.node_id is not None:
        ip = node.node_id.resolve_ip()
        if ip is not None:
            cfg.node_id = str(ip)
    if node.upf is not None:
        cfg.snssai_infos = _snssai_configs(node.upf)
        cfg.interfaces = [
            _interface_config(UpInterfaceType.N3, iface) for iface in node.upf.n3_interfaces
        ] + [_interface_config(UpInterfaceType.N9, iface) for iface in node.upf.n9_interfaces]
    return cfg


def nodes_to_configuration(upi: UserPlaneInformation) -> dict[str, UPNodeConfig]:
    """Describe every UP node of ``upi`` as node configuration, keyed by name."""
    return {name: _node_config(node) for name, node in upi.up_nodes.items()}


def links_to_configuration(upi: UserPlaneInformation) -> list[UPLinkConfig]:
    """List the links reachable from the access network, in breadth-first order."""
    source = next((n for n in upi.access_network.values() if n.type == UPNodeType.AN), None)
    if source is None:
        logger.error("AN Node not found")
        return []
    links: list[UPLinkConfig] = []
    visited: set[UPNode] = set()
    queue: deque[UPNode] = deque([source])
    while queue:
        node = queue.popleft()
        visited.add(node)
        for neighbour in node.links:
            if neighbour in visited:
                continue
            queue.append(neighbour)
            links.append(
                UPLinkConfig(
                    a=upi.upf_name_by_ip(node.ip_key),
                    b=upi.upf_name_by_ip(neighbour.ip_key),
                )
            )
    return links