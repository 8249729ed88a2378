"""User-plane topology: UP nodes, links, default paths and UE address selection."""

from __future__ import annotations

import ipaddress
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, TypeVar, Union

from upplane.config import SnssaiUpfInfoConfig, UPNodeConfig, UserPlaneConfig
from upplane.snssai import DnnUPFInfoItem, SNssai, SnssaiUPFInfo
from upplane.ue_ip_pool import UeIPPool, pools_overlap
from upplane.upf import UPF, NodeID, UPFRegistry, UPFSelectionParams

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
_T = TypeVar("_T")


class UPNodeType(str, Enum):
    UPF = "UPF"
    AN = "AN"


@dataclass(eq=False)
class UPNode:
    """A node of the user-plane topology: an access network or a UPF."""

    name: str
    type: Union[UPNodeType, str]
    node_id: Optional[NodeID] = None
    an_ip: Optional[IPAddress] = None
    dnn: str = ""
    links: list[UPNode] = field(default_factory=list, repr=False)
    upf: Optional[UPF] = None

    @property
    def ip_key(self) -> str:
        """The node's address as text, or an empty string if it has none."""
        if self.node_id is None:
            return ""
        ip = self.node_id.resolve_ip()
        return str(ip) if ip is not None else ""

    def matched_selection(self, selection: UPFSelectionParams) -> bool:
        """Return True if this UPF serves the selection's slice, DNN and (if given) DNAI."""
        if self.upf is None or selection.snssai is None:
            return False
        for info in self.upf.snssai_infos:
            if not info.snssai.matches(selection.snssai):
                continue
            for dnn_info in info.dnn_list:
                if dnn_info.dnn != selection.dnn:
                    continue
                if not selection.dnai or dnn_info.contains_dnai(selection.dnai):
                    return True
        return False


def _parse_ip(value: str) -> Optional[IPAddress]:
    try:
        return ipaddress.ip_address(value)
    except ValueError:
        return None


def _rotate(items: list[_T]) -> list[_T]:
    if not items:
        return []
    offset = random.randrange(len(items))
    return items[offset:] + items[:offset]


def _supports(node: UPNode, snssai: Optional[SNssai]) -> bool:
    return node.upf is not None and snssai is not None and node.upf.supports_snssai(snssai)


def _path_between(
    cur: UPNode, dest: UPNode, visited: set[UPNode], snssai: Optional[SNssai]
) -> Optional[list[UPNode]]:
    visited.add(cur)
    if cur is dest:
        return [cur]
    for node in cur.links:
        if node in visited:
            continue
        if not _supports(node, snssai):
            visited.add(node)
            continue
        tail = _path_between(node, dest, visited, snssai)
        if tail is not None:
            return [cur, *tail]
    return None


def _ue_ip_pools(node: UPNode, selection: UPFSelectionParams) -> tuple[list[UeIPPool], bool]:
    """Return the pools to allocate from and whether they are static pools."""
    if node.upf is None or selection.snssai is None:
        return [], False
    for info in node.upf.snssai_infos:
        if not info.snssai.matches(selection.snssai):
            continue
        for dnn_info in info.dnn_list:
            if dnn_info.dnn != selection.dnn:
                continue
            if selection.dnai and not dnn_info.contains_dnai(selection.dnai):
                continue
            if selection.pdu_address is None:
                return list(dnn_info.ue_ip_pools), False
            for pool in dnn_info.static_ip_pools:
                if pool.contains(selection.pdu_address):
                    return [pool], True
            for pool in dnn_info.ue_ip_pools:
                if pool.contains(selection.pdu_address):
                    logger.info(
                        "cannot find selected IP in static pool %s, use dynamic pool %s",
                        dnn_info.static_ip_pools, dnn_info.ue_ip_pools,
                    )
                    return [pool], False
            return [], False
    return [], False


def _pool_by_addr(node: UPNode, addr: IPAddress, static: bool) -> Optional[UeIPPool]:
    if node.upf is None:
        return None
    for info in node.upf.snssai_infos:
        for dnn_info in info.dnn_list:
            pools = dnn_info.static_ip_pools if static else dnn_info.ue_ip_pools
            for pool in pools:
                if pool.contains(addr):
                    return pool
    return None


class UserPlaneInformation:
    """The user-plane topology known to the SMF and the caches built on it."""

    def __init__(self, config: Optional[UserPlaneConfig] = None, registry: Optional[UPFRegistry] = None):
        self.registry = registry if registry is not None else UPFRegistry()
        self.up_nodes: dict[str, UPNode] = {}
        self.upfs: dict[str, UPNode] = {}
        self.access_network: dict[str, UPNode] = {}
        self.upf_ip_to_name: dict[str, str] = {}
        self.upfs_id: dict[str, str] = {}
        self.upfs_ip_to_id: dict[str, str] = {}
        self.default_user_plane_path: dict[str, list[UPNode]] = {}
        self.default_user_plane_path_to_upf: dict[str, dict[str, list[UPNode]]] = {}
        if config is not None:
            for name, node_cfg in config.up_nodes.items():
                self._register(self._build_node(name, node_cfg, reserve_edges=True))
            self._check_overlap()
            self.add_links(config)

    # --- building -------------------------------------------------------

    def _build_snssai_info(self, cfg: SnssaiUpfInfoConfig, reserve_edges: bool) -> SnssaiUPFInfo:
        snssai = SNssai(sst=cfg.snssai.sst, sd=cfg.snssai.sd)
        dnn_list: list[DnnUPFInfoItem] = []
        for dnn_cfg in cfg.dnn_upf_info_list:
            dynamic = [UeIPPool(cidr) for cidr in dnn_cfg.pools]
            static: list[UeIPPool] = []
            for cidr in dnn_cfg.static_pools:
                static_pool = UeIPPool(cidr)
                static.append(static_pool)
                for pool in dynamic:
                    if pool.contains(static_pool.subnet.network_address):
                        pool.exclude(static_pool)
            if reserve_edges:
                for pool in dynamic:
                    if pool.min_value != pool.max_value:
                        for edge in (pool.min_value, pool.max_value):
                            try:
                                pool.reserve(edge, edge)
                            except ValueError as exc:
                                logger.error("Remove network address failed for %s: %s", pool.subnet, exc)
                    logger.debug("%d-%s %s %s", snssai.sst, snssai.sd, dnn_cfg.dnn, pool.dump())
            dnn_list.append(
                DnnUPFInfoItem(
                    dnn=dnn_cfg.dnn,
                    dnai_list=list(dnn_cfg.dnai_list),
                    pdu_session_types=list(dnn_cfg.pdu_session_types),
                    ue_ip_pools=dynamic,
                    static_ip_pools=static,
                )
            )
        return SnssaiUPFInfo(snssai=snssai, dnn_list=dnn_list)

    def _build_node(self, name: str, cfg: UPNodeConfig, reserve_edges: bool) -> UPNode:
        try:
            node_type: Union[UPNodeType, str] = UPNodeType(cfg.type)
        except ValueError:
            node_type = cfg.type
        node = UPNode(name=name, type=node_type)
        if node_type == UPNodeType.AN:
            node.an_ip = _parse_ip(cfg.an_ip)
        elif node_type == UPNodeType.UPF:
            node.node_id = NodeID.from_string(cfg.node_id)
            infos = [self._build_snssai_info(info, reserve_edges) for info in cfg.snssai_infos]
            upf = UPF(node.node_id, cfg.interfaces, addr=cfg.addr)
            upf.snssai_infos = infos
            node.upf = self.registry.add(upf)
        else:
            logger.warning("invalid UPNodeType: %s", node_type)
        return node

    def _register(self, node: UPNode) -> None:
        if node.type == UPNodeType.AN:
            self.access_network[node.name] = node
        elif node.type == UPNodeType.UPF:
            self.upfs[node.name] = node
        self.up_nodes[node.name] = node
        self.upf_ip_to_name[node.ip_key] = node.name

    def _check_overlap(self) -> None:
        pools = [
            pool
            for node in self.upfs.values()
            if node.upf is not None
            for info in node.upf.snssai_infos
            for dnn_info in info.dnn_list
            for pool in dnn_info.ue_ip_pools
        ]
        if pools_overlap(pools):
            raise ValueError("overlap cidr value between UPFs")

    def add_nodes(self, config: UserPlaneConfig) -> None:
        """Add the configured nodes not yet known; raise ValueError if UE pools overlap."""
        for name, node_cfg in config.up_nodes.items():
            if name in self.up_nodes:
                logger.warning("Node [%s] already exists in SMF.", name)
                continue
            node = self._build_node(name, node_cfg, reserve_edges=False)
            self._register(node)
            if node.upf is not None:
                self.upfs_id[name] = node.upf.id
                self.upfs_ip_to_id[node.ip_key] = node.upf.id
        self._check_overlap()

    def add_links(self, config: UserPlaneConfig) -> None:
        """Link the configured node pairs, skipping unknown nodes and existing links."""
        for link in config.links:
            node_a = self.up_nodes.get(link.a)
            node_b = self.up_nodes.get(link.b)
            if node_a is None or node_b is None:
                logger.warning("One of link edges does not exist. UPLink [%s] <=> [%s] not establish", link.a, link.b)
                continue
            if node_b in node_a.links or node_a in node_b.links:
                logger.warning("One of link edges already exist. UPLink [%s] <=> [%s] not establish", link.a, link.b)
                continue
            node_a.links.append(node_b)
            node_b.links.append(node_a)

    def delete_node(self, name: str) -> None:
        """Remove a node, its links, its UPF registration and cached paths through it."""
        node = self.up_nodes.get(name)
        if node is None:
            return
        logger.info("UPNode [%s] found. Deleting it.", name)
        if node.type == UPNodeType.UPF:
            if node.upf is not None:
                self.registry.remove_by_node_id(node.upf.node_id)
            self.upfs.pop(name, None)
            for selection_key, dest_map in self.default_user_plane_path_to_upf.items():
                for dest_ip in [ip for ip, path in dest_map.items() if any(n is node for n in path)]:
                    logger.info("Invalidate cache entry: DefaultUserPlanePathToUPF[%s][%s].", selection_key, dest_ip)
                    del dest_map[dest_ip]
        if node.type == UPNodeType.AN:
            self.access_network.pop(name, None)
        del self.up_nodes[name]
        for other_name, other in self.up_nodes.items():
            index = next((i for i, n in enumerate(other.links) if n is node), -1)
            if index != -1:
                logger.info("Delete UPLink [%s] <=> [%s].", other_name, name)
                other.links[index] = other.links[-1]
                other.links.pop()

    def allocate_upf_ids(self) -> None:
        """Record every UPF's ID by name and by address."""
        for name, node in self.upfs.items():
            if node.upf is None:
                continue
            self.upfs_id[name] = node.upf.id
            self.upfs_ip_to_id[node.ip_key] = node.upf.id

    # --- lookups --------------------------------------------------------

    def upf_name_by_ip(self, ip: str) -> str:
        return self.upf_ip_to_name.get(ip, "")

    def upf_node_id_by_name(self, name: str) -> NodeID:
        """Return the node ID of the named UPF; raise KeyError if there is none."""
        node_id = self.upfs[name].node_id
        if node_id is None:
            raise KeyError(name)
        return node_id

    def upf_node_by_ip(self, ip: str) -> Optional[UPNode]:
        return self.upfs.get(self.upf_name_by_ip(ip))

    def upf_id_by_ip(self, ip: str) -> str:
        return self.upfs_ip_to_id.get(ip, "")

    # --- default paths --------------------------------------------------

    def _source(self) -> Optional[UPNode]:
        return next((n for n in self.access_network.values() if n.type == UPNodeType.AN), None)

    def default_path(self, selection: UPFSelectionParams) -> Optional[list[UPNode]]:
        """Return the cached default path for ``selection``, generating it if needed."""
        key = str(selection)
        path = self.default_user_plane_path.get(key)
        if path is not None:
            return path
        if self.generate_default_path(selection):
            return self.default_user_plane_path[key]
        return None

    def default_path_to_upf(self, selection: UPFSelectionParams, upf: UPNode) -> Optional[list[UPNode]]:
        """Return the cached default path to ``upf``, generating it if needed."""
        key = str(selection)
        node_ip = upf.ip_key
        path = self.default_user_plane_path_to_upf.get(key, {}).get(node_ip)
        if path is not None:
            return path
        if self.generate_default_path_to_upf(selection, upf):
            return self.default_user_plane_path_to_upf[key][node_ip]
        return None

    def has_default_path(self, dnn: str) -> bool:
        return dnn in self.default_user_plane_path

    def _find_path(self, selection: UPFSelectionParams, destination: UPNode) -> Optional[list[UPNode]]:
        source = self._source()
        if source is None:
            logger.error("There is no AN Node in config file!")
            return None
        path = _path_between(source, destination, set(), selection.snssai)
        if path and path[0].type == UPNodeType.AN:
            path = path[1:]
        return path

    def _matching_upfs(self, selection: UPFSelectionParams) -> list[UPNode]:
        matches: list[UPNode] = []
        if selection.snssai is None:
            return matches
        for node in self.upfs.values():
            if node.upf is None:
                continue
            for info in node.upf.snssai_infos:
                if not info.snssai.matches(selection.snssai):
                    continue
                if any(d.dnn == selection.dnn and d.contains_dnai(selection.dnai) for d in info.dnn_list):
                    matches.append(node)
        return matches

    def generate_default_path(self, selection: UPFSelectionParams) -> bool:
        """Find and cache a path from the AN to a UPF matching ``selection``."""
        if self._source() is None:
            logger.error("There is no AN Node in config file!")
            return False
        destinations = self._matching_upfs(selection)
        if not destinations:
            logger.error("Can't find UPF with %s", str(selection).replace("\n", " "))
            return False
        path = self._find_path(selection, destinations[0])
        if path is None:
            return False
        self.default_user_plane_path[str(selection)] = path
        return True

    def generate_default_path_to_upf(self, selection: UPFSelectionParams, destination: UPNode) -> bool:
        """Find and cache a path from the AN to ``destination``."""
        path = self._find_path(selection, destination)
        if path is None:
            return False
        self.default_user_plane_path_to_upf.setdefault(str(selection), {})[destination.ip_key] = path
        return True

    # --- UPF selection and UE addresses ----------------------------------

    def _anchor_upfs(self, source: UPNode, selection: UPFSelectionParams) -> list[UPNode]:
        intermediate = UPFSelectionParams(dnn=selection.dnn, snssai=selection.snssai)
        anchors: list[UPNode] = []
        visited: set[UPNode] = set()
        queue = [source]
        while queue:
            node = queue.pop(0)
            visited.add(node)
            follower = next(
                (link for link in node.links if link not in visited and link.matched_selection(intermediate)),
                None,
            )
            if follower is not None:
                queue.append(follower)
            elif node.type == UPNodeType.UPF and node.matched_selection(selection):
                anchors.append(node)
        return anchors

    def _sort_by_name(self, nodes: list[UPNode]) -> list[UPNode]:
        return [
            node
            for name in sorted(self.upfs)
            for node in nodes
            if name == self.upf_name_by_ip(node.ip_key)
        ]

    def select_upf_and_alloc_ue_ip(
        self, selection: UPFSelectionParams
    ) -> Optional[tuple[UPNode, ipaddress.IPv4Address, bool]]:
        """Choose an anchor UPF and allocate a UE address.

        Return ``(upf_node, address, uses_static_pool)`` or ``None`` if nothing fits.
        """
        source = self._source()
        if source is None:
            return None
        candidates = self._anchor_upfs(source, selection)
        if not candidates:
            logger.warning("Can't find UPF with %s", str(selection).replace("\n", " "))
            return None
        for node in _rotate(self._sort_by_name(candidates)):
            if node.upf is None:
                continue
            if not node.upf.is_associated:
                logger.info("UPF[%s] not associated with SMF", node.ip_key)
                continue
            pools, static = _ue_ip_pools(node, selection)
            for pool in _rotate(pools):
                addr = pool.allocate(selection.pdu_address)
                if addr is not None:
                    logger.info("Selected UPF: %s", self.upf_name_by_ip(node.ip_key))
                    return node, addr, static
        logger.warning("UE IP pool exhausted for %s", str(selection).replace("\n", " "))
        return None

    def release_ue_ip(self, upf: UPNode, addr: IPAddress, static: bool) -> None:
        """Return ``addr`` to the pool of ``upf`` it came from."""
        pool = _pool_by_addr(upf, addr, static)
        if pool is None:
            logger.warning("Fail to release UE IP address: %s to UPF: %s",
                           addr, self.upf_name_by_ip(upf.ip_key))
            return
        pool.release(addr)