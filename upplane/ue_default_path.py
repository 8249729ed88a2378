"""Default paths for UL CL (uplink classifier) UEs, derived from the configured links."""

from __future__ import annotations

import ipaddress
import logging
from collections import deque
from typing import Iterable, Mapping, Optional, Union

from upplane.config import UPLinkConfig
from upplane.upf import UPFSelectionParams
from upplane.user_plane_information import (
    UPNode,
    UPNodeType,
    UserPlaneInformation,
    _rotate,
    _ue_ip_pools,
)

logger = logging.getLogger(__name__)


def find_source(upi: UserPlaneInformation, links: Iterable[UPLinkConfig]) -> str:
    """Return the name of an access-network node that appears in ``links``."""
    links = list(links)
    for name, node in upi.access_network.items():
        if node.type != UPNodeType.AN:
            continue
        if any(name in (link.a, link.b) for link in links):
            logger.debug("%s is AN", name)
            return name
    raise ValueError("Not found AN node in topology")


def anchor_upfs(upi: UserPlaneInformation, source: str, links: Iterable[UPLinkConfig]) -> list[str]:
    """Return, sorted, the names of the leaves reached breadth-first from ``source``."""
    links = list(links)
    anchors: list[str] = []
    visited: set[str] = set()
    queued = {source}
    queue: deque[str] = deque([source])
    while queue:
        node = queue.popleft()
        new_link = False
        for link in links:
            for here, there in ((link.a, link.b), (link.b, link.a)):
                if here != node:
                    continue
                if there not in queued:
                    queue.append(there)
                    queued.add(there)
                    new_link = True
                if there not in visited:
                    new_link = True
        visited.add(node)
        if not new_link:
            logger.debug("%s is Anchor UPF", node)
            anchors.append(node)
    if not anchors:
        raise ValueError("Not found Anchor UPF in topology")
    return sorted(anchors)


def all_paths(source: str, destination: str, links: Iterable[UPLinkConfig]) -> list[list[str]]:
    """Return every simple path following links from A to B, each without ``source``."""
    links = list(links)
    paths: list[list[str]] = []
    visited: set[str] = set()

    def walk(node: str, current: list[str]) -> None:
        if node in visited:
            return
        visited.add(node)
        current = [*current, node]
        if node == destination:
            paths.append(current[1:])
        else:
            for link in links:
                if link.a == node:
                    walk(link.b, current)
        visited.discard(node)

    walk(source, [])
    return paths


def ulcl_group_of(supi: str, groups: Mapping[str, Iterable[str]]) -> Optional[str]:
    """Return the name of the UL CL group holding ``supi``, or ``None``."""
    return next((name for name, members in groups.items() if supi in members), None)


class UEDefaultPaths:
    """The default path from the access network to each anchor UPF."""

    def __init__(self, upi: UserPlaneInformation, links: Iterable[UPLinkConfig]):
        links = list(links)
        source = find_source(upi, links)
        self.anchor_upfs: list[str] = anchor_upfs(upi, source, links)
        self.default_path_pool: dict[str, list[UPNode]] = {
            destination: self._build_path(upi, source, destination, links)
            for destination in self.anchor_upfs
        }

    @staticmethod
    def _build_path(
        upi: UserPlaneInformation, source: str, destination: str, links: list[UPLinkConfig]
    ) -> list[UPNode]:
        paths = all_paths(source, destination, links)
        if not paths:
            raise ValueError(f"Path not exist: {source} to {destination}")
        nodes: list[UPNode] = []
        for name in paths[0]:
            node = upi.up_nodes.get(name)
            if node is None:
                raise ValueError(f"UPNode {name} isn't exist in user plane configuration")
            nodes.append(node)
        logger.debug("New default data path (%s to %s): %s", source, destination, [n.name for n in nodes])
        return nodes

    def path_to(self, upf_name: str) -> list[UPNode]:
        """Return a fresh copy of the default path to ``upf_name``; KeyError if unknown."""
        return list(self.default_path_pool[upf_name])

    def select_upf_and_alloc_ue_ip(
        self, upi: UserPlaneInformation, selection: UPFSelectionParams
    ) -> Optional[tuple[str, ipaddress.IPv4Address, bool]]:
        """Pick an anchor UPF and allocate a UE address.

        Return ``(upf_name, address, uses_static_pool)`` or ``None`` if every pool is exhausted.
        """
        for name in _rotate(self.anchor_upfs):
            node = upi.upfs.get(name)
            if node is None:
                continue
            pools, static = _ue_ip_pools(node, selection)
            for pool in _rotate(pools):
                addr = pool.allocate(selection.pdu_address)
                if addr is not None:
                    logger.info("Selected UPF: %s", name)
                    return name, addr, static
        logger.warning("UE IP pool exhausted for %s", str(selection).replace("\n", " "))
        return None


__all__: list[str] = [
    "find_source",
    "anchor_upfs",
    "all_paths",
    "ulcl_group_of",
    "UEDefaultPaths",
]

_Address = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]