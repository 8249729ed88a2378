import ipaddress

import pytest

from upplane.config import UPLinkConfig, UserPlaneConfig
from upplane.snssai import SNssai
from upplane.ue_default_path import (
    UEDefaultPaths,
    all_paths,
    anchor_upfs,
    find_source,
    ulcl_group_of,
)
from upplane.upf import UPFSelectionParams
from upplane.user_plane_information import UserPlaneInformation


def _upf(node_id, cidr, static=None):
    dnn = {"dnn": "internet", "pools": [{"cidr": cidr}]}
    if static:
        dnn["staticPools"] = [{"cidr": static}]
    return {
        "type": "UPF",
        "nodeID": node_id,
        "sNssaiUpfInfos": [{"sNssai": {"sst": 1, "sd": "010203"}, "dnnUpfInfoList": [dnn]}],
    }


CONFIG = {
    "upNodes": {
        "GNodeB": {"type": "AN"},
        "UPF1": _upf("10.4.0.11", "10.59.0.0/16"),
        "UPF2": _upf("10.4.0.12", "10.60.0.0/16", static="10.61.0.0/24"),
        "UPF3": _upf("10.4.0.13", "10.62.0.0/16"),
    },
    "links": [],
}


def links(*pairs):
    return [UPLinkConfig(a=a, b=b) for a, b in pairs]


@pytest.fixture
def upi():
    return UserPlaneInformation(UserPlaneConfig.from_dict(CONFIG))


def test_find_source(upi):
    assert find_source(upi, links(("GNodeB", "UPF1"))) == "GNodeB"
    assert find_source(upi, links(("UPF1", "GNodeB"))) == "GNodeB"


def test_find_source_missing(upi):
    with pytest.raises(ValueError):
        find_source(upi, links(("UPF1", "UPF2")))


def test_anchor_upfs_chain(upi):
    assert anchor_upfs(upi, "GNodeB", links(("GNodeB", "UPF1"), ("UPF1", "UPF2"))) == ["UPF2"]


def test_anchor_upfs_branches_sorted(upi):
    topology = links(("GNodeB", "UPF1"), ("UPF1", "UPF3"), ("UPF1", "UPF2"))
    assert anchor_upfs(upi, "GNodeB", topology) == ["UPF2", "UPF3"]


def test_all_paths_exclude_source_and_follow_direction():
    topology = links(("GNodeB", "UPF1"), ("UPF1", "UPF2"), ("GNodeB", "UPF2"))
    assert all_paths("GNodeB", "UPF2", topology) == [["UPF1", "UPF2"], ["UPF2"]]
    assert all_paths("UPF2", "GNodeB", topology) == []


def test_all_paths_ignore_cycles():
    topology = links(("A", "B"), ("B", "A"), ("B", "C"))
    assert all_paths("A", "C", topology) == [["B", "C"]]


def test_ulcl_group_of():
    groups = {"g1": ["imsi-208930000000001"], "g2": ["imsi-208930000000002"]}
    assert ulcl_group_of("imsi-208930000000002", groups) == "g2"
    assert ulcl_group_of("imsi-208930000000009", groups) is None


def test_default_paths(upi):
    topology = links(("GNodeB", "UPF1"), ("UPF1", "UPF2"), ("UPF1", "UPF3"))
    paths = UEDefaultPaths(upi, topology)
    assert paths.anchor_upfs == ["UPF2", "UPF3"]
    assert [n.name for n in paths.path_to("UPF2")] == ["UPF1", "UPF2"]
    assert paths.path_to("UPF3")[-1] is upi.upfs["UPF3"]


def test_path_to_returns_copy(upi):
    paths = UEDefaultPaths(upi, links(("GNodeB", "UPF1"), ("UPF1", "UPF2")))
    first = paths.path_to("UPF2")
    first.clear()
    assert len(paths.path_to("UPF2")) == 2
    with pytest.raises(KeyError):
        paths.path_to("UPF1")


def test_unknown_node_in_links(upi):
    with pytest.raises(ValueError):
        UEDefaultPaths(upi, links(("GNodeB", "UPF9")))


def test_no_directed_path(upi):
    with pytest.raises(ValueError):
        UEDefaultPaths(upi, links(("UPF1", "GNodeB")))


def test_select_dynamic(upi):
    paths = UEDefaultPaths(upi, links(("GNodeB", "UPF1"), ("UPF1", "UPF2")))
    selection = UPFSelectionParams(dnn="internet", snssai=SNssai(1, "010203"))
    name, addr, static = paths.select_upf_and_alloc_ue_ip(upi, selection)
    assert name == "UPF2"
    assert addr in ipaddress.ip_network("10.60.0.0/16")
    assert static is False


def test_select_static(upi):
    paths = UEDefaultPaths(upi, links(("GNodeB", "UPF1"), ("UPF1", "UPF2")))
    requested = ipaddress.IPv4Address("10.61.0.5")
    selection = UPFSelectionParams(dnn="internet", snssai=SNssai(1, "010203"), pdu_address=requested)
    assert paths.select_upf_and_alloc_ue_ip(upi, selection) == ("UPF2", requested, True)
    assert paths.select_upf_and_alloc_ue_ip(upi, selection) is None


def test_select_unknown_slice(upi):
    paths = UEDefaultPaths(upi, links(("GNodeB", "UPF1"), ("UPF1", "UPF2")))
    selection = UPFSelectionParams(dnn="internet", snssai=SNssai(9, "abcdef"))
    assert paths.select_upf_and_alloc_ue_ip(upi, selection) is None