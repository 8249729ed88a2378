import pytest

from upplane.config import (
    DnnUpfInfoConfig,
    InterfaceUpfInfoItem,
    SnssaiUpfInfoConfig,
    UPLinkConfig,
    UPNodeConfig,
    UserPlaneConfig,
)
from upplane.snssai import SNssai

SAMPLE = {
    "upNodes": {
        "GNodeB": {"type": "AN", "anIP": "192.168.179.100"},
        "UPF1": {
            "type": "UPF",
            "nodeID": "10.4.0.11",
            "addr": "10.4.0.11",
            "sNssaiUpfInfos": [
                {
                    "sNssai": {"sst": 1, "sd": "010203"},
                    "dnnUpfInfoList": [
                        {
                            "dnn": "internet",
                            "dnaiList": ["mec"],
                            "pools": [{"cidr": "10.60.0.0/16"}],
                            "staticPools": [{"cidr": "10.60.100.0/24"}],
                        }
                    ],
                }
            ],
            "interfaces": [
                {
                    "interfaceType": "N3",
                    "endpoints": ["10.3.0.11"],
                    "networkInstances": ["internet"],
                }
            ],
        },
    },
    "links": [{"A": "GNodeB", "B": "UPF1"}],
}


def test_from_dict_reads_nodes():
    cfg = UserPlaneConfig.from_dict(SAMPLE)
    assert set(cfg.up_nodes) == {"GNodeB", "UPF1"}
    an = cfg.up_nodes["GNodeB"]
    assert an.type == "AN"
    assert an.an_ip == "192.168.179.100"
    upf = cfg.up_nodes["UPF1"]
    assert upf.node_id == "10.4.0.11"
    assert upf.snssai_infos[0].snssai == SNssai(sst=1, sd="010203")
    dnn = upf.snssai_infos[0].dnn_upf_info_list[0]
    assert dnn.dnn == "internet"
    assert dnn.dnai_list == ["mec"]
    assert dnn.pools == ["10.60.0.0/16"]
    assert dnn.static_pools == ["10.60.100.0/24"]
    assert upf.interfaces == [
        InterfaceUpfInfoItem(interface_type="N3", endpoints=["10.3.0.11"], network_instances=["internet"])
    ]


def test_from_dict_reads_links():
    cfg = UserPlaneConfig.from_dict(SAMPLE)
    assert cfg.links == [UPLinkConfig(a="GNodeB", b="UPF1")]


def test_to_dict_round_trip():
    assert UserPlaneConfig.from_dict(SAMPLE).to_dict() == SAMPLE


def test_object_round_trip():
    cfg = UserPlaneConfig(
        up_nodes={
            "UPF2": UPNodeConfig(
                type="UPF",
                node_id="10.4.0.12",
                snssai_infos=[
                    SnssaiUpfInfoConfig(
                        snssai=SNssai(sst=2),
                        dnn_upf_info_list=[DnnUpfInfoConfig(dnn="ims", pools=["10.61.0.0/16"])],
                    )
                ],
            )
        },
        links=[UPLinkConfig(a="UPF2", b="UPF2")],
    )
    assert UserPlaneConfig.from_dict(cfg.to_dict()) == cfg


def test_empty_configuration():
    cfg = UserPlaneConfig.from_dict({})
    assert cfg.up_nodes == {}
    assert cfg.links == []


def test_missing_node_type_raises():
    with pytest.raises(ValueError, match="type"):
        UserPlaneConfig.from_dict({"upNodes": {"X": {"nodeID": "10.0.0.1"}}})


def test_missing_link_end_raises():
    with pytest.raises(ValueError, match="'B'"):
        UserPlaneConfig.from_dict({"links": [{"A": "GNodeB"}]})


def test_missing_pool_cidr_raises():
    data = {
        "upNodes": {
            "UPF": {
                "type": "UPF",
                "sNssaiUpfInfos": [
                    {"sNssai": {"sst": 1}, "dnnUpfInfoList": [{"dnn": "internet", "pools": [{}]}]}
                ],
            }
        }
    }
    with pytest.raises(ValueError, match="cidr"):
        UserPlaneConfig.from_dict(data)


def test_non_integer_sst_raises():
    data = {"upNodes": {"UPF": {"type": "UPF", "sNssaiUpfInfos": [{"sNssai": {"sst": "one"}}]}}}
    with pytest.raises(ValueError, match="sst"):
        UserPlaneConfig.from_dict(data)


def test_non_mapping_raises():
    with pytest.raises(ValueError):
        UserPlaneConfig.from_dict(["not", "a", "mapping"])