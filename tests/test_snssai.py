import ipaddress

import pytest

from upplane.snssai import (
    DNS,
    PCSCF,
    DnnUPFInfoItem,
    SNssai,
    SnssaiSmfDnnInfo,
    SnssaiSmfInfo,
    SnssaiUPFInfo,
)
from upplane.ue_ip_pool import UeIPPool


def test_matches_same_values():
    assert SNssai(1, "010203").matches(SNssai(1, "010203"))


def test_matches_sd_is_case_insensitive():
    assert SNssai(1, "abcdef").matches(SNssai(1, "ABCDEF"))


@pytest.mark.parametrize(
    "other",
    [SNssai(2, "010203"), SNssai(1, "010204"), SNssai(1, "")],
)
def test_matches_differs(other):
    assert not SNssai(1, "010203").matches(other)


def test_matches_accepts_any_object_with_sst_and_sd():
    class Model:
        sst = 1
        sd = "112232"

    assert SNssai(1, "112232").matches(Model())


def test_contains_dnai_empty_target_with_empty_list():
    assert DnnUPFInfoItem(dnn="internet").contains_dnai("")


def test_contains_dnai_empty_target_with_list():
    assert not DnnUPFInfoItem(dnn="internet", dnai_list=["mec"]).contains_dnai("")


def test_contains_dnai_listed_and_unlisted():
    item = DnnUPFInfoItem(dnn="internet", dnai_list=["mec", "edge"])
    assert item.contains_dnai("edge")
    assert not item.contains_dnai("core")


def test_contains_ip_none_always_true():
    assert DnnUPFInfoItem(dnn="internet").contains_ip(None)


def test_contains_ip_checks_dynamic_pools_only():
    item = DnnUPFInfoItem(
        dnn="internet",
        ue_ip_pools=[UeIPPool("10.60.0.0/16")],
        static_ip_pools=[UeIPPool("10.70.0.0/24")],
    )
    assert item.contains_ip("10.60.3.4")
    assert item.contains_ip(ipaddress.ip_address("10.60.0.1"))
    assert not item.contains_ip("10.70.0.5")


def test_contains_ip_without_pools():
    assert not DnnUPFInfoItem(dnn="internet").contains_ip("10.60.0.1")


def test_snssai_upf_info_holds_dnn_list():
    item = DnnUPFInfoItem(dnn="internet")
    info = SnssaiUPFInfo(snssai=SNssai(1, "010203"), dnn_list=[item])
    assert info.dnn_list == [item]
    assert info.snssai.matches(SNssai(1, "010203"))


def test_smf_info_lookup():
    dns = DNS(ipv4_addr=ipaddress.IPv4Address("8.8.8.8"))
    dnn_info = SnssaiSmfDnnInfo(dns=dns, pcscf=PCSCF())
    info = SnssaiSmfInfo(snssai=SNssai(1, "010203"), dnn_infos={"internet": dnn_info})
    assert info.dnn_infos["internet"].dns.ipv4_addr == ipaddress.IPv4Address("8.8.8.8")
    assert info.dnn_infos["internet"].pcscf.ipv4_addr is None
    assert info.dnn_infos["internet"].dns.ipv6_addr is None