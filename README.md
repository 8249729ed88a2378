# upplane

This package provides building blocks for the user plane of a 5G session
management function. It covers the UPF topology, UPF selection by slice, DNN
and DNAI, UE IP address pools, UL CL default paths, and per-UE session
bookkeeping. It uses only the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Modules

- `upplane.snssai`
  - `SNssai(sst, sd)` with `matches()`. The SST must be equal; the SD is compared without regard to case.
  - `DnnUPFInfoItem` describes what a UPF serves for one DNN.
    - `contains_dnai()`: an empty DNAI matches only an empty DNAI list.
    - `contains_ip()`: `None` always matches.
  - `SnssaiUPFInfo`, and the SMF settings per slice and DNN: `SnssaiSmfInfo`, `SnssaiSmfDnnInfo`, `DNS`, `PCSCF`.
- `upplane.ue_ip_pool`
  - `UeIPPool(cidr)` is an IPv4 pool.
    - `allocate(None)` hands out the lowest free address. `allocate(addr)` takes a specific address. Either one returns `None` when nothing is available.
    - Released addresses are reused only after the rest of the pool.
    - It also has `release`, `reserve(first, last)`, `exclude(other)`, `overlaps`, `contains`, `dump`, and the properties `subnet`, `min_value`, `max_value` and `remaining`.
  - `pools_overlap(pools)` checks a set of pools for shared addresses.
- `upplane.sm_ue`
  - `Ues` is a thread-safe table of `UeData`: the PDU session count and the SDM subscription ID, keyed by SUPI.
  - The count never drops below zero.
- `upplane.timer`
  - `Timer(interval, max_retry_times, on_expire, on_cancel)` calls `on_expire(count)` every `interval` seconds.
  - It calls `on_cancel()` and ends once the count exceeds the retry limit.
  - `stop()` ends it early. It can also be used as a context manager.
- `upplane.config`
  - `UserPlaneConfig` holds `UPNodeConfig`, `SnssaiUpfInfoConfig`, `DnnUpfInfoConfig`, `InterfaceUpfInfoItem` and `UPLinkConfig`.
  - `UserPlaneConfig.from_dict()` loads it from a plain mapping, such as parsed YAML. It raises `ValueError` on malformed input.
  - `to_dict()` writes it back out.
- `upplane.upf`
  - `NodeID`, with `from_string` and `resolve_ip`. FQDNs are resolved through the system resolver.
  - The enums `NodeIdType`, `PduSessionType` and `UpInterfaceType`.
  - `UPFInterfaceInfo`, with `from_config` and `ip(pdu_session_type)`. `ip` raises `ValueError` when no endpoint fits.
  - `UPFSelectionParams`.
  - `UPF`, which starts out not associated. Its methods are `associate`, `dissociate`, `ensure_associated`, `get_interface`, `pfcp_addr` and `supports_snssai`. `ensure_associated()` raises `NotAssociatedError` when there is no association.
  - `UPFRegistry` looks UPFs up by ID or by node ID. An FQDN node ID matches an address it resolves to.
- `upplane.user_plane_information`
  - `UserPlaneInformation(config)` builds the topology graph of `UPNode`s.
    - The network and broadcast addresses of dynamic pools are reserved.
    - Static pools are excluded from the dynamic pools they fall in.
    - Overlapping dynamic pools across UPFs raise `ValueError`.
  - It has the following methods:
    - `add_nodes` and `add_links` grow the topology.
    - `delete_node` shrinks it.
    - `default_path`, `default_path_to_upf`, `generate_default_path` and `generate_default_path_to_upf` find and cache paths from the access network. The paths run only through UPFs that serve the slice.
    - `select_upf_and_alloc_ue_ip(selection)` returns `(upf_node, address, uses_static_pool)`, or `None` when nothing fits. UPFs that are not associated are skipped.
    - `release_ue_ip` returns an address to its pool.
- `upplane.topology_export`
  - `nodes_to_configuration(upi)` turns a live topology back into configuration objects.
  - `links_to_configuration(upi)` does the same for the links, breadth-first from the access network.
- `upplane.ue_default_path`
  - `find_source` finds the access node.
  - `anchor_upfs` finds the anchor UPFs: the leaves reached from the source.
  - `all_paths` lists every simple A-to-B path.
  - `ulcl_group_of(supi, groups)` returns the name of the group that holds the SUPI.
  - `UEDefaultPaths` holds one default path per anchor UPF. It has `path_to` and `select_upf_and_alloc_ue_ip`.

## Example

```python
from upplane.config import UserPlaneConfig
from upplane.snssai import SNssai
from upplane.upf import UPFSelectionParams
from upplane.user_plane_information import UserPlaneInformation

config = UserPlaneConfig.from_dict({
    "upNodes": {
        "gNB1": {"type": "AN"},
        "UPF1": {
            "type": "UPF",
            "nodeID": "10.4.0.11",
            "sNssaiUpfInfos": [{
                "sNssai": {"sst": 1, "sd": "010203"},
                "dnnUpfInfoList": [{
                    "dnn": "internet",
                    "pools": [{"cidr": "10.60.0.0/24"}],
                }],
            }],
        },
    },
    "links": [{"A": "gNB1", "B": "UPF1"}],
})

upi = UserPlaneInformation(config)
for node in upi.upfs.values():
    node.upf.associate()

selection = UPFSelectionParams(dnn="internet", snssai=SNssai(sst=1, sd="010203"))
upf_node, address, static = upi.select_upf_and_alloc_ue_ip(selection)
print(upf_node.name, address)          # UPF1 10.60.0.1
upi.release_ue_ip(upf_node, address, static)
```

Here is a pool used on its own:

```python
from ipaddress import IPv4Address
from upplane.ue_ip_pool import UeIPPool

pool = UeIPPool("10.10.0.0/24")
pool.allocate(None)                          # 10.10.0.0
pool.allocate(IPv4Address("10.10.0.42"))     # 10.10.0.42
pool.release(IPv4Address("10.10.0.42"))
```

## What it does not do

This is a library with no command and no server. It does not send or receive
PFCP messages. It does not create or manage forwarding rules on a UPF. It does
not talk to other network functions. Association state is set by the caller
through `UPF.associate()` and `UPF.dissociate()`. Nothing is stored beyond the
objects in memory.