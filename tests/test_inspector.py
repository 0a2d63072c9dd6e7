from __future__ import annotations

from wakeitup.core import inspector
from wakeitup.core.inspector import (
    LinuxNetworkInspector,
    NeighborEntry,
    parse_getent_hosts,
    parse_ip_neigh,
    parse_nmblookup,
    parse_proc_net_arp,
)

PROC_NET_ARP = """\
IP address       HW type     Flags       HW address            Mask     Device
192.168.1.1      0x1         0x2         aa:bb:cc:dd:ee:ff     *        wlan0
192.168.1.50     0x1         0x2         b8:27:eb:12:34:56     *        eth0
"""

NMBLOOKUP = """\
Looking up status of 192.168.1.20
\tNAS-BOX         <00> -         B <ACTIVE>
\tWORKGROUP       <00> - <GROUP> B <ACTIVE>
\tNAS-BOX         <20> -         B <ACTIVE>
"""


def test_parse_proc_net_arp():
    assert parse_proc_net_arp(PROC_NET_ARP) == [
        NeighborEntry("192.168.1.1", "aa:bb:cc:dd:ee:ff", "wlan0"),
        NeighborEntry("192.168.1.50", "b8:27:eb:12:34:56", "eth0"),
    ]


def test_parse_ip_neigh_skips_incomplete():
    text = (
        "192.168.1.1 dev wlan0 lladdr aa:bb:cc:dd:ee:ff REACHABLE\n"
        "192.168.1.9 dev wlan0 FAILED\n"
    )
    assert parse_ip_neigh(text) == [
        NeighborEntry("192.168.1.1", "aa:bb:cc:dd:ee:ff", "wlan0")
    ]


def test_parse_nmblookup_ignores_group_names():
    assert parse_nmblookup(NMBLOOKUP) == "NAS-BOX"
    assert parse_nmblookup("\tWORKGROUP       <00> - <GROUP> B <ACTIVE>\n") is None


def test_parse_getent_hosts():
    assert parse_getent_hosts("192.168.1.20    nas.lan nas\n", "192.168.1.20") == (
        "nas.lan"
    )
    assert parse_getent_hosts("192.168.1.21    other\n", "192.168.1.20") is None


def test_neighbor_lookup_matches_exact_ip(tmp_path):
    arp = tmp_path / "arp"
    arp.write_text(PROC_NET_ARP)
    net = LinuxNetworkInspector(arp_path=arp)

    assert net.lookup_neighbor_mac("192.168.1.50") == "b8:27:eb:12:34:56"
    assert net.lookup_neighbor_mac("192.168.1.5") is None


def test_neighbor_table_falls_back_to_ip_neigh(tmp_path, monkeypatch):
    monkeypatch.setattr(
        inspector,
        "_run",
        lambda command: "10.0.0.3 dev eth0 lladdr 00:11:22:33:44:55 STALE\n",
    )
    net = LinuxNetworkInspector(arp_path=tmp_path / "missing")

    assert net.lookup_neighbor("10.0.0.3") == NeighborEntry(
        "10.0.0.3", "00:11:22:33:44:55", "eth0"
    )


def test_name_service_tries_getent_after_nmblookup(monkeypatch):
    outputs = {"nmblookup": None, "getent": "10.0.0.3    printer.lan\n"}
    monkeypatch.setattr(inspector, "_run", lambda command: outputs[command[0]])

    assert LinuxNetworkInspector().lookup_name_service("10.0.0.3") == "printer.lan"
