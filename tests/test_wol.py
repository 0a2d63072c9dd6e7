from __future__ import annotations

import socket

import pytest

from wakeitup.core import wol
from wakeitup.core.wol import (
    MAGIC_PACKET_SIZE,
    build_magic_packet,
    normalize_mac,
    send_magic_packet,
)


class _FakeSocket:
    def __init__(self, sent: list, fail: bool = False) -> None:
        self.sent = sent
        self.fail = fail
        self.options: list[tuple[int, int, int]] = []

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def setsockopt(self, level, option, value):
        self.options.append((level, option, value))

    def sendto(self, data, address):
        if self.fail:
            raise OSError("Network is unreachable")
        self.sent.append((data, address, list(self.options)))


def test_magic_packet_layout():
    packet = build_magic_packet("AA:BB:CC:DD:EE:FF")

    assert packet is not None
    assert len(packet) == MAGIC_PACKET_SIZE
    assert packet[:6] == b"\xff" * 6
    mac = bytes.fromhex("AABBCCDDEEFF")
    for repeat in range(16):
        offset = 6 + repeat * 6
        assert packet[offset : offset + 6] == mac


@pytest.mark.parametrize(
    "mac",
    ["aa-bb-cc-dd-ee-ff", "AABB.CCDD.EEFF", "aabbccddeeff", " AA:BB:CC:DD:EE:FF "],
)
def test_separators_are_ignored(mac):
    assert normalize_mac(mac) is not None
    assert build_magic_packet(mac) == build_magic_packet("AA:BB:CC:DD:EE:FF")


@pytest.mark.parametrize(
    "mac", ["", "AA:BB:CC:DD:EE", "GG:BB:CC:DD:EE:FF", "AA:BB:CC:DD:EE:FF:00"]
)
def test_malformed_mac_never_opens_a_socket(monkeypatch, mac):
    def _no_socket(*args, **kwargs):
        raise AssertionError("socket must not be opened")

    monkeypatch.setattr(wol.socket, "socket", _no_socket)

    assert build_magic_packet(mac) is None
    assert send_magic_packet(mac, "192.168.1.255") is False


def test_send_broadcasts_to_port(monkeypatch):
    sent: list = []
    monkeypatch.setattr(wol.socket, "socket", lambda *args: _FakeSocket(sent))

    assert send_magic_packet("AA:BB:CC:DD:EE:FF", "192.168.1.255", 7) is True

    data, address, options = sent[0]
    assert data == build_magic_packet("AA:BB:CC:DD:EE:FF")
    assert address == ("192.168.1.255", 7)
    assert (socket.SOL_SOCKET, socket.SO_BROADCAST, 1) in options


def test_send_failure_returns_false(monkeypatch):
    monkeypatch.setattr(
        wol.socket, "socket", lambda *args: _FakeSocket([], fail=True)
    )

    assert send_magic_packet("AA:BB:CC:DD:EE:FF", "192.168.1.255") is False
