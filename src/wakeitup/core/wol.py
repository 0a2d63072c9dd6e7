"""Wake-on-LAN magic packet construction and transmission."""

from __future__ import annotations

import logging
import re
import socket

from wakeitup.models import DEFAULT_WOL_PORT

logger = logging.getLogger(__name__)

MAGIC_PACKET_SIZE = 102

_HEX12 = re.compile(r"^[0-9A-Fa-f]{12}$")


def normalize_mac(mac_address: str) -> str | None:
    """Strip separators and return 12 hex digits, or None if malformed."""
    cleaned = re.sub(r"[:\-.\s]", "", mac_address or "")
    if not _HEX12.match(cleaned):
        return None
    return cleaned


def build_magic_packet(mac_address: str) -> bytes | None:
    cleaned = normalize_mac(mac_address)
    if cleaned is None:
        return None
    return b"\xff" * 6 + bytes.fromhex(cleaned) * 16


def send_magic_packet(
    mac_address: str, broadcast_address: str, port: int = DEFAULT_WOL_PORT
) -> bool:
    """Broadcast a magic packet. Blocking; returns False instead of raising."""
    packet = build_magic_packet(mac_address)
    if packet is None:
        logger.error("Invalid MAC address format: %s", mac_address)
        return False

    try:
        address = socket.gethostbyname(broadcast_address)
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.sendto(packet, (address, port))
    except (OSError, UnicodeError, OverflowError) as exc:
        logger.error(
            "Failed to send WOL packet for %s to %s:%s: %s",
            mac_address,
            broadcast_address,
            port,
            exc,
        )
        return False

    logger.info(
        "Magic packet sent to %s via %s:%s", mac_address, broadcast_address, port
    )
    return True
