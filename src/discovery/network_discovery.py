"""
Local network interface helpers for broadcast discovery
"""

import socket
import logging
from typing import List, Tuple

import psutil

from .models import DISCOVER_PORT, DiscoveryError

logger = logging.getLogger(__name__)

def broadcast_addresses(port: int = DISCOVER_PORT) -> List[Tuple[str, int]]:
    """IPv4 broadcast address of every local interface, each listed once"""
    try:
        interfaces = psutil.net_if_addrs()
    except (OSError, psutil.Error) as e:
        raise DiscoveryError(f"Unable to find network interfaces: {e}") from e

    addresses = []
    for name, snics in interfaces.items():
        for snic in snics:
            if snic.family != socket.AF_INET or not snic.broadcast:
                continue
            address = (snic.broadcast, port)
            if address not in addresses:
                logger.debug(f"Interface {name} broadcasts on {snic.broadcast}")
                addresses.append(address)

    return addresses
