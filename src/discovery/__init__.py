"""
Discovery module for Daikin unit discovery
"""

from .manager import DaikinDiscovery
from .models import DISCOVER_PAYLOAD, DISCOVER_PORT, DiscoveryError
from .network_discovery import broadcast_addresses

__all__ = ['DaikinDiscovery', 'DISCOVER_PAYLOAD', 'DISCOVER_PORT', 'DiscoveryError', 'broadcast_addresses']
