"""
Discovery constants and error types
"""

DISCOVER_PORT = 30050

# Same probe the vendor's control app broadcasts
DISCOVER_PAYLOAD = b"DAIKIN_UDP/common/basic_info"

# Events buffered per subscriber before new ones are dropped
SUBSCRIBER_QUEUE_SIZE = 16

class DiscoveryError(RuntimeError):
    """UDP discovery can not continue"""
