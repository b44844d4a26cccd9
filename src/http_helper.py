# HTTP Helper for Daikin adaptor connections

import aiohttp
import logging

logger = logging.getLogger(__name__)

def create_daikin_session(timeout_seconds: float = 0.25) -> aiohttp.ClientSession:
    """
    Create aiohttp session shared by all Daikin adaptors (plain HTTP only).
    The wireless adaptors handle one connection at a time and drop idle
    keep-alive connections, so every request gets a fresh connection.
    """
    connector = aiohttp.TCPConnector(
        limit_per_host=1,           # One request at a time per adaptor
        ssl=False,                  # Adaptors speak HTTP only
        force_close=True,
        enable_cleanup_closed=True
    )

    logger.debug(f"Creating Daikin HTTP session (timeout={timeout_seconds}s)")

    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds, connect=timeout_seconds)
    )
