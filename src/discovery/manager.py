"""
UDP broadcast discovery of Daikin adaptors

Every major interval the probe is broadcast twice (a minor interval apart) on
each local IPv4 broadcast address. Any datagram that comes back marks its
sender as a Daikin unit and is published to the current subscribers.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from config_loader import parse_bind_address
from interval_timer import IntervalTimer
from .models import DISCOVER_PAYLOAD, SUBSCRIBER_QUEUE_SIZE, DiscoveryError
from .network_discovery import broadcast_addresses

logger = logging.getLogger(__name__)

class _DiscoveryProtocol(asyncio.DatagramProtocol):
    """
    Hands received datagrams and socket errors to the listen loop.

    asyncio reports a failed sendto() through error_received() instead of
    raising, so errors seen while send() runs are returned to the sender.
    """

    def __init__(self):
        self.transport = None
        self.received: asyncio.Queue = asyncio.Queue()
        self._sending = False
        self._send_error: Optional[Exception] = None

    def connection_made(self, transport: asyncio.DatagramTransport) -> None:
        self.transport = transport

    def datagram_received(self, data: bytes, addr: tuple) -> None:
        self.received.put_nowait((data, addr))

    def send(self, transport, data: bytes, address: Tuple[str, int]) -> Optional[Exception]:
        """sendto() returning the error it reported, if any"""
        self._sending = True
        self._send_error = None
        try:
            transport.sendto(data, address)
        finally:
            self._sending = False
        return self._send_error

    def error_received(self, exc: Exception) -> None:
        if self._sending:
            self._send_error = exc
            return
        self.received.put_nowait(exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self.received.put_nowait(exc or DiscoveryError("Discovery socket closed"))

class DaikinDiscovery:
    """Discovers Daikin units on the local broadcast domains"""

    def __init__(self, transport, protocol: _DiscoveryProtocol, major_interval: float,
                 minor_interval: float, metrics, address_source=broadcast_addresses):
        self.transport = transport
        self.protocol = protocol
        self.major_interval = major_interval
        self.minor_interval = minor_interval
        self.metrics = metrics
        self.address_source = address_source

        self._subscribers: List[asyncio.Queue] = []
        self._ready = asyncio.Event()
        self._tasks: List[asyncio.Task] = []

    @classmethod
    async def create(cls, config: Dict, metrics) -> "DaikinDiscovery":
        """Bind the discovery socket; failure here is a setup error"""
        bind_address = config['bind_address']
        host, port = parse_bind_address(bind_address)

        loop = asyncio.get_running_loop()
        try:
            transport, protocol = await loop.create_datagram_endpoint(
                _DiscoveryProtocol,
                local_addr=(host, port),
                allow_broadcast=True,
            )
        except OSError as e:
            raise DiscoveryError(f"Unable to start Daikin discovery on {bind_address}: {e}") from e

        logger.info(f"Listening for units on {transport.get_extra_info('sockname')}")

        return cls(
            transport,
            protocol,
            config['major_interval_seconds'],
            config['minor_interval_seconds'],
            metrics,
        )

    # ================== SUBSCRIPTIONS ==================

    def subscribe(self) -> asyncio.Queue:
        """
        Receive discovered hosts from now on.
        The first subscription releases the broadcast loop.
        """
        queue = asyncio.Queue(maxsize=SUBSCRIBER_QUEUE_SIZE)
        self._subscribers.append(queue)
        self._ready.set()
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def publish(self, host: str) -> int:
        """
        Best-effort, at-most-once fan-out of a discovered host.
        Returns the number of subscribers the event was queued for.
        """
        if not self._subscribers:
            logger.debug(f"No subscribers for discovered unit {host}")
            return 0

        delivered = 0
        for queue in self._subscribers:
            try:
                queue.put_nowait(host)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(f"Subscriber queue full, dropping discovered unit {host}")
        return delivered

    # ================== LOOPS ==================

    def start(self, supervisor) -> List[asyncio.Task]:
        """Spawn the listen and broadcast loops, reporting failures as fatal"""
        self._tasks = [
            asyncio.create_task(self._supervised(supervisor, self.listen_loop), name="daikin-discovery-listen"),
            asyncio.create_task(self._supervised(supervisor, self.broadcast_loop), name="daikin-discovery-broadcast"),
        ]
        return self._tasks

    async def stop(self):
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self.transport.close()

    async def _supervised(self, supervisor, loop_function):
        try:
            await loop_function()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            supervisor.report("discovery", e)

    async def broadcast_loop(self):
        if not self._ready.is_set():
            logger.debug("Waiting for a discovery subscriber before broadcasting")
        await self._ready.wait()

        logger.debug("Starting discovery broadcast loop")
        timer = IntervalTimer(self.major_interval, name="discovery broadcast")

        while True:
            await timer.tick()
            addresses = self.address_source()
            if not addresses:
                logger.warning("No IPv4 broadcast interfaces found, nothing to probe")
                continue
            await self.broadcast_round(addresses)

    async def broadcast_round(self, addresses: List[Tuple[str, int]]):
        """Probe every address twice, a minor interval apart"""
        for address in addresses:
            self.broadcast(address)

        await asyncio.sleep(self.minor_interval)

        for address in addresses:
            self.broadcast(address)

    def broadcast(self, address: Tuple[str, int]):
        logger.debug(f"Sending discovery broadcast to {address[0]}:{address[1]}")

        if self.transport.is_closing():
            raise DiscoveryError(f"Unable to send discover request to {address[0]}: socket closed")

        error = self.protocol.send(self.transport, DISCOVER_PAYLOAD, address)
        if error is not None:
            raise DiscoveryError(f"Unable to send discover request to {address[0]}: {error}") from error

        self.metrics.discover_requests.labels(address=address[0]).inc()

    async def listen_loop(self):
        logger.debug("Starting discovery listen loop")

        while True:
            item = await self.protocol.received.get()
            if isinstance(item, BaseException):
                raise DiscoveryError(f"Discovery socket error: {item}") from item

            data, addr = item
            host = addr[0]

            self.metrics.discover_responses.labels(host=host).inc()
            logger.debug(f"Received {len(data)} bytes {data!r} from {host}")

            self.publish(host)
