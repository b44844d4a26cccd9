"""
Daikin watcher - keeps exactly one running adaptor per known host
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from services.adaptor import DaikinAdaptor

logger = logging.getLogger(__name__)

class DaikinWatcher:
    """
    Owns the host -> adaptor registry.

    Hosts come from the static configuration and from discovery events.
    Entries are never removed; an unreachable unit keeps its last values.
    """

    def __init__(self, config: Dict, session, metrics, adaptor_factory: Optional[Callable] = None):
        polling = config['polling']
        self.hosts: List[str] = list(polling['hosts'])
        self.interval = polling['refresh_interval_seconds']
        self.session = session
        self.metrics = metrics
        self.adaptor_factory = adaptor_factory or DaikinAdaptor

        self._adaptors: Dict[str, DaikinAdaptor] = {}
        self._lock = asyncio.Lock()
        self._watch_task: Optional[asyncio.Task] = None

    async def start(self, discovery=None):
        """
        Start adaptors for the configured hosts, then follow discovery.
        Subscribes before returning so no broadcast round can complete unseen.
        """
        for host in self.hosts:
            adaptor = self._new_adaptor(host)
            async with self._lock:
                self._adaptors[host] = adaptor

        if discovery is None:
            logger.info("Discovery disabled, watching configured hosts only")
            return

        discovered = discovery.subscribe()
        self._watch_task = asyncio.create_task(self._watch_loop(discovered), name="daikin-watcher")

    async def stop(self):
        if self._watch_task is not None:
            self._watch_task.cancel()
            await asyncio.gather(self._watch_task, return_exceptions=True)
            self._watch_task = None

        for adaptor in await self.adaptors():
            await adaptor.stop()

    async def _watch_loop(self, discovered: asyncio.Queue):
        while True:
            host = await discovered.get()
            try:
                await self.start_adaptor(host)
            except Exception as e:
                logger.error(f"Unable to start adaptor for discovered unit {host}: {e!r}")

    async def start_adaptor(self, host: str) -> bool:
        """Start an adaptor unless one already exists for host"""
        async with self._lock:
            if host in self._adaptors:
                logger.debug(f"Already watching {host}")
                return False

            self._adaptors[host] = self._new_adaptor(host)
            return True

    def _new_adaptor(self, host: str) -> DaikinAdaptor:
        logger.info(f"Watching Daikin adaptor {host}")
        adaptor = self.adaptor_factory(host, self.interval, self.session, self.metrics)
        adaptor.start()
        return adaptor

    async def adaptors(self) -> List[DaikinAdaptor]:
        async with self._lock:
            return list(self._adaptors.values())

    async def get(self, host: str) -> Optional[DaikinAdaptor]:
        async with self._lock:
            return self._adaptors.get(host)
