"""
Daikin Exporter Server - Main orchestrator for all services
"""

import asyncio
import logging
from typing import Dict, List, Optional
import uvicorn

from config_loader import parse_bind_address
from discovery.manager import DaikinDiscovery
from discovery.models import DiscoveryError
from api.main_api import ExporterAPI
from metrics.registry import MetricsRegistry
from http_helper import create_daikin_session
from services.supervisor import Supervisor
from services.watcher import DaikinWatcher

logger = logging.getLogger(__name__)

class DaikinExporterServer:
    """Wires discovery, watcher, adaptors and the scrape server together"""

    def __init__(self, config: Dict):
        self.config = config

        self.metrics: Optional[MetricsRegistry] = None
        self.supervisor: Optional[Supervisor] = None
        self.session = None
        self.discovery: Optional[DaikinDiscovery] = None
        self.watcher: Optional[DaikinWatcher] = None
        self.api: Optional[ExporterAPI] = None
        self.http_server: Optional[uvicorn.Server] = None
        self.tasks: List[asyncio.Task] = []

    async def run(self) -> int:
        """Run until the first fatal error; returns the process exit code"""
        try:
            await self.start()
        except (DiscoveryError, ValueError, OSError) as e:
            logger.critical(f"Exporter startup failed: {e}")
            await self.stop()
            return 1

        fatal = await self.supervisor.wait()
        logger.critical(f"Exiting after fatal error in {fatal.component}: {fatal.error}")
        await self.stop()
        return 1

    async def start(self):
        """Start all services; raises on setup errors"""
        logger.info("Starting Daikin exporter...")

        bind_host, bind_port = parse_bind_address(self.config['exporter']['bind_address'])

        self.metrics = MetricsRegistry()
        self.supervisor = Supervisor()
        self.session = create_daikin_session(self.config['polling']['refresh_timeout_seconds'])

        if self.config['discovery']['enabled']:
            self.discovery = await DaikinDiscovery.create(self.config['discovery'], self.metrics)
        else:
            logger.info("UDP discovery disabled by configuration")

        # The watcher subscribes to discovery here, before any broadcast is sent
        self.watcher = DaikinWatcher(self.config, self.session, self.metrics)
        await self.watcher.start(self.discovery)

        if self.discovery is not None:
            self.tasks.extend(self.discovery.start(self.supervisor))

        self.api = ExporterAPI(self.watcher, self.metrics)
        self.tasks.append(asyncio.create_task(self._serve(bind_host, bind_port), name="daikin-exporter-http"))

        logger.info(f"All services started ({len(self.tasks)} background tasks, "
                    f"{len(self.config['polling']['hosts'])} configured hosts)")

    async def stop(self):
        """Stop all services"""
        logger.info("Stopping exporter...")

        if self.http_server is not None:
            self.http_server.should_exit = True

        for task in self.tasks:
            task.cancel()
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks = []

        if self.discovery is not None:
            await self.discovery.stop()
        if self.watcher is not None:
            await self.watcher.stop()
        if self.session is not None:
            await self.session.close()

        logger.info("Exporter stopped")

    async def _serve(self, host: str, port: int):
        """Serve /metrics; the server ending for any reason is fatal"""
        config = uvicorn.Config(
            self.api.app,
            host=host,
            port=port,
            log_level="info",
            access_log=False  # We handle our own logging
        )
        self.http_server = uvicorn.Server(config)

        logger.info(f"Starting metrics server on {host}:{port}")

        try:
            await self.http_server.serve()
        except asyncio.CancelledError:
            raise
        except (Exception, SystemExit) as e:
            # uvicorn exits via SystemExit when it can not bind
            self.supervisor.report("exporter", e if isinstance(e, Exception) else RuntimeError(f"metrics server exited: {e.code}"))
            return

        self.supervisor.report("exporter", RuntimeError("metrics server stopped"))
