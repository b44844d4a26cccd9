"""
Main FastAPI application setup

Serves the Prometheus scrape endpoint and the JSON status routes.
"""

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST
import logging

from .system_routes import create_system_routes

logger = logging.getLogger(__name__)

class ExporterAPI:
    """HTTP surface of the exporter"""

    def __init__(self, watcher, metrics):
        self.watcher = watcher
        self.metrics = metrics
        self.app = FastAPI(
            title="Daikin Exporter",
            description="Prometheus exporter for Daikin wireless adaptors",
            version="1.0.0"
        )
        self._setup_routes()

    def _setup_routes(self):
        self.app.include_router(create_system_routes(self.watcher))

        @self.app.get("/metrics")
        async def get_metrics():
            """Prometheus text exposition, refreshed from the adaptor snapshots"""
            adaptors = await self.watcher.adaptors()
            await self.metrics.refresh(adaptors)
            logger.debug(f"Serving metrics for {len(adaptors)} adaptors")
            return Response(content=self.metrics.render(), media_type=CONTENT_TYPE_LATEST)
