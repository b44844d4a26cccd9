"""
Device status and health API routes
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

# Response models
class DeviceResponse(BaseModel):
    host: str
    device_name: Optional[str]
    snapshot: Dict[str, str]

class HealthResponse(BaseModel):
    status: str
    adaptors: int
    named_adaptors: int

def create_system_routes(watcher):
    """Create device status routes"""
    router = APIRouter(prefix="/api", tags=["system"])

    @router.get("/devices", response_model=List[DeviceResponse])
    async def get_devices():
        """Latest snapshot of every watched adaptor"""
        devices = []
        for adaptor in await watcher.adaptors():
            snapshot = await adaptor.snapshot()
            devices.append(DeviceResponse(
                host=adaptor.host,
                device_name=snapshot.get('device_name'),
                snapshot=snapshot
            ))
        return devices

    @router.get("/devices/{host}", response_model=DeviceResponse)
    async def get_device(host: str):
        """Latest snapshot of one adaptor"""
        adaptor = await watcher.get(host)
        if adaptor is None:
            raise HTTPException(status_code=404, detail=f"Unknown host: {host}")

        snapshot = await adaptor.snapshot()
        return DeviceResponse(host=adaptor.host, device_name=snapshot.get('device_name'), snapshot=snapshot)

    @router.get("/health", response_model=HealthResponse)
    async def get_health():
        """Adaptor counts; named adaptors are the ones being exported"""
        adaptors = await watcher.adaptors()
        named = 0
        for adaptor in adaptors:
            if await adaptor.device_name() is not None:
                named += 1

        return HealthResponse(status="ok", adaptors=len(adaptors), named_adaptors=named)

    return router
