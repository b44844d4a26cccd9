"""
Supervisor - funnels fatal errors from long-running services into one exit signal
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class FatalError:
    """A terminal error and the component that raised it"""
    component: str
    error: BaseException

    def __str__(self):
        return f"{self.component}: {self.error}"

class Supervisor:
    """Keeps the first fatal error reported; later reports are dropped"""

    def __init__(self):
        self._fatal: Optional[FatalError] = None
        self._event = asyncio.Event()

    @property
    def fatal(self) -> Optional[FatalError]:
        return self._fatal

    def report(self, component: str, error: BaseException) -> None:
        if self._fatal is not None:
            logger.debug(f"Ignoring fatal error from {component} after shutdown began: {error}")
            return

        self._fatal = FatalError(component, error)
        logger.error(f"Fatal error in {component}: {error}")
        self._event.set()

    async def wait(self) -> FatalError:
        """Block until a fatal error is reported"""
        await self._event.wait()
        return self._fatal
