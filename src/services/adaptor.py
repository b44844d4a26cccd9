"""
Daikin adaptor - polls one unit's HTTP endpoints into a telemetry snapshot
"""

import asyncio
import ipaddress
import logging
import time
from typing import Callable, Dict, Optional

import aiohttp

from decoder import DecodeError, ProtocolError, hex_decode, parse_pairs, percent_decode, require
from interval_timer import IntervalTimer

logger = logging.getLogger(__name__)

BASIC_INFO = "common/basic_info"
CONTROL_INFO = "aircon/get_control_info"
SENSOR_INFO = "aircon/get_sensor_info"
WEEK_POWER = "aircon/get_week_power"
MONITOR_DATA = "aircon/get_monitordata"

FAN_RATE_LETTERS = {"A": "1", "B": "2"}


def _numeric(value: str) -> str:
    float(value)
    return value


def _integer(value: str) -> str:
    int(value)
    return value


def _fan_rate(value: str) -> str:
    if value in FAN_RATE_LETTERS:
        return FAN_RATE_LETTERS[value]
    return _integer(value)


def _hex_numeric(value: str) -> str:
    return _numeric(hex_decode(value))


def device_url(host: str, path: str, port: Optional[int] = None) -> str:
    """URL of one endpoint; IPv6 literals are bracketed"""
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        address = None

    netloc = f"[{host}]" if address is not None and address.version == 6 else host
    if port is not None:
        netloc = f"{netloc}:{port}"
    return f"http://{netloc}/{path}"


# (response key, snapshot field, converter) per endpoint
CONTROL_FIELDS = (
    ("stemp", "set_temp", _numeric),
    ("shum", "set_humid", _numeric),
    ("mode", "mode", _integer),
    ("f_rate", "fan_rate", _fan_rate),
    ("f_dir", "fan_dir", _integer),
)

SENSOR_FIELDS = (
    ("htemp", "unit_temp", _numeric),
    ("otemp", "outdoor_temp", _numeric),
    ("cmpfreq", "compressor_demand", _numeric),
)

WEEK_POWER_FIELDS = (
    ("today_runtime", "daily_runtime", _numeric),
)

# rawrtmp, trtmp and hetmp are tenths of a degree, scaled when exported
MONITOR_FIELDS = (
    ("fan", "monitor_fan_speed", _hex_numeric),
    ("rawrtmp", "monitor_rawrtmp", _hex_numeric),
    ("trtmp", "monitor_trtmp", _hex_numeric),
    ("fangl", "monitor_fangl", _hex_numeric),
    ("hetmp", "monitor_hetmp", _hex_numeric),
    ("ResetCount", "monitor_resets", _numeric),
    ("RouterDisconCnt", "monitor_router_disconnects", _numeric),
    ("PollingErrCnt", "monitor_polling_errors", _numeric),
)


class DaikinAdaptor:
    """Maintains the telemetry snapshot of a single Daikin unit"""

    def __init__(self, host: str, interval: float, session: aiohttp.ClientSession, metrics,
                 port: Optional[int] = None):
        self.host = host
        self.port = port
        self.interval = interval
        self.session = session
        self.metrics = metrics

        self._info: Dict[str, str] = {}
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    # ================== LIFECYCLE ==================

    def start(self) -> asyncio.Task:
        """Spawn the poll loop"""
        if self._task is None:
            self._task = asyncio.create_task(self.read_loop(), name=f"daikin-adaptor-{self.host}")
        return self._task

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    async def read_loop(self):
        timer = IntervalTimer(self.interval, name=f"poll {self.host}")
        logger.debug(f"Starting poll loop for {self.host} (every {self.interval}s)")

        while True:
            await timer.tick()
            try:
                await self.read_device()
            except Exception as e:
                logger.error(f"Poll pass for {self.host} failed: {e!r}")

    # ================== SNAPSHOT ==================

    async def snapshot(self) -> Dict[str, str]:
        async with self._lock:
            return dict(self._info)

    async def device_name(self) -> Optional[str]:
        async with self._lock:
            return self._info.get("device_name")

    async def _store(self, values: Dict[str, str]):
        if not values:
            return
        async with self._lock:
            self._info.update(values)

    # ================== POLL PASS ==================

    async def read_device(self):
        """One poll pass over every endpoint"""
        basic_info = await self.get_info(BASIC_INFO)
        if basic_info is None:
            return

        values = {}
        name = self._field(BASIC_INFO, basic_info, "name", percent_decode)
        # An empty name would put every unnamed unit on one series
        if name:
            values["device_name"] = name
        power_on = self._field(BASIC_INFO, basic_info, "pow", _integer)
        if power_on is not None:
            values["power_on"] = power_on
        await self._store(values)

        if await self.device_name() is None:
            # Without the device name there is no label for anything below
            logger.debug(f"No device name for {self.host} yet, skipping remaining endpoints")
            return

        await self._read_endpoint(CONTROL_INFO, CONTROL_FIELDS)
        await self._read_endpoint(SENSOR_INFO, SENSOR_FIELDS)
        await self._read_endpoint(WEEK_POWER, WEEK_POWER_FIELDS)
        await self._read_endpoint(MONITOR_DATA, MONITOR_FIELDS)

    async def _read_endpoint(self, path: str, fields):
        info = await self.get_info(path)
        if info is None:
            return

        values = {}
        for key, field, convert in fields:
            value = self._field(path, info, key, convert)
            if value is not None:
                values[field] = value
        await self._store(values)

    def _field(self, path: str, info: Dict[str, str], key: str, convert: Callable[[str], str]) -> Optional[str]:
        try:
            return convert(require(info, key))
        except (ProtocolError, DecodeError, ValueError) as e:
            logger.warning(f"Skipping {key} from {self.host}/{path}: {e}")
            return None

    async def get_info(self, path: str) -> Optional[Dict[str, str]]:
        """GET one endpoint and parse its key=value body"""
        url = device_url(self.host, path, self.port)

        logger.debug(f"Fetching {url}")
        self.metrics.http_requests.labels(host=self.host, path=path).inc()
        start = time.perf_counter()

        try:
            async with self.session.get(url) as response:
                status = response.status
                body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f"Request to {url} failed: {e!r}")
            self._error(path, "request")
            return None
        except UnicodeDecodeError as e:
            logger.debug(f"Undecodable response body from {url}: {e}")
            self._error(path, "body")
            return None
        finally:
            self.metrics.http_durations.labels(host=self.host, path=path).observe(time.perf_counter() - start)

        if status != 200:
            logger.debug(f"HTTP {status} for {url}")
            self._error(path, "status")
            return None

        try:
            return parse_pairs(body)
        except ProtocolError as e:
            logger.debug(f"Bad response body from {url}: {e}")
            self._error(path, "body")
            return None

    def _error(self, path: str, error_type: str):
        self.metrics.http_errors.labels(host=self.host, path=path, error_type=error_type).inc()
