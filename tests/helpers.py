"""Shared test utilities for the Daikin exporter tests."""

import asyncio

import aiohttp

BASIC_INFO_BODY = (
    "ret=OK,type=aircon,reg=eu,dst=1,ver=1_2_51,rev=D3A0C9F,pow=1,err=0,location=0,"
    "name=%4c%69%76%69%6e%67,icon=0,method=home only,port=30050,id=,pw=,lpw_flag=0"
)
CONTROL_INFO_BODY = "ret=OK,pow=1,mode=3,adv=,stemp=25,shum=50,f_rate=A,f_dir=1"
SENSOR_INFO_BODY = "ret=OK,htemp=23.5,hhum=-,otemp=12.0,err=0,cmpfreq=28"
WEEK_POWER_BODY = "ret=OK,today_runtime=195,datas=0/0/0/0/0/0/0"
# fan=1000 rawrtmp=235 trtmp=230 fangl=0 hetmp=310
MONITOR_DATA_BODY = (
    "ret=OK,tap=,fan=31303030,rawrtmp=323335,trtmp=323330,fangl=30,hetmp=333130,"
    "ResetCount=2,RouterDisconCnt=5,PollingErrCnt=0"
)

HEALTHY_UNIT = {
    "common/basic_info": (200, BASIC_INFO_BODY),
    "aircon/get_control_info": (200, CONTROL_INFO_BODY),
    "aircon/get_sensor_info": (200, SENSOR_INFO_BODY),
    "aircon/get_week_power": (200, WEEK_POWER_BODY),
    "aircon/get_monitordata": (200, MONITOR_DATA_BODY),
}


class FakeResponse:
    def __init__(self, status, body):
        self.status = status
        self.body = body

    async def text(self):
        return self.body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class FailingRequest:
    def __init__(self, error):
        self.error = error

    async def __aenter__(self):
        raise self.error

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession.

    Responses map a full URL or a bare path to ``(status, body)`` or to an
    exception. Anything unmapped fails like an unreachable host.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.requests = []

    def get(self, url):
        self.requests.append(url)
        path = url.split("/", 3)[3]
        result = self.responses.get(url, self.responses.get(path))
        if result is None:
            result = aiohttp.ClientConnectionError(f"cannot connect to {url}")
        if isinstance(result, BaseException):
            return FailingRequest(result)
        return FakeResponse(*result)

    def paths(self):
        return [url.split("/", 3)[3] for url in self.requests]


class FakeAdaptor:
    """Adaptor double with a fixed snapshot."""

    created = []

    def __init__(self, host, interval=None, session=None, metrics=None, snapshot=None):
        self.host = host
        self.interval = interval
        self.started = 0
        self._snapshot = dict(snapshot or {})
        FakeAdaptor.created.append(self)

    def start(self):
        self.started += 1

    async def stop(self):
        pass

    async def snapshot(self):
        return dict(self._snapshot)

    async def device_name(self):
        return self._snapshot.get("device_name")


class FakeWatcher:
    def __init__(self, adaptors):
        self._adaptors = {adaptor.host: adaptor for adaptor in adaptors}

    async def adaptors(self):
        return list(self._adaptors.values())

    async def get(self, host):
        return self._adaptors.get(host)


class FakeDiscovery:
    def __init__(self):
        self.queue = asyncio.Queue()
        self.subscriptions = 0

    def subscribe(self):
        self.subscriptions += 1
        return self.queue


class FakeTransport:
    """Records datagrams sent through a discovery socket.

    Like an asyncio datagram transport, a failed send is reported to the
    protocol through error_received() and sendto() itself returns normally.
    """

    def __init__(self, error=None):
        self.sent = []
        self.error = error
        self.closed = False
        self.protocol = None

    def set_protocol(self, protocol):
        self.protocol = protocol

    def get_protocol(self):
        return self.protocol

    def is_closing(self):
        return self.closed

    def sendto(self, data, address):
        if self.error is not None:
            self.protocol.error_received(self.error)
            return
        self.sent.append((data, address, asyncio.get_running_loop().time()))

    def close(self):
        self.closed = True

    def get_extra_info(self, name, default=None):
        return default


def make_config(**polling):
    config = {
        "exporter": {"bind_address": "127.0.0.1:0"},
        "discovery": {
            "enabled": False,
            "bind_address": "127.0.0.1:0",
            "major_interval_seconds": 300,
            "minor_interval_seconds": 0.2,
        },
        "polling": {
            "hosts": [],
            "refresh_interval_seconds": 60,
            "refresh_timeout_seconds": 0.25,
        },
        "logging": {"level": "INFO", "timezone": "UTC", "file": None, "console_output": True},
    }
    config["polling"].update(polling)
    return config


async def wait_for_condition(predicate, timeout=2.0, interval=0.01):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)
