"""In-memory stand-ins for the BLE transport and a simulated desk."""

import struct
from dataclasses import dataclass
from typing import Optional

import pytest

from desk_controller.codec import MAX_HEIGHT, MIN_HEIGHT, UUID_CONTROL, UUID_POSITION, MotorCommand
from desk_controller.transport import TransportError, TransportPermissionError


@dataclass
class FakePeripheral:
    name: Optional[str]
    address: str


@dataclass(frozen=True)
class FakeAttribute:
    uuid: str


class FakeClock:
    """Monotonic clock that only moves when something sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeDesk:
    """
    A connected desk moving at a constant rate while a motor command is active.

    `coast` is how far the desk keeps going when halted mid-movement and
    `nudge` how far it moves when halted right after being started.
    """

    def __init__(
        self,
        clock: FakeClock,
        height: int = 10000,
        rate: int = 500,
        coast: int = 0,
        nudge: int = 20,
        address: str = "AA:BB:CC:DD:EE:FF",
        attributes: Optional[list] = None,
    ):
        self.clock = clock
        self.height = height
        self.rate = rate
        self.coast = coast
        self.nudge = nudge
        self._address = address
        if attributes is None:
            attributes = [
                FakeAttribute("00002a00-0000-1000-8000-00805f9b34fb"),
                FakeAttribute(UUID_CONTROL),
                FakeAttribute(UUID_POSITION),
            ]
        self.attributes = attributes
        self.motion = 0
        self._moving_since = 0.0
        self._last = clock()

        self.reads = 0
        self.writes: list[bytes] = []
        self.log: list[tuple[int, bytes]] = []
        self.subscriptions: dict = {}
        self.discover_calls = 0
        self.disconnected = False

        self.fail_discovery = False
        self.fail_subscribe = False
        self.fail_writes = 0
        self.fail_reads_after: Optional[int] = None

    @property
    def address(self) -> str:
        return self._address

    def _advance(self):
        now = self.clock()
        dt, self._last = now - self._last, now
        self.height += self.motion * round(self.rate * dt)
        self.height = max(MIN_HEIGHT, min(MAX_HEIGHT, self.height))

    async def discover_attributes(self):
        self.discover_calls += 1
        if self.fail_discovery:
            raise TransportError("services unavailable")
        return list(self.attributes)

    async def read(self, attr):
        assert attr.uuid == UUID_POSITION
        self.reads += 1
        if self.fail_reads_after is not None and self.reads > self.fail_reads_after:
            raise TransportError("read timed out")
        self._advance()
        return struct.pack("<Hh", self.height - MIN_HEIGHT, 0)

    async def write(self, attr, data: bytes):
        assert attr.uuid == UUID_CONTROL
        self._advance()
        if self.fail_writes:
            self.fail_writes -= 1
            raise TransportError("write dropped")
        self.writes.append(bytes(data))
        self.log.append((self.height, bytes(data)))
        cmd = MotorCommand(bytes(data))
        if cmd is MotorCommand.HALT:
            if self.motion:
                started_now = self.clock() == self._moving_since
                self.height += self.motion * (self.nudge if started_now else self.coast)
            self.motion = 0
            return
        motion = 1 if cmd is MotorCommand.RAISE else -1
        if motion != self.motion:
            self.motion = motion
            self._moving_since = self.clock()

    async def subscribe(self, attr, callback):
        if self.fail_subscribe:
            raise TransportError("notify refused")
        self.subscriptions[attr.uuid] = callback

    async def disconnect(self):
        self.disconnected = True

    def commands(self) -> list[MotorCommand]:
        return [MotorCommand(data) for data in self.writes]


class FakeTransport:
    """Scanner whose device list can be scripted per listing."""

    def __init__(self, peripherals=None, desk: Optional[FakeDesk] = None, appear_after: int = 0):
        self._peripherals = peripherals or []
        self.desk = desk
        self.appear_after = appear_after
        self.listings = 0
        self.scanning = False
        self.scan_stopped = False
        self.scan_error: Optional[Exception] = None
        self.connect_error: Optional[Exception] = None
        self.connected_to = None

    async def start_scan(self):
        if self.scan_error is not None:
            raise self.scan_error
        self.scanning = True

    async def stop_scan(self):
        self.scanning = False
        self.scan_stopped = True

    def peripherals(self):
        self.listings += 1
        if self.listings <= self.appear_after:
            return []
        return list(self._peripherals)

    async def connect(self, peripheral):
        if self.connect_error is not None:
            raise self.connect_error
        self.connected_to = peripheral
        return self.desk


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def desk(clock):
    return FakeDesk(clock)


@pytest.fixture
def desk_peripheral():
    return FakePeripheral("Desk 4711", "AA:BB:CC:DD:EE:FF")


@pytest.fixture
def transport(desk, desk_peripheral):
    return FakeTransport([FakePeripheral(None, "11:22:33:44:55:66"), desk_peripheral], desk)


@pytest.fixture
def permission_error():
    return TransportPermissionError("BLE is not authorized")


@pytest.fixture
def make_desk(clock):
    def make(**kwargs) -> FakeDesk:
        return FakeDesk(clock, **kwargs)

    return make


@pytest.fixture
def make_transport():
    def make(peripherals=None, desk=None, appear_after=0) -> FakeTransport:
        return FakeTransport(peripherals, desk, appear_after)

    return make


@pytest.fixture
def peripheral():
    return FakePeripheral


@pytest.fixture
def attribute():
    return FakeAttribute
