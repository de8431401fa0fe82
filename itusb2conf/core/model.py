"""Core data models used across registers, sequencer, service, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Direction(Enum):
    IN = "in"
    OUT = "out"


class BlankState(Enum):
    BLANK = "blank"
    NOT_BLANK = "not_blank"
    ERROR = "error"


class Outcome(Enum):
    CONFIGURED = "configured"
    NOT_BLANK = "not_blank"
    CANCELED = "canceled"
    FAILED = "failed"


@dataclass(frozen=True)
class ControlRequest:
    direction: Direction
    request: int
    value: int
    index: int = 0x0000
    payload: bytes = b""
    length: int = 0
    timeout_ms: int = 100

    @property
    def request_type(self) -> int:
        # Vendor request, device recipient.
        return 0xC0 if self.direction is Direction.IN else 0x40

    @property
    def expected_length(self) -> int:
        return self.length if self.direction is Direction.IN else len(self.payload)

    @property
    def label(self) -> str:
        return f"(0x{self.request_type:02X}, 0x{self.request:02X})"


@dataclass(frozen=True)
class RegisterImage:
    step: str
    title: str
    request: int
    data: bytes


@dataclass(frozen=True)
class DeviceLookup:
    vid: int
    pid: int
    interface: int = 0


@dataclass(frozen=True)
class UsbConfig:
    vid: int
    pid: int
    max_power_ma: int
    power_mode: int
    release_major: int
    release_minor: int
    transfer_priority: int
    write_mask: int


@dataclass(frozen=True)
class PinConfig:
    gpio_roles: tuple[int, ...]
    suspend_level: int
    suspend_mode: int
    wakeup_mask: int
    wakeup_match: int
    clock_divider: int


@dataclass(frozen=True)
class DeviceProfile:
    id: str
    name: str
    lookup: DeviceLookup
    timeout_ms: int
    usb: UsbConfig
    manufacturer: str
    product: str
    serial_prefix: str
    pins: PinConfig


@dataclass(frozen=True)
class StepFailure:
    step: str
    title: str
    request_label: str
    message: str


@dataclass
class RunStatus:
    """Failure accumulator for a single configuration run.

    Starts out successful and only ever moves towards failure.
    """

    failures: list[StepFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def record(self, failure: StepFailure) -> None:
        self.failures.append(failure)


@dataclass(frozen=True)
class ConfigureReport:
    serial_number: str
    locked: bool


@dataclass(frozen=True)
class ProvisionResult:
    outcome: Outcome
    serial_number: str | None = None
    locked: bool = False
    failures: tuple[StepFailure, ...] = ()
