"""Transport interfaces."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Callable, Protocol

from itusb2conf.core.model import ControlRequest, DeviceLookup


class ControlTransport(Protocol):
    def read(self, request: ControlRequest) -> bytes:
        """Issue a device-to-host control transfer and return the bytes received."""

    def write(self, request: ControlRequest) -> int:
        """Issue a host-to-device control transfer and return the byte count sent."""


SessionFactory = Callable[[DeviceLookup, str], AbstractContextManager[ControlTransport]]
