"""Stable public API for building tooling on top of itusb2conf.

This module is the supported integration surface for third-party callers,
such as production-line scripts. Avoid importing from internal modules unless
intentionally depending on non-stable internals.
"""

from __future__ import annotations

import random

from itusb2conf.core.errors import (
    DeviceNotFoundError,
    DeviceUnavailableError,
    Itusb2ConfError,
    ProfileLoadError,
    ProfileValidationError,
    SerialNumberError,
    ShortTransferError,
    TransportConnectError,
    TransportError,
    TransportSendError,
    TransportTimeoutError,
)
from itusb2conf.core.model import (
    BlankState,
    ControlRequest,
    DeviceLookup,
    DeviceProfile,
    Direction,
    Outcome,
    PinConfig,
    ProvisionResult,
    StepFailure,
    UsbConfig,
)
from itusb2conf.core.sequencer import FailureCallback
from itusb2conf.core.service import ConfirmCallback, ProvisioningService
from itusb2conf.transports.base import ControlTransport, SessionFactory

__all__ = [
    "Itusb2ConfError",
    "DeviceNotFoundError",
    "DeviceUnavailableError",
    "ProfileLoadError",
    "ProfileValidationError",
    "SerialNumberError",
    "TransportError",
    "TransportConnectError",
    "TransportSendError",
    "TransportTimeoutError",
    "ShortTransferError",
    "BlankState",
    "ControlRequest",
    "ControlTransport",
    "DeviceLookup",
    "DeviceProfile",
    "Direction",
    "Outcome",
    "PinConfig",
    "ProvisionResult",
    "StepFailure",
    "UsbConfig",
    "Client",
]


class Client:
    """Public client for checking and provisioning ITUSB2 devices.

    A `Client` wraps profile loading, the USB session and the provisioning
    sequence behind a stable API. Provisioning is irreversible once the lock
    step runs; `confirm` is the caller's last chance to back out.
    """

    def __init__(
        self,
        *,
        session_factory: SessionFactory | None = None,
        profile: DeviceProfile | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._service = ProvisioningService(session_factory=session_factory, profile=profile, rng=rng)

    @property
    def profile(self) -> DeviceProfile:
        return self._service.profile

    def check_blank(
        self,
        device_serial: str,
        *,
        on_failure: FailureCallback | None = None,
    ) -> BlankState:
        return self._service.check_blank(device_serial, on_failure=on_failure)

    def provision(
        self,
        device_serial: str,
        *,
        confirm: ConfirmCallback,
        serial_suffix: str | None = None,
        on_failure: FailureCallback | None = None,
    ) -> ProvisionResult:
        return self._service.provision(
            device_serial,
            confirm,
            serial_suffix=serial_suffix,
            on_failure=on_failure,
        )
