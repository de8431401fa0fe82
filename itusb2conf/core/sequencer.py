"""OTP provisioning sequence for the CP2130 bridge.

Every register write is attempted even after an earlier one failed, so a
single run reports every failing block. The lock write is the only gated
step: it is issued only when all register writes succeeded, since a locked
chip can never be rewritten.
"""

from __future__ import annotations

import logging
from typing import Callable

from itusb2conf.core.errors import TransportError
from itusb2conf.core.model import (
    BlankState,
    ConfigureReport,
    ControlRequest,
    DeviceProfile,
    RegisterImage,
    RunStatus,
    StepFailure,
)
from itusb2conf.core.registers import (
    BLANK_LOCK_BYTES,
    configuration_images,
    lock_request,
    lock_state_request,
    reset_request,
    write_request,
)
from itusb2conf.core.serial_number import validate_serial_suffix
from itusb2conf.transports.base import ControlTransport

LOGGER = logging.getLogger(__name__)

FailureCallback = Callable[[StepFailure], None]


class ProvisioningSequencer:
    def __init__(
        self,
        transport: ControlTransport,
        profile: DeviceProfile,
        *,
        on_failure: FailureCallback | None = None,
    ) -> None:
        self.transport = transport
        self.profile = profile
        self.on_failure = on_failure

    def check_blank(self, status: RunStatus) -> BlankState:
        request = lock_state_request(timeout_ms=self.profile.timeout_ms)
        try:
            lock_bytes = self.transport.read(request)
        except TransportError as exc:
            self._fail(status, "lock_state", "lock state", request, exc)
            return BlankState.ERROR
        if len(lock_bytes) != request.length:
            self._fail(
                status,
                "lock_state",
                "lock state",
                request,
                f"Failed control transfer {request.label}: read {len(lock_bytes)} of {request.length} bytes",
            )
            return BlankState.ERROR
        LOGGER.debug("Lock bytes: %s", lock_bytes.hex())
        return BlankState.BLANK if lock_bytes == BLANK_LOCK_BYTES else BlankState.NOT_BLANK

    def configure(self, serial_suffix: str, status: RunStatus) -> ConfigureReport:
        validate_serial_suffix(serial_suffix)
        images = configuration_images(self.profile, serial_suffix)

        for image in images:
            self._write_image(image, status)

        locked = False
        if status.ok:
            locked = self.lock(status)
        else:
            LOGGER.warning(
                "Skipping OTP lock: %d register write(s) failed", len(status.failures)
            )

        return ConfigureReport(
            serial_number=self.profile.serial_prefix + serial_suffix,
            locked=locked,
        )

    def lock(self, status: RunStatus) -> bool:
        """Drive both lock bytes to zero. This cannot be undone."""
        request = lock_request(timeout_ms=self.profile.timeout_ms)
        return self._write(request, "lock", "OTP lock", status)

    def reset(self, status: RunStatus) -> bool:
        request = reset_request(timeout_ms=self.profile.timeout_ms)
        return self._write(request, "reset", "device reset", status)

    def _write_image(self, image: RegisterImage, status: RunStatus) -> bool:
        request = write_request(image, timeout_ms=self.profile.timeout_ms)
        return self._write(request, image.step, image.title, status)

    def _write(self, request: ControlRequest, step: str, title: str, status: RunStatus) -> bool:
        LOGGER.debug("Writing %s %s (%d bytes)", title, request.label, len(request.payload))
        try:
            written = self.transport.write(request)
        except TransportError as exc:
            self._fail(status, step, title, request, exc)
            return False
        if written != len(request.payload):
            self._fail(
                status,
                step,
                title,
                request,
                f"Failed control transfer {request.label}: wrote {written} of {len(request.payload)} bytes",
            )
            return False
        return True

    def _fail(
        self,
        status: RunStatus,
        step: str,
        title: str,
        request: ControlRequest,
        error: TransportError | str,
    ) -> None:
        failure = StepFailure(step=step, title=title, request_label=request.label, message=str(error))
        LOGGER.error("%s failed: %s", title, failure.message)
        status.record(failure)
        if self.on_failure is not None:
            self.on_failure(failure)
