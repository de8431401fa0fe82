"""Service layer used by CLI and scripting frontends."""

from __future__ import annotations

import logging
import random
from typing import Callable

from itusb2conf.core.model import BlankState, DeviceProfile, Outcome, ProvisionResult, RunStatus
from itusb2conf.core.profile_loader import load_profile
from itusb2conf.core.sequencer import FailureCallback, ProvisioningSequencer
from itusb2conf.core.serial_number import generate_serial_suffix, validate_serial_suffix
from itusb2conf.transports.base import SessionFactory
from itusb2conf.transports.usb import open_session

LOGGER = logging.getLogger(__name__)

ConfirmCallback = Callable[[], bool]


class ProvisioningService:
    def __init__(
        self,
        *,
        session_factory: SessionFactory | None = None,
        profile: DeviceProfile | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.profile = profile or load_profile()
        self.open_session = session_factory or open_session
        self.rng = rng

    def check_blank(self, device_serial: str, on_failure: FailureCallback | None = None) -> BlankState:
        """Report whether the OTP region of a device is still blank, without writing."""
        with self.open_session(self.profile.lookup, device_serial) as transport:
            sequencer = ProvisioningSequencer(transport, self.profile, on_failure=on_failure)
            return sequencer.check_blank(RunStatus())

    def provision(
        self,
        device_serial: str,
        confirm: ConfirmCallback,
        *,
        serial_suffix: str | None = None,
        on_failure: FailureCallback | None = None,
    ) -> ProvisionResult:
        """Configure and lock a blank device.

        ``confirm`` is only called once the device has been found blank. The
        device is reset after configuration whether or not the lock was
        issued; the new descriptors are not read back because the device has
        to re-enumerate first.
        """
        if serial_suffix is not None:
            validate_serial_suffix(serial_suffix)

        status = RunStatus()
        with self.open_session(self.profile.lookup, device_serial) as transport:
            sequencer = ProvisioningSequencer(transport, self.profile, on_failure=on_failure)

            state = sequencer.check_blank(status)
            if state is BlankState.ERROR:
                return ProvisionResult(outcome=Outcome.FAILED, failures=tuple(status.failures))
            if state is BlankState.NOT_BLANK:
                return ProvisionResult(outcome=Outcome.NOT_BLANK)

            if not confirm():
                LOGGER.info("Configuration of %s canceled by operator", device_serial)
                return ProvisionResult(outcome=Outcome.CANCELED)

            suffix = serial_suffix or generate_serial_suffix(self.rng)
            report = sequencer.configure(suffix, status)
            sequencer.reset(status)

        outcome = Outcome.CONFIGURED if status.ok else Outcome.FAILED
        return ProvisionResult(
            outcome=outcome,
            serial_number=report.serial_number,
            locked=report.locked,
            failures=tuple(status.failures),
        )
