"""USB control transport and device session built on pyusb."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import usb.core
import usb.util

from itusb2conf.core.errors import (
    DeviceNotFoundError,
    DeviceUnavailableError,
    ShortTransferError,
    TransportConnectError,
    TransportSendError,
    TransportTimeoutError,
)
from itusb2conf.core.model import ControlRequest, DeviceLookup

LOGGER = logging.getLogger(__name__)


class PyUSBTransport:
    def __init__(self, device: usb.core.Device) -> None:
        self._device = device

    def read(self, request: ControlRequest) -> bytes:
        data = bytes(self._transfer(request, request.length))
        if len(data) != request.length:
            raise ShortTransferError(
                f"Failed control transfer {request.label}: read {len(data)} of {request.length} bytes",
                expected=request.length,
                actual=len(data),
            )
        return data

    def write(self, request: ControlRequest) -> int:
        written = int(self._transfer(request, request.payload))
        if written != len(request.payload):
            raise ShortTransferError(
                f"Failed control transfer {request.label}: wrote {written} of {len(request.payload)} bytes",
                expected=len(request.payload),
                actual=written,
            )
        return written

    def _transfer(self, request: ControlRequest, data_or_length: bytes | int):
        LOGGER.debug(
            "ctrl_transfer %s value=0x%04X index=0x%04X length=%d",
            request.label,
            request.value,
            request.index,
            request.expected_length,
        )
        try:
            return self._device.ctrl_transfer(
                request.request_type,
                request.request,
                request.value,
                request.index,
                data_or_length,
                timeout=request.timeout_ms,
            )
        except usb.core.USBTimeoutError as exc:
            raise TransportTimeoutError(f"Failed control transfer {request.label}: timed out") from exc
        except usb.core.USBError as exc:
            raise TransportSendError(f"Failed control transfer {request.label}: {exc}") from exc


def find_device(lookup: DeviceLookup, serial: str) -> usb.core.Device:
    try:
        candidates = list(usb.core.find(find_all=True, idVendor=lookup.vid, idProduct=lookup.pid))
    except usb.core.NoBackendError as exc:
        raise TransportConnectError("Could not initialize libusb.") from exc

    for device in candidates:
        if _read_serial(device) == serial:
            return device
        usb.util.dispose_resources(device)
    raise DeviceNotFoundError(
        f"Could not find device with serial number '{serial}' "
        f"({lookup.vid:04X}:{lookup.pid:04X})."
    )


@contextmanager
def open_session(lookup: DeviceLookup, serial: str) -> Iterator[PyUSBTransport]:
    """Open the device, claim its interface and yield a transport bound to it.

    A kernel driver found on the interface is detached for the duration of the
    session and reattached afterwards. The interface is released on every exit
    path, including a failed claim.
    """
    device = find_device(lookup, serial)
    detached = False
    try:
        detached = _detach_kernel_driver(device, lookup.interface)
        try:
            usb.util.claim_interface(device, lookup.interface)
        except usb.core.USBError as exc:
            raise DeviceUnavailableError("Device is currently unavailable.") from exc
        try:
            yield PyUSBTransport(device)
        finally:
            _release_interface(device, lookup.interface)
    finally:
        if detached:
            _attach_kernel_driver(device, lookup.interface)
        usb.util.dispose_resources(device)


def _read_serial(device: usb.core.Device) -> str | None:
    if not device.iSerialNumber:
        return None
    try:
        return usb.util.get_string(device, device.iSerialNumber)
    except (usb.core.USBError, ValueError) as exc:
        LOGGER.debug("Could not read serial number of %s: %s", device, exc)
        return None


def _detach_kernel_driver(device: usb.core.Device, interface: int) -> bool:
    try:
        if not device.is_kernel_driver_active(interface):
            return False
        device.detach_kernel_driver(interface)
    except NotImplementedError:
        LOGGER.debug("Kernel driver control not supported on this platform")
        return False
    except usb.core.USBError as exc:
        raise DeviceUnavailableError("Device is currently unavailable.") from exc
    LOGGER.debug("Detached kernel driver from interface %d", interface)
    return True


def _release_interface(device: usb.core.Device, interface: int) -> None:
    # After a reset the device is re-enumerating and the handle is stale.
    try:
        usb.util.release_interface(device, interface)
    except usb.core.USBError as exc:
        LOGGER.debug("Releasing interface %d failed: %s", interface, exc)


def _attach_kernel_driver(device: usb.core.Device, interface: int) -> None:
    try:
        device.attach_kernel_driver(interface)
    except usb.core.USBError as exc:
        LOGGER.debug("Reattaching kernel driver to interface %d failed: %s", interface, exc)
    else:
        LOGGER.debug("Reattached kernel driver to interface %d", interface)
