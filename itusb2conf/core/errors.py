"""Domain-specific errors for itusb2conf."""


class Itusb2ConfError(Exception):
    """Base error for itusb2conf."""


class ProfileValidationError(Itusb2ConfError):
    """Raised when a device profile does not conform to schema or semantics."""


class ProfileLoadError(Itusb2ConfError):
    """Raised when reading a device profile fails."""


class SerialNumberError(Itusb2ConfError):
    """Raised when a serial number suffix is malformed."""


class DeviceNotFoundError(Itusb2ConfError):
    """Raised when no device matches the requested serial number."""


class DeviceUnavailableError(Itusb2ConfError):
    """Raised when the device interface cannot be claimed."""


class TransportError(Itusb2ConfError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised when the USB back-end cannot be initialized."""


class TransportSendError(TransportError):
    """Raised when a control transfer fails at the USB level."""


class TransportTimeoutError(TransportError):
    """Raised when a control transfer times out."""


class ShortTransferError(TransportError):
    """Raised when a control transfer moves a different byte count than requested."""

    def __init__(self, message: str, *, expected: int, actual: int) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual
