"""CP2130 OTP register map and register image builders.

Every configuration block is written in a single vendor control transfer
whose payload must be exactly ``REGISTER_SIZES[request]`` bytes long.

USB configuration block (``REQ_SET_USB_CONFIG``, 10 bytes)::

    0-1  VID, little-endian
    2-3  PID, little-endian
    4    maximum power, in units of 2 mA
    5    power mode
    6    release number, major
    7    release number, minor
    8    transfer priority
    9    mask selecting which of the fields above are written

Pin configuration block (``REQ_SET_PIN_CONFIG``, 20 bytes)::

    0-10   GPIO.0 .. GPIO.10 role
    11-12  suspend pin level, big-endian
    13-14  suspend pin mode, big-endian
    15-16  wakeup pin mask, big-endian
    17-18  wakeup pin match, big-endian
    19     clock divider (0 selects 256)

String blocks hold a USB string descriptor: a length byte, the descriptor type
``0x03`` and the UTF-16LE code units, zero padded. Manufacturing and product
strings span two 64-byte halves; the serial string fits in one block.
"""

from __future__ import annotations

import struct

from itusb2conf.core.model import ControlRequest, DeviceProfile, Direction, PinConfig, RegisterImage, UsbConfig

UNLOCK_KEY = 0xA5F1

REQ_RESET_DEVICE = 0x10
REQ_SET_USB_CONFIG = 0x61
REQ_SET_MANUFACTURING_STRING_1 = 0x63
REQ_SET_MANUFACTURING_STRING_2 = 0x65
REQ_SET_PRODUCT_STRING_1 = 0x67
REQ_SET_PRODUCT_STRING_2 = 0x69
REQ_SET_SERIAL_STRING = 0x6B
REQ_SET_PIN_CONFIG = 0x6D
REQ_GET_LOCK_BYTE = 0x6E
REQ_SET_LOCK_BYTE = 0x6F

REGISTER_SIZES: dict[int, int] = {
    REQ_RESET_DEVICE: 0,
    REQ_SET_USB_CONFIG: 10,
    REQ_SET_MANUFACTURING_STRING_1: 64,
    REQ_SET_MANUFACTURING_STRING_2: 64,
    REQ_SET_PRODUCT_STRING_1: 64,
    REQ_SET_PRODUCT_STRING_2: 64,
    REQ_SET_SERIAL_STRING: 64,
    REQ_SET_PIN_CONFIG: 20,
    REQ_GET_LOCK_BYTE: 2,
    REQ_SET_LOCK_BYTE: 2,
}

BLANK_LOCK_BYTES = b"\xff\xff"
LOCKED_LOCK_BYTES = b"\x00\x00"

GPIO_COUNT = 11
GPIO_ROLES: dict[str, int] = {
    "input": 0x00,
    "output_open_drain": 0x01,
    "output_push_pull": 0x02,
    "chip_select": 0x03,
    "alternate": 0x04,
}

STRING_DESCRIPTOR_TYPE = 0x03
LONG_STRING_SIZE = 128
MAX_LONG_STRING_CHARS = 62
MAX_SERIAL_STRING_CHARS = 30
SERIAL_SUFFIX_LENGTH = 6
STRING_HEADER_SIZE = 2


def string_descriptor(text: str, size: int) -> bytes:
    encoded = text.encode("utf-16-le")
    length = STRING_HEADER_SIZE + len(encoded)
    if length > size or length > 0xFF:
        raise ValueError(f"String '{text}' does not fit in a {size}-byte descriptor block")
    return bytes((length, STRING_DESCRIPTOR_TYPE)) + encoded + bytes(size - length)


def usb_config_image(config: UsbConfig) -> RegisterImage:
    data = struct.pack(
        "<HHBBBBBB",
        config.vid,
        config.pid,
        config.max_power_ma // 2,
        config.power_mode,
        config.release_major,
        config.release_minor,
        config.transfer_priority,
        config.write_mask,
    )
    return _image("usb_config", "USB configuration", REQ_SET_USB_CONFIG, data)


def manufacturing_string_images(text: str) -> tuple[RegisterImage, RegisterImage]:
    first, second = _split_long_string(text)
    return (
        _image("manufacturing_string_1", "manufacturing string (half 1)", REQ_SET_MANUFACTURING_STRING_1, first),
        _image("manufacturing_string_2", "manufacturing string (half 2)", REQ_SET_MANUFACTURING_STRING_2, second),
    )


def product_string_images(text: str) -> tuple[RegisterImage, RegisterImage]:
    first, second = _split_long_string(text)
    return (
        _image("product_string_1", "product string (half 1)", REQ_SET_PRODUCT_STRING_1, first),
        _image("product_string_2", "product string (half 2)", REQ_SET_PRODUCT_STRING_2, second),
    )


def serial_string_image(prefix: str, suffix: str) -> RegisterImage:
    data = string_descriptor(prefix + suffix, REGISTER_SIZES[REQ_SET_SERIAL_STRING])
    return _image("serial_string", "serial string", REQ_SET_SERIAL_STRING, data)


def serial_suffix_region(prefix: str) -> slice:
    """Byte range of the serial string image occupied by the suffix."""
    start = STRING_HEADER_SIZE + 2 * len(prefix)
    return slice(start, start + 2 * SERIAL_SUFFIX_LENGTH)


def pin_config_image(config: PinConfig) -> RegisterImage:
    if len(config.gpio_roles) != GPIO_COUNT:
        raise ValueError(f"Pin configuration needs {GPIO_COUNT} GPIO roles, got {len(config.gpio_roles)}")
    data = bytes(config.gpio_roles) + struct.pack(
        ">HHHHB",
        config.suspend_level,
        config.suspend_mode,
        config.wakeup_mask,
        config.wakeup_match,
        config.clock_divider,
    )
    return _image("pin_config", "pin configuration", REQ_SET_PIN_CONFIG, data)


def configuration_images(profile: DeviceProfile, serial_suffix: str) -> list[RegisterImage]:
    """Register images in the order they must be written."""
    return [
        usb_config_image(profile.usb),
        *manufacturing_string_images(profile.manufacturer),
        *product_string_images(profile.product),
        serial_string_image(profile.serial_prefix, serial_suffix),
        pin_config_image(profile.pins),
    ]


def write_request(image: RegisterImage, *, timeout_ms: int) -> ControlRequest:
    return ControlRequest(
        direction=Direction.OUT,
        request=image.request,
        value=UNLOCK_KEY,
        payload=image.data,
        timeout_ms=timeout_ms,
    )


def lock_state_request(*, timeout_ms: int) -> ControlRequest:
    return ControlRequest(
        direction=Direction.IN,
        request=REQ_GET_LOCK_BYTE,
        value=0x0000,
        length=REGISTER_SIZES[REQ_GET_LOCK_BYTE],
        timeout_ms=timeout_ms,
    )


def lock_request(*, timeout_ms: int) -> ControlRequest:
    return ControlRequest(
        direction=Direction.OUT,
        request=REQ_SET_LOCK_BYTE,
        value=UNLOCK_KEY,
        payload=LOCKED_LOCK_BYTES,
        timeout_ms=timeout_ms,
    )


def reset_request(*, timeout_ms: int) -> ControlRequest:
    return ControlRequest(
        direction=Direction.OUT,
        request=REQ_RESET_DEVICE,
        value=0x0000,
        timeout_ms=timeout_ms,
    )


def _split_long_string(text: str) -> tuple[bytes, bytes]:
    data = string_descriptor(text, LONG_STRING_SIZE)
    half = LONG_STRING_SIZE // 2
    return data[:half], data[half:]


def _image(step: str, title: str, request: int, data: bytes) -> RegisterImage:
    expected = REGISTER_SIZES[request]
    if len(data) != expected:
        raise ValueError(f"Register block 0x{request:02X} must be {expected} bytes, got {len(data)}")
    return RegisterImage(step=step, title=title, request=request, data=data)
