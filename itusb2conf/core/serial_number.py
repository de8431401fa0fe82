"""Serial number suffix generation and validation."""

from __future__ import annotations

import random
import string
import time

from itusb2conf.core.errors import SerialNumberError
from itusb2conf.core.registers import SERIAL_SUFFIX_LENGTH

SERIAL_ALPHABET = string.digits + string.ascii_uppercase


def generate_serial_suffix(rng: random.Random | None = None) -> str:
    rng = rng or random.Random(time.time_ns())
    return "".join(rng.choice(SERIAL_ALPHABET) for _ in range(SERIAL_SUFFIX_LENGTH))


def validate_serial_suffix(suffix: str) -> str:
    if len(suffix) != SERIAL_SUFFIX_LENGTH:
        raise SerialNumberError(
            f"Serial suffix must be exactly {SERIAL_SUFFIX_LENGTH} characters, got '{suffix}'"
        )
    invalid = sorted({ch for ch in suffix if ch not in SERIAL_ALPHABET})
    if invalid:
        raise SerialNumberError(
            f"Serial suffix '{suffix}' contains characters outside [0-9A-Z]: {''.join(invalid)}"
        )
    return suffix
