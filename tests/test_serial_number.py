from __future__ import annotations

import random

import pytest

from itusb2conf.core.errors import SerialNumberError
from itusb2conf.core.serial_number import SERIAL_ALPHABET, generate_serial_suffix, validate_serial_suffix


def test_alphabet_is_digits_and_uppercase() -> None:
    assert SERIAL_ALPHABET == "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def test_generated_suffix_shape() -> None:
    for _ in range(50):
        suffix = generate_serial_suffix()
        assert len(suffix) == 6
        assert set(suffix) <= set(SERIAL_ALPHABET)


def test_generation_is_deterministic_for_seeded_rng() -> None:
    assert generate_serial_suffix(random.Random(42)) == generate_serial_suffix(random.Random(42))


@pytest.mark.parametrize("suffix", ["ABC123", "000000", "ZZZZZZ"])
def test_valid_suffix_accepted(suffix: str) -> None:
    assert validate_serial_suffix(suffix) == suffix


@pytest.mark.parametrize("suffix", ["", "ABC12", "ABC1234", "abc123", "ABC-12", "ÄBC123"])
def test_invalid_suffix_rejected(suffix: str) -> None:
    with pytest.raises(SerialNumberError):
        validate_serial_suffix(suffix)
