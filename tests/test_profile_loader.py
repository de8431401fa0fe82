from __future__ import annotations

from pathlib import Path

import pytest

from itusb2conf.core.errors import ProfileLoadError, ProfileValidationError
from itusb2conf.core.profile_loader import load_profile, read_profile

VALID_PROFILE = """
id: itusb2_custom
name: Custom
lookup:
  vid: 0x10C4
  pid: 0x87A0
usb:
  vid: 0x10C4
  pid: 0x8CDF
  max_power_ma: 100
  power_mode: 0
  release_major: 1
  release_minor: 1
  transfer_priority: 1
  write_mask: 0x9F
manufacturer: "Bloguetrónica"
product: "ITUSB2 USB Test Switch"
serial_prefix: "IU2-01"
pins:
  gpio: [chip_select, output_push_pull, output_push_pull, input, input, input, input, input, alternate, alternate, alternate]
"""


def _write_profile(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_load_packaged_profile() -> None:
    profile = load_profile()
    assert profile.id == "itusb2_r0"
    assert (profile.lookup.vid, profile.lookup.pid, profile.lookup.interface) == (0x10C4, 0x87A0, 0)
    assert profile.timeout_ms == 100
    assert (profile.usb.vid, profile.usb.pid, profile.usb.max_power_ma) == (0x10C4, 0x8CDF, 120)
    assert profile.manufacturer == "Bloguetrónica"
    assert profile.product == "ITUSB2 USB Test Switch"
    assert profile.serial_prefix == "IU2-00"
    assert profile.pins.gpio_roles == (3, 2, 2, 0, 0, 0, 0, 0, 4, 4, 4)
    assert profile.pins.clock_divider == 0


def test_user_config_dir_cannot_replace_packaged_profile(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("HOME", str(tmp_path))
    _write_profile(tmp_path / "cfg" / "itusb2conf" / "profile.yaml", VALID_PROFILE)
    _write_profile(tmp_path / ".config" / "itusb2conf" / "profile.yaml", VALID_PROFILE)

    profile = load_profile()
    assert profile.id == "itusb2_r0"
    assert profile.serial_prefix == "IU2-00"


def test_read_explicit_profile(tmp_path: Path) -> None:
    profile = read_profile(_write_profile(tmp_path / "custom.yaml", VALID_PROFILE))
    assert profile.id == "itusb2_custom"
    assert profile.serial_prefix == "IU2-01"
    assert profile.timeout_ms == 100
    assert profile.pins.wakeup_mask == 0


def test_unreadable_profile_rejected(tmp_path: Path) -> None:
    with pytest.raises(ProfileLoadError):
        read_profile(tmp_path / "missing.yaml")


def test_missing_required_keys_rejected(tmp_path: Path) -> None:
    path = _write_profile(tmp_path / "p.yaml", VALID_PROFILE.replace('product: "ITUSB2 USB Test Switch"\n', ""))
    with pytest.raises(ProfileValidationError):
        read_profile(path)


def test_duplicate_keys_rejected(tmp_path: Path) -> None:
    path = _write_profile(tmp_path / "p.yaml", VALID_PROFILE + 'product: "Other"\n')
    with pytest.raises(ProfileValidationError):
        read_profile(path)


def test_unquoted_yaml_boolean_rejected(tmp_path: Path) -> None:
    path = _write_profile(tmp_path / "p.yaml", VALID_PROFILE.replace('"Bloguetrónica"', "yes"))
    with pytest.raises(ProfileValidationError) as exc:
        read_profile(path)
    assert "manufacturer" in str(exc.value)


def test_out_of_range_pid_rejected(tmp_path: Path) -> None:
    path = _write_profile(tmp_path / "p.yaml", VALID_PROFILE.replace("pid: 0x8CDF", "pid: 0x18CDF"))
    with pytest.raises(ProfileValidationError):
        read_profile(path)


def test_odd_max_power_rejected(tmp_path: Path) -> None:
    path = _write_profile(tmp_path / "p.yaml", VALID_PROFILE.replace("max_power_ma: 100", "max_power_ma: 101"))
    with pytest.raises(ProfileValidationError):
        read_profile(path)


def test_unknown_gpio_role_rejected(tmp_path: Path) -> None:
    path = _write_profile(tmp_path / "p.yaml", VALID_PROFILE.replace("[chip_select,", "[chip_enable,"))
    with pytest.raises(ProfileValidationError) as exc:
        read_profile(path)
    assert "chip_enable" in str(exc.value)


def test_wrong_gpio_count_rejected(tmp_path: Path) -> None:
    path = _write_profile(tmp_path / "p.yaml", VALID_PROFILE.replace(", alternate]", "]"))
    with pytest.raises(ProfileValidationError):
        read_profile(path)


def test_overlong_serial_prefix_rejected(tmp_path: Path) -> None:
    path = _write_profile(tmp_path / "p.yaml", VALID_PROFILE.replace('"IU2-01"', '"' + "X" * 25 + '"'))
    with pytest.raises(ProfileValidationError):
        read_profile(path)


def test_overlong_product_rejected(tmp_path: Path) -> None:
    path = _write_profile(
        tmp_path / "p.yaml",
        VALID_PROFILE.replace('"ITUSB2 USB Test Switch"', '"' + "P" * 63 + '"'),
    )
    with pytest.raises(ProfileValidationError):
        read_profile(path)
