"""Device profile loading and validation."""

from __future__ import annotations

import json
import logging
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from itusb2conf.core.errors import ProfileLoadError, ProfileValidationError
from itusb2conf.core.model import DeviceLookup, DeviceProfile, PinConfig, UsbConfig
from itusb2conf.core.registers import (
    GPIO_COUNT,
    GPIO_ROLES,
    MAX_LONG_STRING_CHARS,
    MAX_SERIAL_STRING_CHARS,
    SERIAL_SUFFIX_LENGTH,
)

PACKAGED_PROFILE = "itusb2_r0.yaml"
_MAX_POWER_MA = 500
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ProfileValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


def _load_schema_validator() -> Any:
    schema_text = resources.files("itusb2conf.schemas").joinpath("profile.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProfileLoadError(f"Could not read profile file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ProfileValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ProfileValidationError(f"Profile file {path} must contain a mapping at root")
    return loaded


def _check_string(value: str, *, limit: int, context: str) -> str:
    if len(value) > limit:
        raise ProfileValidationError(f"{context} exceeds {limit} characters")
    try:
        value.encode("utf-16-le")
    except UnicodeError as exc:
        raise ProfileValidationError(f"{context} is not encodable as UTF-16: {exc}") from exc
    if any(ord(ch) > 0xFFFF for ch in value):
        raise ProfileValidationError(f"{context} must only contain characters from the Basic Multilingual Plane")
    return value


def _gpio_roles(names: list[str], *, context: str) -> tuple[int, ...]:
    if len(names) != GPIO_COUNT:
        raise ProfileValidationError(f"{context} must list exactly {GPIO_COUNT} roles")
    roles: list[int] = []
    for pin, name in enumerate(names):
        role = GPIO_ROLES.get(name)
        if role is None:
            allowed = ", ".join(sorted(GPIO_ROLES))
            raise ProfileValidationError(f"{context}[{pin}] has unknown role '{name}'. Allowed: {allowed}")
        roles.append(role)
    return tuple(roles)


def _build_profile(doc: dict[str, Any], source: Path | Traversable) -> DeviceProfile:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ProfileValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    usb_doc = doc["usb"]
    max_power_ma = int(usb_doc["max_power_ma"])
    if max_power_ma % 2 or max_power_ma > _MAX_POWER_MA:
        raise ProfileValidationError(
            f"{doc['id']}.usb.max_power_ma must be an even value up to {_MAX_POWER_MA} mA"
        )

    serial_prefix = _check_string(
        doc["serial_prefix"],
        limit=MAX_SERIAL_STRING_CHARS - SERIAL_SUFFIX_LENGTH,
        context=f"{doc['id']}.serial_prefix",
    )

    pins_doc = doc["pins"]
    return DeviceProfile(
        id=doc["id"],
        name=doc["name"],
        lookup=DeviceLookup(
            vid=int(doc["lookup"]["vid"]),
            pid=int(doc["lookup"]["pid"]),
            interface=int(doc["lookup"].get("interface", 0)),
        ),
        timeout_ms=int(doc.get("timeout_ms", 100)),
        usb=UsbConfig(
            vid=int(usb_doc["vid"]),
            pid=int(usb_doc["pid"]),
            max_power_ma=max_power_ma,
            power_mode=int(usb_doc["power_mode"]),
            release_major=int(usb_doc["release_major"]),
            release_minor=int(usb_doc["release_minor"]),
            transfer_priority=int(usb_doc["transfer_priority"]),
            write_mask=int(usb_doc["write_mask"]),
        ),
        manufacturer=_check_string(
            doc["manufacturer"], limit=MAX_LONG_STRING_CHARS, context=f"{doc['id']}.manufacturer"
        ),
        product=_check_string(doc["product"], limit=MAX_LONG_STRING_CHARS, context=f"{doc['id']}.product"),
        serial_prefix=serial_prefix,
        pins=PinConfig(
            gpio_roles=_gpio_roles(pins_doc["gpio"], context=f"{doc['id']}.pins.gpio"),
            suspend_level=int(pins_doc.get("suspend_level", 0)),
            suspend_mode=int(pins_doc.get("suspend_mode", 0)),
            wakeup_mask=int(pins_doc.get("wakeup_mask", 0)),
            wakeup_match=int(pins_doc.get("wakeup_match", 0)),
            clock_divider=int(pins_doc.get("clock_divider", 0)),
        ),
    )


def read_profile(source: Path | Traversable) -> DeviceProfile:
    profile = _build_profile(_read_yaml(source), source)
    LOGGER.debug("Loaded profile '%s' from %s", profile.id, source)
    return profile


def load_profile() -> DeviceProfile:
    """Load the packaged product profile. No user file can replace it."""
    return read_profile(resources.files("itusb2conf.profiles").joinpath(PACKAGED_PROFILE))
