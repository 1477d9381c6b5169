"""Device family registry.

Family implementations register themselves in their package __init__.py.
Besides lookup by family name, the registry resolves orderable part
numbers ('PIC32MZ2048EFH144-I/PH') to the family whose device table lists
them, so a caller holding only a part number gets the right tables.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Optional, Type

from configurator.core.exceptions import ConfigurationError
from configurator.utils.config_loader import DeviceConfig, get_config

if TYPE_CHECKING:
    from configurator.interfaces.family import DeviceFamily

logger = logging.getLogger(__name__)

FAMILY_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


def normalize_part_number(part_number: str) -> str:
    """Canonical device table name for a part number.

    'pic32mz2048efh144-I/PH' -> 'P32MZ2048EFH144'. The ordering suffix
    (temperature range and package) is dropped.
    """
    name = part_number.strip().upper().split("-", 1)[0]
    if name.startswith("PIC"):
        name = "P" + name[3:]
    return name


class FamilyRegistry:
    """Family classes by name, plus a part number index built from their
    device tables.

    THREAD SAFETY: Not thread-safe. Registration happens during package
    import, before any threads are spawned.
    """

    def __init__(self):
        self._families: dict[str, Type[DeviceFamily]] = {}
        self._device_index: Optional[dict[str, str]] = None

    def register(self, name: str, family_class: Type[DeviceFamily]) -> None:
        if not FAMILY_NAME_PATTERN.match(name):
            raise ValueError(f"Family name '{name}' must be lowercase (e.g. 'pic32mz')")
        if name in self._families:
            raise ValueError(f"Family '{name}' already registered")
        self._families[name] = family_class
        self._device_index = None
        logger.debug("Registered family '%s' (%s)", name, family_class.__name__)

    def get(self, name: str) -> Type[DeviceFamily]:
        if name not in self._families:
            raise ValueError(f"Unknown family '{name}'. Available: {self.list_families()}")
        return self._families[name]

    def list_families(self) -> list[str]:
        return sorted(self._families)

    def create(self, name: str, **kwargs) -> Any:
        return self.get(name)(**kwargs)

    def _build_device_index(self) -> dict[str, str]:
        index: dict[str, str] = {}
        for family_name in self.list_families():
            for device in get_config(family_name).devices:
                owner = index.setdefault(device.name, family_name)
                if owner != family_name:
                    raise ConfigurationError(
                        "devices",
                        f"'{device.name}' is listed by both '{owner}' and '{family_name}'",
                    )
        return index

    def family_for_device(self, part_number: str) -> str:
        """Name of the family that lists part_number.

        Raises:
            ConfigurationError: no registered family lists the part, or two
                families list the same part
        """
        if self._device_index is None:
            self._device_index = self._build_device_index()
        name = normalize_part_number(part_number)
        try:
            return self._device_index[name]
        except KeyError as exc:
            raise ConfigurationError(
                "devices",
                f"no registered family lists '{part_number}'",
                details={"part_number": name},
            ) from exc

    def device(self, part_number: str) -> DeviceConfig:
        """Device table entry (flash, RAM, pin count) for part_number."""
        family_name = self.family_for_device(part_number)
        return get_config(family_name).device(normalize_part_number(part_number))

    def create_for_device(self, part_number: str, **kwargs) -> Any:
        """Instantiate the family that lists part_number."""
        return self.create(self.family_for_device(part_number), **kwargs)


_REGISTRY = FamilyRegistry()


def register_family(name: str, family_class: Type[DeviceFamily]) -> None:
    _REGISTRY.register(name, family_class)


def get_family(name: str) -> Type[DeviceFamily]:
    return _REGISTRY.get(name)


def create_family(name: str, **kwargs) -> Any:
    return _REGISTRY.create(name, **kwargs)


def list_available_families() -> list[str]:
    return _REGISTRY.list_families()


def family_for_device(part_number: str) -> str:
    """Family name for an orderable part number."""
    return _REGISTRY.family_for_device(part_number)


def create_family_for_device(part_number: str, **kwargs) -> Any:
    """Create the family instance that covers part_number."""
    return _REGISTRY.create_for_device(part_number, **kwargs)


def verify_families_registered() -> None:
    """Raise RuntimeError when no family has been registered.

    Families register on import of their package, e.g.
    `import configurator.pic32mz`.
    """
    if not list_available_families():
        raise RuntimeError(
            "No device families registered; import configurator.pic32mz "
            "(or configurator) first"
        )
