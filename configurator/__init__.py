"""PIC32 Peripheral Configuration Compiler.

Turns configuration choices into hardware-accurate numbers: packed DEVCFG
words, XC32 config directives, timer and UART register values, per-port
GPIO bitmasks and peripheral pin select routing.

Getting started:
    from configurator import create_family

    family = create_family("pic32mz")
    words = family.compiler.compile_defaults()
    words.as_hex()["DEVCFG1"]  # '0x5FEAC7F9'
"""

# Core abstractions
from configurator.core.family import (
    create_family,
    create_family_for_device,
    family_for_device,
    list_available_families,
    verify_families_registered,
)
from configurator.core.catalog import SettingId
from configurator.core.compiler import RegisterCompiler
from configurator.core.exceptions import (
    ConfigurationError,
    ConfiguratorError,
    RangeError,
    RoutingConflictError,
    ValidationError,
)
from configurator.core.gpio import PinConfiguration
from configurator.core.register import RegisterId, RegisterWordSet
from configurator.interfaces.family import DeviceFamily
from configurator.interfaces.gpio_enums import PinDirection, PinLevel, PinMode

# Family implementations (auto-registers when imported)
from configurator.pic32mz import PIC32MZFamily

__all__ = [
    # Core
    "DeviceFamily",
    "RegisterCompiler",
    "RegisterId",
    "RegisterWordSet",
    "SettingId",
    "PinConfiguration",
    "PinDirection",
    "PinLevel",
    "PinMode",
    # Errors
    "ConfiguratorError",
    "ConfigurationError",
    "RangeError",
    "RoutingConflictError",
    "ValidationError",
    # Family creation
    "create_family",
    "create_family_for_device",
    "family_for_device",
    "list_available_families",
    "verify_families_registered",
    # Concrete families
    "PIC32MZFamily",
]
