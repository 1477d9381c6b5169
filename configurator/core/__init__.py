"""Core modules for the configurator.

Core infrastructure for family-agnostic functionality:
- register: Configuration words, bit fields and the bit field map
- catalog: Setting identifiers, values and the setting catalog
- compiler: Selection set -> DEVCFG words
- clock: System and peripheral bus frequencies
- timer / uart: Timer period and baud rate calculators
- gpio / pps: Port bitmask aggregation and pin select routing
- directives: Toolchain config directives and table consistency
- family: Family registry and factory (DeviceFamily ABC is in interfaces)
"""

from configurator.core.exceptions import (
    ConfigurationError,
    ConfiguratorError,
    RangeError,
    RoutingConflictError,
    ValidationError,
)
from configurator.core.register import (
    BitField,
    BitFieldDescriptor,
    BitFieldMap,
    RegisterId,
    RegisterLayout,
    RegisterWordSet,
)
from configurator.core.catalog import Setting, SettingCatalog, SettingId, SettingValue
from configurator.core.compiler import RegisterCompiler
from configurator.core.clock import FrequencyModel
from configurator.core.timer import (
    TimerCalculator,
    TimerClass,
    TimerPlan,
    interrupt_priority_value,
    plan_timer,
)
from configurator.core.uart import (
    BaudErrorPolicy,
    BaudPlan,
    DataFormat,
    plan_baud,
    plan_best_baud,
    umode_value,
)
from configurator.core.gpio import PinConfiguration, PortAggregator, PortMasks
from configurator.core.pps import RoutingEntry, RoutingMapper
from configurator.core.directives import DirectiveMapper, check_consistency
from configurator.core.family import (
    FamilyRegistry,
    create_family,
    list_available_families,
)

__all__ = [
    # Errors
    "ConfiguratorError",
    "ConfigurationError",
    "RangeError",
    "RoutingConflictError",
    "ValidationError",
    # Register model
    "BitField",
    "BitFieldDescriptor",
    "BitFieldMap",
    "RegisterId",
    "RegisterLayout",
    "RegisterWordSet",
    # Settings
    "Setting",
    "SettingCatalog",
    "SettingId",
    "SettingValue",
    "RegisterCompiler",
    # Clocks, timers, UART
    "FrequencyModel",
    "TimerCalculator",
    "TimerClass",
    "TimerPlan",
    "interrupt_priority_value",
    "plan_timer",
    "BaudErrorPolicy",
    "BaudPlan",
    "DataFormat",
    "plan_baud",
    "plan_best_baud",
    "umode_value",
    # Pins
    "PinConfiguration",
    "PortAggregator",
    "PortMasks",
    "RoutingEntry",
    "RoutingMapper",
    # Directives
    "DirectiveMapper",
    "check_consistency",
    # Family registry
    "FamilyRegistry",
    "create_family",
    "list_available_families",
]
