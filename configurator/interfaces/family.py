"""Device family abstraction - behavioral contract.

A DeviceFamily bundles the static tables of one microcontroller family with
the compiler components built from them. Every concrete family must
implement this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from configurator.core.catalog import SettingCatalog
    from configurator.core.clock import FrequencyModel
    from configurator.core.compiler import RegisterCompiler
    from configurator.core.directives import DirectiveMapper
    from configurator.core.gpio import PortAggregator
    from configurator.core.pps import RoutingMapper
    from configurator.core.timer import TimerCalculator
    from configurator.core.uart import BaudErrorPolicy
    from configurator.utils.config_loader import FamilyConfig


class DeviceFamily(ABC):
    """Base class for device families.

    Each family is complete: catalog, register compiler, directive mapper,
    clock model and the peripheral calculators, all sharing one set of
    read-only tables.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Family name (e.g., 'pic32mz')."""
        ...

    @property
    @abstractmethod
    def config(self) -> FamilyConfig:
        """The loaded family tables."""
        ...

    @property
    @abstractmethod
    def catalog(self) -> SettingCatalog:
        ...

    @property
    @abstractmethod
    def compiler(self) -> RegisterCompiler:
        ...

    @property
    @abstractmethod
    def directives(self) -> DirectiveMapper:
        ...

    @property
    @abstractmethod
    def frequency_model(self) -> FrequencyModel:
        ...

    @property
    @abstractmethod
    def timers(self) -> TimerCalculator:
        ...

    @property
    @abstractmethod
    def baud_policy(self) -> BaudErrorPolicy:
        """Error threshold applied to UART baud plans."""
        ...

    @property
    @abstractmethod
    def ports(self) -> PortAggregator:
        ...

    @property
    @abstractmethod
    def routing(self) -> RoutingMapper:
        ...

    def device_names(self) -> list[str]:
        """Part numbers of the family."""
        return [device.name for device in self.config.devices]
