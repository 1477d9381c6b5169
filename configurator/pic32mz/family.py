"""PIC32MZ EF family implementation.

Wires the bundled config.yaml tables into:
- Setting catalog and DEVCFG register compiler
- XC32 config directive mapper
- Clock model, timer and UART calculators
- Port aggregator and PPS routing mapper
"""

from pathlib import Path
from typing import Any, Optional

from overrides import override  # type: ignore

from configurator.core.builders import (
    create_bit_field_map_from_config,
    create_catalog_from_config,
    create_directive_mapper,
    create_directive_table_from_config,
    create_timer_calculator_from_config,
)
from configurator.core.catalog import SettingCatalog
from configurator.core.clock import FrequencyModel
from configurator.core.compiler import RegisterCompiler
from configurator.core.directives import DirectiveMapper
from configurator.core.gpio import PortAggregator
from configurator.core.pps import RoutingMapper
from configurator.core.timer import TimerCalculator
from configurator.core.uart import BaudErrorPolicy
from configurator.interfaces.family import DeviceFamily
from configurator.utils.config_loader import FamilyConfig, get_config, load_config

FAMILY_NAME = "pic32mz"


class PIC32MZFamily(DeviceFamily):
    """PIC32MZ EF (EFH/EFM) family: four DEVCFG words, PPS, Type A/B timers."""

    def __init__(self, config_path: Optional[str] = None, **_kwargs: Any):
        # Bundled tables are shared through the loader cache
        if config_path is None:
            config = get_config(FAMILY_NAME)
        else:
            config = load_config(FAMILY_NAME, path=str(Path(config_path)))
        self._config = config

        self._catalog = create_catalog_from_config(config)
        bit_field_map = create_bit_field_map_from_config(config, self._catalog)
        self._compiler = RegisterCompiler(bit_field_map, self._catalog)
        self._directives = create_directive_mapper(
            bit_field_map, create_directive_table_from_config(config)
        )

        self._frequency_model = FrequencyModel(config.clock, self._catalog)
        self._timers = create_timer_calculator_from_config(config)
        self._baud_policy = BaudErrorPolicy(
            max_error_percent=config.uart.max_error_percent,
            enforce=config.uart.enforce_error,
        )
        self._ports = PortAggregator(config.ports)
        self._routing = RoutingMapper(config.pps)

    @property
    @override
    def name(self) -> str:
        return FAMILY_NAME

    @property
    @override
    def config(self) -> FamilyConfig:
        return self._config

    @property
    @override
    def catalog(self) -> SettingCatalog:
        return self._catalog

    @property
    @override
    def compiler(self) -> RegisterCompiler:
        return self._compiler

    @property
    @override
    def directives(self) -> DirectiveMapper:
        return self._directives

    @property
    @override
    def frequency_model(self) -> FrequencyModel:
        return self._frequency_model

    @property
    @override
    def timers(self) -> TimerCalculator:
        return self._timers

    @property
    @override
    def baud_policy(self) -> BaudErrorPolicy:
        return self._baud_policy

    @property
    @override
    def ports(self) -> PortAggregator:
        return self._ports

    @property
    @override
    def routing(self) -> RoutingMapper:
        return self._routing
