"""Frequency model: system clock and peripheral bus clocks."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from configurator.core.catalog import SettingCatalog, SettingId
from configurator.core.exceptions import ConfigurationError, ValidationError
from configurator.utils.config_loader import BusConfig, ClockConfig

logger = logging.getLogger(__name__)

PLL_SOURCE = "pll"
PBDIV_ON = 1 << 15
PBDIV_MAX = 128


class FrequencyModel:
    """Derives clock frequencies from oscillator and PLL selections.

    Settings missing from a selection take their catalog default. Divider
    and multiplier settings are read through their magnitudes, never by
    parsing value names.
    """

    def __init__(self, clock_config: ClockConfig, catalog: SettingCatalog):
        self._config = clock_config
        self._catalog = catalog

    @property
    def config(self) -> ClockConfig:
        return self._config

    def oscillator_frequency(self, oscillator: str) -> int:
        try:
            return self._config.oscillators[oscillator]
        except KeyError as exc:
            raise ConfigurationError(
                "clock.oscillators", f"no frequency for oscillator '{oscillator}'"
            ) from exc

    def system_clock(self, selection: Mapping[SettingId, str]) -> int:
        """Return the system clock in Hz for selection.

        Raises:
            ConfigurationError: an illegal value, or a PLL setting without
                a usable magnitude
        """
        resolved = self._catalog.resolve(selection)
        source_token = resolved[SettingId.FNOSC]
        try:
            source = self._config.system_sources[source_token]
        except KeyError as exc:
            raise ConfigurationError(
                SettingId.FNOSC.name, f"'{source_token}' has no clock source"
            ) from exc

        if source == PLL_SOURCE:
            return self.pll_output(resolved)
        return self.oscillator_frequency(source)

    def pll_output(self, selection: Mapping[SettingId, str]) -> int:
        """input / FPLLIDIV * FPLLMULT / FPLLODIV, rounded down to whole Hz."""
        resolved = self._catalog.resolve(selection)
        input_token = resolved[SettingId.FPLLICLK]
        try:
            oscillator = self._config.pll_inputs[input_token]
        except KeyError as exc:
            raise ConfigurationError(
                SettingId.FPLLICLK.name, f"'{input_token}' has no PLL input"
            ) from exc

        input_hz = self.oscillator_frequency(oscillator)
        input_divider = self._catalog[SettingId.FPLLIDIV].magnitude(resolved[SettingId.FPLLIDIV])
        multiplier = self._catalog[SettingId.FPLLMULT].magnitude(resolved[SettingId.FPLLMULT])
        output_divider = self._catalog[SettingId.FPLLODIV].magnitude(resolved[SettingId.FPLLODIV])

        clock = input_hz * multiplier // (input_divider * output_divider)
        logger.debug(
            "PLL %d Hz / %d * %d / %d = %d Hz",
            input_hz,
            input_divider,
            multiplier,
            output_divider,
            clock,
        )
        return clock

    def _bus(self, bus: int, buses: Optional[Mapping[int, BusConfig]] = None) -> BusConfig:
        if bus not in self._config.buses:
            raise ConfigurationError(f"PBCLK{bus}", "no such peripheral bus")
        cfg = self._config.buses[bus]
        if buses is not None and bus in buses:
            cfg = buses[bus]
            if not 1 <= cfg.divider <= PBDIV_MAX:
                raise ValidationError(
                    f"PBCLK{bus}", f"divider {cfg.divider} is outside 1..{PBDIV_MAX}"
                )
        return cfg

    def _check_overrides(self, buses: Optional[Mapping[int, BusConfig]]) -> None:
        for bus in buses or ():
            self._bus(bus, buses)

    def bus_clock(
        self,
        system_clock: int,
        bus: int,
        buses: Optional[Mapping[int, BusConfig]] = None,
    ) -> int:
        """Return PBCLKn in Hz.

        Args:
            system_clock: SYSCLK in Hz
            bus: Peripheral bus number
            buses: Per-request bus settings, keyed by bus number. Buses not
                listed keep their family defaults.

        Raises:
            ConfigurationError: unknown or disabled bus
            ValidationError: non-positive system clock, divider outside 1..128
        """
        if system_clock <= 0:
            raise ValidationError("system_clock", "must be positive")
        cfg = self._bus(bus, buses)
        if not cfg.enabled:
            raise ConfigurationError(f"PBCLK{bus}", "bus is disabled")
        return system_clock // cfg.divider

    def bus_clocks(
        self, system_clock: int, buses: Optional[Mapping[int, BusConfig]] = None
    ) -> dict[int, int]:
        """Frequencies of every enabled bus."""
        self._check_overrides(buses)
        clocks = {}
        for bus in sorted(self._config.buses):
            if self._bus(bus, buses).enabled:
                clocks[bus] = self.bus_clock(system_clock, bus, buses)
        return clocks

    def peripheral_bus(self, peripheral: str) -> int:
        try:
            return self._config.peripheral_buses[peripheral]
        except KeyError as exc:
            raise ConfigurationError(
                "clock.peripheral_buses", f"no bus assigned to '{peripheral}'"
            ) from exc

    def peripheral_clock(
        self,
        system_clock: int,
        peripheral: str,
        buses: Optional[Mapping[int, BusConfig]] = None,
    ) -> int:
        """Clock feeding a peripheral class ('uart', 'timer', ...)."""
        return self.bus_clock(system_clock, self.peripheral_bus(peripheral), buses)

    def pbdiv_register_value(
        self, bus: int, buses: Optional[Mapping[int, BusConfig]] = None
    ) -> int:
        """PBxDIV value: ON in bit 15 and divider - 1 in PBDIV<6:0>."""
        cfg = self._bus(bus, buses)
        value = cfg.divider - 1
        if cfg.enabled:
            value |= PBDIV_ON
        return value
