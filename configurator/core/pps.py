"""Pin-routing mapper for peripheral pin select (PPS).

Inputs are routed by writing the pin's group code into the signal's own
register (U1RXR = code of RPD2). Outputs are routed by writing the signal's
group code into the pin's register (RPD3R = code of U1TX).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from configurator.core.exceptions import ConfigurationError, RoutingConflictError, ValidationError
from configurator.core.gpio import PinConfiguration
from configurator.interfaces.gpio_enums import PinDirection, PinMode
from configurator.utils.config_loader import PpsConfig

logger = logging.getLogger(__name__)


class SignalDirection(Enum):
    INPUT = "input"
    OUTPUT = "output"


@dataclass(frozen=True, order=True)
class RoutingEntry:
    register_name: str
    value: int
    description: str


class RoutingMapper:
    """Resolves peripheral signal assignments into PPS register writes."""

    def __init__(self, pps_config: PpsConfig):
        self._config = pps_config

    def signal_direction(self, pin: PinConfiguration) -> SignalDirection:
        """Direction of pin's signal; the pin direction decides for bidirectional ones."""
        signal = pin.peripheral_signal
        is_input = signal in self._config.input_signals
        is_output = any(signal in group for group in self._config.output_groups.values())
        if is_input and is_output:
            if pin.direction == PinDirection.OUTPUT:
                return SignalDirection.OUTPUT
            return SignalDirection.INPUT
        if is_input:
            return SignalDirection.INPUT
        if is_output:
            return SignalDirection.OUTPUT
        raise ConfigurationError(signal, "not a remappable peripheral signal")

    def available_pins(self, signal: str) -> list[str]:
        """Pins an input signal can be routed from."""
        try:
            group = self._config.input_signals[signal].group
        except KeyError as exc:
            raise ConfigurationError(signal, "not a remappable input signal") from exc
        return sorted(self._config.input_groups[group])

    def available_signals(self, rp_pin: str) -> list[str]:
        """Output signals that pin can carry."""
        try:
            group = self._config.output_pins[rp_pin]
        except KeyError as exc:
            raise ConfigurationError(rp_pin, "pin has no output routing register") from exc
        return sorted(self._config.output_groups[group])

    def _description(self, signal: str) -> str:
        return self._config.descriptions.get(signal, signal)

    def input_entry(self, pin: PinConfiguration) -> RoutingEntry:
        signal = self._config.input_signals[pin.peripheral_signal]
        codes = self._config.input_groups[signal.group]
        rp_pin = pin.rp_name
        if rp_pin not in codes:
            raise ConfigurationError(
                signal.name,
                f"{rp_pin} is not in input group {signal.group}",
                details={"choices": sorted(codes)},
            )
        return RoutingEntry(
            register_name=signal.register,
            value=codes[rp_pin],
            description=f"{signal.name} <- {rp_pin} ({self._description(signal.name)})",
        )

    def output_entry(self, pin: PinConfiguration) -> RoutingEntry:
        rp_pin = pin.rp_name
        signal = pin.peripheral_signal
        try:
            group = self._config.output_pins[rp_pin]
        except KeyError as exc:
            raise ConfigurationError(rp_pin, "pin has no output routing register") from exc
        codes = self._config.output_groups[group]
        if signal not in codes:
            raise ConfigurationError(
                signal,
                f"not available on {rp_pin} (output group {group})",
                details={"choices": sorted(codes)},
            )
        return RoutingEntry(
            register_name=f"{rp_pin}R",
            value=codes[signal],
            description=f"{rp_pin} -> {signal} ({self._description(signal)})",
        )

    def resolve_routing(self, pins: Iterable[PinConfiguration]) -> list[RoutingEntry]:
        """Register/value pairs for every peripheral pin.

        Input entries come first, then output entries, each sorted by
        register name.

        Raises:
            ConfigurationError: unknown signal, or a pin outside the signal's group
            RoutingConflictError: an input signal claimed by more than one pin
            ValidationError: one pin assigned two different signals
        """
        by_pin: dict[str, PinConfiguration] = {}
        for pin in pins:
            if pin.mode != PinMode.PERIPHERAL:
                continue
            seen = by_pin.get(pin.pin_name)
            if seen is not None and seen != pin:
                raise ValidationError(
                    pin.pin_name,
                    f"assigned both {seen.peripheral_signal} and {pin.peripheral_signal}",
                )
            by_pin[pin.pin_name] = pin

        claims: dict[str, list[str]] = {}
        output_pins: list[PinConfiguration] = []
        for name in sorted(by_pin):
            pin = by_pin[name]
            if self.signal_direction(pin) == SignalDirection.INPUT:
                claims.setdefault(pin.peripheral_signal, []).append(name)
            else:
                output_pins.append(pin)

        for signal, claimants in sorted(claims.items()):
            if len(claimants) > 1:
                raise RoutingConflictError(signal, claimants)

        inputs = [self.input_entry(by_pin[names[0]]) for names in claims.values()]
        outputs = [self.output_entry(pin) for pin in output_pins]

        logger.debug("Resolved %d input and %d output routes", len(inputs), len(outputs))
        return sorted(inputs) + sorted(outputs)
