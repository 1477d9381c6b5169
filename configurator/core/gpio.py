"""Port bitmask aggregator.

Reduces per-pin GPIO configuration to per-port write-once masks. Every mask
is meant for a SET/CLR register, so applying them never disturbs pins that
were not configured.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields
from functools import reduce
from typing import Iterable, Mapping, Optional

from configurator.core.exceptions import ValidationError
from configurator.interfaces.gpio_enums import PinDirection, PinLevel, PinMode

PIN_NAME_PATTERN = re.compile(r"^R([A-K])(0|[1-9]\d?)$")
PORT_WIDTH = 16


def parse_pin_name(pin_name: str) -> tuple[str, int]:
    """Split 'RB8' into ('B', 8)."""
    match = PIN_NAME_PATTERN.match(pin_name)
    if match is None or int(match.group(2)) >= PORT_WIDTH:
        raise ValidationError("pin_name", f"'{pin_name}' is not a port pin (R<port><bit>)")
    return match.group(1), int(match.group(2))


@dataclass(frozen=True)
class PinConfiguration:
    """Configuration of one user-configured pin."""

    pin_name: str
    mode: PinMode = PinMode.GPIO
    direction: PinDirection = PinDirection.INPUT
    initial_level: PinLevel = PinLevel.LOW
    pull_up: bool = False
    pull_down: bool = False
    open_drain: bool = False
    peripheral_signal: Optional[str] = None

    def __post_init__(self):
        parse_pin_name(self.pin_name)
        if self.pull_up and self.pull_down:
            raise ValidationError(self.pin_name, "pull-up and pull-down are exclusive")
        if self.mode == PinMode.PERIPHERAL and not self.peripheral_signal:
            raise ValidationError(self.pin_name, "peripheral pin needs a signal name")

    @property
    def port(self) -> str:
        return parse_pin_name(self.pin_name)[0]

    @property
    def bit(self) -> int:
        return parse_pin_name(self.pin_name)[1]

    @property
    def bit_mask(self) -> int:
        return 1 << self.bit

    @property
    def rp_name(self) -> str:
        """Remappable pin name used by pin select ('RB8' -> 'RPB8')."""
        return f"RP{self.pin_name[1:]}"


@dataclass(frozen=True)
class PortMasks:
    """Bitmasks for one port. Each bit is one pin of the port."""

    analog_disable: int = 0
    direction_set_output: int = 0
    direction_set_input: int = 0
    latch_clear: int = 0
    latch_set: int = 0
    pull_up: int = 0
    pull_down: int = 0
    open_drain: int = 0
    analog_enable: int = 0

    def __or__(self, other: PortMasks) -> PortMasks:
        if not isinstance(other, PortMasks):
            return NotImplemented
        return PortMasks(
            **{f.name: getattr(self, f.name) | getattr(other, f.name) for f in fields(self)}
        )

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))

    def register_writes(self, port: str) -> list[tuple[str, int]]:
        """Ordered (register, mask) writes for port, zero masks omitted.

        Analog is disabled and the latch preset before TRIS turns a pin into
        an output, so the pin never drives a stale level.
        """
        writes = [
            (f"ANSEL{port}CLR", self.analog_disable),
            (f"LAT{port}CLR", self.latch_clear),
            (f"LAT{port}SET", self.latch_set),
            (f"ODC{port}SET", self.open_drain),
            (f"TRIS{port}CLR", self.direction_set_output),
            (f"TRIS{port}SET", self.direction_set_input),
            (f"CNPU{port}SET", self.pull_up),
            (f"CNPD{port}SET", self.pull_down),
            (f"ANSEL{port}SET", self.analog_enable),
        ]
        return [(register, mask) for register, mask in writes if mask]


def pin_masks(pin: PinConfiguration) -> PortMasks:
    """Masks contributed by a single pin."""
    bit = pin.bit_mask
    if pin.mode == PinMode.ANALOG:
        return PortMasks(direction_set_input=bit, analog_enable=bit)
    if pin.mode != PinMode.GPIO:
        return PortMasks()

    if pin.direction == PinDirection.OUTPUT:
        return PortMasks(
            analog_disable=bit,
            direction_set_output=bit,
            latch_set=bit if pin.initial_level == PinLevel.HIGH else 0,
            latch_clear=bit if pin.initial_level == PinLevel.LOW else 0,
            open_drain=bit if pin.open_drain else 0,
        )
    return PortMasks(
        analog_disable=bit,
        direction_set_input=bit,
        pull_up=bit if pin.pull_up else 0,
        pull_down=bit if pin.pull_down else 0,
    )


class PortAggregator:
    """Groups pin configurations by port and merges their masks.

    Args:
        port_table: Port letter -> bits that exist on the device. When None
            any bit 0..15 of ports A..K is accepted.
    """

    def __init__(self, port_table: Optional[Mapping[str, Iterable[int]]] = None):
        self._ports = (
            None
            if port_table is None
            else {port: frozenset(bits) for port, bits in port_table.items()}
        )

    def has_pin(self, pin_name: str) -> bool:
        port, bit = parse_pin_name(pin_name)
        return self._ports is None or bit in self._ports.get(port, frozenset())

    def validate(self, pins: Iterable[PinConfiguration]) -> list[PinConfiguration]:
        """Return the distinct pins, sorted by port and bit.

        Raises:
            ValidationError: a pin missing from the device, or one pin
                configured twice with different settings
        """
        unique: dict[tuple[str, int], PinConfiguration] = {}
        for pin in pins:
            if not self.has_pin(pin.pin_name):
                raise ValidationError(pin.pin_name, "pin does not exist on this device")
            key = (pin.port, pin.bit)
            seen = unique.get(key)
            if seen is not None and seen != pin:
                raise ValidationError(
                    pin.pin_name,
                    f"configured twice ({seen.mode.name} and {pin.mode.name})",
                )
            unique[key] = pin
        return [unique[key] for key in sorted(unique)]

    def aggregate(self, pins: Iterable[PinConfiguration]) -> dict[str, PortMasks]:
        """Per-port masks for pins. Ports without any contribution are left out."""
        by_port: dict[str, list[PortMasks]] = {}
        for pin in self.validate(pins):
            masks = pin_masks(pin)
            if not masks.is_empty():
                by_port.setdefault(pin.port, []).append(masks)
        return {
            port: reduce(lambda left, right: left | right, contributions, PortMasks())
            for port, contributions in sorted(by_port.items())
        }

    def register_writes(self, pins: Iterable[PinConfiguration]) -> list[tuple[str, int]]:
        """Register writes for every port, port A first."""
        writes: list[tuple[str, int]] = []
        for port, masks in self.aggregate(pins).items():
            writes.extend(masks.register_writes(port))
        return writes
