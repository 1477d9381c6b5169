"""GPIO enumeration types."""

from enum import IntEnum


class PinMode(IntEnum):
    """Pin function enumeration.

    Defines what a configured pin is used for: plain digital I/O, an analog
    input, or a signal of a peripheral routed through pin select.
    """

    GPIO = 0
    """Pin used as digital input or output."""

    ANALOG = 1
    """Pin used as analog input (ANSEL set)."""

    PERIPHERAL = 2
    """Pin owned by a peripheral signal (UART, SPI, ...)."""


class PinDirection(IntEnum):
    """Digital direction as programmed into TRISx."""

    OUTPUT = 0
    """TRIS bit clear."""

    INPUT = 1
    """TRIS bit set."""


class PinLevel(IntEnum):
    """GPIO pin logic level enumeration.

    Represents the initial latch level of an output pin.
    """

    LOW = 0
    """Logic level LOW (0V, digital 0)."""

    HIGH = 1
    """Logic level HIGH (3.3V, digital 1)."""
