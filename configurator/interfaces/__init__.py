"""Interfaces shared by device family implementations."""

from configurator.interfaces.family import DeviceFamily
from configurator.interfaces.gpio_enums import PinDirection, PinLevel, PinMode

__all__ = ["DeviceFamily", "PinDirection", "PinLevel", "PinMode"]
