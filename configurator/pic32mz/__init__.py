"""PIC32MZ vendor implementations.

Contains the PIC32MZ EF family and registers it under 'pic32mz'.
"""

from configurator.core.family import register_family

from .family import FAMILY_NAME, PIC32MZFamily

register_family(FAMILY_NAME, PIC32MZFamily)

__all__ = ["PIC32MZFamily"]
