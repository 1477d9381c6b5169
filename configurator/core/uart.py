"""Baud rate calculator and UART mode register helpers."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import IntEnum
from fractions import Fraction
from typing import Optional

from configurator.core.exceptions import RangeError, ValidationError

logger = logging.getLogger(__name__)

SPEED_DIVISORS = (4, 16)
BRG_MAX = 0xFFFF

BRGH_BIT = 1 << 3
PDSEL_SHIFT = 1
STSEL_BIT = 1 << 0
UEN_SHIFT = 8
UMODE_ON = 1 << 15


class DataFormat(IntEnum):
    """UxMODE PDSEL<1:0> encodings."""

    EIGHT_NONE = 0
    """8 data bits, no parity."""

    EIGHT_EVEN = 1
    """8 data bits, even parity."""

    EIGHT_ODD = 2
    """8 data bits, odd parity."""

    NINE_NONE = 3
    """9 data bits, no parity."""


@dataclass(frozen=True)
class BaudPlan:
    baud_generator_value: int
    actual_baud: float
    error_percent: float
    speed_divisor: int

    @property
    def high_speed(self) -> bool:
        """True when the plan needs BRGH (4x clock)."""
        return self.speed_divisor == 4


def plan_baud(target_baud: int, clock_freq: int, speed_divisor: int) -> BaudPlan:
    """Compute the UxBRG value for target_baud.

    brg = clock / (divisor * baud) - 1 rounded half up, clamped at 0. The error is
    reported, not enforced; see BaudErrorPolicy.

    Raises:
        ValidationError: non-positive baud or clock, divisor other than 4 or 16
        RangeError: brg does not fit the 16-bit baud generator
    """
    if target_baud <= 0:
        raise ValidationError("target_baud", "must be positive")
    if clock_freq <= 0:
        raise ValidationError("clock_freq", "must be positive")
    if speed_divisor not in SPEED_DIVISORS:
        raise ValidationError("speed_divisor", f"{speed_divisor} is not 4 or 16")

    exact = Fraction(clock_freq, speed_divisor * target_baud) - 1
    brg = max(0, math.floor(exact + Fraction(1, 2)))
    if brg > BRG_MAX:
        raise RangeError(
            f"Baud {target_baud} needs UxBRG {brg} at {clock_freq} Hz",
            limit=BRG_MAX,
        )

    actual = clock_freq / (speed_divisor * (brg + 1))
    error = (actual - target_baud) / target_baud * 100
    return BaudPlan(
        baud_generator_value=brg,
        actual_baud=actual,
        error_percent=error,
        speed_divisor=speed_divisor,
    )


def plan_best_baud(target_baud: int, clock_freq: int) -> BaudPlan:
    """Try both speed modes and keep the smaller absolute error (16x on ties)."""
    plans = []
    for divisor in sorted(SPEED_DIVISORS, reverse=True):
        try:
            plans.append(plan_baud(target_baud, clock_freq, divisor))
        except RangeError:
            logger.debug("Baud %d out of range with %dx divisor", target_baud, divisor)
    if not plans:
        raise RangeError(
            f"Baud {target_baud} cannot be generated from {clock_freq} Hz",
            limit=BRG_MAX,
        )
    return min(plans, key=lambda plan: abs(plan.error_percent))


@dataclass(frozen=True)
class BaudErrorPolicy:
    """Threshold applied to a BaudPlan's error.

    Advisory by default: an excessive error is logged. With enforce=True it
    raises instead.
    """

    max_error_percent: float = 2.0
    enforce: bool = False

    def check(self, plan: BaudPlan) -> BaudPlan:
        if abs(plan.error_percent) <= self.max_error_percent:
            return plan
        message = (
            f"baud error {plan.error_percent:+.3f}% exceeds "
            f"{self.max_error_percent}%"
        )
        if self.enforce:
            raise ValidationError(
                "target_baud",
                message,
                details={"actual_baud": plan.actual_baud, "brg": plan.baud_generator_value},
            )
        logger.warning("UART %s", message)
        return plan


def umode_value(
    data_format: DataFormat = DataFormat.EIGHT_NONE,
    stop_bits: int = 1,
    high_speed: bool = False,
    uen_select: int = 0,
    enable: bool = False,
    plan: Optional[BaudPlan] = None,
) -> int:
    """UxMODE value.

    When plan is given its speed divisor decides BRGH and high_speed is
    ignored.
    """
    if stop_bits not in (1, 2):
        raise ValidationError("stop_bits", f"{stop_bits} is not 1 or 2")
    if not 0 <= uen_select <= 3:
        raise ValidationError("uen_select", f"{uen_select} is not in 0..3")

    if plan is not None:
        high_speed = plan.high_speed

    value = (int(data_format) << PDSEL_SHIFT) | (uen_select << UEN_SHIFT)
    if high_speed:
        value |= BRGH_BIT
    if stop_bits == 2:
        value |= STSEL_BIT
    if enable:
        value |= UMODE_ON
    return value
