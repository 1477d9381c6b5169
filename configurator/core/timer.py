"""Timer period calculator.

Chooses a prescaler and period register value for a target period, bounded
by the width of the period register.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from fractions import Fraction
from typing import Iterable, Mapping, Union

from configurator.core.exceptions import ConfigurationError, RangeError, ValidationError
from configurator.utils.config_loader import TimerClassConfig

logger = logging.getLogger(__name__)

Number = Union[int, float, Fraction]

REGISTER_WIDTHS = (16, 32)
TCKPS_SHIFT = 4
T32_BIT = 1 << 3
TCON_ON = 1 << 15


class TimerClass(Enum):
    """Hardware timer classes of the family."""

    TYPE_A = "type_a"
    """Timer1: 16-bit only, 2-bit prescaler field, runs in sleep."""

    TYPE_B = "type_b"
    """Timer2..9: 3-bit prescaler field, even/odd pairs form 32-bit timers."""


@dataclass(frozen=True)
class TimerPlan:
    prescaler: int
    period_register_value: int
    register_width: int
    resulting_period: float
    exact: bool = True
    combined: bool = False


def _as_fraction(value: Number) -> Fraction:
    if isinstance(value, float):
        # 1e-3 must behave as exactly one millisecond
        return Fraction(value).limit_denominator(10**12)
    return Fraction(value)


def plan_timer(
    target_period: Number,
    bus_clock: int,
    register_width_bits: int,
    allowed_prescalers: Iterable[int],
) -> TimerPlan:
    """Pick the smallest prescaler whose period value fits the register.

    Args:
        target_period: Period in seconds
        bus_clock: Timer input clock in Hz
        register_width_bits: 16 or 32
        allowed_prescalers: Prescaler ratios the timer supports

    Returns:
        TimerPlan for the finest resolution that fits. Non-integer tick
        counts are truncated and reported with exact=False.

    Raises:
        ValidationError: non-positive period or clock, unsupported width,
            or no prescalers
        RangeError: no prescaler keeps the period value within the width
    """
    if target_period <= 0:
        raise ValidationError("target_period", "must be positive")
    if bus_clock <= 0:
        raise ValidationError("bus_clock", "must be positive")
    if register_width_bits not in REGISTER_WIDTHS:
        raise ValidationError("register_width_bits", f"{register_width_bits} is not 16 or 32")
    prescalers = sorted(set(allowed_prescalers))
    if not prescalers or prescalers[0] <= 0:
        raise ValidationError("allowed_prescalers", "need at least one positive prescaler")

    period = _as_fraction(target_period)
    limit = (1 << register_width_bits) - 1

    # Ascending, so the first fit is the finest resolution
    chosen = None
    for prescaler in prescalers:
        counts = Fraction(bus_clock, prescaler) * period
        value = math.floor(counts) - 1
        if 0 <= value <= limit:
            chosen = (prescaler, counts.denominator == 1, value)
            break

    if chosen is None:
        shortest = Fraction(prescalers[0], bus_clock)
        if period < shortest:
            raise RangeError(
                f"Period {float(period)} s is shorter than one timer tick ({float(shortest)} s)",
                limit=limit,
            )
        raise RangeError(
            f"Period {float(period)} s exceeds the {register_width_bits}-bit period register "
            f"for every prescaler in {prescalers}",
            limit=limit,
        )

    prescaler, exact, value = chosen
    resulting = Fraction((value + 1) * prescaler, bus_clock)
    logger.debug("Timer plan: 1:%d prescaler, period register %d", prescaler, value)
    return TimerPlan(
        prescaler=prescaler,
        period_register_value=value,
        register_width=register_width_bits,
        resulting_period=float(resulting),
        exact=exact,
    )


def interrupt_priority_value(priority: int, subpriority: int = 0) -> int:
    """IPC field value: priority (1..7) in bits 4:2, subpriority (0..3) in bits 1:0."""
    if not 1 <= priority <= 7:
        raise ValidationError("priority", f"{priority} is not in 1..7")
    if not 0 <= subpriority <= 3:
        raise ValidationError("subpriority", f"{subpriority} is not in 0..3")
    return (priority << 2) | subpriority


class TimerCalculator:
    """Plans timers of the family using its timer class table."""

    def __init__(self, classes: Mapping[TimerClass, TimerClassConfig]):
        self._classes = dict(classes)

    def timer_class(self, timer: int) -> TimerClass:
        for timer_class, cfg in self._classes.items():
            if timer in cfg.timers:
                return timer_class
        raise ConfigurationError("timers", f"no timer {timer} in this family")

    def class_config(self, timer: int) -> TimerClassConfig:
        return self._classes[self.timer_class(timer)]

    def can_combine(self, timer: int) -> bool:
        return any(pair[0] == timer for pair in self.class_config(timer).pairs)

    def plan(
        self,
        timer: int,
        target_period: Number,
        bus_clock: int,
        combine: bool = False,
    ) -> TimerPlan:
        """Plan timer for target_period, pairing it with its odd partner when combine is set.

        Raises:
            ValidationError: combine requested on a timer that cannot pair
        """
        cfg = self.class_config(timer)
        width = cfg.width
        if combine:
            if not self.can_combine(timer):
                raise ValidationError(
                    "combine", f"timer {timer} cannot form a 32-bit pair"
                )
            width = 32
        plan = plan_timer(target_period, bus_clock, width, cfg.prescalers)
        if combine:
            return replace(plan, combined=True)
        return plan

    def tcon_value(self, timer: int, plan: TimerPlan, enable: bool = False) -> int:
        """TxCON value for plan: TCKPS from bit 4, T32 in bit 3, ON in bit 15."""
        cfg = self.class_config(timer)
        try:
            tckps = cfg.prescalers[plan.prescaler]
        except KeyError as exc:
            raise ConfigurationError(
                "timers", f"timer {timer} has no 1:{plan.prescaler} prescaler"
            ) from exc
        value = tckps << TCKPS_SHIFT
        if plan.combined:
            value |= T32_BIT
        if enable:
            value |= TCON_ON
        return value
