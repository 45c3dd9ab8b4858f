"""
Yield term structure interface.

A YieldTermStructure provides:
- Discount factor D(t)
- Zero rate z(t) under any compounding convention
- Forward rate f(t1, t2)
- Instantaneous forward rate f(t)

Times are year fractions from the reference date under the curve's day
count. Arguments may be times or dates. Queries beyond max_time raise
DomainError unless extrapolation is enabled on the curve or requested for
the single call.
"""

from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import Any, List, Optional, Sequence, Union

import numpy as np

from ..conventions import Compounding, DayCount, Frequency, compound_factor, implied_rate, year_fraction
from ..exceptions import ConfigurationError, DomainError
from ..market.quotes import as_quote, quote_value, version_of

TimeOrDate = Union[float, date]

# Step used for numerical forwards and zero rates at t = 0
_DT = 1e-4


class YieldTermStructure(ABC):
    """
    Abstract yield curve.

    Attributes:
        reference_date: Date corresponding to t = 0
        day_count: Day count used for the time axis
    """

    def __init__(
        self,
        reference_date: date,
        day_count: DayCount = DayCount.ACT_365,
        jumps: Optional[Sequence[Any]] = None,
        jump_dates: Optional[Sequence[date]] = None,
        extrapolate: bool = False
    ):
        self.reference_date = reference_date
        self.day_count = day_count
        self._extrapolate = extrapolate

        jumps = list(jumps or [])
        jump_dates = list(jump_dates or [])
        if len(jumps) != len(jump_dates):
            raise ConfigurationError(
                f"Mismatch between number of jumps ({len(jumps)}) and jump dates ({len(jump_dates)})"
            )
        self._jumps = [as_quote(j) for j in jumps]
        self._jump_dates = jump_dates
        self._jump_times = [self.time_from_reference(d) for d in jump_dates]

    # ------------------------------------------------------------------
    # Range and time axis
    # ------------------------------------------------------------------

    @property
    def max_date(self) -> date:
        """Latest date the curve covers without extrapolation."""
        return date.max

    @property
    def max_time(self) -> float:
        if self.max_date == date.max:
            return float("inf")
        return self.time_from_reference(self.max_date)

    @property
    def allows_extrapolation(self) -> bool:
        return self._extrapolate

    def enable_extrapolation(self, flag: bool = True) -> None:
        self._extrapolate = flag

    def disable_extrapolation(self) -> None:
        self._extrapolate = False

    def time_from_reference(self, d: date) -> float:
        """Year fraction from the reference date to d."""
        return year_fraction(self.reference_date, d, self.day_count)

    def date_from_time(self, t: float) -> date:
        """Approximate calendar date for a curve time."""
        return self.reference_date + timedelta(days=int(round(t * 365.25)))

    def _to_time(self, t: TimeOrDate) -> float:
        if isinstance(t, date):
            return self.time_from_reference(t)
        return float(t)

    def _check_range(self, t: float, extrapolate: bool) -> None:
        if t < 0:
            raise DomainError(
                f"Negative time ({t}) given; reference date is {self.reference_date}"
            )
        if t > self.max_time + 1e-12 and not (extrapolate or self._extrapolate):
            raise DomainError(
                f"Date out of range: time {t:.6f} is past max curve time {self.max_time:.6f} "
                f"(max date {self.max_date})"
            )

    # ------------------------------------------------------------------
    # Jumps
    # ------------------------------------------------------------------

    @property
    def jump_dates(self) -> List[date]:
        return list(self._jump_dates)

    @property
    def jump_times(self) -> List[float]:
        return list(self._jump_times)

    def _jump_effect(self, t: float) -> float:
        effect = 1.0
        for jump, jump_time in zip(self._jumps, self._jump_times):
            if t > jump_time:
                value = quote_value(jump)
                if value <= 0:
                    raise DomainError(f"Non-positive jump value {value}")
                effect *= value
        return effect

    # ------------------------------------------------------------------
    # Curve queries
    # ------------------------------------------------------------------

    @abstractmethod
    def _discount_impl(self, t: float) -> float:
        """Discount factor at t, without jumps or range checks."""

    def discount(self, t: TimeOrDate, extrapolate: bool = False) -> float:
        """
        Get discount factor D(t).

        Args:
            t: Year fraction or date
            extrapolate: Allow this query past max_time

        Returns:
            Discount factor
        """
        t = self._to_time(t)
        self._check_range(t, extrapolate)
        if t == 0.0:
            return 1.0
        return float(self._discount_impl(t) * self._jump_effect(t))

    def zero_rate(
        self,
        t: TimeOrDate,
        compounding: Compounding = Compounding.CONTINUOUS,
        frequency: Frequency = Frequency.ANNUAL,
        extrapolate: bool = False
    ) -> float:
        """
        Get zero rate z(t).

        Args:
            t: Year fraction or date
            compounding: Compounding convention for output
            frequency: Compounding frequency
            extrapolate: Allow this query past max_time

        Returns:
            Zero rate (default continuously compounded)
        """
        t = self._to_time(t)
        if t == 0.0:
            t = _DT
        compound = 1.0 / self.discount(t, extrapolate)
        return implied_rate(compound, t, compounding, frequency)

    def forward_rate(
        self,
        t1: TimeOrDate,
        t2: TimeOrDate,
        compounding: Compounding = Compounding.SIMPLE,
        frequency: Frequency = Frequency.ANNUAL,
        extrapolate: bool = False
    ) -> float:
        """
        Get forward rate f(t1, t2).

        Args:
            t1: Start time (year fraction or date)
            t2: End time (year fraction or date)
            compounding: Compounding convention
            frequency: Compounding frequency
            extrapolate: Allow this query past max_time

        Returns:
            Forward rate between t1 and t2
        """
        t1 = self._to_time(t1)
        t2 = self._to_time(t2)
        if t2 < t1:
            raise DomainError(f"Forward end time {t2} before start time {t1}")
        if t2 == t1:
            return self.instantaneous_forward(t1, extrapolate)
        compound = self.discount(t1, extrapolate) / self.discount(t2, extrapolate)
        return implied_rate(compound, t2 - t1, compounding, frequency)

    def instantaneous_forward(self, t: TimeOrDate, extrapolate: bool = False) -> float:
        """
        Get instantaneous forward rate f(t) = -d/dt log D(t).

        Computed by central differences (one-sided at t = 0).
        """
        t = self._to_time(t)
        self._check_range(t, extrapolate)
        lo = max(0.0, t - _DT)
        hi = t + _DT
        d_lo = self.discount(lo, extrapolate=True)
        d_hi = self.discount(hi, extrapolate=True)
        return float(-np.log(d_hi / d_lo) / (hi - lo))

    def discount_from_rate(
        self,
        rate: float,
        t: float,
        compounding: Compounding = Compounding.CONTINUOUS,
        frequency: Frequency = Frequency.ANNUAL
    ) -> float:
        """Discount factor for a rate quoted with the given convention."""
        return 1.0 / compound_factor(rate, t, compounding, frequency)

    # ------------------------------------------------------------------
    # Versioning
    # ------------------------------------------------------------------

    @property
    def version(self):
        """Changes whenever any input the curve depends on changes."""
        return tuple(version_of(j) for j in self._jumps)

    def dependencies(self) -> List[Any]:
        """Handles and term structures this curve reads from."""
        return []


__all__ = ["YieldTermStructure", "TimeOrDate"]
