"""
Interpolated yield curves built from node dates and node values.

InterpolatedYieldCurve crosses a trait (what the nodes hold) with an
interpolator (how values between nodes are obtained). The convenience
constructors mirror the common pairs:

- DiscountCurve: discount factors, log-linear
- ZeroCurve: zero rates, linear
- ForwardCurve: instantaneous forwards, backward flat
"""

import logging
from datetime import date
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..conventions import Compounding, DayCount, Frequency, compound_factor, year_fraction
from ..exceptions import ConfigurationError
from .base import YieldTermStructure
from .interpolation import InterpolatorKind, create_interpolator
from .traits import TraitKind, get_traits

logger = logging.getLogger(__name__)


class InterpolatedYieldCurve(YieldTermStructure):
    """
    Yield curve interpolated on (time, value) nodes.

    The first node sits at the reference date (t = 0) and holds the trait's
    initial value. Node arrays are read-only once the curve is built.

    Attributes:
        traits: TraitKind of the node values
        interpolator: InterpolatorKind used between nodes
    """

    def __init__(
        self,
        reference_date: date,
        dates: Optional[Sequence[date]] = None,
        data: Optional[Sequence[float]] = None,
        day_count: DayCount = DayCount.ACT_365,
        traits: Union[str, TraitKind] = TraitKind.DISCOUNT,
        interpolator: Union[str, InterpolatorKind] = InterpolatorKind.LOG_LINEAR,
        jumps: Optional[Sequence[Any]] = None,
        jump_dates: Optional[Sequence[date]] = None,
        times: Optional[Sequence[float]] = None,
        extrapolate: bool = False
    ):
        super().__init__(reference_date, day_count, jumps, jump_dates, extrapolate)
        self.traits = TraitKind.parse(traits)
        self.interpolator = InterpolatorKind.parse(interpolator)
        self._traits_impl = get_traits(self.traits)

        if data is None:
            raise ConfigurationError("Curve data must be provided")
        values = np.array(data, dtype=np.float64)

        if dates is not None:
            dates = list(dates)
            if len(dates) != len(values):
                raise ConfigurationError(
                    f"Dates/data count mismatch: {len(dates)} dates vs {len(values)} values"
                )
            if dates[0] != reference_date:
                raise ConfigurationError(
                    f"First node date {dates[0]} must equal reference date {reference_date}"
                )
            node_times = np.array([self.time_from_reference(d) for d in dates])
        elif times is not None:
            node_times = np.array(times, dtype=np.float64)
            if len(node_times) != len(values):
                raise ConfigurationError(
                    f"Times/data count mismatch: {len(node_times)} times vs {len(values)} values"
                )
            if node_times[0] != 0.0:
                raise ConfigurationError(f"First node time must be 0, got {node_times[0]}")
            dates = [self.date_from_time(t) for t in node_times]
        else:
            raise ConfigurationError("Either dates or times must be provided")

        if len(values) < 2:
            raise ConfigurationError("Need at least 2 nodes to build a curve")
        steps = np.diff(node_times)
        if np.any(steps <= 0):
            bad = int(np.argmin(steps)) + 1
            raise ConfigurationError(
                f"Node times must be strictly increasing (node {bad}, date {dates[bad]})"
            )

        self._traits_impl.validate(values)

        self._dates = dates
        self._times = node_times
        self._data = values
        self._times.setflags(write=False)
        self._data.setflags(write=False)

        self._interp = create_interpolator(self.interpolator)
        self._interp.fit(self._times, self._data)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def max_date(self) -> date:
        return self._dates[-1]

    @property
    def max_time(self) -> float:
        return float(self._times[-1])

    @property
    def times(self) -> np.ndarray:
        return self._times

    @property
    def dates(self) -> List[date]:
        return list(self._dates)

    @property
    def data(self) -> np.ndarray:
        return self._data

    def nodes(self) -> List[Tuple[date, float]]:
        """(date, value) pairs for every node."""
        return list(zip(self._dates, self._data.tolist()))

    def to_frame(self) -> pd.DataFrame:
        """Node table with the implied discount factor and zero rate."""
        rows = []
        for d, t, v in zip(self._dates, self._times, self._data):
            df = self.discount(float(t))
            zr = self.zero_rate(float(t)) if t > 0 else np.nan
            rows.append({
                "date": d,
                "time": float(t),
                "value": float(v),
                "discount": df,
                "zero_rate": zr,
            })
        return pd.DataFrame(rows)

    # ------------------------------------------------------------------
    # Curve queries
    # ------------------------------------------------------------------

    def _discount_impl(self, t: float) -> float:
        return self._traits_impl.discount(self._interp, t)

    def instantaneous_forward(self, t, extrapolate: bool = False) -> float:
        t = self._to_time(t)
        if self.traits == TraitKind.FORWARD_RATE and not self._jumps:
            self._check_range(t, extrapolate)
            return self._interp.interpolate(t)
        return super().instantaneous_forward(t, extrapolate)

    def __repr__(self) -> str:
        return (
            f"InterpolatedYieldCurve({self.reference_date}, traits={self.traits.value}, "
            f"interpolator={self.interpolator.value}, nodes={len(self._times)})"
        )


def DiscountCurve(
    dates: Sequence[date],
    discount_factors: Sequence[float],
    day_count: DayCount = DayCount.ACT_365,
    interpolator: Union[str, InterpolatorKind] = InterpolatorKind.LOG_LINEAR,
    jumps: Optional[Sequence[Any]] = None,
    jump_dates: Optional[Sequence[date]] = None
) -> InterpolatedYieldCurve:
    """Curve on discount factors; the first date is the reference date."""
    return InterpolatedYieldCurve(
        dates[0], dates, discount_factors, day_count,
        TraitKind.DISCOUNT, interpolator, jumps, jump_dates
    )


def ZeroCurve(
    dates: Sequence[date],
    zero_rates: Sequence[float],
    day_count: DayCount = DayCount.ACT_365,
    interpolator: Union[str, InterpolatorKind] = InterpolatorKind.LINEAR,
    compounding: Compounding = Compounding.CONTINUOUS,
    frequency: Frequency = Frequency.ANNUAL,
    jumps: Optional[Sequence[Any]] = None,
    jump_dates: Optional[Sequence[date]] = None
) -> InterpolatedYieldCurve:
    """
    Curve on zero rates; the first date is the reference date.

    Rates quoted with other compounding conventions are converted to
    continuous compounding at each node.
    """
    if len(dates) != len(zero_rates):
        raise ConfigurationError(
            f"Dates/data count mismatch: {len(dates)} dates vs {len(zero_rates)} rates"
        )
    rates = list(zero_rates)
    if compounding != Compounding.CONTINUOUS:
        reference = dates[0]
        converted = []
        for d, r in zip(dates, rates):
            t = year_fraction(reference, d, day_count)
            if t > 0:
                converted.append(float(np.log(compound_factor(r, t, compounding, frequency)) / t))
            else:
                converted.append(r)
        rates = converted
    return InterpolatedYieldCurve(
        dates[0], dates, rates, day_count,
        TraitKind.ZERO_YIELD, interpolator, jumps, jump_dates
    )


def ForwardCurve(
    dates: Sequence[date],
    forwards: Sequence[float],
    day_count: DayCount = DayCount.ACT_365,
    interpolator: Union[str, InterpolatorKind] = InterpolatorKind.BACKWARD_FLAT,
    jumps: Optional[Sequence[Any]] = None,
    jump_dates: Optional[Sequence[date]] = None
) -> InterpolatedYieldCurve:
    """Curve on instantaneous forward rates; the first date is the reference date."""
    return InterpolatedYieldCurve(
        dates[0], dates, forwards, day_count,
        TraitKind.FORWARD_RATE, interpolator, jumps, jump_dates
    )


__all__ = [
    "InterpolatedYieldCurve",
    "DiscountCurve",
    "ZeroCurve",
    "ForwardCurve",
]
