"""
Flat forward curve.
"""

from datetime import date
from typing import Any, Union

from ..conventions import Compounding, DayCount, Frequency, compound_factor
from ..market.quotes import SimpleQuote, Handle, as_quote, quote_value, version_of
from .base import YieldTermStructure


class FlatForward(YieldTermStructure):
    """
    Curve with a single rate at every maturity.

    The rate may be a number, a SimpleQuote or a handle to a quote; in the
    latter cases the curve follows the live quote.
    """

    def __init__(
        self,
        reference_date: date,
        rate: Union[float, SimpleQuote, Handle],
        day_count: DayCount = DayCount.ACT_365,
        compounding: Compounding = Compounding.CONTINUOUS,
        frequency: Frequency = Frequency.ANNUAL
    ):
        super().__init__(reference_date, day_count)
        self._rate = as_quote(rate)
        self.compounding = compounding
        self.frequency = frequency

    @property
    def rate(self) -> float:
        return quote_value(self._rate)

    def _discount_impl(self, t: float) -> float:
        return 1.0 / compound_factor(self.rate, t, self.compounding, self.frequency)

    @property
    def version(self) -> Any:
        return version_of(self._rate)

    def __repr__(self) -> str:
        return f"FlatForward({self.reference_date}, {self.rate:.6f}, {self.compounding.value})"


__all__ = ["FlatForward"]
