"""
FX forward rate helper.

Forward points follow from covered interest parity between the two
currencies' discount curves:

    F = S * (DF_base(T) / DF_base(spot)) / (DF_counter(T) / DF_counter(spot))
    points = (F - S) * unit

S is quoted in counter currency per unit of base currency. One of the two
discount curves is solved; the other must be an external, fully built
curve.
"""

from datetime import date
from enum import Enum
from typing import Any, Optional

from ..conventions import BusinessDayConvention, adjust_business_day, advance_business_days
from ..dates import DateUtils
from ..market.quotes import as_quote, quote_value, version_of
from .helpers import RateHelper


class FxBootstrapType(Enum):
    """Which discount curve an FX forward helper bootstraps."""
    BASE = "Base"
    COUNTER = "Counter"


class FxFwdRateHelper(RateHelper):
    """
    FX swap points quote.

    Args:
        base_currency: Base currency code
        counter_currency: Counter currency code
        fx_spot: Spot rate (counter per base), number or quote
        spot_lag: Business days from reference date to spot
        spot_holidays: Spot calendar
        spot_bdc: Business day convention for spot and maturity
        swap_term: Term from spot (e.g. "3M")
        points: Quoted forward points
        unit: Points per unit of FX rate (e.g. 10000)
        base_discount_curve: Base currency discount curve
        counter_discount_curve: Counter currency discount curve
        bootstrap_type: Which of the two curves is being solved
    """

    def __init__(
        self,
        base_currency: str,
        counter_currency: str,
        fx_spot: Any,
        spot_lag: int,
        spot_holidays: Optional[set],
        spot_bdc: BusinessDayConvention,
        swap_term: str,
        points: Any,
        unit: float = 10000.0,
        base_discount_curve: Any = None,
        counter_discount_curve: Any = None,
        bootstrap_type: FxBootstrapType = FxBootstrapType.BASE,
        reference_date: Optional[date] = None
    ):
        super().__init__(points, reference_date)
        DateUtils.parse_tenor(swap_term)
        self.base_currency = base_currency
        self.counter_currency = counter_currency
        self.fx_spot_handle = as_quote(fx_spot)
        self.spot_lag = spot_lag
        self.spot_holidays = spot_holidays
        self.spot_bdc = spot_bdc
        self.swap_term = swap_term
        self.unit = unit
        self.bootstrap_type = bootstrap_type

        if bootstrap_type == FxBootstrapType.BASE:
            self.base_handle = self._bind_curve("base discount", None)
            self.counter_handle = self._bind_curve("counter discount", counter_discount_curve)
        else:
            self.base_handle = self._bind_curve("base discount", base_discount_curve)
            self.counter_handle = self._bind_curve("counter discount", None)
        self._finish_init()

    @property
    def fx_spot(self) -> float:
        return quote_value(self.fx_spot_handle)

    def _initialize_dates(self) -> None:
        spot = advance_business_days(self._reference_date, self.spot_lag, self.spot_holidays)
        self.spot_date = adjust_business_day(spot, self.spot_bdc, self.spot_holidays)
        self.maturity_date = DateUtils.add_tenor(
            self.spot_date, self.swap_term, self.spot_holidays, self.spot_bdc
        )
        self._earliest_date = self.spot_date
        self._pillar_date = self.maturity_date

    def forward_rate(self) -> float:
        """Outright forward implied by the two curves."""
        self._require_dates()
        base = self.base_handle.link
        counter = self.counter_handle.link
        base_growth = base.discount(self.maturity_date) / base.discount(self.spot_date)
        counter_growth = counter.discount(self.maturity_date) / counter.discount(self.spot_date)
        return self.fx_spot * base_growth / counter_growth

    def implied_quote(self) -> float:
        return (self.forward_rate() - self.fx_spot) * self.unit

    @property
    def version(self) -> Any:
        return super().version + (version_of(self.fx_spot_handle),)


__all__ = ["FxBootstrapType", "FxFwdRateHelper"]
