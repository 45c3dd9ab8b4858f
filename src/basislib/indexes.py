"""
Interest rate indexes.

An IborIndex describes a term rate fixing (EURIBOR 6M, USD LIBOR 3M, ...):
its tenor, fixing lag, day count and the curve its forwards are projected
from. The forwarding curve is held through a handle so an index can be
bound to a curve that is still being bootstrapped.
"""

from datetime import date
from typing import Any, Dict, Optional

from .conventions import (
    BusinessDayConvention,
    DayCount,
    Frequency,
    advance_business_days,
    year_fraction
)
from .dates import DateUtils
from .exceptions import DomainError
from .market.quotes import Handle, as_handle


class IborIndex:
    """
    Term rate index.

    Attributes:
        name: Index family name (e.g. "EURIBOR")
        tenor: Index tenor (e.g. "6M")
        currency: Currency code
        day_count: Accrual day count of the fixing
        fixing_days: Business days between fixing and value date
        business_day: Adjustment used for the maturity date
        holidays: Fixing calendar
    """

    def __init__(
        self,
        name: str,
        tenor: str,
        currency: str = "EUR",
        day_count: DayCount = DayCount.ACT_360,
        fixing_days: int = 2,
        business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        holidays: Optional[set] = None,
        forwarding_curve: Any = None
    ):
        DateUtils.parse_tenor(tenor)
        self.name = name
        self.tenor = tenor.upper()
        self.currency = currency
        self.day_count = day_count
        self.fixing_days = fixing_days
        self.business_day = business_day
        self.holidays = holidays
        self._forwarding = as_handle(forwarding_curve)
        self._fixings: Dict[date, float] = {}

    @property
    def family_name(self) -> str:
        return f"{self.name}{self.tenor}"

    @property
    def frequency(self) -> Frequency:
        return Frequency.from_tenor(self.tenor)

    @property
    def forwarding_curve(self) -> Handle:
        return self._forwarding

    @property
    def version(self) -> Any:
        return self._forwarding.version

    def with_forwarding_curve(self, curve: Any) -> "IborIndex":
        """Copy of the index projecting from another curve (past fixings are shared)."""
        clone = IborIndex(
            self.name, self.tenor, self.currency, self.day_count,
            self.fixing_days, self.business_day, self.holidays, curve
        )
        clone._fixings = self._fixings
        return clone

    def value_date(self, fixing_date: date) -> date:
        return advance_business_days(fixing_date, self.fixing_days, self.holidays)

    def fixing_date(self, value_date: date) -> date:
        return advance_business_days(value_date, -self.fixing_days, self.holidays)

    def maturity_date(self, value_date: date) -> date:
        return DateUtils.add_tenor(value_date, self.tenor, self.holidays, self.business_day)

    def add_fixing(self, fixing_date: date, value: float) -> None:
        """Store a past fixing."""
        self._fixings[fixing_date] = float(value)

    def forward_rate(self, start: date, end: date) -> float:
        """
        Simply compounded forward over [start, end] from the forwarding curve.

        Args:
            start: Accrual start
            end: Accrual end

        Returns:
            Forward rate under the index day count
        """
        curve = self._forwarding.link
        tau = year_fraction(start, end, self.day_count)
        if tau <= 0:
            raise DomainError(f"Empty forward period {start} -> {end} for {self.family_name}")
        return (curve.discount(start) / curve.discount(end) - 1.0) / tau

    def forecast_fixing(self, fixing_date: date) -> float:
        """Projected fixing for a future fixing date."""
        start = self.value_date(fixing_date)
        return self.forward_rate(start, self.maturity_date(start))

    def fixing(self, fixing_date: date) -> float:
        """Stored fixing if available, projected otherwise."""
        if fixing_date in self._fixings:
            return self._fixings[fixing_date]
        curve = self._forwarding.link
        if fixing_date < curve.reference_date:
            raise DomainError(f"Missing {self.family_name} fixing for {fixing_date}")
        return self.forecast_fixing(fixing_date)

    def __repr__(self) -> str:
        return f"IborIndex({self.family_name}, {self.currency}, {self.day_count.value})"


__all__ = ["IborIndex"]
