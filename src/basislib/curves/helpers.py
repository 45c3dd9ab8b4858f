"""
Rate helpers for curve bootstrapping.

A rate helper wraps a market quote as a function of the curve being built:
implied_quote() values the instrument on the current state of that curve
(plus any fully built external curves) and quote_error() is the residual
the bootstrapper drives to zero.

Each helper owns a RelinkableHandle to the curve under construction. Any
curve slot left empty (an index without a forwarding curve, a missing
discount curve) is bound to that handle; filled slots are external curves,
held fixed during the bootstrap.

Defines:
- RateHelper: abstract base
- DepositRateHelper: money market deposit on an Ibor index
- FraRateHelper: forward rate agreement
- SwapRateHelper: fixed vs Ibor par swap rate
- FixedRateBondHelper: bond clean price
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional

from ..conventions import (
    BusinessDayConvention,
    DayCount,
    Frequency,
    adjust_business_day
)
from ..dates import DateUtils, add_months, make_schedule
from ..exceptions import ConfigurationError
from ..indexes import IborIndex
from ..market.quotes import Handle, RelinkableHandle, as_handle, as_quote, quote_value, version_of
from ..pricers.bonds import FixedRateBond
from ..pricers.swaps import VanillaSwap


class RateHelper(ABC):
    """
    Abstract base for bootstrap instruments.

    Attributes:
        quote_handle: The quote (SimpleQuote or handle)
        term_structure_handle: Handle to the curve under construction
    """

    def __init__(self, quote: Any, reference_date: Optional[date] = None):
        self.quote_handle = as_quote(quote)
        self.term_structure_handle = RelinkableHandle()
        self._slots: Dict[str, Handle] = {}
        self._reference_date = reference_date
        self._pillar_date: Optional[date] = None
        self._earliest_date: Optional[date] = None
        self._latest_date: Optional[date] = None

    def _finish_init(self) -> None:
        """Called by subclasses once their curve slots are bound."""
        if self._reference_date is not None:
            self._initialize_dates()

    # ------------------------------------------------------------------
    # Curve slots
    # ------------------------------------------------------------------

    def _bind_curve(self, name: str, curve: Any) -> Handle:
        """Bind a curve slot; empty slots follow the curve under construction."""
        handle = as_handle(curve)
        if handle.empty:
            handle = self.term_structure_handle
        self._slots[name] = handle
        return handle

    def _bind_index(self, name: str, index: IborIndex, force: bool = False) -> IborIndex:
        """Bind an index; without a forwarding curve it projects off the curve under construction."""
        if force or index.forwarding_curve.empty:
            index = index.with_forwarding_curve(self.term_structure_handle)
        self._slots[name] = index.forwarding_curve
        return index

    def external_curves(self) -> Dict[str, Handle]:
        """Curve slots not bound to the curve under construction."""
        return {
            name: h for name, h in self._slots.items()
            if h is not self.term_structure_handle
        }

    def dependencies(self) -> List[Handle]:
        return list(self.external_curves().values())

    def depends_on_term_structure(self) -> bool:
        return any(h is self.term_structure_handle for h in self._slots.values())

    def check_external_curves(self) -> None:
        """
        Raise ConfigurationError if an external curve is missing or ends
        before the dates this helper needs.
        """
        for name, handle in self.external_curves().items():
            if handle.empty:
                raise ConfigurationError(f"Missing external curve: {name} for {self!r}")
            curve = handle.link
            if not curve.allows_extrapolation and curve.max_date < self.latest_date:
                raise ConfigurationError(
                    f"Missing external curve: {name} ends {curve.max_date}, "
                    f"before {self.latest_date} needed by {self!r}"
                )

    # ------------------------------------------------------------------
    # Dates
    # ------------------------------------------------------------------

    @abstractmethod
    def _initialize_dates(self) -> None:
        """Set pillar, earliest and latest dates from the reference date."""

    def _require_dates(self) -> None:
        if self._pillar_date is None:
            raise ConfigurationError(
                f"{type(self).__name__} has no reference date; pass one or bind a curve first"
            )

    @property
    def reference_date(self) -> Optional[date]:
        return self._reference_date

    @property
    def pillar_date(self) -> date:
        self._require_dates()
        return self._pillar_date

    @property
    def earliest_date(self) -> date:
        self._require_dates()
        return self._earliest_date

    @property
    def latest_date(self) -> date:
        self._require_dates()
        return self._latest_date or self._pillar_date

    def initialize(self, reference_date: date) -> None:
        """Compute the helper's dates for a reference date."""
        if self._pillar_date is None or reference_date != self._reference_date:
            self._reference_date = reference_date
            self._initialize_dates()

    def set_term_structure(self, curve: Any) -> None:
        """Point the helper at the curve under construction."""
        self.initialize(curve.reference_date)
        self.term_structure_handle.link_to(curve, bump_epoch=False)

    # ------------------------------------------------------------------
    # Valuation
    # ------------------------------------------------------------------

    @property
    def quote(self) -> float:
        return quote_value(self.quote_handle)

    @abstractmethod
    def implied_quote(self) -> float:
        """Quote implied by the current curves."""

    def quote_error(self) -> float:
        return self.quote - self.implied_quote()

    @property
    def version(self) -> Any:
        """Quote version plus versions of the external curves."""
        return (
            version_of(self.quote_handle),
            tuple(h.version for h in self.external_curves().values()),
        )

    def __repr__(self) -> str:
        pillar = self._pillar_date.isoformat() if self._pillar_date else "unset"
        return f"{type(self).__name__}(quote={self.quote:.6f}, pillar={pillar})"


class DepositRateHelper(RateHelper):
    """
    Money market deposit fixing today.

    The index always projects off the curve under construction.
    Implied quote: (DF(value) / DF(maturity) - 1) / tau.
    """

    def __init__(self, rate: Any, index: IborIndex, reference_date: Optional[date] = None):
        super().__init__(rate, reference_date)
        self.index = self._bind_index("index", index, force=True)
        self._finish_init()

    def _initialize_dates(self) -> None:
        fixing = adjust_business_day(
            self._reference_date, BusinessDayConvention.FOLLOWING, self.index.holidays
        )
        self.value_date = self.index.value_date(fixing)
        self.maturity_date = self.index.maturity_date(self.value_date)
        self._earliest_date = self.value_date
        self._pillar_date = self.maturity_date

    def implied_quote(self) -> float:
        self._require_dates()
        return self.index.forward_rate(self.value_date, self.maturity_date)


class FraRateHelper(RateHelper):
    """
    Forward rate agreement starting `months_to_start` months after spot.

    Implied quote: index forward over [start, start + index tenor].
    """

    def __init__(
        self,
        rate: Any,
        months_to_start: int,
        index: IborIndex,
        reference_date: Optional[date] = None
    ):
        super().__init__(rate, reference_date)
        self.months_to_start = months_to_start
        self.index = self._bind_index("index", index, force=True)
        self._finish_init()

    def _initialize_dates(self) -> None:
        fixing = adjust_business_day(
            self._reference_date, BusinessDayConvention.FOLLOWING, self.index.holidays
        )
        spot = self.index.value_date(fixing)
        self.start_date = adjust_business_day(
            add_months(spot, self.months_to_start), self.index.business_day, self.index.holidays
        )
        self.end_date = self.index.maturity_date(self.start_date)
        self._earliest_date = self.start_date
        self._pillar_date = self.end_date

    def implied_quote(self) -> float:
        self._require_dates()
        return self.index.forward_rate(self.start_date, self.end_date)


class SwapRateHelper(RateHelper):
    """
    Par rate of a fixed vs Ibor swap.

    If the index has a forwarding curve the helper solves the discount
    curve; otherwise it solves the forwarding curve, discounting on the
    given discount curve (or on itself when none is given).
    """

    def __init__(
        self,
        rate: Any,
        tenor: str,
        index: IborIndex,
        fixed_frequency: Frequency = Frequency.ANNUAL,
        fixed_day_count: DayCount = DayCount.THIRTY_360,
        fixed_business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        spread: float = 0.0,
        fwd_start: str = "0D",
        discount_curve: Any = None,
        reference_date: Optional[date] = None
    ):
        super().__init__(rate, reference_date)
        self.tenor = tenor
        self.fixed_frequency = fixed_frequency
        self.fixed_day_count = fixed_day_count
        self.fixed_business_day = fixed_business_day
        self.spread = spread
        self.fwd_start = fwd_start
        self.index = self._bind_index("index", index)
        self.discount_handle = self._bind_curve("discount", discount_curve)
        self._finish_init()

    def _initialize_dates(self) -> None:
        holidays = self.index.holidays
        fixing = adjust_business_day(self._reference_date, BusinessDayConvention.FOLLOWING, holidays)
        start = DateUtils.add_tenor(self.index.value_date(fixing), self.fwd_start, holidays)
        start = adjust_business_day(start, self.fixed_business_day, holidays)
        end = DateUtils.add_tenor(start, self.tenor)

        fixed_schedule = make_schedule(
            start, end, self.fixed_frequency.tenor, holidays, self.fixed_business_day
        )
        float_schedule = make_schedule(
            start, end, self.index.tenor, holidays, self.index.business_day
        )
        self.swap = VanillaSwap(
            payer=True,
            nominal=1.0,
            fixed_schedule=fixed_schedule,
            fixed_rate=0.0,
            fixed_day_count=self.fixed_day_count,
            float_schedule=float_schedule,
            index=self.index,
            spread=self.spread,
        )
        self._earliest_date = self.swap.start_date
        self._pillar_date = self.swap.maturity_date

    def implied_quote(self) -> float:
        self._require_dates()
        return self.swap.fair_rate(self.discount_handle)


class FixedRateBondHelper(RateHelper):
    """
    Bond quoted by clean price.

    Implied quote: clean price per 100 face on the curve under construction.
    """

    def __init__(self, clean_price: Any, bond: FixedRateBond, reference_date: Optional[date] = None):
        super().__init__(clean_price, reference_date)
        self.bond = bond
        self._bind_curve("discount", None)
        self._finish_init()

    def _initialize_dates(self) -> None:
        self.settlement_date = self.bond.settlement_date(self._reference_date)
        self._earliest_date = self.settlement_date
        self._pillar_date = self.bond.maturity_date

    def implied_quote(self) -> float:
        self._require_dates()
        return self.bond.clean_price(self.term_structure_handle, self.settlement_date)


__all__ = [
    "RateHelper",
    "DepositRateHelper",
    "FraRateHelper",
    "SwapRateHelper",
    "FixedRateBondHelper",
]
