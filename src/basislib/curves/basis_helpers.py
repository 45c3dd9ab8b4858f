"""
Basis swap rate helpers.

- TenorSwapRateHelper: single-currency float vs float swap (e.g. 3M vs 6M),
  both legs discounted on one curve, quoted as a spread on one leg
- XCCYSwapRateHelper: cross-currency float vs float swap with notional
  exchanges, each leg discounted in its own currency and converted with
  today's FX rate, optionally FX-resettable on the leg without the spread

The implied quote is the breakeven spread on the quoted leg, computed in
closed form by BasisSwapEngine:

    spread = (PV_other_leg - PV_spread_leg(0)) / BPS_spread_leg
"""

from abc import abstractmethod
from datetime import date
from typing import Any, List, Optional, Tuple

from ..conventions import BusinessDayConvention, adjust_business_day
from ..dates import DateUtils, Schedule, make_schedule
from ..exceptions import ConfigurationError
from ..indexes import IborIndex
from ..pricers.legs import Leg, ibor_leg
from ..pricers.swaps import BasisSwap, BasisSwapEngine
from .helpers import RateHelper


class BasisSwapRateHelper(RateHelper):
    """
    Common base for float vs float swap helpers.

    Attributes:
        tenor: Swap length from the start date
        fwd_start: Forward start from spot (e.g. "0D", "1Y")
        spread_on_rec_leg: True if the quoted spread sits on the receive leg
        pay_index: Index of the paid leg
        rec_index: Index of the received leg
    """

    def __init__(
        self,
        rate: Any,
        tenor: str,
        fwd_start: str,
        spread_on_rec_leg: bool,
        pay_index: IborIndex,
        rec_index: IborIndex,
        reference_date: Optional[date] = None
    ):
        super().__init__(rate, reference_date)
        DateUtils.parse_tenor(tenor)
        DateUtils.parse_tenor(fwd_start)
        self.tenor = tenor
        self.fwd_start = fwd_start
        self.spread_on_rec_leg = spread_on_rec_leg
        self.pay_index = self._bind_index("pay index", pay_index)
        self.rec_index = self._bind_index("rec index", rec_index)

    @property
    def par_leg_index(self) -> int:
        return 1 if self.spread_on_rec_leg else 0

    def _swap_dates(self, spot_holidays: Optional[set]) -> Tuple[date, date]:
        """Start and unadjusted end of the swap."""
        fixing = adjust_business_day(
            self._reference_date, BusinessDayConvention.FOLLOWING, spot_holidays
        )
        spot_lag = max(self.pay_index.fixing_days, self.rec_index.fixing_days)
        spot = DateUtils.add_tenor(fixing, f"{spot_lag}D", spot_holidays) if spot_lag else fixing
        start = DateUtils.add_tenor(spot, self.fwd_start, spot_holidays)
        start = adjust_business_day(start, BusinessDayConvention.FOLLOWING, spot_holidays)
        return start, DateUtils.add_tenor(start, self.tenor)

    def _set_schedules(self, pay_schedule: Schedule, rec_schedule: Schedule) -> None:
        self.pay_schedule = pay_schedule
        self.rec_schedule = rec_schedule
        self._earliest_date = min(pay_schedule.dates[0], rec_schedule.dates[0])
        self._pillar_date = max(pay_schedule.dates[-1], rec_schedule.dates[-1])

    @abstractmethod
    def _legs(self, spread: float) -> Tuple[Leg, Leg]:
        """Pay and receive legs with the spread on the par leg."""

    @abstractmethod
    def engine(self) -> BasisSwapEngine:
        """Engine valuing the quoted swap on the helper's curves."""

    def basis_swap(self, spread: Optional[float] = None) -> BasisSwap:
        """
        The quoted swap with a given spread on the par leg.

        Args:
            spread: Spread on the par leg (default: the current quote)
        """
        self._require_dates()
        if spread is None:
            spread = self.quote
        pay_leg, rec_leg = self._legs(spread)
        return BasisSwap(
            legs=[pay_leg, rec_leg],
            payer=[True, False],
            par_leg_index=self.par_leg_index,
            calc_par_spread=True,
        )

    def implied_quote(self) -> float:
        results = self.engine().calculate(self.basis_swap(0.0))
        return results.fair_spread


class TenorSwapRateHelper(BasisSwapRateHelper):
    """
    Single-currency tenor basis swap.

    Args:
        rate: Quoted spread
        tenor: Swap length
        fwd_start: Forward start from spot
        payment_holidays: Payment calendar
        payment_bdc: Payment business day convention
        spread_on_rec_leg: True if the spread sits on the receive leg
        pay_index: Index of the paid leg
        rec_index: Index of the received leg
        discount_curve: Discount curve (empty: the curve under construction)
    """

    def __init__(
        self,
        rate: Any,
        tenor: str,
        fwd_start: str = "0D",
        payment_holidays: Optional[set] = None,
        payment_bdc: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        spread_on_rec_leg: bool = True,
        pay_index: IborIndex = None,
        rec_index: IborIndex = None,
        discount_curve: Any = None,
        reference_date: Optional[date] = None
    ):
        if pay_index is None or rec_index is None:
            raise ConfigurationError("TenorSwapRateHelper needs both pay and rec indexes")
        super().__init__(rate, tenor, fwd_start, spread_on_rec_leg, pay_index, rec_index, reference_date)
        self.payment_holidays = payment_holidays
        self.payment_bdc = payment_bdc
        self.discount_handle = self._bind_curve("discount", discount_curve)
        self._finish_init()

    def _initialize_dates(self) -> None:
        start, end = self._swap_dates(self.payment_holidays)
        self._set_schedules(
            make_schedule(start, end, self.pay_index.tenor, self.payment_holidays, self.payment_bdc),
            make_schedule(start, end, self.rec_index.tenor, self.payment_holidays, self.payment_bdc),
        )

    def _legs(self, spread: float) -> Tuple[Leg, Leg]:
        pay_spread = 0.0 if self.spread_on_rec_leg else spread
        rec_spread = spread if self.spread_on_rec_leg else 0.0
        return (
            ibor_leg(self.pay_schedule, self.pay_index, 1.0, pay_spread),
            ibor_leg(self.rec_schedule, self.rec_index, 1.0, rec_spread),
        )

    def engine(self) -> BasisSwapEngine:
        return BasisSwapEngine([self.discount_handle, self.discount_handle])


class XCCYSwapRateHelper(BasisSwapRateHelper):
    """
    Cross-currency basis swap.

    Leg notionals are 1 / fx_for_dom in each leg currency, so both legs
    carry one unit of the common currency at inception. Notionals are
    exchanged at the start and end of the swap.

    With fx_resettable the leg without the spread resets its notional each
    period to the forward FX value of the spread leg's notional:

        N_k = (1 / fx_reset) * DF_spread(t_k) / DF_reset(t_k)

    Args:
        rate: Quoted spread
        tenor: Swap length
        fwd_start: Forward start from spot
        spot_holidays: Calendar for the spot and schedule dates
        pay_bdc: Business day convention of the pay leg
        rec_bdc: Business day convention of the receive leg
        spread_on_rec_leg: True if the spread sits on the receive leg
        pay_index: Index of the paid leg
        rec_index: Index of the received leg
        pay_discount_curve: Pay currency discount curve (empty: curve under construction)
        rec_discount_curve: Receive currency discount curve (empty: curve under construction)
        pay_fx_for_dom: Value of one pay currency unit in the common currency
        rec_fx_for_dom: Value of one receive currency unit in the common currency
        fx_resettable: Reset the notional of the leg without the spread
    """

    def __init__(
        self,
        rate: Any,
        tenor: str,
        fwd_start: str = "0D",
        spot_holidays: Optional[set] = None,
        pay_bdc: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        rec_bdc: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        spread_on_rec_leg: bool = True,
        pay_index: IborIndex = None,
        rec_index: IborIndex = None,
        pay_discount_curve: Any = None,
        rec_discount_curve: Any = None,
        pay_fx_for_dom: float = 1.0,
        rec_fx_for_dom: float = 1.0,
        fx_resettable: bool = False,
        reference_date: Optional[date] = None
    ):
        if pay_index is None or rec_index is None:
            raise ConfigurationError("XCCYSwapRateHelper needs both pay and rec indexes")
        if pay_fx_for_dom <= 0 or rec_fx_for_dom <= 0:
            raise ConfigurationError("FX rates must be positive")
        super().__init__(rate, tenor, fwd_start, spread_on_rec_leg, pay_index, rec_index, reference_date)
        self.spot_holidays = spot_holidays
        self.pay_bdc = pay_bdc
        self.rec_bdc = rec_bdc
        self.pay_fx_for_dom = pay_fx_for_dom
        self.rec_fx_for_dom = rec_fx_for_dom
        self.fx_resettable = fx_resettable
        self.pay_discount_handle = self._bind_curve("pay discount", pay_discount_curve)
        self.rec_discount_handle = self._bind_curve("rec discount", rec_discount_curve)
        self._finish_init()

    def _initialize_dates(self) -> None:
        start, end = self._swap_dates(self.spot_holidays)
        self._set_schedules(
            make_schedule(start, end, self.pay_index.tenor, self.spot_holidays, self.pay_bdc),
            make_schedule(start, end, self.rec_index.tenor, self.spot_holidays, self.rec_bdc),
        )

    def _reset_nominals(self, schedule: Schedule, fx_reset: float, spread_curve, reset_curve) -> List[float]:
        return [
            (1.0 / fx_reset) * spread_curve.discount(start) / reset_curve.discount(start)
            for start, _ in schedule.periods()
        ]

    def _legs(self, spread: float) -> Tuple[Leg, Leg]:
        pay_nominal: Any = 1.0 / self.pay_fx_for_dom
        rec_nominal: Any = 1.0 / self.rec_fx_for_dom

        if self.fx_resettable:
            pay_curve = self.pay_discount_handle.link
            rec_curve = self.rec_discount_handle.link
            if self.spread_on_rec_leg:
                pay_nominal = self._reset_nominals(
                    self.pay_schedule, self.pay_fx_for_dom, rec_curve, pay_curve
                )
            else:
                rec_nominal = self._reset_nominals(
                    self.rec_schedule, self.rec_fx_for_dom, pay_curve, rec_curve
                )

        pay_spread = 0.0 if self.spread_on_rec_leg else spread
        rec_spread = spread if self.spread_on_rec_leg else 0.0
        return (
            ibor_leg(self.pay_schedule, self.pay_index, pay_nominal, pay_spread, notional_exchange=True),
            ibor_leg(self.rec_schedule, self.rec_index, rec_nominal, rec_spread, notional_exchange=True),
        )

    def engine(self) -> BasisSwapEngine:
        return BasisSwapEngine(
            [self.pay_discount_handle, self.rec_discount_handle],
            [self.pay_fx_for_dom, self.rec_fx_for_dom],
        )


__all__ = [
    "BasisSwapRateHelper",
    "TenorSwapRateHelper",
    "XCCYSwapRateHelper",
]
