"""
Swap instruments and pricing engines.

- VanillaSwap: fixed vs Ibor swap with fair rate and fair spread
- BasisSwap: any number of legs, each paid or received, with one "par" leg
  whose spread can be solved for
- BasisSwapEngine: values each leg on its own discount curve and converts
  to a common currency with a per-leg FX rate

Pricing formula:

    NPV = sum_k sign_k * fx_k * NPV_k
    fair spread on par leg p = s_p - NPV / (sign_p * fx_p * BPS_p / 1bp)

The fair spread is closed form once discount factors are known, so helpers
quoted as spreads never need a nested root search.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional, Sequence

from ..conventions import DayCount
from ..dates import Schedule
from ..exceptions import ConfigurationError
from ..indexes import IborIndex
from ..market.quotes import as_handle
from .legs import BASIS_POINT, IborCoupon, Leg, fixed_leg, ibor_leg, leg_bps, leg_npv

logger = logging.getLogger(__name__)


class VanillaSwap:
    """
    Fixed vs floating swap.

    Attributes:
        payer: True if the fixed leg is paid
        nominal: Swap nominal
        fixed_rate: Fixed coupon
        spread: Spread on the floating leg
    """

    def __init__(
        self,
        payer: bool,
        nominal: float,
        fixed_schedule: Schedule,
        fixed_rate: float,
        fixed_day_count: DayCount,
        float_schedule: Schedule,
        index: IborIndex,
        spread: float = 0.0,
        float_day_count: Optional[DayCount] = None
    ):
        self.payer = payer
        self.nominal = nominal
        self.fixed_rate = fixed_rate
        self.spread = spread
        self.fixed_schedule = fixed_schedule
        self.float_schedule = float_schedule
        self.index = index
        self.fixed_leg = fixed_leg(fixed_schedule, nominal, fixed_rate, fixed_day_count)
        self.floating_leg = ibor_leg(float_schedule, index, nominal, spread, day_count=float_day_count)

    @property
    def start_date(self) -> date:
        return min(self.fixed_schedule.dates[0], self.float_schedule.dates[0])

    @property
    def maturity_date(self) -> date:
        return max(self.fixed_schedule.dates[-1], self.float_schedule.dates[-1])

    def fixed_leg_npv(self, discount_curve: Any) -> float:
        return leg_npv(self.fixed_leg, discount_curve)

    def floating_leg_npv(self, discount_curve: Any) -> float:
        return leg_npv(self.floating_leg, discount_curve)

    def fixed_leg_bps(self, discount_curve: Any) -> float:
        return leg_bps(self.fixed_leg, discount_curve)

    def npv(self, discount_curve: Any) -> float:
        """NPV to the holder (fixed payer receives the floating leg)."""
        value = self.floating_leg_npv(discount_curve) - self.fixed_leg_npv(discount_curve)
        return value if self.payer else -value

    def fair_rate(self, discount_curve: Any) -> float:
        """Fixed rate that sets the swap NPV to zero."""
        bps = self.fixed_leg_bps(discount_curve)
        if bps == 0:
            raise ConfigurationError("Fixed leg has no remaining coupons")
        return self.floating_leg_npv(discount_curve) / (bps / BASIS_POINT)

    def fair_spread(self, discount_curve: Any) -> float:
        """Floating spread that sets the swap NPV to zero."""
        float_bps = leg_bps(self.floating_leg, discount_curve)
        gap = self.fixed_leg_npv(discount_curve) - self.floating_leg_npv(discount_curve)
        return self.spread + gap / (float_bps / BASIS_POINT)


class BasisSwap:
    """
    Multi-leg swap with one par leg.

    Args:
        legs: Cash flow legs, each in its own currency
        payer: One flag per leg, True if the leg is paid
        par_leg_index: Leg carrying the quoted spread
        calc_par_spread: Whether engines should compute the fair spread
    """

    def __init__(
        self,
        legs: Sequence[Leg],
        payer: Sequence[bool],
        par_leg_index: int = 0,
        calc_par_spread: bool = True
    ):
        if len(legs) != len(payer):
            raise ConfigurationError(
                f"Size mismatch between legs ({len(legs)}) and payer flags ({len(payer)})"
            )
        if not 0 <= par_leg_index < len(legs):
            raise ConfigurationError(f"Par leg index {par_leg_index} out of range")
        self.legs = [list(leg) for leg in legs]
        self.payer = list(payer)
        self.par_leg_index = par_leg_index
        self.calc_par_spread = calc_par_spread

    @property
    def signs(self) -> List[float]:
        return [-1.0 if p else 1.0 for p in self.payer]

    @property
    def par_leg_spread(self) -> float:
        """Spread currently carried by the par leg's floating coupons."""
        for cf in self.legs[self.par_leg_index]:
            if isinstance(cf, IborCoupon):
                return cf.spread
        return 0.0

    @property
    def maturity_date(self) -> date:
        return max(cf.payment_date for leg in self.legs for cf in leg)

    @property
    def start_date(self) -> date:
        return min(
            getattr(cf, "accrual_start", cf.payment_date) for leg in self.legs for cf in leg
        )


@dataclass
class BasisSwapResults:
    """Valuation results of a BasisSwap."""
    npv: float
    leg_npv: List[float] = field(default_factory=list)
    leg_bps: List[float] = field(default_factory=list)
    fair_spread: Optional[float] = None


class BasisSwapEngine:
    """
    Discounting engine for multi-currency basis swaps.

    Args:
        discount_curves: One curve (or handle) per leg, or a single curve for all legs
        fx_for_dom: Value of one unit of each leg currency in the common currency
        include_settlement_date_flows: Count flows paid on the settlement date
        settlement_date: Flows on or before this date are ignored
        npv_date: Date the NPV is expressed at
    """

    def __init__(
        self,
        discount_curves: Any,
        fx_for_dom: Optional[Sequence[float]] = None,
        include_settlement_date_flows: bool = True,
        settlement_date: Optional[date] = None,
        npv_date: Optional[date] = None
    ):
        if isinstance(discount_curves, (list, tuple)):
            self.discount_curves = [as_handle(c) for c in discount_curves]
        else:
            self.discount_curves = [as_handle(discount_curves)]
        self.fx_for_dom = list(fx_for_dom) if fx_for_dom is not None else None
        self.include_settlement_date_flows = include_settlement_date_flows
        self.settlement_date = settlement_date
        self.npv_date = npv_date

    def _curve_for(self, k: int):
        handle = self.discount_curves[k] if len(self.discount_curves) > 1 else self.discount_curves[0]
        if handle.empty:
            raise ConfigurationError(f"Missing external curve: no discount curve for leg {k}")
        return handle.link

    def calculate(self, swap: BasisSwap) -> BasisSwapResults:
        """
        Value the swap.

        Returns:
            BasisSwapResults with NPVs and BPS in leg currencies and the
            total NPV in the common currency
        """
        n_legs = len(swap.legs)
        if len(self.discount_curves) not in (1, n_legs):
            raise ConfigurationError(
                f"Need 1 or {n_legs} discount curves, got {len(self.discount_curves)}"
            )
        fx = self.fx_for_dom or [1.0] * n_legs
        if len(fx) != n_legs:
            raise ConfigurationError(f"Need {n_legs} FX rates, got {len(fx)}")

        npvs, bpss = [], []
        total = 0.0
        for k, (leg, sign) in enumerate(zip(swap.legs, swap.signs)):
            curve = self._curve_for(k)
            settlement = self.settlement_date or curve.reference_date
            npv_date = self.npv_date or curve.reference_date
            npv_k = leg_npv(leg, curve, self.include_settlement_date_flows, settlement, npv_date)
            bps_k = leg_bps(leg, curve, self.include_settlement_date_flows, settlement, npv_date)
            npvs.append(npv_k)
            bpss.append(bps_k)
            total += sign * fx[k] * npv_k

        fair_spread = None
        if swap.calc_par_spread:
            p = swap.par_leg_index
            scaled_bps = swap.signs[p] * fx[p] * bpss[p] / BASIS_POINT
            if scaled_bps == 0:
                raise ConfigurationError("Par leg has zero BPS; cannot solve its spread")
            fair_spread = swap.par_leg_spread - total / scaled_bps

        logger.debug("Basis swap NPV %.10f, fair spread %s", total, fair_spread)
        return BasisSwapResults(npv=total, leg_npv=npvs, leg_bps=bpss, fair_spread=fair_spread)


__all__ = [
    "VanillaSwap",
    "BasisSwap",
    "BasisSwapResults",
    "BasisSwapEngine",
]
