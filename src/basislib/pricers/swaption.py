"""
European swaption and its cash flow decomposition.

SwaptionCashFlows writes the underlying swap on a single discount curve as
weighted zero bonds:

    float leg = 1 * P(t_0) + sum_k w_k * P(t_k) - 1 * P(t_n)
    fixed leg = sum_j tau_j * P(T_j)   (annuity weights)

where w_k is the tenor basis of coupon k: the accrual-weighted spread
between the index forward and the discount curve forward. The forward swap
rate is float leg / annuity.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, List

import numpy as np

from ..exceptions import ConfigurationError
from ..market.quotes import Handle
from .legs import FixedRateCoupon, IborCoupon
from .swaps import VanillaSwap


@dataclass
class Swaption:
    """European swaption on a VanillaSwap (physical settlement)."""
    exercise_date: date
    swap: VanillaSwap

    def __post_init__(self):
        if self.exercise_date > self.swap.start_date:
            raise ConfigurationError(
                f"Exercise date {self.exercise_date} after swap start {self.swap.start_date}"
            )


class SwaptionCashFlows:
    """
    Zero-bond decomposition of a swaption's underlying on a discount curve.

    Args:
        swaption: The swaption
        discount_curve: Curve (or handle) for discounting
        cont_tenor_spread: Measure the tenor basis with continuously
            compounded forwards instead of simple forwards

    Attributes:
        exercise_time: Curve time of the exercise date
        float_times, float_weights: Float leg zero bonds
        fixed_times, fixed_weights: Fixed leg zero bonds (fixed accruals)
        annuity_weights: Weights of the annuity (fixed accruals)
    """

    def __init__(self, swaption: Swaption, discount_curve: Any, cont_tenor_spread: bool = True):
        self.swaption = swaption
        curve = discount_curve.link if isinstance(discount_curve, Handle) else discount_curve
        self.curve = curve
        self.cont_tenor_spread = cont_tenor_spread

        swap = swaption.swap
        self.exercise_time = curve.time_from_reference(swaption.exercise_date)

        float_coupons: List[IborCoupon] = [
            cf for cf in swap.floating_leg if isinstance(cf, IborCoupon)
        ]
        if not float_coupons:
            raise ConfigurationError("Swaption underlying has no floating coupons")

        float_dates = [float_coupons[0].accrual_start]
        float_weights = [1.0]
        for cpn in float_coupons:
            float_dates.append(cpn.payment_date)
            float_weights.append(self._tenor_basis_weight(cpn))
        float_weights[-1] -= 1.0

        fixed_coupons = [cf for cf in swap.fixed_leg if isinstance(cf, FixedRateCoupon)]
        self.fixed_dates = [cf.payment_date for cf in fixed_coupons]
        self.float_dates = float_dates

        self.float_times = np.array([curve.time_from_reference(d) for d in float_dates])
        self.float_weights = np.array(float_weights)
        self.fixed_times = np.array([curve.time_from_reference(d) for d in self.fixed_dates])
        self.fixed_weights = np.array([cf.accrual_period for cf in fixed_coupons])
        self.annuity_weights = self.fixed_weights.copy()

    def _tenor_basis_weight(self, cpn: IborCoupon) -> float:
        curve = self.curve
        tau = cpn.accrual_period
        df_ratio = curve.discount(cpn.accrual_start) / curve.discount(cpn.accrual_end)
        index_fwd = cpn.index_fixing()
        if self.cont_tenor_spread:
            return float(np.log(1.0 + tau * index_fwd) - np.log(df_ratio))
        disc_fwd = (df_ratio - 1.0) / tau
        return tau * (index_fwd - disc_fwd)

    def _pv(self, times: np.ndarray, weights: np.ndarray) -> float:
        return float(sum(w * self.curve.discount(float(t)) for t, w in zip(times, weights)))

    def annuity(self) -> float:
        """Fixed leg PV01 per unit coupon."""
        return self._pv(self.fixed_times, self.annuity_weights)

    def float_leg_npv(self) -> float:
        return self._pv(self.float_times, self.float_weights)

    def forward_swap_rate(self) -> float:
        """Par rate of the underlying swap."""
        return self.float_leg_npv() / self.annuity()


__all__ = ["Swaption", "SwaptionCashFlows"]
