"""
Tenor basis volatility transforms.

TenorOptionletVTS maps optionlet vols quoted on a base index (e.g. 3M) to
a target index (e.g. 6M). The target period is split into base periods
k = 1..n and, with the tenor basis held deterministic,

    dL_targ = sum_k v_k dL_k,   v_k = tau_k / tau_t * (1 + tau_t L_t) / (1 + tau_k L_k)

so in normal-vol terms

    sigma_t^2 = sum_{i,j} v_i v_j rho(T_i, T_j) sigma_i sigma_j

where sigma_k is the base vol at the equal-moneyness strike: K_k = L_k + (K - L_t)
for a normal base, and for a shifted-lognormal base with shift d the same
relative moneyness, K_k + d = (K + d)(L_k + d) / (L_t + d), which keeps K_k
inside the base domain. Without correlation the variance falls to
sum_k v_k^2 sigma_k^2, and it is never negative.

TenorSwaptionVTS maps swaption vols between float leg tenors through the
affine relation between the two forward swap rates on one discount curve:

    S_t = lambda * S_b + mu,   lambda = A_b / A_t

so sigma_t(K) = lambda * sigma_b((K - mu) / lambda) in normal terms.

Non-normal vols are converted through option prices (Black and Bachelier)
scaled by the annuity, which is where the discount curve enters.
"""

import logging
from typing import Any, List, Optional, Tuple, Union

import numpy as np

from ..conventions import BusinessDayConvention, DayCount, Frequency, year_fraction
from ..dates import DateUtils, make_schedule
from ..exceptions import ConfigurationError
from ..indexes import IborIndex
from ..market.quotes import Handle, as_handle
from ..options.base_models import (
    bachelier_call,
    bachelier_put,
    black76_call,
    black76_put,
    implied_vol_bachelier,
    implied_vol_black
)
from ..pricers.swaps import VanillaSwap
from ..pricers.swaption import Swaption, SwaptionCashFlows
from .base import OptionletVolatilityStructure, SwaptionVolatilityStructure, VolatilityType
from .correlation import CorrelationStructure

logger = logging.getLogger(__name__)

_MIN_TIME = 1e-8


def to_normal_vol(
    vol: float,
    vol_type: VolatilityType,
    displacement: float,
    F: float,
    K: float,
    t: float,
    annuity: float = 1.0
) -> float:
    """Normal vol with the same price as a vol quoted in vol_type."""
    if vol_type == VolatilityType.NORMAL:
        return vol
    if t <= _MIN_TIME:
        return vol * (F + displacement)
    if K >= F:
        price = black76_call(F, K, t, vol, annuity, displacement)
    else:
        price = black76_put(F, K, t, vol, annuity, displacement)
    return implied_vol_bachelier(price, F, K, t, annuity, is_call=K >= F)


def from_normal_vol(
    vol: float,
    vol_type: VolatilityType,
    displacement: float,
    F: float,
    K: float,
    t: float,
    annuity: float = 1.0
) -> float:
    """Vol in vol_type with the same price as a normal vol."""
    if vol_type == VolatilityType.NORMAL:
        return vol
    if t <= _MIN_TIME:
        return vol / (F + displacement)
    if K >= F:
        price = bachelier_call(F, K, t, vol, annuity)
    else:
        price = bachelier_put(F, K, t, vol, annuity)
    return implied_vol_black(price, F, K, t, annuity, is_call=K >= F, shift=displacement)


def _require_forwarding(index: IborIndex, role: str) -> None:
    if index.forwarding_curve.empty:
        raise ConfigurationError(f"Missing external curve: {role} {index.family_name} has no forwarding curve")


class TenorOptionletVTS(OptionletVolatilityStructure):
    """
    Optionlet volatilities of a target index derived from a base index.

    Args:
        base_vts: Optionlet structure quoted on base_index (object or handle)
        base_index: Index the base vols refer to, with forwarding curve
        targ_index: Index of the returned vols, with forwarding curve
        correlation: CorrelationStructure between base forwards
    """

    def __init__(
        self,
        base_vts: Any,
        base_index: IborIndex,
        targ_index: IborIndex,
        correlation: CorrelationStructure
    ):
        self.base_vts: Handle = as_handle(base_vts)
        base = self.base_vts.link
        super().__init__(base.reference_date, base.day_count, base.volatility_type, base.displacement)
        _require_forwarding(base_index, "base index")
        _require_forwarding(targ_index, "target index")
        self.base_index = base_index
        self.targ_index = targ_index
        self.correlation = correlation

    @property
    def max_date(self):
        return self.base_vts.link.max_date

    def decompose(self, t: float) -> Tuple[float, float, List[Tuple[float, float, float]]]:
        """
        Split the target fixing at t into base periods.

        Returns:
            (target forward, target accrual, [(base fixing time, base forward, base accrual)])
        """
        targ, base = self.targ_index, self.base_index
        fixing = self.date_from_time(t)
        start = targ.value_date(fixing)
        end = targ.maturity_date(start)
        targ_rate = targ.forward_rate(start, end)
        targ_tau = year_fraction(start, end, targ.day_count)

        first_fixing = self.time_from_reference(base.fixing_date(start))
        periods = []
        s = start
        while s < end:
            e = min(base.maturity_date(s), end)
            # absorb short stubs left by calendar adjustments
            if (end - e).days < 5:
                e = end
            fix_time = t + self.time_from_reference(base.fixing_date(s)) - first_fixing
            periods.append((fix_time, base.forward_rate(s, e), year_fraction(s, e, base.day_count)))
            s = e
        return targ_rate, targ_tau, periods

    def _volatility_impl(self, t, strike):
        base = self.base_vts.link
        targ_rate, targ_tau, periods = self.decompose(t)
        lognormal = base.volatility_type == VolatilityType.SHIFTED_LOGNORMAL
        shift = base.displacement

        times = [p[0] for p in periods]
        weights = np.array([
            tau / targ_tau * (1.0 + targ_tau * targ_rate) / (1.0 + tau * rate)
            for _, rate, tau in periods
        ])
        sigmas = np.empty(len(periods))
        for k, (t_k, rate, _) in enumerate(periods):
            t_k = max(t_k, 0.0)
            if lognormal:
                strike_k = (strike + shift) * (rate + shift) / (targ_rate + shift) - shift
            else:
                strike_k = rate + strike - targ_rate
            vol = base.volatility(t_k, strike_k, extrapolate=True)
            sigmas[k] = to_normal_vol(
                vol, base.volatility_type, base.displacement, rate, strike_k, max(t_k, _MIN_TIME)
            )

        rho = self.correlation.matrix(times, expiry=t)
        weighted = weights * sigmas
        variance = max(float(weighted @ rho @ weighted), 0.0)
        sigma_n = float(np.sqrt(variance))
        return from_normal_vol(
            sigma_n, self.volatility_type, self.displacement, targ_rate, strike, max(t, _MIN_TIME)
        )

    @property
    def version(self):
        return (
            self.base_vts.version,
            self.base_index.version,
            self.targ_index.version,
            self.correlation.version,
        )

    def dependencies(self) -> List[Any]:
        return [self.base_vts, self.base_index.forwarding_curve, self.targ_index.forwarding_curve]


class TenorSwaptionVTS(SwaptionVolatilityStructure):
    """
    Swaption volatilities for swaps on a target index derived from a base index.

    Args:
        base_vts: Swaption structure quoted for swaps on base_index
        discount_curve: Curve discounting both swaps
        base_index: Float index of the base swaps
        targ_index: Float index of the target swaps
        base_fixed_frequency: Fixed leg frequency of the base swaps
        targ_fixed_frequency: Fixed leg frequency of the target swaps
        base_fixed_day_count: Fixed leg day count of the base swaps
        targ_fixed_day_count: Fixed leg day count of the target swaps
        output_vol_type: Convention of the returned vols (default: the base's)
        cont_tenor_spread: Tenor basis of float coupons in continuous compounding
    """

    def __init__(
        self,
        base_vts: Any,
        discount_curve: Any,
        base_index: IborIndex,
        targ_index: IborIndex,
        base_fixed_frequency: Frequency = Frequency.ANNUAL,
        targ_fixed_frequency: Frequency = Frequency.ANNUAL,
        base_fixed_day_count: DayCount = DayCount.THIRTY_360,
        targ_fixed_day_count: DayCount = DayCount.THIRTY_360,
        output_vol_type: Optional[Union[str, VolatilityType]] = None,
        cont_tenor_spread: bool = True
    ):
        self.base_vts: Handle = as_handle(base_vts)
        base = self.base_vts.link
        vol_type = base.volatility_type if output_vol_type is None else output_vol_type
        super().__init__(base.reference_date, base.day_count, vol_type, base.displacement)
        self.discount_curve: Handle = as_handle(discount_curve)
        if self.discount_curve.empty:
            raise ConfigurationError("Missing external curve: TenorSwaptionVTS needs a discount curve")
        _require_forwarding(base_index, "base index")
        _require_forwarding(targ_index, "target index")
        self.base_index = base_index
        self.targ_index = targ_index
        self.base_fixed_frequency = base_fixed_frequency
        self.targ_fixed_frequency = targ_fixed_frequency
        self.base_fixed_day_count = base_fixed_day_count
        self.targ_fixed_day_count = targ_fixed_day_count
        self.cont_tenor_spread = cont_tenor_spread

    @property
    def max_date(self):
        return self.base_vts.link.max_date

    @property
    def max_swap_length(self) -> float:
        return self.base_vts.link.max_swap_length

    def swap_cash_flows(
        self,
        t: float,
        swap_length: float,
        index: IborIndex,
        fixed_frequency: Frequency,
        fixed_day_count: DayCount
    ) -> SwaptionCashFlows:
        """Zero-bond decomposition of the swap on `index` underlying an expiry t option."""
        expiry = self.date_from_time(t)
        start = index.value_date(expiry)
        end = DateUtils.add_tenor(start, DateUtils.years_to_tenor(swap_length))
        fixed_schedule = make_schedule(
            start, end, fixed_frequency.tenor, index.holidays,
            BusinessDayConvention.MODIFIED_FOLLOWING
        )
        float_schedule = make_schedule(start, end, index.tenor, index.holidays, index.business_day)
        swap = VanillaSwap(
            payer=True,
            nominal=1.0,
            fixed_schedule=fixed_schedule,
            fixed_rate=0.0,
            fixed_day_count=fixed_day_count,
            float_schedule=float_schedule,
            index=index,
        )
        return SwaptionCashFlows(Swaption(expiry, swap), self.discount_curve, self.cont_tenor_spread)

    def affine_map(self, t: float, swap_length: float):
        """
        Forward swap rates, annuities and the map S_t = lambda * S_b + mu.

        Returns:
            (S_b, A_b, S_t, A_t, lambda, mu)
        """
        base_cf = self.swap_cash_flows(
            t, swap_length, self.base_index, self.base_fixed_frequency, self.base_fixed_day_count
        )
        targ_cf = self.swap_cash_flows(
            t, swap_length, self.targ_index, self.targ_fixed_frequency, self.targ_fixed_day_count
        )
        base_annuity, targ_annuity = base_cf.annuity(), targ_cf.annuity()
        base_rate, targ_rate = base_cf.forward_swap_rate(), targ_cf.forward_swap_rate()
        lam = base_annuity / targ_annuity
        mu = targ_rate - lam * base_rate
        return base_rate, base_annuity, targ_rate, targ_annuity, lam, mu

    def _volatility_impl(self, t, swap_length, strike):
        base = self.base_vts.link
        base_rate, base_annuity, targ_rate, targ_annuity, lam, mu = self.affine_map(t, swap_length)
        base_strike = (strike - mu) / lam
        t_eff = max(t, _MIN_TIME)

        base_vol = base.volatility(t, swap_length, base_strike, extrapolate=True)
        base_normal = to_normal_vol(
            base_vol, base.volatility_type, base.displacement,
            base_rate, base_strike, t_eff, base_annuity
        )
        targ_normal = lam * base_normal
        logger.debug(
            "Tenor swaption map t=%.4f L=%.2f: lambda=%.6f mu=%.6e", t, swap_length, lam, mu
        )
        return from_normal_vol(
            targ_normal, self.volatility_type, self.displacement,
            targ_rate, strike, t_eff, targ_annuity
        )

    @property
    def version(self):
        return (
            self.base_vts.version,
            self.discount_curve.version,
            self.base_index.version,
            self.targ_index.version,
        )

    def dependencies(self) -> List[Any]:
        return [
            self.base_vts, self.discount_curve,
            self.base_index.forwarding_curve, self.targ_index.forwarding_curve,
        ]


__all__ = [
    "to_normal_vol",
    "from_normal_vol",
    "TenorOptionletVTS",
    "TenorSwaptionVTS",
]
