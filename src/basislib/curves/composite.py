"""
Curves composed analytically from other curves.

- SpreadYTS: D(t) = D_base(t) * (D_spread(t) / D_base(t))^alpha
- ForwardSpreadedTermStructure: base curve with a continuously compounded
  spread added to every forward
- ImpliedTermStructure: base curve seen from a later reference date
- QuantoTermStructure: quanto-adjusted dividend yield curve

No solving happens here. Inputs are handles, so composed curves follow
relinks and rebuilds of the curves they wrap.
"""

from datetime import date
from typing import Any, List, Union

import numpy as np

from ..conventions import DayCount
from ..exceptions import ConfigurationError
from ..market.quotes import Handle, as_handle, as_quote, quote_value, version_of
from .base import YieldTermStructure


def _link(handle: Handle, role: str) -> YieldTermStructure:
    if handle.empty:
        raise ConfigurationError(f"Missing external curve: {role} handle is empty")
    return handle.link


class SpreadYTS(YieldTermStructure):
    """
    Power-weighted blend of a base curve and a spread curve.

    alpha = 0 returns the base curve, alpha = 1 returns the spread curve
    (the base with the full continuously compounded spread applied).

    Args:
        base: Base curve or handle
        spread: Spread curve or handle
        alpha: Blend exponent (float or quote)
    """

    def __init__(self, base: Any, spread: Any, alpha: Union[float, Any] = 1.0):
        self._base = as_handle(base)
        self._spread = as_handle(spread)
        self._alpha = as_quote(alpha)
        base_curve = _link(self._base, "base")
        spread_curve = _link(self._spread, "spread")
        self._check_compatible(base_curve, spread_curve)
        super().__init__(base_curve.reference_date, base_curve.day_count)

    @staticmethod
    def _check_compatible(base_curve, spread_curve) -> None:
        if base_curve.reference_date != spread_curve.reference_date:
            raise ConfigurationError(
                f"Reference-date mismatch: base curve {base_curve.reference_date} "
                f"vs spread curve {spread_curve.reference_date}"
            )
        # both curves are read at the same time value
        if base_curve.day_count != spread_curve.day_count:
            raise ConfigurationError(
                f"Day-count mismatch: base curve {base_curve.day_count} "
                f"vs spread curve {spread_curve.day_count}"
            )

    @property
    def alpha(self) -> float:
        return quote_value(self._alpha)

    @property
    def max_date(self) -> date:
        return min(_link(self._base, "base").max_date, _link(self._spread, "spread").max_date)

    def _discount_impl(self, t: float) -> float:
        base_curve = _link(self._base, "base")
        spread_curve = _link(self._spread, "spread")
        self._check_compatible(base_curve, spread_curve)
        d_base = base_curve.discount(t, extrapolate=True)
        d_spread = spread_curve.discount(t, extrapolate=True)
        return d_base * (d_spread / d_base) ** self.alpha

    @property
    def version(self) -> Any:
        return (self._base.version, self._spread.version, version_of(self._alpha))

    def dependencies(self) -> List[Any]:
        return [self._base, self._spread]


class ForwardSpreadedTermStructure(YieldTermStructure):
    """Base curve with a continuously compounded spread: D(t) = D_base(t) * exp(-s * t)."""

    def __init__(self, base: Any, spread: Union[float, Any]):
        self._base = as_handle(base)
        self._spread = as_quote(spread)
        base_curve = _link(self._base, "base")
        super().__init__(base_curve.reference_date, base_curve.day_count)

    @property
    def spread(self) -> float:
        return quote_value(self._spread)

    @property
    def max_date(self) -> date:
        return _link(self._base, "base").max_date

    def _discount_impl(self, t: float) -> float:
        d_base = _link(self._base, "base").discount(t, extrapolate=True)
        return float(d_base * np.exp(-self.spread * t))

    @property
    def version(self) -> Any:
        return (self._base.version, version_of(self._spread))

    def dependencies(self) -> List[Any]:
        return [self._base]


class ImpliedTermStructure(YieldTermStructure):
    """
    Base curve re-anchored at a later date.

    D(t) = D_base(t0 + t) / D_base(t0), where t0 is the new reference date
    on the base curve's time axis.
    """

    def __init__(self, base: Any, reference_date: date):
        self._base = as_handle(base)
        base_curve = _link(self._base, "base")
        if reference_date < base_curve.reference_date:
            raise ConfigurationError(
                f"Implied reference date {reference_date} precedes base reference "
                f"date {base_curve.reference_date}"
            )
        super().__init__(reference_date, base_curve.day_count)

    @property
    def max_date(self) -> date:
        return _link(self._base, "base").max_date

    def _discount_impl(self, t: float) -> float:
        base_curve = _link(self._base, "base")
        t0 = base_curve.time_from_reference(self.reference_date)
        return base_curve.discount(t0 + t, extrapolate=True) / base_curve.discount(t0, extrapolate=True)

    @property
    def version(self) -> Any:
        return self._base.version

    def dependencies(self) -> List[Any]:
        return [self._base]


class QuantoTermStructure(YieldTermStructure):
    """
    Quanto-adjusted dividend yield curve.

    The adjusted zero rate is

        z(t) = z_div(t) + z_r(t) - z_f(t) + rho * sigma_S(t, K) * sigma_X(t, X)

    where sigma_S is the underlying's Black vol at the strike and sigma_X
    the FX Black vol at the exchange rate ATM level.
    """

    def __init__(
        self,
        dividend: Any,
        risk_free: Any,
        foreign_risk_free: Any,
        underlying_vol: Any,
        strike: float,
        fx_vol: Any,
        fx_atm_level: float,
        correlation: Union[float, Any],
        day_count: DayCount = None
    ):
        self._dividend = as_handle(dividend)
        self._risk_free = as_handle(risk_free)
        self._foreign = as_handle(foreign_risk_free)
        self._underlying_vol = as_handle(underlying_vol)
        self._fx_vol = as_handle(fx_vol)
        self.strike = strike
        self.fx_atm_level = fx_atm_level
        self._correlation = as_quote(correlation)

        div_curve = _link(self._dividend, "dividend")
        for handle, role in ((self._risk_free, "risk-free"), (self._foreign, "foreign risk-free")):
            curve = _link(handle, role)
            if curve.reference_date != div_curve.reference_date:
                raise ConfigurationError(
                    f"Reference-date mismatch: {role} curve {curve.reference_date} "
                    f"vs dividend curve {div_curve.reference_date}"
                )
        super().__init__(div_curve.reference_date, day_count or div_curve.day_count)

    @property
    def max_date(self) -> date:
        return min(
            _link(self._dividend, "dividend").max_date,
            _link(self._risk_free, "risk-free").max_date,
            _link(self._foreign, "foreign risk-free").max_date,
        )

    def _discount_impl(self, t: float) -> float:
        z_div = _link(self._dividend, "dividend").zero_rate(t, extrapolate=True)
        z_r = _link(self._risk_free, "risk-free").zero_rate(t, extrapolate=True)
        z_f = _link(self._foreign, "foreign risk-free").zero_rate(t, extrapolate=True)
        sigma_s = self._underlying_vol.link.black_vol(t, self.strike)
        sigma_x = self._fx_vol.link.black_vol(t, self.fx_atm_level)
        rho = quote_value(self._correlation)
        z = z_div + z_r - z_f + rho * sigma_s * sigma_x
        return float(np.exp(-z * t))

    @property
    def version(self) -> Any:
        return (
            self._dividend.version, self._risk_free.version, self._foreign.version,
            self._underlying_vol.version, self._fx_vol.version, version_of(self._correlation),
        )

    def dependencies(self) -> List[Any]:
        return [self._dividend, self._risk_free, self._foreign]


__all__ = [
    "SpreadYTS",
    "ForwardSpreadedTermStructure",
    "ImpliedTermStructure",
    "QuantoTermStructure",
]
