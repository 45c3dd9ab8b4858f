"""
SABR volatility structures.

- SabrOptionletVolatility: one SabrParams per expiry, parameters linearly
  interpolated in expiry and held flat outside the quoted expiries
- SabrSwaptionVolatility: bucketed SabrParams per (expiry, swap tenor),
  nearest bucket used when the exact bucket is missing

Both need the forward the smile is centred on. It is either a constant,
a callable, or (for optionlets) an IborIndex whose projected fixing at the
option date is used.
"""

from datetime import date
from typing import Callable, Dict, Optional, Sequence, Tuple, Union

import numpy as np

from ..conventions import DayCount
from ..dates import DateUtils
from ..exceptions import ConfigurationError
from ..indexes import IborIndex
from .base import (
    OptionletVolatilityStructure,
    SwaptionVolatilityStructure,
    VolatilityType
)
from .sabr import SabrModel, SabrParams

BucketKey = Tuple[str, str]


def make_bucket_key(expiry: str, tenor: str) -> BucketKey:
    """Normalise a SABR bucket key to uppercase strings."""
    return (str(expiry).upper(), str(tenor).upper())


def _expiry_time(expiry: Union[str, float]) -> float:
    if isinstance(expiry, str):
        return DateUtils.tenor_to_years(expiry)
    return float(expiry)


class SabrOptionletVolatility(OptionletVolatilityStructure):
    """
    Optionlet smiles from per-expiry SABR parameters.

    Args:
        reference_date: Reference date
        expiries: Option expiries (years or tenor strings), increasing
        params: SabrParams per expiry
        forward: Constant forward, callable of time, or IborIndex
        day_count: Time axis day count
        volatility_type: Convention of the returned vols
    """

    def __init__(
        self,
        reference_date: date,
        expiries: Sequence[Union[str, float]],
        params: Sequence[SabrParams],
        forward: Union[float, Callable[[float], float], IborIndex],
        day_count: DayCount = DayCount.ACT_365,
        volatility_type: Union[str, VolatilityType] = VolatilityType.NORMAL
    ):
        if len(expiries) != len(params) or not params:
            raise ConfigurationError(
                f"Need one SABR parameter set per expiry, got {len(params)} for {len(expiries)}"
            )
        times = np.array([_expiry_time(e) for e in expiries])
        if np.any(np.diff(times) <= 0):
            raise ConfigurationError("SABR expiries must be strictly increasing")
        shifts = {p.shift for p in params}
        if len(shifts) > 1:
            raise ConfigurationError("All SABR expiries must share one shift")
        super().__init__(reference_date, day_count, volatility_type, shifts.pop())
        self.expiry_times = times
        self.params = list(params)
        self.forward = forward
        self.model = SabrModel()

    def forward_at(self, t: float) -> float:
        if isinstance(self.forward, IborIndex):
            return self.forward.forecast_fixing(self.date_from_time(t))
        if callable(self.forward):
            return float(self.forward(t))
        return float(self.forward)

    def params_at(self, t: float) -> SabrParams:
        """Parameters interpolated linearly in expiry, flat outside."""
        times = self.expiry_times
        if len(times) == 1 or t <= times[0]:
            return self.params[0]
        if t >= times[-1]:
            return self.params[-1]
        i = int(np.searchsorted(times, t)) - 1
        w = (t - times[i]) / (times[i + 1] - times[i])
        lo, hi = self.params[i], self.params[i + 1]
        return SabrParams(
            sigma_atm=(1 - w) * lo.sigma_atm + w * hi.sigma_atm,
            beta=(1 - w) * lo.beta + w * hi.beta,
            rho=(1 - w) * lo.rho + w * hi.rho,
            nu=(1 - w) * lo.nu + w * hi.nu,
            shift=lo.shift,
        )

    def _volatility_impl(self, t, strike):
        t = max(t, 1e-8)
        F = self.forward_at(t)
        params = self.params_at(t)
        if self.volatility_type == VolatilityType.NORMAL:
            return self.model.implied_vol_normal(F, strike, t, params)
        return self.model.implied_vol_black(F, strike, t, params)

    @property
    def version(self):
        if isinstance(self.forward, IborIndex):
            return self.forward.version
        return 0


class SabrSwaptionVolatility(SwaptionVolatilityStructure):
    """
    Swaption smiles from bucketed SABR parameters.

    Args:
        reference_date: Reference date
        params_by_bucket: {(expiry tenor, swap tenor): SabrParams}
        forward: Constant forward or callable (t, swap_length) -> forward swap rate
        day_count: Time axis day count
        volatility_type: Convention of the returned vols
    """

    def __init__(
        self,
        reference_date: date,
        params_by_bucket: Dict[Tuple[str, str], SabrParams],
        forward: Union[float, Callable[[float, float], float]],
        day_count: DayCount = DayCount.ACT_365,
        volatility_type: Union[str, VolatilityType] = VolatilityType.NORMAL
    ):
        if not params_by_bucket:
            raise ConfigurationError("Need at least one SABR bucket")
        shifts = {p.shift for p in params_by_bucket.values()}
        if len(shifts) > 1:
            raise ConfigurationError("All SABR buckets must share one shift")
        super().__init__(reference_date, day_count, volatility_type, shifts.pop())
        self.params_by_bucket = {
            make_bucket_key(*key): params for key, params in params_by_bucket.items()
        }
        self._bucket_times = {
            key: (DateUtils.tenor_to_years(key[0]), DateUtils.tenor_to_years(key[1]))
            for key in self.params_by_bucket
        }
        self.forward = forward
        self.model = SabrModel()

    def bucket_params(self, t: float, swap_length: float) -> SabrParams:
        """Parameters of the bucket nearest to (t, swap_length) in years."""
        best_key: Optional[BucketKey] = None
        best_dist = float("inf")
        for key, (expiry, tenor) in self._bucket_times.items():
            dist = np.hypot(expiry - t, tenor - swap_length)
            if dist < best_dist:
                best_dist = dist
                best_key = key
        return self.params_by_bucket[best_key]

    def forward_at(self, t: float, swap_length: float) -> float:
        if callable(self.forward):
            return float(self.forward(t, swap_length))
        return float(self.forward)

    def _volatility_impl(self, t, swap_length, strike):
        t = max(t, 1e-8)
        F = self.forward_at(t, swap_length)
        params = self.bucket_params(t, swap_length)
        if self.volatility_type == VolatilityType.NORMAL:
            return self.model.implied_vol_normal(F, strike, t, params)
        return self.model.implied_vol_black(F, strike, t, params)


__all__ = [
    "BucketKey",
    "make_bucket_key",
    "SabrOptionletVolatility",
    "SabrSwaptionVolatility",
]
