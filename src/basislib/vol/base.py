"""
Volatility term structures.

Optionlet structures return sigma(t, K) for a forward rate fixing at t;
swaption structures return sigma(t, L, K) for a swap of length L (years)
starting at t. Volatilities are quoted either as normal (Bachelier) or
shifted lognormal (Black with displacement) vols.

Queries past max_date, or at strikes outside [min_strike, max_strike],
raise DomainError unless extrapolation is enabled.
"""

from abc import ABC, abstractmethod
from datetime import date, timedelta
from enum import Enum
from typing import Any, List, Union

from ..conventions import DayCount, year_fraction
from ..dates import DateUtils
from ..exceptions import ConfigurationError, DomainError
from ..market.quotes import as_quote, quote_value, version_of

TimeOrDate = Union[float, date]
SwapLength = Union[float, str]


class VolatilityType(Enum):
    """Quoting convention of a volatility."""
    NORMAL = "Normal"
    SHIFTED_LOGNORMAL = "ShiftedLognormal"

    @classmethod
    def parse(cls, value: Union[str, "VolatilityType"]) -> "VolatilityType":
        if isinstance(value, cls):
            return value
        key = str(value).replace("_", "").replace(" ", "").lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        if key in ("lognormal", "black"):
            return cls.SHIFTED_LOGNORMAL
        if key == "bachelier":
            return cls.NORMAL
        raise ConfigurationError(f"Unknown volatility type: {value}")


class VolatilityTermStructure(ABC):
    """
    Common time axis, range and strike checks of volatility structures.

    Attributes:
        reference_date: Date at which t = 0
        day_count: Time axis day count
        volatility_type: Normal or shifted lognormal
        displacement: Shift of the lognormal convention
    """

    def __init__(
        self,
        reference_date: date,
        day_count: DayCount = DayCount.ACT_365,
        volatility_type: Union[str, VolatilityType] = VolatilityType.NORMAL,
        displacement: float = 0.0,
        extrapolate: bool = False
    ):
        self.reference_date = reference_date
        self.day_count = day_count
        self.volatility_type = VolatilityType.parse(volatility_type)
        self.displacement = displacement
        self._extrapolate = extrapolate

    @property
    def max_date(self) -> date:
        return date.max

    @property
    def max_time(self) -> float:
        if self.max_date == date.max:
            return float("inf")
        return self.time_from_reference(self.max_date)

    @property
    def min_strike(self) -> float:
        if self.volatility_type == VolatilityType.SHIFTED_LOGNORMAL:
            return -self.displacement
        return float("-inf")

    @property
    def max_strike(self) -> float:
        return float("inf")

    @property
    def allows_extrapolation(self) -> bool:
        return self._extrapolate

    def enable_extrapolation(self, flag: bool = True) -> None:
        self._extrapolate = flag

    def time_from_reference(self, d: date) -> float:
        return year_fraction(self.reference_date, d, self.day_count)

    def date_from_time(self, t: float) -> date:
        return self.reference_date + timedelta(days=int(round(t * 365.25)))

    def _to_time(self, t: TimeOrDate) -> float:
        if isinstance(t, date):
            return self.time_from_reference(t)
        return float(t)

    def _check_range(self, t: float, extrapolate: bool) -> None:
        if t < 0:
            raise DomainError(f"Negative time {t} given to {type(self).__name__}")
        if t > self.max_time + 1e-12 and not (extrapolate or self._extrapolate):
            raise DomainError(
                f"Date out of range: time {t:.4f} past max time {self.max_time:.4f} "
                f"({self.max_date}) of {type(self).__name__}"
            )

    def _check_strike(self, strike: float, extrapolate: bool) -> None:
        if self.volatility_type == VolatilityType.SHIFTED_LOGNORMAL and strike + self.displacement <= 0:
            raise DomainError(
                f"Strike {strike} not above -displacement {-self.displacement} for shifted lognormal vol"
            )
        if extrapolate or self._extrapolate:
            return
        if not self.min_strike <= strike <= self.max_strike:
            raise DomainError(
                f"Strike {strike} outside [{self.min_strike}, {self.max_strike}] of {type(self).__name__}"
            )

    @property
    def version(self) -> Any:
        return 0

    def dependencies(self) -> List[Any]:
        return []


class OptionletVolatilityStructure(VolatilityTermStructure):
    """Volatility of forward rate fixings (caplets, floorlets)."""

    @abstractmethod
    def _volatility_impl(self, t: float, strike: float) -> float:
        """Volatility at time t and strike, inputs already checked."""

    def volatility(self, t: TimeOrDate, strike: float, extrapolate: bool = False) -> float:
        """
        Volatility of the fixing at t for a strike.

        Args:
            t: Option time (years) or expiry date
            strike: Strike rate
            extrapolate: Allow queries past max_date or outside the strike range

        Raises:
            DomainError: Time or strike outside the structure's domain
        """
        t = self._to_time(t)
        self._check_range(t, extrapolate)
        self._check_strike(strike, extrapolate)
        return float(self._volatility_impl(t, strike))

    def variance(self, t: TimeOrDate, strike: float, extrapolate: bool = False) -> float:
        t = self._to_time(t)
        vol = self.volatility(t, strike, extrapolate)
        return vol * vol * t


class SwaptionVolatilityStructure(VolatilityTermStructure):
    """Volatility of forward swap rates by expiry and swap length."""

    @property
    def max_swap_length(self) -> float:
        return float("inf")

    @staticmethod
    def swap_length(length: SwapLength) -> float:
        """Swap length in years from a float or a tenor string."""
        if isinstance(length, str):
            return DateUtils.tenor_to_years(length)
        return float(length)

    @abstractmethod
    def _volatility_impl(self, t: float, swap_length: float, strike: float) -> float:
        """Volatility at expiry t, swap length and strike, inputs already checked."""

    def volatility(
        self,
        t: TimeOrDate,
        swap_length: SwapLength,
        strike: float,
        extrapolate: bool = False
    ) -> float:
        """
        Volatility of the forward swap rate.

        Args:
            t: Option time (years) or expiry date
            swap_length: Underlying swap length (years or tenor string)
            strike: Strike rate
            extrapolate: Allow queries outside the structure's domain

        Raises:
            DomainError: Expiry, swap length or strike outside the domain
        """
        t = self._to_time(t)
        length = self.swap_length(swap_length)
        self._check_range(t, extrapolate)
        if length <= 0:
            raise DomainError(f"Non-positive swap length {length}")
        if length > self.max_swap_length + 1e-12 and not (extrapolate or self._extrapolate):
            raise DomainError(
                f"Swap length {length} past max swap length {self.max_swap_length}"
            )
        self._check_strike(strike, extrapolate)
        return float(self._volatility_impl(t, length, strike))


class ConstantOptionletVolatility(OptionletVolatilityStructure):
    """Flat optionlet volatility (number or quote)."""

    def __init__(
        self,
        reference_date: date,
        volatility: Any,
        day_count: DayCount = DayCount.ACT_365,
        volatility_type: Union[str, VolatilityType] = VolatilityType.NORMAL,
        displacement: float = 0.0
    ):
        super().__init__(reference_date, day_count, volatility_type, displacement)
        self._volatility = as_quote(volatility)

    def _volatility_impl(self, t, strike):
        return quote_value(self._volatility)

    @property
    def version(self):
        return version_of(self._volatility)


class ConstantSwaptionVolatility(SwaptionVolatilityStructure):
    """Flat swaption volatility (number or quote)."""

    def __init__(
        self,
        reference_date: date,
        volatility: Any,
        day_count: DayCount = DayCount.ACT_365,
        volatility_type: Union[str, VolatilityType] = VolatilityType.NORMAL,
        displacement: float = 0.0
    ):
        super().__init__(reference_date, day_count, volatility_type, displacement)
        self._volatility = as_quote(volatility)

    def _volatility_impl(self, t, swap_length, strike):
        return quote_value(self._volatility)

    @property
    def version(self):
        return version_of(self._volatility)


class BlackConstantVol(VolatilityTermStructure):
    """
    Flat Black volatility of an equity or FX underlying.

    Used by QuantoTermStructure.
    """

    def __init__(self, reference_date: date, volatility: Any, day_count: DayCount = DayCount.ACT_365):
        super().__init__(reference_date, day_count, VolatilityType.SHIFTED_LOGNORMAL)
        self._volatility = as_quote(volatility)

    def black_vol(self, t: TimeOrDate, strike: float, extrapolate: bool = False) -> float:
        t = self._to_time(t)
        self._check_range(t, extrapolate)
        return quote_value(self._volatility)

    def black_variance(self, t: TimeOrDate, strike: float, extrapolate: bool = False) -> float:
        t = self._to_time(t)
        vol = self.black_vol(t, strike, extrapolate)
        return vol * vol * t

    @property
    def version(self):
        return version_of(self._volatility)


__all__ = [
    "VolatilityType",
    "VolatilityTermStructure",
    "OptionletVolatilityStructure",
    "SwaptionVolatilityStructure",
    "ConstantOptionletVolatility",
    "ConstantSwaptionVolatility",
    "BlackConstantVol",
]
