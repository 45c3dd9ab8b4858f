"""
Day count, compounding and business day conventions.

Supported Day Counts:
- ACT/360: Actual days / 360 (money markets, Ibor, OIS)
- ACT/365: Actual days / 365 fixed (curve time axis)
- ACT/ACT: ISDA actual/actual
- 30/360: 30 days per month / 360 (fixed legs, bonds)

Business Day Conventions:
- Modified Following: Move to next business day, unless it falls in next month (then previous)
- Following: Move to next business day
- Preceding: Move to previous business day
- Unadjusted

Compounding:
- Simple: 1 + r*t
- Compounded: (1 + r/f)^(f*t)
- Continuous: exp(r*t)
- Simple then compounded: simple up to one period, compounded beyond
"""

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional
import calendar

import numpy as np

from .exceptions import ConfigurationError, DomainError


class DayCount(Enum):
    """Day count convention enumeration."""
    ACT_360 = "ACT/360"
    ACT_365 = "ACT/365"
    ACT_ACT = "ACT/ACT"
    THIRTY_360 = "30/360"

    @classmethod
    def from_string(cls, s: str) -> "DayCount":
        """Parse day count from string representation."""
        mapping = {
            "ACT/360": cls.ACT_360,
            "ACT360": cls.ACT_360,
            "ACT/365": cls.ACT_365,
            "ACT365": cls.ACT_365,
            "ACT/365F": cls.ACT_365,
            "ACT/ACT": cls.ACT_ACT,
            "ACTACT": cls.ACT_ACT,
            "30/360": cls.THIRTY_360,
            "30360": cls.THIRTY_360,
        }
        key = s.upper().replace(" ", "")
        if key in mapping:
            return mapping[key]
        raise ConfigurationError(f"Unknown day count convention: {s}")


class BusinessDayConvention(Enum):
    """Business day adjustment convention."""
    MODIFIED_FOLLOWING = "ModifiedFollowing"
    FOLLOWING = "Following"
    PRECEDING = "Preceding"
    UNADJUSTED = "Unadjusted"


class Compounding(Enum):
    """Interest rate compounding convention."""
    SIMPLE = "Simple"
    COMPOUNDED = "Compounded"
    CONTINUOUS = "Continuous"
    SIMPLE_THEN_COMPOUNDED = "SimpleThenCompounded"


class Frequency(Enum):
    """Payments per year."""
    NO_FREQUENCY = 0
    ANNUAL = 1
    SEMI_ANNUAL = 2
    QUARTERLY = 4
    MONTHLY = 12

    @property
    def months(self) -> int:
        """Months per period."""
        if self is Frequency.NO_FREQUENCY:
            raise ConfigurationError("No period length for NO_FREQUENCY")
        return 12 // self.value

    @property
    def tenor(self) -> str:
        """Period as a tenor string, e.g. '6M'."""
        return f"{self.months}M"

    @classmethod
    def from_tenor(cls, tenor: str) -> "Frequency":
        """Frequency whose period matches a tenor string ('3M', '1Y', ...)."""
        text = tenor.upper().strip()
        months = int(text[:-1]) * 12 if text.endswith("Y") else int(text[:-1])
        for member in cls:
            if member.value and 12 // member.value == months:
                return member
        raise ConfigurationError(f"No frequency for tenor {tenor}")


@dataclass
class Conventions:
    """
    Container for leg conventions.

    Attributes:
        day_count: Day count convention for accrual
        business_day: Business day adjustment rule
        frequency: Payment frequency
        settlement_days: Days to settle from trade date
    """
    day_count: DayCount = DayCount.ACT_360
    business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING
    frequency: Frequency = Frequency.ANNUAL
    settlement_days: int = 2

    @classmethod
    def eur_fixed(cls) -> "Conventions":
        """EUR swap fixed leg conventions."""
        return cls(
            day_count=DayCount.THIRTY_360,
            business_day=BusinessDayConvention.MODIFIED_FOLLOWING,
            frequency=Frequency.ANNUAL,
            settlement_days=2
        )

    @classmethod
    def usd_fixed(cls) -> "Conventions":
        """USD swap fixed leg conventions."""
        return cls(
            day_count=DayCount.THIRTY_360,
            business_day=BusinessDayConvention.MODIFIED_FOLLOWING,
            frequency=Frequency.SEMI_ANNUAL,
            settlement_days=2
        )


def year_fraction(start: date, end: date, day_count: DayCount) -> float:
    """
    Calculate year fraction between two dates using specified day count convention.

    Args:
        start: Start date
        end: End date
        day_count: Day count convention

    Returns:
        Year fraction as float (negative if end precedes start)
    """
    if start == end:
        return 0.0
    if end < start:
        return -year_fraction(end, start, day_count)

    actual_days = (end - start).days

    if day_count == DayCount.ACT_360:
        return actual_days / 360.0

    elif day_count == DayCount.ACT_365:
        return actual_days / 365.0

    elif day_count == DayCount.ACT_ACT:
        # ISDA ACT/ACT: split by year boundaries
        if start.year == end.year:
            days_in_year = 366 if calendar.isleap(start.year) else 365
            return actual_days / days_in_year
        total = (date(start.year + 1, 1, 1) - start).days / (366 if calendar.isleap(start.year) else 365)
        total += end.year - start.year - 1
        total += (end - date(end.year, 1, 1)).days / (366 if calendar.isleap(end.year) else 365)
        return total

    elif day_count == DayCount.THIRTY_360:
        # 30/360 US convention
        d1 = min(start.day, 30)
        d2 = end.day
        if d2 == 31 and d1 == 30:
            d2 = 30
        return (360 * (end.year - start.year) + 30 * (end.month - start.month) + (d2 - d1)) / 360.0

    else:
        raise ConfigurationError(f"Unknown day count: {day_count}")


def compound_factor(
    rate: float,
    t: float,
    compounding: Compounding = Compounding.CONTINUOUS,
    frequency: Frequency = Frequency.ANNUAL
) -> float:
    """
    Growth factor of one unit invested at `rate` for time `t`.

    Args:
        rate: Interest rate (decimal)
        t: Time in years
        compounding: Compounding convention
        frequency: Compounding frequency (Compounded conventions only)

    Returns:
        Compound factor (1 / discount factor)
    """
    if t < 0:
        raise DomainError(f"Negative time {t} in compound factor")

    if compounding == Compounding.SIMPLE:
        return 1.0 + rate * t
    if compounding == Compounding.CONTINUOUS:
        return float(np.exp(rate * t))

    f = frequency.value
    if f <= 0:
        raise ConfigurationError("Compounded rates need a frequency")
    if compounding == Compounding.COMPOUNDED:
        return (1.0 + rate / f) ** (f * t)
    if compounding == Compounding.SIMPLE_THEN_COMPOUNDED:
        if t <= 1.0 / f:
            return 1.0 + rate * t
        return (1.0 + rate / f) ** (f * t)
    raise ConfigurationError(f"Unknown compounding: {compounding}")


def implied_rate(
    compound: float,
    t: float,
    compounding: Compounding = Compounding.CONTINUOUS,
    frequency: Frequency = Frequency.ANNUAL
) -> float:
    """
    Rate that grows one unit into `compound` over time `t`.

    Inverse of compound_factor.
    """
    if compound <= 0:
        raise DomainError(f"Non-positive compound factor {compound}")
    if t <= 0:
        raise DomainError(f"Implied rate needs positive time, got {t}")

    if compounding == Compounding.SIMPLE:
        return (compound - 1.0) / t
    if compounding == Compounding.CONTINUOUS:
        return float(np.log(compound) / t)

    f = frequency.value
    if f <= 0:
        raise ConfigurationError("Compounded rates need a frequency")
    if compounding == Compounding.COMPOUNDED:
        return (compound ** (1.0 / (f * t)) - 1.0) * f
    if compounding == Compounding.SIMPLE_THEN_COMPOUNDED:
        if t <= 1.0 / f:
            return (compound - 1.0) / t
        return (compound ** (1.0 / (f * t)) - 1.0) * f
    raise ConfigurationError(f"Unknown compounding: {compounding}")


def is_business_day(d: date, holidays: Optional[set] = None) -> bool:
    """
    Check if a date is a business day.

    Uses weekend-only calendar by default (Saturday/Sunday are non-business days).

    Args:
        d: Date to check
        holidays: Optional set of holiday dates

    Returns:
        True if business day, False otherwise
    """
    # Weekend check (0 = Monday, 5 = Saturday, 6 = Sunday)
    if d.weekday() >= 5:
        return False

    if holidays and d in holidays:
        return False

    return True


def adjust_business_day(
    d: date,
    convention: BusinessDayConvention,
    holidays: Optional[set] = None
) -> date:
    """
    Adjust a date according to business day convention.

    Args:
        d: Date to adjust
        convention: Business day adjustment rule
        holidays: Optional set of holiday dates

    Returns:
        Adjusted date
    """
    if convention == BusinessDayConvention.UNADJUSTED or is_business_day(d, holidays):
        return d

    if convention == BusinessDayConvention.PRECEDING:
        adjusted = d
        while not is_business_day(adjusted, holidays):
            adjusted -= timedelta(days=1)
        return adjusted

    adjusted = d
    while not is_business_day(adjusted, holidays):
        adjusted += timedelta(days=1)

    # Modified following: step back if we crossed into the next month
    if convention == BusinessDayConvention.MODIFIED_FOLLOWING and adjusted.month != d.month:
        adjusted = d
        while not is_business_day(adjusted, holidays):
            adjusted -= timedelta(days=1)

    return adjusted


def advance_business_days(d: date, days: int, holidays: Optional[set] = None) -> date:
    """Move `days` business days forward (or backward if negative)."""
    step = timedelta(days=1 if days >= 0 else -1)
    result = d
    remaining = abs(days)
    while remaining > 0:
        result += step
        if is_business_day(result, holidays):
            remaining -= 1
    return result


__all__ = [
    "DayCount",
    "BusinessDayConvention",
    "Compounding",
    "Frequency",
    "Conventions",
    "year_fraction",
    "compound_factor",
    "implied_rate",
    "is_business_day",
    "adjust_business_day",
    "advance_business_days",
]
