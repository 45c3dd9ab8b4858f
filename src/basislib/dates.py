"""
Date utilities for curve and leg construction.

Provides:
- Tenor parsing and date arithmetic
- Backward schedule generation for swap legs and bonds
- Business day adjustments
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Tuple
import re

from .conventions import (
    BusinessDayConvention,
    DayCount,
    adjust_business_day,
    is_business_day,
    year_fraction
)
from .exceptions import ConfigurationError


class DateUtils:
    """Utility class for date manipulation in rates contexts."""

    # Tenor regex pattern: number + unit (D/W/M/Y)
    TENOR_PATTERN = re.compile(r'^(\d+)([DWMY])$', re.IGNORECASE)

    @staticmethod
    def parse_tenor(tenor: str) -> Tuple[int, str]:
        """
        Parse a tenor string into (amount, unit).

        Args:
            tenor: Tenor string like "1D", "3M", "2Y"

        Returns:
            Tuple of (amount, unit) where unit is D/W/M/Y

        Raises:
            ConfigurationError: If tenor format is invalid
        """
        match = DateUtils.TENOR_PATTERN.match(tenor.upper().strip())
        if not match:
            raise ConfigurationError(f"Invalid tenor format: {tenor}. Expected format like '3M', '2Y'")

        return int(match.group(1)), match.group(2).upper()

    @staticmethod
    def add_tenor(
        start: date,
        tenor: str,
        holidays: Optional[set] = None,
        convention: BusinessDayConvention = BusinessDayConvention.UNADJUSTED
    ) -> date:
        """
        Add a tenor to a date.

        Day tenors count business days; week/month/year tenors are calendar
        arithmetic followed by the business day adjustment.

        Args:
            start: Starting date
            tenor: Tenor string (e.g., "1D", "3M", "2Y")
            holidays: Optional holiday calendar
            convention: Adjustment applied to the unadjusted end date

        Returns:
            End date
        """
        amount, unit = DateUtils.parse_tenor(tenor)

        if unit == 'D':
            result = start
            days_added = 0
            while days_added < amount:
                result += timedelta(days=1)
                if is_business_day(result, holidays):
                    days_added += 1
            return result

        if unit == 'W':
            result = start + timedelta(weeks=amount)
        elif unit == 'M':
            result = add_months(start, amount)
        else:
            result = add_months(start, 12 * amount)

        return adjust_business_day(result, convention, holidays)

    @staticmethod
    def tenor_to_years(tenor: str) -> float:
        """
        Convert tenor to approximate year fraction.

        Args:
            tenor: Tenor string

        Returns:
            Approximate years as float
        """
        amount, unit = DateUtils.parse_tenor(tenor)

        if unit == 'D':
            return amount / 365.0
        elif unit == 'W':
            return amount * 7 / 365.0
        elif unit == 'M':
            return amount / 12.0
        return float(amount)

    @staticmethod
    def tenor_to_months(tenor: str) -> int:
        """Whole months in a M/Y tenor."""
        amount, unit = DateUtils.parse_tenor(tenor)
        if unit == 'M':
            return amount
        if unit == 'Y':
            return 12 * amount
        raise ConfigurationError(f"Tenor {tenor} is not a whole number of months")

    @staticmethod
    def years_to_tenor(years: float) -> str:
        """Round a length in years to a month tenor string."""
        months = int(round(years * 12))
        if months <= 0:
            raise ConfigurationError(f"Swap length must be positive, got {years}")
        return f"{months}M"


@dataclass
class Schedule:
    """
    Period schedule with unadjusted and adjusted dates.

    The first date is the effective date and the last the termination date.
    """
    unadjusted: List[date]
    dates: List[date]

    def __len__(self) -> int:
        return len(self.dates)

    def periods(self) -> List[Tuple[date, date]]:
        """Consecutive (start, end) pairs of adjusted dates."""
        return list(zip(self.dates[:-1], self.dates[1:]))


def make_schedule(
    effective: date,
    termination: date,
    tenor: str,
    holidays: Optional[set] = None,
    convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
    termination_convention: Optional[BusinessDayConvention] = None
) -> Schedule:
    """
    Generate a schedule backward from the termination date.

    A short front stub is produced when the tenor does not divide the
    period exactly.

    Args:
        effective: Schedule start (accrual start)
        termination: Schedule end (maturity)
        tenor: Period length (e.g., "3M", "6M", "1Y")
        holidays: Holiday calendar
        convention: Business day adjustment for regular dates
        termination_convention: Adjustment for the termination date (defaults to convention)

    Returns:
        Schedule including both effective and termination dates
    """
    if termination <= effective:
        raise ConfigurationError(
            f"Termination {termination} must be after effective date {effective}"
        )

    months = DateUtils.tenor_to_months(tenor)
    if months <= 0:
        raise ConfigurationError("Schedule tenor must be positive")

    unadjusted = [termination]
    k = 1
    while True:
        prev_date = add_months(termination, -months * k)
        if prev_date <= effective:
            break
        unadjusted.insert(0, prev_date)
        k += 1
    unadjusted.insert(0, effective)

    end_conv = termination_convention or convention
    adjusted = [adjust_business_day(d, convention, holidays) for d in unadjusted[:-1]]
    adjusted.append(adjust_business_day(unadjusted[-1], end_conv, holidays))

    # Adjustment can collapse a tiny front stub onto the next date
    cleaned_unadj = [unadjusted[0]]
    cleaned_adj = [adjusted[0]]
    for u, a in zip(unadjusted[1:], adjusted[1:]):
        if a > cleaned_adj[-1]:
            cleaned_unadj.append(u)
            cleaned_adj.append(a)

    return Schedule(unadjusted=cleaned_unadj, dates=cleaned_adj)


def accrual_fractions(schedule: Schedule, day_count: DayCount) -> List[float]:
    """Year fraction of each schedule period."""
    return [year_fraction(s, e, day_count) for s, e in schedule.periods()]


def add_months(d: date, months: int) -> date:
    """Add calendar months, clipping the day to the month end."""
    year = d.year + (d.month + months - 1) // 12
    month = (d.month + months - 1) % 12 + 1
    day = min(d.day, _days_in_month(year, month))
    return date(year, month, day)


def _days_in_month(year: int, month: int) -> int:
    """Return number of days in a month."""
    if month in (1, 3, 5, 7, 8, 10, 12):
        return 31
    elif month in (4, 6, 9, 11):
        return 30
    elif month == 2:
        if (year % 4 == 0 and year % 100 != 0) or (year % 400 == 0):
            return 29
        return 28
    raise ValueError(f"Invalid month: {month}")


__all__ = [
    "DateUtils",
    "Schedule",
    "make_schedule",
    "accrual_fractions",
    "add_months",
]
