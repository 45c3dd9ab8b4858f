"""
Fixed rate bond.

Features:
- Coupon schedule generation (backward from maturity)
- Accrued interest
- Clean and dirty price on a discount curve
- Yield to maturity

Conventions:
- Prices are expressed per 100 face value
- Cash flows paid on the settlement date are excluded
"""

from datetime import date
from typing import Any, List, Optional, Tuple

from scipy.optimize import brentq

from ..conventions import (
    BusinessDayConvention,
    Compounding,
    DayCount,
    Frequency,
    advance_business_days,
    compound_factor,
    year_fraction
)
from ..dates import make_schedule
from ..exceptions import ConfigurationError
from ..market.quotes import Handle
from .legs import FixedRateCoupon, Leg, fixed_leg


class FixedRateBond:
    """
    Bullet bond paying a fixed coupon.

    Attributes:
        settlement_days: Business days from trade to settlement
        face_value: Redemption amount
        issue_date: First accrual date
        maturity_date: Final payment date
        coupon_rate: Annual coupon (decimal)
        frequency: Coupon frequency
        day_count: Accrual day count
    """

    def __init__(
        self,
        settlement_days: int,
        face_value: float,
        issue_date: date,
        maturity_date: date,
        coupon_rate: float,
        frequency: Frequency = Frequency.SEMI_ANNUAL,
        day_count: DayCount = DayCount.ACT_ACT,
        business_day: BusinessDayConvention = BusinessDayConvention.UNADJUSTED,
        holidays: Optional[set] = None
    ):
        if maturity_date <= issue_date:
            raise ConfigurationError(f"Bond maturity {maturity_date} must follow issue date {issue_date}")
        self.settlement_days = settlement_days
        self.face_value = face_value
        self.issue_date = issue_date
        self.maturity_date = maturity_date
        self.coupon_rate = coupon_rate
        self.frequency = frequency
        self.day_count = day_count
        self.holidays = holidays

        self.schedule = make_schedule(
            issue_date, maturity_date, frequency.tenor, holidays, business_day
        )
        self.cashflows: Leg = fixed_leg(
            self.schedule, face_value, coupon_rate, day_count, redemption=True
        )

    def settlement_date(self, trade_date: date) -> date:
        return advance_business_days(trade_date, self.settlement_days, self.holidays)

    def accrued_amount(self, settlement: date) -> float:
        """Accrued interest per 100 face at the settlement date."""
        accrued = sum(
            cf.accrued_amount(settlement) for cf in self.cashflows if isinstance(cf, FixedRateCoupon)
        )
        return accrued * 100.0 / self.face_value

    def remaining_cashflows(self, settlement: date) -> List[Tuple[date, float]]:
        """(payment date, amount per 100 face) for flows after settlement."""
        scale = 100.0 / self.face_value
        return [
            (cf.payment_date, cf.amount() * scale)
            for cf in self.cashflows if cf.payment_date > settlement
        ]

    def dirty_price(self, discount_curve: Any, settlement: Optional[date] = None) -> float:
        """
        Dirty price per 100 face, valued at the settlement date.

        Args:
            discount_curve: Curve (or handle) for discounting
            settlement: Settlement date (default: curve reference plus settlement days)
        """
        curve = discount_curve.link if isinstance(discount_curve, Handle) else discount_curve
        settlement = settlement or self.settlement_date(curve.reference_date)
        pv = sum(amount * curve.discount(d) for d, amount in self.remaining_cashflows(settlement))
        return pv / curve.discount(settlement)

    def clean_price(self, discount_curve: Any, settlement: Optional[date] = None) -> float:
        """Clean price per 100 face."""
        curve = discount_curve.link if isinstance(discount_curve, Handle) else discount_curve
        settlement = settlement or self.settlement_date(curve.reference_date)
        return self.dirty_price(curve, settlement) - self.accrued_amount(settlement)

    def yield_to_maturity(
        self,
        clean_price: float,
        settlement: date,
        compounding: Compounding = Compounding.COMPOUNDED
    ) -> float:
        """
        Yield that reprices the bond, compounded at the coupon frequency.

        Args:
            clean_price: Market clean price per 100 face
            settlement: Settlement date
            compounding: Yield compounding convention

        Returns:
            Yield to maturity
        """
        dirty = clean_price + self.accrued_amount(settlement)
        flows = self.remaining_cashflows(settlement)

        def price_error(y: float) -> float:
            pv = 0.0
            for d, amount in flows:
                t = year_fraction(settlement, d, self.day_count)
                pv += amount / compound_factor(y, t, compounding, self.frequency)
            return pv - dirty

        return brentq(price_error, -0.5, 1.0, xtol=1e-12)

    def __repr__(self) -> str:
        return (
            f"FixedRateBond({self.coupon_rate:.4%}, {self.issue_date} -> {self.maturity_date}, "
            f"{self.frequency.name})"
        )


__all__ = ["FixedRateBond"]
