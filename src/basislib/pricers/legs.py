"""
Swap and bond legs.

A leg is a list of cash flows:
- SimpleCashFlow: a known amount (notional exchanges, bond redemptions)
- FixedRateCoupon: nominal * rate * accrual
- IborCoupon: nominal * (gearing * forward + spread) * accrual, where the
  forward is projected from the index's forwarding curve over the accrual
  period

Leg values are discounted on a single curve in the leg's own currency:

    NPV = sum_i amount_i * DF(pay_i) / DF(npv_date)
    BPS = sum_coupons nominal_i * tau_i * DF(pay_i) / DF(npv_date) * 1bp
"""

from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from typing import Any, List, Optional, Sequence, Union

import pandas as pd

from ..conventions import DayCount, year_fraction
from ..dates import Schedule
from ..exceptions import ConfigurationError
from ..indexes import IborIndex
from ..market.quotes import Handle

BASIS_POINT = 1.0e-4


@dataclass
class SimpleCashFlow:
    """Known amount paid on a date."""
    payment_date: date
    amount_value: float

    def amount(self) -> float:
        return self.amount_value


@dataclass
class FixedRateCoupon:
    """Fixed rate coupon."""
    payment_date: date
    nominal: float
    rate: float
    accrual_start: date
    accrual_end: date
    day_count: DayCount = DayCount.THIRTY_360

    @property
    def accrual_period(self) -> float:
        return year_fraction(self.accrual_start, self.accrual_end, self.day_count)

    def coupon_rate(self) -> float:
        return self.rate

    def amount(self) -> float:
        return self.nominal * self.rate * self.accrual_period

    def accrued_amount(self, d: date) -> float:
        """Accrued interest at date d."""
        if d <= self.accrual_start or d >= self.payment_date:
            return 0.0
        end = min(d, self.accrual_end)
        return self.nominal * self.rate * year_fraction(self.accrual_start, end, self.day_count)


@dataclass
class IborCoupon:
    """Floating coupon on an Ibor index, projected over its accrual period."""
    payment_date: date
    nominal: float
    accrual_start: date
    accrual_end: date
    index: IborIndex
    spread: float = 0.0
    gearing: float = 1.0
    day_count: Optional[DayCount] = None

    @property
    def accrual_period(self) -> float:
        return year_fraction(self.accrual_start, self.accrual_end, self.day_count or self.index.day_count)

    @property
    def fixing_date(self) -> date:
        return self.index.fixing_date(self.accrual_start)

    def index_fixing(self) -> float:
        curve = self.index.forwarding_curve.link
        if self.fixing_date < curve.reference_date:
            return self.index.fixing(self.fixing_date)
        return self.index.forward_rate(self.accrual_start, self.accrual_end)

    def coupon_rate(self) -> float:
        return self.gearing * self.index_fixing() + self.spread

    def amount(self) -> float:
        return self.nominal * self.coupon_rate() * self.accrual_period


CashFlow = Union[SimpleCashFlow, FixedRateCoupon, IborCoupon]
Leg = List[CashFlow]


def _nominals(nominal: Union[float, Sequence[float]], n: int) -> List[float]:
    if isinstance(nominal, (int, float)):
        return [float(nominal)] * n
    nominals = [float(x) for x in nominal]
    if len(nominals) != n:
        raise ConfigurationError(f"Expected {n} nominals, got {len(nominals)}")
    return nominals


def _notional_exchanges(schedule: Schedule, nominals: List[float]) -> List[SimpleCashFlow]:
    """Pay each period's nominal at its start and receive it back at its end, netted by date."""
    flows: "OrderedDict[date, float]" = OrderedDict()
    for (start, end), n in zip(schedule.periods(), nominals):
        flows[start] = flows.get(start, 0.0) - n
        flows[end] = flows.get(end, 0.0) + n
    return [SimpleCashFlow(d, a) for d, a in flows.items() if a != 0.0]


def fixed_leg(
    schedule: Schedule,
    nominal: Union[float, Sequence[float]],
    rate: float,
    day_count: DayCount = DayCount.THIRTY_360,
    redemption: bool = False
) -> Leg:
    """
    Build a fixed rate leg.

    Args:
        schedule: Accrual schedule (payments at period ends)
        nominal: Nominal, or one nominal per period
        rate: Coupon rate
        day_count: Accrual day count
        redemption: Append the final nominal as a redemption flow

    Returns:
        List of coupons (and redemption)
    """
    periods = schedule.periods()
    nominals = _nominals(nominal, len(periods))
    leg: Leg = [
        FixedRateCoupon(end, n, rate, start, end, day_count)
        for (start, end), n in zip(periods, nominals)
    ]
    if redemption:
        leg.append(SimpleCashFlow(periods[-1][1], nominals[-1]))
    return leg


def ibor_leg(
    schedule: Schedule,
    index: IborIndex,
    nominal: Union[float, Sequence[float]],
    spread: float = 0.0,
    gearing: float = 1.0,
    day_count: Optional[DayCount] = None,
    notional_exchange: bool = False
) -> Leg:
    """
    Build a floating leg on an Ibor index.

    Args:
        schedule: Accrual schedule (payments at period ends)
        index: Index projecting the coupons
        nominal: Nominal, or one nominal per period (FX-reset legs)
        spread: Spread over the index fixing
        gearing: Multiplier on the index fixing
        day_count: Accrual day count (defaults to the index's)
        notional_exchange: Add nominal exchanges at the start and end of
            each period, netted on shared dates

    Returns:
        List of coupons followed by any nominal exchanges
    """
    periods = schedule.periods()
    nominals = _nominals(nominal, len(periods))
    leg: Leg = [
        IborCoupon(end, n, start, end, index, spread, gearing, day_count)
        for (start, end), n in zip(periods, nominals)
    ]
    if notional_exchange:
        leg.extend(_notional_exchanges(schedule, nominals))
    return leg


def _curve(curve: Any):
    return curve.link if isinstance(curve, Handle) else curve


def _included(
    payment_date: date,
    settlement_date: date,
    include_settlement_date_flows: bool
) -> bool:
    if payment_date > settlement_date:
        return True
    return include_settlement_date_flows and payment_date == settlement_date


def leg_npv(
    leg: Leg,
    discount_curve: Any,
    include_settlement_date_flows: bool = True,
    settlement_date: Optional[date] = None,
    npv_date: Optional[date] = None
) -> float:
    """
    Present value of a leg.

    Args:
        leg: Cash flows
        discount_curve: Curve (or handle) in the leg currency
        include_settlement_date_flows: Count flows paid on the settlement date
        settlement_date: Flows on or before this date are ignored (default: curve reference)
        npv_date: Date the value is expressed at (default: curve reference)

    Returns:
        Leg NPV
    """
    curve = _curve(discount_curve)
    settlement_date = settlement_date or curve.reference_date
    npv_date = npv_date or curve.reference_date
    total = 0.0
    for cf in leg:
        if _included(cf.payment_date, settlement_date, include_settlement_date_flows):
            total += cf.amount() * curve.discount(cf.payment_date)
    return total / curve.discount(npv_date)


def leg_bps(
    leg: Leg,
    discount_curve: Any,
    include_settlement_date_flows: bool = True,
    settlement_date: Optional[date] = None,
    npv_date: Optional[date] = None
) -> float:
    """Change in leg NPV for a one basis point change in coupon rate or spread."""
    curve = _curve(discount_curve)
    settlement_date = settlement_date or curve.reference_date
    npv_date = npv_date or curve.reference_date
    total = 0.0
    for cf in leg:
        if isinstance(cf, SimpleCashFlow):
            continue
        if _included(cf.payment_date, settlement_date, include_settlement_date_flows):
            total += cf.nominal * cf.accrual_period * curve.discount(cf.payment_date)
    return total * BASIS_POINT / curve.discount(npv_date)


def leg_table(leg: Leg, discount_curve: Any) -> pd.DataFrame:
    """Cash flow table with projected rates, discount factors and PVs."""
    curve = _curve(discount_curve)
    rows = []
    for cf in leg:
        df = curve.discount(cf.payment_date) if cf.payment_date >= curve.reference_date else float("nan")
        row = {
            "payment_date": cf.payment_date,
            "type": type(cf).__name__,
            "nominal": getattr(cf, "nominal", None),
            "accrual_start": getattr(cf, "accrual_start", None),
            "accrual_end": getattr(cf, "accrual_end", None),
            "rate": cf.coupon_rate() if hasattr(cf, "coupon_rate") else None,
            "amount": cf.amount(),
            "discount": df,
        }
        row["pv"] = row["amount"] * df
        rows.append(row)
    return pd.DataFrame(rows)


__all__ = [
    "BASIS_POINT",
    "SimpleCashFlow",
    "FixedRateCoupon",
    "IborCoupon",
    "CashFlow",
    "Leg",
    "fixed_leg",
    "ibor_leg",
    "leg_npv",
    "leg_bps",
    "leg_table",
]
