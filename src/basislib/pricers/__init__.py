"""
Pricers package - legs, swaps, bonds and swaptions.
"""

from .legs import (
    BASIS_POINT,
    SimpleCashFlow,
    FixedRateCoupon,
    IborCoupon,
    fixed_leg,
    ibor_leg,
    leg_npv,
    leg_bps,
    leg_table,
)
from .swaps import VanillaSwap, BasisSwap, BasisSwapEngine, BasisSwapResults
from .bonds import FixedRateBond
from .swaption import Swaption, SwaptionCashFlows

__all__ = [
    "BASIS_POINT",
    "SimpleCashFlow",
    "FixedRateCoupon",
    "IborCoupon",
    "fixed_leg",
    "ibor_leg",
    "leg_npv",
    "leg_bps",
    "leg_table",
    "VanillaSwap",
    "BasisSwap",
    "BasisSwapEngine",
    "BasisSwapResults",
    "FixedRateBond",
    "Swaption",
    "SwaptionCashFlows",
]
