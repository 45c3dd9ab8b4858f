"""
Curves package - yield term structures, bootstrapping and fitting.

Provides:
- InterpolatedYieldCurve and its DiscountCurve/ZeroCurve/ForwardCurve builders
- FlatForward and composite curves (spreads, implied, quanto)
- Rate helpers, including tenor basis, cross-currency and FX forward helpers
- PiecewiseYieldCurve: lazily bootstrapped curve
- FittedBondDiscountCurve: parametric fit to bond prices
"""

from .base import YieldTermStructure
from .interpolation import (
    Interpolator,
    BackwardFlatInterpolator,
    ForwardFlatInterpolator,
    LinearInterpolator,
    CubicScheme,
    CubicInterpolator,
    LogInterpolator,
    InterpolatorKind,
    create_interpolator,
)
from .traits import (
    TraitKind,
    Traits,
    DiscountTraits,
    ZeroYieldTraits,
    ForwardRateTraits,
    get_traits,
)
from .interpolated import InterpolatedYieldCurve, DiscountCurve, ZeroCurve, ForwardCurve
from .flat import FlatForward
from .composite import (
    SpreadYTS,
    ForwardSpreadedTermStructure,
    ImpliedTermStructure,
    QuantoTermStructure,
)
from .helpers import (
    RateHelper,
    DepositRateHelper,
    FraRateHelper,
    SwapRateHelper,
    FixedRateBondHelper,
)
from .basis_helpers import BasisSwapRateHelper, TenorSwapRateHelper, XCCYSwapRateHelper
from .fx_helpers import FxBootstrapType, FxFwdRateHelper
from .solver import BootstrapConfig, find_bracket, solve_pillar
from .bootstrap import IterativeBootstrap, PiecewiseYieldCurve, sort_helpers
from .optimization import (
    EndCriteria,
    OptimizationResult,
    OptimizationMethod,
    Simplex,
    LevenbergMarquardt,
    BFGS,
    create_optimizer,
)
from .fitted import (
    FittingMethod,
    ExponentialSplinesFitting,
    SimplePolynomialFitting,
    NelsonSiegelFitting,
    SvenssonFitting,
    CubicBSplinesFitting,
    create_fitting_method,
    FittedBondDiscountCurve,
)

__all__ = [
    "YieldTermStructure",
    "Interpolator",
    "BackwardFlatInterpolator",
    "ForwardFlatInterpolator",
    "LinearInterpolator",
    "CubicScheme",
    "CubicInterpolator",
    "LogInterpolator",
    "InterpolatorKind",
    "create_interpolator",
    "TraitKind",
    "Traits",
    "DiscountTraits",
    "ZeroYieldTraits",
    "ForwardRateTraits",
    "get_traits",
    "InterpolatedYieldCurve",
    "DiscountCurve",
    "ZeroCurve",
    "ForwardCurve",
    "FlatForward",
    "SpreadYTS",
    "ForwardSpreadedTermStructure",
    "ImpliedTermStructure",
    "QuantoTermStructure",
    "RateHelper",
    "DepositRateHelper",
    "FraRateHelper",
    "SwapRateHelper",
    "FixedRateBondHelper",
    "BasisSwapRateHelper",
    "TenorSwapRateHelper",
    "XCCYSwapRateHelper",
    "FxBootstrapType",
    "FxFwdRateHelper",
    "BootstrapConfig",
    "find_bracket",
    "solve_pillar",
    "IterativeBootstrap",
    "PiecewiseYieldCurve",
    "sort_helpers",
    "EndCriteria",
    "OptimizationResult",
    "OptimizationMethod",
    "Simplex",
    "LevenbergMarquardt",
    "BFGS",
    "create_optimizer",
    "FittingMethod",
    "ExponentialSplinesFitting",
    "SimplePolynomialFitting",
    "NelsonSiegelFitting",
    "SvenssonFitting",
    "CubicBSplinesFitting",
    "create_fitting_method",
    "FittedBondDiscountCurve",
]
