"""
BasisLib: multi-curve yield curve and tenor basis volatility library.

A modular library for:
- Interpolated yield curves over a (trait x interpolator) matrix
- Bootstrapping curves from deposit, FRA, swap, tenor basis, cross-currency
  basis, FX forward and bond quotes, with external curve dependencies
- Fitting parametric discount curves to bond prices
- Composing curves (spreads, implied, quanto)
- Mapping optionlet and swaption volatilities between index tenors

Market data is versioned: curves rebuild lazily when an input quote or an
upstream curve changes.
"""

__version__ = "0.1.0"

# Core modules
from .conventions import (
    DayCount,
    BusinessDayConvention,
    Compounding,
    Frequency,
    Conventions,
    year_fraction,
)
from .dates import DateUtils, Schedule, make_schedule
from .exceptions import BasisLibError, ConfigurationError, ConvergenceError, DomainError

# Market data
from .market import SimpleQuote, Handle, RelinkableHandle, LazyObject, CurveGraph

# Indexes
from .indexes import IborIndex

# Curves
from .curves import (
    YieldTermStructure,
    InterpolatedYieldCurve,
    DiscountCurve,
    ZeroCurve,
    ForwardCurve,
    FlatForward,
    SpreadYTS,
    ForwardSpreadedTermStructure,
    ImpliedTermStructure,
    QuantoTermStructure,
    InterpolatorKind,
    TraitKind,
    DepositRateHelper,
    FraRateHelper,
    SwapRateHelper,
    FixedRateBondHelper,
    TenorSwapRateHelper,
    XCCYSwapRateHelper,
    FxBootstrapType,
    FxFwdRateHelper,
    BootstrapConfig,
    PiecewiseYieldCurve,
    FittedBondDiscountCurve,
)

# Pricers
from .pricers import (
    FixedRateBond,
    VanillaSwap,
    BasisSwap,
    BasisSwapEngine,
    Swaption,
    SwaptionCashFlows,
)

# Volatility
from .vol import (
    VolatilityType,
    ConstantOptionletVolatility,
    ConstantSwaptionVolatility,
    BlackConstantVol,
    SabrOptionletVolatility,
    SabrSwaptionVolatility,
    TwoParameterCorrelation,
    ConstantCorrelation,
    create_correlation,
    TenorOptionletVTS,
    TenorSwaptionVTS,
)

__all__ = [
    "__version__",
    # Core
    "DayCount",
    "BusinessDayConvention",
    "Compounding",
    "Frequency",
    "Conventions",
    "year_fraction",
    "DateUtils",
    "Schedule",
    "make_schedule",
    "BasisLibError",
    "ConfigurationError",
    "ConvergenceError",
    "DomainError",
    # Market
    "SimpleQuote",
    "Handle",
    "RelinkableHandle",
    "LazyObject",
    "CurveGraph",
    "IborIndex",
    # Curves
    "YieldTermStructure",
    "InterpolatedYieldCurve",
    "DiscountCurve",
    "ZeroCurve",
    "ForwardCurve",
    "FlatForward",
    "SpreadYTS",
    "ForwardSpreadedTermStructure",
    "ImpliedTermStructure",
    "QuantoTermStructure",
    "InterpolatorKind",
    "TraitKind",
    "DepositRateHelper",
    "FraRateHelper",
    "SwapRateHelper",
    "FixedRateBondHelper",
    "TenorSwapRateHelper",
    "XCCYSwapRateHelper",
    "FxBootstrapType",
    "FxFwdRateHelper",
    "BootstrapConfig",
    "PiecewiseYieldCurve",
    "FittedBondDiscountCurve",
    # Pricers
    "FixedRateBond",
    "VanillaSwap",
    "BasisSwap",
    "BasisSwapEngine",
    "Swaption",
    "SwaptionCashFlows",
    # Volatility
    "VolatilityType",
    "ConstantOptionletVolatility",
    "ConstantSwaptionVolatility",
    "BlackConstantVol",
    "SabrOptionletVolatility",
    "SabrSwaptionVolatility",
    "TwoParameterCorrelation",
    "ConstantCorrelation",
    "create_correlation",
    "TenorOptionletVTS",
    "TenorSwaptionVTS",
]
