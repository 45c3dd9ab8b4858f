"""
Volatility package - optionlet and swaption volatility structures.

Provides:
- Constant and SABR optionlet/swaption volatility structures
- Correlation structures between forward rates of different fixing times
- Tenor basis transforms mapping vols between index tenors
"""

from .base import (
    VolatilityType,
    VolatilityTermStructure,
    OptionletVolatilityStructure,
    SwaptionVolatilityStructure,
    ConstantOptionletVolatility,
    ConstantSwaptionVolatility,
    BlackConstantVol,
)
from .sabr import SabrParams, SabrModel, hagan_black_vol
from .sabr_surface import SabrOptionletVolatility, SabrSwaptionVolatility, make_bucket_key
from .correlation import (
    CorrelationKind,
    CorrelationStructure,
    TwoParameterCorrelation,
    ConstantCorrelation,
    create_correlation,
)
from .tenor import TenorOptionletVTS, TenorSwaptionVTS, to_normal_vol, from_normal_vol

__all__ = [
    "VolatilityType",
    "VolatilityTermStructure",
    "OptionletVolatilityStructure",
    "SwaptionVolatilityStructure",
    "ConstantOptionletVolatility",
    "ConstantSwaptionVolatility",
    "BlackConstantVol",
    "SabrParams",
    "SabrModel",
    "hagan_black_vol",
    "SabrOptionletVolatility",
    "SabrSwaptionVolatility",
    "make_bucket_key",
    "CorrelationKind",
    "CorrelationStructure",
    "TwoParameterCorrelation",
    "ConstantCorrelation",
    "create_correlation",
    "TenorOptionletVTS",
    "TenorSwaptionVTS",
    "to_normal_vol",
    "from_normal_vol",
]
