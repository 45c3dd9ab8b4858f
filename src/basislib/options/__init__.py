"""
Options package - Bachelier and Black'76 pricing formulae.
"""

from .base_models import (
    bachelier_call,
    bachelier_put,
    black76_call,
    black76_put,
    implied_vol_bachelier,
    implied_vol_black,
)

__all__ = [
    "bachelier_call",
    "bachelier_put",
    "black76_call",
    "black76_put",
    "implied_vol_bachelier",
    "implied_vol_black",
]
