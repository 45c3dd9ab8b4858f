"""
Market package - quotes, handles and the curve dependency graph.
"""

from .quotes import (
    SimpleQuote,
    Handle,
    RelinkableHandle,
    LazyObject,
    as_quote,
    as_handle,
    quote_value,
    version_of,
    market_epoch,
)
from .graph import CurveGraph

__all__ = [
    "SimpleQuote",
    "Handle",
    "RelinkableHandle",
    "LazyObject",
    "as_quote",
    "as_handle",
    "quote_value",
    "version_of",
    "market_epoch",
    "CurveGraph",
]
