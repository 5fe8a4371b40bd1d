"""Quote provider implementations."""

from .alpha_vantage import AlphaVantageQuoteProvider
from .base import QuoteProvider

__all__ = [
    "QuoteProvider",
    "AlphaVantageQuoteProvider",
]
