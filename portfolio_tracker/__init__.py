"""
Portfolio Tracker - Record stock holdings and value them against live quotes.

Exports:
    Holding: Dataclass representing a tracked stock position
    Quote / QuoteFailure: Result of a price lookup
    ValuationRow / ProjectionRow: Report lines
    Portfolio: Holdings keyed by symbol, with save/load support
    PortfolioReporter: Builds valuation and projection reports
    QuoteProvider: Abstract base class for price sources
    AlphaVantageQuoteProvider: Price source backed by Alpha Vantage
    annualized_growth: Compound annual growth rate
"""

from .models import Holding, Quote, QuoteFailure, ValuationRow, ProjectionRow
from .portfolio import Portfolio
from .reporter import PortfolioReporter
from .quotes import QuoteProvider, AlphaVantageQuoteProvider
from .storage import KeyValueStore, InMemoryStore, JsonFileStore
from .valuation import annualized_growth

__all__ = [
    "Holding",
    "Quote",
    "QuoteFailure",
    "ValuationRow",
    "ProjectionRow",
    "Portfolio",
    "PortfolioReporter",
    "QuoteProvider",
    "AlphaVantageQuoteProvider",
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    "annualized_growth",
]
