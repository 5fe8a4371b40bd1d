"""Abstract base class for quote providers."""

from abc import ABC, abstractmethod

from ..models import QuoteResult


class QuoteProvider(ABC):
    """Abstract base class for current-price sources."""

    @abstractmethod
    async def get_quote(self, symbol: str) -> QuoteResult:
        """Fetch the latest price for a symbol.

        Args:
            symbol: Ticker symbol, e.g. "AAPL".

        Returns:
            Quote on success, QuoteFailure if the price could not be obtained.
        """
        pass

    async def close(self) -> None:
        """Clean up resources (sessions, connections, etc.)."""
        pass
