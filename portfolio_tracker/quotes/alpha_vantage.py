"""Quote provider backed by the Alpha Vantage intraday time series."""

import asyncio
import json
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from ..config import AlphaVantageConfig
from ..models import Quote, QuoteFailure, QuoteResult
from .base import QuoteProvider

logger = logging.getLogger(__name__)

SYMBOL_PATTERN = re.compile(r"^[A-Za-z0-9.\-]{1,10}$")

# Keys Alpha Vantage uses to explain why no data was returned
NOTICE_KEYS = ("Error Message", "Note", "Information")


class AlphaVantageQuoteProvider(QuoteProvider):
    """Fetches the opening price of the most recent intraday bar."""

    def __init__(self, api_key: str, config: Optional[AlphaVantageConfig] = None) -> None:
        if not api_key:
            raise ValueError("An Alpha Vantage API key is required")
        self.api_key = api_key
        self.config = config or AlphaVantageConfig()

    @property
    def series_key(self) -> str:
        return f"Time Series ({self.config.INTERVAL})"

    def build_url(self, symbol: str) -> str:
        query = urlencode(
            {
                "function": self.config.FUNCTION,
                "symbol": symbol,
                "interval": self.config.INTERVAL,
                "apikey": self.api_key,
            }
        )
        return f"{self.config.BASE_URL}?{query}"

    async def get_quote(self, symbol: str) -> QuoteResult:
        if not SYMBOL_PATTERN.match(symbol):
            logger.warning("Refusing to fetch malformed symbol %r", symbol)
            return QuoteFailure(symbol=symbol, reason="malformed symbol")

        try:
            payload = await asyncio.to_thread(self._fetch_payload, symbol)
            price = self._parse_price(payload)
        except Exception as e:
            logger.warning("Failed to fetch price for %s: %s", symbol, e)
            return QuoteFailure(symbol=symbol, reason=str(e) or type(e).__name__)

        return Quote(symbol=symbol, price=price)

    def _fetch_payload(self, symbol: str) -> Any:
        req = Request(
            self.build_url(symbol), headers={"User-Agent": self.config.USER_AGENT}
        )
        with urlopen(req, timeout=self.config.REQUEST_TIMEOUT_S) as response:
            return json.loads(response.read())

    def _parse_price(self, payload: Any) -> Decimal:
        """Extract the opening price of the last refreshed bar.

        Raises:
            ValueError: If the payload is a notice or lacks the expected fields.
        """
        if not isinstance(payload, dict):
            raise ValueError("Unexpected response shape")

        for key in NOTICE_KEYS:
            if key in payload:
                raise ValueError(f"{key}: {payload[key]}")

        try:
            last_refreshed = payload["Meta Data"]["3. Last Refreshed"]
            raw_open = payload[self.series_key][last_refreshed]["1. open"]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Missing field in response: {e}") from e

        try:
            price = Decimal(str(raw_open))
        except InvalidOperation as e:
            raise ValueError(f"Invalid price {raw_open!r}") from e

        if not price.is_finite() or price <= 0:
            raise ValueError(f"Invalid price {raw_open!r}")
        return price
