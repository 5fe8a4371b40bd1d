import json
import logging
from datetime import date
from decimal import Decimal
from typing import Iterator, Optional

from .config import StorageConfig
from .models import Holding
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

PORTFOLIO_KEY = StorageConfig().PORTFOLIO_KEY


class Portfolio:
    """A set of stock holdings keyed by symbol, with persistence support."""

    def __init__(self) -> None:
        self.holdings: dict[str, Holding] = {}

    def add_stock(
        self,
        symbol: str,
        quantity: int,
        purchase_price: Decimal,
        purchase_date: date,
        sector: str,
    ) -> Holding:
        """Insert a holding, replacing any existing one with the same symbol."""
        holding = Holding(
            symbol=symbol,
            quantity=quantity,
            purchase_price=purchase_price,
            purchase_date=purchase_date,
            sector=sector,
        )
        self.holdings[symbol] = holding
        logger.info("Stock %s added.", symbol)
        return holding

    def remove_stock(self, symbol: str) -> Optional[Holding]:
        removed = self.holdings.pop(symbol, None)
        if removed is None:
            logger.info("Stock %s not found in portfolio.", symbol)
        else:
            logger.info("Stock %s removed.", symbol)
        return removed

    def edit_stock(
        self,
        symbol: str,
        quantity: Optional[int] = None,
        purchase_price: Optional[Decimal] = None,
        purchase_date: Optional[date] = None,
        sector: Optional[str] = None,
    ) -> Optional[Holding]:
        """Update the supplied fields of an existing holding.

        Arguments left as None keep their current value; zero and empty
        values are applied like any other.

        Returns:
            The updated Holding, or None if the symbol is not in the portfolio.
        """
        holding = self.holdings.get(symbol)
        if holding is None:
            logger.info("Stock %s not found in portfolio.", symbol)
            return None

        if quantity is not None:
            holding.quantity = quantity
        if purchase_price is not None:
            holding.purchase_price = purchase_price
        if purchase_date is not None:
            holding.purchase_date = purchase_date
        if sector is not None:
            holding.sector = sector

        logger.info("Stock %s edited.", symbol)
        return holding

    def get(self, symbol: str) -> Optional[Holding]:
        return self.holdings.get(symbol)

    def items(self) -> Iterator[tuple[str, Holding]]:
        return iter(list(self.holdings.items()))

    def total_cost(self) -> Decimal:
        return sum(
            (holding.cost_basis for holding in self.holdings.values()),
            start=Decimal("0"),
        )

    def serialize(self) -> str:
        return json.dumps(
            {symbol: holding.to_dict() for symbol, holding in self.holdings.items()}
        )

    def restore(self, blob: Optional[str]) -> bool:
        """Replace all holdings with the contents of a serialized blob.

        Returns:
            False if the blob is absent or empty (portfolio left untouched),
            True once the holdings have been replaced.

        Raises:
            ValueError: If the blob cannot be decoded. The portfolio is left
                untouched.
        """
        if blob is None or not blob.strip():
            logger.info("No portfolio found, nothing to restore.")
            return False

        try:
            data = json.loads(blob)
        except json.JSONDecodeError as e:
            raise ValueError(f"Portfolio data is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ValueError("Portfolio data must be a JSON object keyed by symbol")

        holdings = {
            symbol: Holding.from_dict(symbol, fields) for symbol, fields in data.items()
        }
        self.holdings = holdings
        logger.info("Portfolio restored with %d holdings.", len(holdings))
        return True

    def save(self, store: KeyValueStore, key: str = PORTFOLIO_KEY) -> None:
        store.persist(key, self.serialize())
        logger.info("Portfolio saved to %r.", store)

    def load(self, store: KeyValueStore, key: str = PORTFOLIO_KEY) -> bool:
        return self.restore(store.retrieve(key))

    def __contains__(self, symbol: object) -> bool:
        return symbol in self.holdings

    def __len__(self) -> int:
        return len(self.holdings)

    def __repr__(self) -> str:
        return (
            f"Portfolio(holdings={list(self.holdings.keys())}, "
            f"total_cost={self.total_cost()})"
        )
