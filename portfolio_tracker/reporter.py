"""Valuation and projection reports over a portfolio.

Quotes are fetched one holding at a time, in portfolio order. A symbol whose
quote fails is left out of the report.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, Optional

from .models import Holding, ProjectionRow, QuoteFailure, ValuationRow
from .portfolio import Portfolio
from .quotes.base import QuoteProvider
from .valuation import annualized_growth, elapsed_years, project_value

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PortfolioReporter:
    """Builds reports by pricing every holding through a quote provider."""

    def __init__(
        self,
        portfolio: Portfolio,
        quote_provider: QuoteProvider,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.portfolio = portfolio
        self.quote_provider = quote_provider
        self.clock = clock

    async def _priced_holdings(self):
        for symbol, holding in self.portfolio.items():
            result = await self.quote_provider.get_quote(symbol)
            if isinstance(result, QuoteFailure):
                logger.info("Skipping %s: %s", symbol, result.reason)
                continue
            yield holding, result.price

    async def build_valuation_report(
        self, as_of: Optional[datetime] = None
    ) -> list[ValuationRow]:
        """Value every holding that can be priced.

        Args:
            as_of: Evaluation instant for the holding period. Defaults to the
                reporter clock, read once per report.

        Returns:
            ValuationRow objects in the order their quotes resolved.
        """
        if as_of is None:
            as_of = self.clock()
        rows: list[ValuationRow] = []

        async for holding, price in self._priced_holdings():
            rows.append(
                ValuationRow(
                    symbol=holding.symbol,
                    quantity=holding.quantity,
                    purchase_price=holding.purchase_price,
                    purchase_date=holding.purchase_date,
                    sector=holding.sector,
                    current_price=price,
                    current_value=Decimal(holding.quantity) * price,
                    cagr=self._cagr(holding, price, as_of),
                )
            )

        return rows

    async def build_projection_report(
        self, expected_rate_of_return: Decimal
    ) -> list[ProjectionRow]:
        """Project each priced holding one period ahead at a fixed rate."""
        rows: list[ProjectionRow] = []

        async for holding, price in self._priced_holdings():
            current_value = Decimal(holding.quantity) * price
            rows.append(
                ProjectionRow(
                    symbol=holding.symbol,
                    current_value=current_value,
                    projected_value=project_value(
                        current_value, Decimal(str(expected_rate_of_return))
                    ),
                )
            )

        return rows

    def _cagr(self, holding: Holding, price: Decimal, as_of: datetime) -> Decimal:
        years = elapsed_years(holding.purchase_date, as_of)
        if years <= 0:
            return Decimal("0")

        if not holding.purchase_price.is_finite() or holding.purchase_price <= 0:
            logger.warning(
                "Cannot compute CAGR for %s with purchase price %s",
                holding.symbol,
                holding.purchase_price,
            )
            return Decimal("0")

        # A holding period of seconds puts 1/years far beyond the Decimal exponent range
        try:
            return annualized_growth(holding.purchase_price, price, years)
        except ArithmeticError as e:
            logger.warning(
                "Cannot compute CAGR for %s over %s years: %r", holding.symbol, years, e
            )
            return Decimal("0")


def total_value(rows: Iterable[ValuationRow | ProjectionRow]) -> Decimal:
    return sum((row.current_value for row in rows), start=Decimal("0"))


def total_projected_value(rows: Iterable[ProjectionRow]) -> Decimal:
    return sum((row.projected_value for row in rows), start=Decimal("0"))


def sector_allocation(rows: Iterable[ValuationRow]) -> dict[str, Decimal]:
    """Share of current value held in each sector, as decimals 0-1."""
    by_sector: dict[str, Decimal] = {}
    for row in rows:
        by_sector[row.sector] = by_sector.get(row.sector, Decimal("0")) + row.current_value

    total = sum(by_sector.values(), start=Decimal("0"))
    if total == 0:
        return {}

    return {sector: value / total for sector, value in by_sector.items()}
