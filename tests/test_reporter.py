"""Tests for valuation and projection reports."""

import asyncio
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from portfolio_tracker.models import Quote, QuoteFailure, ValuationRow
from portfolio_tracker.portfolio import Portfolio
from portfolio_tracker.quotes.base import QuoteProvider
from portfolio_tracker.reporter import (
    PortfolioReporter,
    sector_allocation,
    total_projected_value,
    total_value,
)
from portfolio_tracker.valuation import purchase_instant

AS_OF = datetime(2024, 6, 30, 15, 30, tzinfo=timezone.utc)


class FakeQuoteProvider(QuoteProvider):
    """Serves prices from a dict and records the order of requests."""

    def __init__(self, prices: dict[str, Decimal]) -> None:
        self.prices = prices
        self.requested: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_quote(self, symbol: str):
        self.requested.append(symbol)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        self.in_flight -= 1
        if symbol in self.prices:
            return Quote(symbol, self.prices[symbol])
        return QuoteFailure(symbol, "no data")


def two_years_before(as_of: datetime) -> date:
    """A purchase date exactly two Julian years before as_of (as_of at noon UTC)."""
    return (as_of - timedelta(days=730.5)).date()


class TestValuationReport:
    def test_concrete_scenario(self):
        as_of = datetime(2024, 6, 30, 12, tzinfo=timezone.utc)
        purchased = two_years_before(as_of)
        assert purchase_instant(purchased) + timedelta(days=730.5) == as_of

        portfolio = Portfolio()
        portfolio.add_stock("AAPL", 10, Decimal("100"), purchased, "Tech")
        reporter = PortfolioReporter(portfolio, FakeQuoteProvider({"AAPL": Decimal("150")}))

        rows = asyncio.run(reporter.build_valuation_report(as_of))

        assert len(rows) == 1
        row = rows[0]
        assert row.current_value == Decimal("1500")
        assert row.current_price == Decimal("150")
        assert abs(row.cagr - (Decimal("1.5").sqrt() - 1)) < Decimal("1e-12")
        assert f"{float(row.cagr):.2%}" == "22.47%"
        assert row.sector == "Tech"
        assert row.purchase_date == purchased

    def test_failed_quote_is_skipped(self):
        portfolio = Portfolio()
        portfolio.add_stock("XXXX", 1, Decimal("10"), date(2020, 1, 1), "Unknown")
        portfolio.add_stock("MSFT", 2, Decimal("200"), date(2020, 1, 1), "Tech")
        provider = FakeQuoteProvider({"MSFT": Decimal("400")})

        rows = asyncio.run(PortfolioReporter(portfolio, provider).build_valuation_report(AS_OF))

        assert [row.symbol for row in rows] == ["MSFT"]
        assert provider.requested == ["XXXX", "MSFT"]

    def test_all_quotes_fail(self):
        portfolio = Portfolio()
        portfolio.add_stock("AAPL", 1, Decimal("10"), date(2020, 1, 1), "Tech")
        rows = asyncio.run(
            PortfolioReporter(portfolio, FakeQuoteProvider({})).build_valuation_report(AS_OF)
        )
        assert rows == []

    def test_empty_portfolio(self):
        rows = asyncio.run(
            PortfolioReporter(Portfolio(), FakeQuoteProvider({})).build_valuation_report(AS_OF)
        )
        assert rows == []

    @pytest.mark.parametrize("purchased", [date(2024, 6, 30), date(2025, 1, 1)])
    def test_cagr_zero_without_elapsed_time(self, purchased):
        as_of = datetime(2024, 6, 30, tzinfo=timezone.utc)
        portfolio = Portfolio()
        portfolio.add_stock("AAPL", 1, Decimal("100"), purchased, "Tech")
        reporter = PortfolioReporter(portfolio, FakeQuoteProvider({"AAPL": Decimal("300")}))

        rows = asyncio.run(reporter.build_valuation_report(as_of))

        assert rows[0].cagr == Decimal("0")
        assert rows[0].current_value == Decimal("300")

    def test_cagr_zero_for_non_positive_purchase_price(self):
        portfolio = Portfolio()
        portfolio.add_stock("FREE", 5, Decimal("0"), date(2020, 1, 1), "Gift")
        reporter = PortfolioReporter(portfolio, FakeQuoteProvider({"FREE": Decimal("3")}))

        rows = asyncio.run(reporter.build_valuation_report(AS_OF))

        assert rows[0].cagr == Decimal("0")
        assert rows[0].current_value == Decimal("15")

    def test_cagr_zero_for_non_finite_purchase_price(self):
        portfolio = Portfolio()
        portfolio.add_stock("ODD", 5, Decimal("NaN"), date(2020, 1, 1), "Unknown")
        reporter = PortfolioReporter(portfolio, FakeQuoteProvider({"ODD": Decimal("3")}))

        rows = asyncio.run(reporter.build_valuation_report(AS_OF))

        assert rows[0].cagr == Decimal("0")

    @pytest.mark.parametrize(
        "purchase_price, as_of",
        [
            (Decimal("100"), datetime(2024, 6, 30, 0, 0, 1, tzinfo=timezone.utc)),
            (Decimal("0.0001"), datetime(2024, 6, 30, 0, 2, tzinfo=timezone.utc)),
        ],
    )
    def test_cagr_zero_when_bought_moments_ago(self, purchase_price, as_of, caplog):
        portfolio = Portfolio()
        portfolio.add_stock("AAPL", 10, purchase_price, date(2024, 6, 30), "Tech")
        portfolio.add_stock("MSFT", 1, Decimal("200"), date(2020, 1, 1), "Tech")
        reporter = PortfolioReporter(
            portfolio,
            FakeQuoteProvider({"AAPL": Decimal("150"), "MSFT": Decimal("400")}),
        )

        with caplog.at_level("WARNING", logger="portfolio_tracker.reporter"):
            rows = asyncio.run(reporter.build_valuation_report(as_of))

        assert [row.symbol for row in rows] == ["AAPL", "MSFT"]
        assert rows[0].cagr == Decimal("0")
        assert rows[0].current_value == Decimal("1500")
        assert rows[1].cagr > 0
        assert "Cannot compute CAGR for AAPL" in caplog.text

    def test_uses_clock_when_as_of_omitted(self):
        as_of = datetime(2024, 6, 30, 12, tzinfo=timezone.utc)
        portfolio = Portfolio()
        portfolio.add_stock("AAPL", 1, Decimal("100"), two_years_before(as_of), "Tech")
        reporter = PortfolioReporter(
            portfolio, FakeQuoteProvider({"AAPL": Decimal("121")}), clock=lambda: as_of
        )

        rows = asyncio.run(reporter.build_valuation_report())

        assert abs(rows[0].cagr - Decimal("0.1")) < Decimal("1e-12")

    def test_fetches_are_sequential_in_portfolio_order(self):
        portfolio = Portfolio()
        for symbol in ["C", "A", "B"]:
            portfolio.add_stock(symbol, 1, Decimal("1"), date(2020, 1, 1), "S")
        provider = FakeQuoteProvider({s: Decimal("2") for s in "ABC"})

        rows = asyncio.run(PortfolioReporter(portfolio, provider).build_valuation_report(AS_OF))

        assert provider.requested == ["C", "A", "B"]
        assert [row.symbol for row in rows] == ["C", "A", "B"]
        assert provider.max_in_flight == 1

    def test_every_report_refetches(self):
        portfolio = Portfolio()
        portfolio.add_stock("AAPL", 1, Decimal("1"), date(2020, 1, 1), "Tech")
        provider = AsyncMock(spec=QuoteProvider)
        provider.get_quote.side_effect = [
            Quote("AAPL", Decimal("10")),
            Quote("AAPL", Decimal("12")),
        ]
        reporter = PortfolioReporter(portfolio, provider)

        first = asyncio.run(reporter.build_valuation_report(AS_OF))
        second = asyncio.run(reporter.build_valuation_report(AS_OF))

        assert provider.get_quote.await_count == 2
        assert first[0].current_price == Decimal("10")
        assert second[0].current_price == Decimal("12")


class TestProjectionReport:
    def test_concrete_scenario(self):
        portfolio = Portfolio()
        portfolio.add_stock("AAPL", 10, Decimal("100"), date(2022, 1, 1), "Tech")
        reporter = PortfolioReporter(portfolio, FakeQuoteProvider({"AAPL": Decimal("150")}))

        rows = asyncio.run(reporter.build_projection_report(Decimal("0.10")))

        assert len(rows) == 1
        assert rows[0].current_value == Decimal("1500")
        assert rows[0].projected_value == Decimal("1650")

    def test_float_rate(self):
        portfolio = Portfolio()
        portfolio.add_stock("AAPL", 10, Decimal("100"), date(2022, 1, 1), "Tech")
        reporter = PortfolioReporter(portfolio, FakeQuoteProvider({"AAPL": Decimal("150")}))

        rows = asyncio.run(reporter.build_projection_report(0.1))

        assert rows[0].projected_value == Decimal("1650")

    def test_failed_quote_is_skipped(self):
        portfolio = Portfolio()
        portfolio.add_stock("AAPL", 10, Decimal("100"), date(2022, 1, 1), "Tech")
        portfolio.add_stock("GONE", 10, Decimal("100"), date(2022, 1, 1), "Tech")
        reporter = PortfolioReporter(portfolio, FakeQuoteProvider({"AAPL": Decimal("1")}))

        rows = asyncio.run(reporter.build_projection_report(Decimal("0")))

        assert [row.symbol for row in rows] == ["AAPL"]
        assert rows[0].projected_value == rows[0].current_value


def make_row(symbol: str, sector: str, value: str) -> ValuationRow:
    return ValuationRow(
        symbol=symbol,
        quantity=1,
        purchase_price=Decimal("1"),
        purchase_date=date(2020, 1, 1),
        sector=sector,
        current_price=Decimal(value),
        current_value=Decimal(value),
        cagr=Decimal("0"),
    )


class TestSummaries:
    def test_total_value(self):
        rows = [make_row("A", "Tech", "100"), make_row("B", "Energy", "50")]
        assert total_value(rows) == Decimal("150")

    def test_total_value_empty(self):
        assert total_value([]) == Decimal("0")

    def test_total_projected_value(self):
        portfolio = Portfolio()
        portfolio.add_stock("A", 1, Decimal("1"), date(2020, 1, 1), "S")
        portfolio.add_stock("B", 3, Decimal("1"), date(2020, 1, 1), "S")
        reporter = PortfolioReporter(
            portfolio, FakeQuoteProvider({"A": Decimal("100"), "B": Decimal("100")})
        )
        rows = asyncio.run(reporter.build_projection_report(Decimal("0.5")))
        assert total_projected_value(rows) == Decimal("600")

    def test_sector_allocation(self):
        rows = [
            make_row("A", "Tech", "60"),
            make_row("B", "Tech", "15"),
            make_row("C", "Energy", "25"),
        ]
        assert sector_allocation(rows) == {
            "Tech": Decimal("0.75"),
            "Energy": Decimal("0.25"),
        }

    def test_sector_allocation_zero_total(self):
        assert sector_allocation([make_row("A", "Tech", "0")]) == {}
