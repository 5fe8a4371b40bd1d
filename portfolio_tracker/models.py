"""Data models for the portfolio tracker."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any


@dataclass
class Holding:
    """Represents a tracked stock position with its acquisition details."""

    symbol: str
    quantity: int
    purchase_price: Decimal
    purchase_date: date
    sector: str

    @property
    def cost_basis(self) -> Decimal:
        return Decimal(self.quantity) * self.purchase_price

    def to_dict(self) -> dict[str, Any]:
        return {
            "quantity": self.quantity,
            "purchase_price": str(self.purchase_price),
            "purchase_date": self.purchase_date.isoformat(),
            "sector": self.sector,
        }

    @classmethod
    def from_dict(cls, symbol: str, data: dict[str, Any]) -> "Holding":
        """Build a Holding from its serialized form.

        Raises:
            ValueError: If a field is missing or cannot be decoded.
        """
        try:
            raw_quantity = data["quantity"]
            if isinstance(raw_quantity, float) and not raw_quantity.is_integer():
                raise ValueError(f"quantity must be a whole number, got {raw_quantity!r}")
            quantity = int(raw_quantity)

            purchase_price = Decimal(str(data["purchase_price"]))
            if not purchase_price.is_finite():
                raise ValueError(f"purchase price must be finite, got {purchase_price}")

            return cls(
                symbol=symbol,
                quantity=quantity,
                purchase_price=purchase_price,
                purchase_date=date.fromisoformat(data["purchase_date"]),
                sector=str(data["sector"]),
            )
        except (KeyError, TypeError, InvalidOperation, OverflowError, ValueError) as e:
            raise ValueError(f"Invalid holding data for {symbol}: {e!r}") from e


@dataclass(frozen=True)
class Quote:
    """A successfully fetched price for a symbol."""

    symbol: str
    price: Decimal


@dataclass(frozen=True)
class QuoteFailure:
    """A failed price lookup, with a human readable reason."""

    symbol: str
    reason: str


QuoteResult = Quote | QuoteFailure


@dataclass(frozen=True)
class ValuationRow:
    """One line of the valuation report."""

    symbol: str
    quantity: int
    purchase_price: Decimal
    purchase_date: date
    sector: str
    current_price: Decimal
    current_value: Decimal
    cagr: Decimal

    @property
    def cost_basis(self) -> Decimal:
        return Decimal(self.quantity) * self.purchase_price

    @property
    def gain(self) -> Decimal:
        return self.current_value - self.cost_basis

    def __str__(self) -> str:
        return (
            f"{self.symbol} x{self.quantity} @ ${self.current_price:.2f} "
            f"(value: ${self.current_value:.2f}, CAGR: {float(self.cagr):.2%})"
        )


@dataclass(frozen=True)
class ProjectionRow:
    """One line of the future-value projection report."""

    symbol: str
    current_value: Decimal
    projected_value: Decimal

    def __str__(self) -> str:
        return (
            f"{self.symbol} ${self.current_value:.2f} -> "
            f"${self.projected_value:.2f}"
        )
