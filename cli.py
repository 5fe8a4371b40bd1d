#!/usr/bin/env python3
import asyncio
import logging
import os
import select
import sys
import termios
import tty
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional, TypeVar

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text

from portfolio_tracker import (
    AlphaVantageQuoteProvider,
    JsonFileStore,
    Portfolio,
    PortfolioReporter,
    ProjectionRow,
    ValuationRow,
)
from portfolio_tracker.config import API_KEY_ENV, Settings
from portfolio_tracker.reporter import (
    sector_allocation,
    total_projected_value,
    total_value,
)
from portfolio_tracker.storage import KeyValueStore

logger = logging.getLogger(__name__)
console = Console()

# ANSI escape codes for terminal styling
ANSI_BOLD_CYAN = "\033[1;36m"
ANSI_DIM = "\033[2m"
ANSI_RESET = "\033[0m"
ANSI_MOVE_UP = "\033[{}A"
ANSI_CLEAR_LINE = "\033[2K\n"

ACTIONS: list[str] = ["add", "remove", "edit", "show", "project", "save", "load", "quit"]
ACTION_LABELS: dict[str, str] = {
    "add": "Add stock",
    "remove": "Remove stock",
    "edit": "Edit stock",
    "show": "Show portfolio",
    "project": "Project future value",
    "save": "Save portfolio",
    "load": "Load portfolio",
    "quit": "Quit",
}
DEFAULT_ACTION_INDEX = 3

T = TypeVar("T")


def parse_symbol(raw: str) -> str:
    symbol = raw.strip().upper()
    if not symbol:
        raise ValueError("Symbol is required")
    return symbol


def parse_quantity(raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"Quantity must be a whole number, got {raw!r}") from None


def parse_price(raw: str) -> Decimal:
    try:
        price = Decimal(raw.strip().lstrip("$").replace(",", ""))
    except InvalidOperation:
        raise ValueError(f"Price must be a number, got {raw!r}") from None
    if not price.is_finite():
        raise ValueError(f"Price must be a number, got {raw!r}")
    return price


def parse_date(raw: str) -> date:
    try:
        return date.fromisoformat(raw.strip())
    except ValueError:
        raise ValueError(f"Date must be YYYY-MM-DD, got {raw!r}") from None


def parse_sector(raw: str) -> str:
    sector = raw.strip()
    if not sector:
        raise ValueError("Sector is required")
    return sector


def parse_rate(raw: str) -> Decimal:
    """Parse an expected rate of return: "10%" and "0.10" both mean ten percent."""
    text = raw.strip()
    is_percent = text.endswith("%")
    try:
        rate = Decimal(text.rstrip("%").strip())
    except InvalidOperation:
        raise ValueError(f"Rate must be a number, got {raw!r}") from None
    if not rate.is_finite():
        raise ValueError(f"Rate must be a number, got {raw!r}")
    return rate / 100 if is_percent else rate


def parse_holding_input(
    symbol: str, quantity: str, purchase_price: str, purchase_date: str, sector: str
) -> tuple[str, int, Decimal, date, str]:
    """Validate raw answers for a new holding. Raises ValueError on bad input."""
    return (
        parse_symbol(symbol),
        parse_quantity(quantity),
        parse_price(purchase_price),
        parse_date(purchase_date),
        parse_sector(sector),
    )


def parse_optional(raw: str, parser: Callable[[str], T]) -> Optional[T]:
    """Blank answers mean "keep the current value"."""
    if not raw.strip():
        return None
    return parser(raw)


def _cagr_color(cagr: Decimal) -> str:
    if cagr > 0:
        return "green"
    return "red" if cagr < 0 else "white"


def valuation_table(rows: list[ValuationRow]) -> Table:
    """Build a Rich table showing each priced holding and its growth rate."""
    t = Table(title="Portfolio", box=box.ROUNDED, title_style="bold white")
    t.add_column("Symbol", style="cyan")
    t.add_column("Quantity", justify="right")
    t.add_column("Purchase Price", justify="right")
    t.add_column("Purchase Date", justify="right")
    t.add_column("Sector", style="dim")
    t.add_column("Current Price", justify="right")
    t.add_column("Current Value", justify="right", style="yellow")
    t.add_column("CAGR", justify="right")

    for row in rows:
        t.add_row(
            row.symbol,
            str(row.quantity),
            f"${row.purchase_price:,.2f}",
            row.purchase_date.isoformat(),
            row.sector,
            f"${row.current_price:,.2f}",
            f"${row.current_value:,.2f}",
            Text(f"{float(row.cagr) * 100:.2f}%", style=_cagr_color(row.cagr)),
        )

    t.add_section()
    t.add_row(
        "", "", "", "", "", "Total", f"[bold]${total_value(rows):,.2f}[/bold]", ""
    )
    return t


def sector_table(rows: list[ValuationRow]) -> Table:
    t = Table(title="Sectors", box=box.ROUNDED, title_style="bold white")
    t.add_column("Sector", style="cyan")
    t.add_column("Alloc", justify="right", style="yellow")
    for sector, share in sorted(
        sector_allocation(rows).items(), key=lambda x: x[1], reverse=True
    ):
        t.add_row(sector, f"{float(share):.1%}")
    return t


def projection_table(rows: list[ProjectionRow], rate: Decimal) -> Table:
    """Build a Rich table showing current and projected value per holding."""
    t = Table(
        title=f"Projection at {float(rate):.2%}",
        box=box.ROUNDED,
        title_style="bold white",
    )
    t.add_column("Symbol", style="cyan")
    t.add_column("Current Value", justify="right")
    t.add_column("Projected Value", justify="right", style="green")

    for row in rows:
        t.add_row(
            row.symbol,
            f"${row.current_value:,.2f}",
            f"${row.projected_value:,.2f}",
        )

    t.add_section()
    t.add_row(
        "Total",
        f"[bold]${total_value(rows):,.2f}[/bold]",
        f"[bold]${total_projected_value(rows):,.2f}[/bold]",
    )
    return t


def _getch() -> str:
    """Read a single keypress from stdin, handling escape sequences."""
    fd = sys.stdin.fileno()
    old = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        ch = os.read(fd, 1).decode()
        if ch == "\x1b" and select.select([fd], [], [], 0.05)[0]:
            ch += os.read(fd, 1).decode()
            if select.select([fd], [], [], 0.05)[0]:
                ch += os.read(fd, 1).decode()
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old)
    return ch


def _render_menu(options: list[T], labels: dict[T, str], selected: int) -> str:
    """Render the menu options with the selected item highlighted."""
    lines = []
    for i, opt in enumerate(options):
        if i == selected:
            lines.append(f"{ANSI_BOLD_CYAN}  ▸ {labels[opt]}{ANSI_RESET}")
        else:
            lines.append(f"{ANSI_DIM}    {labels[opt]}{ANSI_RESET}")
    return "\n".join(lines) + "\n"


def _clear_lines(count: int) -> None:
    """Clear the specified number of lines above cursor."""
    sys.stdout.write(
        ANSI_MOVE_UP.format(count)
        + "".join(ANSI_CLEAR_LINE for _ in range(count))
        + ANSI_MOVE_UP.format(count)
    )


def pick(options: list[T], labels: dict[T, str], default: int = 0) -> T:
    """Interactive arrow-key picker for selecting from a list of options."""
    if not sys.stdin.isatty():
        choice = Prompt.ask(
            "  Choose", choices=[str(o) for o in options], default=str(options[default])
        )
        return next(o for o in options if str(o) == choice)

    selected = default

    output = _render_menu(options, labels, selected)
    sys.stdout.write(output)
    sys.stdout.flush()
    prev_lines = output.count("\n")

    while True:
        key = _getch()
        if key == "\x1b[A":
            selected = (selected - 1) % len(options)
        elif key == "\x1b[B":
            selected = (selected + 1) % len(options)
        elif key in ("\r", "\n"):
            break
        elif key == "\x03":
            raise KeyboardInterrupt
        else:
            continue

        _clear_lines(prev_lines)
        output = _render_menu(options, labels, selected)
        sys.stdout.write(output)
        sys.stdout.flush()
        prev_lines = output.count("\n")

    _clear_lines(prev_lines)
    sys.stdout.flush()

    console.print(f"  [bold cyan]▸ {labels[options[selected]]}[/bold cyan]")
    return options[selected]


def add_stock(portfolio: Portfolio) -> None:
    symbol, quantity, price, purchase_date, sector = parse_holding_input(
        Prompt.ask("  Stock symbol"),
        Prompt.ask("  Quantity"),
        Prompt.ask("  Purchase price"),
        Prompt.ask("  Purchase date (YYYY-MM-DD)"),
        Prompt.ask("  Sector"),
    )
    if symbol in portfolio and not Confirm.ask(
        f"  {symbol} is already tracked. Replace it?", default=False
    ):
        return
    portfolio.add_stock(symbol, quantity, price, purchase_date, sector)
    console.print(f"  [green]Stock {symbol} added.[/green]")


def remove_stock(portfolio: Portfolio) -> None:
    symbol = parse_symbol(Prompt.ask("  Stock symbol to remove"))
    if portfolio.remove_stock(symbol) is None:
        console.print(f"  [yellow]Stock {symbol} not found in portfolio.[/yellow]")
    else:
        console.print(f"  [green]Stock {symbol} removed.[/green]")


def edit_stock(portfolio: Portfolio) -> None:
    symbol = parse_symbol(Prompt.ask("  Stock symbol to edit"))
    holding = portfolio.get(symbol)
    if holding is None:
        console.print(f"  [yellow]Stock {symbol} not found in portfolio.[/yellow]")
        return

    console.print("  [dim]Leave blank to keep the current value.[/dim]")
    portfolio.edit_stock(
        symbol,
        quantity=parse_optional(
            Prompt.ask(f"  Quantity [dim]({holding.quantity})[/dim]", default=""),
            parse_quantity,
        ),
        purchase_price=parse_optional(
            Prompt.ask(
                f"  Purchase price [dim]({holding.purchase_price})[/dim]", default=""
            ),
            parse_price,
        ),
        purchase_date=parse_optional(
            Prompt.ask(
                f"  Purchase date [dim]({holding.purchase_date.isoformat()})[/dim]",
                default="",
            ),
            parse_date,
        ),
        sector=parse_optional(
            Prompt.ask(f"  Sector [dim]({holding.sector})[/dim]", default=""),
            parse_sector,
        ),
    )
    console.print(f"  [green]Stock {symbol} edited.[/green]")


def show_portfolio(reporter: PortfolioReporter) -> None:
    if not len(reporter.portfolio):
        console.print("  [dim]Portfolio is empty.[/dim]")
        return

    with console.status("[bold]Fetching prices...[/bold]"):
        rows = asyncio.run(reporter.build_valuation_report())

    skipped = len(reporter.portfolio) - len(rows)
    console.print(valuation_table(rows))
    if rows:
        console.print(sector_table(rows))
    if skipped:
        console.print(f"  [yellow]{skipped} holding(s) could not be priced.[/yellow]")


def project_portfolio(reporter: PortfolioReporter) -> None:
    rate = parse_rate(Prompt.ask("  Expected rate of return (e.g. 0.08 or 8%)"))
    with console.status("[bold]Fetching prices...[/bold]"):
        rows = asyncio.run(reporter.build_projection_report(rate))
    console.print(projection_table(rows, rate))


def save_portfolio(portfolio: Portfolio, store: KeyValueStore) -> None:
    portfolio.save(store)
    console.print(f"  [green]Portfolio saved ({len(portfolio)} holdings).[/green]")


def load_portfolio(portfolio: Portfolio, store: KeyValueStore) -> None:
    if portfolio.load(store):
        console.print(f"  [green]Portfolio loaded ({len(portfolio)} holdings).[/green]")
    else:
        console.print("  [yellow]No portfolio found.[/yellow]")


def run_action(
    action: str,
    portfolio: Portfolio,
    reporter: PortfolioReporter,
    store: KeyValueStore,
) -> None:
    handlers: dict[str, Callable[[], None]] = {
        "add": lambda: add_stock(portfolio),
        "remove": lambda: remove_stock(portfolio),
        "edit": lambda: edit_stock(portfolio),
        "show": lambda: show_portfolio(reporter),
        "project": lambda: project_portfolio(reporter),
        "save": lambda: save_portfolio(portfolio, store),
        "load": lambda: load_portfolio(portfolio, store),
    }
    handler = handlers.get(action)
    if handler is None:
        raise ValueError(f"Unknown action: {action}")
    handler()


def run_cli_loop(
    portfolio: Portfolio, reporter: PortfolioReporter, store: KeyValueStore
) -> None:
    while True:
        console.print()
        console.print("[bold]Action:[/bold]")
        action = pick(ACTIONS, ACTION_LABELS, default=DEFAULT_ACTION_INDEX)
        if action == "quit":
            break

        try:
            run_action(action, portfolio, reporter, store)
        except ValueError as e:
            logger.debug("Action %s failed: %s", action, e)
            console.print(f"  [red]{e}[/red]")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def main() -> None:
    """Entry point for the CLI application."""
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    console.print()
    console.print(
        Panel("[bold]Portfolio Tracker[/bold] · holdings & growth", box=box.DOUBLE)
    )

    if not settings.api_key:
        console.print(f"[red]Set {API_KEY_ENV} to fetch quotes from Alpha Vantage.[/red]")
        sys.exit(1)

    store = JsonFileStore(settings.store_path)
    portfolio = Portfolio()
    reporter = PortfolioReporter(portfolio, AlphaVantageQuoteProvider(settings.api_key))
    console.print(f"  [dim]Store: {settings.store_path}[/dim]")

    try:
        run_cli_loop(portfolio, reporter, store)
    except KeyboardInterrupt:
        console.print()


if __name__ == "__main__":
    main()
