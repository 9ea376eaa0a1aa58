"""
Application Layer: Console Output
Renders wallet reports and errors using 'rich' library.
"""
from typing import Dict, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from nftdesk.domain import NFT, DomainError, MarketData

# error code -> (headline, suggestion)
ERROR_HINTS: Dict[str, tuple] = {
    "fetch_error": (
        "Could not reach the token indexer",
        "Check your connection or the indexer URL and try again",
    ),
    "validation_error": (
        "Token is missing required identity fields",
        "Only tokens with a contract address and token ID can be priced or listed",
    ),
    "config_error": (
        "Configuration is incomplete",
        "Set the missing value in .env (marketplace contract, wallet key or address)",
    ),
    "approval_error": (
        "Marketplace operator approval failed",
        "Nothing was listed. Check your balance for fees and retry",
    ),
    "listing_error": (
        "Listing creation failed",
        "The operator approval stays on-chain; retrying will skip it",
    ),
    "unsupported_operation": (
        "This contract cannot burn tokens",
        "The contract exposes neither a burn nor a transfer entrypoint",
    ),
    "unsupported_chain": (
        "Chain not supported",
        "Use one of: tezos, stargaze",
    ),
}


def _format_price(value: Optional[float], currency: str) -> str:
    if value is None:
        return "-"
    return f"{value:,.6g} {currency}"


class ReportView:
    """Wallet report: one row per NFT, optional market data columns"""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def render_nfts(
        self,
        wallet: str,
        nfts: Sequence[NFT],
        market: Optional[Dict[str, MarketData]] = None,
    ) -> None:
        table = Table(box=box.SIMPLE, expand=True)
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Collection", style="white")
        table.add_column("Token", style="grey50")
        if market is not None:
            table.add_column("Floor", justify="right", style="green")
            table.add_column("Last Sale", justify="right")
            table.add_column("Listings", justify="right")
            table.add_column("Source", justify="center")

        for nft in nfts:
            row: List[str] = [nft.name, nft.collection or "-", nft.token_id or "-"]
            if market is not None:
                data = market.get(nft.id)
                if data is None:
                    row.extend(["-", "-", "-", "n/a"])
                else:
                    listings = "-" if data.current_listings is None else f"{data.current_listings:g}"
                    row.extend([
                        _format_price(data.floor_price, data.currency),
                        _format_price(data.last_sale_price, data.currency),
                        listings,
                        data.source,
                    ])
            table.add_row(*row)

        if not nfts:
            table.add_row("No NFTs found", "", "")

        self.console.print(Panel(table, title=f"NFTs of {wallet} ({len(nfts)})", border_style="blue"))

    def render_market_data(self, title: str, data: MarketData) -> None:
        grid = Table.grid(padding=(0, 2))
        grid.add_column(style="bold")
        grid.add_column()
        grid.add_row("Floor Price", _format_price(data.floor_price, data.currency))
        grid.add_row("Last Sale", _format_price(data.last_sale_price, data.currency))
        grid.add_row("Active Listings", "-" if data.current_listings is None else f"{data.current_listings:g}")
        grid.add_row("Source", data.source)
        self.console.print(Panel(grid, title=title, border_style="green"))

    def render_success(self, message: str) -> None:
        self.console.print(f"[green]✔ {message}[/green]")

    def render_error(self, error: Exception) -> None:
        code = getattr(error, "code", None) if isinstance(error, DomainError) else None
        headline, suggestion = ERROR_HINTS.get(code or "", ("Unexpected error", ""))

        body = Text()
        body.append(f"{headline}\n", style="bold red")
        body.append(str(error) or type(error).__name__)
        if suggestion:
            body.append(f"\n\n💡 {suggestion}", style="yellow")
        self.console.print(Panel(body, title=f"❌ {code or 'error'}", border_style="red"))
