"""
Application Layer: Ports (Interfaces)
Defines how the Application layer expects to interact with the Infrastructure.
"""
from decimal import Decimal
from typing import Any, List, Optional, Protocol

from nftdesk.domain import NFT, MarketData


class IMarketDataProvider(Protocol):
    """One external pricing source. Lossy: returns None instead of raising."""

    name: str

    async def fetch(self, nft: NFT) -> Optional[MarketData]:
        ...


class IOperation(Protocol):
    """A submitted on-chain operation"""

    hash: str

    async def confirmation(self, count: int) -> None:
        """Blocks until the operation reaches `count` confirmations"""
        ...


class IWalletSession(Protocol):
    """Signer and transaction submission for one chain"""

    async def get_address(self) -> str:
        ...

    async def submit(self, contract: str, entrypoint: str, params: Any) -> IOperation:
        ...


class IChainAdapter(Protocol):
    """Interface every supported chain implements"""

    async def get_nfts(self, wallet_address: str) -> List[NFT]:
        ...

    async def get_market_data(self, nft: NFT) -> MarketData:
        ...

    async def list_nft(self, nft: NFT, price: "float | Decimal") -> bool:
        ...

    async def burn_nft(self, nft: NFT) -> None:
        ...

    async def close(self) -> None:
        ...
