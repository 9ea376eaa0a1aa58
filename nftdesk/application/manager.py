"""
Application Layer: NFT Manager
Routes every call to the adapter registered for the token's chain.
"""
from decimal import Decimal
from typing import List, Mapping, Union

from nftdesk.domain import NFT, ChainType, MarketData, UnsupportedChainError
from nftdesk.application.ports import IChainAdapter


class NFTManager:
    """Single entry point for callers; holds no state beyond the adapter map"""

    def __init__(self, adapters: Mapping[ChainType, IChainAdapter]) -> None:
        self._adapters = dict(adapters)

    @property
    def supported_chains(self) -> List[ChainType]:
        return list(self._adapters)

    def adapter_for(self, chain: Union[ChainType, str]) -> IChainAdapter:
        try:
            chain_type = ChainType(chain)
        except ValueError:
            raise UnsupportedChainError(f"Unsupported chain: {chain}") from None

        adapter = self._adapters.get(chain_type)
        if adapter is None:
            raise UnsupportedChainError(f"Unsupported chain: {chain_type.value}")
        return adapter

    async def get_nfts(self, chain: Union[ChainType, str], wallet_address: str) -> List[NFT]:
        return await self.adapter_for(chain).get_nfts(wallet_address)

    async def get_market_data(self, nft: NFT) -> MarketData:
        return await self.adapter_for(nft.chain_type).get_market_data(nft)

    async def list_nft(self, nft: NFT, price: "float | Decimal") -> bool:
        return await self.adapter_for(nft.chain_type).list_nft(nft, price)

    async def burn_nft(self, nft: NFT) -> None:
        await self.adapter_for(nft.chain_type).burn_nft(nft)

    async def close(self) -> None:
        for adapter in self._adapters.values():
            await adapter.close()
