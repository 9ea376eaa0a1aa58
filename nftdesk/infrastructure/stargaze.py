"""
Infrastructure Layer: Stargaze Chain Adapter
sg721 tokens via the Stargaze GraphQL API, cw721 approvals via LCD, writes via the wallet session.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, FrozenSet, List, Mapping, Optional

import structlog

from nftdesk.domain import (
    NFT,
    NFTId,
    ChainType,
    ListingRequest,
    ValidationError,
    WriteCapability,
    resolve_media_uri,
)
from nftdesk.application.chain_adapter import (
    BaseChainAdapter,
    ContractCall,
    display_name,
    flatten_attributes,
)
from nftdesk.application.market_data import MarketDataAggregator, MarketDataCache
from nftdesk.application.ports import IWalletSession
from nftdesk.infrastructure.config import Settings
from nftdesk.infrastructure.http import HttpClient
from nftdesk.infrastructure.providers import StargazeMarketProvider
from nftdesk.infrastructure.stargaze_api import StargazeClient

logger = structlog.get_logger()

STARGAZE_DENOM = "ustars"

# sg721 collections all inherit cw721-base, which exposes burn
SG721_CAPABILITIES: FrozenSet[WriteCapability] = frozenset({WriteCapability.NATIVE_BURN})


class StargazeAdapter(BaseChainAdapter):
    chain_type = ChainType.STARGAZE
    currency = "STARS"
    unit_multiplier = 1_000_000  # ustars per STARS

    def __init__(
        self,
        config: Settings,
        wallet: Optional[IWalletSession] = None,
        indexer: Optional[StargazeClient] = None,
        aggregator: Optional[MarketDataAggregator] = None,
    ) -> None:
        self._owned_clients: List[HttpClient] = []

        if indexer is None:
            indexer = StargazeClient(
                config.stargaze_graphql_url,
                config.stargaze_lcd_url,
                page_size=config.indexer_page_size,
                timeout=config.http_timeout,
            )
            self._owned_clients.append(indexer)

        if aggregator is None:
            provider = StargazeMarketProvider(
                config.stargaze_graphql_url,
                unit_multiplier=self.unit_multiplier,
                timeout=config.http_timeout,
            )
            self._owned_clients.append(provider)
            aggregator = MarketDataAggregator(
                [provider],
                currency=self.currency,
                cache=MarketDataCache(ttl=config.market_data_cache_ttl),
            )

        super().__init__(
            aggregator=aggregator,
            wallet=wallet,
            marketplace_address=config.stargaze_marketplace_contract,
            confirmations=config.confirmations,
            confirmation_timeout=config.confirmation_timeout,
        )
        self.indexer = indexer
        self.ipfs_gateway = config.ipfs_gateway
        self.listing_expiry = timedelta(days=config.listing_expiry_days)

    async def close(self) -> None:
        for client in self._owned_clients:
            await client.close()

    async def get_nfts(self, wallet_address: str) -> List[NFT]:
        tokens = await self.indexer.get_owned_tokens(wallet_address)

        nfts: List[NFT] = []
        for token in tokens:
            try:
                nft = self._to_nft(token)
            except (KeyError, TypeError, AttributeError, ValueError) as e:
                logger.warning("nft_parse_error", error=str(e))
                continue
            if nft is not None:
                nfts.append(nft)

        logger.info("nfts_fetched", chain=self.chain_type.value, wallet=wallet_address, count=len(nfts))
        return nfts

    def _to_nft(self, token: Mapping[str, Any]) -> Optional[NFT]:
        collection = token.get("collection")
        token_id = token.get("tokenId")
        if not isinstance(collection, Mapping) or not collection.get("contractAddress") or token_id is None:
            logger.info("nft_skipped_no_metadata", token_id=token_id)
            return None

        address = collection["contractAddress"]
        image = token.get("imageUrl") or (token.get("media") or {}).get("url")
        return NFT(
            id=NFTId(f"{address}-{token_id}"),
            chain_type=self.chain_type,
            name=display_name(token),
            collection=collection.get("name") or address,
            description=token.get("description") or "",
            image_url=resolve_media_uri(image, self.ipfs_gateway) or "",
            contract_address=address,
            token_id=str(token_id),
            extra_attributes=flatten_attributes(token.get("traits")),
        )

    async def _is_operator(self, contract: str, owner: str, operator: str, token_id: str) -> bool:
        # cw721 approvals are per token; the owner is implied by the token
        return await self.indexer.is_approved(contract, token_id, operator)

    async def _query_capabilities(self, contract: str) -> FrozenSet[WriteCapability]:
        return SG721_CAPABILITIES

    def _validate_request(self, request: ListingRequest) -> None:
        # set_ask takes the token id as a u32
        if not (request.token_id.isascii() and request.token_id.isdigit()):
            raise ValidationError(f"Stargaze token ID must be numeric: {request.token_id}")

    def _approval_call(self, owner: str, operator: str, request: ListingRequest) -> ContractCall:
        return ContractCall(
            contract=request.asset_contract,
            entrypoint="approve",
            params={"spender": operator, "token_id": request.token_id},
        )

    def _listing_call(self, marketplace: str, request: ListingRequest) -> ContractCall:
        expires = datetime.now(timezone.utc) + self.listing_expiry
        return ContractCall(
            contract=marketplace,
            entrypoint="set_ask",
            params={
                "sale_type": "fixed_price",
                "collection": request.asset_contract,
                "token_id": int(request.token_id),
                "price": {"amount": str(request.price), "denom": STARGAZE_DENOM},
                # Cosmos timestamps are nanoseconds since epoch, as a string
                "expires": str(int(expires.timestamp()) * 1_000_000_000),
            },
        )

    def _burn_call(self, capability: WriteCapability, nft: NFT, owner: str) -> ContractCall:
        return ContractCall(
            contract=nft.contract_address,  # type: ignore[arg-type]
            entrypoint="burn",
            params={"token_id": nft.token_id},
        )
