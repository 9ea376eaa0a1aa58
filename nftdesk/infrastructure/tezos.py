"""
Infrastructure Layer: Tezos Chain Adapter
FA2 tokens via TzKT, pricing via Objkt then Teia, writes via the wallet session.
"""
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

import structlog

from nftdesk.domain import (
    NFT,
    NFTId,
    ChainType,
    ListingRequest,
    WriteCapability,
    capabilities_from_entrypoints,
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
from nftdesk.infrastructure.providers import ObjktProvider, TeiaProvider
from nftdesk.infrastructure.tzkt import TzktClient

logger = structlog.get_logger()

TEZOS_BURN_ADDRESS = "tz1burnburnburnburnburnburnburjAYjjX"

# Metadata keys already mapped onto NFT fields
_CORE_METADATA_KEYS = {
    "name", "symbol", "description", "artifactUri", "displayUri", "thumbnailUri", "attributes",
}


class TezosAdapter(BaseChainAdapter):
    chain_type = ChainType.TEZOS
    currency = "XTZ"
    unit_multiplier = 1_000_000  # mutez per tez

    def __init__(
        self,
        config: Settings,
        wallet: Optional[IWalletSession] = None,
        indexer: Optional[TzktClient] = None,
        aggregator: Optional[MarketDataAggregator] = None,
    ) -> None:
        self._owned_clients: List[HttpClient] = []

        if indexer is None:
            indexer = TzktClient(config.tzkt_api, page_size=config.indexer_page_size, timeout=config.http_timeout)
            self._owned_clients.append(indexer)

        if aggregator is None:
            providers = [
                ObjktProvider(config.objkt_api, timeout=config.http_timeout),
                TeiaProvider(config.teia_api, timeout=config.http_timeout),
            ]
            self._owned_clients.extend(providers)
            aggregator = MarketDataAggregator(
                providers,
                currency=self.currency,
                cache=MarketDataCache(ttl=config.market_data_cache_ttl),
            )

        super().__init__(
            aggregator=aggregator,
            wallet=wallet,
            marketplace_address=config.tezos_marketplace_contract,
            confirmations=config.confirmations,
            confirmation_timeout=config.confirmation_timeout,
        )
        self.indexer = indexer
        self.ipfs_gateway = config.ipfs_gateway

    async def close(self) -> None:
        for client in self._owned_clients:
            await client.close()

    # --- Reads ---

    async def get_nfts(self, wallet_address: str) -> List[NFT]:
        balances = await self.indexer.get_token_balances(wallet_address)

        nfts: List[NFT] = []
        for balance in balances:
            try:
                nft = self._to_nft(balance)
            except (KeyError, TypeError, AttributeError, ValueError) as e:
                logger.warning("nft_parse_error", error=str(e), record=_describe(balance))
                continue
            if nft is not None:
                nfts.append(nft)

        logger.info("nfts_fetched", chain=self.chain_type.value, wallet=wallet_address, count=len(nfts))
        return nfts

    def _to_nft(self, balance: Mapping[str, Any]) -> Optional[NFT]:
        token = balance["token"]
        metadata = token.get("metadata")
        if not isinstance(metadata, Mapping) or not metadata:
            logger.info("nft_skipped_no_metadata", record=_describe(balance))
            return None

        contract = token["contract"]
        address = contract["address"]
        token_id = str(token["tokenId"])

        extras: Dict[str, Any] = {
            k: v for k, v in metadata.items() if k not in _CORE_METADATA_KEYS
        }
        extras.update(flatten_attributes(metadata.get("attributes")))

        image = metadata.get("artifactUri") or metadata.get("displayUri") or metadata.get("thumbnailUri")
        return NFT(
            id=NFTId(f"{address}-{token_id}"),
            chain_type=self.chain_type,
            name=display_name(metadata),
            collection=contract.get("alias") or address,
            description=metadata.get("description") or "",
            image_url=resolve_media_uri(image, self.ipfs_gateway) or "",
            contract_address=address,
            token_id=token_id,
            symbol=metadata.get("symbol") or "",
            extra_attributes=extras,
        )

    async def _is_operator(self, contract: str, owner: str, operator: str, token_id: str) -> bool:
        return await self.indexer.is_operator(contract, owner, operator, token_id)

    async def _query_capabilities(self, contract: str) -> FrozenSet[WriteCapability]:
        entrypoints = await self.indexer.get_entrypoints(contract)
        capabilities = capabilities_from_entrypoints(entrypoints)
        logger.debug("contract_capabilities", contract=contract, capabilities=[c.value for c in capabilities])
        return capabilities

    # --- Contract calls ---

    def _approval_call(self, owner: str, operator: str, request: ListingRequest) -> ContractCall:
        return ContractCall(
            contract=request.asset_contract,
            entrypoint="update_operators",
            params=[{
                "add_operator": {
                    "owner": owner,
                    "operator": operator,
                    "token_id": request.token_id,
                }
            }],
        )

    def _listing_call(self, marketplace: str, request: ListingRequest) -> ContractCall:
        return ContractCall(
            contract=marketplace,
            entrypoint="list_token",
            params={
                "fa2_address": request.asset_contract,
                "token_id": request.token_id,
                "price": request.price,
                "seller": request.seller,
            },
        )

    def _burn_call(self, capability: WriteCapability, nft: NFT, owner: str) -> ContractCall:
        if capability is WriteCapability.NATIVE_BURN:
            return ContractCall(
                contract=nft.contract_address,  # type: ignore[arg-type]
                entrypoint="burn",
                params=[{"owner": owner, "token_id": nft.token_id, "amount": 1}],
            )
        return ContractCall(
            contract=nft.contract_address,  # type: ignore[arg-type]
            entrypoint="transfer",
            params=[{
                "from_": owner,
                "txs": [{"to_": TEZOS_BURN_ADDRESS, "token_id": nft.token_id, "amount": 1}],
            }],
        )


def _describe(balance: Any) -> str:
    """contract-tokenId for log lines, tolerant of broken records"""
    try:
        token = balance.get("token") or {}
        return f"{(token.get('contract') or {}).get('address')}-{token.get('tokenId')}"
    except AttributeError:
        return repr(balance)[:80]
