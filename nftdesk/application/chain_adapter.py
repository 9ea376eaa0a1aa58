"""
Application Layer: Chain Adapter Base
Shared listing state machine, burn dispatch and metadata normalization.
Chain-specific adapters supply reads and the shape of each contract call.
"""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

import structlog

from nftdesk.domain import (
    NFT,
    ChainType,
    MarketData,
    ListingRequest,
    ListingState,
    ApprovalError,
    ConfigError,
    ListingError,
    ValidationError,
    WriteCapability,
    select_burn_capability,
    to_smallest_unit,
)
from nftdesk.application.market_data import MarketDataAggregator
from nftdesk.application.ports import IOperation, IWalletSession

logger = structlog.get_logger()

MARKETPLACE_NOT_CONFIGURED = "Marketplace contract address not configured"
UNNAMED_NFT = "Unnamed NFT"


@dataclass(frozen=True)
class ContractCall:
    """One entrypoint invocation to submit through the wallet session"""
    contract: str
    entrypoint: str
    params: Any


def display_name(metadata: Mapping[str, Any]) -> str:
    return metadata.get("name") or metadata.get("symbol") or UNNAMED_NFT


def flatten_attributes(raw: Any) -> Dict[str, Any]:
    """
    Accepts TZIP-21 / OpenSea style trait lists ([{name|trait_type, value}])
    or a plain mapping. Anything else yields no attributes.
    """
    if isinstance(raw, Mapping):
        return {str(k): v for k, v in raw.items()}

    flat: Dict[str, Any] = {}
    if isinstance(raw, list):
        for item in raw:
            if not isinstance(item, Mapping):
                continue
            key = item.get("name") or item.get("trait_type")
            if key:
                flat[str(key)] = item.get("value")
    return flat


class BaseChainAdapter(ABC):
    """
    Listing runs Idle -> CheckingOperator -> (ApprovingOperator) -> CreatingListing -> Confirmed,
    with Failed reachable from every step. The listing phase is never entered before the
    approval confirmation has been observed. Nothing is rolled back on failure.
    """

    chain_type: ChainType
    currency: str
    unit_multiplier: int = 1_000_000

    def __init__(
        self,
        aggregator: MarketDataAggregator,
        wallet: Optional[IWalletSession] = None,
        marketplace_address: Optional[str] = None,
        confirmations: int = 1,
        confirmation_timeout: Optional[float] = None,
    ) -> None:
        self.aggregator = aggregator
        self.wallet = wallet
        self.marketplace_address = marketplace_address
        self.confirmations = confirmations
        self.confirmation_timeout = confirmation_timeout
        # Latest attempt on this adapter only; per-call progress is in the listing_state log events
        self.last_listing_state = ListingState.IDLE
        self._capabilities: Dict[str, FrozenSet[WriteCapability]] = {}

    # --- Reads ---

    @abstractmethod
    async def get_nfts(self, wallet_address: str) -> List[NFT]:
        ...

    async def get_market_data(self, nft: NFT) -> MarketData:
        return await self.aggregator.get_market_data(nft)

    # --- Chain hooks ---

    @abstractmethod
    async def _is_operator(self, contract: str, owner: str, operator: str, token_id: str) -> bool:
        ...

    @abstractmethod
    def _approval_call(self, owner: str, operator: str, request: ListingRequest) -> ContractCall:
        ...

    @abstractmethod
    def _listing_call(self, marketplace: str, request: ListingRequest) -> ContractCall:
        ...

    @abstractmethod
    async def _query_capabilities(self, contract: str) -> FrozenSet[WriteCapability]:
        ...

    @abstractmethod
    def _burn_call(self, capability: WriteCapability, nft: NFT, owner: str) -> ContractCall:
        ...

    def _validate_request(self, request: ListingRequest) -> None:
        """Chain-specific checks that must pass before any transaction is sent"""
        return None

    async def close(self) -> None:
        return None

    # --- Listing ---

    async def list_nft(self, nft: NFT, price: "float | Decimal") -> bool:
        marketplace = self.marketplace_address
        if not marketplace:
            raise ConfigError(MARKETPLACE_NOT_CONFIGURED)

        if not nft.is_listable:
            raise ValidationError("Missing NFT contract address or token ID")

        price_units = to_smallest_unit(price, self.unit_multiplier)
        wallet = self._require_wallet()
        seller = await wallet.get_address()
        if not seller:
            raise ConfigError("No wallet address available")

        request = ListingRequest(
            asset_contract=nft.contract_address,  # type: ignore[arg-type]
            token_id=nft.token_id,  # type: ignore[arg-type]
            price=price_units,
            seller=seller,
        )
        self._validate_request(request)
        self._set_state(ListingState.IDLE, nft)

        await self._ensure_operator(wallet, marketplace, request, nft)

        self._set_state(ListingState.CREATING_LISTING, nft)
        try:
            call = self._listing_call(marketplace, request)
            operation = await wallet.submit(call.contract, call.entrypoint, call.params)
            await self._wait_for_confirmation(operation)
        except Exception as e:
            self._set_state(ListingState.FAILED, nft)
            logger.error("listing_failed", nft_id=nft.id, error=str(e))
            raise ListingError(f"Failed to create listing on marketplace: {e}") from e

        self._set_state(ListingState.CONFIRMED, nft)
        logger.info("listing_confirmed", nft_id=nft.id, price=price_units, op_hash=operation.hash)
        return True

    async def _ensure_operator(
        self,
        wallet: IWalletSession,
        marketplace: str,
        request: ListingRequest,
        nft: NFT,
    ) -> None:
        self._set_state(ListingState.CHECKING_OPERATOR, nft)
        try:
            authorized = await self._is_operator(
                request.asset_contract, request.seller, marketplace, request.token_id
            )
            if authorized:
                logger.info("operator_already_approved", nft_id=nft.id, operator=marketplace)
                return

            self._set_state(ListingState.APPROVING_OPERATOR, nft)
            call = self._approval_call(request.seller, marketplace, request)
            operation = await wallet.submit(call.contract, call.entrypoint, call.params)
            await self._wait_for_confirmation(operation)
        except Exception as e:
            self._set_state(ListingState.FAILED, nft)
            logger.error("operator_approval_failed", nft_id=nft.id, error=str(e))
            raise ApprovalError(f"Failed to approve marketplace operator: {e}") from e

        logger.info("operator_approved", nft_id=nft.id, operator=marketplace, op_hash=operation.hash)

    # --- Burn ---

    async def get_capabilities(self, contract: str) -> FrozenSet[WriteCapability]:
        """Queried once per contract, then served from memory"""
        if contract not in self._capabilities:
            self._capabilities[contract] = await self._query_capabilities(contract)
        return self._capabilities[contract]

    async def burn_nft(self, nft: NFT) -> None:
        if not nft.is_listable:
            raise ValidationError("Missing NFT contract address or token ID")

        wallet = self._require_wallet()
        owner = await wallet.get_address()
        if not owner:
            raise ConfigError("No wallet address available")

        capabilities = await self.get_capabilities(nft.contract_address)  # type: ignore[arg-type]
        capability = select_burn_capability(capabilities)
        call = self._burn_call(capability, nft, owner)

        logger.info("burn_submitting", nft_id=nft.id, capability=capability.value)
        operation = await wallet.submit(call.contract, call.entrypoint, call.params)
        await self._wait_for_confirmation(operation)

        self.aggregator.invalidate(nft)
        logger.info("burn_confirmed", nft_id=nft.id, op_hash=operation.hash)

    # --- Helpers ---

    def _require_wallet(self) -> IWalletSession:
        if self.wallet is None:
            raise ConfigError(f"No wallet session configured for {self.chain_type.value}")
        return self.wallet

    async def _wait_for_confirmation(self, operation: IOperation) -> None:
        waiter = operation.confirmation(self.confirmations)
        if self.confirmation_timeout is None:
            await waiter
        else:
            # Only the local wait is cancelled; the operation stays injected
            await asyncio.wait_for(waiter, timeout=self.confirmation_timeout)

    def _set_state(self, state: ListingState, nft: NFT) -> None:
        self.last_listing_state = state
        logger.debug("listing_state", chain=self.chain_type.value, nft_id=nft.id, state=state.name)
