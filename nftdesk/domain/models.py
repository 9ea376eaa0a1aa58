"""
Domain Layer: Entities and Value Objects
Pure Python, No external dependencies.
"""
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Mapping, Optional, NewType

# --- Value Objects ---

NFTId = NewType("NFTId", str)


class ChainType(str, Enum):
    TEZOS = "tezos"
    STARGAZE = "stargaze"


@dataclass(frozen=True)
class MarketData:
    """Aggregated pricing for a single token"""
    currency: str
    floor_price: Optional[float] = None
    last_sale_price: Optional[float] = None
    current_listings: Optional[float] = None
    source: str = "none"

    @property
    def is_informative(self) -> bool:
        """True when at least one numeric signal is present"""
        return (
            self.floor_price is not None
            or self.last_sale_price is not None
            or self.current_listings is not None
        )

    @classmethod
    def empty(cls, currency: str) -> "MarketData":
        return cls(currency=currency, source="none")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"currency": self.currency, "source": self.source}
        if self.floor_price is not None:
            data["floorPrice"] = self.floor_price
        if self.last_sale_price is not None:
            data["lastSalePrice"] = self.last_sale_price
        if self.current_listings is not None:
            data["currentListings"] = self.current_listings
        return data


@dataclass(frozen=True)
class ListingRequest:
    """Parameters of one listing attempt. Price is in the chain's smallest unit."""
    asset_contract: str
    token_id: str
    price: int
    seller: str


# --- Entities ---

class ListingState(Enum):
    IDLE = auto()
    CHECKING_OPERATOR = auto()
    APPROVING_OPERATOR = auto()
    CREATING_LISTING = auto()
    CONFIRMED = auto()
    FAILED = auto()


@dataclass(frozen=True)
class NFT:
    """
    Normalized token record.
    Built fresh from indexer data on every fetch and never mutated.
    """
    id: NFTId
    chain_type: ChainType
    name: str
    collection: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    contract_address: Optional[str] = None
    token_id: Optional[str] = None
    symbol: Optional[str] = None
    extra_attributes: Mapping[str, Any] = field(default_factory=dict, hash=False)

    @property
    def is_listable(self) -> bool:
        return bool(self.contract_address) and bool(self.token_id)

    @property
    def cache_key(self) -> str:
        return f"{self.contract_address}|{self.token_id}"

    @property
    def attributes(self) -> Dict[str, Any]:
        """Flat attribute mapping: join-key fields first, then extras"""
        merged: Dict[str, Any] = {}
        if self.contract_address:
            merged["contractAddress"] = self.contract_address
        if self.token_id:
            merged["tokenId"] = self.token_id
        if self.symbol:
            merged["symbol"] = self.symbol
        for key, value in self.extra_attributes.items():
            merged.setdefault(key, value)
        return merged

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "chainType": self.chain_type.value,
            "name": self.name,
            "collection": self.collection,
            "description": self.description,
            "imageUrl": self.image_url,
            "attributes": self.attributes,
        }


# --- Exceptions ---

class DomainError(Exception):
    """Base domain exception"""
    code = "domain_error"


class FetchError(DomainError):
    """Raised when an indexer is unreachable or answers with a non-success status"""
    code = "fetch_error"


class ValidationError(DomainError):
    """Raised when a token lacks the identity fields an operation needs"""
    code = "validation_error"


class ConfigError(DomainError):
    """Raised when required configuration is missing"""
    code = "config_error"


class ApprovalError(DomainError):
    """Raised when the operator approval phase fails"""
    code = "approval_error"


class ListingError(DomainError):
    """Raised when the listing creation phase fails"""
    code = "listing_error"


class UnsupportedOperationError(DomainError):
    """Raised when a contract exposes no capability for the requested write"""
    code = "unsupported_operation"


class UnsupportedChainError(DomainError):
    """Raised when no adapter is registered for a chain"""
    code = "unsupported_chain"
