"""
Domain Layer
"""
from .models import (
    NFT,
    NFTId,
    ChainType,
    MarketData,
    ListingRequest,
    ListingState,
    DomainError,
    FetchError,
    ValidationError,
    ConfigError,
    ApprovalError,
    ListingError,
    UnsupportedOperationError,
    UnsupportedChainError,
)
from .tokens import (
    WriteCapability,
    capabilities_from_entrypoints,
    select_burn_capability,
    resolve_media_uri,
    to_smallest_unit,
)

__all__ = [
    "NFT",
    "NFTId",
    "ChainType",
    "MarketData",
    "ListingRequest",
    "ListingState",
    "DomainError",
    "FetchError",
    "ValidationError",
    "ConfigError",
    "ApprovalError",
    "ListingError",
    "UnsupportedOperationError",
    "UnsupportedChainError",
    "WriteCapability",
    "capabilities_from_entrypoints",
    "select_burn_capability",
    "resolve_media_uri",
    "to_smallest_unit",
]
