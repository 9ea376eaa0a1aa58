"""
Application Layer: Market Data Aggregation
Priority-ordered providers behind a TTL cache.
"""
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence

import structlog

from nftdesk.domain import NFT, MarketData, ValidationError
from nftdesk.application.ports import IMarketDataProvider

logger = structlog.get_logger()

DEFAULT_CACHE_TTL = 5 * 60  # seconds


@dataclass(frozen=True)
class CacheEntry:
    data: MarketData
    captured_at: float


class MarketDataCache:
    """
    Token-keyed market data cache.
    Expiry is evaluated at read time against `clock`; there is no sweeper.
    Concurrent misses for the same key may each fetch, the last write wins.
    """

    def __init__(self, ttl: float = DEFAULT_CACHE_TTL, clock: Callable[[], float] = time.time) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[MarketData]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.captured_at >= self.ttl:
            return None
        return entry.data

    def put(self, key: str, data: MarketData) -> None:
        self._entries[key] = CacheEntry(data=data, captured_at=self._clock())

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class MarketDataAggregator:
    """
    First informative answer wins.
    Providers are tried sequentially in list order; never in parallel.
    """

    def __init__(
        self,
        providers: Sequence[IMarketDataProvider],
        currency: str,
        cache: Optional[MarketDataCache] = None,
    ) -> None:
        self.providers = tuple(providers)
        self.currency = currency
        self.cache = cache if cache is not None else MarketDataCache()

    async def get_market_data(self, nft: NFT) -> MarketData:
        if not nft.is_listable:
            raise ValidationError("Missing contract address or token ID")

        key = nft.cache_key
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("market_data_cache_hit", key=key, source=cached.source)
            return cached

        logger.info("market_data_fetching", nft=nft.name, providers=[p.name for p in self.providers])

        for provider in self.providers:
            try:
                data = await provider.fetch(nft)
            except Exception as e:
                # A pricing source going down is expected; move on
                logger.warning("provider_failed", provider=provider.name, error=str(e))
                continue

            if data is not None and data.is_informative:
                self.cache.put(key, data)
                logger.info("market_data_found", key=key, source=provider.name)
                return data

            logger.debug("provider_no_data", provider=provider.name, key=key)

        logger.info("market_data_unavailable", key=key)
        return MarketData.empty(self.currency)

    def invalidate(self, nft: NFT) -> None:
        if nft.is_listable:
            self.cache.invalidate(nft.cache_key)
