"""
Infrastructure Layer: Market Data Providers
One adapter per marketplace pricing source.
Providers are lossy: any failure becomes None, never an exception.
"""
import math
from typing import Any, Dict, Mapping, Optional

import aiohttp
import structlog

from nftdesk.domain import NFT, MarketData
from nftdesk.infrastructure.http import HttpClient

logger = structlog.get_logger()


def parse_numeric(value: Any) -> Optional[float]:
    """Coerces one field; anything non-numeric becomes None"""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (ValueError, TypeError):
        return None
    return None if math.isnan(parsed) else parsed


class RestMarketDataProvider(HttpClient):
    """
    GET {base_url}/...{contract}/{token_id}... and map the JSON body.
    Subclasses define the path template and field mapping.
    """

    name: str = ""
    currency: str = ""
    path_template: str = ""
    # canonical field -> source field
    field_map: Mapping[str, str] = {}

    def __init__(self, base_url: str, session: Optional[aiohttp.ClientSession] = None, timeout: float = 10.0) -> None:
        super().__init__(session=session, timeout=timeout)
        self.base_url = base_url.rstrip("/")

    def build_url(self, nft: NFT) -> str:
        path = self.path_template.format(contract=nft.contract_address, token_id=nft.token_id)
        return f"{self.base_url}{path}"

    def map_response(self, data: Mapping[str, Any]) -> MarketData:
        values = {field: parse_numeric(data.get(source)) for field, source in self.field_map.items()}
        return MarketData(currency=self.currency, source=self.name, **values)

    async def fetch(self, nft: NFT) -> Optional[MarketData]:
        url = self.build_url(nft)
        try:
            session = await self._get_session()
            async with session.get(url) as response:
                if response.status != 200:
                    logger.info("provider_http_error", provider=self.name, status=response.status, url=url)
                    return None
                data = await response.json()
        except Exception as e:
            logger.warning("provider_fetch_error", provider=self.name, error=str(e))
            return None

        if not isinstance(data, Mapping):
            logger.warning("provider_bad_payload", provider=self.name, url=url)
            return None
        return self.map_response(data)


class ObjktProvider(RestMarketDataProvider):
    name = "Objkt"
    currency = "XTZ"
    path_template = "/v1/token/{contract}/{token_id}/marketplace"
    field_map = {
        "floor_price": "floor_price",
        "last_sale_price": "last_sale_price",
        "current_listings": "active_listings_count",
    }


class TeiaProvider(RestMarketDataProvider):
    name = "Teia"
    currency = "XTZ"
    path_template = "/tokens/{contract}/{token_id}"
    field_map = {
        "floor_price": "lowest_price",
        "last_sale_price": "last_sale_price",
        "current_listings": "active_listings",
    }


STARGAZE_TOKEN_QUERY = """
query TokenMarket($collectionAddr: String!, $tokenId: String!) {
  token(collectionAddr: $collectionAddr, tokenId: $tokenId) {
    lastSalePrice { amount denom }
    collection {
      floorPrice
      tokenCounts { listed }
    }
  }
}
"""


class StargazeMarketProvider(HttpClient):
    """Pricing from the Stargaze GraphQL API. Amounts arrive in ustars."""

    name = "Stargaze"
    currency = "STARS"

    def __init__(
        self,
        graphql_url: str,
        unit_multiplier: int = 1_000_000,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 10.0,
    ) -> None:
        super().__init__(session=session, timeout=timeout)
        self.graphql_url = graphql_url
        self.unit_multiplier = unit_multiplier

    def _to_display(self, value: Any) -> Optional[float]:
        parsed = parse_numeric(value)
        return None if parsed is None else parsed / self.unit_multiplier

    def map_response(self, token: Mapping[str, Any]) -> MarketData:
        collection: Dict[str, Any] = token.get("collection") or {}
        last_sale: Dict[str, Any] = token.get("lastSalePrice") or {}
        counts: Dict[str, Any] = collection.get("tokenCounts") or {}
        return MarketData(
            currency=self.currency,
            floor_price=self._to_display(collection.get("floorPrice")),
            last_sale_price=self._to_display(last_sale.get("amount")),
            current_listings=parse_numeric(counts.get("listed")),
            source=self.name,
        )

    async def fetch(self, nft: NFT) -> Optional[MarketData]:
        payload = {
            "query": STARGAZE_TOKEN_QUERY,
            "variables": {"collectionAddr": nft.contract_address, "tokenId": nft.token_id},
        }
        try:
            session = await self._get_session()
            async with session.post(self.graphql_url, json=payload) as response:
                if response.status != 200:
                    logger.info("provider_http_error", provider=self.name, status=response.status)
                    return None
                body = await response.json()
        except Exception as e:
            logger.warning("provider_fetch_error", provider=self.name, error=str(e))
            return None

        if not isinstance(body, Mapping):
            return None
        token = (body.get("data") or {}).get("token")
        if not isinstance(token, Mapping):
            return None
        return self.map_response(token)
