"""
Infrastructure Layer: Stargaze Clients
GraphQL indexer for owned tokens, LCD REST for cw721 smart queries.
"""
import asyncio
import base64
import json
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from nftdesk.domain import FetchError
from nftdesk.infrastructure.http import HttpClient

logger = structlog.get_logger()

OWNED_TOKENS_QUERY = """
query OwnedTokens($owner: String!, $limit: Int, $offset: Int) {
  tokens(ownerAddrOrName: $owner, limit: $limit, offset: $offset) {
    tokens {
      tokenId
      name
      description
      imageUrl
      media { url }
      collection { contractAddress name }
      traits { name value }
    }
    pageInfo { total }
  }
}
"""


class StargazeClient(HttpClient):
    """Raises FetchError on transport failures, non-200 answers and GraphQL errors"""

    def __init__(
        self,
        graphql_url: str,
        lcd_url: str,
        page_size: int = 100,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 10.0,
    ) -> None:
        super().__init__(session=session, timeout=timeout)
        self.graphql_url = graphql_url
        self.lcd_url = lcd_url.rstrip("/")
        self.page_size = page_size

    async def _graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        try:
            session = await self._get_session()
            async with session.post(self.graphql_url, json={"query": query, "variables": variables}) as response:
                if response.status != 200:
                    logger.error("stargaze_graphql_error", status=response.status)
                    raise FetchError(f"Failed to fetch tokens from Stargaze (HTTP {response.status})")
                body = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error("stargaze_fetch_error", error=str(e))
            raise FetchError(f"Failed to fetch tokens from Stargaze: {e}") from e

        if not isinstance(body, dict):
            raise FetchError("Unexpected GraphQL payload from Stargaze")
        if body.get("errors"):
            message = body["errors"][0].get("message", "unknown error")
            raise FetchError(f"Stargaze GraphQL error: {message}")
        data = body.get("data") or {}
        if not isinstance(data, dict):
            raise FetchError("Unexpected GraphQL payload from Stargaze")
        return data

    async def get_owned_tokens(self, owner: str) -> List[Dict[str, Any]]:
        tokens: List[Dict[str, Any]] = []
        offset = 0
        while True:
            data = await self._graphql(
                OWNED_TOKENS_QUERY,
                {"owner": owner, "limit": self.page_size, "offset": offset},
            )
            page = (data.get("tokens") or {}).get("tokens") or []
            tokens.extend(page)
            if len(page) < self.page_size:
                break
            offset += self.page_size

        logger.debug("stargaze_tokens_fetched", owner=owner, count=len(tokens))
        return tokens

    async def smart_query(self, contract: str, query: Dict[str, Any]) -> Any:
        encoded = base64.b64encode(json.dumps(query).encode()).decode()
        url = f"{self.lcd_url}/cosmwasm/wasm/v1/contract/{contract}/smart/{encoded}"
        try:
            session = await self._get_session()
            async with session.get(url) as response:
                if response.status != 200:
                    logger.error("stargaze_lcd_error", status=response.status, contract=contract)
                    raise FetchError(f"Smart query on {contract} failed (HTTP {response.status})")
                body = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise FetchError(f"Smart query on {contract} failed: {e}") from e
        if not isinstance(body, dict):
            raise FetchError(f"Unexpected smart query payload from {contract}")
        return body.get("data")

    async def is_approved(self, contract: str, token_id: str, spender: str) -> bool:
        data = await self.smart_query(
            contract, {"approvals": {"token_id": token_id, "include_expired": False}}
        )
        approvals = (data or {}).get("approvals") or []
        return any(a.get("spender") == spender for a in approvals)
