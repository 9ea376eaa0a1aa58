"""
Infrastructure Layer: TzKT Indexer Client
Read-only Tezos queries: token balances, operator big map, contract entrypoints.
"""
import asyncio
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from nftdesk.domain import FetchError
from nftdesk.infrastructure.http import HttpClient

logger = structlog.get_logger()


class TzktClient(HttpClient):
    """Raises FetchError on transport failures and non-200 answers"""

    def __init__(
        self,
        base_url: str,
        page_size: int = 100,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 10.0,
    ) -> None:
        super().__init__(session=session, timeout=timeout)
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size

    async def _get_json(self, path: str, params: Dict[str, Any], what: str) -> Any:
        url = f"{self.base_url}{path}"
        try:
            session = await self._get_session()
            async with session.get(url, params=params) as response:
                if response.status != 200:
                    logger.error("tzkt_api_error", status=response.status, url=url)
                    raise FetchError(f"Failed to fetch {what} from TzKT (HTTP {response.status})")
                return await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error("tzkt_fetch_error", url=url, error=str(e))
            raise FetchError(f"Failed to fetch {what} from TzKT: {e}") from e

    async def get_token_balances(self, account: str) -> List[Dict[str, Any]]:
        """All FA2 balances > 0 that carry an artifact, across every page"""
        balances: List[Dict[str, Any]] = []
        offset = 0
        while True:
            params = {
                "account": account,
                "balance.gt": 0,
                "token.standard": "fa2",
                "token.metadata.artifactUri.null": "false",
                "limit": self.page_size,
                "offset": offset,
            }
            page = await self._get_json("/v1/tokens/balances", params, "token balances")
            if not isinstance(page, list):
                raise FetchError("Unexpected token balances payload from TzKT")

            balances.extend(page)
            if len(page) < self.page_size:
                break
            offset += self.page_size

        logger.debug("tzkt_balances_fetched", account=account, count=len(balances))
        return balances

    async def is_operator(self, contract: str, owner: str, operator: str, token_id: str) -> bool:
        params = {
            "key.owner": owner,
            "key.operator": operator,
            "key.token_id": token_id,
            "active": "true",
            "limit": 1,
        }
        keys = await self._get_json(
            f"/v1/contracts/{contract}/bigmaps/operators/keys", params, "operator keys"
        )
        return bool(keys)

    async def get_entrypoints(self, contract: str) -> List[str]:
        entries = await self._get_json(f"/v1/contracts/{contract}/entrypoints", {}, "entrypoints")
        return [e["name"] for e in entries if isinstance(e, dict) and e.get("name")]
