"""
Infrastructure Layer: Shared HTTP session handling
"""
from typing import Optional

import aiohttp


class HttpClient:
    """
    Lazily creates one pooled aiohttp session per client.
    A session passed in by the caller is reused while it stays open.
    """

    def __init__(self, session: Optional[aiohttp.ClientSession] = None, timeout: float = 10.0) -> None:
        self._session = session
        self._timeout = timeout

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=20,
                ttl_dns_cache=300,  # Cache DNS 5min
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={
                    "Accept": "application/json",
                    "User-Agent": "nftdesk/0.1",
                },
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
