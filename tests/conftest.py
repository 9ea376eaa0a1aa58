"""
Pytest configuration and shared fixtures for nftdesk tests.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from nftdesk.domain import NFT, NFTId, ChainType, MarketData
from nftdesk.infrastructure.config import Settings


# =============================================================================
# Test Data
# =============================================================================

OWNER = "tz1Owner"
MARKETPLACE = "KT1MarketPlace"
NFT_CONTRACT = "KT1NFTContract"
STARGAZE_OWNER = "stars1owner"
STARGAZE_MARKETPLACE = "stars1marketplace"
STARGAZE_COLLECTION = "stars1collection"


def make_nft(
    contract: Optional[str] = NFT_CONTRACT,
    token_id: Optional[str] = "1",
    chain: ChainType = ChainType.TEZOS,
    name: str = "Test NFT",
) -> NFT:
    return NFT(
        id=NFTId(f"{contract}-{token_id}"),
        chain_type=chain,
        name=name,
        contract_address=contract,
        token_id=token_id,
    )


def balance_record(
    address: str = "KT1RJ6PbjHpwc3M5rw5s2Nbmefwbuwbdxton",
    token_id: str = "1",
    alias: Optional[str] = "Tezos Collectibles",
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """TzKT /v1/tokens/balances item"""
    return {
        "token": {
            "contract": {"address": address, "alias": alias},
            "tokenId": token_id,
            "metadata": metadata,
        },
        "balance": "1",
    }


# =============================================================================
# Fake aiohttp session
# =============================================================================


class FakeResponse:
    """Async context manager shaped like aiohttp.ClientResponse"""

    def __init__(self, status: int = 200, payload: Any = None) -> None:
        self.status = status
        self._payload = payload

    async def json(self) -> Any:
        if isinstance(self._payload, BaseException):
            raise self._payload
        return self._payload

    async def text(self) -> str:
        return json.dumps(self._payload)

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


class FakeSession:
    """
    Serves queued responses in order and records every request.
    Queue an Exception instance to make the request raise.
    """

    def __init__(self, responses: Optional[List[Any]] = None) -> None:
        self.responses: List[Any] = list(responses or [])
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def _next(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._next("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._next("POST", url, **kwargs)

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# Fake wallet session
# =============================================================================


class FakeOperation:
    def __init__(self, op_hash: str, error: Optional[BaseException] = None, delay: float = 0.0) -> None:
        self.hash = op_hash
        self.confirmed_with: Optional[int] = None
        self._error = error
        self._delay = delay

    async def confirmation(self, count: int) -> None:
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        self.confirmed_with = count


class FakeWallet:
    """Records submissions; failures can be injected per entrypoint"""

    def __init__(self, address: str = OWNER) -> None:
        self.address = address
        self.submissions: List[tuple] = []
        self.operations: List[FakeOperation] = []
        self.submit_errors: Dict[str, BaseException] = {}
        self.confirm_errors: Dict[str, BaseException] = {}
        self.confirm_delay: float = 0.0

    async def get_address(self) -> str:
        return self.address

    async def submit(self, contract: str, entrypoint: str, params: Any) -> FakeOperation:
        self.submissions.append((contract, entrypoint, params))
        if entrypoint in self.submit_errors:
            raise self.submit_errors[entrypoint]
        operation = FakeOperation(
            f"op_{entrypoint}",
            error=self.confirm_errors.get(entrypoint),
            delay=self.confirm_delay,
        )
        self.operations.append(operation)
        return operation

    @property
    def entrypoints(self) -> List[str]:
        return [entrypoint for _, entrypoint, _ in self.submissions]


# =============================================================================
# Fake market data provider
# =============================================================================


class FakeProvider:
    def __init__(self, name: str, result: Any = None) -> None:
        self.name = name
        self.fetch = AsyncMock(side_effect=result) if isinstance(result, BaseException) else AsyncMock(return_value=result)


def market_data(source: str = "Objkt", floor: Optional[float] = 1.0) -> MarketData:
    return MarketData(currency="XTZ", floor_price=floor, last_sale_price=0.9, current_listings=5, source=source)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def config() -> Settings:
    """Settings isolated from .env"""
    return Settings(
        _env_file=None,
        TZKT_API="https://api.tzkt.io",
        OBJKT_API="https://api.objkt.com",
        TEIA_API="https://api.teia.art",
        TEZOS_MARKETPLACE_CONTRACT=MARKETPLACE,
        STARGAZE_GRAPHQL_URL="https://graphql.example/graphql",
        STARGAZE_LCD_URL="https://lcd.example",
        STARGAZE_MARKETPLACE_CONTRACT=STARGAZE_MARKETPLACE,
        IPFS_GATEWAY="https://gateway.example",
        CONFIRMATIONS=1,
    )


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()


@pytest.fixture
def nft() -> NFT:
    return make_nft()
