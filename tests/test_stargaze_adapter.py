"""
Unit tests for the Stargaze adapter and its indexer client.

Run with: pytest tests/test_stargaze_adapter.py -v
"""

import base64
import json
from unittest.mock import AsyncMock

import pytest

from nftdesk.application.market_data import MarketDataAggregator
from nftdesk.domain import ChainType, ConfigError, FetchError, ListingState, ValidationError
from nftdesk.infrastructure.stargaze import StargazeAdapter
from nftdesk.infrastructure.stargaze_api import StargazeClient

from conftest import (
    STARGAZE_COLLECTION,
    STARGAZE_MARKETPLACE,
    STARGAZE_OWNER,
    FakeResponse,
    FakeSession,
    FakeWallet,
    make_nft,
)


def graphql_tokens(*tokens):
    return FakeResponse(200, {"data": {"tokens": {"tokens": list(tokens), "pageInfo": {"total": len(tokens)}}}})


def token(token_id="42", **overrides):
    data = {
        "tokenId": token_id,
        "name": f"Bad Kid #{token_id}",
        "description": "A kid",
        "imageUrl": "ipfs://QmKid",
        "media": {"url": "https://cdn.example/kid.png"},
        "collection": {"contractAddress": STARGAZE_COLLECTION, "name": "Bad Kids"},
        "traits": [{"name": "Hat", "value": "Cap"}],
    }
    data.update(overrides)
    return data


@pytest.fixture
def stargaze_nft():
    return make_nft(contract=STARGAZE_COLLECTION, token_id="42", chain=ChainType.STARGAZE)


@pytest.fixture
def stargaze_wallet():
    return FakeWallet(address=STARGAZE_OWNER)


@pytest.fixture
def indexer():
    client = AsyncMock(spec=StargazeClient)
    client.is_approved.return_value = False
    return client


@pytest.fixture
def adapter(config, stargaze_wallet, indexer):
    return StargazeAdapter(
        config,
        wallet=stargaze_wallet,
        indexer=indexer,
        aggregator=MarketDataAggregator([], currency="STARS"),
    )


def http_adapter(config, responses, page_size=100):
    session = FakeSession(responses)
    client = StargazeClient("https://graphql.example/graphql", "https://lcd.example", page_size=page_size, session=session)
    return StargazeAdapter(config, indexer=client, aggregator=MarketDataAggregator([], "STARS")), session


# =============================================================================
# get_nfts
# =============================================================================


class TestGetNFTs:
    @pytest.mark.asyncio
    async def test_normalizes_tokens(self, config):
        adapter, session = http_adapter(config, [graphql_tokens(token())])

        (nft,) = await adapter.get_nfts(STARGAZE_OWNER)

        assert nft.id == f"{STARGAZE_COLLECTION}-42"
        assert nft.chain_type is ChainType.STARGAZE
        assert nft.name == "Bad Kid #42"
        assert nft.collection == "Bad Kids"
        assert nft.image_url == "https://gateway.example/ipfs/QmKid"
        assert nft.extra_attributes == {"Hat": "Cap"}
        assert session.calls[0]["json"]["variables"]["owner"] == STARGAZE_OWNER

    @pytest.mark.asyncio
    async def test_media_fallback_and_unnamed(self, config):
        adapter, _ = http_adapter(config, [graphql_tokens(token(name=None, imageUrl=None))])

        (nft,) = await adapter.get_nfts(STARGAZE_OWNER)

        assert nft.name == "Unnamed NFT"
        assert nft.image_url == "https://cdn.example/kid.png"

    @pytest.mark.asyncio
    async def test_tokens_without_collection_are_skipped(self, config):
        adapter, _ = http_adapter(config, [graphql_tokens(token(collection=None), token("7"))])

        nfts = await adapter.get_nfts(STARGAZE_OWNER)

        assert [n.token_id for n in nfts] == ["7"]

    @pytest.mark.asyncio
    async def test_graphql_errors_raise(self, config):
        adapter, _ = http_adapter(config, [FakeResponse(200, {"errors": [{"message": "owner not found"}]})])

        with pytest.raises(FetchError, match="owner not found"):
            await adapter.get_nfts(STARGAZE_OWNER)

    @pytest.mark.asyncio
    async def test_http_error_raises(self, config):
        adapter, _ = http_adapter(config, [FakeResponse(502, {})])

        with pytest.raises(FetchError):
            await adapter.get_nfts(STARGAZE_OWNER)

    @pytest.mark.asyncio
    async def test_non_object_body_raises(self, config):
        adapter, _ = http_adapter(config, [FakeResponse(200, [])])

        with pytest.raises(FetchError, match="Unexpected GraphQL payload"):
            await adapter.get_nfts(STARGAZE_OWNER)

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self, config):
        adapter, _ = http_adapter(config, [FakeResponse(200, json.JSONDecodeError("Expecting value", "<html>", 0))])

        with pytest.raises(FetchError, match="Failed to fetch tokens from Stargaze"):
            await adapter.get_nfts(STARGAZE_OWNER)


# =============================================================================
# Indexer client
# =============================================================================


class TestStargazeClient:
    @pytest.mark.asyncio
    async def test_is_approved_uses_approvals_smart_query(self):
        session = FakeSession([
            FakeResponse(200, {"data": {"approvals": [{"spender": STARGAZE_MARKETPLACE, "expires": {"never": {}}}]}}),
        ])
        client = StargazeClient("https://graphql.example/graphql", "https://lcd.example/", session=session)

        assert await client.is_approved(STARGAZE_COLLECTION, "42", STARGAZE_MARKETPLACE) is True

        url = session.calls[0]["url"]
        prefix = f"https://lcd.example/cosmwasm/wasm/v1/contract/{STARGAZE_COLLECTION}/smart/"
        assert url.startswith(prefix)
        query = json.loads(base64.b64decode(url[len(prefix):]))
        assert query == {"approvals": {"token_id": "42", "include_expired": False}}

    @pytest.mark.asyncio
    async def test_other_spender_is_not_approval(self):
        session = FakeSession([FakeResponse(200, {"data": {"approvals": [{"spender": "stars1other"}]}})])
        client = StargazeClient("https://graphql.example/graphql", "https://lcd.example", session=session)

        assert await client.is_approved(STARGAZE_COLLECTION, "42", STARGAZE_MARKETPLACE) is False

    @pytest.mark.asyncio
    async def test_malformed_smart_query_body_raises(self):
        session = FakeSession([FakeResponse(200, "not an object")])
        client = StargazeClient("https://graphql.example/graphql", "https://lcd.example", session=session)

        with pytest.raises(FetchError, match="Unexpected smart query payload"):
            await client.is_approved(STARGAZE_COLLECTION, "42", STARGAZE_MARKETPLACE)


# =============================================================================
# list_nft / burn_nft
# =============================================================================


class TestWrites:
    @pytest.mark.asyncio
    async def test_approve_then_set_ask(self, adapter, stargaze_nft, stargaze_wallet, indexer):
        assert await adapter.list_nft(stargaze_nft, 1.5) is True

        indexer.is_approved.assert_awaited_once_with(STARGAZE_COLLECTION, "42", STARGAZE_MARKETPLACE)
        approve, ask = stargaze_wallet.submissions
        assert approve == (STARGAZE_COLLECTION, "approve", {"spender": STARGAZE_MARKETPLACE, "token_id": "42"})

        contract, entrypoint, params = ask
        assert (contract, entrypoint) == (STARGAZE_MARKETPLACE, "set_ask")
        assert params["sale_type"] == "fixed_price"
        assert params["collection"] == STARGAZE_COLLECTION
        assert params["token_id"] == 42
        assert params["price"] == {"amount": "1500000", "denom": "ustars"}
        assert int(params["expires"]) > 0

    @pytest.mark.asyncio
    async def test_existing_approval_skips_approve(self, adapter, stargaze_nft, stargaze_wallet, indexer):
        indexer.is_approved.return_value = True

        await adapter.list_nft(stargaze_nft, 3)

        assert stargaze_wallet.entrypoints == ["set_ask"]

    @pytest.mark.asyncio
    async def test_non_numeric_token_id_rejected_before_approval(self, adapter, stargaze_wallet, indexer):
        indexer.is_approved.return_value = False
        nft = make_nft(contract=STARGAZE_COLLECTION, token_id="abc", chain=ChainType.STARGAZE)

        with pytest.raises(ValidationError, match="must be numeric"):
            await adapter.list_nft(nft, 1)
        assert stargaze_wallet.submissions == []
        indexer.is_approved.assert_not_awaited()
        assert adapter.last_listing_state is ListingState.IDLE

    @pytest.mark.asyncio
    async def test_missing_marketplace(self, config, indexer, stargaze_nft):
        config = config.model_copy(update={"stargaze_marketplace_contract": None})
        adapter = StargazeAdapter(config, wallet=FakeWallet(), indexer=indexer, aggregator=MarketDataAggregator([], "STARS"))

        with pytest.raises(ConfigError, match="Marketplace contract address not configured"):
            await adapter.list_nft(stargaze_nft, 1)

    @pytest.mark.asyncio
    async def test_burn_uses_cw721_burn(self, adapter, stargaze_nft, stargaze_wallet):
        await adapter.burn_nft(stargaze_nft)

        assert stargaze_wallet.submissions == [(STARGAZE_COLLECTION, "burn", {"token_id": "42"})]
