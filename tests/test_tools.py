import pytest

from amadeus_mcp.config import AmadeusConfig
from amadeus_mcp.errors import ConfigurationError, UpstreamError
from amadeus_mcp.tools.account import get_account_balance
from amadeus_mcp.tools.chain import get_block_by_height, get_validators, normalize_chain_stats
from amadeus_mcp.tools.contracts import get_contract_state
from amadeus_mcp.tools.faucet import claim_testnet_ama
from amadeus_mcp.tools.transactions import get_transaction, get_transaction_history


class HistoryClient:
    def __init__(self):
        self.calls = []

    async def fetch_transaction_history(self, address, *, limit=None, offset=None, sort=None):
        self.calls.append({"limit": limit, "offset": offset, "sort": sort})
        return [{"hash": "h1"}, {"hash": "h2"}]


@pytest.mark.asyncio
async def test_account_balance_keeps_balance_rows(address):
    class StubClient:
        async def fetch_account_balance(self, addr):
            return [
                {"symbol": "AMA", "flat": 1_000_000_000, "float": 1.0, "extra": "dropped"},
                "junk",
                {"flat": 3},
            ]

    result = await get_account_balance(address, client=StubClient())
    assert result == {"address": address, "balances": [{"symbol": "AMA", "flat": 1_000_000_000, "float": 1.0}]}


@pytest.mark.asyncio
async def test_account_balance_propagates_not_found(address):
    class StubClient:
        async def fetch_account_balance(self, addr):
            raise UpstreamError("Account not found.", reason="not_found")

    with pytest.raises(UpstreamError):
        await get_account_balance(address, client=StubClient())


def test_chain_stats_normalization():
    stats = normalize_chain_stats({"height": "12", "txs": 4.5, "pflops": 1})
    assert stats["height"] == 12
    assert stats["total_transactions"] == 4.5
    assert stats["total_accounts"] == 0
    assert stats["pflops"] == 1


@pytest.mark.asyncio
async def test_block_and_validators_wrap_lists():
    class StubClient:
        async def fetch_block_by_height(self, height):
            return [{"hash": "a"}, {"hash": "b"}]

        async def fetch_validators(self):
            return None

    assert await get_block_by_height(9, client=StubClient()) == {
        "height": 9,
        "entries": [{"hash": "a"}, {"hash": "b"}],
        "count": 2,
    }
    assert await get_validators(client=StubClient()) == {"validators": [], "count": 0}


@pytest.mark.asyncio
async def test_get_transaction(tx_hash):
    class StubClient:
        async def fetch_transaction(self, value):
            return {"hash": value, "tx": {"nonce": 1}}

    result = await get_transaction(tx_hash, client=StubClient())
    assert result["hash"] == tx_hash
    assert result["transaction"]["tx"] == {"nonce": 1}


@pytest.mark.asyncio
async def test_history_page_becomes_offset(address):
    client = HistoryClient()
    result = await get_transaction_history(address, limit=10, page=3, sort="asc", client=client)
    assert client.calls == [{"limit": 10, "offset": 20, "sort": "asc"}]
    assert result["count"] == 2
    assert result["offset"] == 20


@pytest.mark.asyncio
async def test_history_limit_is_capped_by_config(address):
    client = HistoryClient()
    config = AmadeusConfig(max_history_limit=50, default_history_limit=5)
    await get_transaction_history(address, limit=80, client=client, config=config)
    await get_transaction_history(address, client=client, config=config)
    assert [call["limit"] for call in client.calls] == [50, 5]
    assert client.calls[0]["sort"] == "desc"


@pytest.mark.asyncio
async def test_contract_state(address):
    class StubClient:
        async def fetch_contract_state(self, addr, key):
            return {"k": key}

    result = await get_contract_state(address, "bal:AMA", client=StubClient())
    assert result == {"contract_address": address, "key": "bal:AMA", "value": {"k": "bal:AMA"}}


@pytest.mark.asyncio
async def test_claim_requires_faucet_and_origin(address):
    with pytest.raises(ConfigurationError):
        await claim_testnet_ama(address, faucet=None, origin="1.2.3.4")

    class StubFaucet:
        async def claim(self, origin, addr):
            return {"origin": origin}

    with pytest.raises(ConfigurationError):
        await claim_testnet_ama(address, faucet=StubFaucet(), origin=None)
    assert await claim_testnet_ama(address, faucet=StubFaucet(), origin="o") == {"origin": "o"}
