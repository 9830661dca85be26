import httpx
import pytest

from amadeus_mcp.amadeus_api.client import AmadeusClient
from amadeus_mcp.config import AmadeusConfig
from amadeus_mcp.errors import ConfigurationError, UpstreamError


class MockResponse:
    def __init__(self, status_code: int, json_body):
        self.status_code = status_code
        self._json = json_body

    def json(self):
        if isinstance(self._json, Exception):
            raise self._json
        return self._json


class MockAsyncClient:
    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    async def _next(self, call):
        self.calls.append(call)
        if not self.responses:
            raise RuntimeError("No mock responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def get(self, path, params=None, headers=None):
        return await self._next({"path": path, "params": params, "headers": headers})

    async def post(self, path, content=None, headers=None):
        return await self._next({"path": path, "content": content, "headers": headers})

    async def aclose(self):
        return None


def _client(*responses, config=None, testnet=None):
    mock = MockAsyncClient(list(responses))
    return AmadeusClient(config or AmadeusConfig(api_key=None), async_client=mock, testnet_client=testnet), mock


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,reason,transient",
    [
        (401, "unauthorized", False),
        (403, "unauthorized", False),
        (404, "not_found", False),
        (400, "rejected", False),
        (500, "upstream_error", True),
        (503, "upstream_error", True),
    ],
)
async def test_status_code_mapping(status, reason, transient):
    client, _ = _client(MockResponse(status, {"error": "x"}))
    with pytest.raises(UpstreamError) as excinfo:
        await client.fetch_chain_stats()
    assert excinfo.value.reason == reason
    assert excinfo.value.transient is transient


@pytest.mark.asyncio
async def test_unexpected_body_is_invalid_response():
    client, _ = _client(MockResponse(200, ["unexpected"]))
    with pytest.raises(UpstreamError) as excinfo:
        await client.fetch_chain_stats()
    assert excinfo.value.reason == "invalid_response"

    client, _ = _client(MockResponse(200, ValueError("not json")))
    with pytest.raises(UpstreamError) as excinfo:
        await client.fetch_validators()
    assert excinfo.value.reason == "invalid_response"


@pytest.mark.asyncio
async def test_connection_error_is_retried_once():
    client, mock = _client(
        httpx.ConnectError("refused"),
        MockResponse(200, {"error": "ok", "stats": {"height": 1}}),
    )
    assert await client.fetch_chain_stats() == {"height": 1}
    assert len(mock.calls) == 2

    client, mock = _client(httpx.ConnectError("refused"), httpx.ConnectError("refused"))
    with pytest.raises(UpstreamError) as excinfo:
        await client.fetch_chain_stats()
    assert excinfo.value.reason == "unreachable"
    assert excinfo.value.transient is True


@pytest.mark.asyncio
async def test_timeout_is_not_retried():
    client, mock = _client(httpx.ReadTimeout("slow"))
    with pytest.raises(UpstreamError) as excinfo:
        await client.fetch_block_by_height(3)
    assert excinfo.value.reason == "timeout"
    assert len(mock.calls) == 1


@pytest.mark.asyncio
async def test_balance_requires_ok(address):
    client, mock = _client(MockResponse(200, {"error": "not_found"}))
    with pytest.raises(UpstreamError) as excinfo:
        await client.fetch_account_balance(address)
    assert excinfo.value.reason == "not_found"
    assert mock.calls[0]["path"] == f"/api/wallet/balance_all/{address}"


@pytest.mark.asyncio
async def test_history_params_and_path_encoding():
    client, mock = _client(MockResponse(200, {"txs": []}))
    assert await client.fetch_transaction_history("a/b c", limit=5, offset=10, sort="asc") == []
    assert mock.calls[0]["path"] == "/api/chain/tx_events_by_account/a%2Fb%20c"
    assert mock.calls[0]["params"] == {"limit": 5, "offset": 10, "sort": "asc"}


@pytest.mark.asyncio
async def test_api_key_header_is_sent():
    client, mock = _client(MockResponse(200, {"value": 3}), config=AmadeusConfig(api_key="secret-key"))
    assert await client.fetch_contract_state("C", "k") == 3
    assert mock.calls[0]["headers"] == {"X-API-KEY": "secret-key"}


@pytest.mark.asyncio
async def test_submit_posts_plain_text_to_selected_network():
    testnet = MockAsyncClient([MockResponse(200, {"error": "ok"})])
    client, mainnet = _client(testnet=testnet)
    await client.submit_transaction("packed", network="testnet")
    assert mainnet.calls == []
    call = testnet.calls[0]
    assert call["path"] == "/api/tx/submit"
    assert call["content"] == "packed"
    assert call["headers"]["Content-Type"] == "text/plain"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "node_error,reason",
    [
        ("insufficient_funds", "insufficient_funds"),
        ("invalid_signature", "invalid_signature"),
        ("invalid_nonce", "invalid_nonce"),
        ("too_large", "rejected"),
    ],
)
async def test_submit_node_rejection(node_error, reason):
    client, _ = _client(MockResponse(200, {"error": node_error}))
    with pytest.raises(UpstreamError) as excinfo:
        await client.submit_transaction("packed")
    assert excinfo.value.reason == reason
    assert excinfo.value.details["node_error"] == node_error


@pytest.mark.asyncio
async def test_submit_is_never_retried():
    client, mock = _client(httpx.ConnectError("refused"), MockResponse(200, {"error": "ok"}))
    with pytest.raises(UpstreamError) as excinfo:
        await client.submit_transaction("packed")
    assert excinfo.value.reason == "unreachable"
    assert len(mock.calls) == 1


@pytest.mark.asyncio
async def test_missing_testnet_url_is_a_configuration_error():
    client = AmadeusClient(AmadeusConfig(testnet_url=None))
    with pytest.raises(ConfigurationError):
        await client.submit_transaction("packed", network="testnet")
    await client.aclose()
