import json

import pytest

from amadeus_mcp.faucet import Faucet, FaucetLedger, InMemoryClaimStore
from amadeus_mcp.protocol import (
    LATEST_PROTOCOL_VERSION,
    SERVER_NAME,
    ProtocolEngine,
    Session,
    SessionState,
)

ORIGIN = "1.2.3.4"


class StubClient:
    async def fetch_chain_stats(self):
        return {"height": 1234, "tx_count": "99", "accounts": 7}

    async def fetch_block_by_height(self, height):
        return [{"hash": "abc", "height": height}]


class StubMinter:
    amount = 100_000_000_000
    symbol = "AMA"

    async def mint(self, destination):
        return "minted"


@pytest.fixture
def engine():
    faucet = Faucet(FaucetLedger(InMemoryClaimStore()), StubMinter(), clock=lambda: 5_000.0)
    return ProtocolEngine(client=StubClient(), faucet=faucet)


@pytest.fixture
def session():
    return Session(origin=ORIGIN)


async def _initialize(engine, session):
    return await engine.handle_message(
        session,
        {
            "jsonrpc": "2.0",
            "id": 0,
            "method": "initialize",
            "params": {"protocolVersion": "2025-03-26", "capabilities": {}, "clientInfo": {"name": "t"}},
        },
    )


async def _call(engine, session, name, arguments, rpc_id=1):
    return await engine.handle_message(
        session,
        {"jsonrpc": "2.0", "id": rpc_id, "method": "tools/call", "params": {"name": name, "arguments": arguments}},
    )


@pytest.mark.asyncio
async def test_requests_before_initialize_are_rejected(engine, session):
    response = await engine.handle_message(session, {"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
    assert response["id"] == 1
    assert response["error"]["code"] == -32000
    assert response["error"]["data"]["reason"] == "not_initialized"
    assert session.state is SessionState.UNINITIALIZED

    response = await engine.handle_message(session, {"jsonrpc": "2.0", "id": 2, "method": "ping"})
    assert response["error"]["code"] == -32000


@pytest.mark.asyncio
async def test_initialize_negotiates_version(engine, session):
    response = await _initialize(engine, session)
    result = response["result"]
    assert result["protocolVersion"] == "2025-03-26"
    assert result["serverInfo"]["name"] == SERVER_NAME
    assert result["capabilities"]["tools"]["listChanged"] is False
    assert session.state is SessionState.INITIALIZED
    assert session.client_info == {"name": "t"}

    fresh = Session(origin=ORIGIN)
    response = await engine.handle_message(
        fresh, {"jsonrpc": "2.0", "id": 2, "method": "initialize", "params": {"protocolVersion": "1999-01-01"}}
    )
    assert response["result"]["protocolVersion"] == LATEST_PROTOCOL_VERSION


@pytest.mark.asyncio
async def test_notifications_get_no_response(engine, session):
    await _initialize(engine, session)
    assert await engine.handle_message(session, {"jsonrpc": "2.0", "method": "notifications/initialized"}) is None
    assert await engine.handle_message(session, {"jsonrpc": "2.0", "method": "no/such/method"}) is None


@pytest.mark.asyncio
async def test_tools_list_names_every_tool(engine, session):
    await _initialize(engine, session)
    response = await engine.handle_message(session, {"jsonrpc": "2.0", "id": "a", "method": "tools/list"})
    names = {tool["name"] for tool in response["result"]["tools"]}
    assert names == {
        "create_transfer",
        "submit_transaction",
        "get_account_balance",
        "get_chain_stats",
        "get_block_by_height",
        "get_transaction",
        "get_transaction_history",
        "get_validators",
        "get_contract_state",
        "claim_testnet_ama",
    }
    assert response["id"] == "a"


@pytest.mark.asyncio
async def test_chain_stats_call_end_to_end(engine, session):
    await _initialize(engine, session)
    response = await _call(engine, session, "get_chain_stats", {}, rpc_id=42)
    assert response["id"] == 42
    result = response["result"]
    assert result["isError"] is False
    assert result["structuredContent"]["height"] == 1234
    assert result["structuredContent"]["total_transactions"] == 99
    assert result["structuredContent"]["total_accounts"] == 7
    assert json.loads(result["content"][0]["text"]) == result["structuredContent"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "arguments,field,reason",
    [
        ({}, "height", "missing"),
        ({"height": "5"}, "height", "wrong_type"),
        ({"height": -1}, "height", "invalid_value"),
        ({"height": 5, "extra": 1}, "extra", "unexpected_field"),
    ],
)
async def test_argument_validation_errors(engine, session, arguments, field, reason):
    await _initialize(engine, session)
    response = await _call(engine, session, "get_block_by_height", arguments)
    error = response["error"]
    assert error["code"] == -32602
    assert error["data"]["kind"] == "validation_error"
    assert error["data"]["field"] == field
    assert error["data"]["reason"] == reason


@pytest.mark.asyncio
async def test_unknown_tool_and_resource(engine, session):
    await _initialize(engine, session)
    response = await _call(engine, session, "get_weather", {})
    assert response["error"]["code"] == -32601
    assert response["error"]["data"]["reason"] == "not_found"

    response = await engine.handle_message(
        session, {"jsonrpc": "2.0", "id": 3, "method": "resources/read", "params": {"uri": "amadeus://nope"}}
    )
    assert response["error"]["code"] == -32002


@pytest.mark.asyncio
async def test_block_resource_read(engine, session):
    await _initialize(engine, session)
    response = await engine.handle_message(
        session, {"jsonrpc": "2.0", "id": 3, "method": "resources/read", "params": {"uri": "amadeus://block/10"}}
    )
    contents = response["result"]["contents"][0]
    assert contents["mimeType"] == "application/json"
    assert json.loads(contents["text"])["entries"] == [{"hash": "abc", "height": 10}]


@pytest.mark.asyncio
async def test_faucet_claim_twice_from_same_origin(engine, session, address):
    await _initialize(engine, session)
    first = await _call(engine, session, "claim_testnet_ama", {"address": address})
    assert first["result"]["structuredContent"]["status"] == "granted"
    assert first["result"]["structuredContent"]["tx_hash"] == "minted"

    second = await _call(engine, session, "claim_testnet_ama", {"address": address}, rpc_id=2)
    error = second["error"]
    assert error["code"] == -32030
    assert error["data"]["kind"] == "faucet_cooldown"
    assert error["data"]["retry_after_seconds"] == pytest.approx(24 * 60 * 60)


@pytest.mark.asyncio
async def test_malformed_envelopes(engine, session):
    response = await engine.handle_message(session, "{not json")
    assert response["id"] is None
    assert response["error"]["code"] == -32700

    response = await engine.handle_message(session, "[1, 2]")
    assert response["error"]["code"] == -32600

    response = await engine.handle_message(session, {"jsonrpc": "2.0", "id": True, "method": "ping"})
    assert response["error"]["code"] == -32600

    response = await engine.handle_message(session, {"jsonrpc": "2.0", "params": {}})
    assert response["id"] is None
    assert response["error"]["code"] == -32600

    response = await engine.handle_message(session, {"jsonrpc": "2.0", "id": 4, "method": ""})
    assert response["id"] == 4
    assert response["error"]["code"] == -32600

    response = await engine.handle_message(session, {"jsonrpc": "1.0", "method": "ping"})
    assert response["error"]["code"] == -32600


@pytest.mark.asyncio
async def test_closed_session_rejects_requests(engine, session):
    await _initialize(engine, session)
    session.close()
    response = await engine.handle_message(session, {"jsonrpc": "2.0", "id": 9, "method": "ping"})
    assert response["error"]["data"]["reason"] == "session_closed"


@pytest.mark.asyncio
async def test_tool_metrics_recorded(engine, session):
    await _initialize(engine, session)
    await _call(engine, session, "get_chain_stats", {})
    await _call(engine, session, "get_block_by_height", {"height": "x"})
    snapshot = engine.metrics.snapshot()
    assert snapshot["tool_success"] == {"get_chain_stats": 1}
    assert snapshot["tool_error"] == {"get_block_by_height": 1}
