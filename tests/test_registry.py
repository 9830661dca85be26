import pytest

from amadeus_mcp.errors import ProtocolError, ValidationError
from amadeus_mcp.registry import ToolContext, ToolDefinition, default_registry
from amadeus_mcp.tools.params import NoParams


def test_registry_is_frozen():
    assert default_registry.frozen
    with pytest.raises(RuntimeError):
        default_registry.register(
            ToolDefinition(name="x", description="", params_model=NoParams, callable=None)
        )


def test_schemas_forbid_extra_fields():
    tools = {tool["name"]: tool for tool in default_registry.list_tools()}
    history = tools["get_transaction_history"]["inputSchema"]
    assert history["additionalProperties"] is False
    assert history["required"] == ["address"]
    assert history["properties"]["limit"]["maximum"] == 100

    transfer = tools["create_transfer"]["inputSchema"]
    assert len(transfer["oneOf"]) == 2
    submit = tools["submit_transaction"]["inputSchema"]
    assert "TransactionFields" in submit["$defs"]


def test_resolve_unknown_tool():
    with pytest.raises(ProtocolError) as excinfo:
        default_registry.resolve("nope")
    assert excinfo.value.reason == "not_found"


@pytest.mark.parametrize(
    "arguments,field,reason",
    [
        ({"address": "short"}, "address", "invalid_value"),
        ({"address": 5}, "address", "wrong_type"),
    ],
)
def test_address_validation(arguments, field, reason):
    tool = default_registry.resolve("get_account_balance")
    with pytest.raises(ValidationError) as excinfo:
        default_registry.validate(tool, arguments)
    assert (excinfo.value.field, excinfo.value.reason) == (field, reason)


def test_history_page_and_offset_are_exclusive(address):
    tool = default_registry.resolve("get_transaction_history")
    with pytest.raises(ValidationError):
        default_registry.validate(tool, {"address": address, "page": 2, "offset": 5})
    with pytest.raises(ValidationError) as excinfo:
        default_registry.validate(tool, {"address": address, "limit": 101})
    assert excinfo.value.field == "limit"


def test_transfer_shorthand_amount(address, other_address):
    tool = default_registry.resolve("create_transfer")
    params = default_registry.validate(
        tool, {"source": address, "destination": other_address, "amount": "1500"}
    )
    assert params.amount == 1500
    assert params.symbol == "AMA"

    with pytest.raises(ValidationError) as excinfo:
        default_registry.validate(tool, {"source": address, "destination": other_address, "amount": 1.5})
    assert (excinfo.value.field, excinfo.value.reason) == ("amount", "wrong_type")

    with pytest.raises(ValidationError) as excinfo:
        default_registry.validate(tool, {"source": address, "destination": other_address, "amount": "-3"})
    assert excinfo.value.reason == "invalid_value"


def test_submit_fields_error_locations(address):
    tool = default_registry.resolve("submit_transaction")
    arguments = {
        "transaction": {"signer": address, "contract": "Coin", "function": "transfer", "args": []},
        "signature": "sig",
    }
    with pytest.raises(ValidationError) as excinfo:
        default_registry.validate(tool, arguments)
    assert (excinfo.value.field, excinfo.value.reason) == ("transaction.nonce", "missing")


@pytest.mark.asyncio
async def test_call_injects_context_dependencies(address):
    seen = {}

    class StubFaucet:
        async def claim(self, origin, addr):
            seen["origin"] = origin
            return {"status": "granted"}

    context = ToolContext(faucet=StubFaucet(), origin="5.6.7.8")
    result = await default_registry.call("claim_testnet_ama", {"address": address}, context)
    assert result == {"status": "granted"}
    assert seen == {"origin": "5.6.7.8"}


@pytest.mark.asyncio
async def test_create_transfer_generic_form(address):
    context = ToolContext()
    result = await default_registry.call(
        "create_transfer",
        {"signer": address, "contract": "Epoch", "function": "submit_sol", "args": [{"hex": "ab"}], "nonce": 3},
        context,
    )
    assert result["transaction"]["args"] == [{"hex": "ab"}]
    assert result["transaction"]["nonce"] == 3
