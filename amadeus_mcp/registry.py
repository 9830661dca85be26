"""
Tool catalogue for the MCP surface.

Each tool has a pydantic parameter model and an async callable. Arguments are
validated against the model before the callable runs; dependencies such as
the node client or the faucet are passed from a ``ToolContext`` rather than
taken from the caller. The registry is frozen once built and shared read-only
by every session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

import pydantic

from amadeus_mcp.config import AmadeusConfig, default_config
from amadeus_mcp.errors import ProtocolError, ValidationError
from amadeus_mcp.tools import (
    claim_testnet_ama,
    create_transfer,
    get_account_balance,
    get_block_by_height,
    get_chain_stats,
    get_contract_state,
    get_transaction,
    get_transaction_history,
    get_validators,
    submit_transaction,
)
from amadeus_mcp.tools.params import (
    AddressParams,
    BlockHeightParams,
    ClaimParams,
    ContractStateParams,
    GenericTransferParams,
    NoParams,
    SimpleTransferParams,
    SubmitBlobParams,
    SubmitFieldsParams,
    ToolParams,
    TransactionHashParams,
    TransactionHistoryParams,
    select_submit_model,
    select_transfer_model,
)

ToolCallable = Callable[..., Awaitable[Any]]
ModelSelector = Callable[[Dict[str, Any]], type]


@dataclass(frozen=True, slots=True)
class ToolContext:
    """Per-call dependencies handed to tools that declare them."""

    client: Any = None
    faucet: Any = None
    config: AmadeusConfig = field(default_factory=lambda: default_config)
    origin: Optional[str] = None
    request_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    name: str
    description: str
    params_model: type
    callable: ToolCallable
    inject: Tuple[str, ...] = ("client",)
    alternatives: Tuple[type, ...] = ()
    model_selector: Optional[ModelSelector] = None

    def select_model(self, arguments: Dict[str, Any]) -> type:
        if self.model_selector is None:
            return self.params_model
        return self.model_selector(arguments)

    def input_schema(self) -> Dict[str, Any]:
        models = (self.params_model, *self.alternatives)
        if len(models) == 1:
            return self.params_model.model_json_schema()
        variants: List[Dict[str, Any]] = []
        defs: Dict[str, Any] = {}
        for model in models:
            schema = dict(model.model_json_schema())
            defs.update(schema.pop("$defs", {}))
            variants.append(schema)
        combined: Dict[str, Any] = {"type": "object", "oneOf": variants}
        if defs:
            combined["$defs"] = defs
        return combined


_WRONG_TYPE_ERRORS = {"wrong_type", "is_instance_of", "model_attributes_type"}


def _format_loc(loc: Tuple[Any, ...]) -> Optional[str]:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        elif path:
            path += f".{part}"
        else:
            path = str(part)
    return path or None


def _reason(error_type: str) -> str:
    if error_type == "missing":
        return "missing"
    if error_type == "extra_forbidden":
        return "unexpected_field"
    if error_type.endswith("_type") or error_type in _WRONG_TYPE_ERRORS:
        return "wrong_type"
    return "invalid_value"


def validation_error_from(exc: pydantic.ValidationError) -> ValidationError:
    """Translate the first pydantic error into our ``ValidationError``; all of them go in ``errors``."""
    details = [
        {"field": _format_loc(tuple(error["loc"])), "reason": _reason(error["type"]), "message": error["msg"]}
        for error in exc.errors()
    ]
    first = details[0]
    field_name = first["field"]
    message = f"Invalid parameter '{field_name}': {first['message']}" if field_name else first["message"]
    return ValidationError(
        message,
        field=field_name,
        reason=first["reason"],
        errors=details if len(details) > 1 else None,
    )


class ToolRegistry:
    def __init__(self) -> None:
        self._tools: Dict[str, ToolDefinition] | Mapping[str, ToolDefinition] = {}
        self._frozen = False

    def register(self, tool: ToolDefinition) -> None:
        if self._frozen:
            raise RuntimeError("Tool registry is frozen")
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool  # type: ignore[index]

    def freeze(self) -> "ToolRegistry":
        self._tools = MappingProxyType(dict(self._tools))
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def names(self) -> List[str]:
        return list(self._tools)

    def resolve(self, name: str) -> ToolDefinition:
        tool = self._tools.get(name)
        if tool is None:
            raise ProtocolError.tool_not_found(name)
        return tool

    def list_tools(self) -> List[Dict[str, Any]]:
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "inputSchema": tool.input_schema(),
            }
            for tool in self._tools.values()
        ]

    def validate(self, tool: ToolDefinition, arguments: Dict[str, Any]) -> ToolParams:
        model = tool.select_model(arguments)
        try:
            return model.model_validate(arguments)
        except pydantic.ValidationError as exc:
            raise validation_error_from(exc) from None

    async def call(self, name: str, arguments: Dict[str, Any], context: ToolContext) -> Any:
        """Resolve, validate, inject dependencies and await the tool."""
        tool = self.resolve(name)
        params = self.validate(tool, arguments)
        kwargs = params.model_dump_one_level()
        for dependency in tool.inject:
            kwargs[dependency] = getattr(context, dependency)
        return await tool.callable(**kwargs)


def build_registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(
        ToolDefinition(
            name="create_transfer",
            description=(
                "Build an unsigned transaction for any contract call (signer, contract, function, args) "
                "or a token transfer (source, destination, amount, symbol). Returns the blob to sign."
            ),
            params_model=GenericTransferParams,
            alternatives=(SimpleTransferParams,),
            model_selector=select_transfer_model,
            callable=create_transfer,
            inject=(),
        )
    )
    registry.register(
        ToolDefinition(
            name="submit_transaction",
            description=(
                "Verify a signed transaction against its canonical encoding and submit it to "
                "mainnet (default) or testnet."
            ),
            params_model=SubmitBlobParams,
            alternatives=(SubmitFieldsParams,),
            model_selector=select_submit_model,
            callable=submit_transaction,
        )
    )
    registry.register(
        ToolDefinition(
            name="get_account_balance",
            description="Balances of an account across all supported tokens.",
            params_model=AddressParams,
            callable=get_account_balance,
        )
    )
    registry.register(
        ToolDefinition(
            name="get_chain_stats",
            description="Current chain statistics including height, total transactions and total accounts.",
            params_model=NoParams,
            callable=get_chain_stats,
        )
    )
    registry.register(
        ToolDefinition(
            name="get_block_by_height",
            description="Block entries recorded at a given height.",
            params_model=BlockHeightParams,
            callable=get_block_by_height,
        )
    )
    registry.register(
        ToolDefinition(
            name="get_transaction",
            description="A transaction by its hash.",
            params_model=TransactionHashParams,
            callable=get_transaction,
        )
    )
    registry.register(
        ToolDefinition(
            name="get_transaction_history",
            description="Transaction history for an account with limit/offset or page pagination.",
            params_model=TransactionHistoryParams,
            callable=get_transaction_history,
            inject=("client", "config"),
        )
    )
    registry.register(
        ToolDefinition(
            name="get_validators",
            description="Current validator nodes (trainers).",
            params_model=NoParams,
            callable=get_validators,
        )
    )
    registry.register(
        ToolDefinition(
            name="get_contract_state",
            description="A value from contract storage by contract address and key.",
            params_model=ContractStateParams,
            callable=get_contract_state,
        )
    )
    registry.register(
        ToolDefinition(
            name="claim_testnet_ama",
            description="Send 100 testnet AMA to an address. One claim per caller every 24 hours.",
            params_model=ClaimParams,
            callable=claim_testnet_ama,
            inject=("faucet", "origin"),
        )
    )
    return registry.freeze()


default_registry = build_registry()
