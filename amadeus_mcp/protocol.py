"""
JSON-RPC / MCP protocol engine shared by the stdio and HTTP transports.

Transports only frame messages. Everything else happens here: envelope
checks, the per-session state machine, method routing into the tool registry
and resources, and the translation of failures into error envelopes.
"""

from __future__ import annotations

import enum
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from amadeus_mcp import __version__
from amadeus_mcp.amadeus_api import default_client
from amadeus_mcp.config import AmadeusConfig, default_config
from amadeus_mcp.errors import (
    INVALID_PARAMS,
    GatewayError,
    ProtocolError,
    ValidationError,
    error_payload,
)
from amadeus_mcp.metrics import MetricsRecorder, default_metrics
from amadeus_mcp.registry import ToolContext, ToolRegistry, default_registry
from amadeus_mcp.resources import list_resource_templates, list_resources, read_resource

logger = logging.getLogger(__name__)

SERVER_NAME = "amadeus-mcp"
SUPPORTED_PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")
LATEST_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[0]
INSTRUCTIONS = (
    "Query Amadeus balances, blocks, transactions, validators and contract storage. "
    "To transfer, call create_transfer, sign signing_payload externally, then "
    "submit_transaction. claim_testnet_ama sends testnet AMA once per 24 hours."
)

INITIALIZED_NOTIFICATIONS = ("notifications/initialized", "initialized")
PRE_INIT_METHODS = ("initialize",)


class SessionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    CLOSED = "closed"


@dataclass(slots=True)
class Session:
    """Protocol state for one caller; ``origin`` keys faucet cooldowns."""

    origin: str
    state: SessionState = SessionState.UNINITIALIZED
    protocol_version: Optional[str] = None
    client_info: Dict[str, Any] = field(default_factory=dict)
    client_capabilities: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def stateless(cls, origin: str) -> "Session":
        """Already-initialized session for one HTTP request."""
        return cls(origin=origin, state=SessionState.INITIALIZED, protocol_version=LATEST_PROTOCOL_VERSION)

    def close(self) -> None:
        self.state = SessionState.CLOSED


def jsonrpc_success(rpc_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "result": result}


def jsonrpc_error(rpc_id: Any, error: BaseException) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "error": error_payload(error)}


def wrap_tool_result(result: Any) -> Dict[str, Any]:
    """Shape tool outputs into an MCP content array plus structured content."""
    return {
        "content": [{"type": "text", "text": json.dumps(result)}],
        "structuredContent": result,
        "isError": False,
    }


def _valid_id(value: Any) -> bool:
    return value is None or (isinstance(value, (str, int)) and not isinstance(value, bool))


class ProtocolEngine:
    def __init__(
        self,
        registry: ToolRegistry = default_registry,
        *,
        client: Any = default_client,
        faucet: Any = None,
        config: AmadeusConfig = default_config,
        metrics: MetricsRecorder = default_metrics,
    ) -> None:
        self.registry = registry
        self.client = client
        self.faucet = faucet
        self.config = config
        self.metrics = metrics

    async def handle_message(
        self, session: Session, raw: Any, *, request_id: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Process one envelope and return the response envelope.

        Returns None for notifications, which never get a response even when
        they fail.
        """
        if isinstance(raw, (bytes, bytearray, str)):
            try:
                message = json.loads(raw)
            except (ValueError, UnicodeDecodeError):
                return jsonrpc_error(None, ProtocolError.parse_error())
        else:
            message = raw

        if not isinstance(message, dict):
            return jsonrpc_error(None, ProtocolError.invalid_request("Request must be a JSON object"))

        rpc_id = message.get("id")
        if not _valid_id(rpc_id):
            return jsonrpc_error(None, ProtocolError.invalid_request("Invalid id"))
        method = message.get("method")
        # Without a method the envelope is malformed, not a notification, and gets a response.
        if not isinstance(method, str) or not method:
            return jsonrpc_error(rpc_id, ProtocolError.invalid_request("Missing method"))
        jsonrpc = message.get("jsonrpc")
        if jsonrpc is not None and jsonrpc != "2.0":
            return jsonrpc_error(rpc_id, ProtocolError.invalid_request("Unsupported jsonrpc version"))
        is_notification = "id" not in message

        try:
            result = await self._dispatch(session, message, request_id=request_id)
        except GatewayError as exc:
            logger.debug(
                "mcp method=%s outcome=error kind=%s",
                method,
                exc.kind,
                extra={"request_id": request_id, "kind": exc.kind, "error": exc.message},
            )
            return None if is_notification else jsonrpc_error(rpc_id, exc)
        except Exception as exc:
            logger.exception("Unexpected error handling method %s", method, extra={"request_id": request_id})
            return None if is_notification else jsonrpc_error(rpc_id, exc)

        if is_notification:
            return None
        return jsonrpc_success(rpc_id, result)

    async def _dispatch(self, session: Session, message: Dict[str, Any], *, request_id: Optional[str]) -> Any:
        method = message["method"]
        raw_params = message.get("params")
        if raw_params is None:
            params: Dict[str, Any] = {}
        elif isinstance(raw_params, dict):
            params = raw_params
        else:
            raise ProtocolError("Invalid params", reason="invalid_params", code=INVALID_PARAMS)

        if session.state is SessionState.CLOSED:
            raise ProtocolError.session_closed()
        if session.state is SessionState.UNINITIALIZED and method not in PRE_INIT_METHODS:
            raise ProtocolError.not_initialized(method)

        if method == "initialize":
            return self._initialize(session, params)
        if method == "ping":
            return {}
        if method in INITIALIZED_NOTIFICATIONS:
            logger.debug("mcp initialized notification received", extra={"request_id": request_id})
            return None
        if method in ("tools/list", "list_tools"):
            return {"tools": self.registry.list_tools()}
        if method in ("tools/call", "call_tool"):
            return await self._call_tool(session, params, request_id=request_id)
        if method == "resources/list":
            return {"resources": list_resources()}
        if method == "resources/templates/list":
            return {"resourceTemplates": list_resource_templates()}
        if method == "resources/read":
            uri = params.get("uri")
            if not isinstance(uri, str) or not uri:
                raise ValidationError("uri is required", field="uri", reason="missing" if uri is None else "wrong_type")
            return await read_resource(uri, client=self.client)
        if method == "prompts/list":
            return {"prompts": []}
        raise ProtocolError.method_not_found(method)

    def _initialize(self, session: Session, params: Dict[str, Any]) -> Dict[str, Any]:
        requested = params.get("protocolVersion")
        if not isinstance(requested, str) or not requested:
            raise ValidationError(
                "protocolVersion is required",
                field="protocolVersion",
                reason="missing" if requested is None else "wrong_type",
            )
        version = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else LATEST_PROTOCOL_VERSION
        capabilities = params.get("capabilities")
        client_info = params.get("clientInfo")
        session.protocol_version = version
        session.client_capabilities = capabilities if isinstance(capabilities, dict) else {}
        session.client_info = client_info if isinstance(client_info, dict) else {}
        session.state = SessionState.INITIALIZED
        logger.debug("mcp initialize requested protocol=%s negotiated=%s", requested, version)
        return {
            "protocolVersion": version,
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
            "capabilities": {
                "tools": {"listChanged": False},
                "resources": {"listChanged": False, "subscribe": False},
                "prompts": {"listChanged": False},
            },
            "instructions": INSTRUCTIONS,
        }

    async def _call_tool(self, session: Session, params: Dict[str, Any], *, request_id: Optional[str]) -> Dict[str, Any]:
        tool_name = params.get("name") or params.get("tool")
        if not isinstance(tool_name, str) or not tool_name.strip():
            raise ValidationError("Tool name is required", field="name", reason="missing" if tool_name is None else "wrong_type")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = params.get("params")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise ValidationError("arguments must be an object", field="arguments", reason="wrong_type")

        context = ToolContext(
            client=self.client,
            faucet=self.faucet,
            config=self.config,
            origin=session.origin,
            request_id=request_id,
        )
        start = time.monotonic()
        try:
            result = await self.registry.call(tool_name, arguments, context)
        except GatewayError as exc:
            self.metrics.record_tool(tool_name, success=False)
            logger.warning(
                "tool=%s outcome=error kind=%s request_id=%s",
                tool_name,
                exc.kind,
                request_id,
                extra={"tool": tool_name, "request_id": request_id, "kind": exc.kind, "origin": session.origin},
            )
            raise
        except Exception:
            self.metrics.record_tool(tool_name, success=False)
            raise
        self.metrics.record_tool(tool_name, success=True)
        logger.info(
            "tool=%s outcome=success request_id=%s duration_ms=%.2f",
            tool_name,
            request_id,
            (time.monotonic() - start) * 1000,
            extra={"tool": tool_name, "request_id": request_id},
        )
        return wrap_tool_result(result)
