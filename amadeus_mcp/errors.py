"""
Error taxonomy shared by the protocol engine, tools and clients.

Every failure that reaches the protocol boundary is an instance of
``GatewayError``; the engine turns it into a JSON-RPC error envelope using the
stable ``kind`` tag and ``data`` payload. Anything else is reported as an
internal error without details.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
NOT_INITIALIZED = -32000
RESOURCE_NOT_FOUND = -32002
ENCODING_MISMATCH = -32010
SIGNATURE_INVALID = -32011
UPSTREAM_FAILURE = -32020
FAUCET_COOLDOWN = -32030
STORE_FAILURE = -32040
CONFIGURATION_FAILURE = -32050


class GatewayError(Exception):
    """Base exception for errors surfaced to callers."""

    kind = "internal_error"
    default_code = INTERNAL_ERROR

    def __init__(self, message: str, *, code: Optional[int] = None, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if code is not None else self.default_code
        self.details = {key: value for key, value in details.items() if value is not None}

    def to_data(self) -> Dict[str, Any]:
        return {"kind": self.kind, **self.details}


class ProtocolError(GatewayError):
    """Malformed envelope, unknown method/URI, or a session-state violation."""

    kind = "protocol_error"
    default_code = INVALID_REQUEST

    def __init__(self, message: str, *, reason: str, code: Optional[int] = None, **details: Any) -> None:
        super().__init__(message, code=code, reason=reason, **details)
        self.reason = reason

    @classmethod
    def parse_error(cls) -> "ProtocolError":
        return cls("Parse error", reason="parse_error", code=PARSE_ERROR)

    @classmethod
    def invalid_request(cls, message: str = "Invalid request") -> "ProtocolError":
        return cls(message, reason="invalid_request", code=INVALID_REQUEST)

    @classmethod
    def method_not_found(cls, method: Any) -> "ProtocolError":
        return cls("Method not found", reason="method_not_found", code=METHOD_NOT_FOUND, method=method)

    @classmethod
    def tool_not_found(cls, name: str) -> "ProtocolError":
        return cls(f"Unknown tool: {name}", reason="not_found", code=METHOD_NOT_FOUND, tool=name)

    @classmethod
    def resource_not_found(cls, uri: str) -> "ProtocolError":
        return cls(f"Unknown resource URI: {uri}", reason="not_found", code=RESOURCE_NOT_FOUND, uri=uri)

    @classmethod
    def not_initialized(cls, method: Any) -> "ProtocolError":
        return cls("Session not initialized", reason="not_initialized", code=NOT_INITIALIZED, method=method)

    @classmethod
    def session_closed(cls) -> "ProtocolError":
        return cls("Session closed", reason="session_closed", code=INVALID_REQUEST)


class ValidationError(GatewayError):
    """Parameters do not match the tool schema or fail a shape check."""

    kind = "validation_error"
    default_code = INVALID_PARAMS

    def __init__(self, message: str, *, field: Optional[str] = None, reason: str = "invalid_value", **details: Any) -> None:
        super().__init__(message, field=field, reason=reason, **details)
        self.field = field
        self.reason = reason


class EncodingMismatchError(GatewayError):
    """A supplied blob disagrees with the canonical encoding of its fields."""

    kind = "encoding_mismatch"
    default_code = ENCODING_MISMATCH


class SignatureError(GatewayError):
    """Signature verification failed; ``reason`` is ``malformed`` or ``mismatch``."""

    kind = "signature_error"
    default_code = SIGNATURE_INVALID

    def __init__(self, message: str, *, reason: str, **details: Any) -> None:
        super().__init__(message, reason=reason, **details)
        self.reason = reason


class UpstreamError(GatewayError):
    """The Amadeus node call failed, timed out, or rejected the request."""

    kind = "upstream_error"
    default_code = UPSTREAM_FAILURE

    def __init__(
        self,
        message: str,
        *,
        reason: str = "upstream_error",
        transient: bool = False,
        status_code: Optional[int] = None,
        **details: Any,
    ) -> None:
        super().__init__(message, reason=reason, transient=transient, status_code=status_code, **details)
        self.reason = reason
        self.transient = transient
        self.status_code = status_code


class FaucetCooldownError(GatewayError):
    """A faucet claim was denied because the origin is still cooling down."""

    kind = "faucet_cooldown"
    default_code = FAUCET_COOLDOWN

    def __init__(self, message: str, *, retry_after: float, **details: Any) -> None:
        super().__init__(message, retry_after_seconds=round(retry_after, 3), **details)
        self.retry_after = retry_after


class StoreError(GatewayError):
    """The durable faucet store is unavailable."""

    kind = "store_error"
    default_code = STORE_FAILURE


class ConfigurationError(GatewayError):
    """A required setting (node URL, faucet key) is missing or invalid."""

    kind = "configuration_error"
    default_code = CONFIGURATION_FAILURE


def error_payload(error: BaseException) -> Dict[str, Any]:
    """Build the JSON-RPC ``error`` member for an exception."""
    if isinstance(error, GatewayError):
        return {"code": error.code, "message": error.message, "data": error.to_data()}
    return {
        "code": INTERNAL_ERROR,
        "message": "Internal error",
        "data": {"kind": GatewayError.kind},
    }
