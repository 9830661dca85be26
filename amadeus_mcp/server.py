"""FastAPI application exposing the MCP protocol engine over HTTP."""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from amadeus_mcp import __version__
from amadeus_mcp.amadeus_api import default_client
from amadeus_mcp.config import AmadeusConfig, default_config
from amadeus_mcp.errors import INVALID_REQUEST, ProtocolError
from amadeus_mcp.faucet import build_faucet
from amadeus_mcp.logging_setup import configure_logging
from amadeus_mcp.metrics import default_metrics
from amadeus_mcp.protocol import SERVER_NAME, ProtocolEngine, Session, jsonrpc_error
from amadeus_mcp.rate_limiter import PerKeyRateLimiter

logger = logging.getLogger(__name__)
configure_logging(default_config)

HEALTH_STATUS = {"status": "ok"}
RATE_LIMITED_METHODS = {"tools/list": "list_tools", "list_tools": "list_tools"}
TOOL_CALL_METHODS = ("tools/call", "call_tool")


def _rate_limit_key(body: Dict[str, Any]) -> Optional[str]:
    method = body.get("method")
    if method in TOOL_CALL_METHODS:
        params = body.get("params")
        if isinstance(params, dict):
            name = params.get("name") or params.get("tool")
            if isinstance(name, str) and name:
                return name
        return "call_tool"
    if isinstance(method, str):
        return RATE_LIMITED_METHODS.get(method)
    return None


def _client_origin(request: Request, config: AmadeusConfig) -> str:
    """Caller IP; ``X-Forwarded-For`` is honoured only behind a trusted proxy."""
    if config.trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


def create_app(
    engine: Optional[ProtocolEngine] = None,
    *,
    config: AmadeusConfig = default_config,
    rate_limiter: Optional[PerKeyRateLimiter] = None,
) -> FastAPI:
    owns_client = engine is None
    if engine is None:
        engine = ProtocolEngine(
            client=default_client,
            faucet=build_faucet(config, default_client),
            config=config,
        )
    limiter = rate_limiter or PerKeyRateLimiter(
        rate_per_sec=config.rate_limit_qps,
        per_tool=config.per_tool_rate_limits,
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        # Startup
        yield
        # Shutdown
        if owns_client:
            await default_client.aclose()

    app = FastAPI(
        title="Amadeus MCP Server",
        description="Amadeus blockchain tool surface for LLM agents.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.rate_limiter = limiter

    @app.middleware("http")
    async def add_request_context(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.time()
        default_metrics.incr_request()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000
        default_metrics.record_duration(request_id, duration_ms)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.get("/")
    async def root() -> JSONResponse:
        return JSONResponse(
            content={
                "name": SERVER_NAME,
                "version": __version__,
                "endpoints": {"mcp": "/mcp", "health": "/health", "metrics": "/metrics"},
            }
        )

    @app.get("/health")
    async def health() -> JSONResponse:
        """Lightweight health endpoint for monitoring."""
        return JSONResponse(content=HEALTH_STATUS)

    @app.get("/metrics")
    async def metrics() -> JSONResponse:
        """Return in-process metrics snapshot."""
        return JSONResponse(content=default_metrics.snapshot())

    @app.post("/mcp")
    async def mcp_gateway(request: Request) -> Response:
        """
        JSON-RPC gateway: one envelope per request body.

        Each request gets its own already-initialized session, so callers may
        skip the handshake. Malformed bodies get a 400, notifications a 204.
        """
        request_id = getattr(request.state, "request_id", None)
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse(status_code=400, content=jsonrpc_error(None, ProtocolError.parse_error()))
        if not isinstance(body, dict):
            return JSONResponse(
                status_code=400,
                content=jsonrpc_error(None, ProtocolError.invalid_request("Request must be a JSON object")),
            )

        key = _rate_limit_key(body)
        if key is not None and not await limiter.allow(key):
            logger.warning("tool=%s outcome=rate_limited", key, extra={"tool": key, "request_id": request_id})
            default_metrics.incr_rate_limited()
            return JSONResponse(
                status_code=429,
                content={
                    "jsonrpc": "2.0",
                    "id": body.get("id"),
                    "error": {"code": 429, "message": "Rate limit exceeded", "data": {"kind": "rate_limited"}},
                },
            )

        session = Session.stateless(_client_origin(request, config))
        payload = await engine.handle_message(session, body, request_id=request_id)
        if payload is None:
            return Response(status_code=204)
        if payload.get("error", {}).get("code") == INVALID_REQUEST:
            return JSONResponse(status_code=400, content=payload)
        return JSONResponse(content=payload)

    return app


app = create_app()


def main() -> None:
    uvicorn.run(
        "amadeus_mcp.server:app",
        host=default_config.http_host,
        port=default_config.http_port,
        log_config=None,
    )
