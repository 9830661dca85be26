"""
Newline-delimited stdio transport.

One envelope per line on stdin, one response per line on stdout. Until the
handshake completes, lines are handled strictly in order; after that each
request runs in its own task so a slow node call does not hold up the rest.
Logs go to stderr.
"""

from __future__ import annotations

import json
import logging
import sys
from io import TextIOWrapper
from typing import Any, AsyncIterable, Dict, Optional

import anyio

from amadeus_mcp.amadeus_api import AmadeusClient
from amadeus_mcp.config import AmadeusConfig, default_config
from amadeus_mcp.faucet import build_faucet
from amadeus_mcp.logging_setup import configure_logging
from amadeus_mcp.protocol import ProtocolEngine, Session, SessionState

logger = logging.getLogger(__name__)


class _NonClosingTextIOWrapper(TextIOWrapper):
    """Text wrapper that leaves the process' real stdio handles open."""

    def close(self) -> None:
        if self.closed:
            return
        if self.writable():
            self.flush()


def _wrap_process_stdio(binary_stream) -> anyio.AsyncFile[str]:
    # Undecodable bytes become U+FFFD and the line then fails as a JSON parse error.
    return anyio.wrap_file(_NonClosingTextIOWrapper(binary_stream, encoding="utf-8", errors="replace"))


async def serve(
    engine: ProtocolEngine,
    *,
    origin: str,
    stdin: Optional[AsyncIterable[str]] = None,
    stdout: Any = None,
) -> Session:
    """Run one session until stdin reaches EOF; returns the closed session."""
    if stdin is None:
        stdin = _wrap_process_stdio(sys.stdin.buffer)
    if stdout is None:
        stdout = _wrap_process_stdio(sys.stdout.buffer)

    session = Session(origin=origin)
    write_lock = anyio.Lock()

    async def send(response: Dict[str, Any]) -> None:
        async with write_lock:
            await stdout.write(json.dumps(response) + "\n")
            await stdout.flush()

    async def handle(line: str) -> None:
        response = await engine.handle_message(session, line)
        if response is not None:
            await send(response)

    async with anyio.create_task_group() as tg:
        async for line in stdin:
            if not line.strip():
                continue
            if session.state is SessionState.INITIALIZED:
                tg.start_soon(handle, line)
            else:
                await handle(line)
        logger.debug("stdin closed; ending session")
        session.close()
        tg.cancel_scope.cancel()
    return session


async def run(config: AmadeusConfig = default_config) -> None:
    client = AmadeusClient(config)
    engine = ProtocolEngine(client=client, faucet=build_faucet(config, client), config=config)
    try:
        await serve(engine, origin=config.stdio_origin)
    finally:
        await client.aclose()


def main() -> None:
    configure_logging()
    logger.info("Starting Amadeus MCP stdio server")
    anyio.run(run)
