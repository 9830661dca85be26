"""Minimal sanity checks for the Amadeus MCP tools against a live node."""

from __future__ import annotations

import asyncio
import os
import sys

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from amadeus_mcp.amadeus_api import default_client  # noqa: E402
from amadeus_mcp.errors import GatewayError  # noqa: E402
from amadeus_mcp.tools import (  # noqa: E402
    get_account_balance,
    get_block_by_height,
    get_chain_stats,
    get_transaction_history,
    get_validators,
)

# Optional account to query balances and history for.
SAMPLE_ADDRESS = os.getenv("AMADEUS_SAMPLE_ADDRESS")


async def _show(label: str, call) -> object:
    try:
        result = await call
    except GatewayError as exc:
        print(f"{label}: error {exc.kind} {exc.to_data()}")
        return None
    print(f"{label}:", result)
    return result


async def main() -> None:
    try:
        stats = await _show("Chain stats", get_chain_stats())
        await _show("Validators", get_validators())
        if isinstance(stats, dict) and stats.get("height"):
            await _show("Block at tip", get_block_by_height(int(stats["height"])))

        if SAMPLE_ADDRESS:
            await _show("Balance", get_account_balance(SAMPLE_ADDRESS))
            await _show("History (limit 3)", get_transaction_history(SAMPLE_ADDRESS, limit=3))
    finally:
        await default_client.aclose()


if __name__ == "__main__":
    asyncio.run(main())
