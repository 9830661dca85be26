"""Chain-wide tools: statistics, blocks and validators."""

from __future__ import annotations

from typing import Any, Dict, Iterable

from amadeus_mcp.amadeus_api import default_client


_TX_COUNT_KEYS = ("total_transactions", "tx_count", "txs")
_ACCOUNT_COUNT_KEYS = ("total_accounts", "accounts", "account_count")


def _numeric(value: Any) -> int | float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            try:
                return float(value)
            except ValueError:
                return None
    return None


def _first_numeric(stats: Dict[str, Any], keys: Iterable[str]) -> int | float:
    for key in keys:
        parsed = _numeric(stats.get(key))
        if parsed is not None:
            return parsed
    return 0


def normalize_chain_stats(stats: Dict[str, Any]) -> Dict[str, Any]:
    """Node stats plus guaranteed numeric ``height``, ``total_transactions`` and ``total_accounts``."""
    normalized = dict(stats)
    normalized["height"] = _first_numeric(stats, ("height",))
    normalized["total_transactions"] = _first_numeric(stats, _TX_COUNT_KEYS)
    normalized["total_accounts"] = _first_numeric(stats, _ACCOUNT_COUNT_KEYS)
    return normalized


async def get_chain_stats(*, client=default_client) -> Dict[str, Any]:
    stats = await client.fetch_chain_stats()
    return normalize_chain_stats(stats)


async def get_block_by_height(height: int, *, client=default_client) -> Dict[str, Any]:
    entries = await client.fetch_block_by_height(height)
    if not isinstance(entries, list):
        entries = []
    return {"height": height, "entries": entries, "count": len(entries)}


async def get_validators(*, client=default_client) -> Dict[str, Any]:
    validators = await client.fetch_validators()
    if not isinstance(validators, list):
        validators = []
    return {"validators": validators, "count": len(validators)}
