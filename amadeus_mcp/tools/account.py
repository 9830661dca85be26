"""Account-related tools."""

from __future__ import annotations

from typing import Any, Dict, List

from amadeus_mcp.amadeus_api import default_client


def _normalize_balance(entry: Any) -> Dict[str, Any] | None:
    """Keep symbol and both amount renderings; drop anything that is not a balance row."""
    if not isinstance(entry, dict) or not isinstance(entry.get("symbol"), str):
        return None
    normalized: Dict[str, Any] = {"symbol": entry["symbol"]}
    if "flat" in entry:
        normalized["flat"] = entry["flat"]
    if "float" in entry:
        normalized["float"] = entry["float"]
    return normalized


async def get_account_balance(address: str, *, client=default_client) -> Dict[str, Any]:
    """Balances of ``address`` across every token it holds."""
    raw = await client.fetch_account_balance(address)
    balances: List[Dict[str, Any]] = []
    for entry in raw if isinstance(raw, list) else []:
        normalized = _normalize_balance(entry)
        if normalized is not None:
            balances.append(normalized)
    return {"address": address, "balances": balances}
