"""Contract storage tools."""

from __future__ import annotations

from typing import Any, Dict

from amadeus_mcp.amadeus_api import default_client


async def get_contract_state(address: str, key: str, *, client=default_client) -> Dict[str, Any]:
    value = await client.fetch_contract_state(address, key)
    return {"contract_address": address, "key": key, "value": value}
