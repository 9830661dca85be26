"""Testnet faucet tool."""

from __future__ import annotations

from typing import Any, Dict

from amadeus_mcp.errors import ConfigurationError


async def claim_testnet_ama(address: str, *, faucet=None, origin: str | None = None) -> Dict[str, Any]:
    """Send testnet AMA to ``address``; one claim per origin per cooldown window."""
    if faucet is None:
        raise ConfigurationError("Faucet is not configured.")
    if not origin:
        raise ConfigurationError("Faucet claims need a caller origin.")
    return await faucet.claim(origin, address)
