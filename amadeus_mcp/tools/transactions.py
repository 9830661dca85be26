"""Transaction lookup tools."""

from __future__ import annotations

from typing import Any, Dict, Optional

from amadeus_mcp.amadeus_api import default_client
from amadeus_mcp.config import AmadeusConfig, default_config


async def get_transaction(hash: str, *, client=default_client) -> Dict[str, Any]:
    transaction = await client.fetch_transaction(hash)
    return {"hash": hash, "transaction": transaction}


async def get_transaction_history(
    address: str,
    *,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    page: Optional[int] = None,
    sort: str = "desc",
    client=default_client,
    config: AmadeusConfig = default_config,
) -> Dict[str, Any]:
    """
    Transaction events for ``address``.

    ``page`` is 1-based and converted to an offset of ``(page - 1) * limit``.
    """
    effective_limit = min(limit or config.default_history_limit, config.max_history_limit)
    effective_offset = offset or 0
    if page is not None:
        effective_offset = (page - 1) * effective_limit
    txs = await client.fetch_transaction_history(
        address, limit=effective_limit, offset=effective_offset, sort=sort
    )
    if not isinstance(txs, list):
        txs = []
    return {
        "address": address,
        "transactions": txs,
        "count": len(txs),
        "limit": effective_limit,
        "offset": effective_offset,
        "sort": sort,
    }
