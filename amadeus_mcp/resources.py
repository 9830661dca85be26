"""URI-addressed read-only resources (``amadeus://...``)."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List

from amadeus_mcp.errors import ProtocolError
from amadeus_mcp.tools.chain import get_block_by_height, get_chain_stats

CHAIN_STATS_URI = "amadeus://chain/stats"
BLOCK_URI_TEMPLATE = "amadeus://block/{height}"
BLOCK_URI_REGEX = re.compile(r"^amadeus://block/(0|[1-9][0-9]*)$")
MIME_TYPE = "application/json"


def list_resources() -> List[Dict[str, Any]]:
    return [
        {
            "uri": CHAIN_STATS_URI,
            "name": "chain_stats",
            "description": "Current chain statistics.",
            "mimeType": MIME_TYPE,
        }
    ]


def list_resource_templates() -> List[Dict[str, Any]]:
    return [
        {
            "uriTemplate": BLOCK_URI_TEMPLATE,
            "name": "block_by_height",
            "description": "Block entries at a height.",
            "mimeType": MIME_TYPE,
        }
    ]


async def read_resource(uri: str, *, client) -> Dict[str, Any]:
    """Fetch ``uri`` and wrap it as MCP resource contents."""
    if uri == CHAIN_STATS_URI:
        data = await get_chain_stats(client=client)
    else:
        match = BLOCK_URI_REGEX.fullmatch(uri)
        if match is None:
            raise ProtocolError.resource_not_found(uri)
        data = await get_block_by_height(int(match.group(1)), client=client)
    return {"contents": [{"uri": uri, "mimeType": MIME_TYPE, "text": json.dumps(data)}]}
