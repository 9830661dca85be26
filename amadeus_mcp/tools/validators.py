"""Shared validation helpers for Amadeus MCP tools."""

from __future__ import annotations

from typing import Optional

import base58

from amadeus_mcp.transaction.model import BASE58_REGEX

# Account addresses are base58-encoded 48-byte BLS public keys.
ADDRESS_BYTES = 48
# Transaction hashes are base58-encoded sha256 digests.
HASH_BYTES = 32


def decoded_length(value: Optional[str]) -> Optional[int]:
    """Byte length of a base58 string, or None when it is not base58."""
    if not value or not isinstance(value, str):
        return None
    if not BASE58_REGEX.fullmatch(value):
        return None
    try:
        return len(base58.b58decode(value))
    except ValueError:
        return None


def is_valid_address(address: Optional[str]) -> bool:
    return decoded_length(address) == ADDRESS_BYTES


def is_valid_tx_hash(value: Optional[str]) -> bool:
    return decoded_length(value) == HASH_BYTES


def is_atomic_amount(value: Optional[str]) -> bool:
    """Non-negative integer amount in atomic units, written without leading zeros."""
    if not value or not isinstance(value, str) or not value.isdigit():
        return False
    return value == "0" or not value.startswith("0")
