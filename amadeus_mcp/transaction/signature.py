"""
BLS12-381 signature checks for Amadeus transactions.

Amadeus uses the "minimal public key" variant: 48-byte compressed G1 public
keys and 96-byte compressed G2 signatures over the transaction signing hash,
hashed to the curve with a transaction-specific domain separation tag.
"""

from __future__ import annotations

import logging
from typing import Optional

import base58
from py_ecc.bls import G2Basic

logger = logging.getLogger(__name__)

TX_DST = b"AMADEUS_SIG_BLS12381G2_XMD:SHA-256_SSWU_RO_TX_"
PUBLIC_KEY_LENGTH = 48
SIGNATURE_LENGTH = 96


class AmadeusTxCiphersuite(G2Basic):
    DST = TX_DST


def verify(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """
    Pure predicate: True only for a valid signature of ``message`` by ``public_key``.

    Malformed keys or signatures, and any failure inside the curve library,
    yield False rather than an exception.
    """
    if len(public_key) != PUBLIC_KEY_LENGTH or len(signature) != SIGNATURE_LENGTH:
        return False
    try:
        return bool(AmadeusTxCiphersuite.Verify(public_key, message, signature))
    except Exception:
        logger.debug("BLS verification raised; treating as invalid", exc_info=True)
        return False


def signature_shape_error(signer_key: Optional[bytes], signature_b58: str) -> Optional[str]:
    """Describe why inputs cannot possibly verify, or None when they are well formed."""
    if signer_key is None or len(signer_key) != PUBLIC_KEY_LENGTH:
        return f"signer public key must be {PUBLIC_KEY_LENGTH} bytes"
    try:
        raw = base58.b58decode(signature_b58)
    except ValueError:
        return "signature is not valid base58"
    if len(raw) != SIGNATURE_LENGTH:
        return f"signature must be {SIGNATURE_LENGTH} bytes"
    return None


