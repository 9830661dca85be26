"""Canonical transaction encoding, signature checks and the submit pipeline."""

from .model import UnsignedTransaction, decode_transaction, encode_transaction, signing_hash
from .pipeline import build_transaction, make_transaction, submit_signed

__all__ = [
    "UnsignedTransaction",
    "build_transaction",
    "decode_transaction",
    "encode_transaction",
    "make_transaction",
    "signing_hash",
    "submit_signed",
]
