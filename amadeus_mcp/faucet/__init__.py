"""Testnet faucet: cooldown ledger, claim store and minting."""

from .ledger import Denied, FaucetLedger, Granted
from .minter import FaucetMinter, SigningKey
from .service import Faucet, build_faucet
from .store import ClaimRecord, InMemoryClaimStore, SqliteClaimStore, build_store

__all__ = [
    "ClaimRecord",
    "Denied",
    "Faucet",
    "FaucetLedger",
    "FaucetMinter",
    "Granted",
    "InMemoryClaimStore",
    "SigningKey",
    "SqliteClaimStore",
    "build_faucet",
    "build_store",
]
