"""Signs and submits the faucet's own testnet transfers."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Optional

import base58
from py_ecc.optimized_bls12_381 import curve_order

from amadeus_mcp.errors import ConfigurationError
from amadeus_mcp.transaction.model import (
    UnsignedTransaction,
    encode_transaction,
    signing_hash,
    transfer_args,
)
from amadeus_mcp.transaction.pipeline import pack_for_submission
from amadeus_mcp.transaction.signature import AmadeusTxCiphersuite

SEED_LENGTH = 64


def secret_from_seed(seed: bytes) -> int:
    """Reduce a 64-byte seed (little-endian) to a BLS12-381 secret scalar."""
    if len(seed) != SEED_LENGTH:
        raise ValueError(f"seed must be {SEED_LENGTH} bytes")
    return int.from_bytes(seed, "little") % curve_order


class SigningKey:
    def __init__(self, secret: int) -> None:
        if not 0 < secret < curve_order:
            raise ValueError("secret scalar out of range")
        self._secret = secret
        self.public_key = AmadeusTxCiphersuite.SkToPk(secret)

    @classmethod
    def from_seed_b58(cls, seed_b58: str) -> "SigningKey":
        return cls(secret_from_seed(base58.b58decode(seed_b58)))

    @property
    def address(self) -> str:
        return base58.b58encode(self.public_key).decode("ascii")

    def sign(self, message: bytes) -> bytes:
        return AmadeusTxCiphersuite.Sign(self._secret, message)


class FaucetMinter:
    """Builds a ``Coin.transfer`` from the faucet key and submits it to testnet."""

    def __init__(
        self,
        client: Any,
        *,
        seed_b58: Optional[str],
        amount: int,
        symbol: str,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        self.client = client
        self.amount = amount
        self.symbol = symbol
        self.clock = clock
        self._seed_b58 = seed_b58
        self._key: Optional[SigningKey] = None

    def _signing_key(self) -> SigningKey:
        if self._key is None:
            if not self._seed_b58:
                raise ConfigurationError("Faucet key is not configured.", setting="AMADEUS_TESTNET_SK")
            try:
                self._key = SigningKey.from_seed_b58(self._seed_b58)
            except ValueError as exc:
                raise ConfigurationError("Faucet key is invalid.", setting="AMADEUS_TESTNET_SK") from exc
        return self._key

    async def mint(self, destination: str) -> str:
        """Send the faucet amount to ``destination``; returns the transaction hash."""
        key = await asyncio.to_thread(self._signing_key)
        tx = UnsignedTransaction(
            signer=key.address,
            contract="Coin",
            function="transfer",
            args=transfer_args(destination, self.amount, self.symbol),
            nonce=self.clock(),
        )
        blob = encode_transaction(tx)
        signature = await asyncio.to_thread(key.sign, signing_hash(blob))
        packed_b58, tx_hash = pack_for_submission(blob, signature)
        await self.client.submit_transaction(packed_b58, network="testnet")
        return tx_hash
