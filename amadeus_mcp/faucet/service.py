"""Faucet claim flow: reserve the origin's slot, mint, then confirm or release."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

import anyio

from amadeus_mcp.config import AmadeusConfig
from amadeus_mcp.errors import FaucetCooldownError, UpstreamError
from amadeus_mcp.faucet.ledger import Denied, FaucetLedger
from amadeus_mcp.faucet.minter import FaucetMinter
from amadeus_mcp.faucet.store import build_store
from amadeus_mcp.metrics import MetricsRecorder, default_metrics

logger = logging.getLogger(__name__)


class Faucet:
    def __init__(
        self,
        ledger: FaucetLedger,
        minter: FaucetMinter,
        *,
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsRecorder] = None,
    ) -> None:
        self.ledger = ledger
        self.minter = minter
        self.clock = clock
        self.metrics = metrics or default_metrics

    async def claim(self, origin: str, address: str) -> Dict[str, Any]:
        """
        Grant one claim per origin per cooldown window.

        Raises ``FaucetCooldownError`` when denied. A mint that definitely
        failed releases the reservation; a timed-out mint keeps it because the
        transfer may already be queued on the node. A cancelled claim releases
        it as well.
        """
        outcome = await self.ledger.claim(origin, address, self.clock())
        if isinstance(outcome, Denied):
            self.metrics.record_faucet("denied")
            logger.info("Faucet claim denied", extra={"origin": origin})
            raise FaucetCooldownError(
                "Faucet already claimed from this origin; try again later.",
                retry_after=outcome.retry_after,
            )

        try:
            tx_hash = await self.minter.mint(address)
        except anyio.get_cancelled_exc_class():
            # Shielded so the release still runs while this task is being cancelled.
            with anyio.CancelScope(shield=True):
                await self.ledger.release(outcome)
            self.metrics.record_faucet("released")
            logger.info("Faucet claim cancelled; reservation released", extra={"origin": origin})
            raise
        except UpstreamError as exc:
            if exc.reason == "timeout":
                logger.warning("Faucet mint timed out; keeping reservation", extra={"origin": origin})
                raise
            await self.ledger.release(outcome)
            self.metrics.record_faucet("released")
            raise
        except Exception:
            await self.ledger.release(outcome)
            self.metrics.record_faucet("released")
            raise

        await self.ledger.confirm(outcome, tx_hash)
        self.metrics.record_faucet("granted")
        return {
            "status": "granted",
            "address": address,
            "amount": self.minter.amount,
            "symbol": self.minter.symbol,
            "tx_hash": tx_hash,
            "network": "testnet",
        }


def build_faucet(config: AmadeusConfig, client: Any) -> Faucet:
    """Wire the store, ledger and minter described by ``config``."""
    store = build_store(config.faucet_store, timeout=config.store_timeout)
    ledger = FaucetLedger(store, cooldown_seconds=config.faucet_cooldown_seconds)
    minter = FaucetMinter(
        client,
        seed_b58=config.faucet_key,
        amount=config.faucet_amount,
        symbol=config.faucet_symbol,
    )
    return Faucet(ledger, minter)
