"""
Per-origin cooldown ledger for faucet claims.

A claim reserves the origin's slot with a compare-and-set on the store before
any tokens move. The caller then either confirms the reservation with the mint
transaction hash or releases it, restoring the previous record, when the mint
definitely failed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, Union

from amadeus_mcp.faucet.store import STATUS_GRANTED, STATUS_PENDING, ClaimRecord, ClaimStore

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 24 * 60 * 60


@dataclass(frozen=True, slots=True)
class Granted:
    origin: str
    record: ClaimRecord
    previous: Optional[ClaimRecord] = None


@dataclass(frozen=True, slots=True)
class Denied:
    origin: str
    retry_after: float
    record: Optional[ClaimRecord] = None


ClaimOutcome = Union[Granted, Denied]


class FaucetLedger:
    def __init__(self, store: ClaimStore, *, cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS) -> None:
        self.store = store
        self.cooldown_seconds = cooldown_seconds

    def _retry_after(self, record: ClaimRecord, now: float) -> Optional[float]:
        elapsed = now - record.claimed_at
        if elapsed >= self.cooldown_seconds:
            return None
        return self.cooldown_seconds - elapsed

    async def claim(self, origin: str, address: str, now: float) -> ClaimOutcome:
        """Reserve ``origin``'s slot for ``address`` unless it is still cooling down."""
        current = await self.store.get(origin)
        if current is not None:
            retry_after = self._retry_after(current, now)
            if retry_after is not None:
                return Denied(origin=origin, retry_after=retry_after, record=current)

        reservation = ClaimRecord(address=address, claimed_at=now, status=STATUS_PENDING)
        if await self.store.compare_and_set(origin, current, reservation):
            logger.info("Faucet slot reserved", extra={"origin": origin})
            return Granted(origin=origin, record=reservation, previous=current)

        # Lost the race: whoever won holds the slot now, unless their record has
        # already expired, in which case the slot gets one more attempt.
        winner = await self.store.get(origin)
        if winner is not None:
            retry_after = self._retry_after(winner, now)
            if retry_after is not None:
                return Denied(origin=origin, retry_after=retry_after, record=winner)
        if await self.store.compare_and_set(origin, winner, reservation):
            logger.info("Faucet slot reserved after retry", extra={"origin": origin})
            return Granted(origin=origin, record=reservation, previous=winner)
        return Denied(origin=origin, retry_after=float(self.cooldown_seconds), record=winner)

    async def confirm(self, grant: Granted, tx_hash: str) -> bool:
        confirmed = replace(grant.record, status=STATUS_GRANTED, tx_hash=tx_hash)
        ok = await self.store.compare_and_set(grant.origin, grant.record, confirmed)
        if not ok:
            logger.warning("Faucet reservation changed before confirm", extra={"origin": grant.origin})
        return ok

    async def release(self, grant: Granted) -> bool:
        """Undo a reservation whose mint failed so the origin can claim again."""
        ok = await self.store.compare_and_set(grant.origin, grant.record, grant.previous)
        if ok:
            logger.info("Faucet reservation released", extra={"origin": grant.origin})
        return ok
